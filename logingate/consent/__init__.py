# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Package consent implements the sequential acceptance of the Access Terms,
the Acceptable Use Policy and the Data Privacy Policy.
"""

from .types import (
    DocumentKey,
    DISPLAY_TYPES,
    DOCUMENT_ORDER,
    AcceptedState,
    ConsentDocument,
    ConsentWorkflowState,
)

from .workflow import (
    REALLY_ACCEPT_SECONDS,
    AcceptResult,
    AcceptOutcome,
    ConsentStatus,
    ConsentPrompt,
    ConsentStep,
    ConsentWorkflow,
    latest_acceptance,
)

__all__ = [
    # Types
    'DocumentKey',
    'DISPLAY_TYPES',
    'DOCUMENT_ORDER',
    'AcceptedState',
    'ConsentDocument',
    'ConsentWorkflowState',

    # Workflow
    'REALLY_ACCEPT_SECONDS',
    'AcceptResult',
    'AcceptOutcome',
    'ConsentStatus',
    'ConsentPrompt',
    'ConsentStep',
    'ConsentWorkflow',
    'latest_acceptance',
]
