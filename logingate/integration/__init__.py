# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Integration package for testing the login gate against doubles of its
external collaborators.
"""

from .testing import (
    MockAuthorizationClient,
    create_test_config,
    create_test_user,
    create_test_gate,
)

__all__ = [
    'MockAuthorizationClient',
    'create_test_config',
    'create_test_user',
    'create_test_gate',
]
