# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Package authz implements the login decision: allow and ban lists, group
bypass, invitation domains and the remote authorization record.
"""

from .types import (
    STATUS_ACTIVE,
    STATUS_INVITED,
    API_FAILURE_REASON,
    ResourceInfo,
    ProjectInfo,
    AuthorizationRecord,
    VerdictKind,
    VerdictCode,
    LoginVerdict,
)

from .client import (
    DEFAULT_TIMEOUT_SECONDS,
    AuthorizationService,
    AuthorizationClient,
)

from .engine import (
    MAX_SHORT_NAME_LENGTH,
    ShortNameTooLong,
    normalise_short_name,
    serialise_projects,
    set_if_changed,
    clear_cached_attributes,
    AuthorizationDecisionEngine,
)

from .claims import TokenClaimsMapper

__all__ = [
    # Types
    'STATUS_ACTIVE',
    'STATUS_INVITED',
    'API_FAILURE_REASON',
    'ResourceInfo',
    'ProjectInfo',
    'AuthorizationRecord',
    'VerdictKind',
    'VerdictCode',
    'LoginVerdict',

    # Client
    'DEFAULT_TIMEOUT_SECONDS',
    'AuthorizationService',
    'AuthorizationClient',

    # Engine
    'MAX_SHORT_NAME_LENGTH',
    'ShortNameTooLong',
    'normalise_short_name',
    'serialise_projects',
    'set_if_changed',
    'clear_cached_attributes',
    'AuthorizationDecisionEngine',

    # Claims
    'TokenClaimsMapper',
]
