# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Audit package for login gate decisions.
"""

from .logger import (
    LOGIN_ALLOWED,
    LOGIN_DENIED,
    LOGIN_ERROR,
    CONSENT_REQUIRED,
    CONSENT_ACCEPTED,
    CONSENT_REJECTED,
    CONSENT_CANCELLED,
    LoginEvent,
    AuditLogger,
    MemoryAuditLogger,
    FileAuditLogger,
    create_audit_logger,
)

__all__ = [
    "LOGIN_ALLOWED",
    "LOGIN_DENIED",
    "LOGIN_ERROR",
    "CONSENT_REQUIRED",
    "CONSENT_ACCEPTED",
    "CONSENT_REJECTED",
    "CONSENT_CANCELLED",
    "LoginEvent",
    "AuditLogger",
    "MemoryAuditLogger",
    "FileAuditLogger",
    "create_audit_logger",
]
