# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Error handling for the login gate.

Errors are raised inside components and caught at the public boundaries
(authorization client, decision engine, consent workflow, login gate), where
they are turned into typed outcomes. The category decides how a failure is
presented to the user:

  - USER_INPUT: recoverable, the user is challenged again
  - POLICY_DENIAL: terminal for the attempt, cause-specific message
  - UPSTREAM_FAILURE: treated as a policy denial but logged distinctly
  - INTERNAL_INCONSISTENCY: terminal, generic message for the user
"""

from enum import Enum
from datetime import datetime
from typing import Dict, Any, Optional


class ErrorCategory(Enum):
    """Categories of login gate failures."""

    USER_INPUT = "user_input"
    POLICY_DENIAL = "policy_denial"
    UPSTREAM_FAILURE = "upstream_failure"
    INTERNAL_INCONSISTENCY = "internal_inconsistency"


class LoginGateError(Exception):
    """
    Base exception class for all login gate errors.

    Carries a machine-readable error code, the failure category and
    optional details for diagnostics.
    """

    category = ErrorCategory.INTERNAL_INCONSISTENCY

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        self.message = message
        self.error_code = error_code or "LOGIN_GATE_ERROR"
        self.details = details or {}
        self.cause = cause
        self.timestamp = datetime.now()
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        result = {
            "error": self.error_code,
            "error_description": self.message,
            "error_category": self.category.value,
            "timestamp": self.timestamp.isoformat(),
        }

        if self.details:
            result["details"] = self.details

        if self.cause:
            result["caused_by"] = str(self.cause)

        return result


class UserInputError(LoginGateError):
    """Missing email, unrecognised consent response and similar."""

    category = ErrorCategory.USER_INPUT

    def __init__(self, message: str, error_code: str = "USER_INPUT_ERROR", **kwargs):
        super().__init__(message, error_code, **kwargs)


class PolicyDenialError(LoginGateError):
    """Banned, not authorised or pending review."""

    category = ErrorCategory.POLICY_DENIAL

    def __init__(self, message: str, error_code: str = "POLICY_DENIAL", **kwargs):
        super().__init__(message, error_code, **kwargs)


class UpstreamFailureError(LoginGateError):
    """The remote authorization service could not be used."""

    category = ErrorCategory.UPSTREAM_FAILURE

    def __init__(self, message: str, error_code: str = "UPSTREAM_FAILURE",
                 status: Optional[int] = None, **kwargs):
        self.status = status
        super().__init__(message, error_code, **kwargs)


class InternalInconsistencyError(LoginGateError, ValueError):
    """Data that should never occur was encountered."""

    category = ErrorCategory.INTERNAL_INCONSISTENCY

    def __init__(self, message: str, error_code: str = "INTERNAL_INCONSISTENCY", **kwargs):
        super().__init__(message, error_code, **kwargs)


class ConsentStateError(InternalInconsistencyError):
    """Per-attempt consent state is missing or malformed."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, "CONSENT_STATE_ERROR", **kwargs)


class ConfigurationError(LoginGateError, ValueError):
    """The gate configuration is invalid."""

    category = ErrorCategory.INTERNAL_INCONSISTENCY

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        self.field = field
        super().__init__(message, "CONFIGURATION_ERROR", **kwargs)


__all__ = [
    "ErrorCategory",
    "LoginGateError",
    "UserInputError",
    "PolicyDenialError",
    "UpstreamFailureError",
    "InternalInconsistencyError",
    "ConsentStateError",
    "ConfigurationError",
]
