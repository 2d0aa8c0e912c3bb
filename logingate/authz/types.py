# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Authorization types for the login gate.
Implements the remote authorization record and the login verdict.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Any

from ..errors import (
    ErrorCategory, LoginGateError, UserInputError, PolicyDenialError,
    UpstreamFailureError, InternalInconsistencyError
)


STATUS_ACTIVE = "active"
STATUS_INVITED = "invited"

API_FAILURE_REASON = "API call to the authorization service failed"


@dataclass(frozen=True)
class ResourceInfo:
    """An account on one resource of a project."""
    name: str = ""
    username: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'username': self.username}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ResourceInfo':
        if not isinstance(data, dict):
            raise ValueError(f"Resource entry must be an object, got {type(data).__name__}")
        return cls(
            name=_as_str(data.get('name')),
            username=_as_str(data.get('username'))
        )


@dataclass(frozen=True)
class ProjectInfo:
    """A project the user belongs to, with the resources they can use."""
    name: str = ""
    resources: List[ResourceInfo] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'resources': [r.to_dict() for r in self.resources]
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProjectInfo':
        if not isinstance(data, dict):
            raise ValueError(f"Project entry must be an object, got {type(data).__name__}")

        resources = data.get('resources') or []
        if not isinstance(resources, list):
            raise ValueError("Project resources must be a list")

        return cls(
            name=_as_str(data.get('name')),
            resources=[ResourceInfo.from_dict(r) for r in resources]
        )


@dataclass(frozen=True)
class AuthorizationRecord:
    """
    Record returned by the remote authorization service for one email.

    ``failure`` is never sent over the wire; it holds a diagnostic when the
    record was produced because the service could not be used.
    """
    email: str = ""
    status: str = ""
    short_name: Optional[str] = None
    projects: Dict[str, ProjectInfo] = field(default_factory=dict)
    invited_by: str = ""
    reason: str = ""
    failure: Optional[str] = None

    @property
    def is_failure(self) -> bool:
        return self.failure is not None

    def projects_to_dict(self) -> Dict[str, Any]:
        return {name: project.to_dict() for name, project in self.projects.items()}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire representation."""
        return {
            'email': self.email,
            'status': self.status,
            'short_name': self.short_name,
            'projects': self.projects_to_dict(),
            'invited_by': self.invited_by,
            'reason': self.reason
        }

    @classmethod
    def from_dict(cls, data: Any) -> 'AuthorizationRecord':
        """
        Decode the wire representation.

        Missing fields default to empty values and unknown fields are ignored.

        Raises:
            ValueError: if the body or a project entry is malformed
        """
        if not isinstance(data, dict):
            raise ValueError(f"Authorization record must be an object, got {type(data).__name__}")

        projects = data.get('projects') or {}
        if not isinstance(projects, dict):
            raise ValueError("Authorization record projects must be an object")

        short_name = data.get('short_name')
        return cls(
            email=_as_str(data.get('email')),
            status=_as_str(data.get('status')),
            short_name=None if short_name is None else _as_str(short_name),
            projects={str(k): ProjectInfo.from_dict(v) for k, v in projects.items()},
            invited_by=_as_str(data.get('invited_by')),
            reason=_as_str(data.get('reason'))
        )

    @classmethod
    def failed(cls, failure: str) -> 'AuthorizationRecord':
        """Record used whenever the remote service could not be used."""
        return cls(status="", reason=API_FAILURE_REASON, failure=failure)


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise ValueError(f"Expected a string, got {type(value).__name__}")
    return str(value)


class VerdictKind(Enum):
    """Outcome of a login decision."""
    ALLOW = "allow"
    DENY = "deny"
    INTERNAL_ERROR = "internal_error"


class VerdictCode(Enum):
    """The rule that decided a login."""
    ALLOWED_GROUP = "allowed_group"
    ALLOWED_EMAIL = "allowed_email"
    ALLOWED_ACTIVE = "allowed_active"
    ALLOWED_INVITED_DOMAIN = "allowed_invited_domain"
    MISSING_EMAIL = "missing_email"
    BANNED = "banned"
    NOT_AUTHORIZED = "not_authorized"
    PENDING_REVIEW = "pending_review"
    UPSTREAM_FAILURE = "upstream_failure"
    SHORT_NAME_TOO_LONG = "short_name_too_long"
    INTERNAL_FAILURE = "internal_failure"


_ERROR_TYPES = {
    ErrorCategory.USER_INPUT: UserInputError,
    ErrorCategory.POLICY_DENIAL: PolicyDenialError,
    ErrorCategory.UPSTREAM_FAILURE: UpstreamFailureError,
    ErrorCategory.INTERNAL_INCONSISTENCY: InternalInconsistencyError,
}


@dataclass
class LoginVerdict:
    """
    Authorization decision for one login attempt.

    Every verdict other than ALLOW carries a user-visible reason and a
    support contact.
    """
    kind: VerdictKind
    code: VerdictCode
    reason: Optional[str] = None
    support_contact: Optional[str] = None
    category: Optional[ErrorCategory] = None
    attributes: Dict[str, str] = field(default_factory=dict)
    inviter: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.kind == VerdictKind.ALLOW

    @classmethod
    def allow(cls, code: VerdictCode, attributes: Optional[Dict[str, str]] = None) -> 'LoginVerdict':
        return cls(VerdictKind.ALLOW, code, attributes=dict(attributes or {}))

    @classmethod
    def deny(cls, code: VerdictCode, reason: str, support_contact: str,
             category: ErrorCategory = ErrorCategory.POLICY_DENIAL,
             inviter: Optional[str] = None) -> 'LoginVerdict':
        return cls(VerdictKind.DENY, code, reason, support_contact, category, inviter=inviter)

    @classmethod
    def internal_error(cls, code: VerdictCode, support_contact: str,
                       reason: str = "Internal error") -> 'LoginVerdict':
        return cls(VerdictKind.INTERNAL_ERROR, code, reason, support_contact,
                   ErrorCategory.INTERNAL_INCONSISTENCY)

    def user_message(self) -> Optional[str]:
        """Message for the login form, including the support contact."""
        if self.allowed:
            return None
        return f"{self.reason} Please contact {self.support_contact} for support."

    def raise_for_denial(self) -> None:
        """
        Raise the error matching this verdict's category.

        Raises:
            LoginGateError: if the verdict is not ALLOW
        """
        if self.allowed:
            return
        error_type = _ERROR_TYPES.get(self.category, LoginGateError)
        raise error_type(
            self.reason or "",
            error_code=self.code.value.upper(),
            details={'support_contact': self.support_contact}
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'kind': self.kind.value,
            'code': self.code.value,
            'reason': self.reason,
            'support_contact': self.support_contact,
            'category': self.category.value if self.category else None,
            'attributes': dict(self.attributes),
            'inviter': self.inviter
        }
