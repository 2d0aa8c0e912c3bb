# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Testing utilities for login gate integration testing.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from ..audit import MemoryAuditLogger
from ..authz import AuthorizationRecord, AuthorizationService
from ..consent import DOCUMENT_ORDER
from ..core.config import GateConfig, DocumentConfig
from ..core.gate import LoginGate
from ..metrics import GateMetrics
from ..store import MemoryAttributeStore, UserRecord


logger = logging.getLogger(__name__)


class MockAuthorizationClient(AuthorizationService):
    """Authorization service double returning configured records per email."""

    def __init__(self, default: Optional[AuthorizationRecord] = None):
        self.default = default or AuthorizationRecord.failed("no mock response")
        self.records: Dict[str, AuthorizationRecord] = {}
        self.call_count = 0
        self.requests: List[Dict[str, Any]] = []

    def set_record(self, email: str, record: AuthorizationRecord) -> None:
        """Set the record returned for an email."""
        self.records[email.strip().lower()] = record

    def set_active(self, email: str, short_name: Optional[str] = None,
                   projects: Optional[Dict[str, Any]] = None) -> AuthorizationRecord:
        """Set an ``active`` record for an email."""
        record = AuthorizationRecord.from_dict({
            'email': email,
            'status': 'active',
            'short_name': short_name,
            'projects': projects or {},
        })
        self.set_record(email, record)
        return record

    @property
    def last_request(self) -> Optional[Dict[str, Any]]:
        return self.requests[-1] if self.requests else None

    async def fetch(self, email: Optional[str], endpoint: Optional[str],
                    api_key: Optional[str]) -> AuthorizationRecord:
        self.call_count += 1
        self.requests.append({'email': email, 'endpoint': endpoint, 'api_key': api_key})
        return self.records.get((email or "").strip().lower(), self.default)


def create_test_config(**overrides) -> GateConfig:
    """
    Create a configuration with all three documents required.

    Every document has a link, a version date of 2024-01-01 and a reading
    time of 10 seconds unless overridden.
    """
    values = {
        'support_email': "support@example.org",
        'authorization_url': "http://authz.test/api/check",
        'authorization_key': "test-key",
        'documents': {
            key: DocumentConfig(
                link=f"https://docs.example.org/{key.value}",
                last_updated=date(2024, 1, 1),
                required_seconds=10
            )
            for key in DOCUMENT_ORDER
        },
    }
    values.update(overrides)
    return GateConfig(**values)


def create_test_user(user_id: str = "user-1", email: Optional[str] = "ada@example.org",
                     groups: Optional[List[str]] = None,
                     attributes: Optional[Dict[str, List[str]]] = None) -> UserRecord:
    """Create a user record."""
    return UserRecord(
        id=user_id,
        username=user_id,
        email=email,
        groups=list(groups or []),
        attributes=dict(attributes or {})
    )


def create_test_gate(config: Optional[GateConfig] = None,
                     users: Optional[List[UserRecord]] = None,
                     client: Optional[AuthorizationService] = None) -> LoginGate:
    """Create a gate over an in-memory store with a mock client, audit log and metrics."""
    return LoginGate(
        config or create_test_config(),
        MemoryAttributeStore(users or []),
        client=client or MockAuthorizationClient(),
        audit_logger=MemoryAuditLogger(),
        metrics=GateMetrics()
    )
