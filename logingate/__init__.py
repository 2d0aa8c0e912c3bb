"""
Login Gate Python Package

Decision core of a login gate: authorization against allow and ban lists,
groups and a remote authorization service, followed by sequential consent
to the Access Terms, the Acceptable Use Policy and the Data Privacy Policy.
"""

__version__ = "0.1.0"

from .core.config import GateConfig, DocumentConfig
from .core.gate import LoginGate, GateResult, GateStatus
from .authz import AuthorizationClient, AuthorizationDecisionEngine, LoginVerdict, VerdictKind, VerdictCode
from .consent import ConsentWorkflow, ConsentWorkflowState, ConsentDocument, DocumentKey
from .store import UserRecord, AttributeStore, MemoryAttributeStore, RedisCachedAttributeStore

__all__ = [
    "GateConfig",
    "DocumentConfig",
    "LoginGate",
    "GateResult",
    "GateStatus",
    "AuthorizationClient",
    "AuthorizationDecisionEngine",
    "LoginVerdict",
    "VerdictKind",
    "VerdictCode",
    "ConsentWorkflow",
    "ConsentWorkflowState",
    "ConsentDocument",
    "DocumentKey",
    "UserRecord",
    "AttributeStore",
    "MemoryAttributeStore",
    "RedisCachedAttributeStore",
]
