"""
Login gate orchestration.

Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

A login attempt first runs the authorization decision engine. When the
user is allowed, the consent workflow makes sure every required document
has been accepted before the attempt finally succeeds.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from ..audit import (
    AuditLogger, LoginEvent, LOGIN_ALLOWED, LOGIN_DENIED, LOGIN_ERROR,
    CONSENT_REQUIRED, CONSENT_ACCEPTED, CONSENT_REJECTED, CONSENT_CANCELLED
)
from ..authz import (
    AuthorizationService, AuthorizationDecisionEngine, LoginVerdict, TokenClaimsMapper, VerdictKind
)
from ..authz.claims import cached_claims
from ..common.utils import get_current_time
from ..consent import ConsentWorkflow, ConsentStatus, ConsentStep, ConsentPrompt
from ..errors import LoginGateError
from ..metrics import GateMetrics
from ..store import AttributeStore, UserRecord, StorageError
from ..store.commit import AcceptanceCommitter
from .config import GateConfig


logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal error"


class GateStatus(Enum):
    """Where a login attempt stands"""
    ALLOWED = "allowed"
    DENIED = "denied"
    CONSENT_REQUIRED = "consent_required"
    RESET = "reset"
    INTERNAL_ERROR = "internal_error"


@dataclass
class GateResult:
    """Result of one step of a login attempt"""
    status: GateStatus
    user_id: str
    verdict: Optional[LoginVerdict] = None
    state: Optional[str] = None
    prompt: Optional[ConsentPrompt] = None
    message: Optional[str] = None
    support_contact: Optional[str] = None
    attributes: Dict[str, str] = field(default_factory=dict)

    @property
    def allowed(self) -> bool:
        return self.status == GateStatus.ALLOWED

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': self.status.value,
            'user_id': self.user_id,
            'verdict': self.verdict.to_dict() if self.verdict else None,
            'state': self.state,
            'prompt': self.prompt.to_dict() if self.prompt else None,
            'message': self.message,
            'support_contact': self.support_contact,
            'attributes': dict(self.attributes),
        }


class LoginGate:
    """
    Decision core of the login gate.

    The gate keeps no per-attempt state: the consent state is returned to
    the caller with every CONSENT_REQUIRED result and passed back in with
    the next response.
    """

    def __init__(self,
                 config: GateConfig,
                 store: AttributeStore,
                 client: Optional[AuthorizationService] = None,
                 committer: Optional[AcceptanceCommitter] = None,
                 audit_logger: Optional[AuditLogger] = None,
                 metrics: Optional[GateMetrics] = None):
        """
        Initialize the gate.

        Args:
            config: Gate configuration
            store: Attribute store holding users and their attributes
            client: Source of authorization records
            committer: Strategy for recording consent acceptances
            audit_logger: Optional audit logger
            metrics: Optional metrics collector
        """
        self.config = config
        self.store = store
        self.audit_logger = audit_logger
        self.metrics = metrics
        self.engine = AuthorizationDecisionEngine(config, store, client=client, metrics=metrics)
        self.workflow = ConsentWorkflow(config, store, committer=committer, metrics=metrics)
        self.claims_mapper = TokenClaimsMapper(config, store, client=self.engine.client)

    async def login(self, user_id: str, now: Optional[datetime] = None) -> GateResult:
        """Start a login attempt."""
        now = now or get_current_time()

        try:
            user = await self._get_user(user_id)
            if user is None:
                return await self._internal_error(user_id, "unknown user")

            verdict = await self.engine.evaluate(user)

            if verdict.kind == VerdictKind.INTERNAL_ERROR:
                await self._audit(LOGIN_ERROR, user, code=verdict.code.value)
                return GateResult(
                    GateStatus.INTERNAL_ERROR, user_id, verdict=verdict,
                    message=verdict.reason, support_contact=verdict.support_contact
                )

            if not verdict.allowed:
                await self._audit(LOGIN_DENIED, user, code=verdict.code.value,
                                  category=verdict.category.value if verdict.category else None)
                return GateResult(
                    GateStatus.DENIED, user_id, verdict=verdict,
                    message=verdict.reason, support_contact=verdict.support_contact
                )

            step = await self.workflow.start(user, now)
            return await self._from_step(user, step, verdict)

        except (StorageError, LoginGateError) as e:
            return await self._internal_error(user_id, str(e))

        except Exception as e:
            logger.exception(f"Unexpected error during login for user {user_id}")
            return await self._internal_error(user_id, f"unexpected error: {e}")

    async def submit_consent(self,
                             user_id: str,
                             state: Optional[str],
                             response: Optional[str],
                             cancel: bool = False,
                             now: Optional[datetime] = None) -> GateResult:
        """Continue a login attempt with the user's response to a document."""
        now = now or get_current_time()

        try:
            user = await self._get_user(user_id)
            if user is None:
                return await self._internal_error(user_id, "unknown user")

            step = await self.workflow.respond(user, state, response, cancel=cancel, now=now)
            return await self._from_step(user, step, None)

        except (StorageError, LoginGateError) as e:
            return await self._internal_error(user_id, str(e))

        except Exception as e:
            logger.exception(f"Unexpected error during login for user {user_id}")
            return await self._internal_error(user_id, f"unexpected error: {e}")

    async def token_claims(self, user_id: str) -> Dict[str, str]:
        """Refresh the short_name and projects claims for token issuance."""
        try:
            user = await self._get_user(user_id)
            if user is None:
                return {}
            return await self.claims_mapper.map_claims(user)
        except StorageError as e:
            logger.error(f"Failed to map claims for user {user_id}: {e}")
            return {}

    async def close(self) -> None:
        await self.store.close()
        if self.audit_logger:
            await self.audit_logger.close()

    async def _get_user(self, user_id: str) -> Optional[UserRecord]:
        user = await self.store.get_user(user_id)
        if user is None:
            logger.error(f"User {user_id} not found")
        return user

    async def _from_step(self, user: UserRecord, step: ConsentStep,
                         verdict: Optional[LoginVerdict]) -> GateResult:
        support = self.config.support_contact
        outcome = step.outcome

        if outcome is not None:
            if outcome.accepted:
                await self._audit(CONSENT_ACCEPTED, user, document=outcome.document_key,
                                  elapsed_seconds=outcome.elapsed_seconds)
            elif step.status == ConsentStatus.CHALLENGE:
                await self._audit(CONSENT_REJECTED, user, document=outcome.document_key,
                                  result=outcome.result.value)

        if step.status == ConsentStatus.COMPLETE:
            attributes = cached_claims(user)
            await self._audit(LOGIN_ALLOWED, user, code=verdict.code.value if verdict else None)
            return GateResult(GateStatus.ALLOWED, user.id, verdict=verdict, attributes=attributes)

        if step.status == ConsentStatus.CHALLENGE:
            await self._audit(CONSENT_REQUIRED, user, document=step.prompt.document_key)
            return GateResult(
                GateStatus.CONSENT_REQUIRED, user.id, verdict=verdict,
                state=step.state, prompt=step.prompt, message=step.prompt.error
            )

        if step.status == ConsentStatus.RESET:
            await self._audit(CONSENT_CANCELLED, user,
                              document=outcome.document_key if outcome else None)
            return GateResult(GateStatus.RESET, user.id, verdict=verdict)

        await self._audit(LOGIN_ERROR, user, message=step.message)
        return GateResult(
            GateStatus.INTERNAL_ERROR, user.id, verdict=verdict,
            message=INTERNAL_ERROR_MESSAGE, support_contact=support
        )

    async def _internal_error(self, user_id: str, detail: str) -> GateResult:
        logger.error(f"[LOGIN FAILED] Internal error for user {user_id}: {detail}")
        if self.audit_logger:
            await self.audit_logger.log(LoginEvent(
                event_type=LOGIN_ERROR, user_id=user_id,
                details={"error": detail}
            ))
        return GateResult(
            GateStatus.INTERNAL_ERROR, user_id,
            message=INTERNAL_ERROR_MESSAGE, support_contact=self.config.support_contact
        )

    async def _audit(self, event_type: str, user: UserRecord, **details) -> None:
        if self.audit_logger is None:
            return
        await self.audit_logger.log(LoginEvent(
            event_type=event_type,
            user_id=user.id,
            email=user.email,
            details={k: v for k, v in details.items() if v is not None}
        ))
