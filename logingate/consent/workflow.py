# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Sequential consent workflow.

Drives one authentication attempt through the Access Terms, the Acceptable
Use Policy and the Data Privacy Policy in that order. Each document has a
reading timer that starts when it is first presented; an acceptance that
comes too soon is challenged again. Accepted timestamps are appended to the
user's durable acceptance history through an ``AcceptanceCommitter``.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, TYPE_CHECKING

from ..common.utils import get_current_time, format_timestamp, parse_timestamp
from ..errors import ConsentStateError, InternalInconsistencyError
from ..metrics import GateMetrics
from ..store import AttributeStore, UserRecord, StorageError
from ..store.commit import AcceptanceCommitter, EvictAndReloadCommitter
from .types import (
    AcceptedState, ConsentDocument, ConsentWorkflowState, DOCUMENT_ORDER
)

if TYPE_CHECKING:
    from ..core.config import GateConfig


logger = logging.getLogger(__name__)

REALLY_ACCEPT_SECONDS = 5

ACCEPT_RESPONSE = "accept"
REALLY_ACCEPT_RESPONSE = "really accept"
CANCEL_RESPONSE = "cancel"


class AcceptResult(Enum):
    """Outcome of one consent response."""
    ACCEPTED = "accepted"
    TOO_EARLY = "too_early"
    NOT_ACCEPTED = "not_accepted"
    CANCELLED = "cancelled"
    ERROR = "error"


@dataclass
class AcceptOutcome:
    """Result of ConsentWorkflow.accept"""
    result: AcceptResult
    document_key: str
    elapsed_seconds: int = 0
    message: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.result == AcceptResult.ACCEPTED


class ConsentStatus(Enum):
    """Where the attempt stands after a workflow step."""
    CHALLENGE = "challenge"
    COMPLETE = "complete"
    RESET = "reset"
    INTERNAL_ERROR = "internal_error"


@dataclass
class ConsentPrompt:
    """What the login form needs to present a document."""
    document_key: str
    display_type: str
    link: Optional[str]
    last_updated: Optional[str]
    has_changed: bool
    can_really_accept: bool
    error: Optional[str] = None
    error_field: Optional[str] = None

    def to_dict(self):
        return {
            'docKey': self.document_key,
            'docType': self.display_type,
            'docLink': self.link,
            'docLastUpdated': self.last_updated,
            'docHasChanged': self.has_changed,
            'canReallyAccept': self.can_really_accept,
            'error': self.error,
            'errorField': self.error_field,
        }


@dataclass
class ConsentStep:
    """One step of the consent attempt."""
    status: ConsentStatus
    state: Optional[str] = None
    prompt: Optional[ConsentPrompt] = None
    message: Optional[str] = None
    outcome: Optional[AcceptOutcome] = None


def latest_acceptance(history, user_id: str = "", attribute: str = "") -> Optional[datetime]:
    """
    Get the most recent timestamp from an acceptance history.

    Entries that cannot be parsed are skipped.
    """
    latest = None
    for entry in history or []:
        try:
            accepted = parse_timestamp(entry)
        except ValueError:
            logger.warning(f"Skipping unparsable {attribute} entry {entry!r} for user {user_id}")
            continue
        if latest is None or accepted > latest:
            latest = accepted
    return latest


class ConsentWorkflow:
    """
    Consent state machine for one authentication attempt at a time.

    The workflow holds no per-attempt state itself; every step takes and
    returns the serialised ``ConsentWorkflowState``.
    """

    def __init__(self,
                 config: "GateConfig",
                 store: AttributeStore,
                 committer: Optional[AcceptanceCommitter] = None,
                 metrics: Optional[GateMetrics] = None):
        """
        Initialize the workflow.

        Args:
            config: Gate configuration holding the document settings
            store: Attribute store holding the acceptance history
            committer: Strategy for recording acceptances (evict and reload if None)
            metrics: Optional metrics collector
        """
        self.config = config
        self.store = store
        self.committer = committer or EvictAndReloadCommitter()
        self.metrics = metrics

    def load_state(self, user: UserRecord, now: Optional[datetime] = None) -> ConsentWorkflowState:
        """
        Build a fresh state from the configuration and the user's acceptance history.

        Raises:
            InternalInconsistencyError: if a document cannot be constructed
        """
        now = now or get_current_time()
        documents = {}

        for key in DOCUMENT_ORDER:
            document_config = self.config.document(key)
            version_date = None
            if document_config.last_updated is not None:
                version_date = datetime.combine(document_config.last_updated, datetime.min.time())

            documents[key.value] = ConsentDocument(
                key=key.value,
                display_type=key.display_type,
                reference_link=document_config.link,
                version_date=version_date,
                last_accepted=latest_acceptance(
                    user.get_attribute(key.history_attribute), user.id, key.history_attribute
                ),
                required_seconds=document_config.required_seconds,
                now=now
            )

        return ConsentWorkflowState(**documents)

    async def accept(self,
                     user: UserRecord,
                     state: ConsentWorkflowState,
                     document: ConsentDocument,
                     response: Optional[str],
                     now: Optional[datetime] = None) -> AcceptOutcome:
        """
        Validate a response to the presented document and record an acceptance.

        Only an ACCEPTED outcome changes anything: the document is marked
        accepted in ``state`` and ``now`` is committed to the history.
        """
        now = now or get_current_time()
        token = (response or "").strip().lower()
        elapsed = document.elapsed_seconds(now)

        if token == CANCEL_RESPONSE:
            return AcceptOutcome(AcceptResult.CANCELLED, document.key, elapsed)

        if token == ACCEPT_RESPONSE:
            required = document.required_seconds
        elif token == REALLY_ACCEPT_RESPONSE:
            required = REALLY_ACCEPT_SECONDS
        else:
            return AcceptOutcome(
                AcceptResult.NOT_ACCEPTED, document.key, elapsed,
                f"You must accept the {document.display_type} to continue."
            )

        if elapsed < required:
            return AcceptOutcome(
                AcceptResult.TOO_EARLY, document.key, elapsed,
                f"It has only been {elapsed} seconds. "
                f"Are you sure you have read and understood it fully?"
            )

        attribute = document.document_key.history_attribute
        try:
            await self.committer.commit(self.store, user, attribute, format_timestamp(now))
        except StorageError as e:
            logger.error(f"Failed to record {attribute} for user {user.id}: {e}")
            return AcceptOutcome(AcceptResult.ERROR, document.key, elapsed, "Internal error")

        state.accept(document, now)
        logger.info(f"User {user.id} accepted {document.key} after {elapsed} seconds")
        return AcceptOutcome(AcceptResult.ACCEPTED, document.key, elapsed)

    async def start(self, user: UserRecord, now: Optional[datetime] = None) -> ConsentStep:
        """Begin the consent part of an attempt."""
        now = now or get_current_time()

        try:
            state = self.load_state(user, now)
        except InternalInconsistencyError as e:
            logger.error(f"Cannot build consent state for user {user.id}: {e}")
            return ConsentStep(ConsentStatus.INTERNAL_ERROR, message="Internal error")

        document = state.next_to_accept(now)
        if document is None:
            return ConsentStep(ConsentStatus.COMPLETE)

        return self._challenge(state, document, now)

    async def respond(self,
                      user: UserRecord,
                      state: Optional[str],
                      response: Optional[str],
                      cancel: bool = False,
                      now: Optional[datetime] = None) -> ConsentStep:
        """
        Handle one response to the presented document.

        Args:
            user: The authenticating user
            state: Serialised state returned by the previous step
            response: The submitted response text
            cancel: Whether the user pressed cancel
            now: Time of the response
        """
        now = now or get_current_time()

        try:
            workflow_state = ConsentWorkflowState.from_string(state, now)
        except ConsentStateError as e:
            logger.error(f"Invalid consent state for user {user.id}: {e}")
            return ConsentStep(ConsentStatus.INTERNAL_ERROR, message="Internal error")

        document = workflow_state.next_to_accept(now)
        if document is None:
            return ConsentStep(ConsentStatus.COMPLETE)

        if cancel:
            response = CANCEL_RESPONSE

        outcome = await self.accept(user, workflow_state, document, response, now)

        if self.metrics:
            self.metrics.record_consent_response(document.key, outcome.result.value)

        if outcome.result == AcceptResult.CANCELLED:
            logger.info(f"User {user.id} cancelled consent at {document.key}")
            return ConsentStep(ConsentStatus.RESET, outcome=outcome)

        if outcome.result == AcceptResult.ERROR:
            return ConsentStep(ConsentStatus.INTERNAL_ERROR, message=outcome.message, outcome=outcome)

        if not outcome.accepted:
            step = self._challenge(workflow_state, document, now, error=outcome.message)
            step.outcome = outcome
            return step

        following = workflow_state.next_to_accept(now)
        if following is None:
            return ConsentStep(ConsentStatus.COMPLETE, outcome=outcome)

        step = self._challenge(workflow_state, following, now)
        step.outcome = outcome
        return step

    def _challenge(self,
                   state: ConsentWorkflowState,
                   document: ConsentDocument,
                   now: datetime,
                   error: Optional[str] = None) -> ConsentStep:
        version = document.version_date.date().isoformat() if document.version_date else None
        prompt = ConsentPrompt(
            document_key=document.key,
            display_type=document.display_type,
            link=document.reference_link,
            last_updated=version,
            has_changed=document.status() == AcceptedState.NEW_VERSION,
            can_really_accept=document.elapsed_seconds(now) > REALLY_ACCEPT_SECONDS,
            error=error,
            error_field="response" if error else None
        )
        return ConsentStep(ConsentStatus.CHALLENGE, state=state.to_string(), prompt=prompt)


__all__ = [
    "REALLY_ACCEPT_SECONDS",
    "AcceptResult",
    "AcceptOutcome",
    "ConsentStatus",
    "ConsentPrompt",
    "ConsentStep",
    "ConsentWorkflow",
    "latest_acceptance",
]
