# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Consent document types.
Implements the per-document acceptance state and reading-time requirement.
"""

import json
from dataclasses import dataclass, InitVar
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Any

from ..common.utils import get_current_time, start_of_day, format_timestamp, parse_timestamp
from ..errors import InternalInconsistencyError, ConsentStateError


class DocumentKey(Enum):
    """The closed set of documents a user must accept, in precedence order."""
    TANDC = "tandc"
    AUSE = "ause"
    DPRIV = "dpriv"

    @property
    def display_type(self) -> str:
        return DISPLAY_TYPES[self]

    @property
    def history_attribute(self) -> str:
        """Name of the user attribute holding the acceptance history."""
        return f"{self.value}_accepted"


DISPLAY_TYPES = {
    DocumentKey.TANDC: "Access Terms",
    DocumentKey.AUSE: "Acceptable Use Policy",
    DocumentKey.DPRIV: "Data Privacy Policy",
}

DOCUMENT_ORDER = (DocumentKey.TANDC, DocumentKey.AUSE, DocumentKey.DPRIV)


class AcceptedState(Enum):
    """Acceptance status of a document."""
    ACCEPTED = "accepted"
    NOT_ACCEPTED = "not_accepted"
    NEW_VERSION = "new_version"


def _format_optional(value: Optional[datetime]) -> Optional[str]:
    return format_timestamp(value) if value else None


def _parse_optional(value: Optional[str]) -> Optional[datetime]:
    return parse_timestamp(value) if value else None


@dataclass
class ConsentDocument:
    """
    One legal document and the user's acceptance of it.

    No timestamp may lie in the future: at construction ``version_date`` is
    truncated to midnight and clamped to today, ``last_accepted`` and
    ``started_at`` are clamped to now. ``started_at`` belongs to the current
    authentication attempt only and is never written to the user record.
    """
    key: str
    display_type: Optional[str]
    reference_link: Optional[str] = None
    version_date: Optional[datetime] = None
    last_accepted: Optional[datetime] = None
    required_seconds: int = 0
    started_at: Optional[datetime] = None
    now: InitVar[Optional[datetime]] = None

    def __post_init__(self, now: Optional[datetime]):
        if isinstance(self.key, DocumentKey):
            self.key = self.key.value

        now = now or get_current_time()

        if self.version_date is not None:
            self.version_date = start_of_day(self.version_date)
            if self.version_date > now:
                self.version_date = start_of_day(now)

        if self.last_accepted is not None and self.last_accepted > now:
            self.last_accepted = now

        if self.started_at is not None and self.started_at > now:
            self.started_at = now

        self.assert_sane()

    def assert_sane(self) -> None:
        """
        Validate the document.

        Raises:
            InternalInconsistencyError: if the key or required_seconds is invalid
        """
        if self.key is None or self.display_type is None:
            raise InternalInconsistencyError("key and display_type must be set")

        if not isinstance(self.required_seconds, int) or self.required_seconds < 0:
            raise InternalInconsistencyError(
                f"required_seconds must be a non-negative integer, got {self.required_seconds!r}"
            )

        if self.key not in {k.value for k in DocumentKey}:
            raise InternalInconsistencyError(
                f"key must be one of 'tandc', 'ause' or 'dpriv', got {self.key!r}",
                details={'key': self.key}
            )

    @property
    def document_key(self) -> DocumentKey:
        return DocumentKey(self.key)

    def status(self) -> AcceptedState:
        """Derive the acceptance status from the persisted fields."""
        if not self.display_type or not self.reference_link:
            # Not configured, so nothing to accept
            return AcceptedState.ACCEPTED

        if self.last_accepted is None:
            return AcceptedState.NOT_ACCEPTED

        if self.version_date is None:
            return AcceptedState.ACCEPTED

        if self.version_date > self.last_accepted:
            return AcceptedState.NEW_VERSION

        return AcceptedState.ACCEPTED

    def needs_accepting(self) -> bool:
        """Check if the user must (re-)accept this document."""
        return self.status() != AcceptedState.ACCEPTED

    def has_started(self) -> bool:
        """Check if the reading timer is running."""
        return self.started_at is not None

    def start(self, now: Optional[datetime] = None) -> None:
        """Start the reading timer."""
        self.started_at = now or get_current_time()

    def elapsed_seconds(self, now: Optional[datetime] = None) -> int:
        """Whole seconds since the reading timer started (0 if not started)."""
        if self.started_at is None:
            return 0
        now = now or get_current_time()
        return int((now - self.started_at).total_seconds())

    def accept(self, when: datetime) -> None:
        """Record acceptance at the given time."""
        self.last_accepted = when

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'key': self.key,
            'display_type': self.display_type,
            'reference_link': self.reference_link,
            'version_date': _format_optional(self.version_date),
            'last_accepted': _format_optional(self.last_accepted),
            'required_seconds': self.required_seconds,
            'started_at': _format_optional(self.started_at)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], now: Optional[datetime] = None) -> 'ConsentDocument':
        """
        Create from dictionary representation.

        Raises:
            InternalInconsistencyError: if the data is malformed
        """
        try:
            return cls(
                key=data['key'],
                display_type=data['display_type'],
                reference_link=data.get('reference_link'),
                version_date=_parse_optional(data.get('version_date')),
                last_accepted=_parse_optional(data.get('last_accepted')),
                required_seconds=data.get('required_seconds', 0),
                started_at=_parse_optional(data.get('started_at')),
                now=now
            )
        except InternalInconsistencyError:
            raise
        except (KeyError, TypeError, ValueError) as e:
            raise InternalInconsistencyError(f"Malformed consent document: {e}", cause=e)


class ConsentWorkflowState:
    """
    The ordered documents of one authentication attempt.

    Documents are cleared strictly in ``DOCUMENT_ORDER``. The state is
    carried between steps of the attempt as an opaque JSON string.
    """

    def __init__(self, tandc: ConsentDocument, ause: ConsentDocument, dpriv: ConsentDocument):
        self.tandc = tandc
        self.ause = ause
        self.dpriv = dpriv
        self.assert_sane()

    @property
    def documents(self) -> List[ConsentDocument]:
        """Documents in precedence order."""
        return [self.tandc, self.ause, self.dpriv]

    def assert_sane(self) -> None:
        """
        Validate that every slot holds the document of the same key.

        Raises:
            InternalInconsistencyError: if a slot is empty or holds the wrong document
        """
        for key, document in zip(DOCUMENT_ORDER, self.documents):
            if document is None:
                raise InternalInconsistencyError(f"Missing consent document {key.value}")
            document.assert_sane()
            if document.key != key.value:
                raise InternalInconsistencyError(
                    f"Consent document in slot {key.value} has key {document.key}",
                    details={'slot': key.value, 'key': document.key}
                )

    def document(self, key: DocumentKey) -> ConsentDocument:
        return getattr(self, key.value)

    def next_to_accept(self, now: Optional[datetime] = None) -> Optional[ConsentDocument]:
        """
        Get the first document that still needs accepting.

        Starts its reading timer unless it is already running.

        Returns:
            The document, or None when every document is satisfied
        """
        for document in self.documents:
            if document.needs_accepting():
                if not document.has_started():
                    document.start(now)
                return document
        return None

    def accept(self, document: ConsentDocument, when: datetime) -> None:
        """
        Mark the document with the same key as accepted.

        Raises:
            InternalInconsistencyError: if the document key is unknown
        """
        try:
            key = DocumentKey(document.key)
        except ValueError:
            raise InternalInconsistencyError(
                f"Unknown consent document {document.key!r}", details={'key': document.key}
            )
        self.document(key).accept(when)

    def statuses(self) -> Dict[str, AcceptedState]:
        """Acceptance status per document key."""
        return {document.key: document.status() for document in self.documents}

    def to_dict(self) -> Dict[str, Any]:
        return {document.key: document.to_dict() for document in self.documents}

    @classmethod
    def from_dict(cls, data: Dict[str, Any], now: Optional[datetime] = None) -> 'ConsentWorkflowState':
        """
        Create from dictionary representation.

        Raises:
            ConsentStateError: if the data is malformed
        """
        if not isinstance(data, dict):
            raise ConsentStateError(f"Consent state must be an object, got {type(data).__name__}")

        try:
            documents = {}
            for key in DOCUMENT_ORDER:
                entry = data.get(key.value)
                if not isinstance(entry, dict):
                    raise ConsentStateError(f"Consent state has no document {key.value}")
                documents[key.value] = ConsentDocument.from_dict(entry, now=now)
            return cls(**documents)
        except ConsentStateError:
            raise
        except InternalInconsistencyError as e:
            raise ConsentStateError(f"Malformed consent state: {e.message}", cause=e)

    def to_string(self) -> str:
        """Serialise to the opaque per-attempt blob."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_string(cls, value: Optional[str], now: Optional[datetime] = None) -> 'ConsentWorkflowState':
        """
        Restore from the opaque per-attempt blob.

        Raises:
            ConsentStateError: if the blob is missing or malformed
        """
        if not value:
            raise ConsentStateError("Consent state is missing")

        try:
            data = json.loads(value)
        except (TypeError, ValueError) as e:
            raise ConsentStateError(f"Consent state is not valid JSON: {e}", cause=e)

        return cls.from_dict(data, now=now)
