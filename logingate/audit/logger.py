"""
Audit logging of login gate decisions.

Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any
from datetime import datetime
import asyncio
import json
import logging
from collections import deque

from ..common.utils import generate_id, get_current_time


logger = logging.getLogger(__name__)

LOGIN_ALLOWED = "login_allowed"
LOGIN_DENIED = "login_denied"
LOGIN_ERROR = "login_error"
CONSENT_REQUIRED = "consent_required"
CONSENT_ACCEPTED = "consent_accepted"
CONSENT_REJECTED = "consent_rejected"
CONSENT_CANCELLED = "consent_cancelled"


@dataclass
class LoginEvent:
    """One audited step of a login attempt"""
    event_type: str
    user_id: str
    email: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    event_id: str = field(default_factory=lambda: generate_id("evt_"))
    timestamp: datetime = field(default_factory=get_current_time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "user_id": self.user_id,
            "email": self.email,
            "timestamp": self.timestamp.isoformat(),
            "details": self.details,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoginEvent":
        return cls(
            event_id=data["event_id"],
            event_type=data["event_type"],
            user_id=data["user_id"],
            email=data.get("email"),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            details=data.get("details") or {},
        )


def _matches(event: LoginEvent,
             user_id: Optional[str],
             event_type: Optional[str],
             start_time: Optional[datetime],
             end_time: Optional[datetime]) -> bool:
    if user_id and event.user_id != user_id:
        return False
    if event_type and event.event_type != event_type:
        return False
    if start_time and event.timestamp < start_time:
        return False
    if end_time and event.timestamp > end_time:
        return False
    return True


class AuditLogger(ABC):
    """Abstract base class for audit logging"""

    @abstractmethod
    async def log(self, event: LoginEvent) -> None:
        """Log an audit event"""
        pass

    @abstractmethod
    async def get_events(
        self,
        user_id: Optional[str] = None,
        event_type: Optional[str] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ) -> List[LoginEvent]:
        """Retrieve audit events with optional filtering"""
        pass

    async def close(self) -> None:
        """Close the audit logger and release resources"""
        pass


class MemoryAuditLogger(AuditLogger):
    """In-memory audit logger for development and testing"""

    def __init__(self, max_entries: int = 1000):
        self.max_entries = max_entries
        self.events: deque = deque(maxlen=max_entries)
        self._lock = asyncio.Lock()

    async def log(self, event: LoginEvent) -> None:
        async with self._lock:
            self.events.append(event)

    async def get_events(
        self,
        user_id: Optional[str] = None,
        event_type: Optional[str] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ) -> List[LoginEvent]:
        async with self._lock:
            return [
                event for event in self.events
                if _matches(event, user_id, event_type, start_time, end_time)
            ]


class FileAuditLogger(AuditLogger):
    """Audit logger writing one JSON object per line"""

    def __init__(self, file_path: str):
        self.file_path = file_path
        self._lock = asyncio.Lock()

    async def log(self, event: LoginEvent) -> None:
        async with self._lock:
            try:
                with open(self.file_path, "a") as f:
                    f.write(json.dumps(event.to_dict()) + "\n")
            except OSError as e:
                logger.error(f"Failed to write audit log {self.file_path}: {e}")

    async def get_events(
        self,
        user_id: Optional[str] = None,
        event_type: Optional[str] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ) -> List[LoginEvent]:
        events = []

        try:
            with open(self.file_path, "r") as f:
                for line in f:
                    try:
                        event = LoginEvent.from_dict(json.loads(line.strip()))
                    except (ValueError, KeyError) as e:
                        logger.warning(f"Skipping malformed audit line: {e}")
                        continue

                    if _matches(event, user_id, event_type, start_time, end_time):
                        events.append(event)

        except FileNotFoundError:
            pass

        return events


def create_audit_logger(logger_type: str = "memory", **kwargs) -> AuditLogger:
    """
    Factory function to create audit loggers

    Args:
        logger_type: Type of logger ("memory" or "file")
        **kwargs: Additional arguments for the logger

    Returns:
        AuditLogger instance
    """
    if logger_type == "memory":
        return MemoryAuditLogger(kwargs.get("max_entries", 1000))
    elif logger_type == "file":
        return FileAuditLogger(kwargs.get("file_path", "audit.log"))
    else:
        raise ValueError(f"Unknown logger type: {logger_type}")
