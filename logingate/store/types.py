# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Storage types and interfaces for per-user attributes.
Defines the user snapshot and the attribute store abstraction the engines call through.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any
import copy


@dataclass
class UserRecord:
    """
    Snapshot of a user as read from an attribute store.

    Attributes are string-keyed lists of strings. A snapshot may be stale if
    it was served from a cache.
    """
    id: str
    username: str = ""
    email: Optional[str] = None
    groups: List[str] = field(default_factory=list)
    attributes: Dict[str, List[str]] = field(default_factory=dict)

    def get_attribute(self, key: str) -> Optional[List[str]]:
        """Get all values of an attribute, or None if it is not set."""
        values = self.attributes.get(key)
        return list(values) if values is not None else None

    def get_first_attribute(self, key: str) -> Optional[str]:
        """Get the first value of an attribute, or None."""
        values = self.attributes.get(key)
        if not values:
            return None
        return values[0]

    def copy(self) -> 'UserRecord':
        """Return a deep copy of this snapshot."""
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'groups': list(self.groups),
            'attributes': {k: list(v) for k, v in self.attributes.items()}
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UserRecord':
        """Create from dictionary representation."""
        return cls(
            id=data['id'],
            username=data.get('username', ''),
            email=data.get('email'),
            groups=list(data.get('groups', [])),
            attributes={k: list(v) for k, v in data.get('attributes', {}).items()}
        )


class StorageError(Exception):
    """Base class for storage-related errors."""

    def __init__(self, operation: str, key: str = "", message: str = "",
                 cause: Optional[Exception] = None):
        self.operation = operation
        self.key = key
        self.message = message
        self.cause = cause
        super().__init__(f"Storage error in {operation}: {message}")


class UserNotFoundError(StorageError):
    """Raised when a user is not present in the store."""
    pass


class AttributeStore(ABC):
    """
    Abstract per-user attribute store.

    Reads may be served from a cache and therefore be stale; writes go to
    durable storage. ``evict`` drops any cached copy of a user and ``reload``
    reads the user again from durable storage.
    """

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        """Get a snapshot of a user, possibly from a cache."""
        pass

    @abstractmethod
    async def set_attribute(self, user_id: str, key: str, values: List[str]) -> None:
        """Replace all values of an attribute."""
        pass

    @abstractmethod
    async def remove_attribute(self, user_id: str, key: str) -> None:
        """Remove an attribute entirely."""
        pass

    @abstractmethod
    async def evict(self, user_id: str) -> None:
        """Drop any cached copy of the user."""
        pass

    @abstractmethod
    async def reload(self, user_id: str) -> Optional[UserRecord]:
        """Read the user again from durable storage."""
        pass

    async def get_attribute(self, user_id: str, key: str) -> Optional[List[str]]:
        """Get all values of an attribute, or None if the user or attribute is absent."""
        user = await self.get_user(user_id)
        if user is None:
            return None
        return user.get_attribute(key)

    async def set_single_attribute(self, user_id: str, key: str, value: str) -> None:
        """Set an attribute to a single value."""
        await self.set_attribute(user_id, key, [value])

    async def close(self) -> None:
        """Close the store and release resources."""
        pass
