# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
In-memory attribute store implementation.
Provides a simple memory-based durable backend for development and testing.
"""

from typing import Dict, List, Optional
import logging
import threading

from .types import AttributeStore, UserRecord, UserNotFoundError


logger = logging.getLogger(__name__)


class MemoryAttributeStore(AttributeStore):
    """
    In-memory attribute store implementation.

    Every read returns a fresh copy, so this store is read-after-write
    consistent and ``evict`` has nothing to do.

    Note: All data is lost when the process terminates.
    """

    def __init__(self, users: Optional[List[UserRecord]] = None):
        # user_id -> UserRecord
        self._users: Dict[str, UserRecord] = {}

        # Thread lock for thread safety
        self._lock = threading.RLock()

        # Statistics
        self.write_count = 0
        self.evict_count = 0

        for user in users or []:
            self.add_user(user)

    def add_user(self, user: UserRecord) -> None:
        """Add or replace a user."""
        with self._lock:
            self._users[user.id] = user.copy()

    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        """Get a copy of a user."""
        with self._lock:
            user = self._users.get(user_id)
            return user.copy() if user else None

    async def set_attribute(self, user_id: str, key: str, values: List[str]) -> None:
        """Replace all values of an attribute."""
        with self._lock:
            user = self._require(user_id, "set_attribute")
            user.attributes[key] = list(values)
            self.write_count += 1

    async def remove_attribute(self, user_id: str, key: str) -> None:
        """Remove an attribute entirely."""
        with self._lock:
            user = self._require(user_id, "remove_attribute")
            if key in user.attributes:
                del user.attributes[key]
                self.write_count += 1

    async def evict(self, user_id: str) -> None:
        """Nothing is cached; only counted."""
        self.evict_count += 1

    async def reload(self, user_id: str) -> Optional[UserRecord]:
        """Read the user again."""
        return await self.get_user(user_id)

    def _require(self, user_id: str, operation: str) -> UserRecord:
        user = self._users.get(user_id)
        if user is None:
            raise UserNotFoundError(operation, user_id, "User not found")
        return user

    def stats(self) -> Dict[str, int]:
        """Get store statistics."""
        with self._lock:
            return {
                'users': len(self._users),
                'writes': self.write_count,
                'evictions': self.evict_count
            }
