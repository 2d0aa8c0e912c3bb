# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Committing consent acceptances to an attribute store.

An acceptance is appended to a history attribute only if the exact same
timestamp string is not already present, so every commit is idempotent.
How the write is made visible to later reads is a strategy:

  - DirectCommitter: one write, for read-after-write consistent stores
  - EvictAndReloadCommitter: write, evict the cached user, reload it from
    durable storage and write again
"""

from abc import ABC, abstractmethod
import logging

from .types import AttributeStore, UserRecord, StorageError


logger = logging.getLogger(__name__)


async def record_accepted(store: AttributeStore, user: UserRecord, attribute: str, value: str) -> bool:
    """
    Append value to the user's history attribute unless it is already there.

    The user snapshot is updated in place to match what was written.

    Returns:
        bool: True if a write was made
    """
    history = user.get_attribute(attribute) or []

    if value in history:
        return False

    history.append(value)
    await store.set_attribute(user.id, attribute, history)
    user.attributes[attribute] = list(history)
    return True


class AcceptanceCommitter(ABC):
    """Strategy for durably recording an acceptance."""

    @abstractmethod
    async def commit(self, store: AttributeStore, user: UserRecord, attribute: str, value: str) -> UserRecord:
        """
        Record value in the user's history attribute.

        Returns:
            UserRecord: The freshest snapshot of the user after the commit
        """
        pass


class DirectCommitter(AcceptanceCommitter):
    """Single append, for stores without a stale read path."""

    async def commit(self, store: AttributeStore, user: UserRecord, attribute: str, value: str) -> UserRecord:
        await record_accepted(store, user, attribute, value)
        return user


class EvictAndReloadCommitter(AcceptanceCommitter):
    """
    Append, evict the user from any cache, reload from durable storage and
    append again.

    The second append is a no-op when the first write is already visible in
    the reloaded user.
    """

    async def commit(self, store: AttributeStore, user: UserRecord, attribute: str, value: str) -> UserRecord:
        await record_accepted(store, user, attribute, value)
        await store.evict(user.id)

        fresh = await store.reload(user.id)
        if fresh is None:
            raise StorageError("commit", user.id, "User disappeared while recording acceptance")

        if await record_accepted(store, fresh, attribute, value):
            logger.info(f"Re-recorded {attribute}={value} for user {user.id} after reload")

        return fresh
