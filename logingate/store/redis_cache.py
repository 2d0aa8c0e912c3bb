# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Redis read-through cache in front of a durable attribute store.

User snapshots are cached as JSON with a TTL. Writes go to the durable store
and then drop the cached snapshot, so the next read sees them. A write made
to the durable store by someone else is only seen once the snapshot is
evicted or expires; acceptance commits evict and reload for that reason
(see ``logingate.store.commit``).
"""

import json
import logging
from typing import Any, List, Optional

import redis.asyncio as redis

from .types import AttributeStore, UserRecord, StorageError


logger = logging.getLogger(__name__)


class RedisCachedAttributeStore(AttributeStore):
    """Redis-backed read-through cache of user snapshots."""

    def __init__(self,
                 backing: AttributeStore,
                 redis_client: Any = None,
                 redis_url: Optional[str] = None,
                 key_prefix: str = "logingate:user:",
                 ttl_seconds: int = 300):
        """
        Initialize the cached store.

        Args:
            backing: Durable store that owns the data
            redis_client: Redis client instance (created from redis_url if None)
            redis_url: Redis connection URL
            key_prefix: Prefix for Redis keys
            ttl_seconds: Lifetime of a cached snapshot
        """
        self.backing = backing
        self.redis_client = redis_client
        self.key_prefix = key_prefix
        self.ttl_seconds = ttl_seconds

        if self.redis_client is None:
            if redis_url:
                self.redis_client = redis.from_url(redis_url, decode_responses=True)
            else:
                self.redis_client = redis.Redis(decode_responses=True)

    def _get_key(self, user_id: str) -> str:
        """Generate Redis key for a user."""
        return f"{self.key_prefix}{user_id}"

    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        """Get a user from the cache, reading through to the durable store on a miss."""
        key = self._get_key(user_id)

        try:
            cached = await self.redis_client.get(key)
        except Exception as e:
            raise StorageError("get_user", user_id, f"Failed to read cache: {e}", e)

        if cached is not None:
            try:
                return UserRecord.from_dict(json.loads(cached))
            except (ValueError, KeyError, TypeError) as e:
                logger.warning(f"Discarding undecodable cache entry for user {user_id}: {e}")
                await self.evict(user_id)

        user = await self.backing.get_user(user_id)
        if user is None:
            return None

        try:
            await self.redis_client.set(key, json.dumps(user.to_dict()), ex=self.ttl_seconds)
        except Exception as e:
            raise StorageError("get_user", user_id, f"Failed to populate cache: {e}", e)

        return user

    async def set_attribute(self, user_id: str, key: str, values: List[str]) -> None:
        """Write to the durable store and drop the cached snapshot."""
        await self.backing.set_attribute(user_id, key, values)
        await self._invalidate(user_id, "set_attribute")

    async def remove_attribute(self, user_id: str, key: str) -> None:
        """Remove from the durable store and drop the cached snapshot."""
        await self.backing.remove_attribute(user_id, key)
        await self._invalidate(user_id, "remove_attribute")

    async def evict(self, user_id: str) -> None:
        """Drop the cached snapshot."""
        await self._invalidate(user_id, "evict")
        await self.backing.evict(user_id)

    async def _invalidate(self, user_id: str, operation: str) -> None:
        try:
            await self.redis_client.delete(self._get_key(user_id))
        except Exception as e:
            raise StorageError(operation, user_id, f"Failed to evict cache entry: {e}", e)

    async def reload(self, user_id: str) -> Optional[UserRecord]:
        """Read the user from the durable store, bypassing the cache."""
        return await self.backing.reload(user_id)

    async def close(self) -> None:
        """Close the Redis connection."""
        await self.redis_client.aclose()
        await self.backing.close()
        logger.info("Closed Redis attribute cache")
