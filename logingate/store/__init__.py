# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Package store implements per-user attribute storage for the login gate.
"""

from .types import (
    UserRecord,
    AttributeStore,
    StorageError,
    UserNotFoundError,
)

from .memory import MemoryAttributeStore
from .redis_cache import RedisCachedAttributeStore

from .commit import (
    record_accepted,
    AcceptanceCommitter,
    DirectCommitter,
    EvictAndReloadCommitter,
)

__all__ = [
    # Types
    'UserRecord',
    'AttributeStore',
    'StorageError',
    'UserNotFoundError',

    # Backends
    'MemoryAttributeStore',
    'RedisCachedAttributeStore',

    # Commit strategies
    'record_accepted',
    'AcceptanceCommitter',
    'DirectCommitter',
    'EvictAndReloadCommitter',
]
