"""Permission store backends.

- ``MemoryPermissionStore`` — in-process dictionaries.
- ``RedisPermissionStore`` — shared state via ``redis.asyncio``.
- ``create_store()`` — pick a backend from ``AccessConfig.store_backend``.
"""

from __future__ import annotations

from typing import Optional

from ..config import AccessConfig, StoreBackend
from ..exceptions import ConfigurationError
from ..interfaces import PermissionStore
from .memory import MemoryPermissionStore
from .redis_store import RedisPermissionStore


def create_store(config: Optional[AccessConfig] = None) -> PermissionStore:
    """Create the permission store selected by ``config``.

    Raises:
        ConfigurationError: Redis backend selected without ``redis_url``.
    """
    config = config or AccessConfig()
    if config.store_backend == StoreBackend.REDIS:
        if not config.redis_url:
            raise ConfigurationError("store_backend=redis requires redis_url (REDIS_URL)")
        return RedisPermissionStore(redis_url=config.redis_url, key_prefix=config.redis_key_prefix)
    return MemoryPermissionStore()


__all__ = [
    "MemoryPermissionStore",
    "RedisPermissionStore",
    "create_store",
]
