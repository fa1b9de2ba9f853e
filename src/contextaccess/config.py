"""Configuration contract for contextaccess.

Pydantic-validated settings for the authorization engine and its storage
backends. Hosts either build an ``AccessConfig`` directly or load it from the
environment with :func:`load_access_config_from_env`; no other module reads
``os.environ``.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class LogLevel(str, Enum):
    """Standard log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class StoreBackend(str, Enum):
    """Supported permission store backends.

    - MEMORY: In-process dictionaries (tests, single-process apps)
    - REDIS: Shared assignments via redis.asyncio
    """

    MEMORY = "memory"
    REDIS = "redis"


class AccessConfig(BaseModel):
    """Settings for an AuthorizationEngine and its permission store."""

    # Logging
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level",
    )
    log_json: bool = Field(
        default=False,
        description="Use JSON log format (default: plain text)",
    )

    # Storage
    store_backend: StoreBackend = Field(
        default=StoreBackend.MEMORY,
        description="Permission store backend: memory or redis",
    )
    redis_url: Optional[str] = Field(
        default=None,
        description="Redis connection URL (e.g., redis://localhost:6379/0)",
    )
    redis_key_prefix: str = Field(
        default="contextaccess",
        min_length=1,
        description="Prefix for every key written by RedisPermissionStore",
    )

    # Decision limits
    max_ancestor_depth: int = Field(
        default=16,
        ge=1,
        description="Maximum number of ancestor-entity hops in one decision",
    )

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate Redis URL format."""
        if v is None:
            return v
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("Redis URL must start with redis://, rediss://, or unix://")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Convert string to LogLevel enum."""
        if isinstance(v, LogLevel):
            return v
        if isinstance(v, str):
            try:
                return LogLevel[v.upper()]
            except KeyError:
                raise ValueError(f"Invalid log level: {v}. Must be one of {[e.value for e in LogLevel]}")
        raise ValueError(f"Log level must be string or LogLevel enum, got {type(v)}")

    @field_validator("store_backend", mode="before")
    @classmethod
    def validate_store_backend(cls, v: str | StoreBackend) -> StoreBackend:
        if isinstance(v, str) and not isinstance(v, StoreBackend):
            return StoreBackend(v.strip().lower())
        return v

    model_config = {
        "extra": "forbid",
    }


def load_access_config_from_env() -> AccessConfig:
    """Load configuration from environment variables.

    This is the ONLY place where os.getenv is allowed.

    Environment variables:
    - LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - LOG_JSON: Use JSON log format (true/false, default: false)
    - ACCESS_STORE_BACKEND: memory | redis
    - REDIS_URL: Redis connection URL
    - ACCESS_REDIS_PREFIX: Key prefix for the Redis store
    - ACCESS_MAX_ANCESTOR_DEPTH: Ancestor delegation depth limit

    Returns:
        AccessConfig instance with values from environment or defaults.
    """
    import os

    return AccessConfig(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_json=os.getenv("LOG_JSON", "false").lower() in ("true", "1", "yes"),
        store_backend=os.getenv("ACCESS_STORE_BACKEND", "memory"),
        redis_url=os.getenv("REDIS_URL"),
        redis_key_prefix=os.getenv("ACCESS_REDIS_PREFIX", "contextaccess"),
        max_ancestor_depth=int(os.getenv("ACCESS_MAX_ANCESTOR_DEPTH", "16")),
    )


__all__ = [
    "AccessConfig",
    "LogLevel",
    "StoreBackend",
    "load_access_config_from_env",
]
