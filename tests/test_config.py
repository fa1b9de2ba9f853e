"""Tests for AccessConfig."""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest
from contextaccess import AccessConfig, LogLevel, StoreBackend, load_access_config_from_env


class TestAccessConfig:
    """Tests for AccessConfig model."""

    def test_create_default_config(self) -> None:
        config = AccessConfig()
        assert config.log_level == LogLevel.INFO
        assert config.log_json is False
        assert config.store_backend == StoreBackend.MEMORY
        assert config.redis_url is None
        assert config.redis_key_prefix == "contextaccess"
        assert config.max_ancestor_depth == 16

    def test_create_custom_config(self) -> None:
        config = AccessConfig(
            log_level=LogLevel.DEBUG,
            log_json=True,
            store_backend=StoreBackend.REDIS,
            redis_url="redis://localhost:6379/0",
            redis_key_prefix="acl",
            max_ancestor_depth=4,
        )
        assert config.log_level == LogLevel.DEBUG
        assert config.log_json is True
        assert config.store_backend == StoreBackend.REDIS
        assert config.redis_url == "redis://localhost:6379/0"
        assert config.redis_key_prefix == "acl"
        assert config.max_ancestor_depth == 4

    def test_log_level_from_string(self) -> None:
        """Log level strings are case-insensitive."""
        assert AccessConfig(log_level="debug").log_level == LogLevel.DEBUG

    def test_log_level_invalid(self) -> None:
        with pytest.raises(ValueError, match="Invalid log level"):
            AccessConfig(log_level="INVALID")

    def test_store_backend_from_string(self) -> None:
        assert AccessConfig(store_backend=" Redis ").store_backend == StoreBackend.REDIS

    def test_store_backend_invalid(self) -> None:
        with pytest.raises(ValueError):
            AccessConfig(store_backend="mongo")

    def test_redis_url_validation_valid(self) -> None:
        valid_urls = [
            "redis://localhost:6379/0",
            "rediss://localhost:6379/0",
            "unix:///tmp/redis.sock",
        ]
        for url in valid_urls:
            config = AccessConfig(redis_url=url)
            assert config.redis_url == url

    def test_redis_url_validation_invalid(self) -> None:
        invalid_urls = [
            "http://localhost:6379",
            "invalid://localhost:6379",
            "localhost:6379",
        ]
        for url in invalid_urls:
            with pytest.raises(ValueError, match="Redis URL must start with"):
                AccessConfig(redis_url=url)

    def test_ancestor_depth_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            AccessConfig(max_ancestor_depth=0)

    def test_empty_key_prefix_rejected(self) -> None:
        with pytest.raises(ValueError):
            AccessConfig(redis_key_prefix="")

    def test_extra_fields_forbidden(self) -> None:
        with pytest.raises(Exception):  # Pydantic validation error
            AccessConfig(extra_field="value")  # type: ignore[call-arg]


class TestLoadAccessConfigFromEnv:
    """Tests for load_access_config_from_env function."""

    @patch.dict(os.environ, {}, clear=True)
    def test_load_defaults(self) -> None:
        config = load_access_config_from_env()
        assert config == AccessConfig()

    @patch.dict(
        os.environ,
        {
            "LOG_LEVEL": "DEBUG",
            "LOG_JSON": "true",
            "ACCESS_STORE_BACKEND": "redis",
            "REDIS_URL": "redis://localhost:6379/0",
            "ACCESS_REDIS_PREFIX": "acl",
            "ACCESS_MAX_ANCESTOR_DEPTH": "3",
        },
        clear=True,
    )
    def test_load_from_env(self) -> None:
        config = load_access_config_from_env()
        assert config.log_level == LogLevel.DEBUG
        assert config.log_json is True
        assert config.store_backend == StoreBackend.REDIS
        assert config.redis_url == "redis://localhost:6379/0"
        assert config.redis_key_prefix == "acl"
        assert config.max_ancestor_depth == 3

    def test_log_json_variants(self) -> None:
        for value in ("true", "1", "yes"):
            with patch.dict(os.environ, {"LOG_JSON": value}, clear=True):
                assert load_access_config_from_env().log_json is True
        with patch.dict(os.environ, {"LOG_JSON": "off"}, clear=True):
            assert load_access_config_from_env().log_json is False
