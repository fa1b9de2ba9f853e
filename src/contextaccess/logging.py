"""Logging utilities for authorization decisions.

This module provides:
- Logging configuration from AccessConfig
- Safe preview utility for opaque decision context values
- Structured decision logging (actor_id / operation / entity_id)
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from .config import AccessConfig, LogLevel

# Record attributes added by DecisionLoggerAdapter
DECISION_FIELDS = ("actor_id", "operation", "entity_id")

_STANDARD_RECORD_FIELDS = frozenset(
    {
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "message", "pathname", "process", "processName", "relativeCreated",
        "thread", "threadName", "exc_info", "exc_text", "stack_info",
        "taskName",
    }
)


def safe_preview(value: Any, limit: int = 240) -> str:
    """Create a safe, length-bounded single-line preview of a value.

    Decision contexts are opaque host objects, so anything logged about them
    goes through here first.

    Args:
        value: The value to preview (any type)
        limit: Maximum length of the preview (default: 240)

    Returns:
        A truncated string representation
    """
    if value is None:
        return ""

    if isinstance(value, str):
        s = value
    elif isinstance(value, (dict, list)):
        try:
            s = json.dumps(value, default=str, ensure_ascii=False)
        except (TypeError, ValueError):
            s = str(value)
    else:
        s = str(value)

    s = " ".join(s.split())

    if len(s) > limit:
        return s[: limit - 1] + "…"

    return s


class DecisionFormatter(logging.Formatter):
    """Formatter that surfaces decision fields, as JSON or plain text."""

    def __init__(self, json_format: bool = True, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.json_format = json_format

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in DECISION_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_data[key] = str(value)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _STANDARD_RECORD_FIELDS or key in DECISION_FIELDS:
                continue
            log_data[key] = safe_preview(value)

        if self.json_format:
            return json.dumps(log_data, default=str, ensure_ascii=False)

        parts = [
            f"[{log_data['timestamp']}]",
            log_data["level"],
            log_data["logger"],
        ]
        parts.extend(f"{key}={log_data[key]}" for key in DECISION_FIELDS if key in log_data)
        parts.append(f": {log_data['message']}")
        if "exception" in log_data:
            parts.append("\n" + log_data["exception"])
        return " ".join(parts)


class DecisionLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds actor_id, operation and entity_id to records.

    Usage:
        logger = get_decision_logger(__name__)
        logger.info("Role assigned", actor_id=actor.id, entity_id=entity.id)
    """

    def __init__(self, logger: logging.Logger, actor_id: Any = None):
        super().__init__(logger, {})
        self.actor_id = actor_id

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        fields = {
            "actor_id": kwargs.pop("actor_id", self.actor_id),
            "operation": kwargs.pop("operation", None),
            "entity_id": kwargs.pop("entity_id", None),
        }
        extra = dict(kwargs.get("extra") or {})
        for key, value in fields.items():
            if value is not None:
                extra[key] = value
        kwargs["extra"] = extra
        return msg, kwargs


def setup_logging(
    config: Optional[AccessConfig] = None,
    json_format: Optional[bool] = None,
) -> None:
    """Configure the root logger from AccessConfig.

    Args:
        config: AccessConfig instance (if None, loads from environment)
        json_format: Override ``config.log_json``
    """
    if config is None:
        from .config import load_access_config_from_env

        config = load_access_config_from_env()

    level_map = {
        LogLevel.DEBUG: logging.DEBUG,
        LogLevel.INFO: logging.INFO,
        LogLevel.WARNING: logging.WARNING,
        LogLevel.ERROR: logging.ERROR,
        LogLevel.CRITICAL: logging.CRITICAL,
    }
    log_level = level_map.get(config.log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        DecisionFormatter(json_format=config.log_json if json_format is None else json_format)
    )
    root_logger.addHandler(console_handler)


def get_decision_logger(name: str, actor_id: Any = None) -> DecisionLoggerAdapter:
    """Get a logger adapter that carries decision fields.

    Args:
        name: Logger name (typically __name__)
        actor_id: Optional actor id to include in all records

    Returns:
        DecisionLoggerAdapter instance
    """
    return DecisionLoggerAdapter(logging.getLogger(name), actor_id=actor_id)


__all__ = [
    "DecisionFormatter",
    "DecisionLoggerAdapter",
    "get_decision_logger",
    "safe_preview",
    "setup_logging",
]
