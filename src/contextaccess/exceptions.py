"""Exception hierarchy for contextaccess.

All errors inherit from ContextAccessError. This module provides:
- Base exception hierarchy with stable error codes
- ErrorRegistry for protocol mapping
- gRPC status mapping and a handler decorator for host services

Usage in host services:
    from contextaccess.exceptions import (
        AccessDeniedError,
        ConfigurationError,
        grpc_error_handler,
    )

Two kinds of failure matter to callers:
- ``ConfigurationError`` signals a setup defect (unknown operation, broken
  profile, malformed override). It is raised at the point of use and never
  retried.
- ``AccessDeniedError`` is raised only by ``AuthorizationEngine.test``; a
  plain denial from ``is_allowed`` is a ``False`` return.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable, TypeVar, cast

__all__ = [
    # Base hierarchy
    "ContextAccessError",
    "ConfigurationError",
    "AccessDeniedError",
    "ProviderError",
    "StorageError",
    # Registry
    "ErrorRegistry",
    "error_registry",
    "register_error",
    # gRPC helpers
    "get_grpc_status_code",
    "grpc_error_handler",
]

logger = logging.getLogger(__name__)


# ---- Exception Hierarchy ----------------------------------------------------


class ContextAccessError(Exception):
    """Base exception for contextaccess.

    Attributes:
        code: Stable error code string for protocol mapping (e.g. "PERMISSION_DENIED").
        message: Human-readable error description.
        details: Additional context as keyword arguments.
    """

    code: str = "INTERNAL_ERROR"
    message: str = "An internal error occurred"

    def __init__(self, message: str | None = None, code: str | None = None, **kwargs: Any) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.details = kwargs
        super().__init__(self.message)


class ConfigurationError(ContextAccessError):
    """Invalid authorization setup (taxonomy, profile, role or override)."""

    code: str = "CONFIGURATION_ERROR"


class AccessDeniedError(ContextAccessError):
    """An actor attempted an operation it is not allowed to perform.

    Carries the decision inputs for audit logging.
    """

    code: str = "PERMISSION_DENIED"

    def __init__(
        self,
        actor_id: Any,
        operation: str,
        entity_id: Any,
        context: Any = None,
        message: str | None = None,
    ) -> None:
        self.actor_id = actor_id
        self.operation = operation
        self.entity_id = entity_id
        self.context = context
        if message is None:
            message = f"{actor_id} attempted unprivileged operation {operation} on {entity_id}"
            if context is not None:
                message += f" with {context!r}"
        super().__init__(
            message,
            actor_id=actor_id,
            operation=operation,
            entity_id=entity_id,
            context=context,
        )


class ProviderError(ContextAccessError):
    """Storage/Provider layer failure."""

    code: str = "PROVIDER_ERROR"


class StorageError(ProviderError):
    """Specific error for permission store operations."""

    code: str = "STORAGE_ERROR"


# ---- Error Registry for Protocol Mapping ------------------------------------

_E = TypeVar("_E", bound=type[ContextAccessError])


class ErrorRegistry:
    """Registry for mapping internal errors to external protocol codes."""

    def __init__(self) -> None:
        self._errors: dict[str, type[ContextAccessError]] = {}

    def register(self, code: str, error_cls: type[ContextAccessError]) -> None:
        self._errors[code] = error_cls

    def get(self, code: str) -> type[ContextAccessError] | None:
        return self._errors.get(code)

    def all(self) -> dict[str, type[ContextAccessError]]:
        return dict(self._errors)


error_registry = ErrorRegistry()


def register_error(code: str) -> Callable[[_E], _E]:
    """Decorator to register a custom error type.

    Usage:
        @register_error("TENANT_MISMATCH")
        class TenantMismatchError(ContextAccessError):
            code = "TENANT_MISMATCH"
    """

    def decorator(cls: _E) -> _E:
        error_registry.register(code, cls)
        return cls

    return cast(Callable[[_E], _E], decorator)


# Register base errors
error_registry.register("INTERNAL_ERROR", ContextAccessError)
error_registry.register("CONFIGURATION_ERROR", ConfigurationError)
error_registry.register("PERMISSION_DENIED", AccessDeniedError)
error_registry.register("PROVIDER_ERROR", ProviderError)
error_registry.register("STORAGE_ERROR", StorageError)


# ---- gRPC Error Handling Utilities ------------------------------------------


def get_grpc_status_code(error: ContextAccessError) -> Any:
    """Map ContextAccessError to gRPC status code.

    Returns grpc.StatusCode value for the given error type.
    Import grpc locally to avoid hard dependency at module level.
    """
    import grpc

    error_to_status = {
        "PERMISSION_DENIED": grpc.StatusCode.PERMISSION_DENIED,
        "CONFIGURATION_ERROR": grpc.StatusCode.FAILED_PRECONDITION,
        "PROVIDER_ERROR": grpc.StatusCode.UNAVAILABLE,
        "STORAGE_ERROR": grpc.StatusCode.UNAVAILABLE,
    }
    return error_to_status.get(error.code, grpc.StatusCode.INTERNAL)


def grpc_error_handler(method):
    """Decorator for unary gRPC service methods that call the engine.

    Catches ContextAccessError (typically ``AccessDeniedError`` raised by
    ``AuthorizationEngine.test``) and aborts the call with the mapped status.

    Usage:
        @grpc_error_handler
        async def GetDocument(self, request, context):
            await engine.test(actor, "ReadDeep", document)
            ...
    """

    @functools.wraps(method)
    async def wrapper(self, request, context):
        try:
            return await method(self, request, context)
        except ContextAccessError as e:
            status_code = get_grpc_status_code(e)
            error_message = f"[{e.code}] {e.message}"

            log = logger.warning if isinstance(e, AccessDeniedError) else logger.error
            log(
                "%s failed: %s",
                method.__name__,
                error_message,
                extra={
                    "error_code": e.code,
                    "error_details": e.details,
                },
            )

            context.set_trailing_metadata([("error-code", e.code)])
            await context.abort(status_code, error_message)
            return

        except Exception as e:
            import grpc

            logger.exception("%s unexpected error: %s", method.__name__, e)
            await context.abort(
                grpc.StatusCode.INTERNAL,
                f"Unexpected {type(e)}: {e}",
            )
            return

    return wrapper
