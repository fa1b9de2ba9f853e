"""Tests for the exception hierarchy and gRPC error mapping."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import grpc
import pytest

from contextaccess import (
    AccessDeniedError,
    ConfigurationError,
    ContextAccessError,
    ProviderError,
    StorageError,
)
from contextaccess.exceptions import (
    error_registry,
    get_grpc_status_code,
    grpc_error_handler,
    register_error,
)


class TestErrorHierarchy:
    """Tests for error classes."""

    def test_default_message_and_code(self) -> None:
        error = ContextAccessError()
        assert error.code == "INTERNAL_ERROR"
        assert error.message == "An internal error occurred"
        assert error.details == {}

    def test_details_from_kwargs(self) -> None:
        error = ConfigurationError("Operation Fly is not defined", operation="Fly")
        assert error.code == "CONFIGURATION_ERROR"
        assert error.details == {"operation": "Fly"}
        assert str(error) == "Operation Fly is not defined"

    def test_access_denied_message(self) -> None:
        error = AccessDeniedError(actor_id="1", operation="Sell", entity_id="w1")
        assert error.message == "1 attempted unprivileged operation Sell on w1"
        assert error.details["context"] is None

    def test_access_denied_message_with_context(self) -> None:
        error = AccessDeniedError(actor_id="1", operation="Sell", entity_id="w1", context="night")
        assert error.message.endswith("with 'night'")

    def test_storage_error_is_provider_error(self) -> None:
        assert issubclass(StorageError, ProviderError)
        assert StorageError().code == "STORAGE_ERROR"


class TestErrorRegistry:
    """Tests for the error registry."""

    def test_base_errors_registered(self) -> None:
        registered = error_registry.all()
        assert registered["PERMISSION_DENIED"] is AccessDeniedError
        assert registered["CONFIGURATION_ERROR"] is ConfigurationError
        assert registered["STORAGE_ERROR"] is StorageError

    def test_register_custom_error(self) -> None:
        @register_error("TENANT_MISMATCH")
        class TenantMismatchError(ContextAccessError):
            code = "TENANT_MISMATCH"

        assert error_registry.get("TENANT_MISMATCH") is TenantMismatchError
        assert error_registry.get("UNKNOWN_CODE") is None


class TestGrpcMapping:
    """Tests for gRPC status mapping."""

    @pytest.mark.parametrize(
        ("error", "status"),
        [
            (AccessDeniedError("1", "Sell", "w1"), grpc.StatusCode.PERMISSION_DENIED),
            (ConfigurationError("bad profile"), grpc.StatusCode.FAILED_PRECONDITION),
            (ProviderError(), grpc.StatusCode.UNAVAILABLE),
            (StorageError(), grpc.StatusCode.UNAVAILABLE),
            (ContextAccessError(), grpc.StatusCode.INTERNAL),
        ],
    )
    def test_status_codes(self, error, status) -> None:
        assert get_grpc_status_code(error) == status


def make_grpc_context() -> MagicMock:
    context = MagicMock()
    context.abort = AsyncMock()
    return context


class Service:
    @grpc_error_handler
    async def GetDocument(self, request, context):
        if request == "deny":
            raise AccessDeniedError(actor_id="1", operation="ReadDeep", entity_id="doc")
        if request == "boom":
            raise RuntimeError("store exploded")
        return "document"


class TestGrpcErrorHandler:
    """Tests for the grpc_error_handler decorator."""

    @pytest.mark.asyncio
    async def test_passes_through_result(self) -> None:
        context = make_grpc_context()
        assert await Service().GetDocument("ok", context) == "document"
        context.abort.assert_not_called()

    @pytest.mark.asyncio
    async def test_access_denied_aborts(self) -> None:
        context = make_grpc_context()
        await Service().GetDocument("deny", context)

        context.set_trailing_metadata.assert_called_once_with([("error-code", "PERMISSION_DENIED")])
        status, message = context.abort.await_args.args
        assert status == grpc.StatusCode.PERMISSION_DENIED
        assert message.startswith("[PERMISSION_DENIED] 1 attempted unprivileged operation ReadDeep")

    @pytest.mark.asyncio
    async def test_unexpected_error_aborts_internal(self) -> None:
        context = make_grpc_context()
        await Service().GetDocument("boom", context)

        status, message = context.abort.await_args.args
        assert status == grpc.StatusCode.INTERNAL
        assert "store exploded" in message

    def test_preserves_method_name(self) -> None:
        assert Service.GetDocument.__name__ == "GetDocument"
