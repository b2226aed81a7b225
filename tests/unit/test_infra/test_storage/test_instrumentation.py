"""Unit tests for operation tracing and metrics."""

import asyncio

import pytest

from s3_service.infra.storage import StorageFileNotFoundError
from s3_service.infra.storage.instrumentation import traced_operation
from s3_service.infra.storage.metrics import REGISTRY


def _sample(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0


@pytest.mark.unit
class TestTracedOperation:
    """Test metrics recorded per outcome."""

    @pytest.mark.asyncio
    async def test_success(self):
        labels = {"operation": "put_object", "log_scope": "instr-ok"}

        async with traced_operation(
            "put_object", log_scope="instr-ok", bucket="data", key="a", upload_size=2048
        ):
            pass

        assert _sample("s3_client_operations_total", **labels, outcome="ok") == 1
        assert _sample("s3_client_operation_seconds_count", **labels) == 1
        assert _sample("s3_client_upload_bytes_sum", log_scope="instr-ok") == 2048
        assert _sample("s3_client_operations_in_flight", log_scope="instr-ok") == 0

    @pytest.mark.asyncio
    async def test_storage_error_counted_by_code(self):
        with pytest.raises(StorageFileNotFoundError):
            async with traced_operation("get_object", log_scope="instr-err", bucket="data"):
                raise StorageFileNotFoundError()

        assert _sample(
            "s3_client_errors_total",
            operation="get_object",
            log_scope="instr-err",
            error_code="STORAGE_NOT_FOUND",
        ) == 1
        assert _sample(
            "s3_client_operations_total",
            operation="get_object",
            log_scope="instr-err",
            outcome="error",
        ) == 1

    @pytest.mark.asyncio
    async def test_other_error_counted_by_class(self):
        with pytest.raises(KeyError):
            async with traced_operation("list_objects", log_scope="instr-key", bucket="data"):
                raise KeyError("Contents")

        assert _sample(
            "s3_client_errors_total",
            operation="list_objects",
            log_scope="instr-key",
            error_code="KeyError",
        ) == 1

    @pytest.mark.asyncio
    async def test_cancellation_only_releases_gauge(self):
        with pytest.raises(asyncio.CancelledError):
            async with traced_operation("head_bucket", log_scope="instr-cancel", bucket="data"):
                raise asyncio.CancelledError()

        assert _sample("s3_client_operations_in_flight", log_scope="instr-cancel") == 0
        assert _sample(
            "s3_client_operations_total",
            operation="head_bucket",
            log_scope="instr-cancel",
            outcome="error",
        ) == 0
