"""Tracing and metrics around S3 client operations.

``traced_operation`` wraps a single backend call of S3Client. It opens an
OpenTelemetry span named ``s3.<operation>`` and feeds the Prometheus
metrics in :mod:`.metrics`. Without a configured tracer provider the span
is a no-op.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from . import metrics

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from opentelemetry.trace import Span

_tracer = trace.get_tracer("s3_service.storage")


@asynccontextmanager
async def traced_operation(
    operation: str,
    *,
    log_scope: str,
    bucket: str,
    key: str | None = None,
    upload_size: int | None = None,
) -> AsyncIterator[Span]:
    """Trace one backend call and record its outcome.

    The span is yielded so the caller can attach result attributes such as
    the ETag. Errors are counted under their StorageError ``code`` when they
    carry one, otherwise under the exception class name. Task cancellation
    is neither an error nor a success and only releases the in-flight gauge.

    Example:
        async with traced_operation("put_object", log_scope="uploads", bucket=b, key=k) as span:
            response = await client.put_object(...)
            span.set_attribute("s3.etag", response["ETag"])
    """
    attributes: dict[str, str | int] = {
        "s3.operation": operation,
        "s3.log_scope": log_scope,
        "s3.bucket": bucket,
    }
    if key is not None:
        attributes["s3.key"] = key
    if upload_size is not None:
        attributes["s3.upload_size"] = upload_size

    gauge = metrics.in_flight.labels(log_scope=log_scope)
    gauge.inc()
    started = time.perf_counter()

    with _tracer.start_as_current_span(
        f"s3.{operation}",
        attributes=attributes,
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        try:
            yield span
        except Exception as e:
            error_code = getattr(e, "code", None) or type(e).__name__
            metrics.observe_operation(
                operation, log_scope, time.perf_counter() - started, error_code=error_code
            )
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, f"{error_code}: {e}"))
            raise
        else:
            metrics.observe_operation(operation, log_scope, time.perf_counter() - started)
            if upload_size is not None:
                metrics.upload_bytes.labels(log_scope=log_scope).observe(upload_size)
            span.set_status(Status(StatusCode.OK))
        finally:
            gauge.dec()
