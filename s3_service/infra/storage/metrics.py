"""Prometheus metrics for the S3 client.

Metrics live on a module-level REGISTRY rather than the prometheus_client
default so embedding applications decide whether and where to expose them.
Every operation metric is labelled with the client's ``log_scope`` so two
clients in one process stay distinguishable.

Usage:
    from s3_service.infra.storage.metrics import REGISTRY

    prometheus_client.generate_latest(REGISTRY)
"""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

REGISTRY = CollectorRegistry()

# 5ms to 60s
LATENCY_BUCKETS = (0.005, 0.025, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 15.0, 60.0)

# 1KiB to 1GiB
PAYLOAD_BUCKETS = (1024, 16384, 262144, 1048576, 16777216, 134217728, 1073741824)

operations_total = Counter(
    "s3_client_operations_total",
    "S3 client operations by outcome",
    ["operation", "log_scope", "outcome"],  # outcome: ok/error
    registry=REGISTRY,
)

operation_seconds = Histogram(
    "s3_client_operation_seconds",
    "Wall time of S3 client operations",
    ["operation", "log_scope"],
    buckets=LATENCY_BUCKETS,
    registry=REGISTRY,
)

upload_bytes = Histogram(
    "s3_client_upload_bytes",
    "Payload size of uploaded objects",
    ["log_scope"],
    buckets=PAYLOAD_BUCKETS,
    registry=REGISTRY,
)

in_flight = Gauge(
    "s3_client_operations_in_flight",
    "S3 client operations currently awaiting the backend",
    ["log_scope"],
    registry=REGISTRY,
)

errors_total = Counter(
    "s3_client_errors_total",
    "Failed S3 client operations by error code",
    ["operation", "log_scope", "error_code"],
    registry=REGISTRY,
)

connections_total = Counter(
    "s3_client_connections_total",
    "S3Client.connect attempts by outcome",
    ["outcome"],  # ok/error/disabled
    registry=REGISTRY,
)


def observe_operation(
    operation: str,
    log_scope: str,
    seconds: float,
    error_code: str | None = None,
) -> None:
    """Count one finished operation; ``error_code`` marks it as failed."""
    operation_seconds.labels(operation=operation, log_scope=log_scope).observe(seconds)
    if error_code is None:
        operations_total.labels(operation=operation, log_scope=log_scope, outcome="ok").inc()
        return
    operations_total.labels(operation=operation, log_scope=log_scope, outcome="error").inc()
    errors_total.labels(operation=operation, log_scope=log_scope, error_code=error_code).inc()


def observe_connect(outcome: str) -> None:
    connections_total.labels(outcome=outcome).inc()
