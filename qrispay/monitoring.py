"""Monitoring helpers and Prometheus metrics exporters."""
from __future__ import annotations

from typing import Final

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

_HTTP_REQUEST_TOTAL: Final = Counter(
    "qrispay_http_requests_total",
    "Total HTTP requests",
    labelnames=("method", "route", "status"),
)
_HTTP_REQUEST_LATENCY: Final = Histogram(
    "qrispay_http_request_duration_seconds",
    "Latency of HTTP requests",
    labelnames=("method", "route"),
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5),
)
_SERVICE_ERRORS_TOTAL: Final = Counter(
    "qrispay_service_errors_total",
    "Service-level errors by code",
    labelnames=("code", "route"),
)
_PAYLOADS_BUILT_TOTAL: Final = Counter(
    "qrispay_payloads_built_total",
    "Dynamic QRIS payloads built",
)
_VALIDATION_FAILURES_TOTAL: Final = Counter(
    "qrispay_payload_validation_failures_total",
    "Payload validation failures by code",
    labelnames=("code",),
)
_GATEWAY_CHECKS_TOTAL: Final = Counter(
    "qrispay_gateway_checks_total",
    "Payment status checks by outcome",
    labelnames=("outcome",),
)
_GATEWAY_LATENCY: Final = Histogram(
    "qrispay_gateway_request_duration_seconds",
    "Latency of payment gateway requests",
    buckets=(0.1, 0.25, 0.5, 1, 2, 5, 10),
)


def observe_request(method: str, route: str, status_code: int, duration_ms: float) -> None:
    _HTTP_REQUEST_TOTAL.labels(method=method, route=route, status=str(status_code)).inc()
    _HTTP_REQUEST_LATENCY.labels(method=method, route=route).observe(duration_ms / 1000)


def record_service_error(code: str, route: str) -> None:
    _SERVICE_ERRORS_TOTAL.labels(code=code, route=route).inc()


def record_payload_built() -> None:
    _PAYLOADS_BUILT_TOTAL.inc()


def record_validation_failure(code: str) -> None:
    _VALIDATION_FAILURES_TOTAL.labels(code=code).inc()


def record_gateway_check(outcome: str, duration_ms: float | None = None) -> None:
    _GATEWAY_CHECKS_TOTAL.labels(outcome=outcome).inc()
    if duration_ms is not None:
        _GATEWAY_LATENCY.observe(duration_ms / 1000)


def metrics_payload() -> tuple[bytes, str]:
    """Return Prometheus exposition payload and content type."""

    return generate_latest(), CONTENT_TYPE_LATEST
