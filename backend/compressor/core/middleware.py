"""HTTP middleware: correlation IDs, request metrics, server spans and access logs."""

import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from opentelemetry import trace
from starlette.middleware.base import BaseHTTPMiddleware

from compressor.core.logging import bind_correlation_id, reset_correlation_id
from compressor.core.metrics import (
    HTTP_REQUEST_DURATION_SECONDS,
    HTTP_REQUESTS_IN_PROGRESS,
    HTTP_REQUESTS_TOTAL,
)
from compressor.core.tracing import mark_span_failed, set_span_attributes, span

CORRELATION_ID_HEADER = "X-Correlation-ID"

# Anything else is reported as "other" to keep label cardinality bounded.
KNOWN_PATHS = frozenset(("/health", "/compress", "/metrics"))

access_logger = logging.getLogger("compressor.requests")


def route_label(path: str) -> str:
    return path if path in KNOWN_PATHS else "other"


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Binds the caller's ``X-Correlation-ID`` (or a fresh UUID) to the request.

    The ID is echoed back on the response so callers can match their
    request to the service logs.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(CORRELATION_ID_HEADER) or str(uuid.uuid4())
        token = bind_correlation_id(correlation_id)
        try:
            response = await call_next(request)
        finally:
            reset_correlation_id(token)
        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Wraps each request in a server span, records metrics and logs the outcome."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        method = request.method
        route = route_label(request.url.path)
        status_code = 500
        started = time.perf_counter()

        HTTP_REQUESTS_IN_PROGRESS.labels(method=method, endpoint=route).inc()
        try:
            with span(
                f"{method} {route}",
                attributes={
                    "http.method": method,
                    "http.route": route,
                    "http.target": request.url.path,
                    "http.user_agent": request.headers.get("user-agent", ""),
                },
                kind=trace.SpanKind.SERVER,
            ):
                try:
                    response = await call_next(request)
                except Exception as e:
                    mark_span_failed(e)
                    access_logger.exception(
                        "Request failed",
                        extra={"method": method, "path": request.url.path},
                    )
                    raise
                status_code = response.status_code
                set_span_attributes({"http.status_code": status_code})
        finally:
            elapsed = time.perf_counter() - started
            HTTP_REQUESTS_IN_PROGRESS.labels(method=method, endpoint=route).dec()
            HTTP_REQUEST_DURATION_SECONDS.labels(method=method, endpoint=route).observe(elapsed)
            HTTP_REQUESTS_TOTAL.labels(method=method, endpoint=route, status_code=str(status_code)).inc()

        access_logger.info(
            "%s %s %d",
            method,
            request.url.path,
            status_code,
            extra={
                "status_code": status_code,
                "duration_ms": round(elapsed * 1000, 2),
                "client_ip": request.client.host if request.client else None,
            },
        )
        return response
