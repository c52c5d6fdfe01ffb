"""OpenTelemetry tracing.

Every HTTP request runs in a server span. A compression job opens a
``compression.job`` span with one child span per phase: download,
transcode, upload and cleanup. Spans are only exported to the console
in debug mode; otherwise they exist to stamp trace and span IDs on logs.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from opentelemetry import trace
from opentelemetry.propagate import set_global_textmap
from opentelemetry.sdk.resources import Resource, SERVICE_NAME, SERVICE_VERSION
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Span, Status, StatusCode
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

logger = logging.getLogger(__name__)

_provider: Optional[TracerProvider] = None
_tracer: Optional[trace.Tracer] = None


def setup_tracing(
    service_name: str,
    service_version: str,
    environment: str = "production",
    console_export: bool = False,
) -> None:
    """Install the process-wide tracer provider.

    Args:
        service_name: Reported as ``service.name``
        service_version: Reported as ``service.version``
        environment: Reported as ``deployment.environment``
        console_export: Print finished spans to stdout
    """
    global _provider, _tracer

    _provider = TracerProvider(
        resource=Resource.create({
            SERVICE_NAME: service_name,
            SERVICE_VERSION: service_version,
            "deployment.environment": environment,
        })
    )
    if console_export:
        _provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(_provider)
    set_global_textmap(TraceContextTextMapPropagator())
    _tracer = _provider.get_tracer(service_name, service_version)

    logger.info("Tracing ready (console export %s)", "on" if console_export else "off")


def current_trace_ids() -> tuple[Optional[str], Optional[str]]:
    """Return ``(trace_id, span_id)`` of the active span as hex, if any."""
    context = trace.get_current_span().get_span_context()
    if not context.is_valid:
        return None, None
    return format(context.trace_id, "032x"), format(context.span_id, "016x")


@contextmanager
def span(
    name: str,
    attributes: Optional[dict] = None,
    kind: trace.SpanKind = trace.SpanKind.INTERNAL,
) -> Iterator[Span]:
    """Run the block inside a new span that becomes the current one."""
    tracer = _tracer or trace.get_tracer(__name__)
    with tracer.start_as_current_span(name, kind=kind, attributes=attributes or {}) as current:
        yield current


def set_span_attributes(attributes: dict) -> None:
    current = trace.get_current_span()
    for key, value in attributes.items():
        current.set_attribute(key, value)


def mark_span_failed(exception: BaseException, **attributes) -> None:
    """Attach ``exception`` to the current span and set its status to ERROR."""
    current = trace.get_current_span()
    current.record_exception(exception, attributes=attributes or None)
    current.set_status(Status(StatusCode.ERROR, str(exception)))


def shutdown_tracing() -> None:
    """Flush pending spans. Safe to call more than once."""
    global _provider
    if _provider is not None:
        _provider.shutdown()
        _provider = None
