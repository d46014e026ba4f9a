"""Tracing utilities."""

import logging
from contextlib import contextmanager
from typing import Any, Generator

from opentelemetry import trace
from opentelemetry.trace import StatusCode

logger = logging.getLogger(__name__)


def get_tracer(name: str = "complaint_engine") -> trace.Tracer:
    """
    Get an OpenTelemetry tracer.

    Without an SDK tracer provider installed this returns the API's
    no-op tracer, so spans cost nothing when tracing is disabled.

    Args:
        name: Tracer name (typically module name).
    """
    return trace.get_tracer(name)


@contextmanager
def pipeline_span(
    stage_name: str,
    request_id: str | None = None,
    **attributes: Any,
) -> Generator[trace.Span, None, None]:
    """
    Context manager for tracing pipeline stages.

    Creates a span for a specific pipeline stage with common attributes.
    Exceptions are recorded on the span and re-raised.

    Args:
        stage_name: Name of the pipeline stage.
        request_id: Optional request ID.
        **attributes: Additional span attributes.

    Yields:
        The span object.

    Example:
        with pipeline_span("categorize", complaint_length=len(text)):
            match = categorizer.categorize(text)
    """
    tracer = get_tracer("complaint_engine.pipeline")

    span_attrs: dict[str, Any] = {"pipeline.stage": stage_name}
    if request_id:
        span_attrs["request.id"] = request_id
    span_attrs.update({k: v for k, v in attributes.items() if v is not None})

    with tracer.start_as_current_span(f"complaint_engine.{stage_name}") as span:
        span.set_attributes(span_attrs)
        try:
            yield span
        except Exception as e:
            span.record_exception(e)
            span.set_status(StatusCode.ERROR)
            raise


def add_span_attribute(key: str, value: Any) -> None:
    """Add an attribute to the current span."""
    trace.get_current_span().set_attribute(key, value)


def get_current_trace_id() -> str | None:
    """
    Get the current trace ID.

    Returns:
        Trace ID as hex string, or None if not in a trace.
    """
    ctx = trace.get_current_span().get_span_context()
    if ctx.is_valid:
        return format(ctx.trace_id, "032x")
    return None


def get_current_span_id() -> str | None:
    """
    Get the current span ID.

    Returns:
        Span ID as hex string, or None if not in a span.
    """
    ctx = trace.get_current_span().get_span_context()
    if ctx.is_valid:
        return format(ctx.span_id, "016x")
    return None
