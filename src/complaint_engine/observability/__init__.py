"""Observability module for tracing, metrics, and logging."""

from complaint_engine.observability.context import (
    get_current_request_id,
    reset_current_request_id,
    set_current_request_id,
)
from complaint_engine.observability.logging import configure_logging
from complaint_engine.observability.metrics import (
    MetricsRegistry,
    get_metrics_registry,
    record_catalog_reload,
    record_catalog_unavailable,
    record_classification,
    record_insight,
    record_pipeline_stage,
    record_submission,
)
from complaint_engine.observability.telemetry import (
    TelemetryConfig,
    init_telemetry,
    shutdown_telemetry,
)
from complaint_engine.observability.tracing import get_tracer, pipeline_span

__all__ = [
    # Context
    "get_current_request_id",
    "set_current_request_id",
    "reset_current_request_id",
    # Telemetry
    "TelemetryConfig",
    "init_telemetry",
    "shutdown_telemetry",
    # Tracing
    "get_tracer",
    "pipeline_span",
    # Metrics
    "MetricsRegistry",
    "get_metrics_registry",
    "record_submission",
    "record_pipeline_stage",
    "record_classification",
    "record_catalog_reload",
    "record_catalog_unavailable",
    "record_insight",
    # Logging
    "configure_logging",
]
