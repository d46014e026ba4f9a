"""Integration tests for observability features."""

import json
import logging

import pytest

from complaint_engine.observability.context import (
    get_current_request_id,
    reset_current_request_id,
    set_current_request_id,
)
from complaint_engine.observability.logging import (
    RequestContextFilter,
    StructuredLogFormatter,
    configure_logging,
)
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
from complaint_engine.observability.telemetry import TelemetryConfig
from complaint_engine.observability.tracing import (
    add_span_attribute,
    get_tracer,
    pipeline_span,
)


def make_record(msg: str = "Test message") -> logging.LogRecord:
    return logging.LogRecord(
        name="test",
        level=logging.INFO,
        pathname="test.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )


class TestTelemetryConfig:
    """Tests for telemetry configuration."""

    def test_default_config(self):
        """Test default telemetry configuration."""
        config = TelemetryConfig()

        assert config.service_name == "complaint-engine"
        assert config.enable_tracing is True
        assert config.enable_metrics is True
        assert config.trace_sample_rate == 1.0

    def test_custom_config(self):
        """Test custom telemetry configuration."""
        config = TelemetryConfig(
            service_name="custom-service",
            environment="production",
            otlp_endpoint="http://collector:4317",
            trace_sample_rate=0.5,
        )

        assert config.service_name == "custom-service"
        assert config.environment == "production"
        assert config.trace_sample_rate == 0.5


class TestTracing:
    """Tests for tracing utilities."""

    def test_get_tracer(self):
        """Test getting a tracer."""
        assert get_tracer("test_module") is not None

    def test_pipeline_span(self):
        """Test pipeline_span skips None attributes."""
        with pipeline_span("resolve_branch", request_id="req-1", branch_hint=None) as span:
            assert span is not None

    def test_pipeline_span_reraises(self):
        """Test exceptions inside a span propagate."""
        with pytest.raises(ValueError):
            with pipeline_span("categorize"):
                raise ValueError("boom")

    def test_add_span_attribute_no_span(self):
        """Test add_span_attribute when no span is active."""
        add_span_attribute("key", "value")


class TestMetrics:
    """Tests for metrics recording."""

    def test_global_registry(self):
        """Test the global registry is created once."""
        assert get_metrics_registry() is get_metrics_registry()

    def test_record_helpers(self):
        """Test every helper records without a configured meter provider."""
        record_submission(0.05, "google_sheets")
        record_submission(0.02, "web_form", status="error", stage="persist_complaint")
        record_pipeline_stage("categorize", 0.001)
        record_classification(
            urgency=4,
            category="Calidad del Producto",
            branch_outcome="matched",
            branch_confidence=0.85,
        )
        record_classification(
            urgency=1,
            category="Satisfacción General",
            branch_outcome="unspecified",
            branch_confidence=0.0,
        )
        record_catalog_reload("file")
        record_catalog_reload("database", status="error")
        record_catalog_unavailable("categorizer")
        record_insight("queja_critica")

    def test_registry_instance(self):
        """Test a standalone registry."""
        registry = MetricsRegistry("test_registry")
        registry.record_insight("queja_critica")


class TestStructuredLogging:
    """Tests for structured logging."""

    def test_configure_logging(self):
        """Test logging configuration installs a JSON handler."""
        configure_logging(level="DEBUG", json_format=True, module_levels={"asyncpg": "WARNING"})

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert any(isinstance(h.formatter, StructuredLogFormatter) for h in root.handlers)
        assert logging.getLogger("asyncpg").level == logging.WARNING

        configure_logging(level="INFO", json_format=False)

    def test_structured_log_formatter(self):
        """Test formatter output is JSON."""
        data = json.loads(StructuredLogFormatter().format(make_record()))

        assert data["message"] == "Test message"
        assert data["level"] == "INFO"
        assert data["logger"] == "test"
        assert "request_id" not in data

    def test_formatter_includes_request_id(self):
        """Test the current request id is attached."""
        token = set_current_request_id("req-42")
        try:
            data = json.loads(StructuredLogFormatter().format(make_record("Pollo frío")))
        finally:
            reset_current_request_id(token)

        assert data["request_id"] == "req-42"
        assert data["message"] == "Pollo frío"

    def test_request_context_filter(self):
        """Test the filter stamps ids on records."""
        record = make_record()

        assert RequestContextFilter().filter(record) is True
        assert record.request_id == "-"
        assert hasattr(record, "trace_id")

    def test_request_id_reset(self):
        """Test resetting restores the previous value."""
        token = set_current_request_id("req-1")
        reset_current_request_id(token)
        assert get_current_request_id() is None
