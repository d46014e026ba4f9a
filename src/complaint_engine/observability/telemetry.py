"""OpenTelemetry provider setup: OTLP traces and Prometheus metrics."""

import logging
from dataclasses import dataclass, field

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.exporter.prometheus import PrometheusMetricReader
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

logger = logging.getLogger(__name__)

_tracer_provider: TracerProvider | None = None
_meter_provider: MeterProvider | None = None


@dataclass
class TelemetryConfig:
    """Settings for the telemetry providers."""

    service_name: str = "complaint-engine"
    service_version: str = "0.1.0"
    environment: str = "development"

    # Collector receiving spans over gRPC
    otlp_endpoint: str = "http://localhost:4317"
    otlp_insecure: bool = True

    enable_tracing: bool = True
    enable_metrics: bool = True
    trace_sample_rate: float = 1.0

    resource_attributes: dict[str, str] = field(default_factory=dict)

    def resource(self) -> Resource:
        return Resource.create(
            {
                "service.name": self.service_name,
                "service.version": self.service_version,
                "deployment.environment": self.environment,
                **self.resource_attributes,
            }
        )


def init_telemetry(config: TelemetryConfig | None = None) -> bool:
    """
    Install global tracer and meter providers.

    Spans go to the OTLP collector in batches; metrics are exposed through
    the Prometheus client registry and served by /metrics. Calling this
    again after a successful setup is a no-op.

    Returns:
        True if providers are installed, False if setup failed.
    """
    global _tracer_provider, _meter_provider

    if _tracer_provider is not None or _meter_provider is not None:
        return True

    config = config or TelemetryConfig()
    resource = config.resource()

    try:
        if config.enable_tracing:
            provider = TracerProvider(
                resource=resource,
                sampler=TraceIdRatioBased(config.trace_sample_rate),
            )
            provider.add_span_processor(
                BatchSpanProcessor(
                    OTLPSpanExporter(
                        endpoint=config.otlp_endpoint,
                        insecure=config.otlp_insecure,
                    )
                )
            )
            trace.set_tracer_provider(provider)
            _tracer_provider = provider

        if config.enable_metrics:
            meter_provider = MeterProvider(
                resource=resource,
                metric_readers=[PrometheusMetricReader()],
            )
            metrics.set_meter_provider(meter_provider)
            _meter_provider = meter_provider
    except Exception as e:
        logger.error("Telemetry setup failed: %s", e)
        return False

    logger.info(
        "Telemetry enabled for %s (tracing=%s -> %s, metrics=%s)",
        config.service_name,
        config.enable_tracing,
        config.otlp_endpoint,
        config.enable_metrics,
    )
    return True


def shutdown_telemetry() -> None:
    """Flush pending spans and release the providers."""
    global _tracer_provider, _meter_provider

    for provider in (_tracer_provider, _meter_provider):
        if provider is None:
            continue
        try:
            provider.shutdown()
        except Exception as e:
            logger.warning("Telemetry provider shutdown failed: %s", e)

    _tracer_provider = None
    _meter_provider = None
