"""Prometheus metrics definitions and recording."""

import logging
from typing import Any

from opentelemetry import metrics

logger = logging.getLogger(__name__)

# Global metrics registry
_metrics_registry: "MetricsRegistry | None" = None


class MetricsRegistry:
    """
    Registry for OpenTelemetry metrics.

    Provides pre-defined metrics for the complaint engine:
    - Submission metrics (latency, count, outcome)
    - Pipeline stage metrics
    - Classification metrics (urgency, branch confidence, resolution outcome)
    - Catalog cache metrics (reloads, unavailable lookups)
    - Insight metrics
    """

    def __init__(self, meter_name: str = "complaint_engine") -> None:
        """
        Initialize the metrics registry.

        Args:
            meter_name: Name for the meter.
        """
        self._meter = metrics.get_meter(meter_name)
        self._instruments: dict[str, Any] = {}
        self._create_instruments()
        logger.info("Metrics registry initialized")

    def _create_instruments(self) -> None:
        """Create all metric instruments."""
        # Submission metrics
        self._instruments["submission_duration"] = self._meter.create_histogram(
            name="complaint_submission_duration_seconds",
            description="Duration of complaint submission in seconds",
            unit="s",
        )

        self._instruments["submissions_total"] = self._meter.create_counter(
            name="complaint_submissions_total",
            description="Total number of complaint submissions",
            unit="1",
        )

        # Pipeline stage metrics
        self._instruments["pipeline_stage_duration"] = self._meter.create_histogram(
            name="pipeline_stage_duration_seconds",
            description="Duration of each pipeline stage in seconds",
            unit="s",
        )

        # Classification metrics
        self._instruments["urgency"] = self._meter.create_histogram(
            name="complaint_urgency_level",
            description="Urgency levels assigned to complaints",
            unit="1",
        )

        self._instruments["branch_confidence"] = self._meter.create_histogram(
            name="branch_match_confidence",
            description="Confidence of the best branch candidate",
            unit="1",
        )

        self._instruments["branch_resolutions_total"] = self._meter.create_counter(
            name="branch_resolutions_total",
            description="Branch resolutions by outcome",
            unit="1",
        )

        # Catalog metrics
        self._instruments["catalog_reloads_total"] = self._meter.create_counter(
            name="catalog_reloads_total",
            description="Catalog cache reload attempts",
            unit="1",
        )

        self._instruments["catalog_unavailable_total"] = self._meter.create_counter(
            name="catalog_unavailable_total",
            description="Lookups that ran without a loaded catalog",
            unit="1",
        )

        # Insight metrics
        self._instruments["insights_total"] = self._meter.create_counter(
            name="insights_emitted_total",
            description="Critical-complaint insights emitted",
            unit="1",
        )

    def record_submission(
        self,
        duration_seconds: float,
        channel: str,
        status: str = "success",
        stage: str | None = None,
    ) -> None:
        """
        Record complaint submission metrics.

        Args:
            duration_seconds: Time taken for the submission.
            channel: Origin channel of the complaint.
            status: success or error.
            stage: Failing stage when status is error.
        """
        labels = {"channel": channel, "status": status}
        if stage:
            labels["stage"] = stage

        self._instruments["submission_duration"].record(duration_seconds, labels)
        self._instruments["submissions_total"].add(1, labels)

    def record_pipeline_stage(self, stage: str, duration_seconds: float) -> None:
        """
        Record pipeline stage duration.

        Args:
            stage: Stage name (normalize, sentiment, categorize, etc.).
            duration_seconds: Time taken for the stage.
        """
        self._instruments["pipeline_stage_duration"].record(
            duration_seconds, {"stage": stage}
        )

    def record_classification(
        self,
        urgency: int,
        category: str,
        branch_outcome: str,
        branch_confidence: float,
    ) -> None:
        """
        Record the classification of one complaint.

        Args:
            urgency: Urgency level (1-5).
            category: Category name.
            branch_outcome: unspecified, not_found or matched.
            branch_confidence: Confidence of the best candidate (0 if none).
        """
        self._instruments["urgency"].record(urgency, {"category": category})
        self._instruments["branch_resolutions_total"].add(1, {"outcome": branch_outcome})
        if branch_outcome == "matched":
            self._instruments["branch_confidence"].record(branch_confidence)

    def record_catalog_reload(self, source: str, status: str = "success") -> None:
        """Record a catalog cache reload attempt."""
        self._instruments["catalog_reloads_total"].add(
            1, {"source": source, "status": status}
        )

    def record_catalog_unavailable(self, component: str) -> None:
        """Record a lookup served without a loaded catalog."""
        self._instruments["catalog_unavailable_total"].add(1, {"component": component})

    def record_insight(self, kind: str) -> None:
        """Record an emitted insight."""
        self._instruments["insights_total"].add(1, {"kind": kind})


def get_metrics_registry() -> MetricsRegistry:
    """
    Get the global metrics registry.

    Creates one if it doesn't exist.

    Returns:
        The global MetricsRegistry instance.
    """
    global _metrics_registry
    if _metrics_registry is None:
        _metrics_registry = MetricsRegistry()
    return _metrics_registry


# Convenience functions that use the global registry


def record_submission(
    duration_seconds: float,
    channel: str,
    status: str = "success",
    stage: str | None = None,
) -> None:
    """Record complaint submission metrics."""
    get_metrics_registry().record_submission(
        duration_seconds=duration_seconds,
        channel=channel,
        status=status,
        stage=stage,
    )


def record_pipeline_stage(stage: str, duration_seconds: float) -> None:
    """Record pipeline stage duration."""
    get_metrics_registry().record_pipeline_stage(stage, duration_seconds)


def record_classification(
    urgency: int,
    category: str,
    branch_outcome: str,
    branch_confidence: float,
) -> None:
    """Record the classification of one complaint."""
    get_metrics_registry().record_classification(
        urgency=urgency,
        category=category,
        branch_outcome=branch_outcome,
        branch_confidence=branch_confidence,
    )


def record_catalog_reload(source: str, status: str = "success") -> None:
    """Record a catalog cache reload attempt."""
    get_metrics_registry().record_catalog_reload(source, status)


def record_catalog_unavailable(component: str) -> None:
    """Record a lookup served without a loaded catalog."""
    get_metrics_registry().record_catalog_unavailable(component)


def record_insight(kind: str) -> None:
    """Record an emitted insight."""
    get_metrics_registry().record_insight(kind)
