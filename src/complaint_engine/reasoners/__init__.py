"""Reasoning over extracted signals."""

from complaint_engine.reasoners.urgency import UrgencyCalculator

__all__ = ["UrgencyCalculator"]
