"""Submission ingestion and normalization."""

from complaint_engine.ingestion.normalizer import Normalizer

__all__ = ["Normalizer"]
