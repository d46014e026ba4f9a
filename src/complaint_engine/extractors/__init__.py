"""Text feature extractors."""

from complaint_engine.extractors.keywords import KeywordExtractor
from complaint_engine.extractors.sentiment import SentimentScorer

__all__ = ["KeywordExtractor", "SentimentScorer"]
