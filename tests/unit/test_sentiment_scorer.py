"""Tests for sentiment scorer."""

import pytest

from complaint_engine.extractors.sentiment import SentimentScorer
from complaint_engine.models.complaint import SentimentLabel


@pytest.fixture
def scorer() -> SentimentScorer:
    """Create a sentiment scorer with the default word lists."""
    return SentimentScorer()


class TestSentimentBuckets:
    """Tests for label and score assignment."""

    def test_very_negative(self, scorer: SentimentScorer) -> None:
        """Test two negative words and no positive ones."""
        result = scorer.score("El pollo estaba horrible y frío, el servicio fue pésimo")
        assert result.label == SentimentLabel.VERY_NEGATIVE
        assert result.score == -0.8

    def test_negative(self, scorer: SentimentScorer) -> None:
        """Test one negative word."""
        result = scorer.score("El servicio fue malo")
        assert result.label == SentimentLabel.NEGATIVE
        assert result.score == -0.4

    def test_positive(self, scorer: SentimentScorer) -> None:
        """Test positive words outnumbering negative ones."""
        result = scorer.score("Todo excelente, muy rico")
        assert result.label == SentimentLabel.POSITIVE
        assert result.score == 0.6

    def test_neutral_without_keywords(self, scorer: SentimentScorer) -> None:
        """Test text with no polarity words."""
        result = scorer.score("Pedí una orden para llevar")
        assert result.label == SentimentLabel.NEUTRAL
        assert result.score == 0.0

    def test_neutral_on_tie(self, scorer: SentimentScorer) -> None:
        """Test equal counts are neutral."""
        result = scorer.score("El pollo rico pero el lugar terrible")
        assert result.label == SentimentLabel.NEUTRAL

    def test_negative_when_one_ahead(self, scorer: SentimentScorer) -> None:
        """Test negatives ahead by exactly one are only negative."""
        result = scorer.score("Rico pero terrible y horrible")
        assert result.label == SentimentLabel.NEGATIVE

    def test_empty_text(self, scorer: SentimentScorer) -> None:
        """Test empty and missing text."""
        assert scorer.score("").label == SentimentLabel.NEUTRAL
        assert scorer.score(None).label == SentimentLabel.NEUTRAL


class TestKeywordCounting:
    """Tests for how keywords are counted."""

    def test_repeated_keyword_counts_once(self, scorer: SentimentScorer) -> None:
        """Test distinct keyword counting."""
        result = scorer.score("malo malo malo malo")
        assert result.label == SentimentLabel.NEGATIVE

    def test_case_insensitive(self, scorer: SentimentScorer) -> None:
        """Test uppercase text."""
        result = scorer.score("HORRIBLE Y PÉSIMO")
        assert result.label == SentimentLabel.VERY_NEGATIVE

    def test_substring_match(self, scorer: SentimentScorer) -> None:
        """Test keywords inside longer words still count."""
        result = scorer.score("Horriblemente atendidos")
        assert result.label == SentimentLabel.NEGATIVE

    def test_label_values(self) -> None:
        """Test labels keep their stored values."""
        assert SentimentLabel.VERY_NEGATIVE.value == "muy_negativo"
        assert SentimentLabel.NEGATIVE.value == "negativo"
        assert SentimentLabel.POSITIVE.value == "positivo"
