"""Lexical sentiment scoring for complaint text."""

import logging

from complaint_engine.models.complaint import SentimentLabel, SentimentResult

logger = logging.getLogger(__name__)


class SentimentScorer:
    """
    Score complaint sentiment by counting polarity keywords.

    Each keyword counts at most once, regardless of how often it appears.
    Matching is a lowercase substring test, so "horriblemente" counts as
    "horrible". The label and score are fixed per bucket:

        negative > positive + 1  -> muy_negativo  (-0.8)
        negative > positive      -> negativo      (-0.4)
        positive > negative      -> positivo      (+0.6)
        otherwise                -> neutral       ( 0.0)
    """

    NEGATIVE_WORDS = (
        "malo",
        "terrible",
        "horrible",
        "asqueroso",
        "pésimo",
        "nunca",
        "jamás",
        "odio",
    )
    POSITIVE_WORDS = (
        "bueno",
        "excelente",
        "rico",
        "sabroso",
        "recomiendo",
        "perfecto",
        "genial",
    )

    VERY_NEGATIVE_SCORE = -0.8
    NEGATIVE_SCORE = -0.4
    POSITIVE_SCORE = 0.6
    NEUTRAL_SCORE = 0.0

    def __init__(
        self,
        negative_words: tuple[str, ...] | None = None,
        positive_words: tuple[str, ...] | None = None,
    ) -> None:
        self.negative_words = tuple(w.lower() for w in (negative_words or self.NEGATIVE_WORDS))
        self.positive_words = tuple(w.lower() for w in (positive_words or self.POSITIVE_WORDS))

    def score(self, text: str | None) -> SentimentResult:
        """
        Score the sentiment of a text.

        Args:
            text: Complaint text. None or empty scores neutral.

        Returns:
            SentimentResult with a label and matching score.
        """
        lowered = (text or "").lower()
        negative = self._count(lowered, self.negative_words)
        positive = self._count(lowered, self.positive_words)

        if negative > positive + 1:
            result = SentimentResult(
                label=SentimentLabel.VERY_NEGATIVE, score=self.VERY_NEGATIVE_SCORE
            )
        elif negative > positive:
            result = SentimentResult(label=SentimentLabel.NEGATIVE, score=self.NEGATIVE_SCORE)
        elif positive > negative:
            result = SentimentResult(label=SentimentLabel.POSITIVE, score=self.POSITIVE_SCORE)
        else:
            result = SentimentResult(label=SentimentLabel.NEUTRAL, score=self.NEUTRAL_SCORE)

        logger.debug(
            "Sentiment %s (negative=%d, positive=%d)", result.label.value, negative, positive
        )
        return result

    @staticmethod
    def _count(text: str, words: tuple[str, ...]) -> int:
        return sum(1 for word in words if word in text)
