"""Urgency scoring."""

from complaint_engine.models.catalog import CategoryMatch
from complaint_engine.models.complaint import SentimentLabel, SentimentResult

MIN_URGENCY = 1
MAX_URGENCY = 5


class UrgencyCalculator:
    """
    Combine sentiment, category and emergency words into a 1-5 urgency.

    Base 1, plus a sentiment bonus and a per-category bonus. Any emergency
    keyword (food poisoning, hospital) forces the maximum.
    """

    SENTIMENT_BONUS = {
        SentimentLabel.VERY_NEGATIVE: 2,
        SentimentLabel.NEGATIVE: 1,
    }

    # Keyed by category name
    CATEGORY_BONUS = {
        "Higiene y Limpieza": 2,
        "Calidad del Producto": 1,
        "Personal": 1,
    }

    EMERGENCY_KEYWORDS = ("intoxicación", "enfermo", "vómito", "ambulancia", "hospital")

    def calculate(
        self,
        sentiment: SentimentResult,
        category: CategoryMatch,
        text: str | None = "",
    ) -> int:
        """Urgency level in [1, 5]."""
        lowered = (text or "").lower()
        if any(word in lowered for word in self.EMERGENCY_KEYWORDS):
            return MAX_URGENCY

        urgency = MIN_URGENCY
        urgency += self.SENTIMENT_BONUS.get(sentiment.label, 0)
        urgency += self.CATEGORY_BONUS.get(category.category_name, 0)
        return max(MIN_URGENCY, min(MAX_URGENCY, urgency))
