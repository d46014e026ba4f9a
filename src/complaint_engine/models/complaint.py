"""Complaint models from raw submission through enriched record."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from complaint_engine.models.branch import BranchResolution
from complaint_engine.models.catalog import CategoryMatch

# Raw submissions have no fixed schema (field names vary by upstream source)
RawSubmission = dict[str, Any]

NO_DESCRIPTION = "Sin descripción"
MAX_TEXT_LENGTH = 1000


class SentimentLabel(str, Enum):
    """Sentiment labels, valued as stored in the complaints table."""

    VERY_NEGATIVE = "muy_negativo"
    NEGATIVE = "negativo"
    NEUTRAL = "neutral"
    POSITIVE = "positivo"


class SentimentResult(BaseModel):
    """Lexical sentiment for a complaint text."""

    model_config = ConfigDict(frozen=True)

    label: SentimentLabel
    score: float = Field(ge=-1.0, le=1.0)


class NormalizedComplaint(BaseModel):
    """Cleaned submission fields. Text is never empty."""

    model_config = ConfigDict(frozen=True)

    customer_name: str | None = None
    phone: str | None = Field(default=None, pattern=r"^[0-9]{10}$")
    text: str = Field(default=NO_DESCRIPTION, min_length=1, max_length=MAX_TEXT_LENGTH)
    branch_hint: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ComplaintAnalysis(BaseModel):
    """Everything derived from a normalized complaint before persistence."""

    model_config = ConfigDict(frozen=True)

    sentiment: SentimentResult
    category: CategoryMatch
    branch: BranchResolution
    urgency: int = Field(ge=1, le=5)
    keywords: list[str] = Field(default_factory=list, max_length=5)

    def to_metadata(self, processed_at: datetime | None = None) -> dict[str, Any]:
        """JSON-ready analysis blob stored alongside the complaint."""
        return {
            "processed_at": (processed_at or datetime.now(timezone.utc)).isoformat(),
            "sentiment": self.sentiment.model_dump(mode="json"),
            "category": self.category.model_dump(mode="json"),
            "branch_mapping": {
                **self.branch.model_dump(mode="json"),
                "branch_id": self.branch.branch_id,
                "branch_name": self.branch.branch_name,
                "confidence": self.branch.confidence,
            },
            "urgency": self.urgency,
            "keywords": list(self.keywords),
        }


class EnrichedComplaint(BaseModel):
    """A complaint with all derived fields, as persisted."""

    model_config = ConfigDict(frozen=True)

    complaint_id: int | None = None
    customer_id: int

    # Normalized input
    customer_name: str | None = None
    phone: str | None = None
    text: str
    branch_hint: str | None = None
    created_at: datetime
    channel: str = "google_sheets"

    # Derived
    sentiment: SentimentResult
    category_id: int | None = None
    subcategory_id: int | None = None
    urgency: int = Field(ge=1, le=5)
    keywords: list[str] = Field(default_factory=list, max_length=5)

    # Branch resolution outcome
    branch_id: int | None = None
    branch_confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    candidate_branch_ids: list[int] = Field(default_factory=list)

    @classmethod
    def build(
        cls,
        normalized: NormalizedComplaint,
        analysis: ComplaintAnalysis,
        customer_id: int,
        channel: str,
        complaint_id: int | None = None,
    ) -> "EnrichedComplaint":
        """Assemble the record from its normalized input and analysis."""
        return cls(
            complaint_id=complaint_id,
            customer_id=customer_id,
            customer_name=normalized.customer_name,
            phone=normalized.phone,
            text=normalized.text,
            branch_hint=normalized.branch_hint,
            created_at=normalized.created_at,
            channel=channel,
            sentiment=analysis.sentiment,
            category_id=analysis.category.category_id,
            subcategory_id=analysis.category.subcategory_id,
            urgency=analysis.urgency,
            keywords=list(analysis.keywords),
            branch_id=analysis.branch.branch_id,
            branch_confidence=analysis.branch.confidence,
            candidate_branch_ids=analysis.branch.candidate_ids,
        )
