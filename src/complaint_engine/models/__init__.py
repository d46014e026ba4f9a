"""Data models for the complaint engine."""

from complaint_engine.models.branch import (
    BranchCandidate,
    BranchResolution,
    MatchReason,
    ResolutionOutcome,
)
from complaint_engine.models.catalog import (
    Branch,
    CatalogSnapshot,
    Category,
    CategoryMatch,
    Subcategory,
)
from complaint_engine.models.complaint import (
    ComplaintAnalysis,
    EnrichedComplaint,
    NormalizedComplaint,
    RawSubmission,
    SentimentLabel,
    SentimentResult,
)
from complaint_engine.models.customer import Customer, CustomerSegment, Insight

__all__ = [
    "Branch",
    "BranchCandidate",
    "BranchResolution",
    "CatalogSnapshot",
    "Category",
    "CategoryMatch",
    "ComplaintAnalysis",
    "Customer",
    "CustomerSegment",
    "EnrichedComplaint",
    "Insight",
    "MatchReason",
    "NormalizedComplaint",
    "RawSubmission",
    "ResolutionOutcome",
    "SentimentLabel",
    "SentimentResult",
    "Subcategory",
]
