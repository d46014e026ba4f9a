"""Branch resolution models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class MatchReason(str, Enum):
    """Which tier matched a branch against the location hint."""

    EXACT_ID = "exact_id"
    EXACT_NAME = "exact_name"
    EXACT_CITY = "exact_city"
    PARTIAL_NAME = "partial_name"
    PARTIAL_CITY = "partial_city"
    STATE = "state"


class ResolutionOutcome(str, Enum):
    """Overall result of a branch lookup."""

    UNSPECIFIED = "unspecified"  # No location hint was given
    NOT_FOUND = "not_found"  # Hint given, nothing matched
    MATCHED = "matched"


class BranchCandidate(BaseModel):
    """A branch that matched the location hint."""

    model_config = ConfigDict(frozen=True)

    branch_id: int
    name: str
    municipality: str
    state: str
    confidence: float = Field(ge=0.0, le=1.0)
    match_reason: MatchReason


class BranchResolution(BaseModel):
    """Ranked branch candidates for one location hint (best first)."""

    model_config = ConfigDict(frozen=True)

    outcome: ResolutionOutcome
    hint: str | None = None
    candidates: list[BranchCandidate] = Field(default_factory=list)

    @property
    def best(self) -> BranchCandidate | None:
        """Highest-confidence candidate, if any."""
        return self.candidates[0] if self.candidates else None

    @property
    def branch_id(self) -> int | None:
        return self.best.branch_id if self.best else None

    @property
    def branch_name(self) -> str | None:
        return self.best.name if self.best else None

    @property
    def confidence(self) -> float:
        return self.best.confidence if self.best else 0.0

    @property
    def candidate_ids(self) -> list[int]:
        return [c.branch_id for c in self.candidates]
