"""Resolution of free-text location hints to branch candidates."""

import logging

from complaint_engine.models.branch import (
    BranchCandidate,
    BranchResolution,
    MatchReason,
    ResolutionOutcome,
)
from complaint_engine.models.catalog import Branch
from complaint_engine.observability.metrics import record_catalog_unavailable
from complaint_engine.storage.catalog_cache import CatalogCache

logger = logging.getLogger(__name__)

# Confidence per tier, strongest first
TIER_CONFIDENCE: dict[MatchReason, float] = {
    MatchReason.EXACT_ID: 1.00,
    MatchReason.EXACT_NAME: 0.95,
    MatchReason.EXACT_CITY: 0.85,
    MatchReason.PARTIAL_NAME: 0.75,
    MatchReason.PARTIAL_CITY: 0.65,
    MatchReason.STATE: 0.60,
}


class BranchResolver:
    """
    Rank branches against a customer-written location hint.

    Each active branch is scored by the strongest tier its fields satisfy
    (exact key, exact name, exact municipality, name contains hint,
    municipality contains hint, state code). Comparisons are
    case-insensitive. Branches satisfying no tier are dropped.
    """

    def __init__(self, catalog: CatalogCache, default_limit: int = 3) -> None:
        self.catalog = catalog
        self.default_limit = default_limit

    def resolve(self, hint: str | None, limit: int | None = None) -> BranchResolution:
        """
        Resolve a location hint.

        Args:
            hint: Location text as the customer wrote it.
            limit: Maximum candidates to return.

        Returns:
            BranchResolution with candidates sorted by confidence desc, name asc.
        """
        limit = self.default_limit if limit is None else limit
        needle = (hint or "").strip().lower()
        if not needle:
            return BranchResolution(outcome=ResolutionOutcome.UNSPECIFIED)

        snapshot = self.catalog.snapshot
        if snapshot is None:
            logger.warning("Catalog not loaded, cannot resolve branch %r", hint)
            record_catalog_unavailable("branch_resolver")
            return BranchResolution(outcome=ResolutionOutcome.NOT_FOUND, hint=hint)

        candidates = []
        for branch in snapshot.active_branches:
            reason = self.match_reason(needle, branch)
            if reason is None:
                continue
            candidates.append(
                BranchCandidate(
                    branch_id=branch.branch_id,
                    name=branch.name,
                    municipality=branch.municipality,
                    state=branch.state_code,
                    confidence=TIER_CONFIDENCE[reason],
                    match_reason=reason,
                )
            )

        candidates.sort(key=lambda c: (-c.confidence, c.name))
        candidates = candidates[: max(limit, 0)]

        if not candidates:
            logger.info("No branch matched hint %r", hint)
            return BranchResolution(outcome=ResolutionOutcome.NOT_FOUND, hint=hint)

        return BranchResolution(
            outcome=ResolutionOutcome.MATCHED,
            hint=hint,
            candidates=candidates,
        )

    @staticmethod
    def match_reason(needle: str, branch: Branch) -> MatchReason | None:
        """Strongest tier a lowercase hint satisfies for a branch, if any."""
        name = branch.name.lower()
        municipality = branch.municipality.lower()

        if branch.external_key is not None and needle == str(branch.external_key):
            return MatchReason.EXACT_ID
        if needle == name:
            return MatchReason.EXACT_NAME
        if needle == municipality:
            return MatchReason.EXACT_CITY
        if needle in name:
            return MatchReason.PARTIAL_NAME
        if needle in municipality:
            return MatchReason.PARTIAL_CITY
        if needle == branch.state_code.lower():
            return MatchReason.STATE
        return None
