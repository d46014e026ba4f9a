"""Tests for branch resolution."""

import pytest

from complaint_engine.matchers.branch_resolver import BranchResolver
from complaint_engine.models.branch import MatchReason, ResolutionOutcome
from complaint_engine.models.catalog import Branch, CatalogSnapshot
from complaint_engine.storage.catalog_cache import CatalogCache


@pytest.fixture
def resolver(catalog_cache: CatalogCache) -> BranchResolver:
    """Create a branch resolver over the default catalog."""
    return BranchResolver(catalog_cache)


class TestMatchTiers:
    """Tests for each confidence tier."""

    def test_exact_city(self, resolver: BranchResolver) -> None:
        """Test a municipality name."""
        result = resolver.resolve("monterrey")
        assert result.outcome == ResolutionOutcome.MATCHED
        assert result.branch_id == 1
        assert result.branch_name == "1 - Pino Suarez"
        assert result.confidence == 0.85
        assert result.best.match_reason == MatchReason.EXACT_CITY
        assert result.candidate_ids == [1]

    def test_exact_id(self, resolver: BranchResolver) -> None:
        """Test the numeric branch key."""
        result = resolver.resolve("65")
        assert result.branch_id == 3
        assert result.confidence == 1.0
        assert result.best.match_reason == MatchReason.EXACT_ID

    def test_exact_name(self, resolver: BranchResolver) -> None:
        """Test the full branch name, case-insensitive."""
        result = resolver.resolve("73 - ANZALDUAS")
        assert result.branch_id == 4
        assert result.confidence == 0.95
        assert result.best.match_reason == MatchReason.EXACT_NAME

    def test_partial_name(self, resolver: BranchResolver) -> None:
        """Test a fragment of a branch name."""
        result = resolver.resolve("Barragan")
        assert result.branch_id == 2
        assert result.confidence == 0.75
        assert result.best.match_reason == MatchReason.PARTIAL_NAME

    def test_partial_city(self, resolver: BranchResolver) -> None:
        """Test a fragment of a municipality name."""
        result = resolver.resolve("garza")
        assert result.branch_id == 2
        assert result.confidence == 0.65
        assert result.best.match_reason == MatchReason.PARTIAL_CITY

    def test_state_code(self, resolver: BranchResolver) -> None:
        """Test a two-letter state code."""
        result = resolver.resolve("TM")
        assert result.candidate_ids == [3, 4]
        assert all(c.confidence == 0.60 for c in result.candidates)
        assert all(c.match_reason == MatchReason.STATE for c in result.candidates)

    def test_hint_is_trimmed(self, resolver: BranchResolver) -> None:
        """Test surrounding whitespace is ignored."""
        assert resolver.resolve("  Saltillo ").branch_id == 5

    def test_strongest_tier_per_branch(self) -> None:
        """Test a branch matching several tiers keeps the strongest."""
        branch = Branch(
            branch_id=1, name="Centro", external_key=None, municipality="Centro", state_code="TB"
        )
        assert BranchResolver.match_reason("centro", branch) == MatchReason.EXACT_NAME

    def test_exact_name_outranks_city_matches(self) -> None:
        """Test a branch named like a municipality ranks above the branches in it."""
        snapshot = CatalogSnapshot(
            branches=(
                Branch(branch_id=1, name="Pino Suarez", municipality="Monterrey", state_code="NL"),
                Branch(branch_id=2, name="Monterrey", municipality="Monterrey", state_code="NL"),
                Branch(
                    branch_id=3, name="Centro Monterrey", municipality="Monterrey", state_code="NL"
                ),
            )
        )
        result = BranchResolver(CatalogCache(snapshot=snapshot)).resolve("monterrey")

        assert [(c.name, c.confidence) for c in result.candidates] == [
            ("Monterrey", 0.95),
            ("Centro Monterrey", 0.85),
            ("Pino Suarez", 0.85),
        ]
        assert result.best.match_reason == MatchReason.EXACT_NAME
        assert result.branch_id == 2


class TestOrdering:
    """Tests for candidate ordering and limits."""

    def test_confidence_then_name(self, resolver: BranchResolver) -> None:
        """Test exact key outranks partial name matches."""
        result = resolver.resolve("1")
        assert result.candidate_ids[0] == 1
        assert result.candidates[0].confidence == 1.0
        assert result.candidates[1].branch_id == 2
        assert result.candidates[1].confidence == 0.75

    def test_ties_sorted_by_name(self, resolver: BranchResolver) -> None:
        """Test equal confidence sorts by branch name."""
        result = resolver.resolve("cardenas")
        assert [c.name for c in result.candidates] == [
            "62 - Lazaro Cardenas (Morelia)",
            "65 - Pedro Cardenas",
        ]

    def test_default_limit(self, resolver: BranchResolver) -> None:
        """Test at most three candidates by default."""
        result = resolver.resolve("a")
        assert len(result.candidates) == 3
        confidences = [c.confidence for c in result.candidates]
        assert confidences == sorted(confidences, reverse=True)

    def test_explicit_limit(self, resolver: BranchResolver) -> None:
        """Test the limit argument."""
        assert len(resolver.resolve("a", limit=1).candidates) == 1
        assert len(resolver.resolve("a", limit=10).candidates) > 3


class TestUnresolved:
    """Tests for hints that yield no branch."""

    @pytest.mark.parametrize("hint", [None, "", "   "])
    def test_unspecified(self, resolver: BranchResolver, hint) -> None:
        """Test missing hints."""
        result = resolver.resolve(hint)
        assert result.outcome == ResolutionOutcome.UNSPECIFIED
        assert result.branch_id is None
        assert result.confidence == 0.0
        assert result.candidates == []

    def test_not_found(self, resolver: BranchResolver) -> None:
        """Test a hint that matches nothing."""
        result = resolver.resolve("Cancún")
        assert result.outcome == ResolutionOutcome.NOT_FOUND
        assert result.hint == "Cancún"
        assert result.branch_id is None

    def test_inactive_branches_skipped(self) -> None:
        """Test inactive branches are never candidates."""
        snapshot = CatalogSnapshot(
            branches=(
                Branch(branch_id=1, name="Norte", municipality="Leon", state_code="GT", active=False),
                Branch(branch_id=2, name="Sur", municipality="Leon", state_code="GT"),
            )
        )
        result = BranchResolver(CatalogCache(snapshot=snapshot)).resolve("leon")
        assert result.candidate_ids == [2]

    def test_unloaded_catalog(self, empty_catalog_cache: CatalogCache) -> None:
        """Test an unloaded catalog yields not found."""
        result = BranchResolver(empty_catalog_cache).resolve("monterrey")
        assert result.outcome == ResolutionOutcome.NOT_FOUND
        assert result.candidates == []
