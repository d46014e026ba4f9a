"""Catalog models: complaint taxonomy and branch locations."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


class Subcategory(BaseModel):
    """A subcategory with its ordered keyword list."""

    model_config = ConfigDict(frozen=True)

    subcategory_id: int
    name: str
    category_id: int
    description: str | None = None
    keywords: tuple[str, ...] = Field(
        default=(),
        description="Keywords in match order; the first hit wins",
    )


class Category(BaseModel):
    """Top-level complaint category."""

    model_config = ConfigDict(frozen=True)

    category_id: int
    name: str
    criticality: int = Field(default=1, ge=1, le=5)
    description: str | None = None
    expected_resolution_minutes: int | None = Field(default=None, ge=0)
    requires_follow_up: bool = False
    subcategories: tuple[Subcategory, ...] = ()


class CategoryMatch(BaseModel):
    """Outcome of keyword categorization."""

    model_config = ConfigDict(frozen=True)

    category_id: int
    category_name: str
    subcategory_id: int | None = None
    subcategory_name: str | None = None
    matched_keyword: str | None = None


class Branch(BaseModel):
    """A restaurant branch as seen by the branch resolver."""

    model_config = ConfigDict(frozen=True)

    branch_id: int
    name: str
    external_key: int | None = Field(default=None, description="Numeric key used by operations")
    municipality: str
    state_code: str = Field(description="Two-letter state code")
    state_name: str | None = None
    active: bool = True


class CatalogSnapshot(BaseModel):
    """
    Immutable view of the catalog used while processing submissions.

    Categories, their subcategories and keywords keep the order they were
    loaded in. Categorization walks them in that order.
    """

    model_config = ConfigDict(frozen=True)

    categories: tuple[Category, ...] = ()
    branches: tuple[Branch, ...] = ()
    loaded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def active_branches(self) -> tuple[Branch, ...]:
        """Branches eligible for resolution."""
        return tuple(b for b in self.branches if b.active)

    @property
    def keyword_count(self) -> int:
        """Total keywords across all subcategories."""
        return sum(len(sub.keywords) for cat in self.categories for sub in cat.subcategories)

    def get_category(self, category_id: int) -> Category | None:
        """Look up a category by id."""
        for category in self.categories:
            if category.category_id == category_id:
                return category
        return None
