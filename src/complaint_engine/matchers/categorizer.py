"""Keyword-based complaint categorization."""

import logging

from complaint_engine.models.catalog import CategoryMatch
from complaint_engine.observability.metrics import record_catalog_unavailable
from complaint_engine.storage.catalog_cache import CatalogCache

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY_ID = 10
DEFAULT_CATEGORY_NAME = "Satisfacción General"


class Categorizer:
    """
    Assign a complaint to the first category whose keyword appears in it.

    Categories, subcategories and keywords are walked in catalog order and
    the first case-insensitive substring hit wins, so earlier entries take
    precedence when a text matches several. Text with no hit falls back to
    the general satisfaction category.
    """

    def __init__(
        self,
        catalog: CatalogCache,
        default_category_id: int = DEFAULT_CATEGORY_ID,
        default_category_name: str = DEFAULT_CATEGORY_NAME,
    ) -> None:
        self.catalog = catalog
        self.default_category_id = default_category_id
        self.default_category_name = default_category_name

    def default_match(self) -> CategoryMatch:
        """Fallback match used when nothing else applies."""
        snapshot = self.catalog.snapshot
        category = snapshot.get_category(self.default_category_id) if snapshot else None
        return CategoryMatch(
            category_id=self.default_category_id,
            category_name=category.name if category else self.default_category_name,
        )

    def categorize(self, text: str | None) -> CategoryMatch:
        """
        Categorize complaint text.

        Args:
            text: Complaint text.

        Returns:
            The first matching category/subcategory, or the default category.
        """
        snapshot = self.catalog.snapshot
        if snapshot is None:
            logger.warning("Catalog not loaded, using default category")
            record_catalog_unavailable("categorizer")
            return self.default_match()

        lowered = (text or "").lower()
        if not lowered.strip():
            return self.default_match()

        for category in snapshot.categories:
            for subcategory in category.subcategories:
                for keyword in subcategory.keywords:
                    if keyword and keyword.lower() in lowered:
                        logger.debug(
                            "Matched keyword %r -> %s / %s",
                            keyword,
                            category.name,
                            subcategory.name,
                        )
                        return CategoryMatch(
                            category_id=category.category_id,
                            category_name=category.name,
                            subcategory_id=subcategory.subcategory_id,
                            subcategory_name=subcategory.name,
                            matched_keyword=keyword,
                        )

        return self.default_match()
