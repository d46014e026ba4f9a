"""In-process cache of the category keyword index and branch catalog."""

import asyncio
import logging
from typing import Any

from complaint_engine.exceptions import CatalogUnavailableError
from complaint_engine.models.catalog import CatalogSnapshot
from complaint_engine.observability.metrics import record_catalog_reload
from complaint_engine.storage.catalog_source import CatalogSource

logger = logging.getLogger(__name__)


class CatalogCache:
    """
    Holds the current CatalogSnapshot.

    A reload builds a complete snapshot before swapping the single
    reference, so readers see either the old catalog or the new one,
    never a mix. The lock only serializes concurrent reloads; reads
    never block.
    """

    def __init__(
        self,
        source: CatalogSource | None = None,
        snapshot: CatalogSnapshot | None = None,
    ) -> None:
        """
        Initialize the cache.

        Args:
            source: Where reload() reads from.
            snapshot: Optional preloaded snapshot.
        """
        self._source = source
        self._snapshot = snapshot
        self._lock = asyncio.Lock()
        self._last_error: str | None = None

    @property
    def snapshot(self) -> CatalogSnapshot | None:
        """Current snapshot, or None before the first successful load."""
        return self._snapshot

    @property
    def is_loaded(self) -> bool:
        return self._snapshot is not None

    @property
    def source_name(self) -> str:
        return self._source.name if self._source else "static"

    async def reload(self) -> CatalogSnapshot:
        """
        Load a fresh snapshot from the source and swap it in.

        The previous snapshot stays in place when loading fails.

        Raises:
            CatalogUnavailableError: If the source cannot be read.
        """
        if self._source is None:
            raise CatalogUnavailableError("No catalog source configured")

        async with self._lock:
            try:
                snapshot = await self._source.load()
            except Exception as e:
                self._last_error = str(e)
                record_catalog_reload(self.source_name, status="error")
                logger.error("Catalog reload from %s failed: %s", self.source_name, e)
                raise CatalogUnavailableError(
                    "Catalog unavailable",
                    detail=f"Could not load catalog from {self.source_name}: {e}",
                ) from e

            self._snapshot = snapshot
            self._last_error = None

        record_catalog_reload(self.source_name)
        logger.info(
            "Catalog loaded from %s: %d categories, %d keywords, %d active branches",
            self.source_name,
            len(snapshot.categories),
            snapshot.keyword_count,
            len(snapshot.active_branches),
        )
        return snapshot

    def status(self) -> dict[str, Any]:
        """Summary for health checks."""
        snapshot = self._snapshot
        if snapshot is None:
            return {
                "loaded": False,
                "source": self.source_name,
                "last_error": self._last_error,
            }
        return {
            "loaded": True,
            "source": self.source_name,
            "categories": len(snapshot.categories),
            "keywords": snapshot.keyword_count,
            "branches": len(snapshot.active_branches),
            "loaded_at": snapshot.loaded_at.isoformat(),
            "last_error": self._last_error,
        }
