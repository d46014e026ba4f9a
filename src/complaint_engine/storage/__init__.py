"""Storage layer: catalog cache and complaint persistence."""

from complaint_engine.storage.catalog_cache import CatalogCache
from complaint_engine.storage.catalog_source import (
    CatalogSource,
    JsonCatalogSource,
    PostgresCatalogSource,
)
from complaint_engine.storage.complaint_store import (
    ComplaintStore,
    ComplaintTransaction,
    InMemoryComplaintStore,
    PostgresComplaintStore,
)
from complaint_engine.storage.database import Database

__all__ = [
    "CatalogCache",
    "CatalogSource",
    "ComplaintStore",
    "ComplaintTransaction",
    "Database",
    "InMemoryComplaintStore",
    "JsonCatalogSource",
    "PostgresCatalogSource",
    "PostgresComplaintStore",
]
