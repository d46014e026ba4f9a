"""Pytest configuration and fixtures."""

import json
import os
import sys
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Set test environment variables
os.environ.setdefault("API_KEY", "test-api-key")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("CATALOG_SOURCE", "file")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("ENABLE_TRACING", "false")
os.environ.setdefault("ENABLE_METRICS", "false")

CATALOG_FILE = Path(__file__).parent.parent / "data" / "catalog.json"


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture(scope="session")
def catalog_file() -> Path:
    """Path to the default catalog JSON."""
    return CATALOG_FILE


@pytest.fixture
def catalog_snapshot():
    """Default catalog as a snapshot."""
    from complaint_engine.models.catalog import CatalogSnapshot

    with open(CATALOG_FILE, encoding="utf-8") as f:
        return CatalogSnapshot.model_validate(json.load(f))


@pytest.fixture
def catalog_cache(catalog_snapshot):
    """Catalog cache preloaded with the default catalog."""
    from complaint_engine.storage.catalog_cache import CatalogCache
    from complaint_engine.storage.catalog_source import JsonCatalogSource

    return CatalogCache(JsonCatalogSource(CATALOG_FILE), snapshot=catalog_snapshot)


@pytest.fixture
def empty_catalog_cache():
    """Catalog cache that has never loaded."""
    from complaint_engine.storage.catalog_cache import CatalogCache

    return CatalogCache()


@pytest.fixture
def sample_submission() -> dict:
    """Sample Google Sheets row for testing."""
    return {
        "Nombre": "Ana López",
        "Telefono": "5512345678",
        "Descripción": "El pollo estaba horrible y frío, el servicio fue pésimo",
        "Sucursal": "monterrey",
        "Created on": "2024-03-15T13:45:00",
    }
