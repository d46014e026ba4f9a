"""Sources the catalog cache loads categories, keywords and branches from."""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path

import asyncpg

from complaint_engine.models.catalog import Branch, CatalogSnapshot, Category, Subcategory
from complaint_engine.storage.database import Database

logger = logging.getLogger(__name__)


class CatalogSource(ABC):
    """Somewhere a complete CatalogSnapshot can be read from."""

    name: str = "unknown"

    @abstractmethod
    async def load(self) -> CatalogSnapshot:
        """
        Read the full catalog.

        Category, subcategory and keyword order must be stable between
        loads; categorization depends on it.
        """


class JsonCatalogSource(CatalogSource):
    """
    Catalog stored as a JSON file.

    Expected JSON format:
    {
        "categories": [
            {
                "category_id": 1,
                "name": "Calidad del Producto",
                "criticality": 4,
                "subcategories": [
                    {"subcategory_id": 1, "category_id": 1, "name": "Comida Fría",
                     "keywords": ["frio", "fría", ...]},
                    ...
                ]
            },
            ...
        ],
        "branches": [
            {"branch_id": 1, "external_key": 1, "name": "1 - Pino Suarez",
             "municipality": "Monterrey", "state_code": "NL"},
            ...
        ]
    }

    List order in the file is the match order.
    """

    name = "file"

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read(self) -> dict:
        with open(self.path, encoding="utf-8") as f:
            return json.load(f)

    async def load(self) -> CatalogSnapshot:
        data = await asyncio.to_thread(self._read)

        snapshot = CatalogSnapshot.model_validate(
            {
                "categories": data.get("categories", []),
                "branches": data.get("branches", []),
            }
        )
        logger.debug("Loaded catalog file %s", self.path)
        return snapshot


class PostgresCatalogSource(CatalogSource):
    """Catalog read from the categorias_quejas, subcategorias_quejas and sucursales tables."""

    name = "database"

    def __init__(self, database: Database) -> None:
        self._database = database

    async def load(self) -> CatalogSnapshot:
        async with self._database.acquire() as conn:
            category_rows = await conn.fetch(
                """
                SELECT id, nombre, descripcion, nivel_criticidad,
                       tiempo_resolucion_esperado, requiere_seguimiento
                FROM categorias_quejas
                ORDER BY id
                """
            )
            subcategory_rows = await conn.fetch(
                """
                SELECT id, nombre, categoria_id, descripcion, keywords
                FROM subcategorias_quejas
                ORDER BY categoria_id, id
                """
            )
            branch_rows = await conn.fetch(
                """
                SELECT s.id, s.nombre, s.external_key, s.activa,
                       m.nombre AS municipio, e.codigo AS estado_codigo,
                       e.nombre AS estado_nombre
                FROM sucursales s
                JOIN municipios m ON s.municipio_id = m.id
                JOIN estados e ON m.estado_id = e.id
                WHERE s.activa = true
                ORDER BY s.id
                """
            )

        subcategories: dict[int, list[Subcategory]] = {}
        for row in subcategory_rows:
            subcategories.setdefault(row["categoria_id"], []).append(_row_to_subcategory(row))

        categories = tuple(
            _row_to_category(row, subcategories.get(row["id"], [])) for row in category_rows
        )
        branches = tuple(_row_to_branch(row) for row in branch_rows)

        logger.debug(
            "Loaded catalog from database: %d categories, %d branches",
            len(categories),
            len(branches),
        )
        return CatalogSnapshot(categories=categories, branches=branches)


def _row_to_subcategory(row: asyncpg.Record) -> Subcategory:
    return Subcategory(
        subcategory_id=row["id"],
        name=row["nombre"],
        category_id=row["categoria_id"],
        description=row["descripcion"],
        keywords=tuple(row["keywords"] or ()),
    )


def _row_to_category(row: asyncpg.Record, subcategories: list[Subcategory]) -> Category:
    return Category(
        category_id=row["id"],
        name=row["nombre"],
        criticality=row["nivel_criticidad"] or 1,
        description=row["descripcion"],
        expected_resolution_minutes=row["tiempo_resolucion_esperado"],
        requires_follow_up=bool(row["requiere_seguimiento"]),
        subcategories=tuple(subcategories),
    )


def _row_to_branch(row: asyncpg.Record) -> Branch:
    return Branch(
        branch_id=row["id"],
        name=row["nombre"],
        external_key=row["external_key"],
        municipality=row["municipio"],
        state_code=row["estado_codigo"],
        state_name=row["estado_nombre"],
        active=row["activa"],
    )
