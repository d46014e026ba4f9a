#!/usr/bin/env python
"""Create the complaint engine tables and seed them with the default catalog."""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from complaint_engine.config import get_settings
from complaint_engine.models.catalog import CatalogSnapshot
from complaint_engine.storage.catalog_source import JsonCatalogSource
from complaint_engine.storage.database import Database

SCHEMA = """
CREATE TABLE IF NOT EXISTS estados (
    id SERIAL PRIMARY KEY,
    nombre VARCHAR(100) NOT NULL UNIQUE,
    codigo VARCHAR(2) NOT NULL UNIQUE,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS municipios (
    id SERIAL PRIMARY KEY,
    nombre VARCHAR(100) NOT NULL,
    estado_id INTEGER REFERENCES estados(id),
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    UNIQUE(nombre, estado_id)
);

CREATE TABLE IF NOT EXISTS sucursales (
    id SERIAL PRIMARY KEY,
    external_key INTEGER UNIQUE,
    nombre VARCHAR(200) NOT NULL,
    municipio_id INTEGER REFERENCES municipios(id),
    activa BOOLEAN DEFAULT true,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS clientes (
    id SERIAL PRIMARY KEY,
    nombre VARCHAR(200),
    telefono VARCHAR(20),
    segmento_cliente VARCHAR(50),
    total_quejas INTEGER DEFAULT 0,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_clientes_telefono ON clientes(telefono);

CREATE TABLE IF NOT EXISTS categorias_quejas (
    id SERIAL PRIMARY KEY,
    nombre VARCHAR(100) NOT NULL UNIQUE,
    descripcion TEXT,
    nivel_criticidad INTEGER DEFAULT 1,
    tiempo_resolucion_esperado INTEGER,
    requiere_seguimiento BOOLEAN DEFAULT false,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS subcategorias_quejas (
    id SERIAL PRIMARY KEY,
    nombre VARCHAR(100) NOT NULL,
    categoria_id INTEGER REFERENCES categorias_quejas(id),
    descripcion TEXT,
    keywords TEXT[],
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS quejas (
    id SERIAL PRIMARY KEY,
    cliente_id INTEGER REFERENCES clientes(id),
    sucursal_id INTEGER REFERENCES sucursales(id),
    descripcion TEXT NOT NULL,
    fecha_creacion TIMESTAMP NOT NULL,
    canal_origen VARCHAR(50) DEFAULT 'google_sheets',
    ubicacion_original TEXT,
    categoria_id INTEGER REFERENCES categorias_quejas(id),
    subcategoria_id INTEGER REFERENCES subcategorias_quejas(id),
    sentimiento VARCHAR(20),
    score_sentimiento DECIMAL(3,2),
    urgencia INTEGER DEFAULT 1,
    palabras_clave TEXT[],
    confianza_mapeo DECIMAL(3,2),
    sucursales_candidatas INTEGER[],
    datos_originales JSONB,
    analisis_ia JSONB,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_quejas_cliente ON quejas(cliente_id);

CREATE TABLE IF NOT EXISTS insights_ia (
    id SERIAL PRIMARY KEY,
    tipo_insight VARCHAR(50) NOT NULL,
    titulo VARCHAR(200) NOT NULL,
    descripcion TEXT NOT NULL,
    impacto_estimado VARCHAR(20),
    probabilidad DECIMAL(3,2),
    acciones_sugeridas TEXT[],
    sucursal_id INTEGER REFERENCES sucursales(id),
    categoria_id INTEGER REFERENCES categorias_quejas(id),
    queja_id INTEGER REFERENCES quejas(id),
    estado VARCHAR(20) DEFAULT 'nuevo',
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""


async def seed(database: Database, snapshot: CatalogSnapshot) -> None:
    """Upsert categories, subcategories and branches with their catalog ids."""
    async with database.acquire() as conn:
        async with conn.transaction():
            for category in snapshot.categories:
                await conn.execute(
                    """
                    INSERT INTO categorias_quejas (
                        id, nombre, descripcion, nivel_criticidad,
                        tiempo_resolucion_esperado, requiere_seguimiento
                    )
                    VALUES ($1, $2, $3, $4, $5, $6)
                    ON CONFLICT (id) DO UPDATE SET
                        nombre = EXCLUDED.nombre,
                        descripcion = EXCLUDED.descripcion,
                        nivel_criticidad = EXCLUDED.nivel_criticidad,
                        tiempo_resolucion_esperado = EXCLUDED.tiempo_resolucion_esperado,
                        requiere_seguimiento = EXCLUDED.requiere_seguimiento
                    """,
                    category.category_id,
                    category.name,
                    category.description,
                    category.criticality,
                    category.expected_resolution_minutes,
                    category.requires_follow_up,
                )
                for sub in category.subcategories:
                    await conn.execute(
                        """
                        INSERT INTO subcategorias_quejas (id, nombre, categoria_id, descripcion, keywords)
                        VALUES ($1, $2, $3, $4, $5)
                        ON CONFLICT (id) DO UPDATE SET
                            nombre = EXCLUDED.nombre,
                            categoria_id = EXCLUDED.categoria_id,
                            descripcion = EXCLUDED.descripcion,
                            keywords = EXCLUDED.keywords
                        """,
                        sub.subcategory_id,
                        sub.name,
                        category.category_id,
                        sub.description,
                        list(sub.keywords),
                    )

            for branch in snapshot.branches:
                await conn.execute(
                    """
                    INSERT INTO estados (nombre, codigo) VALUES ($1, $2)
                    ON CONFLICT (codigo) DO NOTHING
                    """,
                    branch.state_name or branch.state_code,
                    branch.state_code,
                )
                await conn.execute(
                    """
                    INSERT INTO municipios (nombre, estado_id)
                    SELECT $1, e.id FROM estados e WHERE e.codigo = $2
                    ON CONFLICT (nombre, estado_id) DO NOTHING
                    """,
                    branch.municipality,
                    branch.state_code,
                )
                await conn.execute(
                    """
                    INSERT INTO sucursales (id, external_key, nombre, municipio_id, activa)
                    SELECT $1, $2, $3, m.id, $6
                    FROM municipios m JOIN estados e ON m.estado_id = e.id
                    WHERE m.nombre = $4 AND e.codigo = $5
                    ON CONFLICT (id) DO UPDATE SET
                        external_key = EXCLUDED.external_key,
                        nombre = EXCLUDED.nombre,
                        municipio_id = EXCLUDED.municipio_id,
                        activa = EXCLUDED.activa
                    """,
                    branch.branch_id,
                    branch.external_key,
                    branch.name,
                    branch.municipality,
                    branch.state_code,
                    branch.active,
                )

            # Explicit ids leave the serial sequences behind
            for table in ("categorias_quejas", "subcategorias_quejas", "sucursales"):
                await conn.execute(
                    f"SELECT setval(pg_get_serial_sequence('{table}', 'id'), "
                    f"COALESCE((SELECT MAX(id) FROM {table}), 1))"
                )


async def main() -> None:
    """Create tables and seed the catalog."""
    parser = argparse.ArgumentParser(description="Create tables and seed the complaint catalog")
    parser.add_argument(
        "--catalog",
        type=str,
        default="data/catalog.json",
        help="Path to catalog JSON file",
    )
    parser.add_argument(
        "--schema-only",
        action="store_true",
        help="Create tables without seeding",
    )
    args = parser.parse_args()

    project_root = Path(__file__).parent.parent
    catalog_path = project_root / args.catalog

    if not args.schema_only and not catalog_path.exists():
        print(f"Catalog file not found: {catalog_path}")
        sys.exit(1)

    settings = get_settings()
    print(f"Connecting to database: {settings.database_url[:50]}...")

    database = Database(settings.database_url)
    await database.connect()
    try:
        async with database.acquire() as conn:
            await conn.execute(SCHEMA)
        print("Schema created")

        if args.schema_only:
            return

        snapshot = await JsonCatalogSource(catalog_path).load()
        await seed(database, snapshot)
        print(
            f"Seeded {len(snapshot.categories)} categories, "
            f"{snapshot.keyword_count} keywords, {len(snapshot.branches)} branches"
        )
    finally:
        await database.close()


if __name__ == "__main__":
    asyncio.run(main())
