"""Persistence of complaints, customers and insights."""

import asyncio
import copy
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import asyncpg

from complaint_engine.models.complaint import EnrichedComplaint, SentimentLabel, SentimentResult
from complaint_engine.models.customer import Customer, CustomerSegment, Insight
from complaint_engine.storage.database import Database

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 20

_MISSING = object()


class ComplaintTransaction(ABC):
    """Operations available inside one store unit of work."""

    @abstractmethod
    async def find_customer_by_phone(self, phone: str) -> Customer | None:
        """Customer with exactly this phone, if any."""

    @abstractmethod
    async def create_customer(
        self,
        name: str | None,
        phone: str | None,
        segment: CustomerSegment,
    ) -> Customer:
        """Insert a new customer."""

    @abstractmethod
    async def insert_complaint(
        self,
        complaint: EnrichedComplaint,
        raw: dict[str, Any],
        analysis: dict[str, Any],
    ) -> int:
        """Insert a complaint with its raw payload and analysis blob. Returns its id."""

    @abstractmethod
    async def refresh_customer_stats(self, customer_id: int) -> Customer:
        """Recount the customer's complaints and recompute the segment."""

    @abstractmethod
    async def insert_insight(self, insight: Insight) -> int:
        """Insert an insight. Returns its id."""


class ComplaintStore(ABC):
    """
    Storage backend for the submission pipeline.

    Writes happen inside unit_of_work(): everything done through the
    yielded transaction commits together when the block exits normally
    and is rolled back if it raises.
    """

    name: str = "unknown"

    async def connect(self) -> None:
        """Open backend resources."""

    async def close(self) -> None:
        """Release backend resources."""

    @abstractmethod
    async def check(self) -> bool:
        """Readiness check. Returns True if the store is usable."""

    @abstractmethod
    def unit_of_work(self) -> "AsyncIterator[ComplaintTransaction]":
        """Async context manager yielding a ComplaintTransaction."""

    @abstractmethod
    async def get_complaint(self, complaint_id: int) -> EnrichedComplaint | None:
        """Read back a stored complaint."""

    @abstractmethod
    async def list_complaints(
        self,
        sentiment: SentimentLabel | None = None,
        category_id: int | None = None,
        min_urgency: int | None = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> list[EnrichedComplaint]:
        """
        Stored complaints, newest first.

        Args:
            sentiment: Only complaints with this sentiment label.
            category_id: Only complaints in this category.
            min_urgency: Only complaints with at least this urgency.
            limit: Maximum number of complaints returned.
        """

    @abstractmethod
    async def count_complaints(self) -> dict[str, int]:
        """Totals of stored, analyzed and categorized complaints."""


# =============================================================================
# PostgreSQL
# =============================================================================


def _row_to_customer(row: asyncpg.Record) -> Customer:
    return Customer(
        customer_id=row["id"],
        name=row["nombre"],
        phone=row["telefono"],
        segment=CustomerSegment(row["segmento_cliente"] or CustomerSegment.NEW.value),
        total_complaints=row["total_quejas"] or 0,
    )


def _row_to_complaint(row: asyncpg.Record) -> EnrichedComplaint:
    return EnrichedComplaint(
        complaint_id=row["id"],
        customer_id=row["cliente_id"],
        customer_name=row["cliente_nombre"],
        phone=row["cliente_telefono"],
        text=row["descripcion"],
        branch_hint=row["ubicacion_original"],
        created_at=row["fecha_creacion"],
        channel=row["canal_origen"],
        sentiment=SentimentResult(
            label=SentimentLabel(row["sentimiento"]),
            score=float(row["score_sentimiento"] or 0),
        ),
        category_id=row["categoria_id"],
        subcategory_id=row["subcategoria_id"],
        urgency=row["urgencia"],
        keywords=list(row["palabras_clave"] or []),
        branch_id=row["sucursal_id"],
        branch_confidence=float(row["confianza_mapeo"] or 0),
        candidate_branch_ids=list(row["sucursales_candidatas"] or []),
    )


class _PostgresTransaction(ComplaintTransaction):
    """Transaction bound to a single pooled connection."""

    def __init__(self, conn: asyncpg.Connection) -> None:
        self._conn = conn

    async def find_customer_by_phone(self, phone: str) -> Customer | None:
        row = await self._conn.fetchrow(
            """
            SELECT id, nombre, telefono, segmento_cliente, total_quejas
            FROM clientes
            WHERE telefono = $1
            ORDER BY id
            LIMIT 1
            """,
            phone,
        )
        return _row_to_customer(row) if row else None

    async def create_customer(
        self,
        name: str | None,
        phone: str | None,
        segment: CustomerSegment,
    ) -> Customer:
        row = await self._conn.fetchrow(
            """
            INSERT INTO clientes (nombre, telefono, segmento_cliente)
            VALUES ($1, $2, $3)
            RETURNING id, nombre, telefono, segmento_cliente, total_quejas
            """,
            name,
            phone,
            segment.value,
        )
        return _row_to_customer(row)

    async def insert_complaint(
        self,
        complaint: EnrichedComplaint,
        raw: dict[str, Any],
        analysis: dict[str, Any],
    ) -> int:
        # Stored naive; the column is TIMESTAMP and values are always UTC
        created_at = complaint.created_at.replace(tzinfo=None)
        return await self._conn.fetchval(
            """
            INSERT INTO quejas (
                cliente_id, sucursal_id, descripcion, fecha_creacion,
                canal_origen, ubicacion_original, categoria_id, subcategoria_id,
                sentimiento, score_sentimiento, urgencia, palabras_clave,
                confianza_mapeo, sucursales_candidatas, datos_originales, analisis_ia
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14,
                    $15::jsonb, $16::jsonb)
            RETURNING id
            """,
            complaint.customer_id,
            complaint.branch_id,
            complaint.text,
            created_at,
            complaint.channel,
            complaint.branch_hint,
            complaint.category_id,
            complaint.subcategory_id,
            complaint.sentiment.label.value,
            complaint.sentiment.score,
            complaint.urgency,
            complaint.keywords,
            complaint.branch_confidence,
            complaint.candidate_branch_ids,
            json.dumps(raw, default=str, ensure_ascii=False),
            json.dumps(analysis, default=str, ensure_ascii=False),
        )

    async def refresh_customer_stats(self, customer_id: int) -> Customer:
        total = await self._conn.fetchval(
            "SELECT COUNT(*) FROM quejas WHERE cliente_id = $1",
            customer_id,
        )
        phone = await self._conn.fetchval(
            "SELECT telefono FROM clientes WHERE id = $1",
            customer_id,
        )
        segment = CustomerSegment.for_history(total, has_phone=phone is not None)
        row = await self._conn.fetchrow(
            """
            UPDATE clientes
            SET total_quejas = $2, segmento_cliente = $3, updated_at = NOW()
            WHERE id = $1
            RETURNING id, nombre, telefono, segmento_cliente, total_quejas
            """,
            customer_id,
            total,
            segment.value,
        )
        if row is None:
            raise LookupError(f"Customer {customer_id} does not exist")
        return _row_to_customer(row)

    async def insert_insight(self, insight: Insight) -> int:
        return await self._conn.fetchval(
            """
            INSERT INTO insights_ia (
                tipo_insight, titulo, descripcion, impacto_estimado, probabilidad,
                acciones_sugeridas, sucursal_id, categoria_id, queja_id
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
            RETURNING id
            """,
            insight.kind,
            insight.title,
            insight.description,
            insight.impact,
            insight.probability,
            insight.suggested_actions,
            insight.branch_id,
            insight.category_id,
            insight.complaint_id,
        )


class PostgresComplaintStore(ComplaintStore):
    """Complaint store backed by the clientes, quejas and insights_ia tables."""

    name = "postgres"

    def __init__(self, database: Database) -> None:
        self._database = database

    async def check(self) -> bool:
        return await self._database.check()

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator[ComplaintTransaction]:
        async with self._database.acquire() as conn:
            async with conn.transaction():
                yield _PostgresTransaction(conn)

    async def get_complaint(self, complaint_id: int) -> EnrichedComplaint | None:
        async with self._database.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT q.*, c.nombre AS cliente_nombre, c.telefono AS cliente_telefono
                FROM quejas q
                LEFT JOIN clientes c ON q.cliente_id = c.id
                WHERE q.id = $1
                """,
                complaint_id,
            )
        return _row_to_complaint(row) if row else None

    async def list_complaints(
        self,
        sentiment: SentimentLabel | None = None,
        category_id: int | None = None,
        min_urgency: int | None = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> list[EnrichedComplaint]:
        conditions: list[str] = []
        params: list[Any] = []
        if sentiment is not None:
            params.append(sentiment.value)
            conditions.append(f"q.sentimiento = ${len(params)}")
        if category_id is not None:
            params.append(category_id)
            conditions.append(f"q.categoria_id = ${len(params)}")
        if min_urgency is not None:
            params.append(min_urgency)
            conditions.append(f"q.urgencia >= ${len(params)}")
        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        params.append(limit)

        async with self._database.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT q.*, c.nombre AS cliente_nombre, c.telefono AS cliente_telefono
                FROM quejas q
                LEFT JOIN clientes c ON q.cliente_id = c.id
                {where}
                ORDER BY q.fecha_creacion DESC, q.id DESC
                LIMIT ${len(params)}
                """,
                *params,
            )
        return [_row_to_complaint(row) for row in rows]

    async def count_complaints(self) -> dict[str, int]:
        async with self._database.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT
                    COUNT(*) AS total,
                    COUNT(sentimiento) AS analyzed,
                    COUNT(categoria_id) AS categorized
                FROM quejas
                """
            )
        return {key: row[key] for key in ("total", "analyzed", "categorized")}


# =============================================================================
# In-memory
# =============================================================================


@dataclass
class _MemoryState:
    customers: dict[int, Customer] = field(default_factory=dict)
    complaints: dict[int, EnrichedComplaint] = field(default_factory=dict)
    raw_payloads: dict[int, dict[str, Any]] = field(default_factory=dict)
    analyses: dict[int, dict[str, Any]] = field(default_factory=dict)
    insights: dict[int, Insight] = field(default_factory=dict)
    next_customer_id: int = 1
    next_complaint_id: int = 1
    next_insight_id: int = 1


class _MemoryTransaction(ComplaintTransaction):
    """
    Writes straight into the shared state, remembering how to undo each one.

    rollback() replays the undo log in reverse and restores the id
    counters, so a failed unit of work costs only what it wrote.
    """

    def __init__(self, state: _MemoryState) -> None:
        self._state = state
        self._undo: list[tuple[dict[int, Any], int, Any]] = []
        self._counters = (
            state.next_customer_id,
            state.next_complaint_id,
            state.next_insight_id,
        )

    def _put(self, table: dict[int, Any], key: int, value: Any) -> None:
        self._undo.append((table, key, table.get(key, _MISSING)))
        table[key] = value

    def rollback(self) -> None:
        for table, key, previous in reversed(self._undo):
            if previous is _MISSING:
                table.pop(key, None)
            else:
                table[key] = previous
        self._undo.clear()
        (
            self._state.next_customer_id,
            self._state.next_complaint_id,
            self._state.next_insight_id,
        ) = self._counters

    async def find_customer_by_phone(self, phone: str) -> Customer | None:
        for customer in self._state.customers.values():
            if customer.phone == phone:
                return customer
        return None

    async def create_customer(
        self,
        name: str | None,
        phone: str | None,
        segment: CustomerSegment,
    ) -> Customer:
        customer = Customer(
            customer_id=self._state.next_customer_id,
            name=name,
            phone=phone,
            segment=segment,
        )
        self._put(self._state.customers, customer.customer_id, customer)
        self._state.next_customer_id += 1
        return customer

    async def insert_complaint(
        self,
        complaint: EnrichedComplaint,
        raw: dict[str, Any],
        analysis: dict[str, Any],
    ) -> int:
        if complaint.customer_id not in self._state.customers:
            raise LookupError(f"Customer {complaint.customer_id} does not exist")
        complaint_id = self._state.next_complaint_id
        self._put(
            self._state.complaints,
            complaint_id,
            complaint.model_copy(update={"complaint_id": complaint_id}),
        )
        self._put(self._state.raw_payloads, complaint_id, copy.deepcopy(raw))
        self._put(self._state.analyses, complaint_id, copy.deepcopy(analysis))
        self._state.next_complaint_id += 1
        return complaint_id

    async def refresh_customer_stats(self, customer_id: int) -> Customer:
        customer = self._state.customers.get(customer_id)
        if customer is None:
            raise LookupError(f"Customer {customer_id} does not exist")
        total = sum(
            1 for c in self._state.complaints.values() if c.customer_id == customer_id
        )
        updated = customer.model_copy(
            update={
                "total_complaints": total,
                "segment": CustomerSegment.for_history(
                    total, has_phone=customer.phone is not None
                ),
            }
        )
        self._put(self._state.customers, customer_id, updated)
        return updated

    async def insert_insight(self, insight: Insight) -> int:
        insight_id = self._state.next_insight_id
        self._put(self._state.insights, insight_id, insight)
        self._state.next_insight_id += 1
        return insight_id


class InMemoryComplaintStore(ComplaintStore):
    """
    Dictionary-backed complaint store for development and tests.

    Units of work run one at a time; a block that raises has its writes
    undone through the transaction's undo log.
    """

    name = "memory"

    def __init__(self) -> None:
        self._state = _MemoryState()
        self._lock = asyncio.Lock()

    async def check(self) -> bool:
        return True

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncIterator[ComplaintTransaction]:
        async with self._lock:
            tx = _MemoryTransaction(self._state)
            try:
                yield tx
            except BaseException:
                tx.rollback()
                logger.debug("In-memory unit of work rolled back")
                raise

    async def get_complaint(self, complaint_id: int) -> EnrichedComplaint | None:
        return self._state.complaints.get(complaint_id)

    async def list_complaints(
        self,
        sentiment: SentimentLabel | None = None,
        category_id: int | None = None,
        min_urgency: int | None = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> list[EnrichedComplaint]:
        matches = [
            c
            for c in self._state.complaints.values()
            if (sentiment is None or c.sentiment.label == sentiment)
            and (category_id is None or c.category_id == category_id)
            and (min_urgency is None or c.urgency >= min_urgency)
        ]
        matches.sort(key=lambda c: (c.created_at, c.complaint_id), reverse=True)
        return matches[:limit]

    async def count_complaints(self) -> dict[str, int]:
        complaints = self._state.complaints.values()
        return {
            "total": len(complaints),
            "analyzed": len(complaints),
            "categorized": sum(1 for c in complaints if c.category_id is not None),
        }

    # Inspection helpers

    @property
    def customers(self) -> list[Customer]:
        return list(self._state.customers.values())

    @property
    def complaints(self) -> list[EnrichedComplaint]:
        return list(self._state.complaints.values())

    @property
    def insights(self) -> list[Insight]:
        return list(self._state.insights.values())

    def raw_payload(self, complaint_id: int) -> dict[str, Any] | None:
        return self._state.raw_payloads.get(complaint_id)

    def analysis(self, complaint_id: int) -> dict[str, Any] | None:
        return self._state.analyses.get(complaint_id)
