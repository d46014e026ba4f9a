"""Main orchestrator for the complaint classification pipeline."""

import logging
import time
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from complaint_engine.config import Settings, get_settings
from complaint_engine.exceptions import (
    CatalogUnavailableError,
    EngineNotReadyError,
    PersistenceError,
)
from complaint_engine.extractors.keywords import KeywordExtractor
from complaint_engine.extractors.sentiment import SentimentScorer
from complaint_engine.ingestion.normalizer import Normalizer
from complaint_engine.matchers.branch_resolver import BranchResolver
from complaint_engine.matchers.categorizer import Categorizer
from complaint_engine.models.catalog import CatalogSnapshot
from complaint_engine.models.complaint import (
    ComplaintAnalysis,
    EnrichedComplaint,
    NormalizedComplaint,
    RawSubmission,
    SentimentLabel,
)
from complaint_engine.models.customer import Customer, CustomerSegment, Insight
from complaint_engine.observability.metrics import (
    record_classification,
    record_insight,
    record_pipeline_stage,
    record_submission,
)
from complaint_engine.observability.tracing import pipeline_span
from complaint_engine.reasoners.urgency import UrgencyCalculator
from complaint_engine.storage.catalog_cache import CatalogCache
from complaint_engine.storage.catalog_source import (
    CatalogSource,
    JsonCatalogSource,
    PostgresCatalogSource,
)
from complaint_engine.storage.complaint_store import (
    DEFAULT_LIST_LIMIT,
    ComplaintStore,
    ComplaintTransaction,
    InMemoryComplaintStore,
    PostgresComplaintStore,
)
from complaint_engine.storage.database import Database

logger = logging.getLogger(__name__)

INSIGHT_KIND = "queja_critica"
INSIGHT_ACTIONS = (
    "Contactar al cliente inmediatamente",
    "Investigar el incidente",
    "Implementar acciones correctivas",
)


@dataclass
class PipelineComponents:
    """Container for pipeline components."""

    normalizer: Normalizer
    sentiment_scorer: SentimentScorer
    categorizer: Categorizer
    branch_resolver: BranchResolver
    urgency_calculator: UrgencyCalculator
    keyword_extractor: KeywordExtractor
    catalog: CatalogCache
    store: ComplaintStore
    database: Database | None = None  # None when nothing is Postgres-backed


def build_components(
    settings: Settings,
    catalog: CatalogCache,
    store: ComplaintStore,
    database: Database | None = None,
) -> PipelineComponents:
    """Wire the pure stages around a catalog cache and store."""
    return PipelineComponents(
        normalizer=Normalizer(country_code=settings.phone_country_code),
        sentiment_scorer=SentimentScorer(),
        categorizer=Categorizer(catalog),
        branch_resolver=BranchResolver(catalog, default_limit=settings.branch_candidate_limit),
        urgency_calculator=UrgencyCalculator(),
        keyword_extractor=KeywordExtractor(),
        catalog=catalog,
        store=store,
        database=database,
    )


@contextmanager
def _stage(name: str, request_id: str | None = None, **attributes: Any) -> Generator[None, None, None]:
    """Trace and time one pipeline stage."""
    with pipeline_span(name, request_id=request_id, **attributes):
        stage_start = time.perf_counter()
        yield
        record_pipeline_stage(name, time.perf_counter() - stage_start)


class ComplaintPipeline:
    """
    Classify, resolve and persist customer complaints.

    Pipeline:
    1. Normalization (field aliases, phone, timestamp)
    2. Sentiment scoring (polarity keywords)
    3. Categorization (catalog keyword index)
    4. Branch resolution (catalog branches)
    5. Urgency calculation
    6. Keyword extraction
    7. Persistence in one store transaction: customer, complaint,
       customer stats and, for urgent complaints, an insight
    """

    def __init__(
        self,
        settings: Settings | None = None,
        components: PipelineComponents | None = None,
    ) -> None:
        """
        Initialize the pipeline.

        Args:
            settings: Configuration settings. Uses defaults if not provided.
            components: Pre-configured components (for testing).
        """
        self.settings = settings or get_settings()
        self._components = components
        self._initialized = components is not None

    async def initialize(self) -> None:
        """
        Create components and load the catalog.

        A catalog that cannot be loaded is not fatal: the pipeline runs
        degraded (default category, no branch matches) until a reload
        succeeds.
        """
        if self._initialized:
            return

        if self._components is None:
            database: Database | None = None
            needs_database = (
                self.settings.storage_backend == "postgres"
                or self.settings.catalog_source == "database"
            )
            if needs_database:
                database = Database(self.settings.database_url)
                try:
                    await database.connect()
                except Exception as e:
                    logger.error(f"Database not available: {e}")

            catalog = CatalogCache(self._create_catalog_source(database))
            store = self._create_store(database)
            self._components = build_components(self.settings, catalog, store, database)

        if not self._components.catalog.is_loaded:
            try:
                await self._components.catalog.reload()
            except CatalogUnavailableError as e:
                logger.warning(f"Starting with catalog unavailable: {e.detail}")

        self._initialized = True
        logger.info(
            "Complaint pipeline initialized (store=%s, catalog=%s)",
            self._components.store.name,
            self._components.catalog.source_name,
        )

    def _create_catalog_source(self, database: Database | None) -> CatalogSource:
        source = self.settings.catalog_source
        if source == "file":
            return JsonCatalogSource(self.settings.catalog_file)
        if source == "database" and database is not None:
            return PostgresCatalogSource(database)
        raise ValueError(f"Unknown catalog source: {source!r}")

    def _create_store(self, database: Database | None) -> ComplaintStore:
        backend = self.settings.storage_backend
        if backend == "memory":
            return InMemoryComplaintStore()
        if backend == "postgres" and database is not None:
            return PostgresComplaintStore(database)
        raise ValueError(f"Unknown storage backend: {backend!r}")

    async def shutdown(self) -> None:
        """Cleanup resources."""
        if self._components:
            await self._components.store.close()
            if self._components.database:
                await self._components.database.close()
        self._initialized = False

    @property
    def components(self) -> PipelineComponents:
        """Get pipeline components."""
        if not self._components:
            raise EngineNotReadyError("Pipeline not initialized. Call initialize() first.")
        return self._components

    @property
    def catalog(self) -> CatalogCache:
        return self.components.catalog

    @property
    def store(self) -> ComplaintStore:
        return self.components.store

    def analyze(
        self,
        raw: RawSubmission,
        request_id: str | None = None,
    ) -> tuple[NormalizedComplaint, ComplaintAnalysis]:
        """
        Run the pure classification stages. Nothing is persisted.

        Args:
            raw: Raw submission with arbitrary field names.
            request_id: Optional request ID for tracing.

        Returns:
            The normalized complaint and its analysis.
        """
        c = self.components

        with _stage("normalize", request_id):
            normalized = c.normalizer.normalize(raw)

        with _stage("sentiment", request_id):
            sentiment = c.sentiment_scorer.score(normalized.text)

        with _stage("categorize", request_id):
            category = c.categorizer.categorize(normalized.text)

        with _stage("resolve_branch", request_id, branch_hint=normalized.branch_hint):
            branch = c.branch_resolver.resolve(normalized.branch_hint)

        with _stage("urgency", request_id):
            urgency = c.urgency_calculator.calculate(sentiment, category, normalized.text)

        with _stage("keywords", request_id):
            keywords = c.keyword_extractor.extract(normalized.text)

        analysis = ComplaintAnalysis(
            sentiment=sentiment,
            category=category,
            branch=branch,
            urgency=urgency,
            keywords=keywords,
        )
        record_classification(
            urgency=urgency,
            category=category.category_name,
            branch_outcome=branch.outcome.value,
            branch_confidence=branch.confidence,
        )
        return normalized, analysis

    async def submit(
        self,
        raw: RawSubmission,
        channel: str | None = None,
        request_id: str | None = None,
    ) -> EnrichedComplaint:
        """
        Classify and persist one complaint.

        All writes share one store transaction; if any of them fails
        nothing is kept.

        Args:
            raw: Raw submission with arbitrary field names.
            channel: Origin channel. Defaults to the configured channel.
            request_id: Optional request ID for tracing.

        Returns:
            The persisted EnrichedComplaint, with its id.

        Raises:
            PersistenceError: If the store failed; names the failing stage.
        """
        complaint, _ = await self.process(raw, channel=channel, request_id=request_id)
        return complaint

    async def process(
        self,
        raw: RawSubmission,
        channel: str | None = None,
        request_id: str | None = None,
    ) -> tuple[EnrichedComplaint, ComplaintAnalysis]:
        """Same as submit(), also returning the analysis the record was built from."""
        start_time = time.perf_counter()
        channel = channel or self.settings.default_channel

        normalized, analysis = self.analyze(raw, request_id)

        stage = "open_transaction"
        insight: Insight | None = None
        try:
            async with self.components.store.unit_of_work() as tx:
                stage = "resolve_customer"
                with _stage(stage, request_id):
                    customer = await self._resolve_customer(tx, normalized)

                stage = "persist_complaint"
                with _stage(stage, request_id):
                    record = EnrichedComplaint.build(
                        normalized, analysis, customer.customer_id, channel
                    )
                    complaint_id = await tx.insert_complaint(
                        record, dict(raw or {}), analysis.to_metadata()
                    )
                    record = record.model_copy(update={"complaint_id": complaint_id})

                stage = "refresh_customer_stats"
                with _stage(stage, request_id):
                    await tx.refresh_customer_stats(customer.customer_id)

                if analysis.urgency >= self.settings.insight_urgency_threshold:
                    stage = "emit_insight"
                    with _stage(stage, request_id):
                        insight = self.build_insight(record, analysis)
                        await tx.insert_insight(insight)

        except Exception as e:
            duration = time.perf_counter() - start_time
            record_submission(duration, channel, status="error", stage=stage)
            logger.error(f"Complaint submission failed at {stage}: {e}")
            raise PersistenceError(
                "Complaint could not be stored",
                stage=stage,
                detail=f"Complaint could not be stored ({stage})",
            ) from e

        duration = time.perf_counter() - start_time
        record_submission(duration, channel)
        if insight is not None:
            record_insight(insight.kind)
            logger.warning(
                f"Critical complaint {record.complaint_id}: "
                f"urgency {record.urgency} in {analysis.category.category_name}"
            )

        logger.info(
            f"Complaint {record.complaint_id} stored: "
            f"category={analysis.category.category_name}, "
            f"sentiment={analysis.sentiment.label.value}, urgency={analysis.urgency}, "
            f"branch={analysis.branch.branch_name or analysis.branch.outcome.value}, "
            f"duration={duration * 1000:.1f}ms"
        )
        return record, analysis

    async def _resolve_customer(
        self,
        tx: ComplaintTransaction,
        normalized: NormalizedComplaint,
    ) -> Customer:
        """
        Find or create the complaint's customer.

        Customers are deduplicated by exact phone only. Without a phone a
        new anonymous customer is created every time.
        """
        if normalized.phone:
            existing = await tx.find_customer_by_phone(normalized.phone)
            if existing is not None:
                return existing
            return await tx.create_customer(
                normalized.customer_name, normalized.phone, CustomerSegment.NEW
            )
        return await tx.create_customer(
            normalized.customer_name, None, CustomerSegment.ANONYMOUS
        )

    @staticmethod
    def build_insight(complaint: EnrichedComplaint, analysis: ComplaintAnalysis) -> Insight:
        """Critical-complaint insight for an urgent complaint."""
        category = analysis.category.category_name
        return Insight(
            kind=INSIGHT_KIND,
            title=f"Queja crítica: {category}",
            description=(
                f"Se detectó una queja de alta urgencia ({analysis.urgency}/5) "
                f"en categoría {category}"
            ),
            impact="alto",
            probability=0.90,
            suggested_actions=list(INSIGHT_ACTIONS),
            complaint_id=complaint.complaint_id,
            branch_id=complaint.branch_id,
            category_id=complaint.category_id,
        )

    async def get_complaint(self, complaint_id: int) -> EnrichedComplaint | None:
        """Read back a stored complaint."""
        try:
            return await self.components.store.get_complaint(complaint_id)
        except Exception as e:
            logger.error(f"Reading complaint {complaint_id} failed: {e}")
            raise PersistenceError(
                "Complaint could not be read",
                stage="get_complaint",
                detail=f"Complaint {complaint_id} could not be read",
            ) from e

    async def list_complaints(
        self,
        sentiment: SentimentLabel | None = None,
        category_id: int | None = None,
        min_urgency: int | None = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> list[EnrichedComplaint]:
        """Stored complaints matching the filters, newest first."""
        try:
            return await self.components.store.list_complaints(
                sentiment=sentiment,
                category_id=category_id,
                min_urgency=min_urgency,
                limit=limit,
            )
        except Exception as e:
            logger.error(f"Listing complaints failed: {e}")
            raise PersistenceError(
                "Complaints could not be listed",
                stage="list_complaints",
            ) from e

    async def complaint_counts(self) -> dict[str, int] | None:
        """Stored complaint totals, or None when the store cannot be read."""
        try:
            return await self.components.store.count_complaints()
        except Exception as e:
            logger.warning(f"Counting complaints failed: {e}")
            return None

    async def reload_catalog(self) -> CatalogSnapshot:
        """Reload the catalog cache. Raises CatalogUnavailableError on failure."""
        return await self.components.catalog.reload()

    async def check_ready(self) -> dict[str, bool]:
        """Readiness of the catalog and the store."""
        if not self._components:
            return {"catalog": False, "store": False}
        return {
            "catalog": self._components.catalog.is_loaded,
            "store": await self._components.store.check(),
        }
