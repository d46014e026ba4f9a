"""Tests for the in-memory complaint store."""

from datetime import datetime, timezone

import pytest

from complaint_engine.models.catalog import CategoryMatch
from complaint_engine.models.branch import BranchResolution, ResolutionOutcome
from complaint_engine.models.complaint import (
    ComplaintAnalysis,
    EnrichedComplaint,
    NormalizedComplaint,
    SentimentLabel,
    SentimentResult,
)
from complaint_engine.models.customer import CustomerSegment, Insight
from complaint_engine.storage.complaint_store import InMemoryComplaintStore


@pytest.fixture
def store() -> InMemoryComplaintStore:
    return InMemoryComplaintStore()


def make_record(
    customer_id: int,
    text: str = "Comida fría",
    created_at: datetime = datetime(2024, 3, 15, 13, 45, tzinfo=timezone.utc),
    sentiment: SentimentLabel = SentimentLabel.NEGATIVE,
    category_id: int = 1,
    urgency: int = 3,
) -> EnrichedComplaint:
    """Build a complaint record for a customer."""
    normalized = NormalizedComplaint(phone="5512345678", text=text, created_at=created_at)
    analysis = ComplaintAnalysis(
        sentiment=SentimentResult(label=sentiment, score=-0.4),
        category=CategoryMatch(category_id=category_id, category_name="Calidad del Producto"),
        branch=BranchResolution(outcome=ResolutionOutcome.UNSPECIFIED),
        urgency=urgency,
        keywords=["comida", "fría"],
    )
    return EnrichedComplaint.build(normalized, analysis, customer_id, "google_sheets")


class TestCustomers:
    """Tests for customer lookup and creation."""

    @pytest.mark.asyncio
    async def test_create_and_find_by_phone(self, store: InMemoryComplaintStore) -> None:
        """Test a created customer can be found by exact phone."""
        async with store.unit_of_work() as tx:
            created = await tx.create_customer("Ana", "5512345678", CustomerSegment.NEW)
            found = await tx.find_customer_by_phone("5512345678")
            missing = await tx.find_customer_by_phone("5599999999")

        assert found == created
        assert missing is None
        assert created.customer_id == 1
        assert created.total_complaints == 0

    @pytest.mark.asyncio
    async def test_ids_increase(self, store: InMemoryComplaintStore) -> None:
        """Test customer ids are sequential."""
        async with store.unit_of_work() as tx:
            first = await tx.create_customer(None, None, CustomerSegment.ANONYMOUS)
            second = await tx.create_customer(None, None, CustomerSegment.ANONYMOUS)
        assert (first.customer_id, second.customer_id) == (1, 2)


class TestComplaints:
    """Tests for complaint persistence and customer stats."""

    @pytest.mark.asyncio
    async def test_insert_and_read_back(self, store: InMemoryComplaintStore) -> None:
        """Test a complaint is stored with its raw payload and analysis blob."""
        async with store.unit_of_work() as tx:
            customer = await tx.create_customer("Ana", "5512345678", CustomerSegment.NEW)
            complaint_id = await tx.insert_complaint(
                make_record(customer.customer_id), {"Descripción": "Comida fría"}, {"urgency": 3}
            )

        stored = await store.get_complaint(complaint_id)
        assert stored is not None
        assert stored.complaint_id == complaint_id
        assert stored.text == "Comida fría"
        assert store.raw_payload(complaint_id) == {"Descripción": "Comida fría"}
        assert store.analysis(complaint_id) == {"urgency": 3}

    @pytest.mark.asyncio
    async def test_unknown_complaint(self, store: InMemoryComplaintStore) -> None:
        """Test reading a missing complaint."""
        assert await store.get_complaint(42) is None

    @pytest.mark.asyncio
    async def test_complaint_requires_customer(self, store: InMemoryComplaintStore) -> None:
        """Test a complaint for a missing customer is rejected."""
        with pytest.raises(LookupError):
            async with store.unit_of_work() as tx:
                await tx.insert_complaint(make_record(99), {}, {})

    @pytest.mark.asyncio
    async def test_segment_progression(self, store: InMemoryComplaintStore) -> None:
        """Test segments follow the complaint count."""
        segments = []
        async with store.unit_of_work() as tx:
            customer = await tx.create_customer("Ana", "5512345678", CustomerSegment.NEW)
            for _ in range(4):
                await tx.insert_complaint(make_record(customer.customer_id), {}, {})
                updated = await tx.refresh_customer_stats(customer.customer_id)
                segments.append(updated.segment)

        assert segments == [
            CustomerSegment.NEW,
            CustomerSegment.OCCASIONAL,
            CustomerSegment.OCCASIONAL,
            CustomerSegment.FREQUENT,
        ]
        assert store.customers[0].total_complaints == 4

    @pytest.mark.asyncio
    async def test_anonymous_stays_anonymous(self, store: InMemoryComplaintStore) -> None:
        """Test customers without a phone keep the anonymous segment."""
        async with store.unit_of_work() as tx:
            customer = await tx.create_customer(None, None, CustomerSegment.ANONYMOUS)
            await tx.insert_complaint(make_record(customer.customer_id), {}, {})
            await tx.insert_complaint(make_record(customer.customer_id), {}, {})
            updated = await tx.refresh_customer_stats(customer.customer_id)

        assert updated.segment == CustomerSegment.ANONYMOUS
        assert updated.total_complaints == 2

    @pytest.mark.asyncio
    async def test_refresh_unknown_customer(self, store: InMemoryComplaintStore) -> None:
        """Test refreshing stats for a missing customer."""
        with pytest.raises(LookupError):
            async with store.unit_of_work() as tx:
                await tx.refresh_customer_stats(7)


class TestUnitOfWork:
    """Tests for commit and rollback."""

    @pytest.mark.asyncio
    async def test_rollback_on_error(self, store: InMemoryComplaintStore) -> None:
        """Test nothing written in a failed unit of work is kept."""
        with pytest.raises(RuntimeError):
            async with store.unit_of_work() as tx:
                customer = await tx.create_customer("Ana", "5512345678", CustomerSegment.NEW)
                await tx.insert_complaint(make_record(customer.customer_id), {}, {})
                await tx.insert_insight(Insight(title="t", description="d"))
                raise RuntimeError("boom")

        assert store.customers == []
        assert store.complaints == []
        assert store.insights == []

    @pytest.mark.asyncio
    async def test_ids_reused_after_rollback(self, store: InMemoryComplaintStore) -> None:
        """Test counters are restored with the rest of the state."""
        with pytest.raises(RuntimeError):
            async with store.unit_of_work() as tx:
                await tx.create_customer(None, None, CustomerSegment.ANONYMOUS)
                raise RuntimeError("boom")

        async with store.unit_of_work() as tx:
            customer = await tx.create_customer(None, None, CustomerSegment.ANONYMOUS)
        assert customer.customer_id == 1

    @pytest.mark.asyncio
    async def test_commit_keeps_earlier_work(self, store: InMemoryComplaintStore) -> None:
        """Test a failed unit of work does not undo earlier committed ones."""
        async with store.unit_of_work() as tx:
            await tx.create_customer("Ana", "5512345678", CustomerSegment.NEW)

        with pytest.raises(RuntimeError):
            async with store.unit_of_work() as tx:
                await tx.create_customer("Luis", "8112345678", CustomerSegment.NEW)
                raise RuntimeError("boom")

        assert [c.name for c in store.customers] == ["Ana"]

    @pytest.mark.asyncio
    async def test_rollback_restores_updated_customer(self, store: InMemoryComplaintStore) -> None:
        """Test stats refreshed in a failed unit of work revert to the committed values."""
        async with store.unit_of_work() as tx:
            customer = await tx.create_customer("Ana", "5512345678", CustomerSegment.NEW)
            await tx.insert_complaint(make_record(customer.customer_id), {}, {})
            await tx.refresh_customer_stats(customer.customer_id)

        with pytest.raises(RuntimeError):
            async with store.unit_of_work() as tx:
                await tx.insert_complaint(make_record(customer.customer_id), {}, {})
                await tx.refresh_customer_stats(customer.customer_id)
                raise RuntimeError("boom")

        assert store.customers[0].total_complaints == 1
        assert store.customers[0].segment == CustomerSegment.NEW
        assert [c.complaint_id for c in store.complaints] == [1]
        assert store.raw_payload(2) is None
        assert store.analysis(2) is None

    @pytest.mark.asyncio
    async def test_insight_stored(self, store: InMemoryComplaintStore) -> None:
        """Test insights get sequential ids."""
        async with store.unit_of_work() as tx:
            first = await tx.insert_insight(Insight(title="a", description="a"))
            second = await tx.insert_insight(Insight(title="b", description="b"))

        assert (first, second) == (1, 2)
        assert [i.title for i in store.insights] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_check(self, store: InMemoryComplaintStore) -> None:
        """Test the memory store is always ready."""
        assert await store.check() is True


class TestListing:
    """Tests for listing and counting stored complaints."""

    async def fill(self, store: InMemoryComplaintStore) -> None:
        """Store four complaints; ids 2 and 4 share the latest date."""
        async with store.unit_of_work() as tx:
            customer = await tx.create_customer("Ana", "5512345678", CustomerSegment.NEW)
            for day, sentiment, category_id, urgency in [
                (1, SentimentLabel.NEGATIVE, 1, 3),
                (3, SentimentLabel.VERY_NEGATIVE, 2, 5),
                (2, SentimentLabel.NEUTRAL, 1, 1),
                (3, SentimentLabel.NEGATIVE, 1, 4),
            ]:
                record = make_record(
                    customer.customer_id,
                    created_at=datetime(2024, 3, day, tzinfo=timezone.utc),
                    sentiment=sentiment,
                    category_id=category_id,
                    urgency=urgency,
                )
                await tx.insert_complaint(record, {}, {})

    @pytest.mark.asyncio
    async def test_newest_first(self, store: InMemoryComplaintStore) -> None:
        """Test ordering by creation time, later ids first on ties."""
        await self.fill(store)
        listed = await store.list_complaints()
        assert [c.complaint_id for c in listed] == [4, 2, 3, 1]

    @pytest.mark.asyncio
    async def test_filters(self, store: InMemoryComplaintStore) -> None:
        """Test sentiment, category and minimum urgency filters combine."""
        await self.fill(store)

        by_sentiment = await store.list_complaints(sentiment=SentimentLabel.NEGATIVE)
        by_category = await store.list_complaints(category_id=1)
        urgent = await store.list_complaints(min_urgency=4)
        combined = await store.list_complaints(category_id=1, min_urgency=3)

        assert [c.complaint_id for c in by_sentiment] == [4, 1]
        assert [c.complaint_id for c in by_category] == [4, 3, 1]
        assert [c.complaint_id for c in urgent] == [4, 2]
        assert [c.complaint_id for c in combined] == [4, 1]

    @pytest.mark.asyncio
    async def test_limit(self, store: InMemoryComplaintStore) -> None:
        """Test the limit keeps the newest complaints."""
        await self.fill(store)
        listed = await store.list_complaints(limit=2)
        assert [c.complaint_id for c in listed] == [4, 2]

    @pytest.mark.asyncio
    async def test_counts(self, store: InMemoryComplaintStore) -> None:
        """Test complaint totals."""
        assert await store.count_complaints() == {"total": 0, "analyzed": 0, "categorized": 0}
        await self.fill(store)
        assert await store.count_complaints() == {"total": 4, "analyzed": 4, "categorized": 4}
