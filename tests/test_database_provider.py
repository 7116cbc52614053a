"""
Tests for the SQLAlchemy data provider.

Runs against an in-memory SQLite database through aiosqlite, so the
(obligation_id, entry_date) constraint, savepoints and commits are real.
"""

import pytest
import pytest_asyncio
from datetime import date
from decimal import Decimal
from unittest.mock import patch

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ledgerflow.data.ledger.schemas import LedgerEntryCreate
from ledgerflow.data.obligations.schemas import ObligationCreate
from ledgerflow.database import Base, configure_sqlite
from ledgerflow.engines.pipeline import RecurringEngine
from ledgerflow.errors import DuplicateEntryError, NotFoundError, PersistenceError
from ledgerflow.models import BudgetCategory
from ledgerflow.providers.database import DatabaseProvider
from ledgerflow.services.matching import EntryMatcher
from ledgerflow.types import BillingPeriod, EntrySource, ObligationGroup, PaymentStatus


USER_ID = "user-db-1"


# =============================================================================
# Fixtures
# =============================================================================

@pytest_asyncio.fixture
async def session():
    """Fresh in-memory database per test."""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    configure_sqlite(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as db:
        yield db

    await engine.dispose()


@pytest.fixture
def db_provider(session):
    return DatabaseProvider(session)


def obligation_data(**overrides) -> ObligationCreate:
    data = {
        "name": "Rent",
        "amount": Decimal("1200.00"),
        "billing_period": BillingPeriod.MONTHLY,
        "next_due_date": date(2024, 1, 1),
        "group": ObligationGroup.BILL,
    }
    data.update(overrides)
    return ObligationCreate(**data)


def recurring_entry(obligation_id: str, entry_date: date) -> LedgerEntryCreate:
    return LedgerEntryCreate(
        user_id=USER_ID,
        name="Rent",
        amount=Decimal("-1200.00"),
        entry_date=entry_date,
        source=EntrySource.RECURRING,
        obligation_id=obligation_id,
    )


# =============================================================================
# Provider operations
# =============================================================================

class TestDatabaseProvider:
    """Tests for DatabaseProvider against SQLite."""

    @pytest.mark.asyncio
    async def test_create_and_load_obligation(self, db_provider):
        async with db_provider.transaction():
            created = await db_provider.create_obligation(USER_ID, obligation_data())

        loaded = await db_provider.load_obligations(USER_ID)

        assert [o.id for o in loaded] == [created.id]
        assert loaded[0].billing_period == BillingPeriod.MONTHLY
        assert loaded[0].group == ObligationGroup.BILL
        assert loaded[0].amount == Decimal("1200.00")
        assert await db_provider.list_user_ids() == [USER_ID]

    @pytest.mark.asyncio
    async def test_get_missing_obligation(self, db_provider):
        with pytest.raises(NotFoundError):
            await db_provider.get_obligation("rec_missing")

    @pytest.mark.asyncio
    async def test_duplicate_occurrence_rejected(self, db_provider):
        async with db_provider.transaction():
            rent = await db_provider.create_obligation(USER_ID, obligation_data())
            await db_provider.insert_entry(recurring_entry(rent.id, date(2024, 1, 1)))

        async with db_provider.transaction():
            with pytest.raises(DuplicateEntryError):
                await db_provider.insert_entry(recurring_entry(rent.id, date(2024, 1, 1)))
            # The failed insert only rolled back its own savepoint
            await db_provider.insert_entry(recurring_entry(rent.id, date(2024, 2, 1)))

        entries = await db_provider.load_entries_in_range(USER_ID, date(2024, 1, 1), date(2024, 12, 31))
        assert [e.entry_date for e in entries] == [date(2024, 1, 1), date(2024, 2, 1)]

    @pytest.mark.asyncio
    async def test_manual_entries_without_obligation_never_collide(self, db_provider):
        async with db_provider.transaction():
            for _ in range(2):
                await db_provider.insert_entry(
                    LedgerEntryCreate(user_id=USER_ID, name="Coffee", amount=Decimal("-4.50"),
                                      entry_date=date(2024, 1, 3))
                )

        entries = await db_provider.load_entries_in_range(USER_ID, date(2024, 1, 1), date(2024, 1, 31))
        assert len(entries) == 2

    @pytest.mark.asyncio
    async def test_transaction_rolls_back_on_error(self, db_provider):
        with pytest.raises(RuntimeError):
            async with db_provider.transaction():
                await db_provider.create_obligation(USER_ID, obligation_data())
                raise RuntimeError("boom")

        assert await db_provider.load_obligations(USER_ID) == []

    @pytest.mark.asyncio
    async def test_period_created_once(self, db_provider):
        async with db_provider.transaction():
            first = await db_provider.get_or_create_period(USER_ID, 2024, 1)
        async with db_provider.transaction():
            second = await db_provider.get_or_create_period(USER_ID, 2024, 1)

        assert first.id == second.id

    @pytest.mark.asyncio
    async def test_category_upsert_unlink_delete(self, db_provider):
        async with db_provider.transaction():
            period = await db_provider.get_or_create_period(USER_ID, 2024, 1)
            category_id = await db_provider.upsert_category(period.id, "Bills", Decimal("100.00"), color="#ef4444")
            same_id = await db_provider.upsert_category(period.id, "Bills", Decimal("150.00"))
            await db_provider.insert_entry(
                LedgerEntryCreate(user_id=USER_ID, name="Power", amount=Decimal("-50.00"),
                                  entry_date=date(2024, 1, 9), category_id=category_id)
            )

        assert same_id == category_id
        categories = await db_provider.load_categories(period.id)
        assert categories[0].budget_cap == Decimal("150.00")
        assert await db_provider.find_recurring_category_id(USER_ID, 2024, 1, "Bills") == category_id
        assert await db_provider.find_recurring_category_id(USER_ID, 2024, 2, "Bills") is None

        async with db_provider.transaction():
            assert await db_provider.unlink_category_entries(category_id) == 1
            assert await db_provider.delete_category(category_id) is True

        assert await db_provider.load_categories(period.id) == []
        entries = await db_provider.load_entries_in_range(USER_ID, date(2024, 1, 1), date(2024, 1, 31))
        assert entries[0].category_id is None

    @pytest.mark.asyncio
    async def test_one_recurring_category_per_name(self, db_provider, session):
        async with db_provider.transaction():
            period = await db_provider.get_or_create_period(USER_ID, 2024, 1)
            await db_provider.upsert_category(period.id, "Bills", Decimal("100.00"))

        with pytest.raises(PersistenceError):
            async with db_provider.transaction():
                session.add(BudgetCategory(
                    id="cat_dup", period_id=period.id, name="Bills", budget_cap=Decimal("5.00"), is_recurring=True,
                ))

        # A user category may share the name
        async with db_provider.transaction():
            session.add(BudgetCategory(
                id="cat_user", period_id=period.id, name="Bills", budget_cap=Decimal("5.00"), is_recurring=False,
            ))

        categories = await db_provider.load_categories(period.id)
        assert sorted((c.name, c.is_recurring) for c in categories) == [("Bills", False), ("Bills", True)]

    @pytest.mark.asyncio
    async def test_upsert_category_loses_race(self, db_provider):
        """A concurrent insert of the same category updates the winner's cap."""
        async with db_provider.transaction():
            period = await db_provider.get_or_create_period(USER_ID, 2024, 1)
            winner_id = await db_provider.upsert_category(period.id, "Bills", Decimal("100.00"))

        original = db_provider._find_recurring_category
        lookups = []

        async def stale_first_lookup(period_id, name):
            lookups.append(name)
            if len(lookups) == 1:
                return None
            return await original(period_id, name)

        with patch.object(db_provider, "_find_recurring_category", side_effect=stale_first_lookup):
            async with db_provider.transaction():
                category_id = await db_provider.upsert_category(period.id, "Bills", Decimal("250.00"))

        assert category_id == winner_id
        assert len(lookups) == 2
        categories = await db_provider.load_categories(period.id)
        assert [(c.id, c.budget_cap) for c in categories] == [(winner_id, Decimal("250.00"))]

    @pytest.mark.asyncio
    async def test_cursor_update(self, db_provider):
        async with db_provider.transaction():
            rent = await db_provider.create_obligation(USER_ID, obligation_data())
            assert await db_provider.update_obligation_cursor(rent.id, date(2024, 3, 1)) is True
            assert await db_provider.update_obligation_cursor("rec_missing", date(2024, 3, 1)) is False

        assert (await db_provider.get_obligation(rent.id)).next_due_date == date(2024, 3, 1)


# =============================================================================
# Engine over the database
# =============================================================================

class TestEngineOnDatabase:
    """End-to-end passes through RecurringEngine with a real session."""

    @pytest.fixture
    def engine(self, db_provider):
        return RecurringEngine(
            db_provider, matcher=EntryMatcher(fuzzy_enabled=False), today_provider=lambda: date(2024, 1, 20)
        )

    @pytest.mark.asyncio
    async def test_open_period_twice(self, db_provider, engine):
        async with db_provider.transaction():
            rent = await db_provider.create_obligation(USER_ID, obligation_data())

        first = await engine.open_period(USER_ID, 2024, 1)
        second = await engine.open_period(USER_ID, 2024, 1)

        assert first.errors == []
        assert len(first.created_entry_ids) == 1
        assert second.created_entry_ids == []
        assert second.obligations[0].status == PaymentStatus.PAID
        assert [c.name for c in second.categories] == ["Bills"]
        assert second.categories[0].budget_cap == Decimal("1200.00")
        assert second.entries[0].obligation_id == rent.id

    @pytest.mark.asyncio
    async def test_pay_future_and_delete(self, db_provider, engine):
        async with db_provider.transaction():
            netflix = await db_provider.create_obligation(
                USER_ID,
                obligation_data(name="Netflix", amount=Decimal("15.00"), next_due_date=date(2024, 1, 25),
                                group=ObligationGroup.SUBSCRIPTION),
            )

        result = await engine.schedule_payments(netflix.id, 3)

        assert result.success is True
        assert result.new_next_due_date == date(2024, 4, 25)
        assert (await db_provider.get_obligation(netflix.id)).next_due_date == date(2024, 4, 25)

        assert await engine.delete_obligation(netflix.id) is True

        entries = await db_provider.load_entries_in_range(USER_ID, date(2024, 1, 1), date(2024, 12, 31))
        assert len(entries) == 3
        assert all(e.obligation_id is None for e in entries)
        assert await db_provider.load_obligations(USER_ID) == []
