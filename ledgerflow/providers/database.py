"""SQLAlchemy-backed data provider."""
from contextlib import asynccontextmanager
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerflow.data.base import generate_id
from ledgerflow.data.budgets.schemas import BudgetCategoryRead, BudgetPeriodRead
from ledgerflow.data.ledger.schemas import LedgerEntryCreate, LedgerEntryRead
from ledgerflow.data.obligations.schemas import ObligationCreate, ObligationRead
from ledgerflow.errors import DuplicateEntryError, NotFoundError, PersistenceError
from ledgerflow.models import BudgetCategory, BudgetPeriod, LedgerEntry, RecurringObligation
from ledgerflow.providers.base import DataProvider

logger = logging.getLogger(__name__)


def _is_occurrence_conflict(exc: IntegrityError) -> bool:
    """True when an insert hit the (obligation_id, entry_date) unique constraint."""
    message = str(exc.orig).lower()
    return "uq_ledger_entries_obligation_date" in message or (
        "unique" in message and "obligation_id" in message
    )


def _column_value(value: Any) -> Any:
    """Store enum members by value."""
    return getattr(value, "value", value)


class DatabaseProvider(DataProvider):
    """Reads and writes through an AsyncSession. Never commits outside transaction()."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==========================================================================
    # Units of work
    # ==========================================================================

    @asynccontextmanager
    async def transaction(self):
        try:
            yield
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError(f"Transaction rolled back: {e}") from e
        except Exception:
            await self.db.rollback()
            raise

    @asynccontextmanager
    async def savepoint(self):
        try:
            async with self.db.begin_nested():
                yield
        except SQLAlchemyError as e:
            raise PersistenceError(f"Savepoint rolled back: {e}") from e

    # ==========================================================================
    # Obligations
    # ==========================================================================

    async def list_user_ids(self) -> List[str]:
        result = await self.db.execute(
            select(RecurringObligation.user_id).distinct().order_by(RecurringObligation.user_id)
        )
        return list(result.scalars().all())

    async def load_obligations(self, user_id: str) -> List[ObligationRead]:
        result = await self.db.execute(
            select(RecurringObligation)
            .where(RecurringObligation.user_id == user_id)
            .order_by(RecurringObligation.next_due_date, RecurringObligation.id)
        )
        return [ObligationRead.model_validate(row) for row in result.scalars().all()]

    async def _get_obligation_row(self, obligation_id: str) -> RecurringObligation:
        row = await self.db.get(RecurringObligation, obligation_id)
        if row is None:
            raise NotFoundError(f"Obligation {obligation_id} not found", entity_id=obligation_id)
        return row

    async def get_obligation(self, obligation_id: str) -> ObligationRead:
        row = await self._get_obligation_row(obligation_id)
        return ObligationRead.model_validate(row)

    async def create_obligation(self, user_id: str, data: ObligationCreate) -> ObligationRead:
        row = RecurringObligation(
            id=generate_id("rec"),
            user_id=user_id,
            **{key: _column_value(value) for key, value in data.model_dump().items()},
        )
        self.db.add(row)
        await self.db.flush()
        await self.db.refresh(row)
        return ObligationRead.model_validate(row)

    async def update_obligation(self, obligation_id: str, changes: Dict[str, Any]) -> ObligationRead:
        row = await self._get_obligation_row(obligation_id)
        for field, value in changes.items():
            setattr(row, field, _column_value(value))
        await self.db.flush()
        await self.db.refresh(row)
        return ObligationRead.model_validate(row)

    async def update_obligation_cursor(self, obligation_id: str, new_next_due_date: date) -> bool:
        result = await self.db.execute(
            update(RecurringObligation)
            .where(RecurringObligation.id == obligation_id)
            .values(next_due_date=new_next_due_date)
        )
        return result.rowcount > 0

    async def delete_obligation(self, obligation_id: str) -> bool:
        result = await self.db.execute(
            delete(RecurringObligation).where(RecurringObligation.id == obligation_id)
        )
        return result.rowcount > 0

    # ==========================================================================
    # Budget periods and categories
    # ==========================================================================

    async def _find_period(self, user_id: str, year: int, month: int) -> Optional[BudgetPeriod]:
        result = await self.db.execute(
            select(BudgetPeriod).where(
                BudgetPeriod.user_id == user_id,
                BudgetPeriod.year == year,
                BudgetPeriod.month == month,
            )
        )
        return result.scalar_one_or_none()

    async def get_or_create_period(self, user_id: str, year: int, month: int) -> BudgetPeriodRead:
        period = await self._find_period(user_id, year, month)
        if period is not None:
            return BudgetPeriodRead.model_validate(period)

        period = BudgetPeriod(
            id=generate_id("alloc"),
            user_id=user_id,
            year=year,
            month=month,
            expected_income=Decimal("0"),
        )
        try:
            async with self.db.begin_nested():
                self.db.add(period)
        except IntegrityError:
            # Another request opened the same month first
            period = await self._find_period(user_id, year, month)
            if period is None:
                raise
        return BudgetPeriodRead.model_validate(period)

    async def load_categories(self, period_id: str) -> List[BudgetCategoryRead]:
        result = await self.db.execute(
            select(BudgetCategory)
            .where(BudgetCategory.period_id == period_id)
            .order_by(BudgetCategory.display_order, BudgetCategory.name)
        )
        return [BudgetCategoryRead.model_validate(row) for row in result.scalars().all()]

    async def find_recurring_category_id(
        self, user_id: str, year: int, month: int, name: str
    ) -> Optional[str]:
        result = await self.db.execute(
            select(BudgetCategory.id)
            .join(BudgetPeriod, BudgetCategory.period_id == BudgetPeriod.id)
            .where(
                BudgetPeriod.user_id == user_id,
                BudgetPeriod.year == year,
                BudgetPeriod.month == month,
                BudgetCategory.name == name,
                BudgetCategory.is_recurring == True,
            )
        )
        return result.scalars().first()

    async def _find_recurring_category(self, period_id: str, name: str) -> Optional[BudgetCategory]:
        result = await self.db.execute(
            select(BudgetCategory).where(
                BudgetCategory.period_id == period_id,
                BudgetCategory.name == name,
                BudgetCategory.is_recurring == True,
            )
        )
        return result.scalars().first()

    async def upsert_category(
        self,
        period_id: str,
        name: str,
        budget_cap: Decimal,
        color: Optional[str] = None,
    ) -> str:
        category = await self._find_recurring_category(period_id, name)

        if category is None:
            count_result = await self.db.execute(
                select(func.count()).select_from(BudgetCategory).where(BudgetCategory.period_id == period_id)
            )
            created = BudgetCategory(
                id=generate_id("cat"),
                period_id=period_id,
                name=name,
                budget_cap=budget_cap,
                is_recurring=True,
                display_order=count_result.scalar() or 0,
                color=color,
            )
            try:
                async with self.db.begin_nested():
                    self.db.add(created)
                return created.id
            except IntegrityError:
                # Another request created the category first
                category = await self._find_recurring_category(period_id, name)
                if category is None:
                    raise

        if category.budget_cap != budget_cap:
            category.budget_cap = budget_cap
            await self.db.flush()
        return category.id

    async def unlink_category_entries(self, category_id: str) -> int:
        result = await self.db.execute(
            update(LedgerEntry)
            .where(LedgerEntry.category_id == category_id)
            .values(category_id=None)
        )
        return result.rowcount

    async def delete_category(self, category_id: str) -> bool:
        result = await self.db.execute(
            delete(BudgetCategory).where(BudgetCategory.id == category_id)
        )
        return result.rowcount > 0

    # ==========================================================================
    # Ledger entries
    # ==========================================================================

    async def load_entries_in_range(self, user_id: str, start: date, end: date) -> List[LedgerEntryRead]:
        result = await self.db.execute(
            select(LedgerEntry)
            .where(
                LedgerEntry.user_id == user_id,
                LedgerEntry.entry_date >= start,
                LedgerEntry.entry_date <= end,
            )
            .order_by(LedgerEntry.entry_date, LedgerEntry.id)
        )
        return [LedgerEntryRead.model_validate(row) for row in result.scalars().all()]

    async def insert_entry(self, entry: LedgerEntryCreate) -> str:
        row = LedgerEntry(
            id=generate_id("txn"),
            **{key: _column_value(value) for key, value in entry.model_dump().items()},
        )
        try:
            async with self.db.begin_nested():
                self.db.add(row)
        except IntegrityError as e:
            if entry.obligation_id is not None and _is_occurrence_conflict(e):
                raise DuplicateEntryError(
                    f"Entry for obligation {entry.obligation_id} on {entry.entry_date} already exists",
                    entity_id=entry.obligation_id,
                ) from e
            raise PersistenceError(f"Could not insert entry '{entry.name}': {e}") from e
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not insert entry '{entry.name}': {e}") from e
        return row.id

    async def unlink_obligation_entries(self, obligation_id: str) -> int:
        result = await self.db.execute(
            update(LedgerEntry)
            .where(LedgerEntry.obligation_id == obligation_id)
            .values(obligation_id=None)
        )
        return result.rowcount
