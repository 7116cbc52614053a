"""
In-memory data provider.

Backs the sample-data mode and the test suite. Units of work snapshot the
whole store and restore it on error, so transaction() and savepoint() have
the same all-or-nothing behavior as the database provider.
"""
import copy
from contextlib import asynccontextmanager
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ledgerflow.data.base import generate_id
from ledgerflow.data.budgets.schemas import BudgetCategoryRead, BudgetPeriodRead
from ledgerflow.data.ledger.schemas import LedgerEntryCreate, LedgerEntryRead
from ledgerflow.data.obligations.schemas import ObligationCreate, ObligationRead
from ledgerflow.errors import DuplicateEntryError, NotFoundError
from ledgerflow.providers.base import DataProvider


class InMemoryProvider(DataProvider):
    """Dict-backed store keyed by id."""

    def __init__(self):
        self.obligations: Dict[str, ObligationRead] = {}
        self.periods: Dict[str, BudgetPeriodRead] = {}
        self.categories: Dict[str, BudgetCategoryRead] = {}
        self.entries: Dict[str, LedgerEntryRead] = {}

    # ==========================================================================
    # Units of work
    # ==========================================================================

    def _snapshot(self):
        return copy.deepcopy((self.obligations, self.periods, self.categories, self.entries))

    def _restore(self, snapshot) -> None:
        self.obligations, self.periods, self.categories, self.entries = snapshot

    @asynccontextmanager
    async def transaction(self):
        snapshot = self._snapshot()
        try:
            yield
        except Exception:
            self._restore(snapshot)
            raise

    @asynccontextmanager
    async def savepoint(self):
        snapshot = self._snapshot()
        try:
            yield
        except Exception:
            self._restore(snapshot)
            raise

    # ==========================================================================
    # Seeding helpers
    # ==========================================================================

    def add_obligation(self, obligation: ObligationRead) -> ObligationRead:
        self.obligations[obligation.id] = obligation
        return obligation

    def add_entry(self, entry: LedgerEntryRead) -> LedgerEntryRead:
        self.entries[entry.id] = entry
        return entry

    def add_category(self, category: BudgetCategoryRead) -> BudgetCategoryRead:
        self.categories[category.id] = category
        return category

    # ==========================================================================
    # Obligations
    # ==========================================================================

    async def list_user_ids(self) -> List[str]:
        return sorted({o.user_id for o in self.obligations.values()})

    async def load_obligations(self, user_id: str) -> List[ObligationRead]:
        owned = [o for o in self.obligations.values() if o.user_id == user_id]
        return sorted(owned, key=lambda o: (o.next_due_date, o.id))

    async def get_obligation(self, obligation_id: str) -> ObligationRead:
        obligation = self.obligations.get(obligation_id)
        if obligation is None:
            raise NotFoundError(f"Obligation {obligation_id} not found", entity_id=obligation_id)
        return obligation

    async def create_obligation(self, user_id: str, data: ObligationCreate) -> ObligationRead:
        obligation = ObligationRead(id=generate_id("rec"), user_id=user_id, **data.model_dump())
        self.obligations[obligation.id] = obligation
        return obligation

    async def update_obligation(self, obligation_id: str, changes: Dict[str, Any]) -> ObligationRead:
        current = await self.get_obligation(obligation_id)
        updated = current.model_copy(update=changes)
        self.obligations[obligation_id] = updated
        return updated

    async def update_obligation_cursor(self, obligation_id: str, new_next_due_date: date) -> bool:
        current = self.obligations.get(obligation_id)
        if current is None:
            return False
        self.obligations[obligation_id] = current.model_copy(update={"next_due_date": new_next_due_date})
        return True

    async def delete_obligation(self, obligation_id: str) -> bool:
        return self.obligations.pop(obligation_id, None) is not None

    # ==========================================================================
    # Budget periods and categories
    # ==========================================================================

    def _find_period(self, user_id: str, year: int, month: int) -> Optional[BudgetPeriodRead]:
        for period in self.periods.values():
            if (period.user_id, period.year, period.month) == (user_id, year, month):
                return period
        return None

    async def get_or_create_period(self, user_id: str, year: int, month: int) -> BudgetPeriodRead:
        period = self._find_period(user_id, year, month)
        if period is None:
            period = BudgetPeriodRead(id=generate_id("alloc"), user_id=user_id, year=year, month=month)
            self.periods[period.id] = period
        return period

    async def load_categories(self, period_id: str) -> List[BudgetCategoryRead]:
        found = [c for c in self.categories.values() if c.period_id == period_id]
        return sorted(found, key=lambda c: (c.display_order, c.name))

    async def find_recurring_category_id(
        self, user_id: str, year: int, month: int, name: str
    ) -> Optional[str]:
        period = self._find_period(user_id, year, month)
        if period is None:
            return None
        for category in self.categories.values():
            if category.period_id == period.id and category.name == name and category.is_recurring:
                return category.id
        return None

    async def upsert_category(
        self,
        period_id: str,
        name: str,
        budget_cap: Decimal,
        color: Optional[str] = None,
    ) -> str:
        for category in self.categories.values():
            if category.period_id == period_id and category.name == name and category.is_recurring:
                if category.budget_cap != budget_cap:
                    self.categories[category.id] = category.model_copy(update={"budget_cap": budget_cap})
                return category.id

        category = BudgetCategoryRead(
            id=generate_id("cat"),
            period_id=period_id,
            name=name,
            budget_cap=budget_cap,
            is_recurring=True,
            display_order=sum(1 for c in self.categories.values() if c.period_id == period_id),
            color=color,
        )
        self.categories[category.id] = category
        return category.id

    async def unlink_category_entries(self, category_id: str) -> int:
        count = 0
        for entry_id, entry in list(self.entries.items()):
            if entry.category_id == category_id:
                self.entries[entry_id] = entry.model_copy(update={"category_id": None})
                count += 1
        return count

    async def delete_category(self, category_id: str) -> bool:
        return self.categories.pop(category_id, None) is not None

    # ==========================================================================
    # Ledger entries
    # ==========================================================================

    async def load_entries_in_range(self, user_id: str, start: date, end: date) -> List[LedgerEntryRead]:
        found = [
            e for e in self.entries.values()
            if e.user_id == user_id and start <= e.entry_date <= end
        ]
        return sorted(found, key=lambda e: (e.entry_date, e.id))

    async def insert_entry(self, entry: LedgerEntryCreate) -> str:
        if entry.obligation_id is not None:
            for existing in self.entries.values():
                if (existing.obligation_id, existing.entry_date) == (entry.obligation_id, entry.entry_date):
                    raise DuplicateEntryError(
                        f"Entry for obligation {entry.obligation_id} on {entry.entry_date} already exists",
                        entity_id=entry.obligation_id,
                    )
        row = LedgerEntryRead(id=generate_id("txn"), **entry.model_dump())
        self.entries[row.id] = row
        return row.id

    async def unlink_obligation_entries(self, obligation_id: str) -> int:
        count = 0
        for entry_id, entry in list(self.entries.items()):
            if entry.obligation_id == obligation_id:
                self.entries[entry_id] = entry.model_copy(update={"obligation_id": None})
                count += 1
        return count
