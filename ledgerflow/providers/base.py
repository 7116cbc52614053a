"""
Data provider interface.

The engine never talks to a database or to demo data directly; it receives a
DataProvider chosen at startup (see ``ledgerflow.providers.get_provider``).

Writes are not committed by the individual methods. Callers group them with
``transaction()`` (commit on success, roll back on any error) and isolate
best-effort steps with ``savepoint()``.
"""
from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ledgerflow.data.budgets.schemas import BudgetCategoryRead, BudgetPeriodRead
from ledgerflow.data.ledger.schemas import LedgerEntryCreate, LedgerEntryRead
from ledgerflow.data.obligations.schemas import ObligationCreate, ObligationRead


class DataProvider(ABC):
    """Storage operations required by the recurring engine."""

    # ==========================================================================
    # Units of work
    # ==========================================================================

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager:
        """Commit everything written inside the block, or nothing."""

    @abstractmethod
    def savepoint(self) -> AbstractAsyncContextManager:
        """Roll back only the writes inside the block if it raises."""

    # ==========================================================================
    # Obligations
    # ==========================================================================

    @abstractmethod
    async def list_user_ids(self) -> List[str]:
        """Every owner with at least one obligation."""

    @abstractmethod
    async def load_obligations(self, user_id: str) -> List[ObligationRead]:
        """All obligations of a user, ordered by next_due_date."""

    @abstractmethod
    async def get_obligation(self, obligation_id: str) -> ObligationRead:
        """Fetch one obligation or raise NotFoundError."""

    @abstractmethod
    async def create_obligation(self, user_id: str, data: ObligationCreate) -> ObligationRead:
        """Insert a new obligation."""

    @abstractmethod
    async def update_obligation(self, obligation_id: str, changes: Dict[str, Any]) -> ObligationRead:
        """Apply already-validated field changes."""

    @abstractmethod
    async def update_obligation_cursor(self, obligation_id: str, new_next_due_date: date) -> bool:
        """Move the due-date cursor. False if the obligation is gone."""

    @abstractmethod
    async def delete_obligation(self, obligation_id: str) -> bool:
        """Delete an obligation. False if it did not exist."""

    # ==========================================================================
    # Budget periods and categories
    # ==========================================================================

    @abstractmethod
    async def get_or_create_period(self, user_id: str, year: int, month: int) -> BudgetPeriodRead:
        """The user's period for a month, created on first access."""

    @abstractmethod
    async def load_categories(self, period_id: str) -> List[BudgetCategoryRead]:
        """Categories of a period ordered by display_order."""

    @abstractmethod
    async def find_recurring_category_id(
        self, user_id: str, year: int, month: int, name: str
    ) -> Optional[str]:
        """Id of a synthetic category in an existing period, without creating anything."""

    @abstractmethod
    async def upsert_category(
        self,
        period_id: str,
        name: str,
        budget_cap: Decimal,
        color: Optional[str] = None,
    ) -> str:
        """Create the synthetic category ``name`` or update its cap. Returns its id."""

    @abstractmethod
    async def unlink_category_entries(self, category_id: str) -> int:
        """Set category_id to null on every entry pointing at the category."""

    @abstractmethod
    async def delete_category(self, category_id: str) -> bool:
        """Delete a category whose entries have already been unlinked."""

    # ==========================================================================
    # Ledger entries
    # ==========================================================================

    @abstractmethod
    async def load_entries_in_range(self, user_id: str, start: date, end: date) -> List[LedgerEntryRead]:
        """Entries dated within [start, end]."""

    @abstractmethod
    async def insert_entry(self, entry: LedgerEntryCreate) -> str:
        """
        Insert an entry and return its id.

        Raises DuplicateEntryError when (obligation_id, entry_date) is taken.
        """

    @abstractmethod
    async def unlink_obligation_entries(self, obligation_id: str) -> int:
        """Set obligation_id to null on every entry tied to the obligation."""
