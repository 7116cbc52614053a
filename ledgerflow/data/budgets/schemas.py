"""Pydantic schemas for budget periods, categories and the period view."""
from typing import Optional, List, Dict
from pydantic import BaseModel, ConfigDict, Field
from decimal import Decimal
from datetime import date

from ledgerflow.data.ledger.schemas import LedgerEntryRead
from ledgerflow.data.obligations.schemas import ObligationWithStatus


class BudgetPeriodRead(BaseModel):
    """A stored budget period (one user, one calendar month)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    year: int
    month: int
    expected_income: Decimal = Decimal("0")


class BudgetCategoryRead(BaseModel):
    """A stored budget category."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    period_id: str
    name: str
    budget_cap: Decimal = Decimal("0")
    is_recurring: bool = False
    display_order: int = 0
    color: Optional[str] = None


class RecurringSummary(BaseModel):
    """Headline figures for the recurring page."""

    monthly_equivalent: Decimal = Field(
        Decimal("0"), description="Active obligations normalized to a monthly cost"
    )
    bills_total: Decimal = Field(Decimal("0"), description="Active bill charges due in the window")
    subscriptions_total: Decimal = Field(
        Decimal("0"), description="Active subscription charges due in the window"
    )
    active_count: int = 0
    status_counts: Dict[str, int] = Field(default_factory=dict)


class PeriodView(BaseModel):
    """A budget period after a sync pass, ready for display."""

    period: BudgetPeriodRead
    window_start: date
    window_end: date
    categories: List[BudgetCategoryRead] = Field(default_factory=list)
    obligations: List[ObligationWithStatus] = Field(default_factory=list)
    entries: List[LedgerEntryRead] = Field(default_factory=list)
    summary: RecurringSummary = Field(default_factory=RecurringSummary)
    created_entry_ids: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
