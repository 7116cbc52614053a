"""Shared test fixtures and configuration for ledgerflow tests."""
import pytest
from datetime import date
from decimal import Decimal
from typing import Optional

from ledgerflow.data.base import generate_id
from ledgerflow.data.budgets.schemas import BudgetCategoryRead, BudgetPeriodRead
from ledgerflow.data.ledger.schemas import LedgerEntryRead
from ledgerflow.data.obligations.schemas import ObligationRead
from ledgerflow.providers.memory import InMemoryProvider
from ledgerflow.types import BillingPeriod, EntrySource, ObligationGroup

# Configure pytest-asyncio
pytest_plugins = ('pytest_asyncio',)

USER_ID = "user-test-123"


def make_obligation(
    name: str = "Netflix",
    amount: str = "15.00",
    billing_period: BillingPeriod = BillingPeriod.MONTHLY,
    next_due_date: date = date(2024, 1, 15),
    group: ObligationGroup = ObligationGroup.SUBSCRIPTION,
    is_active: bool = True,
    is_automated: bool = True,
    user_id: str = USER_ID,
    obligation_id: Optional[str] = None,
) -> ObligationRead:
    """Build an obligation record without touching a provider."""
    return ObligationRead(
        id=obligation_id or generate_id("rec"),
        user_id=user_id,
        name=name,
        amount=Decimal(amount),
        billing_period=billing_period,
        next_due_date=next_due_date,
        group=group,
        is_active=is_active,
        is_automated=is_automated,
    )


def make_entry(
    name: str,
    amount: str,
    entry_date: date,
    obligation_id: Optional[str] = None,
    source: EntrySource = EntrySource.MANUAL,
    category_id: Optional[str] = None,
    user_id: str = USER_ID,
    entry_id: Optional[str] = None,
) -> LedgerEntryRead:
    """Build a ledger entry record without touching a provider."""
    return LedgerEntryRead(
        id=entry_id or generate_id("txn"),
        user_id=user_id,
        name=name,
        amount=Decimal(amount),
        entry_date=entry_date,
        obligation_id=obligation_id,
        source=source,
        category_id=category_id,
    )


def make_period(year: int = 2024, month: int = 1, user_id: str = USER_ID) -> BudgetPeriodRead:
    return BudgetPeriodRead(id=generate_id("alloc"), user_id=user_id, year=year, month=month)


def make_category(period_id: str, name: str, budget_cap: str, is_recurring: bool = True) -> BudgetCategoryRead:
    return BudgetCategoryRead(
        id=generate_id("cat"),
        period_id=period_id,
        name=name,
        budget_cap=Decimal(budget_cap),
        is_recurring=is_recurring,
    )


@pytest.fixture
def provider():
    """Empty in-memory provider."""
    return InMemoryProvider()


@pytest.fixture
def netflix():
    """Monthly subscription due on the 15th."""
    return make_obligation()


@pytest.fixture
def rent():
    """Monthly bill due on the 1st."""
    return make_obligation(
        name="Rent",
        amount="1200.00",
        next_due_date=date(2024, 1, 1),
        group=ObligationGroup.BILL,
    )
