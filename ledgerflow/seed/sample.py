"""
Sample Data Seed

Demo household used when DATA_PROVIDER=sample:
- 4 monthly obligations (rent, electricity paid by hand, two streaming services)
- a biweekly gym membership and a yearly car insurance premium
- a paused weekly lawn service
- a few manual ledger entries, one of which pays the electricity bill

Dates are relative to today so the demo always has something overdue,
something paid and something upcoming.
"""
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional
import logging

from ledgerflow.data.base import generate_id
from ledgerflow.data.ledger.schemas import LedgerEntryRead
from ledgerflow.data.obligations.schemas import ObligationRead
from ledgerflow.providers.memory import InMemoryProvider
from ledgerflow.services.occurrences import clamp_day
from ledgerflow.types import BillingPeriod, EntrySource, ObligationGroup

logger = logging.getLogger(__name__)

SAMPLE_USER_ID = "user_sample"


def day_this_month(day: int, today: date) -> date:
    """A day of the current month, clamped to its length."""
    return clamp_day(today.year, today.month, day)


def _obligation(
    name: str,
    amount: str,
    billing_period: BillingPeriod,
    next_due_date: date,
    group: ObligationGroup,
    is_active: bool = True,
    is_automated: bool = True,
    service_provider: Optional[str] = None,
) -> ObligationRead:
    return ObligationRead(
        id=generate_id("rec"),
        user_id=SAMPLE_USER_ID,
        name=name,
        amount=Decimal(amount),
        billing_period=billing_period,
        next_due_date=next_due_date,
        group=group,
        is_active=is_active,
        is_automated=is_automated,
        service_provider=service_provider,
    )


def seed_sample_data(provider: InMemoryProvider, today: Optional[date] = None) -> str:
    """
    Load the demo household into ``provider``.

    Returns:
        The sample user id
    """
    today = today or date.today()

    obligations = [
        _obligation("Rent", "1450.00", BillingPeriod.MONTHLY, day_this_month(1, today), ObligationGroup.BILL),
        _obligation(
            "Electricity", "84.20", BillingPeriod.MONTHLY, day_this_month(12, today), ObligationGroup.BILL,
            is_automated=False, service_provider="City Power",
        ),
        _obligation(
            "Netflix", "15.49", BillingPeriod.MONTHLY, day_this_month(18, today), ObligationGroup.SUBSCRIPTION,
            service_provider="Netflix",
        ),
        _obligation(
            "Spotify", "10.99", BillingPeriod.MONTHLY, day_this_month(25, today), ObligationGroup.SUBSCRIPTION,
            service_provider="Spotify",
        ),
        _obligation(
            "Gym Membership", "24.00", BillingPeriod.BIWEEKLY, day_this_month(3, today), ObligationGroup.SUBSCRIPTION,
        ),
        _obligation(
            "Car Insurance", "780.00", BillingPeriod.YEARLY, day_this_month(20, today), ObligationGroup.BILL,
            service_provider="Acme Mutual",
        ),
        _obligation(
            "Lawn Service", "35.00", BillingPeriod.WEEKLY, today + timedelta(days=2), ObligationGroup.BILL,
            is_active=False,
        ),
    ]
    for obligation in obligations:
        provider.add_obligation(obligation)

    entries = [
        ("Grocery run", "-96.35", max(day_this_month(2, today), today - timedelta(days=10))),
        ("City Power electricity bill", "-84.20", day_this_month(min(today.day, 12), today)),
        ("Coffee", "-4.50", today),
    ]
    for name, amount, entry_date in entries:
        provider.add_entry(
            LedgerEntryRead(
                id=generate_id("txn"),
                user_id=SAMPLE_USER_ID,
                name=name,
                amount=Decimal(amount),
                entry_date=entry_date,
                source=EntrySource.MANUAL,
            )
        )

    logger.info(
        f"Seeded sample data for {SAMPLE_USER_ID}: {len(obligations)} obligations, {len(entries)} entries"
    )
    return SAMPLE_USER_ID
