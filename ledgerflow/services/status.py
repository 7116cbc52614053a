"""
Status Classifier - payment status of an obligation within a budget period.

Pure: "today" and the window end are passed in, entries are already loaded.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Set

from ledgerflow.services.matching import EntryMatcher
from ledgerflow.services.occurrences import coerce_date, next_step
from ledgerflow.types import PaymentStatus


@dataclass
class ObligationStatus:
    """Result of classifying one obligation."""
    obligation_id: str
    status: PaymentStatus
    paid_amount: Decimal
    paid_count: int
    occurrences_count: int
    display_due_date: date
    match_strategy: Optional[str] = None
    matched_entry_ids: List[str] = field(default_factory=list)
    heuristic_match: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Fields merged onto the obligation for display."""
        return {
            "status": self.status,
            "paid_amount": self.paid_amount,
            "paid_count": self.paid_count,
            "occurrences_count": self.occurrences_count,
            "display_due_date": self.display_due_date,
            "match_strategy": self.match_strategy,
            "matched_entry_ids": self.matched_entry_ids,
        }


def due_dates_through(obligation, window_end: date) -> List[date]:
    """Dates from the cursor onward, one billing step apart, up to ``window_end``."""
    dates = []
    current = obligation.next_due_date
    while current is not None and current <= window_end:
        dates.append(current)
        current = next_step(current, obligation.billing_period)
    return dates


def classify(
    obligation,
    entries_this_month: Iterable,
    today: Any,
    window_end: Any,
    matcher: Optional[EntryMatcher] = None,
    exclude_ids: Optional[Set[str]] = None,
) -> ObligationStatus:
    """
    Classify an obligation as paid, partial, overdue, due_today or upcoming.

    Args:
        obligation: The obligation record
        entries_this_month: Ledger entries inside the period's window
        today: Current calendar date (time of day is ignored)
        window_end: Last day of the period's window
        matcher: Entry matcher; defaults to the configured ranked matcher
        exclude_ids: Entries already claimed by another obligation

    Returns:
        ObligationStatus with counts and the display due date
    """
    today = coerce_date(today)
    window_end = coerce_date(window_end)
    matcher = matcher or EntryMatcher()

    due_dates = due_dates_through(obligation, window_end)
    match = matcher.match(obligation, entries_this_month, limit=len(due_dates), exclude_ids=exclude_ids)

    paid_amount = sum((abs(Decimal(e.amount)) for e in match.entries), Decimal("0"))
    paid_count = len(match.entries)
    paid_dates = {e.entry_date for e in match.entries}

    future_count = sum(1 for d in due_dates if d not in paid_dates)

    due = obligation.next_due_date
    if paid_amount >= Decimal(obligation.amount) and future_count == 0:
        status = PaymentStatus.PAID
    elif paid_amount > 0:
        status = PaymentStatus.PARTIAL
    elif today > due:
        status = PaymentStatus.OVERDUE
    elif today == due:
        status = PaymentStatus.DUE_TODAY
    else:
        status = PaymentStatus.UPCOMING

    # Display only; the stored cursor is never moved here
    display_due_date = due
    if due in paid_dates:
        display_due_date = next_step(due, obligation.billing_period) or due

    return ObligationStatus(
        obligation_id=obligation.id,
        status=status,
        paid_amount=paid_amount,
        paid_count=paid_count,
        occurrences_count=paid_count + future_count,
        display_due_date=display_due_date,
        match_strategy=match.strategy,
        matched_entry_ids=match.entry_ids,
        heuristic_match=match.heuristic,
    )
