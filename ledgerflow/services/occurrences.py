"""
Occurrence Generator - calendar arithmetic for recurring obligations.

Every function here is pure: nothing reads the clock. Deciding whether an
occurrence is due yet belongs to the status classifier and the
reconciliation engine.

Dates are plain ``datetime.date`` values (no time of day, no timezone), so
day clamping and period stepping cannot drift across midnight or DST.
"""
import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, List, Optional

from dateutil.relativedelta import relativedelta

from ledgerflow.errors import ValidationError
from ledgerflow.types import BillingPeriod


# Fixed-length periods, in days
STEP_DAYS = {
    BillingPeriod.WEEKLY: 7,
    BillingPeriod.BIWEEKLY: 14,
}


def coerce_period(value: Any) -> BillingPeriod:
    """Parse a billing period, rejecting anything outside the four supported values."""
    try:
        return BillingPeriod(value)
    except ValueError:
        raise ValidationError(f"Unknown billing period: {value!r}")


def coerce_date(value: Any) -> date:
    """
    Reduce a value to its calendar date.

    Accepts ``date``, ``datetime`` (time and tzinfo dropped) and ISO strings
    such as ``2024-01-31`` or ``2024-01-31T23:30:00Z`` (only the date part is
    read, so a late-evening timestamp never rolls into the next day).
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip().split("T")[0])
        except ValueError:
            raise ValidationError(f"Invalid calendar date: {value!r}")
    raise ValidationError(f"Invalid calendar date: {value!r}")


def clamp_day(year: int, month: int, day: int) -> date:
    """Build a date, clamping the day to the last day of the month."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


@dataclass(frozen=True)
class Window:
    """Inclusive calendar range, normally one month."""
    start: date
    end: date

    def __post_init__(self):
        if self.start > self.end:
            raise ValidationError(f"Window start {self.start} is after end {self.end}")

    @classmethod
    def for_month(cls, year: int, month: int) -> "Window":
        """Window covering the whole of ``year``-``month``."""
        if not 1 <= month <= 12:
            raise ValidationError(f"Invalid month: {month}")
        try:
            return cls(date(year, month, 1), clamp_day(year, month, 31))
        except ValueError:
            raise ValidationError(f"Invalid year: {year}")

    @classmethod
    def containing(cls, day: date) -> "Window":
        """Calendar-month window that contains ``day``."""
        return cls.for_month(day.year, day.month)

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


def step(current: date, period: Any) -> date:
    """
    Advance a due date by one billing period.

    monthly: same day next month, clamped (Jan 31 -> Feb 28/29)
    yearly: same month/day next year (Feb 29 -> Feb 28)
    weekly / biweekly: +7 / +14 days

    Raises:
        ValidationError: If the next due date would fall after ``date.max``
    """
    period = coerce_period(period)
    try:
        if period == BillingPeriod.MONTHLY:
            return current + relativedelta(months=1)
        if period == BillingPeriod.YEARLY:
            return current + relativedelta(years=1)
        return current + timedelta(days=STEP_DAYS[period])
    except (ValueError, OverflowError):
        raise ValidationError(f"No {period.value} due date after {current}: past the end of the calendar")


def next_step(current: date, period: Any) -> Optional[date]:
    """Like ``step``, but None once the calendar has run out."""
    period = coerce_period(period)
    try:
        return step(current, period)
    except ValidationError:
        return None


def occurrences(anchor: date, period: Any, window: Window) -> List[date]:
    """
    Dates on which an obligation anchored at ``anchor`` is due inside ``window``.

    Returns an ascending list with no duplicates; every date lies in
    ``[window.start, window.end]``.
    """
    period = coerce_period(period)

    if period == BillingPeriod.MONTHLY:
        candidate = clamp_day(window.start.year, window.start.month, anchor.day)
        return [candidate] if window.contains(candidate) else []

    if period == BillingPeriod.YEARLY:
        if anchor.month != window.start.month:
            return []
        candidate = clamp_day(window.start.year, anchor.month, anchor.day)
        return [candidate] if window.contains(candidate) else []

    interval = timedelta(days=STEP_DAYS[period])
    current = anchor

    # Align onto the window: back off while past the end, then catch up to the start
    while current > window.end:
        current -= interval
    while current < window.start:
        current += interval

    dates = []
    while current <= window.end:
        dates.append(current)
        if date.max - current < interval:
            break
        current += interval
    return dates


def occurrence_count(obligation: Any, window: Window) -> int:
    """Number of times ``obligation`` falls due inside ``window``."""
    return len(occurrences(obligation.next_due_date, obligation.billing_period, window))


def window_total(obligation: Any, window: Window) -> Decimal:
    """Amount an obligation costs inside ``window`` (amount x occurrences)."""
    return Decimal(obligation.amount) * occurrence_count(obligation, window)


def monthly_equivalent(amount: Decimal, period: Any) -> Decimal:
    """
    Normalize an amount to an approximate monthly cost.

    yearly / 12, weekly x 4, biweekly x 2. Used for the summary figure only,
    never for budget caps.
    """
    period = coerce_period(period)
    amount = Decimal(amount)
    if period == BillingPeriod.YEARLY:
        return amount / 12
    if period == BillingPeriod.WEEKLY:
        return amount * 4
    if period == BillingPeriod.BIWEEKLY:
        return amount * 2
    return amount
