"""
Tests for the Occurrence Generator and calendar primitives.

Covers month-end clamping, leap years, weekly/biweekly alignment and the
monthly-equivalent normalization.
"""

import pytest
from datetime import date, datetime
from decimal import Decimal

from ledgerflow.errors import ValidationError
from ledgerflow.services.occurrences import (
    Window,
    clamp_day,
    coerce_date,
    monthly_equivalent,
    next_step,
    occurrence_count,
    occurrences,
    step,
    window_total,
)
from ledgerflow.types import BillingPeriod

from conftest import make_obligation


# =============================================================================
# Calendar primitives
# =============================================================================

class TestCoerceDate:
    """Tests for reducing values to calendar dates."""

    def test_date_passes_through(self):
        assert coerce_date(date(2024, 3, 1)) == date(2024, 3, 1)

    def test_datetime_drops_time(self):
        """A late-evening timestamp stays on its own day."""
        assert coerce_date(datetime(2024, 3, 1, 23, 59)) == date(2024, 3, 1)

    def test_iso_string_with_time(self):
        assert coerce_date("2024-01-31T23:30:00Z") == date(2024, 1, 31)

    @pytest.mark.parametrize("value", ["not-a-date", "2024-02-30", 20240101, None])
    def test_invalid_values_rejected(self, value):
        with pytest.raises(ValidationError):
            coerce_date(value)


class TestWindow:
    """Tests for the Window dataclass."""

    def test_for_month_leap_february(self):
        window = Window.for_month(2024, 2)
        assert window.start == date(2024, 2, 1)
        assert window.end == date(2024, 2, 29)

    def test_for_month_december(self):
        window = Window.for_month(2023, 12)
        assert window.end == date(2023, 12, 31)

    def test_invalid_month(self):
        with pytest.raises(ValidationError):
            Window.for_month(2024, 13)

    def test_start_after_end_rejected(self):
        with pytest.raises(ValidationError):
            Window(date(2024, 2, 2), date(2024, 2, 1))

    def test_contains_is_inclusive(self):
        window = Window.for_month(2024, 1)
        assert window.contains(date(2024, 1, 1))
        assert window.contains(date(2024, 1, 31))
        assert not window.contains(date(2024, 2, 1))


class TestStep:
    """Tests for advancing a due date by one billing period."""

    def test_monthly_clamps_to_leap_day(self):
        assert step(date(2024, 1, 31), BillingPeriod.MONTHLY) == date(2024, 2, 29)

    def test_monthly_clamps_non_leap(self):
        assert step(date(2023, 1, 31), "monthly") == date(2023, 2, 28)

    def test_yearly_from_leap_day(self):
        assert step(date(2024, 2, 29), BillingPeriod.YEARLY) == date(2025, 2, 28)

    def test_weekly_and_biweekly(self):
        assert step(date(2024, 1, 29), BillingPeriod.WEEKLY) == date(2024, 2, 5)
        assert step(date(2024, 1, 29), BillingPeriod.BIWEEKLY) == date(2024, 2, 12)

    def test_unknown_period(self):
        with pytest.raises(ValidationError):
            step(date(2024, 1, 1), "fortnightly")

    def test_clamp_day(self):
        assert clamp_day(2024, 4, 31) == date(2024, 4, 30)

    @pytest.mark.parametrize("period", list(BillingPeriod))
    def test_step_past_last_year_rejected(self, period):
        """Stepping out of year 9999 is a ValidationError, not a raw ValueError."""
        with pytest.raises(ValidationError):
            step(date(9999, 12, 25), period)

    def test_next_step_stops_at_end_of_calendar(self):
        assert next_step(date(9999, 12, 15), BillingPeriod.MONTHLY) is None
        assert next_step(date(9999, 11, 15), BillingPeriod.MONTHLY) == date(9999, 12, 15)

    def test_next_step_still_rejects_unknown_period(self):
        with pytest.raises(ValidationError):
            next_step(date(2024, 1, 1), "fortnightly")


# =============================================================================
# Occurrence Generator
# =============================================================================

class TestOccurrences:
    """Tests for projecting due dates into a window."""

    def test_monthly_month_end_leap_year(self):
        """Jan 31 anchor lands on Feb 29 in a leap year."""
        result = occurrences(date(2024, 1, 31), BillingPeriod.MONTHLY, Window.for_month(2024, 2))
        assert result == [date(2024, 2, 29)]

    def test_monthly_month_end_common_year(self):
        result = occurrences(date(2024, 1, 31), BillingPeriod.MONTHLY, Window.for_month(2023, 2))
        assert result == [date(2023, 2, 28)]

    def test_monthly_ignores_anchor_month(self):
        """Monthly projection uses only the anchor's day."""
        result = occurrences(date(2025, 6, 10), BillingPeriod.MONTHLY, Window.for_month(2024, 1))
        assert result == [date(2024, 1, 10)]

    def test_yearly_only_in_anchor_month(self):
        anchor = date(2023, 3, 14)
        assert occurrences(anchor, BillingPeriod.YEARLY, Window.for_month(2024, 3)) == [date(2024, 3, 14)]
        assert occurrences(anchor, BillingPeriod.YEARLY, Window.for_month(2024, 4)) == []

    def test_yearly_leap_day_clamps(self):
        result = occurrences(date(2024, 2, 29), BillingPeriod.YEARLY, Window.for_month(2025, 2))
        assert result == [date(2025, 2, 28)]

    def test_biweekly_three_in_january(self):
        result = occurrences(date(2024, 1, 1), BillingPeriod.BIWEEKLY, Window.for_month(2024, 1))
        assert result == [date(2024, 1, 1), date(2024, 1, 15), date(2024, 1, 29)]

    def test_weekly_anchor_before_window(self):
        """An older anchor is walked forward onto the window."""
        result = occurrences(date(2023, 12, 4), BillingPeriod.WEEKLY, Window.for_month(2024, 1))
        assert result == [
            date(2024, 1, 1),
            date(2024, 1, 8),
            date(2024, 1, 15),
            date(2024, 1, 22),
            date(2024, 1, 29),
        ]

    def test_weekly_anchor_after_window(self):
        """A later anchor is walked back, then only dates on or after the start remain."""
        result = occurrences(date(2024, 2, 20), BillingPeriod.WEEKLY, Window.for_month(2024, 1))
        assert result == [date(2024, 1, 30)]

    def test_biweekly_anchor_after_window_keeps_alignment(self):
        result = occurrences(date(2024, 3, 4), BillingPeriod.BIWEEKLY, Window.for_month(2024, 2))
        assert result == [date(2024, 2, 19)]

    def test_results_sorted_unique_and_inside(self):
        window = Window.for_month(2024, 3)
        result = occurrences(date(2024, 1, 3), BillingPeriod.WEEKLY, window)
        assert result == sorted(set(result))
        assert all(window.contains(d) for d in result)

    def test_unknown_period(self):
        with pytest.raises(ValidationError):
            occurrences(date(2024, 1, 1), "daily", Window.for_month(2024, 1))

    def test_weekly_in_last_month_of_calendar(self):
        window = Window.for_month(9999, 12)
        assert occurrences(date(9999, 12, 3), BillingPeriod.WEEKLY, window) == [
            date(9999, 12, 3), date(9999, 12, 10), date(9999, 12, 17), date(9999, 12, 24), date(9999, 12, 31),
        ]


class TestTotals:
    """Tests for counts, window totals and monthly equivalents."""

    def test_occurrence_count_and_total(self):
        gym = make_obligation(
            name="Gym", amount="20.00", billing_period=BillingPeriod.BIWEEKLY, next_due_date=date(2024, 1, 1)
        )
        window = Window.for_month(2024, 1)
        assert occurrence_count(gym, window) == 3
        assert window_total(gym, window) == Decimal("60.00")

    @pytest.mark.parametrize(
        "period, expected",
        [
            (BillingPeriod.MONTHLY, Decimal("120")),
            (BillingPeriod.YEARLY, Decimal("10")),
            (BillingPeriod.WEEKLY, Decimal("480")),
            (BillingPeriod.BIWEEKLY, Decimal("240")),
        ],
    )
    def test_monthly_equivalent(self, period, expected):
        assert monthly_equivalent(Decimal("120"), period) == expected
