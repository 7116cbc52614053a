"""
Payment Scheduler - pays upcoming occurrences of an obligation in advance.

A batch creates one linked recurring entry per occurrence and moves the
obligation's due-date cursor past the last one. Entries and cursor are
written in a single transaction: either the whole batch lands or none of it.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional
import logging

from ledgerflow.data.ledger.schemas import LedgerEntryCreate
from ledgerflow.data.obligations.schemas import PayableOccurrence
from ledgerflow.errors import DuplicateEntryError, NotFoundError, ValidationError
from ledgerflow.providers.base import DataProvider
from ledgerflow.services.categories import category_name
from ledgerflow.services.occurrences import Window, coerce_date, next_step, step
from ledgerflow.types import EntrySource

logger = logging.getLogger(__name__)


@dataclass
class PaymentResult:
    """Outcome of an advance payment batch."""
    obligation_id: str
    success: bool
    new_next_due_date: Optional[date] = None
    created_entry_ids: List[str] = field(default_factory=list)
    already_paid_dates: List[date] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "obligation_id": self.obligation_id,
            "new_next_due_date": self.new_next_due_date,
            "created_entry_ids": self.created_entry_ids,
            "already_paid_dates": self.already_paid_dates,
            "error": self.error,
        }


def validate_count(count: Any) -> int:
    # bool is an int subclass; True must not mean "pay one"
    if isinstance(count, bool) or not isinstance(count, int) or count < 1:
        raise ValidationError(f"Payment count must be a positive integer, got {count!r}")
    return count


def payment_label(name: str, index: int, count: int) -> str:
    if count > 1:
        return f"{name} ({index}/{count})"
    return name


def payable_occurrences(obligation, today: Any, limit: int = 12) -> List[PayableOccurrence]:
    """
    Occurrences that can be paid ahead: from the cursor, every stepped date
    still inside today's month, at most ``limit`` of them.
    """
    today = coerce_date(today)
    window = Window.containing(today)
    payable = []
    current = obligation.next_due_date
    while current is not None and current <= window.end and len(payable) < limit:
        payable.append(
            PayableOccurrence(index=len(payable) + 1, due_date=current, amount=Decimal(obligation.amount))
        )
        current = next_step(current, obligation.billing_period)
    return payable


class PaymentScheduler:
    """Applies advance payments for one obligation at a time."""

    def __init__(self, provider: DataProvider):
        self.provider = provider

    async def pay_future(self, obligation, count: int) -> PaymentResult:
        """
        Pay the next ``count`` occurrences of ``obligation``.

        Dates that already carry a linked entry are not duplicated: they are
        reported in ``already_paid_dates`` and the cursor still moves past them.

        Args:
            obligation: The obligation to pay
            count: Number of occurrences, at least 1

        Returns:
            PaymentResult; on failure nothing was written and
            ``new_next_due_date`` is the unchanged cursor

        Raises:
            ValidationError: If count is not a positive integer
        """
        count = validate_count(count)
        original_cursor = obligation.next_due_date
        result = PaymentResult(obligation_id=obligation.id, success=False)

        try:
            async with self.provider.transaction():
                cursor = original_cursor
                for index in range(1, count + 1):
                    entry = LedgerEntryCreate(
                        user_id=obligation.user_id,
                        name=payment_label(obligation.name, index, count),
                        amount=-abs(Decimal(obligation.amount)),
                        entry_date=cursor,
                        category_id=await self.provider.find_recurring_category_id(
                            obligation.user_id, cursor.year, cursor.month, category_name(obligation.group)
                        ),
                        source=EntrySource.RECURRING,
                        obligation_id=obligation.id,
                        notes=f"Paid in advance ({index} of {count})",
                    )
                    try:
                        result.created_entry_ids.append(await self.provider.insert_entry(entry))
                    except DuplicateEntryError:
                        result.already_paid_dates.append(cursor)
                    cursor = step(cursor, obligation.billing_period)

                if not await self.provider.update_obligation_cursor(obligation.id, cursor):
                    raise NotFoundError(f"Obligation {obligation.id} not found", entity_id=obligation.id)
        except Exception as e:
            logger.exception(f"Advance payment of {count} occurrence(s) failed for obligation {obligation.id}")
            return PaymentResult(
                obligation_id=obligation.id,
                success=False,
                new_next_due_date=original_cursor,
                error=str(e),
            )

        result.success = True
        result.new_next_due_date = cursor
        logger.info(
            f"Paid {len(result.created_entry_ids)} occurrence(s) of obligation {obligation.id} in advance; "
            f"cursor {original_cursor} -> {cursor}"
        )
        if result.already_paid_dates:
            logger.warning(
                f"Obligation {obligation.id} already had entries on {result.already_paid_dates}; not duplicated"
            )
        return result
