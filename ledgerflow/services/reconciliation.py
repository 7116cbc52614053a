"""
Reconciliation Engine - creates the ledger entries automated obligations owe
for a budget period.

Idempotent: an occurrence that already has an entry linked to its obligation
on the same date is never created again, whether the entry was seen when the
period was loaded or written by a concurrent pass in the meantime.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple
import logging

from ledgerflow.data.ledger.schemas import LedgerEntryCreate
from ledgerflow.errors import DuplicateEntryError
from ledgerflow.providers.base import DataProvider
from ledgerflow.services.occurrences import Window, coerce_date, occurrences
from ledgerflow.types import EntrySource, ObligationGroup

logger = logging.getLogger(__name__)


def recurring_note(obligation) -> str:
    period = getattr(obligation.billing_period, "value", obligation.billing_period)
    return f"Automatic recurring charge for {obligation.name} ({period})"


@dataclass
class ReconcileFailure:
    """One obligation whose entries could not be written."""
    obligation_id: str
    entry_date: Optional[date]
    error: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "obligation_id": self.obligation_id,
            "entry_date": self.entry_date.isoformat() if self.entry_date else None,
            "error": self.error,
        }


@dataclass
class ReconcileResult:
    """Outcome of one reconciliation pass."""
    period_id: str
    created_entry_ids: List[str] = field(default_factory=list)

    # Skips
    skipped_future: int = 0       # occurrence dated after today
    skipped_existing: int = 0     # entry already present, or inserted concurrently
    skipped_manual: int = 0       # obligation is not automated

    failures: List[ReconcileFailure] = field(default_factory=list)

    @property
    def created_count(self) -> int:
        return len(self.created_entry_ids)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period_id": self.period_id,
            "created": self.created_count,
            "created_entry_ids": self.created_entry_ids,
            "skipped": {
                "future": self.skipped_future,
                "existing": self.skipped_existing,
                "manual": self.skipped_manual,
            },
            "failures": [f.to_dict() for f in self.failures],
        }


class ReconciliationEngine:
    """Creates missing past and today-dated entries for automated obligations."""

    def __init__(self, provider: DataProvider):
        self.provider = provider

    async def reconcile(
        self,
        period,
        obligations: Iterable,
        existing_entries: Iterable,
        today: Any,
        category_ids: Optional[Dict[ObligationGroup, str]] = None,
    ) -> ReconcileResult:
        """
        Create the entries owed for ``period`` up to and including ``today``.

        Args:
            period: Budget period whose month is reconciled
            obligations: The owner's obligations; inactive ones are ignored
            existing_entries: Entries already recorded in the period's window
            today: Current calendar date
            category_ids: Synthetic category id per group, from the category sync

        Returns:
            ReconcileResult with created ids, skip counts and failures
        """
        today = coerce_date(today)
        window = Window.for_month(period.year, period.month)
        category_ids = category_ids or {}
        result = ReconcileResult(period_id=period.id)

        existing: Set[Tuple[str, date]] = {
            (e.obligation_id, e.entry_date)
            for e in existing_entries
            if e.obligation_id is not None
        }

        for obligation in obligations:
            if not obligation.is_active:
                continue

            due_dates = occurrences(obligation.next_due_date, obligation.billing_period, window)
            if not due_dates:
                continue

            if not obligation.is_automated:
                result.skipped_manual += len(due_dates)
                continue

            pending = []
            for due in due_dates:
                if due > today:
                    result.skipped_future += 1
                elif (obligation.id, due) in existing:
                    result.skipped_existing += 1
                else:
                    pending.append(due)

            if not pending:
                continue

            created, already = await self._create_entries(
                obligation, pending, category_ids.get(obligation.group), result
            )
            result.created_entry_ids.extend(created)
            result.skipped_existing += already

        if result.created_entry_ids or result.failures:
            logger.info(
                f"Reconciled period {period.id} ({period.year}-{period.month:02d}): "
                f"created {result.created_count}, failed {len(result.failures)}"
            )
        return result

    async def _create_entries(
        self,
        obligation,
        due_dates: List[date],
        category_id: Optional[str],
        result: ReconcileResult,
    ) -> Tuple[List[str], int]:
        """Insert one obligation's entries in a savepoint. Returns (ids, duplicates)."""
        created: List[str] = []
        already = 0
        current: Optional[date] = None

        try:
            async with self.provider.savepoint():
                for current in due_dates:
                    entry = LedgerEntryCreate(
                        user_id=obligation.user_id,
                        name=obligation.name,
                        amount=-abs(Decimal(obligation.amount)),
                        entry_date=current,
                        category_id=category_id,
                        source=EntrySource.RECURRING,
                        obligation_id=obligation.id,
                        notes=recurring_note(obligation),
                    )
                    try:
                        created.append(await self.provider.insert_entry(entry))
                    except DuplicateEntryError:
                        already += 1
                        logger.warning(
                            f"Entry for obligation {obligation.id} on {current} was created "
                            f"concurrently; skipping"
                        )
        except Exception as e:
            logger.exception(
                f"Failed to create recurring entry for obligation {obligation.id} on {current}"
            )
            result.failures.append(
                ReconcileFailure(obligation_id=obligation.id, entry_date=current, error=str(e))
            )
            return [], 0

        return created, already
