"""
Recurring Pipeline - orchestrates a sync pass over one budget period.

Every time a period is opened, or an obligation is created, edited, toggled,
paid ahead or deleted:
1. Category Synchronizer brings "Bills" / "Subscriptions" in line with totals
2. Reconciliation Engine creates entries owed up to today
3. Status Classifier annotates each obligation on read

Steps 1 and 2 share one transaction. Failures inside them are isolated per
group / per obligation and reported in the view's ``errors``; opening a
period never fails because of them.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Set, Union
import logging

import pydantic
from fastapi import Depends

from ledgerflow.data.budgets.schemas import PeriodView, RecurringSummary
from ledgerflow.data.obligations.schemas import (
    ObligationCreate,
    ObligationRead,
    ObligationUpdate,
    ObligationWithStatus,
    PayableOccurrence,
)
from ledgerflow.errors import PersistenceError, ValidationError
from ledgerflow.providers import DataProvider, get_provider
from ledgerflow.services.categories import CategorySynchronizer, CategorySyncResult, group_total
from ledgerflow.services.matching import EntryMatcher
from ledgerflow.services.occurrences import Window, coerce_date, monthly_equivalent
from ledgerflow.services.payments import PaymentResult, PaymentScheduler, payable_occurrences, validate_count
from ledgerflow.services.reconciliation import ReconcileResult, ReconciliationEngine
from ledgerflow.services.status import classify
from ledgerflow.types import ObligationGroup

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


@dataclass
class SyncOutcome:
    """Writes made by one sync pass."""
    period_id: str
    categories: CategorySyncResult
    reconcile: ReconcileResult

    @property
    def errors(self) -> List[str]:
        errors = list(self.categories.errors)
        errors.extend(
            f"Could not create entry for obligation {f.obligation_id} on {f.entry_date}: {f.error}"
            for f in self.reconcile.failures
        )
        return errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period_id": self.period_id,
            "categories": {g.value: a for g, a in self.categories.actions.items()},
            "reconcile": self.reconcile.to_dict(),
            "errors": self.errors,
        }


def _validated(schema, data):
    """Coerce ``data`` into ``schema``, reporting failures as ValidationError."""
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid {schema.__name__}: {e}") from e


def build_summary(obligations: List[ObligationWithStatus], window: Window) -> RecurringSummary:
    """Headline figures over the active obligations."""
    active = [o for o in obligations if o.is_active]
    monthly = sum((monthly_equivalent(o.amount, o.billing_period) for o in active), Decimal("0"))

    status_counts: Dict[str, int] = {}
    for o in active:
        status_counts[o.status.value] = status_counts.get(o.status.value, 0) + 1

    return RecurringSummary(
        monthly_equivalent=monthly.quantize(CENTS),
        bills_total=group_total(active, ObligationGroup.BILL, window),
        subscriptions_total=group_total(active, ObligationGroup.SUBSCRIPTION, window),
        active_count=len(active),
        status_counts=status_counts,
    )


class RecurringEngine:
    """Public operations on recurring obligations for one data provider."""

    def __init__(
        self,
        provider: DataProvider,
        matcher: Optional[EntryMatcher] = None,
        today_provider: Callable[[], date] = date.today,
    ):
        self.provider = provider
        self.matcher = matcher or EntryMatcher()
        self.today_provider = today_provider
        self.categories = CategorySynchronizer(provider)
        self.reconciler = ReconciliationEngine(provider)
        self.payments = PaymentScheduler(provider)

    def _today(self, today: Any = None) -> date:
        return coerce_date(today if today is not None else self.today_provider())

    # ==========================================================================
    # Sync pass
    # ==========================================================================

    async def sync_period(self, user_id: str, year: int, month: int, today: Any = None) -> SyncOutcome:
        """
        Category sync followed by reconciliation, without a transaction of its own.

        Callers wrap this in ``provider.transaction()``.
        """
        today = self._today(today)
        window = Window.for_month(year, month)

        period = await self.provider.get_or_create_period(user_id, year, month)
        obligations = await self.provider.load_obligations(user_id)

        categories = await self.categories.sync_categories(period, obligations)

        entries = await self.provider.load_entries_in_range(user_id, window.start, window.end)
        reconcile = await self.reconciler.reconcile(
            period, obligations, entries, today, categories.category_ids
        )
        return SyncOutcome(period_id=period.id, categories=categories, reconcile=reconcile)

    async def _resync_current_period(self, user_id: str) -> List[str]:
        """Re-run the sync pass for today's month after a mutation. Never raises."""
        today = self._today()
        try:
            async with self.provider.transaction():
                outcome = await self.sync_period(user_id, today.year, today.month, today)
        except Exception as e:
            logger.exception(f"Re-sync of {today.year}-{today.month:02d} failed for user {user_id}")
            return [f"Re-sync failed: {e}"]
        return outcome.errors

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def open_period(self, user_id: str, year: int, month: int, today: Any = None) -> PeriodView:
        """
        Open a user's budget period: sync, reconcile, then annotate.

        Args:
            user_id: Owner of the period
            year: Calendar year
            month: Calendar month (1-12)
            today: Override for the current date

        Returns:
            PeriodView; sync problems are listed in ``errors``

        Raises:
            ValidationError: If year/month do not form a valid month
            PersistenceError: If the period cannot be read at all
        """
        today = self._today(today)
        window = Window.for_month(year, month)
        errors: List[str] = []
        created: List[str] = []

        try:
            async with self.provider.transaction():
                outcome = await self.sync_period(user_id, year, month, today)
            errors.extend(outcome.errors)
            created = outcome.reconcile.created_entry_ids
        except Exception as e:
            logger.exception(f"Sync pass failed for user {user_id} period {year}-{month:02d}")
            errors.append(f"Sync failed: {e}")

        async with self.provider.transaction():
            period = await self.provider.get_or_create_period(user_id, year, month)
            categories = await self.provider.load_categories(period.id)
            obligations = await self.provider.load_obligations(user_id)
            entries = await self.provider.load_entries_in_range(user_id, window.start, window.end)

        annotated = self._annotate(obligations, entries, today, window)

        return PeriodView(
            period=period,
            window_start=window.start,
            window_end=window.end,
            categories=categories,
            obligations=annotated,
            entries=entries,
            summary=build_summary(annotated, window),
            created_entry_ids=created,
            errors=errors,
        )

    def _annotate(self, obligations: List, entries: List, today: date, window: Window) -> List[ObligationWithStatus]:
        """Classify every obligation; an entry is claimed by at most one obligation."""
        claimed: Set[str] = set()
        statuses = {}

        # Active obligations pick first so a paused one never takes a payment
        order = sorted(obligations, key=lambda o: (not o.is_active, o.next_due_date, o.id))
        for obligation in order:
            status = classify(
                obligation, entries, today, window.end, matcher=self.matcher, exclude_ids=claimed
            )
            claimed.update(status.matched_entry_ids)
            statuses[obligation.id] = status

        return [
            ObligationWithStatus(**o.model_dump(), **statuses[o.id].to_dict())
            for o in obligations
        ]

    async def list_obligations(self, user_id: str) -> List[ObligationRead]:
        """All of a user's obligations ordered by next due date."""
        return await self.provider.load_obligations(user_id)

    async def payable(self, obligation_id: str, today: Any = None, limit: int = 12) -> List[PayableOccurrence]:
        """Occurrences of this month that can still be paid ahead."""
        obligation = await self.provider.get_obligation(obligation_id)
        return payable_occurrences(obligation, self._today(today), limit=limit)

    # ==========================================================================
    # Mutations
    # ==========================================================================

    async def create_obligation(
        self, user_id: str, data: Union[ObligationCreate, Dict[str, Any]]
    ) -> ObligationRead:
        """Validate and store a new obligation, then re-sync the current period."""
        data = _validated(ObligationCreate, data)

        async with self.provider.transaction():
            obligation = await self.provider.create_obligation(user_id, data)

        logger.info(f"Created obligation {obligation.id} '{obligation.name}' for user {user_id}")
        await self._resync_current_period(user_id)
        return obligation

    async def update_obligation(
        self, obligation_id: str, updates: Union[ObligationUpdate, Dict[str, Any]]
    ) -> ObligationRead:
        """Apply the given fields, then re-sync the current period."""
        updates = _validated(ObligationUpdate, updates)
        changes = updates.model_dump(exclude_unset=True)

        if not changes:
            return await self.provider.get_obligation(obligation_id)

        async with self.provider.transaction():
            obligation = await self.provider.update_obligation(obligation_id, changes)

        logger.info(f"Updated obligation {obligation_id}: {sorted(changes)}")
        await self._resync_current_period(obligation.user_id)
        return obligation

    async def toggle_obligation(self, obligation_id: str, is_active: bool) -> bool:
        """
        Activate or pause an obligation.

        Returns False if the change could not be stored; raises NotFoundError
        for an unknown id.
        """
        obligation = await self.provider.get_obligation(obligation_id)
        try:
            async with self.provider.transaction():
                await self.provider.update_obligation(obligation_id, {"is_active": bool(is_active)})
        except PersistenceError as e:
            logger.error(f"Failed to toggle obligation {obligation_id}: {e}")
            return False

        logger.info(f"Obligation {obligation_id} {'activated' if is_active else 'paused'}")
        await self._resync_current_period(obligation.user_id)
        return True

    async def schedule_payments(self, obligation_id: str, count: int) -> PaymentResult:
        """Pay the next ``count`` occurrences ahead and re-sync on success."""
        count = validate_count(count)
        obligation = await self.provider.get_obligation(obligation_id)

        result = await self.payments.pay_future(obligation, count)
        if result.success:
            await self._resync_current_period(obligation.user_id)
        return result

    async def pay_future_occurrences(self, obligation_id: str, count: int) -> bool:
        result = await self.schedule_payments(obligation_id, count)
        return result.success

    async def delete_obligation(self, obligation_id: str) -> bool:
        """
        Delete an obligation, keeping its history.

        Entries it created stay in the ledger with obligation_id cleared, then
        the categories are re-synced so an emptied group disappears.
        """
        obligation = await self.provider.get_obligation(obligation_id)
        try:
            async with self.provider.transaction():
                unlinked = await self.provider.unlink_obligation_entries(obligation_id)
                await self.provider.delete_obligation(obligation_id)
        except PersistenceError as e:
            logger.error(f"Failed to delete obligation {obligation_id}: {e}")
            return False

        logger.info(f"Deleted obligation {obligation_id}; kept {unlinked} unlinked entries")
        await self._resync_current_period(obligation.user_id)
        return True


async def get_engine(provider: DataProvider = Depends(get_provider)) -> RecurringEngine:
    """FastAPI dependency building an engine over the request's provider."""
    return RecurringEngine(provider)
