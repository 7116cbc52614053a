"""
Category Synchronizer - keeps the synthetic "Bills" and "Subscriptions"
budget categories in step with active obligations.

For each group, once per sync pass:
- total > 0: create the category (cap = total) or correct its cap
- total == 0 and no obligations of the group remain: unlink its entries,
  then delete it; if deletion fails, zero the cap instead
- total == 0 but obligations remain (e.g. all paused): zero the cap, keep it

Groups are synchronized independently; a failure in one is logged and
reported without stopping the other.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional
import logging

from ledgerflow.config import settings
from ledgerflow.errors import PersistenceError
from ledgerflow.providers.base import DataProvider
from ledgerflow.services.occurrences import Window, window_total
from ledgerflow.types import ObligationGroup

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def category_name(group: ObligationGroup) -> str:
    """Configured name of a group's synthetic category."""
    if group == ObligationGroup.BILL:
        return settings.BILLS_CATEGORY_NAME
    return settings.SUBSCRIPTIONS_CATEGORY_NAME


def category_color(group: ObligationGroup) -> str:
    if group == ObligationGroup.BILL:
        return settings.BILLS_CATEGORY_COLOR
    return settings.SUBSCRIPTIONS_CATEGORY_COLOR


def group_total(obligations: Iterable, group: ObligationGroup, window: Window) -> Decimal:
    """Sum of amount x occurrences over the group's active obligations."""
    total = sum(
        (window_total(o, window) for o in obligations if o.is_active and o.group == group),
        Decimal("0"),
    )
    return total.quantize(CENTS)


@dataclass
class CategorySyncResult:
    """Outcome of one synchronizer pass."""
    period_id: str
    category_ids: Dict[ObligationGroup, str] = field(default_factory=dict)
    totals: Dict[ObligationGroup, Decimal] = field(default_factory=dict)
    actions: Dict[ObligationGroup, str] = field(default_factory=dict)
    # Options per group: "created", "updated", "unchanged", "zeroed",
    # "deleted", "zeroed_fallback", "absent", "failed"
    errors: List[str] = field(default_factory=list)

    @property
    def bills_category_id(self) -> Optional[str]:
        return self.category_ids.get(ObligationGroup.BILL)

    @property
    def subscriptions_category_id(self) -> Optional[str]:
        return self.category_ids.get(ObligationGroup.SUBSCRIPTION)


class CategorySynchronizer:
    """Upserts, zeroes or removes the synthetic categories of a period."""

    def __init__(self, provider: DataProvider):
        self.provider = provider

    async def sync_categories(self, period, obligations: List) -> CategorySyncResult:
        """
        Synchronize both synthetic categories of ``period``.

        Args:
            period: The budget period being opened
            obligations: Every obligation of the period's owner, active or not

        Returns:
            CategorySyncResult with the category id to use for each group
        """
        window = Window.for_month(period.year, period.month)
        result = CategorySyncResult(period_id=period.id)

        existing = {
            c.name: c
            for c in await self.provider.load_categories(period.id)
            if c.is_recurring
        }

        for group in ObligationGroup:
            try:
                async with self.provider.savepoint():
                    await self._sync_group(period, group, obligations, window, existing, result)
            except Exception as e:
                result.actions[group] = "failed"
                result.category_ids.pop(group, None)
                result.errors.append(f"Category sync for {group.value} failed: {e}")
                logger.error(f"Category sync for {group.value} failed in period {period.id}: {e}")

        actions = {g.value: a for g, a in result.actions.items()}
        logger.info(f"Category sync for period {period.id} ({period.year}-{period.month:02d}): {actions}")
        return result

    async def _sync_group(
        self,
        period,
        group: ObligationGroup,
        obligations: List,
        window: Window,
        existing: Dict,
        result: CategorySyncResult,
    ) -> None:
        name = category_name(group)
        total = group_total(obligations, group, window)
        category = existing.get(name)
        result.totals[group] = total

        if total > 0:
            if category is None:
                result.category_ids[group] = await self.provider.upsert_category(
                    period.id, name, total, color=category_color(group)
                )
                result.actions[group] = "created"
            elif category.budget_cap != total:
                result.category_ids[group] = await self.provider.upsert_category(period.id, name, total)
                result.actions[group] = "updated"
            else:
                result.category_ids[group] = category.id
                result.actions[group] = "unchanged"
            return

        if category is None:
            result.actions[group] = "absent"
            return

        if not any(o.group == group for o in obligations):
            unlinked = await self.provider.unlink_category_entries(category.id)
            try:
                async with self.provider.savepoint():
                    await self.provider.delete_category(category.id)
                deleted = True
            except PersistenceError as e:
                logger.error(f"Deleting category {category.id} ({name}) failed: {e}")
                deleted = False

            if deleted:
                result.actions[group] = "deleted"
                logger.info(f"Removed unused category {category.id} ({name}); unlinked {unlinked} entries")
            else:
                # Recoverable: an unused category may linger but never with a cap
                await self.provider.upsert_category(period.id, name, Decimal("0"))
                result.actions[group] = "zeroed_fallback"
                logger.warning(
                    f"Category {category.id} ({name}) could not be removed from period {period.id}; "
                    f"budget cap set to 0 instead"
                )
            return

        if category.budget_cap != 0:
            await self.provider.upsert_category(period.id, name, Decimal("0"))
        result.category_ids[group] = category.id
        result.actions[group] = "zeroed"
