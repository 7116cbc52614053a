#!/usr/bin/env python3
"""
Resync Periods Script.

Re-runs the recurring sync pass (category sync + reconciliation) for one
calendar month, for a single user or every user that has obligations. Use it
after a bulk import or after changing the synthetic category names.

Run with --dry-run first: the pass is executed and reported, then rolled back.

Usage:
    # Dry run for the current month, all users
    python -m scripts.resync_periods --dry-run

    # A specific month and user
    python -m scripts.resync_periods --year 2026 --month 9 --user-id USER_ID
"""
import asyncio
import argparse
from datetime import date
from typing import Optional

from ledgerflow.database import AsyncSessionLocal
from ledgerflow.engines.pipeline import RecurringEngine
from ledgerflow.providers.base import DataProvider
from ledgerflow.providers.database import DatabaseProvider


class DryRunRollback(Exception):
    """Raised inside the transaction to discard a dry run's writes."""


async def resync_periods(
    provider: DataProvider,
    year: int,
    month: int,
    user_id: Optional[str] = None,
    dry_run: bool = True,
) -> dict:
    """
    Re-run the sync pass for ``year``-``month``.

    Args:
        provider: Data provider to sync through
        year: Calendar year
        month: Calendar month
        user_id: Optional user ID to limit the scope
        dry_run: If True, roll every user's pass back after reporting it

    Returns:
        Totals across users
    """
    print("\n" + "=" * 60)
    print(f"RESYNC RECURRING PERIODS {year}-{month:02d}")
    print("=" * 60)

    if dry_run:
        print("\n[DRY RUN MODE - No changes will be made]\n")
    else:
        print("\n[LIVE MODE - Changes will be committed]\n")

    engine = RecurringEngine(provider)
    user_ids = [user_id] if user_id else await provider.list_user_ids()

    totals = {"users": 0, "entries_created": 0, "errors": 0}

    for uid in user_ids:
        outcome = None
        try:
            async with provider.transaction():
                outcome = await engine.sync_period(uid, year, month)
                if dry_run:
                    raise DryRunRollback()
        except DryRunRollback:
            pass
        except Exception as e:
            print(f"  ✗ Error syncing user {uid}: {e}")
            totals["errors"] += 1
            continue

        actions = {g.value: a for g, a in outcome.categories.actions.items()}
        created = outcome.reconcile.created_count
        prefix = "[Would create]" if dry_run else "✓ Created"
        print(f"  {prefix} {created} entries for user {uid}; categories: {actions}")
        for error in outcome.errors:
            print(f"    ✗ {error}")

        totals["users"] += 1
        totals["entries_created"] += created
        totals["errors"] += len(outcome.errors)

    # Summary
    print("\n" + "=" * 60)
    print("SUMMARY")
    print("=" * 60)
    print(f"  Users: {totals['users']}")
    print(f"  Entries {'to create' if dry_run else 'created'}: {totals['entries_created']}")
    print(f"  Errors: {totals['errors']}")
    print("\n" + "=" * 60 + "\n")
    return totals


async def main():
    today = date.today()
    parser = argparse.ArgumentParser(
        description="Re-run category sync and reconciliation for a month"
    )
    parser.add_argument("--year", type=int, default=today.year, help="Calendar year (default: this year)")
    parser.add_argument("--month", type=int, default=today.month, help="Calendar month (default: this month)")
    parser.add_argument(
        "--user-id",
        type=str,
        default=None,
        help="Only resync a specific user ID"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be done without making changes"
    )

    args = parser.parse_args()

    async with AsyncSessionLocal() as db:
        await resync_periods(
            DatabaseProvider(db),
            year=args.year,
            month=args.month,
            user_id=args.user_id,
            dry_run=args.dry_run,
        )


if __name__ == "__main__":
    asyncio.run(main())
