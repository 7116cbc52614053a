"""
Consolidated models package.

IMPORTANT: Explicit imports only - no wildcards to prevent circular imports.
Use string-based forward references in relationships: relationship("LedgerEntry", ...)
"""

# Base utilities
from ledgerflow.data.base import generate_id

# Recurring obligations
from ledgerflow.data.obligations.models import RecurringObligation

# Ledger
from ledgerflow.data.ledger.models import LedgerEntry

# Budgets
from ledgerflow.data.budgets.models import BudgetPeriod, BudgetCategory

__all__ = [
    "generate_id",
    "RecurringObligation",
    "LedgerEntry",
    "BudgetPeriod",
    "BudgetCategory",
]
