"""
Core enums shared by models, schemas and services.

Kept free of SQLAlchemy and FastAPI imports so the calendar and status
logic can be used on plain records.
"""

from enum import Enum


class BillingPeriod(str, Enum):
    """How often an obligation recurs."""
    MONTHLY = "monthly"
    YEARLY = "yearly"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"


class ObligationGroup(str, Enum):
    """Which synthetic budget category an obligation rolls up into."""
    BILL = "bill"
    SUBSCRIPTION = "subscription"


class EntrySource(str, Enum):
    """Who recorded a ledger entry."""
    MANUAL = "manual"        # Entered by the user
    RECURRING = "recurring"  # Written by reconciliation or an advance payment


class PaymentStatus(str, Enum):
    """Display status of an obligation within a budget period."""
    PAID = "paid"
    PARTIAL = "partial"
    OVERDUE = "overdue"
    DUE_TODAY = "due_today"
    UPCOMING = "upcoming"
