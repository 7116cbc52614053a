# Engines Module
# Orchestrates category sync → reconciliation → status for a budget period

from .pipeline import (
    RecurringEngine,
    get_engine,
)

__all__ = [
    "RecurringEngine",
    "get_engine",
]
