"""Error taxonomy for the recurring obligation engine."""
from typing import Optional


class RecurringEngineError(Exception):
    """Base class for all engine errors."""

    def __init__(self, message: str, entity_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.entity_id = entity_id


class ValidationError(RecurringEngineError, ValueError):
    """
    Malformed amount, date or billing period. Raised before any side effect.

    Subclasses ValueError so pydantic validators surface it as a field error.
    """


class NotFoundError(RecurringEngineError):
    """A referenced obligation, period or category does not exist."""


class PersistenceError(RecurringEngineError):
    """The backing store rejected a read or write."""


class DuplicateEntryError(PersistenceError):
    """A recurring entry already exists for this (obligation, date) pair."""
