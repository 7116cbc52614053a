"""Pydantic schemas for ledger entries."""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from decimal import Decimal
from datetime import date, datetime

from ledgerflow.services.occurrences import coerce_date
from ledgerflow.types import EntrySource


class LedgerEntryCreate(BaseModel):
    """Schema for inserting a ledger entry."""

    user_id: str
    name: str = Field(..., min_length=1)
    amount: Decimal = Field(..., description="Signed amount; expenses are negative")
    entry_date: date
    category_id: Optional[str] = None
    source: EntrySource = EntrySource.MANUAL
    obligation_id: Optional[str] = Field(None, description="Set only for recurring entries")
    notes: Optional[str] = None

    @field_validator("entry_date", mode="before")
    @classmethod
    def _date_only(cls, value):
        return coerce_date(value)


class LedgerEntryRead(BaseModel):
    """A stored ledger entry."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    name: str
    amount: Decimal
    entry_date: date
    category_id: Optional[str] = None
    source: EntrySource = EntrySource.MANUAL
    obligation_id: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("entry_date", mode="before")
    @classmethod
    def _date_only(cls, value):
        return coerce_date(value)
