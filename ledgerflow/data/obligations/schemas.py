"""
Pydantic schemas for recurring obligations.

ObligationRead doubles as the in-process record handed to the calendar,
status and reconciliation services, whichever data provider produced it.
"""
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field, field_validator
from decimal import Decimal
from datetime import date, datetime

from ledgerflow.services.occurrences import coerce_date
from ledgerflow.types import BillingPeriod, ObligationGroup, PaymentStatus


# ============================================
# Obligation Schemas
# ============================================

class ObligationCreate(BaseModel):
    """Schema for creating a recurring obligation."""

    name: str = Field(..., min_length=1, description="Display name, e.g. 'Netflix'")
    amount: Decimal = Field(..., gt=0, max_digits=15, decimal_places=2, description="Charge per occurrence")
    billing_period: BillingPeriod = Field(..., description="How often the obligation recurs")
    next_due_date: date = Field(..., description="Earliest occurrence not yet advanced past")
    group: ObligationGroup = Field(ObligationGroup.BILL, description="Bill or subscription")

    is_active: bool = True
    is_automated: bool = Field(
        True, description="When false the obligation is paid manually and never auto-created"
    )

    currency: str = Field("USD", description="Currency code (ISO 4217)")
    service_provider: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("next_due_date", mode="before")
    @classmethod
    def _date_only(cls, value):
        return coerce_date(value)


class ObligationUpdate(BaseModel):
    """Schema for updating an obligation. Unset fields are left unchanged."""

    name: Optional[str] = Field(None, min_length=1)
    amount: Optional[Decimal] = Field(None, gt=0, max_digits=15, decimal_places=2)
    billing_period: Optional[BillingPeriod] = None
    next_due_date: Optional[date] = None
    group: Optional[ObligationGroup] = None
    is_active: Optional[bool] = None
    is_automated: Optional[bool] = None
    currency: Optional[str] = None
    service_provider: Optional[str] = None
    notes: Optional[str] = None

    @field_validator(
        "name", "amount", "billing_period", "next_due_date", "group",
        "is_active", "is_automated", "currency",
        mode="before",
    )
    @classmethod
    def _not_null(cls, value):
        # Only service_provider and notes can be cleared
        if value is None:
            raise ValueError("may be omitted but not set to null")
        return value

    @field_validator("next_due_date", mode="before")
    @classmethod
    def _date_only(cls, value):
        if value is None:
            return value
        return coerce_date(value)


class ObligationRead(BaseModel):
    """A stored obligation."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    name: str
    amount: Decimal
    billing_period: BillingPeriod
    next_due_date: date
    group: ObligationGroup
    is_active: bool = True
    is_automated: bool = True
    currency: str = "USD"
    service_provider: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("next_due_date", mode="before")
    @classmethod
    def _date_only(cls, value):
        return coerce_date(value)


class ObligationWithStatus(ObligationRead):
    """Obligation annotated with its payment status for one budget period."""

    status: PaymentStatus
    paid_amount: Decimal = Decimal("0")
    paid_count: int = 0
    occurrences_count: int = 0
    display_due_date: date
    match_strategy: Optional[str] = Field(
        None, description="Which matcher tier linked the paid entries (linked, recurring_source, fuzzy_name)"
    )
    matched_entry_ids: List[str] = Field(default_factory=list)


# ============================================
# Action Schemas
# ============================================

class ToggleObligationRequest(BaseModel):
    """Request to activate or pause an obligation."""

    is_active: bool


class PayFutureRequest(BaseModel):
    """Request to pay the next ``count`` occurrences in advance."""

    count: int = Field(..., ge=1, le=60, description="Number of occurrences to pay")


class PayFutureResponse(BaseModel):
    """Outcome of an advance payment batch."""

    success: bool
    obligation_id: str
    new_next_due_date: Optional[date] = None
    created_entry_ids: List[str] = Field(default_factory=list)
    already_paid_dates: List[date] = Field(default_factory=list)
    error: Optional[str] = None


class PayableOccurrence(BaseModel):
    """An upcoming occurrence that can be paid in advance."""

    index: int
    due_date: date
    amount: Decimal
