"""Recurring obligation model (bills and subscriptions)."""
from sqlalchemy import Column, String, DateTime, Date, Numeric, Boolean, Text, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ledgerflow.database import Base
from ledgerflow.data.base import generate_id


class RecurringObligation(Base):
    """
    Recurring Obligation - a bill or subscription with a billing period.

    next_due_date is a cursor: the earliest occurrence that has not been
    advanced past yet. Only the payment scheduler moves it forward.
    """

    __tablename__ = "recurring_obligations"

    id = Column(String, primary_key=True, default=lambda: generate_id("rec"))
    user_id = Column(String, nullable=False, index=True)

    name = Column(String, nullable=False)
    amount = Column(Numeric(precision=15, scale=2), nullable=False)
    currency = Column(String, nullable=False, default="USD")

    # Timing
    billing_period = Column(String, nullable=False)
    # Options: "monthly", "yearly", "weekly", "biweekly"

    next_due_date = Column(Date, nullable=False)

    # Which synthetic category the obligation rolls up into
    group = Column("obligation_group", String, nullable=False)
    # Options: "bill", "subscription"

    is_active = Column(Boolean, nullable=False, default=True)
    # False = must be paid manually, reconciliation never auto-creates entries
    is_automated = Column(Boolean, nullable=False, default=True)

    # Display metadata
    service_provider = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    entries = relationship("LedgerEntry", back_populates="obligation")

    __table_args__ = (
        Index("ix_recurring_obligations_user_due", "user_id", "next_due_date"),
    )
