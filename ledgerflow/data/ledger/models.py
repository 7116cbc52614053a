"""Ledger entry model."""
from sqlalchemy import Column, String, DateTime, Date, Numeric, Text, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ledgerflow.database import Base
from ledgerflow.data.base import generate_id


class LedgerEntry(Base):
    """
    Ledger Entry - one recorded transaction.

    Expenses are negative. Entries written by reconciliation or an advance
    payment carry source="recurring" and the obligation they settle.
    """

    __tablename__ = "ledger_entries"

    id = Column(String, primary_key=True, default=lambda: generate_id("txn"))
    user_id = Column(String, nullable=False, index=True)

    name = Column(String, nullable=False)
    amount = Column(Numeric(precision=15, scale=2), nullable=False)
    entry_date = Column(Date, nullable=False)

    category_id = Column(String, ForeignKey("budget_categories.id", ondelete="SET NULL"), nullable=True)

    source = Column(String, nullable=False, default="manual")
    # Options: "manual", "recurring"

    # Set only for source="recurring"
    obligation_id = Column(String, ForeignKey("recurring_obligations.id", ondelete="SET NULL"), nullable=True)

    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    obligation = relationship("RecurringObligation", back_populates="entries")
    category = relationship("BudgetCategory", back_populates="entries")

    __table_args__ = (
        # At most one entry per obligation per date; NULL obligation ids never collide
        UniqueConstraint("obligation_id", "entry_date", name="uq_ledger_entries_obligation_date"),
        Index("ix_ledger_entries_user_date", "user_id", "entry_date"),
        Index("ix_ledger_entries_category_id", "category_id"),
    )
