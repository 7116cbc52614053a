"""Budget period and category models."""
from sqlalchemy import Column, String, DateTime, Numeric, Boolean, Integer, ForeignKey, Index, UniqueConstraint, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ledgerflow.database import Base
from ledgerflow.data.base import generate_id


class BudgetPeriod(Base):
    """Budget Period - one user's allocation for a calendar month."""

    __tablename__ = "budget_periods"

    id = Column(String, primary_key=True, default=lambda: generate_id("alloc"))
    user_id = Column(String, nullable=False, index=True)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    expected_income = Column(Numeric(precision=15, scale=2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    categories = relationship("BudgetCategory", back_populates="period", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("user_id", "year", "month", name="uq_budget_periods_user_month"),
    )


class BudgetCategory(Base):
    """
    Budget Category - a spending bucket inside a period.

    is_recurring marks the synthetic "Bills" / "Subscriptions" categories whose
    existence and cap are derived from active obligations.
    """

    __tablename__ = "budget_categories"

    id = Column(String, primary_key=True, default=lambda: generate_id("cat"))
    period_id = Column(String, ForeignKey("budget_periods.id", ondelete="CASCADE"), nullable=False)
    name = Column(String, nullable=False)
    budget_cap = Column(Numeric(precision=15, scale=2), nullable=False, default=0)
    is_recurring = Column(Boolean, nullable=False, default=False)
    display_order = Column(Integer, nullable=False, default=0)
    color = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    period = relationship("BudgetPeriod", back_populates="categories")
    entries = relationship("LedgerEntry", back_populates="category")

    __table_args__ = (
        Index("ix_budget_categories_period_id", "period_id"),
        # At most one synthetic category per name in a period; user categories may repeat names
        Index(
            "uq_budget_categories_recurring_name",
            "period_id",
            "name",
            unique=True,
            postgresql_where=text("is_recurring"),
            sqlite_where=text("is_recurring"),
        ),
    )
