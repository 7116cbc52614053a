"""Create recurring obligation, budget and ledger tables.

Creates:
- recurring_obligations: bills and subscriptions with a due-date cursor
- budget_periods: one row per user and calendar month
- budget_categories: spending buckets, including the synthetic
  "Bills" / "Subscriptions" categories (is_recurring = true)
- ledger_entries: manual and recurring transactions, at most one per
  (obligation_id, entry_date)

Revision ID: a1c4e7f20b31
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a1c4e7f20b31'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'recurring_obligations',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('currency', sa.String(), nullable=False, server_default='USD'),

        # Timing
        sa.Column('billing_period', sa.String(), nullable=False),
        sa.Column('next_due_date', sa.Date(), nullable=False),

        sa.Column('obligation_group', sa.String(), nullable=False, server_default='bill'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_automated', sa.Boolean(), nullable=False, server_default=sa.true()),

        sa.Column('service_provider', sa.String(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_recurring_obligations_user_id', 'recurring_obligations', ['user_id'])
    op.create_index('ix_recurring_obligations_user_due', 'recurring_obligations', ['user_id', 'next_due_date'])

    op.create_table(
        'budget_periods',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('expected_income', sa.Numeric(precision=15, scale=2), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'year', 'month', name='uq_budget_periods_user_month'),
    )
    op.create_index('ix_budget_periods_user_id', 'budget_periods', ['user_id'])

    op.create_table(
        'budget_categories',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('period_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('budget_cap', sa.Numeric(precision=15, scale=2), nullable=False, server_default='0'),
        sa.Column('is_recurring', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('color', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['period_id'], ['budget_periods.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_budget_categories_period_id', 'budget_categories', ['period_id'])

    op.create_table(
        'ledger_entries',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('entry_date', sa.Date(), nullable=False),
        sa.Column('category_id', sa.String(), nullable=True),
        sa.Column('source', sa.String(), nullable=False, server_default='manual'),
        sa.Column('obligation_id', sa.String(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['category_id'], ['budget_categories.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['obligation_id'], ['recurring_obligations.id'], ondelete='SET NULL'),
        # One entry per obligation per date; guards concurrent reconciliation passes
        sa.UniqueConstraint('obligation_id', 'entry_date', name='uq_ledger_entries_obligation_date'),
    )
    op.create_index('ix_ledger_entries_user_id', 'ledger_entries', ['user_id'])
    op.create_index('ix_ledger_entries_user_date', 'ledger_entries', ['user_id', 'entry_date'])
    op.create_index('ix_ledger_entries_category_id', 'ledger_entries', ['category_id'])


def downgrade() -> None:
    op.drop_index('ix_ledger_entries_category_id', table_name='ledger_entries')
    op.drop_index('ix_ledger_entries_user_date', table_name='ledger_entries')
    op.drop_index('ix_ledger_entries_user_id', table_name='ledger_entries')
    op.drop_table('ledger_entries')

    op.drop_index('ix_budget_categories_period_id', table_name='budget_categories')
    op.drop_table('budget_categories')

    op.drop_index('ix_budget_periods_user_id', table_name='budget_periods')
    op.drop_table('budget_periods')

    op.drop_index('ix_recurring_obligations_user_due', table_name='recurring_obligations')
    op.drop_index('ix_recurring_obligations_user_id', table_name='recurring_obligations')
    op.drop_table('recurring_obligations')
