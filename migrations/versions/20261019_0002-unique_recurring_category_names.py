"""Unique synthetic category names per budget period

Two first-time opens of the same period could each insert a "Bills" row.
This adds a partial unique index over (period_id, name) for recurring
categories; user-created categories may still share names.

Revision ID: c7d2f9a41e06
Revises: a1c4e7f20b31
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'c7d2f9a41e06'
down_revision: Union[str, None] = 'a1c4e7f20b31'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Collapse duplicated synthetic categories onto one row per (period_id, name)
    op.execute(
        """
        UPDATE ledger_entries
        SET category_id = (
            SELECT MIN(keep.id) FROM budget_categories keep
            JOIN budget_categories dup
              ON dup.period_id = keep.period_id AND dup.name = keep.name
            WHERE dup.id = ledger_entries.category_id AND keep.is_recurring
        )
        WHERE category_id IN (SELECT id FROM budget_categories WHERE is_recurring)
        """
    )
    op.execute(
        """
        DELETE FROM budget_categories
        WHERE is_recurring
          AND id NOT IN (
              SELECT MIN(id) FROM budget_categories
              WHERE is_recurring
              GROUP BY period_id, name
          )
        """
    )

    op.create_index(
        'uq_budget_categories_recurring_name',
        'budget_categories',
        ['period_id', 'name'],
        unique=True,
        postgresql_where=sa.text('is_recurring'),
        sqlite_where=sa.text('is_recurring'),
    )


def downgrade() -> None:
    op.drop_index('uq_budget_categories_recurring_name', table_name='budget_categories')
