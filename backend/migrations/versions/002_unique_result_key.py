"""Enforce one result per natural key

Revision ID: 002_unique_result_key
Revises: 001_initial
Create Date: 2026-10-19

Removes duplicate rows (keeping the lowest id per group) and creates
the unique index on (registration_number, class, batch, subject,
exam_date) so uploads replace rows instead of appending.
"""
from typing import Sequence, Union

from alembic import op

# revision identifiers
revision: str = '002_unique_result_key'
down_revision: Union[str, None] = '001_initial'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute(
        """
        DELETE FROM results
        WHERE id NOT IN (
            SELECT MIN(id)
            FROM results
            GROUP BY registration_number, class, batch, subject, exam_date
        )
        """
    )
    op.create_index(
        'idx_unique_result',
        'results',
        ['registration_number', 'class', 'batch', 'subject', 'exam_date'],
        unique=True,
    )


def downgrade() -> None:
    op.drop_index('idx_unique_result', table_name='results')
