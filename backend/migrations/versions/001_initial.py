"""Initial migration - create the results table

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

Creates the results table as first deployed, without a uniqueness rule
on the natural key. Revision 002 repairs duplicates and adds it.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'results',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('registration_number', sa.Text(), nullable=False),
        sa.Column('student_name', sa.Text(), nullable=False),
        sa.Column('class', sa.Text(), nullable=False),
        sa.Column('batch', sa.Text(), nullable=False),
        sa.Column('subject', sa.Text(), nullable=False),
        sa.Column('marks', sa.Float(), nullable=False, server_default='0'),
        sa.Column('grade', sa.Text(), nullable=False),
        sa.Column('exam_date', sa.Text(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table('results')
