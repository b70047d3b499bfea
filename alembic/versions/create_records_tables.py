"""Create students and subjects tables.

Revision ID: create_records_tables
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'create_records_tables'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def timestamp_columns() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        'students',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('admission_no', sa.String(50), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('class_name', sa.String(100), nullable=False),
        sa.Column('semester', sa.String(10), nullable=False, server_default='Odd'),
        sa.Column('marks', sa.JSON(), nullable=False),
        sa.Column('grand_total', sa.Float(), nullable=False, server_default='0'),
        sa.Column('average', sa.Float(), nullable=False, server_default='0'),
        sa.Column('rank', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('performance_level', sa.String(50), nullable=False, server_default='F (Failed)'),
        sa.Column('import_row_number', sa.BigInteger(), nullable=True),
        *timestamp_columns(),
    )
    op.create_index('ix_students_admission_no', 'students', ['admission_no'])
    op.create_index('ix_students_class_name', 'students', ['class_name'])

    op.create_table(
        'subjects',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('arabic_name', sa.String(255), nullable=True),
        sa.Column('faculty_name', sa.String(255), nullable=True),
        sa.Column('max_ta', sa.Float(), nullable=False, server_default='0'),
        sa.Column('max_ce', sa.Float(), nullable=False, server_default='0'),
        sa.Column('passing_total', sa.Float(), nullable=False, server_default='0'),
        sa.Column('subject_type', sa.String(20), nullable=False, server_default='general'),
        sa.Column('target_classes', sa.JSON(), nullable=False),
        sa.Column('enrolled_students', sa.JSON(), nullable=False),
        *timestamp_columns(),
    )


def downgrade() -> None:
    op.drop_table('subjects')
    op.drop_index('ix_students_class_name', table_name='students')
    op.drop_index('ix_students_admission_no', table_name='students')
    op.drop_table('students')
