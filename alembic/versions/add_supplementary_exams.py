"""Add supplementary exams table.

Revision ID: add_supplementary_exams
Revises: create_records_tables
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'add_supplementary_exams'
down_revision: Union[str, None] = 'create_records_tables'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'supplementary_exams',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('student_id', sa.String(64), nullable=False),
        sa.Column('subject_id', sa.String(64), nullable=False),
        sa.Column('original_semester', sa.String(10), nullable=False, server_default='Odd'),
        sa.Column('original_year', sa.Integer(), nullable=False),
        sa.Column('supplementary_year', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='Pending'),
        sa.Column('marks', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    )
    op.create_index('ix_supplementary_exams_student_id', 'supplementary_exams', ['student_id'])
    op.create_index('ix_supplementary_exams_subject_id', 'supplementary_exams', ['subject_id'])
    op.create_index('ix_supplementary_exams_supplementary_year', 'supplementary_exams', ['supplementary_year'])


def downgrade() -> None:
    op.drop_index('ix_supplementary_exams_supplementary_year', table_name='supplementary_exams')
    op.drop_index('ix_supplementary_exams_subject_id', table_name='supplementary_exams')
    op.drop_index('ix_supplementary_exams_student_id', table_name='supplementary_exams')
    op.drop_table('supplementary_exams')
