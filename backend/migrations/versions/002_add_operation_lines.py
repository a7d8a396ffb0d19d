"""Add operation_lines

Lines each operation step can run on; ending an operation checks its
line against this table.

Revision ID: 002_add_operation_lines
Revises: 001_initial_schema
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '002_add_operation_lines'
down_revision = '001_initial_schema'
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'operation_lines',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('step_code', sa.String(20), nullable=False),
        sa.Column('line_no', sa.String(20), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['step_code'], ['operation_steps.code'],
                                name='fk_operation_lines_step', ondelete='CASCADE'),
        sa.UniqueConstraint('step_code', 'line_no', name='uq_operation_line_step_line'),
    )
    op.create_index('ix_operation_lines_step_code', 'operation_lines', ['step_code'])


def downgrade() -> None:
    op.drop_index('ix_operation_lines_step_code', table_name='operation_lines')
    op.drop_table('operation_lines')
