"""Initial ProdTrack schema

Users, the operation step chain, production orders with their operations,
the defect catalog and recorded defects, edit requests, notifications and
the audit log.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(100), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('role', sa.String(20), nullable=False, server_default='encoder'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table(
        'operation_steps',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(20), nullable=False),
        sa.Column('label', sa.String(100), nullable=True),
        sa.Column('step_order', sa.Integer(), nullable=False, unique=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_operation_steps_code', 'operation_steps', ['code'], unique=True)

    op.create_table(
        'production_orders',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('po_number', sa.String(50), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('lot_number', sa.String(50), nullable=True),
        sa.Column('item_name', sa.String(200), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='created'),
        sa.Column('current_step_code', sa.String(20), nullable=True),

        # Edit lock
        sa.Column('locked_by_id', sa.Integer(), nullable=True),
        sa.Column('locked_by_name', sa.String(200), nullable=True),
        sa.Column('locked_at', sa.DateTime(), nullable=True),

        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['locked_by_id'], ['users.id'],
                                name='fk_production_orders_locked_by'),
    )
    op.create_index('ix_production_orders_po_number', 'production_orders', ['po_number'], unique=True)
    op.create_index('ix_production_orders_status', 'production_orders', ['status'])
    op.create_index('ix_production_orders_locked_by_id', 'production_orders', ['locked_by_id'])

    op.create_table(
        'operations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('production_order_id', sa.Integer(), nullable=False),
        sa.Column('step_code', sa.String(20), nullable=False),
        sa.Column('operator_id', sa.Integer(), nullable=True),
        sa.Column('line_no', sa.String(20), nullable=True),
        sa.Column('start_time', sa.DateTime(), nullable=True),
        sa.Column('end_time', sa.DateTime(), nullable=True),
        sa.Column('input_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('output_quantity', sa.Integer(), nullable=True),
        sa.Column('resource_factor', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('production_hours', sa.Numeric(10, 4), nullable=True),
        sa.Column('man_hours', sa.Numeric(10, 4), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['production_order_id'], ['production_orders.id'],
                                name='fk_operations_production_order', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['step_code'], ['operation_steps.code'],
                                name='fk_operations_step'),
        sa.ForeignKeyConstraint(['operator_id'], ['users.id'],
                                name='fk_operations_operator'),
        sa.UniqueConstraint('production_order_id', 'step_code', name='uq_operation_order_step'),
    )
    op.create_index('ix_operations_production_order_id', 'operations', ['production_order_id'])
    op.create_index('ix_operations_step_code', 'operations', ['step_code'])

    op.create_table(
        'master_defects',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(50), nullable=True),
        sa.Column('applicable_step_code', sa.String(20), nullable=True),
        sa.Column('reworkable', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('machine', sa.String(100), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('deactivated_at', sa.DateTime(), nullable=True),
        sa.Column('deactivated_by_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['deactivated_by_id'], ['users.id'],
                                name='fk_master_defects_deactivated_by'),
        sa.UniqueConstraint('name', 'applicable_step_code', name='uq_master_defect_name_step'),
    )
    op.create_index('ix_master_defects_applicable_step_code', 'master_defects', ['applicable_step_code'])
    op.create_index('ix_master_defects_is_active', 'master_defects', ['is_active'])

    op.create_table(
        'operation_defects',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('operation_id', sa.Integer(), nullable=False),
        sa.Column('defect_type_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quantity_rework', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quantity_nogood', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quantity_replacement', sa.Integer(), nullable=False, server_default='0'),

        # Catalog snapshot at recording time
        sa.Column('defect_name', sa.String(100), nullable=False),
        sa.Column('defect_category', sa.String(50), nullable=True),
        sa.Column('defect_machine', sa.String(100), nullable=True),
        sa.Column('defect_reworkable', sa.Boolean(), nullable=False, server_default=sa.false()),

        sa.Column('recorded_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('recorded_by_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['operation_id'], ['operations.id'],
                                name='fk_operation_defects_operation', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['defect_type_id'], ['master_defects.id'],
                                name='fk_operation_defects_defect_type'),
        sa.ForeignKeyConstraint(['recorded_by_id'], ['users.id'],
                                name='fk_operation_defects_recorded_by'),
        sa.UniqueConstraint('operation_id', 'defect_type_id', name='uq_operation_defect_type'),
    )
    op.create_index('ix_operation_defects_operation_id', 'operation_defects', ['operation_id'])
    op.create_index('ix_operation_defects_defect_type_id', 'operation_defects', ['defect_type_id'])

    op.create_table(
        'defect_edit_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('request_type', sa.String(10), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('production_order_id', sa.Integer(), nullable=False),
        sa.Column('operation_id', sa.Integer(), nullable=False),
        sa.Column('operation_defect_id', sa.Integer(), nullable=True),

        # Defect snapshot
        sa.Column('defect_type_id', sa.Integer(), nullable=True),
        sa.Column('defect_name', sa.String(100), nullable=True),
        sa.Column('defect_category', sa.String(50), nullable=True),
        sa.Column('defect_reworkable', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('defect_machine', sa.String(100), nullable=True),

        sa.Column('current_qty', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('current_rework', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('current_nogood', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('current_replacement', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('requested_qty', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('requested_rework', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('requested_nogood', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('requested_replacement', sa.Integer(), nullable=False, server_default='0'),

        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('requested_by_id', sa.Integer(), nullable=False),
        sa.Column('resolved_by_id', sa.Integer(), nullable=True),
        sa.Column('resolution_note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('resolved_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['production_order_id'], ['production_orders.id'],
                                name='fk_edit_requests_production_order', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['operation_id'], ['operations.id'],
                                name='fk_edit_requests_operation', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['operation_defect_id'], ['operation_defects.id'],
                                name='fk_edit_requests_operation_defect', ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['defect_type_id'], ['master_defects.id'],
                                name='fk_edit_requests_defect_type'),
        sa.ForeignKeyConstraint(['requested_by_id'], ['users.id'],
                                name='fk_edit_requests_requested_by'),
        sa.ForeignKeyConstraint(['resolved_by_id'], ['users.id'],
                                name='fk_edit_requests_resolved_by'),
    )
    op.create_index('ix_defect_edit_requests_status', 'defect_edit_requests', ['status'])
    op.create_index('ix_defect_edit_requests_production_order_id', 'defect_edit_requests', ['production_order_id'])
    op.create_index('ix_defect_edit_requests_operation_id', 'defect_edit_requests', ['operation_id'])
    op.create_index('ix_defect_edit_requests_operation_defect_id', 'defect_edit_requests', ['operation_defect_id'])
    op.create_index('ix_defect_edit_requests_requested_by_id', 'defect_edit_requests', ['requested_by_id'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('source_type', sa.String(50), nullable=True),
        sa.Column('source_id', sa.Integer(), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'],
                                name='fk_notifications_user', ondelete='CASCADE'),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    op.create_index('ix_notifications_type', 'notifications', ['type'])
    op.create_index('ix_notifications_is_read', 'notifications', ['is_read'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('table_name', sa.String(50), nullable=False),
        sa.Column('record_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.String(30), nullable=False),
        sa.Column('old_values', sa.Text(), nullable=True),
        sa.Column('new_values', sa.Text(), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('timestamp', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'],
                                name='fk_audit_logs_user'),
    )
    op.create_index('ix_audit_logs_table_name', 'audit_logs', ['table_name'])
    op.create_index('ix_audit_logs_record_id', 'audit_logs', ['record_id'])
    op.create_index('ix_audit_logs_user_id', 'audit_logs', ['user_id'])
    op.create_index('ix_audit_logs_timestamp', 'audit_logs', ['timestamp'])


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_table('notifications')
    op.drop_table('defect_edit_requests')
    op.drop_table('operation_defects')
    op.drop_table('master_defects')
    op.drop_table('operations')
    op.drop_table('production_orders')
    op.drop_table('operation_steps')
    op.drop_table('users')
