"""initial fleet maintenance tables

Revision ID: 0001_initial_fleet
Revises: 
Create Date: 2026-10-19
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa

revision = '0001_initial_fleet'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table('users',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False)
    )
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table('vehicles',
        sa.Column('id', sa.String(length=32), primary_key=True),
        sa.Column('current_kilometers', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_engine_service_km', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_transmission_service_km', sa.Integer(), nullable=False, server_default='0')
    )

    op.create_table('inspections',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('vehicle_id', sa.String(length=32), sa.ForeignKey('vehicles.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=False, server_default=''),
        sa.Column('images', sa.JSON(), nullable=True),
        sa.Column('inspected_by', sa.String(length=64), nullable=True)
    )
    op.create_index('ix_inspections_vehicle_id', 'inspections', ['vehicle_id'])
    op.create_index('ix_inspections_created_at', 'inspections', ['created_at'])

    op.create_table('spare_parts',
        sa.Column('sap_code', sa.String(length=64), primary_key=True),
        sa.Column('material_description', sa.String(length=255), nullable=False),
        sa.Column('description_ar', sa.String(length=255), nullable=True),
        sa.Column('location', sa.String(length=32), nullable=False, server_default=''),
        sa.Column('dept', sa.String(length=64), nullable=False, server_default=''),
        sa.Column('uom', sa.String(length=16), nullable=False, server_default='PCS'),
        sa.Column('balance_on_sap', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(), nullable=False)
    )

    op.create_table('tickets',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('serial', sa.String(length=64), nullable=False, unique=True),
        sa.Column('vehicle_id', sa.String(length=32), sa.ForeignKey('vehicles.id'), nullable=False),
        sa.Column('issue', sa.Text(), nullable=False),
        sa.Column('reported_by', sa.String(length=128), nullable=False),
        sa.Column('section', sa.String(length=32), nullable=False),
        sa.Column('priority', sa.String(length=16), nullable=False, server_default='Medium'),
        sa.Column('kilometers', sa.Integer(), nullable=False),
        sa.Column('location', sa.String(length=128), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('closed_at', sa.DateTime(), nullable=True),
        sa.Column('confirmed_at', sa.DateTime(), nullable=True),
        sa.Column('assigned_to', sa.JSON(), nullable=False),
        sa.Column('work_done_notes', sa.Text(), nullable=True)
    )
    op.create_index('ix_tickets_serial', 'tickets', ['serial'])
    op.create_index('ix_tickets_vehicle_id', 'tickets', ['vehicle_id'])
    op.create_index('ix_tickets_section', 'tickets', ['section'])
    op.create_index('ix_tickets_created_at', 'tickets', ['created_at'])

    op.create_table('part_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('ticket_id', sa.String(length=36), sa.ForeignKey('tickets.id', ondelete='CASCADE'), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('serial', sa.String(length=96), nullable=False, unique=True),
        sa.Column('parts', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='pending'),
        sa.Column('requested_by', sa.String(length=64), nullable=True),
        sa.Column('requested_at', sa.DateTime(), nullable=False),
        sa.Column('admin_resolved_at', sa.DateTime(), nullable=True),
        sa.Column('warehouse_resolved_at', sa.DateTime(), nullable=True),
        sa.Column('warehouse_completed_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('ticket_id', 'sequence', name='uq_part_request_sequence')
    )
    op.create_index('ix_part_requests_ticket_id', 'part_requests', ['ticket_id'])
    op.create_index('ix_part_requests_status', 'part_requests', ['status'])

    op.create_table('notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(length=64), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('ticket_id', sa.String(length=36), sa.ForeignKey('tickets.id'), nullable=False),
        sa.Column('ticket_serial', sa.String(length=64), nullable=False),
        sa.Column('event', sa.String(length=32), nullable=False),
        sa.Column('message', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('read', sa.Boolean(), nullable=False, server_default=sa.text('0'))
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    op.create_index('ix_notifications_ticket_id', 'notifications', ['ticket_id'])

    op.create_table('audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('actor_user_id', sa.String(length=64), nullable=False),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('entity', sa.String(length=64), nullable=True),
        sa.Column('entity_id', sa.String(length=64), nullable=True),
        sa.Column('meta', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False)
    )
    op.create_index('ix_audit_logs_actor_user_id', 'audit_logs', ['actor_user_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])


def downgrade():
    for table in ('audit_logs', 'notifications', 'part_requests', 'tickets', 'spare_parts', 'inspections', 'vehicles', 'users'):
        op.drop_table(table)
