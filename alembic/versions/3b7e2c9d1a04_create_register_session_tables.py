"""create_register_session_tables

Revision ID: 3b7e2c9d1a04
Revises:
Create Date: 2026-10-19 09:12:41.508233

"""
from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '3b7e2c9d1a04'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'branches',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_branches_name'), 'branches', ['name'], unique=False)
    op.create_index(op.f('ix_branches_is_active'), 'branches', ['is_active'], unique=False)

    op.create_table(
        'registers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('branch_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(150), nullable=False),
        sa.Column('code', sa.String(50), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('branch_id', 'code', name='uq_registers_branch_code'),
    )
    op.create_index(op.f('ix_registers_branch_id'), 'registers', ['branch_id'], unique=False)
    op.create_index(op.f('ix_registers_is_active'), 'registers', ['is_active'], unique=False)

    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=False, server_default=''),
        sa.Column('last_name', sa.String(100), nullable=False, server_default=''),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_is_active'), 'users', ['is_active'], unique=False)

    op.create_table(
        'denomination_types',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(50), nullable=False),
        sa.Column('value', sa.Numeric(12, 2), nullable=False),
        sa.Column('kind', sa.String(10), nullable=False, server_default='note'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.CheckConstraint('value > 0', name='ck_denomination_types_value_positive'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        op.f('ix_denomination_types_is_active'), 'denomination_types', ['is_active'], unique=False
    )

    op.create_table(
        'register_sessions',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('session_number', sa.String(64), nullable=False),
        sa.Column('register_id', sa.Integer(), nullable=False),
        sa.Column('branch_id', sa.Integer(), nullable=False),
        sa.Column('opened_by', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('closed_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='OPEN'),
        sa.Column('declared_opening_balance', sa.Numeric(12, 2), nullable=False),
        sa.Column('calculated_opening_balance', sa.Numeric(12, 2), nullable=False),
        sa.Column('declared_closing_balance', sa.Numeric(12, 2), nullable=True),
        sa.Column('calculated_closing_balance', sa.Numeric(12, 2), nullable=True),
        sa.Column('system_expected_balance', sa.Numeric(12, 2), nullable=True),
        sa.Column('discrepancy_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('opening_notes', sa.Text(), nullable=True),
        sa.Column('closing_notes', sa.Text(), nullable=True),
        sa.Column('opened_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('closed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['register_id'], ['registers.id']),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id']),
        sa.ForeignKeyConstraint(['opened_by'], ['users.id']),
        sa.ForeignKeyConstraint(['closed_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        op.f('ix_register_sessions_session_number'), 'register_sessions', ['session_number'], unique=True
    )
    op.create_index(
        op.f('ix_register_sessions_register_id'), 'register_sessions', ['register_id'], unique=False
    )
    op.create_index(
        op.f('ix_register_sessions_branch_id'), 'register_sessions', ['branch_id'], unique=False
    )
    op.create_index(
        op.f('ix_register_sessions_opened_by'), 'register_sessions', ['opened_by'], unique=False
    )
    op.create_index(op.f('ix_register_sessions_status'), 'register_sessions', ['status'], unique=False)
    op.create_index(
        op.f('ix_register_sessions_opened_at'), 'register_sessions', ['opened_at'], unique=False
    )

    # At most one OPEN session per register
    op.execute(
        """
        CREATE UNIQUE INDEX uq_register_sessions_one_open_per_register
        ON register_sessions(register_id)
        WHERE status = 'OPEN';
        """
    )

    op.create_table(
        'register_session_denominations',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('session_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('denomination_id', sa.Integer(), nullable=False),
        sa.Column('phase', sa.String(10), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.CheckConstraint('quantity >= 0', name='ck_register_session_denominations_quantity'),
        sa.ForeignKeyConstraint(['session_id'], ['register_sessions.id']),
        sa.ForeignKeyConstraint(['denomination_id'], ['denomination_types.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'session_id', 'denomination_id', 'phase', name='uq_register_session_denominations_entry'
        ),
    )
    op.create_index(
        op.f('ix_register_session_denominations_session_id'),
        'register_session_denominations',
        ['session_id'],
        unique=False,
    )

    op.create_table(
        'register_audit_logs',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('session_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('register_id', sa.Integer(), nullable=False),
        sa.Column('branch_id', sa.Integer(), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('old_value', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('new_value', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column(
            'extra',
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column('ip_address', sa.String(64), nullable=True),
        sa.Column('user_agent', sa.String(500), nullable=True),
        sa.ForeignKeyConstraint(['session_id'], ['register_sessions.id']),
        sa.ForeignKeyConstraint(['register_id'], ['registers.id']),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        op.f('ix_register_audit_logs_session_id'), 'register_audit_logs', ['session_id'], unique=False
    )
    op.create_index(
        op.f('ix_register_audit_logs_register_id'), 'register_audit_logs', ['register_id'], unique=False
    )
    op.create_index(
        op.f('ix_register_audit_logs_branch_id'), 'register_audit_logs', ['branch_id'], unique=False
    )
    op.create_index(
        op.f('ix_register_audit_logs_created_at'), 'register_audit_logs', ['created_at'], unique=False
    )


def downgrade() -> None:
    op.drop_table('register_audit_logs')
    op.drop_table('register_session_denominations')
    op.execute("DROP INDEX IF EXISTS uq_register_sessions_one_open_per_register;")
    op.drop_table('register_sessions')
    op.drop_table('denomination_types')
    op.drop_table('users')
    op.drop_table('registers')
    op.drop_table('branches')
