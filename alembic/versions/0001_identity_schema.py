"""identity schema: members, admins, sessions, permissions, audit log, activities

Revision ID: 0001_identity_schema
Revises:
Create Date: 2026-10-19 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_identity_schema'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


application_status = sa.Enum('pending', 'approved', 'rejected', name='application_status')
member_status = sa.Enum(
    'pending', 'pending_password_setup', 'active', 'suspended', 'expired', name='member_status'
)
admin_role = sa.Enum('admin', 'super_admin', name='admin_role')
audit_status = sa.Enum('success', 'failed', 'warning', name='audit_status')
activity_priority = sa.Enum('low', 'medium', 'high', name='activity_priority')

json_type = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def upgrade() -> None:
    op.create_table(
        'members',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('membership_number', sa.String(length=50), nullable=True),
        sa.Column('application_status', application_status, nullable=False),
        sa.Column('member_status', member_status, nullable=False),
        sa.Column('review_comment', sa.Text(), nullable=True),
        sa.Column('renewal_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_members_member_status', 'members', ['member_status'])
    op.create_index('ix_members_renewal_date', 'members', ['renewal_date'])

    op.create_table(
        'member_authentication',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('member_id', sa.Uuid(), nullable=False),
        sa.Column('username', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('salt', sa.String(length=255), nullable=True),
        sa.Column('credential_version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('password_changed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['member_id'], ['members.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('member_id'),
    )
    op.create_index('ix_member_authentication_username', 'member_authentication', ['username'], unique=True)

    op.create_table(
        'member_contact_details',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('member_id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=30), nullable=True),
        sa.ForeignKeyConstraint(['member_id'], ['members.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_member_contact_details_member_id', 'member_contact_details', ['member_id'])
    op.create_index('ix_member_contact_details_email', 'member_contact_details', ['email'], unique=True)

    op.create_table(
        'admins',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('username', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('salt', sa.String(length=255), nullable=False),
        sa.Column('role', admin_role, nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=True),
        sa.Column('last_name', sa.String(length=100), nullable=True),
        sa.Column('phone', sa.String(length=30), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
        sa.Column('password_changed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('credential_version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('login_attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('locked_until', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_admins_username', 'admins', ['username'], unique=True)
    op.create_index('ix_admins_email', 'admins', ['email'], unique=True)

    op.create_table(
        'admin_sessions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('admin_id', sa.Uuid(), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['admin_id'], ['admins.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('token_hash'),
    )
    op.create_index('ix_admin_sessions_admin_id', 'admin_sessions', ['admin_id'])

    op.create_table(
        'admin_permissions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('admin_id', sa.Uuid(), nullable=False),
        sa.Column('resource', sa.String(length=100), nullable=False),
        sa.Column('action', sa.String(length=100), nullable=False),
        sa.Column('allowed', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['admin_id'], ['admins.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('admin_id', 'resource', 'action', name='uq_admin_permissions_grant'),
    )
    op.create_index('ix_admin_permissions_admin_id', 'admin_permissions', ['admin_id'])

    op.create_table(
        'admin_audit_log',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('admin_id', sa.Uuid(), nullable=True),
        sa.Column('admin_username', sa.String(length=255), nullable=True),
        sa.Column('action', sa.String(length=100), nullable=False),
        sa.Column('resource_type', sa.String(length=50), nullable=False),
        sa.Column('resource_id', sa.String(length=255), nullable=True),
        sa.Column('old_values', json_type, nullable=True),
        sa.Column('new_values', json_type, nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('status', audit_status, nullable=False),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['admin_id'], ['admins.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_admin_audit_log_admin_id', 'admin_audit_log', ['admin_id'])
    op.create_index('ix_admin_audit_log_action', 'admin_audit_log', ['action'])
    op.create_index('ix_admin_audit_log_created_at', 'admin_audit_log', ['created_at'])

    op.create_table(
        'admin_activities',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('activity_type', sa.String(length=100), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('priority', activity_priority, nullable=False),
        sa.Column('related_entity', sa.String(length=50), nullable=True),
        sa.Column('related_id', sa.String(length=255), nullable=True),
        sa.Column('admin_id', sa.Uuid(), nullable=True),
        sa.Column('details', json_type, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['admin_id'], ['admins.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_admin_activities_created_at', 'admin_activities', ['created_at'])


def downgrade() -> None:
    op.drop_index('ix_admin_activities_created_at', table_name='admin_activities')
    op.drop_table('admin_activities')

    op.drop_index('ix_admin_audit_log_created_at', table_name='admin_audit_log')
    op.drop_index('ix_admin_audit_log_action', table_name='admin_audit_log')
    op.drop_index('ix_admin_audit_log_admin_id', table_name='admin_audit_log')
    op.drop_table('admin_audit_log')

    op.drop_index('ix_admin_permissions_admin_id', table_name='admin_permissions')
    op.drop_table('admin_permissions')

    op.drop_index('ix_admin_sessions_admin_id', table_name='admin_sessions')
    op.drop_table('admin_sessions')

    op.drop_index('ix_admins_email', table_name='admins')
    op.drop_index('ix_admins_username', table_name='admins')
    op.drop_table('admins')

    op.drop_index('ix_member_contact_details_email', table_name='member_contact_details')
    op.drop_index('ix_member_contact_details_member_id', table_name='member_contact_details')
    op.drop_table('member_contact_details')

    op.drop_index('ix_member_authentication_username', table_name='member_authentication')
    op.drop_table('member_authentication')

    op.drop_index('ix_members_renewal_date', table_name='members')
    op.drop_index('ix_members_member_status', table_name='members')
    op.drop_table('members')

    bind = op.get_bind()
    for enum in (activity_priority, audit_status, admin_role, member_status, application_status):
        enum.drop(bind, checkfirst=True)
