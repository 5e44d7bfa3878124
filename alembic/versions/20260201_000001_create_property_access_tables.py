"""Create property_grants and property_invitations tables

Revision ID: 20260201_000001
Revises: None
Create Date: 2026-02-01

This migration creates the many-to-many access tables. The existing
properties.landlord_id column is left untouched; it stays readable as the
legacy single-owner reference and is reconciled into property_grants by
`python -m services.reconciler`.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20260201_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ROLES = ('OWNER', 'PROPERTY_MANAGER', 'LEASING_AGENT', 'MAINTENANCE_COORDINATOR', 'VIEWER')
STATUSES = ('PENDING', 'ACTIVE', 'INACTIVE', 'REVOKED')


def upgrade() -> None:
    """Create the grant and invitation tables."""
    op.create_table(
        'property_grants',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('property_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column(
            'role',
            sa.Enum(*ROLES, name='grant_role', create_constraint=True),
            nullable=False,
            server_default='VIEWER'
        ),
        sa.Column(
            'status',
            sa.Enum(*STATUSES, name='grant_status', create_constraint=True),
            nullable=False,
            server_default='PENDING'
        ),
        sa.Column('permissions', sa.JSON(), nullable=False),
        sa.Column('invited_by', sa.Integer(), nullable=True),
        sa.Column('invited_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('accepted_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(
            ['property_id'],
            ['properties.id'],
            name='fk_property_grants_property_id',
            ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(
            ['user_id'],
            ['users.id'],
            name='fk_property_grants_user_id',
            ondelete='NO ACTION',
        ),
        sa.ForeignKeyConstraint(
            ['invited_by'],
            ['users.id'],
            name='fk_property_grants_invited_by',
            ondelete='NO ACTION',
        ),
        sa.UniqueConstraint('property_id', 'user_id', name='uq_property_grants_property_user'),
    )

    op.create_index('ix_property_grants_property_id', 'property_grants', ['property_id'])
    op.create_index('ix_property_grants_user_id', 'property_grants', ['user_id'])
    op.create_index('ix_property_grants_role', 'property_grants', ['role'])
    op.create_index('ix_property_grants_status', 'property_grants', ['status'])
    op.create_index('ix_property_grants_user_status', 'property_grants', ['user_id', 'status'])

    op.create_table(
        'property_invitations',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('property_id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column(
            'role',
            sa.Enum(*ROLES, name='invitation_role', create_constraint=True),
            nullable=False,
            server_default='VIEWER'
        ),
        sa.Column('permissions', sa.JSON(), nullable=False),
        sa.Column('invited_by', sa.Integer(), nullable=False),
        sa.Column('token', sa.String(length=64), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('accepted_at', sa.DateTime(), nullable=True),
        sa.Column('accepted_by', sa.Integer(), nullable=True),
        sa.Column(
            'status',
            sa.Enum(*STATUSES, name='invitation_status', create_constraint=True),
            nullable=False,
            server_default='PENDING'
        ),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(
            ['property_id'],
            ['properties.id'],
            name='fk_property_invitations_property_id',
            ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(
            ['invited_by'],
            ['users.id'],
            name='fk_property_invitations_invited_by',
            ondelete='NO ACTION',
        ),
        sa.ForeignKeyConstraint(
            ['accepted_by'],
            ['users.id'],
            name='fk_property_invitations_accepted_by',
            ondelete='NO ACTION',
        ),
    )

    op.create_index('ix_property_invitations_token', 'property_invitations', ['token'], unique=True)
    op.create_index('ix_property_invitations_email', 'property_invitations', ['email'])
    op.create_index('ix_property_invitations_property_status', 'property_invitations', ['property_id', 'status'])
    op.create_index('ix_property_invitations_expires_at', 'property_invitations', ['expires_at'])


def downgrade() -> None:
    """Drop the grant and invitation tables."""
    op.drop_index('ix_property_invitations_expires_at', table_name='property_invitations')
    op.drop_index('ix_property_invitations_property_status', table_name='property_invitations')
    op.drop_index('ix_property_invitations_email', table_name='property_invitations')
    op.drop_index('ix_property_invitations_token', table_name='property_invitations')
    op.drop_table('property_invitations')

    op.drop_index('ix_property_grants_user_status', table_name='property_grants')
    op.drop_index('ix_property_grants_status', table_name='property_grants')
    op.drop_index('ix_property_grants_role', table_name='property_grants')
    op.drop_index('ix_property_grants_user_id', table_name='property_grants')
    op.drop_index('ix_property_grants_property_id', table_name='property_grants')
    op.drop_table('property_grants')
