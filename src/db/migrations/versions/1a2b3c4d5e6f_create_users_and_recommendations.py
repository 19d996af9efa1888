"""
Create users and recommendations tables.

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-19 10:12:03.118204

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = '1a2b3c4d5e6f'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column(
            'external_subject_id', sa.String(length=255), nullable=False,
            comment="Identity provider 'sub' claim - unique identifier for the caller",
        ),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('username', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column(
            'created_at', sa.DateTime(timezone=True),
            server_default=sa.text('now()'), nullable=False,
        ),
        sa.PrimaryKeyConstraint('id'),
    )
    # Unique index is what makes concurrent first-time provisioning safe
    op.create_index(
        op.f('ix_users_external_subject_id'), 'users', ['external_subject_id'], unique=True,
    )
    op.create_index(op.f('ix_users_username'), 'users', ['username'], unique=False)
    op.create_index(op.f('ix_users_created_at'), 'users', ['created_at'], unique=False)

    op.create_table(
        'recommendations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('genre', sa.String(length=500), nullable=False),
        sa.Column('link', sa.Text(), nullable=False),
        sa.Column('blurb', sa.Text(), nullable=False),
        sa.Column(
            'owner_subject_id', sa.String(length=255), nullable=False,
            comment="Creator's external_subject_id, copied at creation (not a foreign key)",
        ),
        sa.Column(
            'display_name', sa.String(length=255), nullable=False,
            comment="Snapshot of the owner's full name or username at last write",
        ),
        sa.Column('is_staff_pick', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column(
            'created_at', sa.DateTime(timezone=True),
            server_default=sa.text('now()'), nullable=False,
        ),
        sa.Column(
            'updated_at', sa.DateTime(timezone=True),
            server_default=sa.text('now()'), nullable=False,
        ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        op.f('ix_recommendations_created_at'), 'recommendations', ['created_at'], unique=False,
    )
    op.create_index(
        op.f('ix_recommendations_owner_subject_id'), 'recommendations', ['owner_subject_id'],
        unique=False,
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f('ix_recommendations_owner_subject_id'), table_name='recommendations')
    op.drop_index(op.f('ix_recommendations_created_at'), table_name='recommendations')
    op.drop_table('recommendations')
    op.drop_index(op.f('ix_users_created_at'), table_name='users')
    op.drop_index(op.f('ix_users_username'), table_name='users')
    op.drop_index(op.f('ix_users_external_subject_id'), table_name='users')
    op.drop_table('users')
