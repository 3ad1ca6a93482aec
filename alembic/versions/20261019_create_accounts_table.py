"""create_accounts_table

Revision ID: 3f1c9a7e52b4
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '3f1c9a7e52b4'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('accounts',
        sa.Column('id', sa.String(length=36), nullable=False, comment='Account ID (UUID)'),
        sa.Column('email', sa.String(length=255), nullable=False, comment='Login email address'),
        sa.Column('name', sa.String(length=255), nullable=False, comment='Display name'),
        sa.Column('password_hash', sa.String(length=255), nullable=False, comment='Hashed password (argon2)'),
        sa.Column('roles', sa.JSON(), nullable=False, comment='Role names held by the account'),
        sa.Column('otp_hash', sa.String(length=255), nullable=True, comment='Hashed outstanding one-time passcode'),
        sa.Column('otp_expires_at', sa.DateTime(timezone=True), nullable=True, comment='Expiry of the outstanding one-time passcode'),
        sa.Column('refresh_token_hash', sa.String(length=255), nullable=True, comment='Hashed most recently issued refresh token'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint(
            '(otp_hash IS NULL AND otp_expires_at IS NULL)'
            ' OR (otp_hash IS NOT NULL AND otp_expires_at IS NOT NULL)',
            name='ck_accounts_otp_pair',
        ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('accounts', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_accounts_email'), ['email'], unique=True)


def downgrade() -> None:
    """Downgrade schema."""
    with op.batch_alter_table('accounts', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_accounts_email'))

    op.drop_table('accounts')
