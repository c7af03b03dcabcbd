"""Initial schema - users, credits, packages, transactions

Revision ID: 001_initial
Revises:
Create Date: 2026-10-17

Baseline for the account ledger. subscriptions_version backs the
compare-and-swap on subscription document updates.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Users table
    op.create_table(
        'users',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('pubkey', sa.String(255), nullable=False),
        sa.Column('subscriptions', sa.JSON, nullable=False, server_default=sa.text("'{}'")),
        sa.Column('subscriptions_version', sa.Integer, nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_users_pubkey', 'users', ['pubkey'], unique=True)

    # Credits table - one row per user
    op.create_table(
        'credits',
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id'), primary_key=True),
        sa.Column('remaining_requests', sa.Integer, nullable=False, server_default='0'),
        sa.Column('api_key', sa.String(128), nullable=True, unique=True),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )

    # Packages table - external pricing catalog
    op.create_table(
        'packages',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('name', sa.String(100), nullable=True),
        sa.Column('price_usdc', sa.Numeric(12, 2), nullable=False),
        sa.Column('requests', sa.Integer, nullable=False, server_default='0'),
    )

    # Transactions table - append-only purchase log
    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('package_id', sa.Integer, sa.ForeignKey('packages.id'), nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_transactions_user_created', 'transactions', ['user_id', 'created_at'])


def downgrade() -> None:
    op.drop_index('ix_transactions_user_created', table_name='transactions')
    op.drop_table('transactions')
    op.drop_table('packages')
    op.drop_table('credits')
    op.drop_index('ix_users_pubkey', table_name='users')
    op.drop_table('users')
