"""Create ledger and referral commission tables.

Revision ID: 20261018_000001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261018_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create accounts, transactions, referral earnings, processed events and schedule tables."""

    op.create_table(
        'accounts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('username', sa.String(255), nullable=True),
        sa.Column('referral_code', sa.String(20), nullable=True),
        sa.Column('points_balance', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('cash_balance', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('total_earnings', sa.DECIMAL(18, 8), nullable=False, server_default='0', comment='Lifetime earnings in USD, informational'),
        sa.Column('referred_by_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['referred_by_id'], ['accounts.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('points_balance >= 0', name='check_account_points_non_negative'),
        sa.CheckConstraint('cash_balance >= 0', name='check_account_cash_non_negative'),
        sa.CheckConstraint('total_earnings >= 0', name='check_account_total_earnings_non_negative'),
        sa.CheckConstraint('referred_by_id IS NULL OR referred_by_id != id', name='check_account_not_self_referred'),
    )
    op.create_index('ix_accounts_username', 'accounts', ['username'])
    op.create_index('ix_accounts_referral_code', 'accounts', ['referral_code'], unique=True)
    op.create_index('ix_accounts_referred_by_id', 'accounts', ['referred_by_id'])

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='COMPLETED'),
        sa.Column('points', sa.BigInteger(), nullable=False, server_default='0', comment='Signed points delta'),
        sa.Column('cash_amount', sa.DECIMAL(18, 8), nullable=False, server_default='0', comment='Signed cash delta'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('reference', sa.String(255), nullable=True, comment='Idempotency correlation reference'),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_transactions_account_id', 'transactions', ['account_id'])
    op.create_index('ix_transactions_type', 'transactions', ['type'])
    op.create_index('ix_transactions_reference', 'transactions', ['reference'])
    op.create_index('idx_transactions_account_created', 'transactions', ['account_id', 'created_at'])

    op.create_table(
        'referral_earnings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('event_id', sa.String(255), nullable=False),
        sa.Column('source_account_id', sa.Integer(), nullable=True),
        sa.Column('beneficiary_account_id', sa.Integer(), nullable=True),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('source_type', sa.String(20), nullable=False),
        sa.Column('base_amount', sa.DECIMAL(18, 8), nullable=False),
        sa.Column('commission_amount', sa.DECIMAL(18, 8), nullable=False),
        sa.Column('transaction_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['source_account_id'], ['accounts.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['beneficiary_account_id'], ['accounts.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['transaction_id'], ['transactions.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('event_id', 'level', name='uq_referral_earnings_event_level'),
    )
    op.create_index('ix_referral_earnings_event_id', 'referral_earnings', ['event_id'])
    op.create_index('ix_referral_earnings_source_account_id', 'referral_earnings', ['source_account_id'])
    op.create_index('idx_referral_earnings_beneficiary_level', 'referral_earnings', ['beneficiary_account_id', 'level'])

    op.create_table(
        'processed_events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('event_id', sa.String(255), nullable=False, comment='At-most-once event id'),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('transaction_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['transaction_id'], ['transactions.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_processed_events_event_id', 'processed_events', ['event_id'], unique=True)
    op.create_index('ix_processed_events_account_id', 'processed_events', ['account_id'])

    op.create_table(
        'commission_schedule_versions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=True, comment='Admin who saved this version'),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'commission_schedule_entries',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('commission_type', sa.String(20), nullable=False, comment='PERCENTAGE or FLAT_RATE'),
        sa.Column('commission_value', sa.DECIMAL(18, 4), nullable=False),
        sa.Column('description', sa.String(255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.ForeignKeyConstraint(['version_id'], ['commission_schedule_versions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('version_id', 'level', name='uq_commission_schedule_version_level'),
    )
    op.create_index('ix_commission_schedule_entries_version_id', 'commission_schedule_entries', ['version_id'])


def downgrade() -> None:
    """Drop ledger tables."""
    op.drop_index('ix_commission_schedule_entries_version_id', table_name='commission_schedule_entries')
    op.drop_table('commission_schedule_entries')
    op.drop_table('commission_schedule_versions')

    op.drop_index('ix_processed_events_account_id', table_name='processed_events')
    op.drop_index('ix_processed_events_event_id', table_name='processed_events')
    op.drop_table('processed_events')

    op.drop_index('idx_referral_earnings_beneficiary_level', table_name='referral_earnings')
    op.drop_index('ix_referral_earnings_source_account_id', table_name='referral_earnings')
    op.drop_index('ix_referral_earnings_event_id', table_name='referral_earnings')
    op.drop_table('referral_earnings')

    op.drop_index('idx_transactions_account_created', table_name='transactions')
    op.drop_index('ix_transactions_reference', table_name='transactions')
    op.drop_index('ix_transactions_type', table_name='transactions')
    op.drop_index('ix_transactions_account_id', table_name='transactions')
    op.drop_table('transactions')

    op.drop_index('ix_accounts_referred_by_id', table_name='accounts')
    op.drop_index('ix_accounts_referral_code', table_name='accounts')
    op.drop_index('ix_accounts_username', table_name='accounts')
    op.drop_table('accounts')
