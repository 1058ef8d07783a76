"""Create indexer schema.

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19

Tables for decoded events, known wallets, buckets, spending,
token transfers, withdrawals and per-contract checkpoints.
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '20261019_000001'
down_revision = None
branch_labels = None
depends_on = None

# uint256 values; SQLite has no exact 78-digit numeric
UINT = sa.Numeric(precision=78, scale=0).with_variant(sa.String(78), 'sqlite')
PAYLOAD = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now()
        ),
    ]


def _chain_position() -> list[sa.Column]:
    return [
        sa.Column('block_number', sa.BigInteger(), nullable=False),
        sa.Column('transaction_hash', sa.String(length=66), nullable=False),
        sa.Column('log_index', sa.Integer(), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Create indexer tables."""
    op.create_table(
        'events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('contract_address', sa.String(length=42), nullable=False),
        sa.Column('event_name', sa.String(length=64), nullable=False),
        sa.Column('block_number', sa.BigInteger(), nullable=False),
        sa.Column('block_hash', sa.String(length=66), nullable=False),
        sa.Column('transaction_hash', sa.String(length=66), nullable=False),
        sa.Column('transaction_index', sa.Integer(), nullable=False),
        sa.Column('log_index', sa.Integer(), nullable=False),
        sa.Column(
            'args',
            PAYLOAD,
            nullable=False,
            comment='Decoded arguments, integers as decimal strings'
        ),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            'processed',
            sa.Boolean(),
            nullable=False,
            server_default=sa.false()
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'transaction_hash', 'log_index', name='uq_events_tx_log'
        ),
    )
    op.create_index('ix_events_contract_address', 'events', ['contract_address'])
    op.create_index('ix_events_event_name', 'events', ['event_name'])
    op.create_index('ix_events_transaction_hash', 'events', ['transaction_hash'])
    op.create_index('ix_events_processed', 'events', ['processed'])
    op.create_index('ix_events_block_log', 'events', ['block_number', 'log_index'])

    op.create_table(
        'wallet_registry',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('wallet_address', sa.String(length=42), nullable=False),
        sa.Column('user_address', sa.String(length=42), nullable=False),
        sa.Column('template_address', sa.String(length=42), nullable=False),
        sa.Column('factory_address', sa.String(length=42), nullable=False),
        sa.Column('deployment_block', sa.BigInteger(), nullable=False),
        sa.Column('deployment_tx_hash', sa.String(length=66), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_wallet_registry_wallet_address',
        'wallet_registry',
        ['wallet_address'],
        unique=True
    )
    op.create_index(
        'ix_wallet_registry_user_address', 'wallet_registry', ['user_address']
    )

    op.create_table(
        'buckets',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('wallet_address', sa.String(length=42), nullable=False),
        sa.Column(
            'bucket_id',
            UINT,
            nullable=False,
            comment='First 8 bytes of keccak256(name)'
        ),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('monthly_limit', UINT, nullable=False),
        sa.Column('token_address', sa.String(length=42), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_block', sa.BigInteger(), nullable=False),
        sa.Column('created_tx_hash', sa.String(length=66), nullable=False),
        sa.Column('last_updated_block', sa.BigInteger(), nullable=False),
        sa.Column(
            'last_updated_log_index',
            sa.Integer(),
            nullable=False,
            server_default='0'
        ),
        *_timestamps(),
        sa.Column(
            'updated_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now()
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'wallet_address', 'bucket_id', name='uq_buckets_wallet_bucket'
        ),
    )
    op.create_index('ix_buckets_wallet_address', 'buckets', ['wallet_address'])

    op.create_table(
        'spending_records',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('wallet_address', sa.String(length=42), nullable=False),
        sa.Column('bucket_id', UINT, nullable=False),
        sa.Column('bucket_name', sa.String(length=255), nullable=False),
        sa.Column('amount', UINT, nullable=False),
        sa.Column('recipient', sa.String(length=42), nullable=False),
        sa.Column('token_address', sa.String(length=42), nullable=False),
        *_chain_position(),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'transaction_hash', 'log_index', name='uq_spending_tx_log'
        ),
    )
    op.create_index(
        'ix_spending_records_wallet_address', 'spending_records', ['wallet_address']
    )
    op.create_index(
        'ix_spending_records_block_number', 'spending_records', ['block_number']
    )

    op.create_table(
        'transfers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('token_address', sa.String(length=42), nullable=False),
        sa.Column('from_address', sa.String(length=42), nullable=False),
        sa.Column('to_address', sa.String(length=42), nullable=False),
        sa.Column('amount', UINT, nullable=False),
        sa.Column(
            'transfer_type',
            sa.String(length=20),
            nullable=False,
            comment='deposit, withdrawal, bucket_transfer, external'
        ),
        sa.Column('wallet_address', sa.String(length=42), nullable=True),
        sa.Column('from_bucket_id', UINT, nullable=True),
        sa.Column('to_bucket_id', UINT, nullable=True),
        *_chain_position(),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'transaction_hash', 'log_index', name='uq_transfers_tx_log'
        ),
    )
    op.create_index('ix_transfers_token_address', 'transfers', ['token_address'])
    op.create_index('ix_transfers_transfer_type', 'transfers', ['transfer_type'])
    op.create_index('ix_transfers_wallet_address', 'transfers', ['wallet_address'])
    op.create_index('ix_transfers_block_number', 'transfers', ['block_number'])

    op.create_table(
        'withdrawals',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('wallet_address', sa.String(length=42), nullable=False),
        sa.Column('user_address', sa.String(length=42), nullable=False),
        sa.Column('recipient', sa.String(length=42), nullable=False),
        sa.Column('token_address', sa.String(length=42), nullable=False),
        sa.Column('amount', UINT, nullable=False),
        sa.Column(
            'withdrawal_type',
            sa.String(length=20),
            nullable=False,
            comment='unallocated, emergency'
        ),
        *_chain_position(),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'transaction_hash', 'log_index', name='uq_withdrawals_tx_log'
        ),
    )
    op.create_index('ix_withdrawals_wallet_address', 'withdrawals', ['wallet_address'])
    op.create_index('ix_withdrawals_user_address', 'withdrawals', ['user_address'])
    op.create_index(
        'ix_withdrawals_withdrawal_type', 'withdrawals', ['withdrawal_type']
    )
    op.create_index('ix_withdrawals_block_number', 'withdrawals', ['block_number'])

    op.create_table(
        'indexer_status',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('contract_address', sa.String(length=42), nullable=False),
        sa.Column(
            'last_processed_block',
            sa.BigInteger(),
            nullable=False,
            server_default='0'
        ),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('error_count', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.Column(
            'updated_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now()
        ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_indexer_status_contract_address',
        'indexer_status',
        ['contract_address'],
        unique=True
    )


def downgrade() -> None:
    """Drop indexer tables."""
    for table in (
        'indexer_status',
        'withdrawals',
        'transfers',
        'spending_records',
        'buckets',
        'wallet_registry',
        'events',
    ):
        op.drop_table(table)
