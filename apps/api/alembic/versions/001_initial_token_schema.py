"""Create accounts, token balances and the token ledger.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'accounts',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('username', sa.String(length=255), nullable=False),
        sa.Column('wallet_address', sa.String(length=42), nullable=True),
        sa.Column('wallet_linked_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_accounts_username', 'accounts', ['username'], unique=True)
    op.create_index('ix_accounts_wallet_address', 'accounts', ['wallet_address'], unique=True)

    op.create_table(
        'token_balances',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('account_id', sa.String(length=64), nullable=False),
        sa.Column('participation_tokens', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('support_tokens', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('governance_tokens', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('participation_tokens >= 0', name='ck_token_balances_participation_nonneg'),
        sa.CheckConstraint('support_tokens >= 0', name='ck_token_balances_support_nonneg'),
        sa.CheckConstraint('governance_tokens >= 0', name='ck_token_balances_governance_nonneg'),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_token_balances_account_id', 'token_balances', ['account_id'], unique=True)

    op.create_table(
        'ledger_entries',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('account_id', sa.String(length=64), nullable=False),
        sa.Column('token_type', sa.String(length=8), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('transaction_type', sa.String(length=32), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('related_id', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_ledger_entries_account_id', 'ledger_entries', ['account_id'])
    op.create_index('ix_ledger_entries_transaction_type', 'ledger_entries', ['transaction_type'])
    op.create_index('ix_ledger_entries_related_id', 'ledger_entries', ['related_id'])
    op.create_index('ix_ledger_entries_created_at', 'ledger_entries', ['created_at'])

    # One purchase credit per on-chain transaction hash
    op.create_index(
        'uq_ledger_entries_purchase_reference',
        'ledger_entries',
        ['related_id'],
        unique=True,
        postgresql_where=sa.text("transaction_type = 'purchased'"),
        sqlite_where=sa.text("transaction_type = 'purchased'"),
    )


def downgrade() -> None:
    op.drop_index('uq_ledger_entries_purchase_reference', table_name='ledger_entries')
    op.drop_index('ix_ledger_entries_created_at', table_name='ledger_entries')
    op.drop_index('ix_ledger_entries_related_id', table_name='ledger_entries')
    op.drop_index('ix_ledger_entries_transaction_type', table_name='ledger_entries')
    op.drop_index('ix_ledger_entries_account_id', table_name='ledger_entries')
    op.drop_table('ledger_entries')
    op.drop_index('ix_token_balances_account_id', table_name='token_balances')
    op.drop_table('token_balances')
    op.drop_index('ix_accounts_wallet_address', table_name='accounts')
    op.drop_index('ix_accounts_username', table_name='accounts')
    op.drop_table('accounts')
