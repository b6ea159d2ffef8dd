"""initial ledger schema

Revision ID: 0001_ledger
Revises:
Create Date: 2026-10-18 00:00:00.000000

Creates the ledger tables:
- accounts: money pools with digital (balance) and cash (cash_balance) funds
- products / variants / skus: catalog with per-SKU stock and product aggregate
- sells / sell_items: sales and their lines
- debts / debt_payments: store credit and its repayments

Every mutable row carries version_id for optimistic locking.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_ledger'
down_revision = None
branch_labels = None
depends_on = None


def _money(name, nullable=False, server_default='0'):
    return sa.Column(name, sa.Numeric(12, 2), nullable=nullable,
                     server_default=server_default)


def _timestamp(name, index=False):
    return sa.Column(name, sa.DateTime(timezone=True), nullable=False,
                     server_default=sa.text('CURRENT_TIMESTAMP'), index=index)


def upgrade():
    # ============================================================================
    # accounts
    # ============================================================================
    op.create_table(
        'accounts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('account', sa.String(length=64), nullable=False),
        _money('balance'),
        _money('cash_balance'),
        sa.Column('is_default', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.PrimaryKeyConstraint('id', name='pk_accounts'),
        sqlite_autoincrement=True
    )

    # ============================================================================
    # catalog: products -> variants -> skus
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('stock_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        _timestamp('created_at'),
        sa.PrimaryKeyConstraint('id', name='pk_products'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'variants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('color', sa.String(length=64), nullable=True),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'],
                                name='fk_variants_product_id_products'),
        sa.PrimaryKeyConstraint('id', name='pk_variants'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_variants_product_id', 'variants', ['product_id'])

    op.create_table(
        'skus',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('variant_id', sa.Integer(), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=False),
        sa.Column('size', sa.String(length=32), nullable=True),
        sa.Column('stock_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        _timestamp('created_at'),
        sa.CheckConstraint('stock_quantity >= 0', name='ck_skus_stock_non_negative'),
        sa.ForeignKeyConstraint(['variant_id'], ['variants.id'],
                                name='fk_skus_variant_id_variants'),
        sa.PrimaryKeyConstraint('id', name='pk_skus'),
        sa.UniqueConstraint('sku', name='uq_skus_sku'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_skus_variant_id', 'skus', ['variant_id'])

    # ============================================================================
    # sales
    # ============================================================================
    op.create_table(
        'sells',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('account_id', sa.Integer(), nullable=False),
        _money('total'),
        _money('discount'),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='pending'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'],
                                name='fk_sells_account_id_accounts'),
        sa.PrimaryKeyConstraint('id', name='pk_sells'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sells_user_id', 'sells', ['user_id'])
    op.create_index('ix_sells_account_id', 'sells', ['account_id'])
    op.create_index('ix_sells_created_at', 'sells', ['created_at'])
    op.create_index('ix_sells_user_created', 'sells', ['user_id', 'created_at'])

    op.create_table(
        'sell_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sell_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('sku_id', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['sell_id'], ['sells.id'], ondelete='CASCADE',
                                name='fk_sell_items_sell_id_sells'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'],
                                name='fk_sell_items_product_id_products'),
        sa.ForeignKeyConstraint(['sku_id'], ['skus.id'],
                                name='fk_sell_items_sku_id_skus'),
        sa.PrimaryKeyConstraint('id', name='pk_sell_items'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sell_items_sell_id', 'sell_items', ['sell_id'])
    op.create_index('ix_sell_items_product_id', 'sell_items', ['product_id'])
    op.create_index('ix_sell_items_sku_id', 'sell_items', ['sku_id'])

    # ============================================================================
    # debts
    # ============================================================================
    op.create_table(
        'debts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('taker_name', sa.String(length=255), nullable=True),
        sa.Column('details', sa.Text(), nullable=True),
        _money('cash_amount'),
        _money('digital_amount'),
        _money('amount_taken', server_default=None),
        _money('remaining_amount', server_default=None),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='taken'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'],
                                name='fk_debts_account_id_accounts'),
        sa.PrimaryKeyConstraint('id', name='pk_debts'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_debts_account_id', 'debts', ['account_id'])
    op.create_index('ix_debts_user_id', 'debts', ['user_id'])
    op.create_index('ix_debts_status', 'debts', ['status'])
    op.create_index('ix_debts_created_at', 'debts', ['created_at'])

    op.create_table(
        'debt_payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('debt_id', sa.Integer(), nullable=False),
        _money('amount_paid', server_default=None),
        _money('cash_amount'),
        _money('digital_amount'),
        _timestamp('payment_date'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['debt_id'], ['debts.id'], ondelete='CASCADE',
                                name='fk_debt_payments_debt_id_debts'),
        sa.PrimaryKeyConstraint('id', name='pk_debt_payments'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_debt_payments_debt_id', 'debt_payments', ['debt_id'])
    op.create_index('ix_debt_payments_payment_date', 'debt_payments', ['payment_date'])


def downgrade():
    op.drop_table('debt_payments')
    op.drop_table('debts')
    op.drop_table('sell_items')
    op.drop_table('sells')
    op.drop_table('skus')
    op.drop_table('variants')
    op.drop_table('products')
    op.drop_table('accounts')
