"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18 00:00:00.000000

This migration creates the complete Armonia schema from scratch:
- users: staff directory (display names for register history)
- products / product_sizes: catalog with per-size stock
- cash_registers / cash_movements: register sessions and their cash ledger

Database-enforced invariants:
- SKU and barcode are unique
- price > 0, cost >= 0, product_type / size_type enums (CHECK)
- at most one OPEN register per user (partial unique index)
- movement amount > 0, movement type enum (CHECK)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # users
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )

    # ============================================================================
    # products: catalog, stock derived from sizes when has_sizes
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=False),
        sa.Column('barcode', sa.String(length=64), nullable=True),
        sa.Column('cost', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False),
        sa.Column('min_stock', sa.Integer(), nullable=False),
        sa.Column('category', sa.String(length=128), nullable=False),
        sa.Column('product_type', sa.String(length=16), nullable=False),
        sa.Column('has_sizes', sa.Boolean(), nullable=False),
        sa.Column('size_type', sa.String(length=16), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('price > 0', name='ck_products_price_positive'),
        sa.CheckConstraint('cost IS NULL OR cost >= 0', name='ck_products_cost_non_negative'),
        sa.CheckConstraint("product_type IN ('apparel', 'other')", name='ck_products_product_type'),
        sa.CheckConstraint("size_type IS NULL OR size_type IN ('letter', 'number')",
                           name='ck_products_size_type'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sku'),
        sa.UniqueConstraint('barcode'),
    )
    op.create_index('ix_products_category', 'products', ['category'])

    op.create_table(
        'product_sizes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.String(length=36), nullable=False),
        sa.Column('size', sa.String(length=16), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_id', 'size', name='uq_product_sizes_product_size'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_product_sizes_product_id', 'product_sizes', ['product_id'])

    # ============================================================================
    # cash_registers / cash_movements
    # ============================================================================
    op.create_table(
        'cash_registers',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('opening_balance', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('closing_balance', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('expected_balance', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('difference', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('closed_by_user_id', sa.String(length=36), nullable=True),
        sa.Column('opened_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("status IN ('OPEN', 'CLOSED')", name='ck_cash_registers_status'),
        sa.CheckConstraint('opening_balance >= 0', name='ck_cash_registers_opening_non_negative'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['closed_by_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_cash_registers_user_id', 'cash_registers', ['user_id'])
    op.create_index('ix_cash_registers_status_closed_at', 'cash_registers', ['status', 'closed_at'])
    op.create_index(
        'uq_cash_registers_one_open_per_user',
        'cash_registers',
        ['user_id'],
        unique=True,
        sqlite_where=sa.text("status = 'OPEN'"),
        postgresql_where=sa.text("status = 'OPEN'"),
    )

    op.create_table(
        'cash_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('register_id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('concept', sa.String(length=255), nullable=False),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint("type IN ('INFLOW', 'OUTFLOW')", name='ck_cash_movements_type'),
        sa.CheckConstraint('amount > 0', name='ck_cash_movements_amount_positive'),
        sa.ForeignKeyConstraint(['register_id'], ['cash_registers.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_cash_movements_register_id', 'cash_movements', ['register_id'])
    op.create_index('ix_cash_movements_user_id', 'cash_movements', ['user_id'])
    op.create_index('ix_cash_movements_occurred_at', 'cash_movements', ['occurred_at'])
    op.create_index('ix_cash_movements_register_occurred', 'cash_movements', ['register_id', 'occurred_at'])


def downgrade():
    op.drop_table('cash_movements')
    op.drop_index('uq_cash_registers_one_open_per_user', table_name='cash_registers')
    op.drop_table('cash_registers')
    op.drop_table('product_sizes')
    op.drop_table('products')
    op.drop_table('users')
