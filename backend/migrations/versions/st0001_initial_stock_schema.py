"""initial stock schema

Revision ID: st0001
Revises:
Create Date: 2026-10-18 00:00:00.000000

Creates the complete StockTrack schema:
- users / warehouses (with the manager foreign key added last to break the cycle)
- categories / items: catalog
- stock_balances: authoritative per-(warehouse, item) quantity, never negative
- movement_log: append-only record of every balance change
- transfer_requests / transfer_line_items
- sales / sale_line_items
- document_sequences: per-day counters for request and sale numbers
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'st0001'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def upgrade():
    # ============================================================================
    # warehouses: manager_id foreign key is created after users exist
    # ============================================================================
    op.create_table(
        'warehouses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('location', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('manager_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('warehouse_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint("role IN ('ADMIN', 'MANAGER', 'STAFF')", name='ck_users_role'),
        sa.ForeignKeyConstraint(['warehouse_id'], ['warehouses.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_users_role', 'users', ['role'])
    op.create_index('ix_users_warehouse_id', 'users', ['warehouse_id'])

    with op.batch_alter_table('warehouses', schema=None) as batch_op:
        batch_op.create_foreign_key('fk_warehouses_manager_id', 'users', ['manager_id'], ['id'])

    # ============================================================================
    # catalog
    # ============================================================================
    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('unit', sa.String(length=32), nullable=False),
        sa.Column('min_stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('purchase_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('selling_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(length=8), nullable=False, server_default='INR'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_by_user_id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('min_stock >= 0', name='ck_items_min_stock_nonneg'),
        sa.CheckConstraint('purchase_price_cents >= 0', name='ck_items_purchase_price_nonneg'),
        sa.CheckConstraint('selling_price_cents >= 0', name='ck_items_selling_price_nonneg'),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'], ),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sku'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_items_category_id', 'items', ['category_id'])
    op.create_index('ix_items_category_active', 'items', ['category_id', 'is_active'])

    # ============================================================================
    # stock_balances: one row per (warehouse, item), quantity never negative
    # ============================================================================
    op.create_table(
        'stock_balances',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('warehouse_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('quantity >= 0', name='ck_stock_balances_quantity_nonneg'),
        sa.ForeignKeyConstraint(['warehouse_id'], ['warehouses.id'], ),
        sa.ForeignKeyConstraint(['item_id'], ['items.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('warehouse_id', 'item_id', name='uq_stock_balances_warehouse_item'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_stock_balances_warehouse_id', 'stock_balances', ['warehouse_id'])
    op.create_index('ix_stock_balances_item_id', 'stock_balances', ['item_id'])

    # ============================================================================
    # movement_log: append-only
    # ============================================================================
    op.create_table(
        'movement_log',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('warehouse_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.String(length=16), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('previous_qty', sa.Integer(), nullable=False),
        sa.Column('new_qty', sa.Integer(), nullable=False),
        sa.Column('remarks', sa.String(length=255), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('quantity > 0', name='ck_movement_log_quantity_pos'),
        sa.CheckConstraint('previous_qty >= 0 AND new_qty >= 0', name='ck_movement_log_qty_nonneg'),
        sa.CheckConstraint(
            'new_qty - previous_qty = quantity OR previous_qty - new_qty = quantity',
            name='ck_movement_log_delta_magnitude',
        ),
        sa.ForeignKeyConstraint(['item_id'], ['items.id'], ),
        sa.ForeignKeyConstraint(['warehouse_id'], ['warehouses.id'], ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_movement_log_item_id', 'movement_log', ['item_id'])
    op.create_index('ix_movement_log_warehouse_id', 'movement_log', ['warehouse_id'])
    op.create_index('ix_movement_log_action', 'movement_log', ['action'])
    op.create_index('ix_movement_log_user_id', 'movement_log', ['user_id'])
    op.create_index('ix_movement_log_created_at', 'movement_log', ['created_at'])
    op.create_index('ix_movement_log_warehouse_item', 'movement_log', ['warehouse_id', 'item_id', 'id'])

    # ============================================================================
    # transfer requests
    # ============================================================================
    op.create_table(
        'transfer_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('request_number', sa.String(length=32), nullable=False),
        sa.Column('from_warehouse_id', sa.Integer(), nullable=False),
        sa.Column('to_warehouse_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=False),
        sa.Column('approved_by_user_id', sa.Integer(), nullable=True),
        sa.Column('cancelled_by_user_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint('from_warehouse_id <> to_warehouse_id', name='ck_transfer_requests_distinct_warehouses'),
        sa.ForeignKeyConstraint(['from_warehouse_id'], ['warehouses.id'], ),
        sa.ForeignKeyConstraint(['to_warehouse_id'], ['warehouses.id'], ),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['approved_by_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['cancelled_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('request_number'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_transfer_requests_from_warehouse_id', 'transfer_requests', ['from_warehouse_id'])
    op.create_index('ix_transfer_requests_to_warehouse_id', 'transfer_requests', ['to_warehouse_id'])
    op.create_index('ix_transfer_requests_status', 'transfer_requests', ['status'])
    op.create_index('ix_transfer_requests_created_by_user_id', 'transfer_requests', ['created_by_user_id'])
    op.create_index('ix_transfer_requests_status_created', 'transfer_requests', ['status', 'created_at'])

    op.create_table(
        'transfer_line_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('transfer_request_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.CheckConstraint('quantity > 0', name='ck_transfer_line_items_quantity_pos'),
        sa.ForeignKeyConstraint(['transfer_request_id'], ['transfer_requests.id'], ),
        sa.ForeignKeyConstraint(['item_id'], ['items.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('transfer_request_id', 'item_id', name='uq_transfer_line_items_request_item'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_transfer_line_items_transfer_request_id', 'transfer_line_items', ['transfer_request_id'])
    op.create_index('ix_transfer_line_items_item_id', 'transfer_line_items', ['item_id'])

    # ============================================================================
    # sales
    # ============================================================================
    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_number', sa.String(length=32), nullable=False),
        sa.Column('warehouse_id', sa.Integer(), nullable=False),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('discount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('discount_type', sa.String(length=16), nullable=False, server_default='FIXED'),
        sa.Column('discount_value', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('tax_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(length=8), nullable=False, server_default='INR'),
        sa.Column('payment_method', sa.String(length=16), nullable=False, server_default='CASH'),
        sa.Column('payment_status', sa.String(length=16), nullable=False, server_default='COMPLETED'),
        sa.Column('customer_name', sa.String(length=255), nullable=True),
        sa.Column('customer_phone', sa.String(length=32), nullable=True),
        sa.Column('customer_email', sa.String(length=255), nullable=True),
        sa.Column('customer_address', sa.Text(), nullable=True),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='COMPLETED'),
        sa.Column('created_by_user_id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.Column('cancelled_by_user_id', sa.Integer(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancellation_reason', sa.String(length=255), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint('total_cents >= 0', name='ck_sales_total_nonneg'),
        sa.ForeignKeyConstraint(['warehouse_id'], ['warehouses.id'], ),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['cancelled_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sale_number'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_warehouse_id', 'sales', ['warehouse_id'])
    op.create_index('ix_sales_status', 'sales', ['status'])
    op.create_index('ix_sales_created_by_user_id', 'sales', ['created_by_user_id'])
    op.create_index('ix_sales_created_at', 'sales', ['created_at'])
    op.create_index('ix_sales_warehouse_status_created', 'sales', ['warehouse_id', 'status', 'created_at'])

    op.create_table(
        'sale_line_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('line_total_cents', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.CheckConstraint('quantity > 0', name='ck_sale_line_items_quantity_pos'),
        sa.CheckConstraint('unit_price_cents >= 0', name='ck_sale_line_items_price_nonneg'),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['item_id'], ['items.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sale_id', 'item_id', name='uq_sale_line_items_sale_item'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sale_line_items_sale_id', 'sale_line_items', ['sale_id'])
    op.create_index('ix_sale_line_items_item_id', 'sale_line_items', ['item_id'])

    # ============================================================================
    # document_sequences: per-day counters
    # ============================================================================
    op.create_table(
        'document_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document_type', sa.String(length=32), nullable=False),
        sa.Column('period', sa.String(length=8), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_type', 'period', name='uq_document_sequences_type_period'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_document_sequences_document_type', 'document_sequences', ['document_type'])


def downgrade():
    op.drop_table('document_sequences')
    op.drop_table('sale_line_items')
    op.drop_table('sales')
    op.drop_table('transfer_line_items')
    op.drop_table('transfer_requests')
    op.drop_table('movement_log')
    op.drop_table('stock_balances')
    op.drop_table('items')
    op.drop_table('categories')
    with op.batch_alter_table('warehouses', schema=None) as batch_op:
        batch_op.drop_constraint('fk_warehouses_manager_id', type_='foreignkey')
    op.drop_table('users')
    op.drop_table('warehouses')
