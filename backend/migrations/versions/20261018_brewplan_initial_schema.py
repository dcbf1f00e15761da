"""brewplan initial schema

Revision ID: 20261018_brewplan
Revises:
Create Date: 2026-10-18 00:00:00.000000

Creates the complete BrewPlan schema from scratch:
- suppliers, customers: master data
- inventory_items, inventory_lots, stock_movements: raw materials and the
  append-only quantity ledger (lot on-hand is a cached SUM of movements)
- recipes, recipe_ingredients, vessels, batches: brewing
- purchase_orders, purchase_order_lines: purchasing and receiving
- packaging_runs, finished_goods: packaged stock
- orders, order_lines: customer orders and finished-goods reservations
- fermentation_log_entries, batch_measurements, quality_checks: batch records
- document_sequences: per-type, per-year document numbering

Optimistic locking: every document that changes status carries version_id.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261018_brewplan'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(updated=True):
    cols = [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
    ]
    if updated:
        cols.append(
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                      server_default=sa.text('CURRENT_TIMESTAMP'))
        )
    return cols


def upgrade():
    # ============================================================================
    # Master data
    # ============================================================================
    op.create_table(
        'suppliers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('contact_name', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=64), nullable=True),
        sa.Column('lead_time_days', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', name='uq_suppliers_name'),
        sqlite_autoincrement=True
    )

    op.create_table(
        'customers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('customer_type', sa.String(length=16), nullable=False, server_default='other'),
        sa.Column('contact_name', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=64), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_customers_name', 'customers', ['name'])

    op.create_table(
        'inventory_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=16), nullable=False, server_default='other'),
        sa.Column('unit', sa.String(length=8), nullable=False),
        sa.Column('unit_cost_cents', sa.Integer(), nullable=True),
        sa.Column('reorder_point', sa.Float(), nullable=True),
        sa.Column('reorder_qty', sa.Float(), nullable=True),
        sa.Column('supplier_id', sa.Integer(), nullable=True),
        sa.Column('is_archived', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', name='uq_inventory_items_name'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_inventory_items_supplier_id', 'inventory_items', ['supplier_id'])
    op.create_index('ix_inventory_items_category_archived', 'inventory_items', ['category', 'is_archived'])

    # ============================================================================
    # Brewing
    # ============================================================================
    op.create_table(
        'recipes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('style', sa.String(length=128), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='draft'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('parent_recipe_id', sa.Integer(), nullable=True),
        sa.Column('batch_size_litres', sa.Float(), nullable=False),
        sa.Column('estimated_total_days', sa.Integer(), nullable=True),
        sa.Column('target_og', sa.Float(), nullable=True),
        sa.Column('target_fg', sa.Float(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['parent_recipe_id'], ['recipes.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', 'version', name='uq_recipes_name_version'),
        sqlite_autoincrement=True
    )

    # Quantities are per recipes.batch_size_litres
    op.create_table(
        'recipe_ingredients',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('recipe_id', sa.Integer(), nullable=False),
        sa.Column('inventory_item_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('unit', sa.String(length=8), nullable=False),
        sa.Column('usage_stage', sa.String(length=16), nullable=False, server_default='boil'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.CheckConstraint('quantity > 0', name='ck_recipe_ingredients_qty_positive'),
        sa.ForeignKeyConstraint(['recipe_id'], ['recipes.id'], ),
        sa.ForeignKeyConstraint(['inventory_item_id'], ['inventory_items.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_recipe_ingredients_recipe_id', 'recipe_ingredients', ['recipe_id'])
    op.create_index('ix_recipe_ingredients_inventory_item_id', 'recipe_ingredients', ['inventory_item_id'])

    # current_batch_id has no FK; batches.vessel_id is authoritative
    op.create_table(
        'vessels',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('vessel_type', sa.String(length=32), nullable=False, server_default='fermenter'),
        sa.Column('capacity_litres', sa.Float(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='available'),
        sa.Column('current_batch_id', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', name='uq_vessels_name'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_vessels_status', 'vessels', ['status'])

    op.create_table(
        'batches',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('batch_number', sa.String(length=32), nullable=False),
        sa.Column('recipe_id', sa.Integer(), nullable=False),
        sa.Column('vessel_id', sa.Integer(), nullable=True),
        sa.Column('last_vessel_id', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=24), nullable=False, server_default='planned'),
        sa.Column('planned_date', sa.Date(), nullable=True),
        sa.Column('brew_date', sa.Date(), nullable=True),
        sa.Column('estimated_ready_date', sa.Date(), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('packaging_materials_drawn_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('batch_size_litres', sa.Float(), nullable=False),
        sa.Column('actual_volume_litres', sa.Float(), nullable=True),
        sa.Column('actual_og', sa.Float(), nullable=True),
        sa.Column('actual_fg', sa.Float(), nullable=True),
        sa.Column('actual_abv', sa.Float(), nullable=True),
        sa.Column('actual_ibu', sa.Float(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['recipe_id'], ['recipes.id'], ),
        sa.ForeignKeyConstraint(['vessel_id'], ['vessels.id'], ),
        sa.ForeignKeyConstraint(['last_vessel_id'], ['vessels.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('batch_number', name='uq_batches_batch_number'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_batches_recipe_id', 'batches', ['recipe_id'])
    op.create_index('ix_batches_vessel_id', 'batches', ['vessel_id'])
    op.create_index('ix_batches_status', 'batches', ['status'])
    op.create_index('ix_batches_status_planned', 'batches', ['status', 'planned_date'])

    # ============================================================================
    # Purchasing
    # ============================================================================
    op.create_table(
        'purchase_orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('po_number', sa.String(length=32), nullable=False),
        sa.Column('supplier_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=24), nullable=False, server_default='draft'),
        sa.Column('order_date', sa.Date(), nullable=True),
        sa.Column('expected_delivery_date', sa.Date(), nullable=True),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('tax_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('po_number', name='uq_purchase_orders_po_number'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_purchase_orders_supplier_id', 'purchase_orders', ['supplier_id'])
    op.create_index('ix_purchase_orders_status', 'purchase_orders', ['status'])
    op.create_index('ix_purchase_orders_status_expected', 'purchase_orders', ['status', 'expected_delivery_date'])

    # 0 <= quantity_received <= quantity_ordered
    op.create_table(
        'purchase_order_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('purchase_order_id', sa.Integer(), nullable=False),
        sa.Column('inventory_item_id', sa.Integer(), nullable=False),
        sa.Column('quantity_ordered', sa.Float(), nullable=False),
        sa.Column('quantity_received', sa.Float(), nullable=False, server_default='0'),
        sa.Column('unit', sa.String(length=8), nullable=False),
        sa.Column('unit_cost_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('line_total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint('quantity_ordered > 0', name='ck_po_lines_ordered_positive'),
        sa.CheckConstraint('quantity_received >= 0', name='ck_po_lines_received_nonneg'),
        sa.CheckConstraint('quantity_received <= quantity_ordered', name='ck_po_lines_received_le_ordered'),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_orders.id'], ),
        sa.ForeignKeyConstraint(['inventory_item_id'], ['inventory_items.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_purchase_order_lines_purchase_order_id', 'purchase_order_lines', ['purchase_order_id'])
    op.create_index('ix_purchase_order_lines_inventory_item_id', 'purchase_order_lines', ['inventory_item_id'])

    # ============================================================================
    # Quantity ledger
    # ============================================================================
    op.create_table(
        'inventory_lots',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('inventory_item_id', sa.Integer(), nullable=False),
        sa.Column('lot_number', sa.String(length=64), nullable=False),
        sa.Column('quantity_on_hand', sa.Float(), nullable=False, server_default='0'),
        sa.Column('unit_cost_cents', sa.Integer(), nullable=True),
        sa.Column('received_date', sa.Date(), nullable=False),
        sa.Column('expiry_date', sa.Date(), nullable=True),
        sa.Column('purchase_order_id', sa.Integer(), nullable=True),
        sa.Column('location', sa.String(length=128), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(updated=False),
        sa.CheckConstraint('quantity_on_hand >= 0', name='ck_inventory_lots_on_hand_nonneg'),
        sa.ForeignKeyConstraint(['inventory_item_id'], ['inventory_items.id'], ),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_orders.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_inventory_lots_inventory_item_id', 'inventory_lots', ['inventory_item_id'])
    op.create_index('ix_inventory_lots_purchase_order_id', 'inventory_lots', ['purchase_order_id'])
    op.create_index('ix_inventory_lots_item_received', 'inventory_lots', ['inventory_item_id', 'received_date'])

    op.create_table(
        'stock_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('inventory_lot_id', sa.Integer(), nullable=False),
        sa.Column('movement_type', sa.String(length=16), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('reference_type', sa.String(length=32), nullable=True),
        sa.Column('reference_id', sa.Integer(), nullable=True),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('performed_by', sa.String(length=64), nullable=True),
        *_timestamps(updated=False),
        sa.CheckConstraint('quantity <> 0', name='ck_stock_movements_qty_nonzero'),
        sa.ForeignKeyConstraint(['inventory_lot_id'], ['inventory_lots.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_stock_movements_inventory_lot_id', 'stock_movements', ['inventory_lot_id'])
    op.create_index('ix_stock_movements_movement_type', 'stock_movements', ['movement_type'])
    op.create_index('ix_stock_movements_lot_created', 'stock_movements', ['inventory_lot_id', 'created_at'])
    op.create_index('ix_stock_movements_reference', 'stock_movements', ['reference_type', 'reference_id'])

    # ============================================================================
    # Packaging
    # ============================================================================
    op.create_table(
        'packaging_runs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('batch_id', sa.Integer(), nullable=False),
        sa.Column('packaging_date', sa.Date(), nullable=False),
        sa.Column('format', sa.String(length=16), nullable=False),
        sa.Column('quantity_units', sa.Integer(), nullable=False),
        sa.Column('volume_litres', sa.Float(), nullable=True),
        sa.Column('best_before_date', sa.Date(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(updated=False),
        sa.CheckConstraint('quantity_units > 0', name='ck_packaging_runs_units_positive'),
        sa.ForeignKeyConstraint(['batch_id'], ['batches.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_packaging_runs_batch_id', 'packaging_runs', ['batch_id'])

    # quantity_reserved is recomputed from order_lines; never written directly
    op.create_table(
        'finished_goods',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('packaging_run_id', sa.Integer(), nullable=True),
        sa.Column('batch_id', sa.Integer(), nullable=True),
        sa.Column('recipe_id', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('format', sa.String(length=16), nullable=False),
        sa.Column('quantity_on_hand', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quantity_reserved', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('best_before_date', sa.Date(), nullable=True),
        sa.Column('location', sa.String(length=128), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['packaging_run_id'], ['packaging_runs.id'], ),
        sa.ForeignKeyConstraint(['batch_id'], ['batches.id'], ),
        sa.ForeignKeyConstraint(['recipe_id'], ['recipes.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_finished_goods_packaging_run_id', 'finished_goods', ['packaging_run_id'])
    op.create_index('ix_finished_goods_batch_id', 'finished_goods', ['batch_id'])
    op.create_index('ix_finished_goods_recipe_id', 'finished_goods', ['recipe_id'])
    op.create_index('ix_finished_goods_recipe_format', 'finished_goods', ['recipe_id', 'format'])

    # ============================================================================
    # Customer orders
    # ============================================================================
    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_number', sa.String(length=32), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='draft'),
        sa.Column('channel', sa.String(length=16), nullable=False, server_default='wholesale'),
        sa.Column('order_date', sa.Date(), nullable=True),
        sa.Column('delivery_date', sa.Date(), nullable=True),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('tax_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('invoice_number', sa.String(length=32), nullable=True),
        sa.Column('invoiced_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_number', name='uq_orders_order_number'),
        sa.UniqueConstraint('invoice_number', name='uq_orders_invoice_number'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_orders_customer_id', 'orders', ['customer_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_status_delivery', 'orders', ['status', 'delivery_date'])

    op.create_table(
        'order_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('recipe_id', sa.Integer(), nullable=False),
        sa.Column('format', sa.String(length=16), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('line_total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('finished_goods_id', sa.Integer(), nullable=True),
        sa.CheckConstraint('quantity > 0', name='ck_order_lines_qty_positive'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ),
        sa.ForeignKeyConstraint(['recipe_id'], ['recipes.id'], ),
        sa.ForeignKeyConstraint(['finished_goods_id'], ['finished_goods.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_order_lines_order_id', 'order_lines', ['order_id'])
    op.create_index('ix_order_lines_recipe_id', 'order_lines', ['recipe_id'])
    op.create_index('ix_order_lines_finished_goods_id', 'order_lines', ['finished_goods_id'])
    op.create_index('ix_order_lines_recipe_format', 'order_lines', ['recipe_id', 'format'])

    # ============================================================================
    # Batch records
    # ============================================================================
    op.create_table(
        'fermentation_log_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('batch_id', sa.Integer(), nullable=False),
        sa.Column('logged_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('gravity', sa.Float(), nullable=True),
        sa.Column('temperature_celsius', sa.Float(), nullable=True),
        sa.Column('ph', sa.Float(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('logged_by', sa.String(length=128), nullable=True),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(['batch_id'], ['batches.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_fermentation_log_batch_logged', 'fermentation_log_entries', ['batch_id', 'logged_at'])

    op.create_table(
        'batch_measurements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('batch_id', sa.Integer(), nullable=False),
        sa.Column('logged_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('og', sa.Float(), nullable=True),
        sa.Column('fg', sa.Float(), nullable=True),
        sa.Column('volume_litres', sa.Float(), nullable=True),
        sa.Column('ibu', sa.Float(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('logged_by', sa.String(length=128), nullable=True),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(['batch_id'], ['batches.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_batch_measurements_batch_logged', 'batch_measurements', ['batch_id', 'logged_at'])

    op.create_table(
        'quality_checks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('batch_id', sa.Integer(), nullable=False),
        sa.Column('check_type', sa.String(length=16), nullable=False),
        sa.Column('checked_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('checked_by', sa.String(length=128), nullable=True),
        sa.Column('ph', sa.Float(), nullable=True),
        sa.Column('dissolved_oxygen', sa.Float(), nullable=True),
        sa.Column('turbidity', sa.Float(), nullable=True),
        sa.Column('colour_srm', sa.Float(), nullable=True),
        sa.Column('abv', sa.Float(), nullable=True),
        sa.Column('co2_volumes', sa.Float(), nullable=True),
        sa.Column('sensory_notes', sa.Text(), nullable=True),
        sa.Column('microbiological', sa.Text(), nullable=True),
        sa.Column('result', sa.String(length=8), nullable=False, server_default='pending'),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['batch_id'], ['batches.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_quality_checks_batch_checked', 'quality_checks', ['batch_id', 'checked_at'])
    op.create_index('ix_quality_checks_result', 'quality_checks', ['result'])

    # ============================================================================
    # Document numbering
    # ============================================================================
    op.create_table(
        'document_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document_type', sa.String(length=32), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_type', 'year', name='uq_document_sequences_type_year'),
        sqlite_autoincrement=True
    )


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('document_sequences')
    op.drop_table('quality_checks')
    op.drop_table('batch_measurements')
    op.drop_table('fermentation_log_entries')
    op.drop_table('order_lines')
    op.drop_table('orders')
    op.drop_table('finished_goods')
    op.drop_table('packaging_runs')
    op.drop_table('stock_movements')
    op.drop_table('inventory_lots')
    op.drop_table('purchase_order_lines')
    op.drop_table('purchase_orders')
    op.drop_table('batches')
    op.drop_table('vessels')
    op.drop_table('recipe_ingredients')
    op.drop_table('recipes')
    op.drop_table('inventory_items')
    op.drop_table('customers')
    op.drop_table('suppliers')
