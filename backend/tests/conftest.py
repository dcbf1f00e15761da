"""
Pytest fixtures for BrewPlan backend tests.

Provides test database setup, test client, and small factories for the
brewery domain (recipes, stock, batches, orders, purchase orders).
"""

import pytest

from brewplan import create_app
from brewplan.extensions import db
from brewplan.models import (
    Batch,
    Customer,
    FinishedGoods,
    InventoryItem,
    Order,
    OrderLine,
    PurchaseOrder,
    PurchaseOrderLine,
    Recipe,
    RecipeIngredient,
    Supplier,
    Vessel,
)
from brewplan.services import ledger_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'TAX_RATE_BPS': 1000,
        'ALLOCATION_HORIZON_DAYS': 14,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def supplier(db_session):
    supplier = Supplier(name="Barrett Burston", lead_time_days=5)
    db_session.add(supplier)
    db_session.commit()
    return supplier


@pytest.fixture(scope='function')
def customer(db_session):
    customer = Customer(name="The Local Taphouse", customer_type="pub")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def malt(db_session, supplier):
    """Pale malt in kg, reorder at 25 kg."""
    item = InventoryItem(
        name="Pale Malt", category="grain", unit="kg", unit_cost_cents=350,
        reorder_point=25.0, reorder_qty=50.0, supplier_id=supplier.id,
    )
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture(scope='function')
def hops(db_session, supplier):
    item = InventoryItem(name="Galaxy Hops", category="hop", unit="g", unit_cost_cents=9, supplier_id=supplier.id)
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture(scope='function')
def recipe(db_session, malt, hops):
    """1000 L reference: 200 kg malt (mash), 1000 g hops (boil), 21 days."""
    recipe = Recipe(
        name="Pacific Pale Ale", style="Pale Ale", status="active", version=1,
        batch_size_litres=1000.0, estimated_total_days=21,
    )
    recipe.ingredients.append(RecipeIngredient(inventory_item_id=malt.id, quantity=200.0, unit="kg", usage_stage="mash"))
    recipe.ingredients.append(RecipeIngredient(inventory_item_id=hops.id, quantity=1000.0, unit="g", usage_stage="boil"))
    db_session.add(recipe)
    db_session.commit()
    return recipe


@pytest.fixture(scope='function')
def vessel(db_session):
    vessel = Vessel(name="FV-01", vessel_type="fermenter", capacity_litres=1200.0, status="available")
    db_session.add(vessel)
    db_session.commit()
    return vessel


@pytest.fixture(scope='function')
def make_batch(db_session, recipe):
    """Insert a batch directly in any status (bypasses the engine)."""
    counter = {"n": 0}

    def _make(status="planned", *, batch_size_litres=1000.0, planned_date=None, target_recipe=None, **fields):
        counter["n"] += 1
        batch = Batch(
            batch_number=f"TEST-{counter['n']:03d}",
            recipe_id=(target_recipe or recipe).id,
            status=status,
            batch_size_litres=batch_size_litres,
            planned_date=planned_date,
            **fields,
        )
        db_session.add(batch)
        db_session.commit()
        return batch

    return _make


@pytest.fixture(scope='function')
def make_lot(db_session):
    """Receive stock through the ledger so lot on-hand matches its movements."""
    counter = {"n": 0}

    def _make(item, quantity, *, expiry_date=None, received_date=None):
        counter["n"] += 1
        lot, _movement = ledger_service.create_lot(
            item=item,
            quantity=quantity,
            lot_number=f"LOT-{counter['n']}",
            expiry_date=expiry_date,
            received_date=received_date,
        )
        db_session.commit()
        return lot

    return _make


@pytest.fixture(scope='function')
def make_finished_goods(db_session, recipe):
    def _make(quantity_on_hand, *, format="keg_50l", batch=None, target_recipe=None):
        target = target_recipe or recipe
        fg = FinishedGoods(
            batch_id=batch.id if batch is not None else None,
            recipe_id=target.id,
            product_name=target.name,
            format=format,
            quantity_on_hand=quantity_on_hand,
            quantity_reserved=0,
        )
        db_session.add(fg)
        db_session.commit()
        return fg

    return _make


@pytest.fixture(scope='function')
def make_order(db_session, customer, recipe):
    """Insert an order directly: lines is a list of (quantity, format) or (quantity, format, finished_goods)."""
    counter = {"n": 0}

    def _make(status="draft", lines=(), *, delivery_date=None):
        counter["n"] += 1
        order = Order(
            order_number=f"TEST-ORD-{counter['n']:03d}",
            customer_id=customer.id,
            status=status,
            delivery_date=delivery_date,
        )
        for entry in lines:
            quantity, fmt = entry[0], entry[1]
            fg = entry[2] if len(entry) > 2 else None
            order.lines.append(
                OrderLine(
                    recipe_id=recipe.id,
                    format=fmt,
                    quantity=quantity,
                    unit_price_cents=25000,
                    line_total_cents=25000 * quantity,
                    finished_goods_id=fg.id if fg is not None else None,
                )
            )
        db_session.add(order)
        db_session.commit()
        return order

    return _make


@pytest.fixture(scope='function')
def make_purchase_order(db_session, supplier):
    """Insert a PO directly: lines is a list of (item, ordered, received)."""
    counter = {"n": 0}

    def _make(status="sent", lines=()):
        counter["n"] += 1
        po = PurchaseOrder(po_number=f"TEST-PO-{counter['n']:03d}", supplier_id=supplier.id, status=status)
        for item, ordered, received in lines:
            po.lines.append(
                PurchaseOrderLine(
                    inventory_item_id=item.id,
                    quantity_ordered=ordered,
                    quantity_received=received,
                    unit=item.unit,
                    unit_cost_cents=350,
                    line_total_cents=int(350 * ordered),
                )
            )
        db_session.add(po)
        db_session.commit()
        return po

    return _make


@pytest.fixture(scope='function')
def cans(db_session, recipe, supplier):
    """Package-stage material: 2000 cans per 1000 L of the recipe."""
    item = InventoryItem(name="375ml Cans", category="packaging", unit="each", supplier_id=supplier.id)
    db_session.add(item)
    db_session.flush()
    db_session.add(
        RecipeIngredient(recipe_id=recipe.id, inventory_item_id=item.id, quantity=2000.0, unit="each", usage_stage="package")
    )
    db_session.commit()
    return item
