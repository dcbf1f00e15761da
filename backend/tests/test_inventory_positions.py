# Overview: Pytest coverage for raw-material and finished-goods stock positions.

"""
Quantity Ledger Tests

Recipe fixture: 200 kg malt and 1000 g hops per 1000 L.

    available = on_hand - allocated           (can be negative)
    projected = available + on_order - future_consumption
"""

import pytest
from datetime import timedelta

from brewplan.errors import NotFound
from brewplan.models import FinishedGoods
from brewplan.services import batch_service, catalog_service, inventory_service, order_service
from brewplan.time_utils import today


class TestRawMaterialPosition:
    def test_empty_item_is_all_zero(self, db_session, malt):
        position = inventory_service.position_for_item(malt.id)
        assert position.on_hand == 0.0
        assert position.allocated == 0.0
        assert position.available == 0.0
        assert position.on_order == 0.0
        assert position.projected == 0.0
        assert position.below_reorder_point is True

    def test_on_hand_ignores_expired_lots(self, db_session, malt, make_lot):
        make_lot(malt, 300.0)
        make_lot(malt, 50.0, expiry_date=today() - timedelta(days=1))
        make_lot(malt, 20.0, expiry_date=today() + timedelta(days=5))

        assert inventory_service.position_for_item(malt.id).on_hand == 320.0
        later = inventory_service.position_for_item(malt.id, as_of=today() + timedelta(days=10))
        assert later.on_hand == 300.0

    def test_planned_and_brewing_batches_allocate(self, db_session, malt, hops, make_lot, make_batch):
        make_lot(malt, 300.0)
        make_batch("planned")
        make_batch("brewing", batch_size_litres=500.0)
        make_batch("fermenting")
        make_batch("cancelled")

        position = inventory_service.position_for_item(malt.id)

        assert position.allocated == 300.0
        assert position.available == 0.0
        assert inventory_service.position_for_item(hops.id).allocated == 1500.0

    def test_available_goes_negative_when_over_committed(self, db_session, malt, make_lot, make_batch):
        make_lot(malt, 250.0)
        make_batch("planned")
        make_batch("planned")

        position = inventory_service.position_for_item(malt.id)

        assert position.allocated == 400.0
        assert position.available == -150.0
        assert position.available == position.on_hand - position.allocated

    def test_planned_batches_beyond_horizon_are_future_consumption(self, db_session, malt, make_lot, make_batch):
        make_lot(malt, 500.0)
        make_batch("planned", planned_date=today() + timedelta(days=10))
        make_batch("planned", planned_date=today() + timedelta(days=30))

        position = inventory_service.position_for_item(malt.id)

        assert position.allocated == 200.0
        assert position.future_consumption == 200.0
        assert position.available == 300.0
        assert position.projected == 100.0

    def test_on_order_counts_open_purchase_orders_only(self, db_session, malt, make_purchase_order):
        make_purchase_order("sent", [(malt, 100.0, 40.0)])
        make_purchase_order("partially_received", [(malt, 50.0, 25.0)])
        make_purchase_order("draft", [(malt, 500.0, 0.0)])
        make_purchase_order("cancelled", [(malt, 500.0, 0.0)])
        make_purchase_order("received", [(malt, 10.0, 10.0)])

        position = inventory_service.position_for_item(malt.id)

        assert position.on_order == 85.0
        assert position.available == 0.0
        assert position.projected == 85.0

    def test_consumption_reduces_allocation(self, db_session, malt, make_lot, make_batch):
        lot = make_lot(malt, 300.0)
        batch = make_batch("brewing")
        before = inventory_service.position_for_item(malt.id)

        batch_service.record_consumption(batch.id, lot.id, 150.0)
        after = inventory_service.position_for_item(malt.id)

        assert after.on_hand == 150.0
        assert after.allocated == 50.0
        assert after.available == before.available

    def test_position_for_all_lists_every_active_item(self, db_session, malt, hops, supplier, make_lot):
        make_lot(malt, 10.0)
        crystal = catalog_service.create_inventory_item(name="Old Crystal", unit="kg", category="grain")
        catalog_service.archive_inventory_item(crystal.id)

        positions = inventory_service.position_for_all()

        assert [p.item_name for p in positions] == ["Galaxy Hops", "Pale Malt"]
        assert positions[1].on_hand == 10.0
        assert len(inventory_service.position_for_all(include_archived=True)) == 3

    def test_unknown_item(self, db_session):
        with pytest.raises(NotFound):
            inventory_service.position_for_item(31337)


class TestFinishedGoodsPosition:
    def test_rows_of_same_product_are_combined(self, db_session, make_finished_goods, make_order, recipe):
        first = make_finished_goods(10)
        make_finished_goods(5)
        make_finished_goods(48, format="can_375ml")
        make_order("confirmed", [(3, "keg_50l", first)])

        position = inventory_service.finished_goods_position(recipe.id, "keg_50l")

        assert position.on_hand == 15
        assert position.reserved == 3
        assert position.available == 12
        assert position.over_allocated is False

    def test_closed_orders_hold_no_reservation(self, db_session, make_finished_goods, make_order, recipe):
        fg = make_finished_goods(10)
        make_order("cancelled", [(3, "keg_50l", fg)])
        make_order("delivered", [(2, "keg_50l", fg)])
        make_order("dispatched", [(4, "keg_50l", fg)])

        assert inventory_service.finished_goods_position(recipe.id, "keg_50l").reserved == 4

    def test_over_allocation_is_surfaced(self, db_session, make_finished_goods, make_order, recipe):
        fg = make_finished_goods(10)
        order = make_order("confirmed", [(8, "keg_50l")])
        order_service.assign_finished_goods(order.lines[0].id, fg.id)
        fg = db_session.get(FinishedGoods, fg.id)
        fg.quantity_on_hand = 5
        db_session.commit()

        position = inventory_service.finished_goods_position(recipe.id, "keg_50l")

        assert position.available == -3
        assert position.over_allocated is True

    def test_no_stock_is_a_zero_position(self, db_session, recipe):
        position = inventory_service.finished_goods_position(recipe.id, "keg_20l")
        assert position.on_hand == 0
        assert position.available == 0
        assert position.product_name == recipe.name
