# Overview: Pytest coverage for demand, material requirements, brew schedule, packaging priority, brew suggestions and purchase timing.

from datetime import timedelta

import pytest

from brewplan.models import Recipe, Supplier
from brewplan.services import batch_service, planning_service
from brewplan.time_utils import today


class TestDemandView:
    def test_empty_database_gives_empty_view(self, db_session):
        view = planning_service.demand_view()
        assert view.upcoming_orders == []
        assert view.demand_by_product == []
        assert view.unfulfillable == []

    def test_demand_beyond_stock_is_unfulfillable(self, db_session, make_order, make_finished_goods, recipe):
        make_finished_goods(20)
        make_order("confirmed", [(15, "keg_50l")], delivery_date=today() + timedelta(days=3))
        make_order("confirmed", [(15, "keg_50l")], delivery_date=today() + timedelta(days=5))

        view = planning_service.demand_view()

        assert len(view.upcoming_orders) == 2
        [group] = view.demand_by_product
        assert group.recipe_id == recipe.id
        assert group.format == "keg_50l"
        assert group.quantity_demanded == 30
        assert group.order_count == 2
        assert group.available == 20
        assert group.shortfall == 10
        assert view.unfulfillable == [group]

    def test_covered_demand_is_not_flagged(self, db_session, make_order, make_finished_goods):
        make_finished_goods(20)
        make_order("picking", [(12, "keg_50l")])

        view = planning_service.demand_view()

        assert view.demand_by_product[0].shortfall == 0
        assert view.unfulfillable == []

    def test_assigned_lines_are_not_counted_twice(self, db_session, make_order, make_finished_goods):
        fg = make_finished_goods(20)
        make_order("confirmed", [(20, "keg_50l", fg)])

        view = planning_service.demand_view()

        [group] = view.demand_by_product
        assert group.available == 20
        assert view.unfulfillable == []

    def test_only_committed_upcoming_orders_count(self, db_session, make_order, make_finished_goods):
        make_finished_goods(1)
        make_order("draft", [(5, "keg_50l")])
        make_order("delivered", [(5, "keg_50l")])
        make_order("cancelled", [(5, "keg_50l")])
        make_order("confirmed", [(5, "keg_50l")], delivery_date=today() - timedelta(days=1))
        undated = make_order("dispatched", [(2, "keg_50l")])

        view = planning_service.demand_view()

        assert [o["id"] for o in view.upcoming_orders] == [undated.id]
        assert view.demand_by_product[0].quantity_demanded == 2

    def test_formats_grouped_separately(self, db_session, make_order, make_finished_goods):
        make_finished_goods(100, format="can_375ml")
        make_order("confirmed", [(4, "keg_50l"), (24, "can_375ml")])

        view = planning_service.demand_view()

        by_format = {d.format: d for d in view.demand_by_product}
        assert by_format["keg_50l"].unfulfillable
        assert not by_format["can_375ml"].unfulfillable
        assert view.to_dict()["unfulfillable"][0]["format"] == "keg_50l"


class TestMaterialsRequirements:
    def test_no_planned_batches(self, db_session, malt):
        assert planning_service.materials_requirements() == []

    def test_shortfall_after_stock_and_incoming(self, db_session, malt, hops, make_lot, make_batch, make_purchase_order):
        make_lot(malt, 100.0)
        make_lot(hops, 5000.0)
        make_purchase_order("sent", [(malt, 50.0, 0.0)])
        make_batch("planned")

        rows = {r["inventory_item_name"]: r for r in planning_service.materials_requirements()}

        assert rows["Pale Malt"]["quantity_needed"] == 200.0
        assert rows["Pale Malt"]["quantity_on_order"] == 50.0
        assert rows["Pale Malt"]["shortfall"] == 50.0
        assert rows["Galaxy Hops"]["shortfall"] == 0.0


class TestBrewSchedule:
    def test_open_batches_in_date_order(self, db_session, recipe, vessel, make_batch):
        late = batch_service.create_batch(recipe.id, planned_date=today() + timedelta(days=7))
        early = batch_service.create_batch(recipe.id, planned_date=today() + timedelta(days=1))
        make_batch("completed")
        brewing = make_batch("brewing", planned_date=today())
        batch_service.assign_vessel(brewing.id, vessel.id)

        schedule = planning_service.brew_schedule()

        assert [row["id"] for row in schedule] == [brewing.id, early.id, late.id]
        assert schedule[0]["vessel_name"] == "FV-01"
        assert schedule[1]["recipe_name"] == "Pacific Pale Ale"
        assert late.estimated_ready_date == today() + timedelta(days=28)


@pytest.fixture
def lager(db_session):
    recipe = Recipe(
        name="Dark Lager", style="Dunkel", status="active", version=1,
        batch_size_litres=1000.0, estimated_total_days=35,
    )
    db_session.add(recipe)
    db_session.commit()
    return recipe


class TestPackagingPriority:
    def test_nothing_ready(self, db_session, make_batch):
        make_batch("conditioning")
        assert planning_service.packaging_priority() == []

    def test_demand_first_then_longest_in_tank(self, db_session, make_batch, make_order, lager):
        pale = make_batch("ready_to_package", brew_date=today() - timedelta(days=5))
        lager_20 = make_batch("ready_to_package", target_recipe=lager, brew_date=today() - timedelta(days=20))
        lager_30 = make_batch("ready_to_package", target_recipe=lager, brew_date=today() - timedelta(days=30))
        make_order("confirmed", [(10, "keg_50l")], delivery_date=today() + timedelta(days=3))

        rows = planning_service.packaging_priority()

        assert [r["batch_id"] for r in rows] == [pale.id, lager_30.id, lager_20.id]
        assert rows[0]["order_demand"] == 10
        assert rows[0]["earliest_delivery"] == (today() + timedelta(days=3)).isoformat()
        assert rows[0]["days_in_tank"] == 5
        assert rows[1]["order_demand"] == 0
        assert rows[1]["earliest_delivery"] is None

    def test_picked_lines_are_not_urgent(self, db_session, make_batch, make_order, make_finished_goods):
        fg = make_finished_goods(20)
        make_batch("ready_to_package")
        make_order("picking", [(10, "keg_50l", fg)], delivery_date=today() + timedelta(days=1))
        make_order("draft", [(10, "keg_50l")])

        [row] = planning_service.packaging_priority()
        assert row["order_demand"] == 0


class TestSuggestedBrews:
    def test_no_demand(self, db_session, make_order):
        make_order("draft", [(10, "keg_50l")])
        assert planning_service.suggested_brews() == []

    def test_unmet_demand_is_suggested(self, db_session, make_order, make_finished_goods, recipe):
        make_finished_goods(10)
        make_order("confirmed", [(30, "keg_50l")], delivery_date=today() + timedelta(days=10))

        [suggestion] = planning_service.suggested_brews()

        assert suggestion["recipe_id"] == recipe.id
        assert suggestion["demand_quantity"] == 30
        assert suggestion["available_stock"] == 10
        assert suggestion["unmet_demand"] == 20
        assert suggestion["active_batch_count"] == 0
        # 21 days brewing + packaging before a delivery 10 days out
        assert suggestion["latest_brew_date"] == (today() - timedelta(days=11)).isoformat()
        assert suggestion["overdue"] is True

    def test_covered_with_batch_in_progress_is_not_suggested(self, db_session, make_order, make_finished_goods, make_batch):
        make_finished_goods(50)
        make_batch("fermenting")
        make_order("confirmed", [(30, "keg_50l")])
        assert planning_service.suggested_brews() == []

    def test_covered_but_nothing_brewing_suggests_restock(self, db_session, make_order, make_finished_goods):
        make_finished_goods(50)
        make_order("picking", [(30, "keg_50l")])

        [suggestion] = planning_service.suggested_brews()
        assert suggestion["unmet_demand"] == 0
        assert suggestion["latest_brew_date"] is None
        assert suggestion["overdue"] is False

    def test_assigned_lines_are_not_double_counted(self, db_session, make_order, make_finished_goods, make_batch):
        fg = make_finished_goods(30)
        make_batch("planned")
        make_order("confirmed", [(30, "keg_50l", fg)])
        assert planning_service.suggested_brews() == []


class TestPurchaseTiming:
    def test_order_by_backs_off_lead_time(self, db_session, malt, hops, make_lot, make_batch, make_purchase_order):
        make_lot(malt, 100.0)
        make_lot(hops, 5000.0)
        make_purchase_order("sent", [(malt, 50.0, 0.0)])
        make_purchase_order("draft", [(malt, 500.0, 0.0)])
        make_batch("planned", planned_date=today() + timedelta(days=20))

        timing = planning_service.purchase_timing()

        [item] = timing["items"]
        assert item["inventory_item_name"] == "Pale Malt"
        assert item["shortfall"] == 50.0
        assert item["batch_number"] == "TEST-001"
        assert item["required_by"] == (today() + timedelta(days=20)).isoformat()
        # 5 days supplier lead + 2 days buffer
        assert item["order_by"] == (today() + timedelta(days=13)).isoformat()
        assert item["supplier_name"] == "Barrett Burston"
        assert item["overdue"] is False

        [po] = timing["pending_deliveries"]
        assert po["po_number"] == "TEST-PO-001"
        assert po["supplier_name"] == "Barrett Burston"

    def test_unknown_dates_leave_order_by_empty(self, db_session, malt, hops, make_lot, make_batch):
        make_lot(hops, 5000.0)
        make_batch("planned")

        [item] = planning_service.purchase_timing()["items"]
        assert item["required_by"] is None
        assert item["order_by"] is None
        assert item["overdue"] is False

    def test_no_lead_time_on_record(self, db_session, recipe, malt, hops, make_lot, make_batch):
        make_lot(hops, 5000.0)
        supplier = db_session.get(Supplier, malt.supplier_id)
        supplier.lead_time_days = None
        db_session.commit()
        make_batch("planned", planned_date=today() + timedelta(days=5))

        [item] = planning_service.purchase_timing()["items"]
        assert item["required_by"] == (today() + timedelta(days=5)).isoformat()
        assert item["order_by"] is None
