# Overview: Pytest coverage for the JSON API; status codes and error bodies.

"""
API Route Tests

Error mapping under test:
- 400 validation_error
- 404 not_found
- 409 invalid_transition / concurrency_conflict
- 422 precondition_failed / invalid_state / over_receipt
"""

from brewplan.time_utils import today


class TestSystemRoutes:
    def test_health(self, client, db_session):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.get_json()["checks"]["database"]["status"] == "healthy"


class TestBatchRoutes:
    def test_create_and_transition(self, client, db_session, recipe):
        response = client.post("/api/batches", json={"recipe_id": recipe.id, "planned_date": today().isoformat()})
        assert response.status_code == 201
        batch = response.get_json()["batch"]
        assert batch["status"] == "planned"
        assert batch["batch_number"] == f"BP-{today().year}-001"

        response = client.post(f"/api/batches/{batch['id']}/transition", json={"status": "brewing"})
        assert response.status_code == 200
        assert response.get_json()["batch"]["brew_date"] == today().isoformat()

    def test_invalid_transition_is_409(self, client, db_session, make_batch):
        batch = make_batch("planned")
        response = client.post(f"/api/batches/{batch.id}/transition", json={"status": "packaged"})
        assert response.status_code == 409
        assert response.get_json()["code"] == "invalid_transition"

    def test_stale_version_is_409(self, client, db_session, make_batch):
        batch = make_batch("planned")
        response = client.post(
            f"/api/batches/{batch.id}/transition", json={"status": "brewing", "expected_version": 7}
        )
        assert response.status_code == 409
        assert response.get_json()["code"] == "concurrency_conflict"

    def test_repeated_transition_with_same_version_is_200(self, client, db_session, make_batch):
        batch = make_batch("planned")
        payload = {"status": "brewing", "expected_version": 1}

        first = client.post(f"/api/batches/{batch.id}/transition", json=payload)
        second = client.post(f"/api/batches/{batch.id}/transition", json=payload)

        assert first.status_code == 200
        assert second.status_code == 200
        assert second.get_json()["batch"]["status"] == "brewing"

    def test_non_integer_version_is_400(self, client, db_session, make_batch):
        batch = make_batch("planned")
        response = client.post(
            f"/api/batches/{batch.id}/transition", json={"status": "brewing", "expected_version": "1"}
        )
        assert response.status_code == 400
        assert response.get_json()["code"] == "validation_error"

    def test_unknown_status_is_400(self, client, db_session, make_batch):
        batch = make_batch("planned")
        response = client.post(f"/api/batches/{batch.id}/transition", json={"status": "Brewing!"})
        assert response.status_code == 400
        assert response.get_json()["code"] == "validation_error"

    def test_missing_batch_is_404(self, client, db_session):
        response = client.post("/api/batches/9999/transition", json={"status": "brewing"})
        assert response.status_code == 404
        assert response.get_json()["code"] == "not_found"

    def test_vessel_on_planned_batch_is_422(self, client, db_session, make_batch, vessel):
        batch = make_batch("planned")
        response = client.post(f"/api/batches/{batch.id}/vessel", json={"vessel_id": vessel.id})
        assert response.status_code == 422
        assert response.get_json()["code"] == "invalid_state"

    def test_transition_options(self, client, db_session, make_batch):
        batch = make_batch("planned")
        response = client.get(f"/api/batches/{batch.id}/transitions")
        assert response.get_json()["transitions"] == ["brewing", "cancelled"]


class TestOrderRoutes:
    def test_confirm_without_lines_is_422(self, client, db_session, make_order):
        order = make_order("draft")
        response = client.post(f"/api/orders/{order.id}/transition", json={"status": "confirmed"})
        assert response.status_code == 422
        assert response.get_json()["code"] == "precondition_failed"

    def test_draft_to_delivered_is_409(self, client, db_session, make_order):
        order = make_order("draft", [(1, "keg_50l")])
        response = client.post(f"/api/orders/{order.id}/transition", json={"status": "delivered"})
        assert response.status_code == 409

        response = client.get(f"/api/orders/{order.id}")
        assert response.get_json()["order"]["status"] == "draft"

    def test_add_line_updates_totals(self, client, db_session, customer, recipe):
        response = client.post("/api/orders", json={"customer_id": customer.id})
        assert response.status_code == 201
        order_id = response.get_json()["order"]["id"]

        response = client.post(
            f"/api/orders/{order_id}/lines",
            json={"recipe_id": recipe.id, "format": "keg_50l", "quantity": 3, "unit_price_cents": 20000},
        )
        assert response.status_code == 201

        order = client.get(f"/api/orders/{order_id}").get_json()["order"]
        assert order["subtotal_cents"] == 60000
        assert order["total_cents"] == 66000


class TestPurchasingRoutes:
    def test_receive_and_over_receipt(self, client, db_session, make_purchase_order, malt):
        po = make_purchase_order("sent", [(malt, 100.0, 0.0)])
        line_id = po.lines[0].id

        response = client.post(
            f"/api/purchase-orders/lines/{line_id}/receive",
            json={"quantity_received": 150, "lot_number": "LOT-1"},
        )
        assert response.status_code == 422
        assert response.get_json()["code"] == "over_receipt"

        response = client.post(
            f"/api/purchase-orders/lines/{line_id}/receive",
            json={"quantity_received": 60, "lot_number": "LOT-1"},
        )
        assert response.status_code == 201
        body = response.get_json()
        assert body["purchase_order_status"] == "partially_received"
        assert body["lot"]["quantity_on_hand"] == 60.0

    def test_receive_bad_quantity_is_400(self, client, db_session, make_purchase_order, malt):
        po = make_purchase_order("sent", [(malt, 100.0, 0.0)])
        response = client.post(
            f"/api/purchase-orders/lines/{po.lines[0].id}/receive",
            json={"quantity_received": 0, "lot_number": "LOT-1"},
        )
        assert response.status_code == 400

    def test_user_cannot_set_partially_received(self, client, db_session, make_purchase_order, malt):
        po = make_purchase_order("sent", [(malt, 100.0, 0.0)])
        response = client.post(f"/api/purchase-orders/{po.id}/transition", json={"status": "partially_received"})
        assert response.status_code == 409

        options = client.get(f"/api/purchase-orders/{po.id}/transitions").get_json()["transitions"]
        assert "partially_received" not in options


class TestInventoryAndPlanningRoutes:
    def test_positions(self, client, db_session, malt, make_lot, make_batch):
        make_lot(malt, 300.0)
        make_batch("planned")

        response = client.get(f"/api/inventory/positions/{malt.id}")
        assert response.status_code == 200
        position = response.get_json()["position"]
        assert position["on_hand"] == 300.0
        assert position["allocated"] == 200.0
        assert position["available"] == 100.0

    def test_manual_adjustment(self, client, db_session, malt, make_lot):
        lot = make_lot(malt, 10.0)
        response = client.post(
            f"/api/inventory/lots/{lot.id}/movements",
            json={"movement_type": "adjusted", "quantity": -1.5, "reason": "Stocktake"},
        )
        assert response.status_code == 201

        items = client.get(f"/api/inventory/lots/{lot.id}/movements").get_json()["items"]
        assert [m["movement_type"] for m in items] == ["adjusted", "received"]

    def test_overdraw_is_422(self, client, db_session, malt, make_lot):
        lot = make_lot(malt, 10.0)
        response = client.post(
            f"/api/inventory/lots/{lot.id}/movements",
            json={"movement_type": "written_off", "quantity": -11, "reason": "Spoiled"},
        )
        assert response.status_code == 422

    def test_empty_demand(self, client, db_session):
        response = client.get("/api/planning/demand")
        assert response.status_code == 200
        assert response.get_json() == {"upcoming_orders": [], "demand_by_product": [], "unfulfillable": []}

    def test_bad_as_of_is_400(self, client, db_session):
        response = client.get("/api/planning/demand?as_of=yesterday")
        assert response.status_code == 400

    def test_planning_views(self, client, db_session):
        for path in ("packaging-priority", "suggested-brews"):
            response = client.get(f"/api/planning/{path}")
            assert response.status_code == 200
            assert response.get_json() == {"items": [], "count": 0}
        response = client.get("/api/planning/purchase-timing")
        assert response.get_json() == {"items": [], "pending_deliveries": []}


class TestBatchRecordRoutes:
    def test_fermentation_reading(self, client, db_session, make_batch):
        batch = make_batch("fermenting")
        response = client.post(
            f"/api/batches/{batch.id}/fermentation",
            json={"gravity": 1.024, "temperature_celsius": 19.0, "logged_at": "2026-10-01T08:00:00Z"},
        )
        assert response.status_code == 201
        assert response.get_json()["entry"]["logged_at"] == "2026-10-01T08:00:00Z"

        items = client.get(f"/api/batches/{batch.id}/fermentation").get_json()["items"]
        assert [e["gravity"] for e in items] == [1.024]

    def test_fermentation_on_planned_batch_is_422(self, client, db_session, make_batch):
        batch = make_batch("planned")
        response = client.post(f"/api/batches/{batch.id}/fermentation", json={"gravity": 1.050})
        assert response.status_code == 422
        assert response.get_json()["code"] == "invalid_state"

    def test_measurement_updates_batch(self, client, db_session, make_batch):
        batch = make_batch("brewing")
        response = client.post(f"/api/batches/{batch.id}/measurements", json={"og": 1.056, "ibu": 42})
        assert response.status_code == 201
        assert response.get_json()["batch"]["actual_og"] == 1.056
        assert response.get_json()["batch"]["actual_ibu"] == 42.0

    def test_quality_check_lifecycle(self, client, db_session, make_batch):
        batch = make_batch("ready_to_package")
        response = client.post(
            f"/api/batches/{batch.id}/quality-checks", json={"check_type": "pre_packaging", "ph": 4.25}
        )
        assert response.status_code == 201
        check = response.get_json()["quality_check"]
        assert check["result"] == "pending"

        response = client.patch(f"/api/batches/quality-checks/{check['id']}", json={"result": "fail"})
        assert response.get_json()["quality_check"]["result"] == "fail"

        response = client.delete(f"/api/batches/quality-checks/{check['id']}")
        assert response.status_code == 422

    def test_quality_check_bad_type_is_400(self, client, db_session, make_batch):
        batch = make_batch("packaged")
        response = client.post(f"/api/batches/{batch.id}/quality-checks", json={"check_type": "vibes"})
        assert response.status_code == 400


class TestReportRoutes:
    def test_production_summary(self, client, db_session):
        day = today().isoformat()
        response = client.get(f"/api/reports/production?start={day}&end={day}")
        assert response.status_code == 200
        assert response.get_json()["batches_completed"] == 0

    def test_production_summary_needs_range(self, client, db_session):
        response = client.get("/api/reports/production?start=2026-01-01")
        assert response.status_code == 400
        assert response.get_json()["code"] == "validation_error"
