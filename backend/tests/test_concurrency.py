# Overview: Pytest coverage for optimistic version checks, conflict mapping, and document numbering.

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from brewplan.errors import ConcurrencyConflict, PreconditionFailed
from brewplan.extensions import db
from brewplan.models import Batch, Order, PurchaseOrder
from brewplan.services import batch_service, document_service, lifecycle_service, order_service, purchasing_service
from brewplan.time_utils import today


class TestOptimisticVersions:
    def test_stale_expected_version_is_a_conflict(self, db_session, make_batch):
        batch = make_batch("planned")
        lifecycle_service.transition_batch(batch.id, "brewing", expected_version=1)

        with pytest.raises(ConcurrencyConflict) as exc_info:
            lifecycle_service.transition_batch(batch.id, "fermenting", expected_version=1)

        assert isinstance(exc_info.value, PreconditionFailed)
        assert db_session.get(Batch, batch.id).status == "brewing"

    def test_retry_after_landed_transition_is_a_no_op(self, db_session, make_batch):
        batch = make_batch("planned")
        lifecycle_service.transition_batch(batch.id, "brewing", expected_version=1)

        again = lifecycle_service.transition_batch(batch.id, "brewing", expected_version=1)

        assert again.status == "brewing"
        assert again.version_id == 2

    def test_current_expected_version_passes(self, db_session, make_batch):
        batch = make_batch("planned")
        result = lifecycle_service.transition_batch(batch.id, "brewing", expected_version=batch.version_id)
        assert result.version_id == 2

    def test_stale_commit_maps_to_conflict_and_rolls_back(self, db_session, make_batch, monkeypatch):
        batch = make_batch("planned")

        def stale_commit():
            raise StaleDataError("UPDATE statement on table 'batches' expected to update 1 row(s); 0 were matched.")

        monkeypatch.setattr(db.session, "commit", stale_commit)
        with pytest.raises(ConcurrencyConflict):
            lifecycle_service.transition_batch(batch.id, "brewing")
        monkeypatch.undo()

        assert db_session.get(Batch, batch.id).status == "planned"

    def test_edit_with_stale_version(self, db_session, make_batch):
        batch = make_batch("planned")
        batch_service.update_batch(batch.id, notes="Swap to Vic Secret")

        with pytest.raises(ConcurrencyConflict):
            batch_service.update_batch(batch.id, notes="Back to Galaxy", expected_version=1)
        assert db_session.get(Batch, batch.id).notes == "Swap to Vic Secret"

    def test_order_edit_with_stale_version(self, db_session, make_order):
        order = make_order("confirmed", [(2, "keg_50l")])
        order_service.update_order(order.id, delivery_date=today(), notes="Deliver before noon")

        with pytest.raises(ConcurrencyConflict):
            order_service.update_order(order.id, notes="Leave at the cellar door", expected_version=1)
        order = db_session.get(Order, order.id)
        assert order.notes == "Deliver before noon"
        assert order.delivery_date == today()

    def test_purchase_order_edit_with_stale_version(self, db_session, make_purchase_order, malt):
        po = make_purchase_order("sent", [(malt, 100.0, 0.0)])
        purchasing_service.update_purchase_order(po.id, expected_delivery_date=today(), notes="Pallet of Pale")

        with pytest.raises(ConcurrencyConflict):
            purchasing_service.update_purchase_order(po.id, notes="Two pallets", expected_version=1)
        po = db_session.get(PurchaseOrder, po.id)
        assert po.notes == "Pallet of Pale"
        assert po.expected_delivery_date == today()


class TestDocumentNumbers:
    def test_sequential_per_type(self, db_session, recipe):
        first = batch_service.create_batch(recipe.id)
        second = batch_service.create_batch(recipe.id)

        year = today().year
        assert first.batch_number == f"BP-{year}-001"
        assert second.batch_number == f"BP-{year}-002"

    def test_sequences_are_independent_per_year(self, db_session):
        assert document_service.next_document_number(document_type="BATCH", prefix="BP", year=2025) == "BP-2025-001"
        assert document_service.next_document_number(document_type="BATCH", prefix="BP", year=2026) == "BP-2026-001"
        assert document_service.next_document_number(document_type="BATCH", prefix="BP", year=2025) == "BP-2025-002"

    def test_prefix_required(self, db_session):
        with pytest.raises(document_service.DocumentSequenceError):
            document_service.next_document_number(document_type="BATCH", prefix="")

    def test_locked_sequence_retries_inside_a_transition(self, db_session, make_order, monkeypatch):
        order = make_order("delivered", [(2, "keg_50l")])
        original_execute = db.session.execute
        calls = {"locked": 0}

        def locked_once(statement, *args, **kwargs):
            if calls["locked"] == 0 and str(statement).startswith("UPDATE document_sequences"):
                calls["locked"] += 1
                raise OperationalError("UPDATE document_sequences", {}, Exception("database is locked"))
            return original_execute(statement, *args, **kwargs)

        monkeypatch.setattr(db.session, "execute", locked_once)
        monkeypatch.setattr("brewplan.services.concurrency.time.sleep", lambda seconds: None)
        lifecycle_service.transition_order(order.id, "invoiced")
        monkeypatch.undo()

        db_session.expire_all()
        order = db_session.get(Order, order.id)
        assert calls["locked"] == 1
        assert order.status == "invoiced"
        assert order.invoice_number == f"INV-{today().year}-001"
        assert order.invoiced_at is not None
