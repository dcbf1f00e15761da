# Overview: Pytest coverage for the production summary report.

from datetime import datetime, time, timedelta

import pytest

from brewplan.models import Vessel
from brewplan.services import batch_service, lifecycle_service, reporting_service
from brewplan.time_utils import today, utcnow
from brewplan.validation import ValidationError


class TestProductionSummary:
    def test_empty_range(self, db_session, vessel):
        summary = reporting_service.production_summary(start=today() - timedelta(days=7), end=today())

        assert summary["batches_completed"] == 0
        assert summary["total_volume_litres"] == 0
        assert summary["average_batch_size_litres"] == 0
        assert summary["vessel_utilisation"] == [{"vessel_id": vessel.id, "vessel_name": "FV-01", "batch_count": 0}]

    def test_volume_and_in_progress(self, db_session, make_batch):
        make_batch("completed", actual_volume_litres=950.0, completed_at=utcnow())
        make_batch("completed", batch_size_litres=1000.0, completed_at=utcnow() - timedelta(days=2))
        make_batch("completed", completed_at=utcnow() - timedelta(days=40))
        make_batch("fermenting")
        make_batch("planned")
        make_batch("dumped")

        summary = reporting_service.production_summary(start=today() - timedelta(days=7), end=today())

        assert summary["batches_completed"] == 2
        assert summary["total_volume_litres"] == pytest.approx(1950.0)
        assert summary["average_batch_size_litres"] == pytest.approx(975.0)
        assert summary["batches_in_progress"] == 2

    def test_end_day_is_inclusive(self, db_session, make_batch):
        make_batch("completed", completed_at=datetime.combine(today(), time(23, 30)))
        summary = reporting_service.production_summary(start=today(), end=today())
        assert summary["batches_completed"] == 1

    def test_vessel_counted_after_release(self, db_session, make_batch, vessel):
        spare = Vessel(name="FV-02", vessel_type="fermenter", capacity_litres=1200.0, status="available")
        db_session.add(spare)
        db_session.commit()
        batch = make_batch("brewing")
        batch_service.assign_vessel(batch.id, vessel.id)
        for status in ("fermenting", "conditioning", "ready_to_package", "packaged", "completed"):
            lifecycle_service.transition_batch(batch.id, status)

        summary = reporting_service.production_summary(start=today(), end=today())

        counts = {row["vessel_name"]: row["batch_count"] for row in summary["vessel_utilisation"]}
        assert counts == {"FV-01": 1, "FV-02": 0}

    def test_end_before_start(self, db_session):
        with pytest.raises(ValidationError):
            reporting_service.production_summary(start=today(), end=today() - timedelta(days=1))
