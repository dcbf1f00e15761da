# Overview: Pytest coverage for fermentation logs, brewhouse measurements, and quality checks.

"""
Batch Record Tests

Covers:
- Fermentation entries only while the batch is in a vessel
- Measurements copied onto the batch's actual readings
- Quality checks: pending by default, resolved results kept
"""

from datetime import datetime, timedelta

import pytest

from brewplan.errors import ConcurrencyConflict, InvalidState, NotFound
from brewplan.models import Batch, QualityCheck
from brewplan.services import batch_service, lifecycle_service, quality_service
from brewplan.time_utils import utcnow
from brewplan.validation import ValidationError


class TestFermentationLog:
    def test_entry_while_fermenting(self, db_session, make_batch):
        batch = make_batch("fermenting")

        entry = batch_service.add_fermentation_entry(
            batch.id, gravity=1.030, temperature_celsius=18.5, logged_by="Sam"
        )

        assert entry.gravity == pytest.approx(1.030)
        assert [e.id for e in batch_service.fermentation_log(batch.id)] == [entry.id]
        assert db_session.get(Batch, batch.id).version_id == 1

    def test_log_in_reading_order(self, db_session, make_batch):
        batch = make_batch("conditioning")
        now = utcnow()
        later = batch_service.add_fermentation_entry(batch.id, ph=4.3, logged_at=now)
        earlier = batch_service.add_fermentation_entry(batch.id, ph=4.6, logged_at=now - timedelta(days=2))

        assert [e.id for e in batch_service.fermentation_log(batch.id)] == [earlier.id, later.id]

    @pytest.mark.parametrize("status", ["planned", "packaged", "completed", "dumped"])
    def test_refused_outside_vessel_range(self, db_session, make_batch, status):
        batch = make_batch(status)
        with pytest.raises(InvalidState):
            batch_service.add_fermentation_entry(batch.id, gravity=1.012)

    def test_needs_a_reading(self, db_session, make_batch):
        batch = make_batch("fermenting")
        with pytest.raises(ValidationError):
            batch_service.add_fermentation_entry(batch.id, notes="smells fine")

    def test_ph_bounds(self, db_session, make_batch):
        batch = make_batch("fermenting")
        with pytest.raises(ValidationError):
            batch_service.add_fermentation_entry(batch.id, ph=15)
        assert batch_service.fermentation_log(batch.id) == []

    def test_unknown_batch(self, db_session):
        with pytest.raises(NotFound):
            batch_service.fermentation_log(9999)


class TestMeasurements:
    def test_values_copied_onto_batch(self, db_session, make_batch):
        batch = make_batch("brewing")

        batch_service.add_measurement(batch.id, og=1.052, volume_litres=980.0, ibu=38)

        batch = db_session.get(Batch, batch.id)
        assert batch.actual_og == pytest.approx(1.052)
        assert batch.actual_volume_litres == pytest.approx(980.0)
        assert batch.actual_ibu == pytest.approx(38.0)
        assert batch.actual_fg is None

    def test_later_measurement_wins(self, db_session, make_batch):
        batch = make_batch("fermenting")
        batch_service.add_measurement(batch.id, volume_litres=990.0)
        batch_service.add_measurement(batch.id, volume_litres=975.0, fg=1.011)

        batch = db_session.get(Batch, batch.id)
        assert batch.actual_volume_litres == pytest.approx(975.0)
        assert batch.actual_fg == pytest.approx(1.011)
        assert len(batch_service.measurement_log(batch.id)) == 2

    def test_new_fg_recomputes_abv_once_ready(self, db_session, make_batch):
        batch = make_batch("ready_to_package", actual_og=1.050, actual_fg=1.014)

        batch_service.add_measurement(batch.id, fg=1.010)

        assert db_session.get(Batch, batch.id).actual_abv == pytest.approx(5.25)

    def test_abv_left_alone_before_ready(self, db_session, make_batch):
        batch = make_batch("fermenting", actual_og=1.050)
        batch_service.add_measurement(batch.id, fg=1.010)
        assert db_session.get(Batch, batch.id).actual_abv is None

    @pytest.mark.parametrize("status", ["planned", "completed", "cancelled"])
    def test_refused_outside_brewing_to_packaged(self, db_session, make_batch, status):
        batch = make_batch(status)
        with pytest.raises(InvalidState):
            batch_service.add_measurement(batch.id, og=1.048)

    def test_stale_version(self, db_session, make_batch):
        batch = make_batch("brewing")
        batch_service.add_measurement(batch.id, og=1.048)

        with pytest.raises(ConcurrencyConflict):
            batch_service.add_measurement(batch.id, og=1.050, expected_version=1)
        assert db_session.get(Batch, batch.id).actual_og == pytest.approx(1.048)

    def test_needs_a_value(self, db_session, make_batch):
        batch = make_batch("brewing")
        with pytest.raises(ValidationError):
            batch_service.add_measurement(batch.id, notes="forgot the hydrometer")


class TestQualityChecks:
    def test_check_starts_pending(self, db_session, make_batch):
        batch = make_batch("ready_to_package")

        check = quality_service.create_check(
            batch.id, check_type="pre_packaging", ph=4.2, dissolved_oxygen=35.0, checked_by="QA"
        )

        assert check.result == "pending"
        assert check.ph == pytest.approx(4.2)
        assert check.checked_by == "QA"

    def test_resolve_and_keep(self, db_session, make_batch):
        batch = make_batch("packaged")
        check = quality_service.create_check(batch.id, check_type="sensory", sensory_notes="clean, citrus")

        resolved = quality_service.update_check(check.id, result="pass", co2_volumes=2.6)

        assert resolved.result == "pass"
        assert resolved.sensory_notes == "clean, citrus"
        assert resolved.co2_volumes == pytest.approx(2.6)
        with pytest.raises(InvalidState):
            quality_service.delete_check(check.id)
        assert db_session.get(QualityCheck, check.id) is not None

    def test_delete_pending(self, db_session, make_batch):
        batch = make_batch("conditioning")
        check = quality_service.create_check(batch.id, check_type="lab")

        quality_service.delete_check(check.id)

        assert quality_service.list_checks(batch.id) == []

    def test_newest_first(self, db_session, make_batch):
        batch = make_batch("completed")
        old = quality_service.create_check(batch.id, check_type="lab", checked_at=datetime(2026, 1, 5, 9, 0))
        new = quality_service.create_check(batch.id, check_type="lab", checked_at=datetime(2026, 2, 5, 9, 0))

        assert [c.id for c in quality_service.list_checks(batch.id)] == [new.id, old.id]

    @pytest.mark.parametrize("status", ["planned", "cancelled"])
    def test_unbrewed_batch_refused(self, db_session, make_batch, status):
        batch = make_batch(status)
        with pytest.raises(InvalidState):
            quality_service.create_check(batch.id, check_type="lab")

    def test_bad_input(self, db_session, make_batch):
        batch = make_batch("packaged")
        with pytest.raises(ValidationError):
            quality_service.create_check(batch.id, check_type="taste")
        with pytest.raises(ValidationError):
            quality_service.create_check(batch.id, check_type="lab", abv=150)
        with pytest.raises(ValidationError):
            quality_service.create_check(batch.id, check_type="lab", result="maybe")
        assert quality_service.list_checks(batch.id) == []

    def test_checks_survive_the_lifecycle(self, db_session, make_batch):
        batch = make_batch("ready_to_package")
        quality_service.create_check(batch.id, check_type="pre_packaging", result="pass")

        lifecycle_service.transition_batch(batch.id, "packaged")

        [check] = quality_service.list_checks(batch.id)
        assert check.result == "pass"
