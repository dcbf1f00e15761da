# Overview: Flask API routes for brew batches; parses input and returns JSON responses.

"""
Batch Routes

- GET  /api/batches                       list (optional ?status=)
- POST /api/batches                       plan a batch
- GET  /api/batches/:id                   batch detail
- GET  /api/batches/:id/transitions       statuses a user may request next
- POST /api/batches/:id/transition        {"status": "...", "expected_version": n}
- POST /api/batches/:id/vessel            {"vessel_id": n}
- POST /api/batches/:id/consumption       {"lot_id": n, "quantity": x}
- POST /api/batches/:id/packaging         {"format": "...", "quantity_units": n}
- GET  /api/batches/:id/fermentation      cellar log
- POST /api/batches/:id/fermentation      {"gravity": x, "temperature_celsius": x, "ph": x}
- GET  /api/batches/:id/measurements      measurement log
- POST /api/batches/:id/measurements      {"og": x, "fg": x, "volume_litres": x, "ibu": x}
- GET  /api/batches/:id/quality-checks    QC records, newest first
- POST /api/batches/:id/quality-checks    {"check_type": "...", "result": "...", ...readings}
- PATCH  /api/batches/quality-checks/:id  partial edit
- DELETE /api/batches/quality-checks/:id  pending checks only
"""

from flask import Blueprint, request, jsonify

from ..decorators import core_errors_as_json, json_body
from ..errors import NotFound
from ..extensions import db
from ..models import Batch
from ..services import batch_service, lifecycle_service, packaging_service, quality_service
from ..services.lifecycle_policy import BatchStatus
from ..validation import ValidationError, optional_date, optional_datetime, optional_version, parse_enum


batches_bp = Blueprint("batches", __name__, url_prefix="/api/batches")


@batches_bp.get("")
@core_errors_as_json("list batches")
def list_batches_route():
    query = db.session.query(Batch)
    status = request.args.get("status")
    if status:
        query = query.filter(Batch.status == parse_enum(BatchStatus, status).value)
    batches = query.order_by(Batch.id.desc()).all()
    return jsonify({"items": [b.to_dict() for b in batches], "count": len(batches)})


@batches_bp.post("")
@core_errors_as_json("create batch")
def create_batch_route():
    data = json_body()
    recipe_id = data.get("recipe_id")
    if not isinstance(recipe_id, int):
        raise ValidationError("recipe_id is required")
    batch = batch_service.create_batch(
        recipe_id,
        batch_size_litres=data.get("batch_size_litres"),
        planned_date=optional_date(data.get("planned_date"), field="planned_date"),
        notes=data.get("notes"),
    )
    return jsonify({"batch": batch.to_dict()}), 201


@batches_bp.get("/<int:batch_id>")
@core_errors_as_json("load batch")
def get_batch_route(batch_id: int):
    batch = db.session.get(Batch, batch_id)
    if batch is None:
        raise NotFound("Batch", batch_id)
    return jsonify({"batch": batch.to_dict()})


@batches_bp.get("/<int:batch_id>/transitions")
@core_errors_as_json("list batch transitions")
def batch_transitions_route(batch_id: int):
    options = lifecycle_service.transition_options(lifecycle_service.BATCH, batch_id)
    return jsonify({"transitions": options})


@batches_bp.post("/<int:batch_id>/transition")
@core_errors_as_json("transition batch")
def transition_batch_route(batch_id: int):
    """
    Response:
        200 {"batch": {...}}   (also when already in the requested status)
        404 unknown batch, 409 not reachable / version conflict, 422 blocked
    """
    data = json_body()
    batch = lifecycle_service.transition_batch(
        batch_id,
        data.get("status"),
        expected_version=optional_version(data.get("expected_version")),
        performed_by=data.get("performed_by"),
    )
    return jsonify({"batch": batch.to_dict()})


@batches_bp.post("/<int:batch_id>/vessel")
@core_errors_as_json("assign vessel")
def assign_vessel_route(batch_id: int):
    data = json_body()
    vessel_id = data.get("vessel_id")
    if not isinstance(vessel_id, int):
        raise ValidationError("vessel_id is required")
    batch = batch_service.assign_vessel(batch_id, vessel_id, expected_version=optional_version(data.get("expected_version")))
    return jsonify({"batch": batch.to_dict()})


@batches_bp.post("/<int:batch_id>/consumption")
@core_errors_as_json("record consumption")
def record_consumption_route(batch_id: int):
    data = json_body()
    lot_id = data.get("lot_id")
    if not isinstance(lot_id, int):
        raise ValidationError("lot_id is required")
    movement = batch_service.record_consumption(
        batch_id,
        lot_id,
        data.get("quantity"),
        performed_by=data.get("performed_by"),
        notes=data.get("notes"),
    )
    return jsonify({"movement": movement.to_dict()}), 201


@batches_bp.post("/<int:batch_id>/packaging")
@core_errors_as_json("record packaging run")
def record_packaging_route(batch_id: int):
    data = json_body()
    run, fg = packaging_service.record_packaging_run(
        batch_id,
        format=data.get("format"),
        quantity_units=data.get("quantity_units"),
        packaging_date=optional_date(data.get("packaging_date"), field="packaging_date"),
        volume_litres=data.get("volume_litres"),
        best_before_date=optional_date(data.get("best_before_date"), field="best_before_date"),
        location=data.get("location"),
        notes=data.get("notes"),
    )
    return jsonify({"packaging_run": run.to_dict(), "finished_goods": fg.to_dict()}), 201


@batches_bp.get("/<int:batch_id>/fermentation")
@core_errors_as_json("load fermentation log")
def fermentation_log_route(batch_id: int):
    entries = batch_service.fermentation_log(batch_id)
    return jsonify({"items": [e.to_dict() for e in entries], "count": len(entries)})


@batches_bp.post("/<int:batch_id>/fermentation")
@core_errors_as_json("log fermentation reading")
def add_fermentation_route(batch_id: int):
    data = json_body()
    entry = batch_service.add_fermentation_entry(
        batch_id,
        gravity=data.get("gravity"),
        temperature_celsius=data.get("temperature_celsius"),
        ph=data.get("ph"),
        logged_at=optional_datetime(data.get("logged_at"), field="logged_at"),
        notes=data.get("notes"),
        logged_by=data.get("logged_by"),
    )
    return jsonify({"entry": entry.to_dict()}), 201


@batches_bp.get("/<int:batch_id>/measurements")
@core_errors_as_json("load measurement log")
def measurement_log_route(batch_id: int):
    rows = batch_service.measurement_log(batch_id)
    return jsonify({"items": [m.to_dict() for m in rows], "count": len(rows)})


@batches_bp.post("/<int:batch_id>/measurements")
@core_errors_as_json("record measurement")
def add_measurement_route(batch_id: int):
    data = json_body()
    measurement = batch_service.add_measurement(
        batch_id,
        og=data.get("og"),
        fg=data.get("fg"),
        volume_litres=data.get("volume_litres"),
        ibu=data.get("ibu"),
        logged_at=optional_datetime(data.get("logged_at"), field="logged_at"),
        notes=data.get("notes"),
        logged_by=data.get("logged_by"),
        expected_version=optional_version(data.get("expected_version")),
    )
    batch = db.session.get(Batch, batch_id)
    return jsonify({"measurement": measurement.to_dict(), "batch": batch.to_dict()}), 201


def _quality_fields(data: dict) -> dict:
    names = set(quality_service.READING_BOUNDS) | set(quality_service.TEXT_FIELDS)
    return {name: data[name] for name in names if name in data}


@batches_bp.get("/<int:batch_id>/quality-checks")
@core_errors_as_json("list quality checks")
def list_quality_checks_route(batch_id: int):
    checks = quality_service.list_checks(batch_id)
    return jsonify({"items": [c.to_dict() for c in checks], "count": len(checks)})


@batches_bp.post("/<int:batch_id>/quality-checks")
@core_errors_as_json("create quality check")
def create_quality_check_route(batch_id: int):
    data = json_body()
    check = quality_service.create_check(
        batch_id,
        check_type=data.get("check_type"),
        checked_at=optional_datetime(data.get("checked_at"), field="checked_at"),
        result=data.get("result"),
        **_quality_fields(data),
    )
    return jsonify({"quality_check": check.to_dict()}), 201


@batches_bp.patch("/quality-checks/<int:check_id>")
@core_errors_as_json("update quality check")
def update_quality_check_route(check_id: int):
    data = json_body()
    check = quality_service.update_check(check_id, result=data.get("result"), **_quality_fields(data))
    return jsonify({"quality_check": check.to_dict()})


@batches_bp.delete("/quality-checks/<int:check_id>")
@core_errors_as_json("delete quality check")
def delete_quality_check_route(check_id: int):
    quality_service.delete_check(check_id)
    return jsonify({"deleted": check_id})
