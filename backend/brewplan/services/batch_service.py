# Overview: Service-layer operations for brew batches and vessels; batch transition rules and edits.

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional

from flask import current_app

from ..errors import InvalidState, NotFound, PreconditionFailed
from ..extensions import db
from ..models import (
    Batch,
    BatchMeasurement,
    FermentationLogEntry,
    FinishedGoods,
    InventoryLot,
    Recipe,
    RecipeStatus,
    Vessel,
    VesselStatus,
)
from ..time_utils import today, utcnow
from ..validation import ValidationError, optional_number, parse_enum, require_positive_quantity, require_text
from . import document_service, ledger_service, packaging_service
from .concurrency import check_expected_version, commit_or_conflict, lock_for_update
from .inventory_service import reserved_by_finished_goods
from .lifecycle_policy import BatchStatus, VESSEL_OCCUPYING_STATUSES, is_terminal
from .lifecycle_service import BATCH, TransitionContext, TransitionHandler, register_handler


# Gravity points to ABV
ABV_FACTOR = 131.25

CONSUMPTION_STATUSES = VESSEL_OCCUPYING_STATUSES


def _get_batch_for_update(batch_id: int) -> Batch:
    batch = lock_for_update(db.session.query(Batch).filter_by(id=batch_id)).first()
    if batch is None:
        raise NotFound("Batch", batch_id)
    return batch


def estimate_ready_date(recipe: Recipe, start: Optional[date]) -> Optional[date]:
    if recipe.estimated_total_days is None:
        return None
    return (start or today()) + timedelta(days=recipe.estimated_total_days)


def create_batch(
    recipe_id: int,
    *,
    batch_size_litres: float | None = None,
    planned_date: Optional[date] = None,
    notes: str | None = None,
) -> Batch:
    """Plan a new batch. Numbered BP-{year}-{seq}; starts in `planned` with no vessel."""
    try:
        recipe = db.session.get(Recipe, recipe_id)
        if recipe is None:
            raise NotFound("Recipe", recipe_id)
        if recipe.status == RecipeStatus.ARCHIVED.value:
            raise PreconditionFailed(f"Recipe {recipe.name} v{recipe.version} is archived")

        size = recipe.batch_size_litres if batch_size_litres is None else require_positive_quantity(
            batch_size_litres, field="batch_size_litres"
        )
        batch = Batch(
            batch_number=document_service.next_document_number(
                document_type=document_service.BATCH,
                prefix=current_app.config["BATCH_NUMBER_PREFIX"],
            ),
            recipe_id=recipe.id,
            status=BatchStatus.PLANNED.value,
            planned_date=planned_date,
            estimated_ready_date=estimate_ready_date(recipe, planned_date),
            batch_size_litres=size,
            notes=notes,
        )
        db.session.add(batch)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Planned batch %s (%s, %gL)", batch.batch_number, recipe.name, size)
    return batch


EDITABLE_READINGS = ("actual_volume_litres", "actual_og", "actual_fg")


def update_batch(
    batch_id: int,
    *,
    planned_date: Optional[date] = None,
    batch_size_litres: float | None = None,
    actual_volume_litres: float | None = None,
    actual_og: float | None = None,
    actual_fg: float | None = None,
    notes: str | None = None,
    expected_version: int | None = None,
) -> Batch:
    """
    Explicit field edits (never status, never vessel).

    Planned date and size are plan data and only editable while planned.
    Readings are editable until the batch reaches a terminal status.
    """
    try:
        batch = _get_batch_for_update(batch_id)
        check_expected_version(batch, expected_version, f"Batch {batch_id}")
        status = BatchStatus(batch.status)
        if is_terminal(status):
            raise InvalidState(f"Batch {batch.batch_number} is {status.value} and can no longer be edited")

        if planned_date is not None or batch_size_litres is not None:
            if status != BatchStatus.PLANNED:
                raise InvalidState("Planned date and batch size can only change while the batch is planned")
            if planned_date is not None:
                batch.planned_date = planned_date
                batch.estimated_ready_date = estimate_ready_date(batch.recipe, planned_date)
            if batch_size_litres is not None:
                batch.batch_size_litres = require_positive_quantity(batch_size_litres, field="batch_size_litres")

        readings = {"actual_volume_litres": actual_volume_litres, "actual_og": actual_og, "actual_fg": actual_fg}
        for name, value in readings.items():
            if value is not None:
                setattr(batch, name, require_positive_quantity(value, field=name))
        if notes is not None:
            batch.notes = notes

        commit_or_conflict(f"Batch {batch_id}")
    except Exception:
        db.session.rollback()
        raise
    return batch


# =============================================================================
# Cellar logs
# =============================================================================

# Measurements start on brew day and close with packaging
MEASUREMENT_STATUSES = VESSEL_OCCUPYING_STATUSES | {BatchStatus.PACKAGED}
ABV_STATUSES = frozenset({BatchStatus.READY_TO_PACKAGE, BatchStatus.PACKAGED})


def abv_from_gravity(og: float, fg: float) -> float:
    return round((og - fg) * ABV_FACTOR, 2)


def add_fermentation_entry(
    batch_id: int,
    *,
    gravity=None,
    temperature_celsius=None,
    ph=None,
    logged_at: Optional[datetime] = None,
    notes: str | None = None,
    logged_by: str | None = None,
) -> FermentationLogEntry:
    """
    Append a cellar reading while the batch is in a vessel.

    Needs at least one of gravity, temperature or pH. The batch row is not
    touched, so the entry never bumps the batch version.
    """
    try:
        gravity = None if gravity is None else require_positive_quantity(gravity, field="gravity")
        temperature_celsius = optional_number(temperature_celsius, field="temperature_celsius")
        ph = optional_number(ph, field="ph", minimum=0, maximum=14)
        if gravity is None and temperature_celsius is None and ph is None:
            raise ValidationError("A fermentation entry needs gravity, temperature_celsius or ph")

        batch = _get_batch_for_update(batch_id)
        if BatchStatus(batch.status) not in VESSEL_OCCUPYING_STATUSES:
            raise InvalidState(
                f"Batch {batch.batch_number} is {batch.status}; fermentation is logged from brewing "
                f"through ready_to_package"
            )
        entry = FermentationLogEntry(
            batch_id=batch.id,
            logged_at=logged_at or utcnow(),
            gravity=gravity,
            temperature_celsius=temperature_celsius,
            ph=ph,
            notes=notes,
            logged_by=logged_by,
        )
        db.session.add(entry)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return entry


def fermentation_log(batch_id: int) -> list[FermentationLogEntry]:
    if db.session.get(Batch, batch_id) is None:
        raise NotFound("Batch", batch_id)
    return (
        db.session.query(FermentationLogEntry)
        .filter_by(batch_id=batch_id)
        .order_by(FermentationLogEntry.logged_at.asc(), FermentationLogEntry.id.asc())
        .all()
    )


MEASUREMENT_FIELDS = {
    "og": "actual_og",
    "fg": "actual_fg",
    "volume_litres": "actual_volume_litres",
    "ibu": "actual_ibu",
}


def add_measurement(
    batch_id: int,
    *,
    og=None,
    fg=None,
    volume_litres=None,
    ibu=None,
    logged_at: Optional[datetime] = None,
    notes: str | None = None,
    logged_by: str | None = None,
    expected_version: int | None = None,
) -> BatchMeasurement:
    """
    Record brewhouse measurements and copy them onto the batch.

    Every non-null value overwrites the matching actual_* reading in the same
    transaction. Once ABV has been computed (ready_to_package or packaged) a
    new OG or FG recomputes it.
    """
    try:
        values = {
            "og": None if og is None else require_positive_quantity(og, field="og"),
            "fg": None if fg is None else require_positive_quantity(fg, field="fg"),
            "volume_litres": None if volume_litres is None else require_positive_quantity(
                volume_litres, field="volume_litres"
            ),
            "ibu": optional_number(ibu, field="ibu", minimum=0),
        }
        if all(v is None for v in values.values()):
            raise ValidationError("A measurement needs og, fg, volume_litres or ibu")

        batch = _get_batch_for_update(batch_id)
        check_expected_version(batch, expected_version, f"Batch {batch_id}")
        status = BatchStatus(batch.status)
        if status not in MEASUREMENT_STATUSES:
            raise InvalidState(
                f"Batch {batch.batch_number} is {batch.status}; measurements are recorded from brewing "
                f"through packaged"
            )

        measurement = BatchMeasurement(
            batch_id=batch.id,
            logged_at=logged_at or utcnow(),
            notes=notes,
            logged_by=logged_by,
            **values,
        )
        db.session.add(measurement)
        for name, column in MEASUREMENT_FIELDS.items():
            if values[name] is not None:
                setattr(batch, column, values[name])
        if status in ABV_STATUSES and batch.actual_og is not None and batch.actual_fg is not None:
            batch.actual_abv = abv_from_gravity(batch.actual_og, batch.actual_fg)
        commit_or_conflict(f"Batch {batch_id}")
    except Exception:
        db.session.rollback()
        raise
    return measurement


def measurement_log(batch_id: int) -> list[BatchMeasurement]:
    if db.session.get(Batch, batch_id) is None:
        raise NotFound("Batch", batch_id)
    return (
        db.session.query(BatchMeasurement)
        .filter_by(batch_id=batch_id)
        .order_by(BatchMeasurement.logged_at.asc(), BatchMeasurement.id.asc())
        .all()
    )


# =============================================================================
# Vessels
# =============================================================================

def create_vessel(*, name: str, capacity_litres: float, vessel_type: str = "fermenter", notes: str | None = None) -> Vessel:
    try:
        vessel = Vessel(
            name=require_text(name, field="name", max_length=64),
            vessel_type=require_text(vessel_type, field="vessel_type", max_length=32),
            capacity_litres=require_positive_quantity(capacity_litres, field="capacity_litres"),
            status=VesselStatus.AVAILABLE.value,
            notes=notes,
        )
        db.session.add(vessel)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return vessel


def set_vessel_status(vessel_id: int, status) -> Vessel:
    """Manual vessel status (cleaning, maintenance...). in_use is owned by batch assignment."""
    try:
        target = parse_enum(VesselStatus, status)
        vessel = lock_for_update(db.session.query(Vessel).filter_by(id=vessel_id)).first()
        if vessel is None:
            raise NotFound("Vessel", vessel_id)
        if target == VesselStatus.IN_USE:
            raise ValidationError("Vessels become in_use by assigning a batch")
        if vessel.current_batch_id is not None:
            raise PreconditionFailed(f"Vessel {vessel.name} holds batch {vessel.current_batch_id}")
        vessel.status = target.value
        commit_or_conflict(f"Vessel {vessel_id}")
    except Exception:
        db.session.rollback()
        raise
    return vessel


def release_vessel(batch: Batch) -> Optional[Vessel]:
    """
    Free the batch's vessel. Idempotent: a batch without a vessel is a no-op.

    In-transaction helper: flushes, never commits.
    """
    if batch.vessel_id is None:
        return None
    vessel = lock_for_update(db.session.query(Vessel).filter_by(id=batch.vessel_id)).first()
    batch.vessel_id = None
    if vessel is not None and vessel.current_batch_id in (batch.id, None):
        vessel.status = VesselStatus.AVAILABLE.value
        vessel.current_batch_id = None
    db.session.flush()
    return vessel


def assign_vessel(batch_id: int, vessel_id: int, *, expected_version: int | None = None) -> Batch:
    """
    Put a batch in a vessel.

    Only a batch inside the occupying range (brewing..ready_to_package) can
    hold a vessel. Moving to a new vessel releases the old one in the same
    transaction.
    """
    try:
        batch = _get_batch_for_update(batch_id)
        check_expected_version(batch, expected_version, f"Batch {batch_id}")
        if BatchStatus(batch.status) not in VESSEL_OCCUPYING_STATUSES:
            raise InvalidState(
                f"Batch {batch.batch_number} is {batch.status}; vessels are assigned from brewing "
                f"through ready_to_package"
            )

        vessel = lock_for_update(db.session.query(Vessel).filter_by(id=vessel_id)).first()
        if vessel is None:
            raise NotFound("Vessel", vessel_id)
        if batch.vessel_id == vessel.id:
            db.session.commit()
            return batch
        if vessel.status != VesselStatus.AVAILABLE.value or vessel.current_batch_id not in (None, batch.id):
            raise PreconditionFailed(f"Vessel {vessel.name} is {vessel.status}")
        if vessel.capacity_litres < batch.batch_size_litres:
            raise PreconditionFailed(
                f"Vessel {vessel.name} holds {vessel.capacity_litres:g}L; batch is {batch.batch_size_litres:g}L"
            )

        release_vessel(batch)
        batch.vessel_id = vessel.id
        batch.last_vessel_id = vessel.id
        vessel.status = VesselStatus.IN_USE.value
        vessel.current_batch_id = batch.id
        commit_or_conflict(f"Batch {batch_id}")
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Batch %s assigned to vessel %s", batch.batch_number, vessel.name)
    return batch


# =============================================================================
# Consumption
# =============================================================================

def record_consumption(
    batch_id: int,
    lot_id: int,
    quantity,
    *,
    performed_by: str | None = None,
    notes: str | None = None,
):
    """Draw raw material from a lot into a batch (brewing through ready_to_package)."""
    try:
        qty = require_positive_quantity(quantity)
        batch = _get_batch_for_update(batch_id)
        if BatchStatus(batch.status) not in CONSUMPTION_STATUSES:
            raise InvalidState(f"Cannot record consumption on a {batch.status} batch")
        lot = lock_for_update(db.session.query(InventoryLot).filter_by(id=lot_id)).first()
        if lot is None:
            raise NotFound("InventoryLot", lot_id)

        movement = ledger_service.append_movement(
            lot=lot,
            movement_type="consumed",
            quantity=-qty,
            reference_type=ledger_service.REF_BREW_BATCH,
            reference_id=batch.id,
            reason=notes or f"Consumed by {batch.batch_number}",
            performed_by=performed_by,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return movement


# =============================================================================
# Transition rules
# =============================================================================

def _reserved_units_for_batch(batch_id: int) -> int:
    fg_ids = [row.id for row in db.session.query(FinishedGoods.id).filter_by(batch_id=batch_id).all()]
    return sum(reserved_by_finished_goods(fg_ids).values()) if fg_ids else 0


def require_no_reserved_finished_goods(ctx: TransitionContext) -> None:
    if ctx.target != BatchStatus.DUMPED:
        return
    reserved = _reserved_units_for_batch(ctx.entity.id)
    if reserved:
        raise PreconditionFailed(
            f"Batch {ctx.entity.batch_number} has {reserved} finished goods units reserved on orders; "
            f"release those order lines before dumping"
        )


def stamp_brew_date(ctx: TransitionContext) -> None:
    if ctx.target == BatchStatus.BREWING and ctx.entity.brew_date is None:
        ctx.entity.brew_date = today()


def release_vessel_on_exit(ctx: TransitionContext) -> None:
    if ctx.target not in VESSEL_OCCUPYING_STATUSES:
        release_vessel(ctx.entity)


def compute_abv(ctx: TransitionContext) -> None:
    batch = ctx.entity
    if ctx.target != BatchStatus.READY_TO_PACKAGE:
        return
    if batch.actual_og is not None and batch.actual_fg is not None:
        batch.actual_abv = abv_from_gravity(batch.actual_og, batch.actual_fg)


def stamp_completed_at(ctx: TransitionContext) -> None:
    if ctx.target == BatchStatus.COMPLETED and ctx.entity.completed_at is None:
        ctx.entity.completed_at = utcnow()


def write_off_finished_goods(ctx: TransitionContext) -> None:
    """Dumped beer has no sellable stock left. Reserved stock was ruled out by the precondition."""
    if ctx.target != BatchStatus.DUMPED:
        return
    rows = db.session.query(FinishedGoods).filter(
        FinishedGoods.batch_id == ctx.entity.id,
        FinishedGoods.quantity_on_hand > 0,
    ).all()
    for fg in rows:
        current_app.logger.warning(
            "Writing off %s x %s of dumped batch %s", fg.quantity_on_hand, fg.format, ctx.entity.batch_number
        )
        fg.quantity_on_hand = 0


def consume_packaging_materials(ctx: TransitionContext) -> None:
    if ctx.target == BatchStatus.PACKAGED:
        packaging_service.consume_packaging_materials(ctx.entity.id, performed_by=ctx.performed_by)


register_handler(
    TransitionHandler(
        entity_type=BATCH,
        label="Batch",
        model=Batch,
        status_enum=BatchStatus,
        preconditions=[require_no_reserved_finished_goods],
        side_effects=[
            stamp_brew_date,
            release_vessel_on_exit,
            compute_abv,
            stamp_completed_at,
            write_off_finished_goods,
        ],
        post_commit=[consume_packaging_materials],
    )
)
