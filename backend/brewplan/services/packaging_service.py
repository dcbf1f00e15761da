# Overview: Service-layer operations for packaging; packaging runs, finished goods, and packaging material draw-down.

from __future__ import annotations

from datetime import date
from typing import Optional

from flask import current_app
from sqlalchemy import update

from ..errors import InvalidState, NotFound
from ..extensions import db
from ..models import Batch, FinishedGoods, PackageFormat, PackagingRun, RecipeIngredient, StockMovement, UsageStage
from ..time_utils import today, utcnow
from ..validation import parse_enum, require_positive_int, require_positive_quantity
from . import ledger_service
from .concurrency import lock_for_update
from .lifecycle_policy import BatchStatus


def record_packaging_run(
    batch_id: int,
    *,
    format,
    quantity_units,
    packaging_date: Optional[date] = None,
    volume_litres=None,
    best_before_date: Optional[date] = None,
    location: str | None = None,
    notes: str | None = None,
) -> tuple[PackagingRun, FinishedGoods]:
    """
    Package part (or all) of a batch into one format.

    Allowed while the batch is ready_to_package; a batch may have several runs
    (kegs and cans, say). Each run creates its own finished-goods row.
    """
    try:
        fmt = parse_enum(PackageFormat, format, field="format")
        units = require_positive_int(quantity_units, field="quantity_units")
        volume = None if volume_litres is None else require_positive_quantity(volume_litres, field="volume_litres")

        batch = lock_for_update(db.session.query(Batch).filter_by(id=batch_id)).first()
        if batch is None:
            raise NotFound("Batch", batch_id)
        if batch.status != BatchStatus.READY_TO_PACKAGE.value:
            raise InvalidState(
                f"Batch {batch.batch_number} is {batch.status}; packaging runs are recorded while ready_to_package"
            )

        run = PackagingRun(
            batch_id=batch.id,
            packaging_date=packaging_date or today(),
            format=fmt.value,
            quantity_units=units,
            volume_litres=volume,
            best_before_date=best_before_date,
            notes=notes,
        )
        db.session.add(run)
        db.session.flush()

        fg = FinishedGoods(
            packaging_run_id=run.id,
            batch_id=batch.id,
            recipe_id=batch.recipe_id,
            product_name=batch.recipe.name,
            format=fmt.value,
            quantity_on_hand=units,
            quantity_reserved=0,
            best_before_date=best_before_date,
            location=location,
        )
        db.session.add(fg)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Packaged %s x %s from batch %s", units, fmt.value, batch.batch_number)
    return run, fg


def consume_packaging_materials(batch_id: int, *, performed_by: str | None = None) -> list[StockMovement]:
    """
    Draw `package`-stage recipe materials (cans, kegs caps, labels...) for a packaged batch.

    Runs once the batch is packaged. Quantities scale by the batch's actual
    volume (planned size if no reading) over the recipe's reference size, and
    are drawn FIFO. Shortfalls are logged, never forced through: lots do not
    go negative. Idempotent per batch: the first call stamps
    packaging_materials_drawn_at with a conditional UPDATE (no version bump)
    and later calls find it set and draw nothing.
    """
    batch = db.session.get(Batch, batch_id)
    if batch is None:
        raise NotFound("Batch", batch_id)

    movements = []
    try:
        # Claim the draw; the marker stays set even when every line comes up short
        claimed = db.session.execute(
            update(Batch)
            .where(Batch.id == batch.id, Batch.packaging_materials_drawn_at.is_(None))
            .values(packaging_materials_drawn_at=utcnow())
            .execution_options(synchronize_session=False)
        ).rowcount
        if not claimed:
            db.session.rollback()
            return []

        ingredients = (
            db.session.query(RecipeIngredient)
            .filter_by(recipe_id=batch.recipe_id, usage_stage=UsageStage.PACKAGE.value)
            .order_by(RecipeIngredient.id)
            .all()
        )
        volume = batch.actual_volume_litres or batch.batch_size_litres
        scale = volume / batch.recipe.batch_size_litres

        for ingredient in ingredients:
            needed = ingredient.quantity * scale
            drawn, shortfall = ledger_service.consume_fifo(
                item_id=ingredient.inventory_item_id,
                quantity=needed,
                reference_type=ledger_service.REF_PACKAGING,
                reference_id=batch.id,
                reason=f"Packaging {batch.batch_number}",
                performed_by=performed_by,
            )
            movements.extend(drawn)
            if shortfall:
                current_app.logger.warning(
                    "Packaging %s: short %g %s of %s",
                    batch.batch_number,
                    shortfall,
                    ingredient.unit,
                    ingredient.inventory_item.name,
                )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return movements
