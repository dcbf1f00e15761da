# Overview: Service-layer operations for the stock movement ledger; the single writer of lot quantities.

from __future__ import annotations

from datetime import date
from typing import Optional

from flask import current_app
from sqlalchemy import func

from ..errors import NotFound, PreconditionFailed
from ..extensions import db
from ..models import InventoryItem, InventoryLot, StockMovement, MovementType
from ..time_utils import today
from ..validation import ValidationError, parse_enum, require_text
from .concurrency import lock_for_update, commit_or_conflict
"""
BrewPlan Stock Ledger Invariants (authoritative)

- stock_movements is append-only. No updates, no deletes. Corrections are
  new `adjusted` rows.
- Movement sign is fixed by type: received/returned add, consumed/written_off
  remove, adjusted/transferred may go either way (never zero).
- inventory_lots.quantity_on_hand is a cached projection of
  SUM(stock_movements.quantity) for the lot. It is recomputed from the ledger
  after every append and is never assigned anywhere else.
- A lot's running balance never goes below zero. An append that would do so
  fails with PreconditionFailed and the caller's transaction is rolled back.
- Helpers in this module flush but do not commit: they run inside the
  caller's transaction. Only the record_* entry points commit.
"""

# Float quantities: anything within this of zero is zero
QUANTITY_EPSILON = 1e-9

# StockMovement.reference_type values
REF_PURCHASE_ORDER = "purchase_order"
REF_BREW_BATCH = "brew_batch"
REF_PACKAGING = "packaging"

POSITIVE_TYPES = frozenset({MovementType.RECEIVED, MovementType.RETURNED})
NEGATIVE_TYPES = frozenset({MovementType.CONSUMED, MovementType.WRITTEN_OFF})


def validate_movement_sign(movement_type: MovementType, quantity: float) -> None:
    if abs(quantity) <= QUANTITY_EPSILON:
        raise ValidationError("Movement quantity cannot be zero")
    if movement_type in POSITIVE_TYPES and quantity < 0:
        raise ValidationError(f"{movement_type.value} movements must be positive")
    if movement_type in NEGATIVE_TYPES and quantity > 0:
        raise ValidationError(f"{movement_type.value} movements must be negative")


def lot_balance(lot_id: int) -> float:
    """SUM of all movements for the lot, straight from the ledger."""
    total = (
        db.session.query(func.coalesce(func.sum(StockMovement.quantity), 0.0))
        .filter(StockMovement.inventory_lot_id == lot_id)
        .scalar()
    )
    return float(total or 0.0)


def recompute_lot_on_hand(lot: InventoryLot) -> float:
    balance = lot_balance(lot.id)
    if balance < -QUANTITY_EPSILON:
        raise PreconditionFailed(
            f"Lot {lot.lot_number} would go negative ({balance:g} {lot.inventory_item.unit})"
        )
    # Snap float noise so a fully consumed lot reads exactly zero
    if abs(balance) <= QUANTITY_EPSILON:
        balance = 0.0
    lot.quantity_on_hand = balance
    return balance


def append_movement(
    *,
    lot: InventoryLot,
    movement_type: MovementType | str,
    quantity: float,
    reference_type: str | None = None,
    reference_id: int | None = None,
    reason: str | None = None,
    performed_by: str | None = None,
) -> StockMovement:
    """
    Append one movement and refresh the lot's cached on-hand.

    In-transaction helper: flushes, never commits.
    """
    movement_type = parse_enum(MovementType, movement_type, field="movement_type")
    validate_movement_sign(movement_type, quantity)

    movement = StockMovement(
        inventory_lot_id=lot.id,
        movement_type=movement_type.value,
        quantity=quantity,
        reference_type=reference_type,
        reference_id=reference_id,
        reason=reason,
        performed_by=performed_by,
    )
    db.session.add(movement)
    db.session.flush()

    recompute_lot_on_hand(lot)
    db.session.flush()
    return movement


def create_lot(
    *,
    item: InventoryItem,
    quantity: float,
    lot_number: str,
    unit_cost_cents: int | None = None,
    received_date: Optional[date] = None,
    expiry_date: Optional[date] = None,
    purchase_order_id: int | None = None,
    location: str | None = None,
    notes: str | None = None,
    reference_type: str | None = None,
    reference_id: int | None = None,
    reason: str | None = None,
    performed_by: str | None = None,
) -> tuple[InventoryLot, StockMovement]:
    """
    Create a lot and its opening `received` movement.

    The lot starts at zero and reaches `quantity` through the ledger, like
    every other quantity change.
    """
    lot = InventoryLot(
        inventory_item_id=item.id,
        lot_number=lot_number,
        quantity_on_hand=0.0,
        unit_cost_cents=unit_cost_cents if unit_cost_cents is not None else item.unit_cost_cents,
        received_date=received_date or today(),
        expiry_date=expiry_date,
        purchase_order_id=purchase_order_id,
        location=location,
        notes=notes,
    )
    db.session.add(lot)
    db.session.flush()

    movement = append_movement(
        lot=lot,
        movement_type=MovementType.RECEIVED,
        quantity=quantity,
        reference_type=reference_type,
        reference_id=reference_id,
        reason=reason,
        performed_by=performed_by,
    )
    return lot, movement


def consumable_lots(item_id: int, *, as_of: Optional[date] = None) -> list[InventoryLot]:
    """Non-expired lots with stock, oldest first (FIFO order)."""
    as_of = as_of or today()
    query = (
        db.session.query(InventoryLot)
        .filter(
            InventoryLot.inventory_item_id == item_id,
            InventoryLot.quantity_on_hand > QUANTITY_EPSILON,
            db.or_(InventoryLot.expiry_date.is_(None), InventoryLot.expiry_date > as_of),
        )
        .order_by(InventoryLot.received_date.asc(), InventoryLot.id.asc())
    )
    return lock_for_update(query).all()


def consume_fifo(
    *,
    item_id: int,
    quantity: float,
    reference_type: str,
    reference_id: int,
    reason: str | None = None,
    performed_by: str | None = None,
    as_of: Optional[date] = None,
) -> tuple[list[StockMovement], float]:
    """
    Consume `quantity` of an item across lots, oldest first.

    Returns (movements, shortfall). Shortfall is whatever could not be drawn
    from available lots; no lot is ever driven negative to cover it.
    In-transaction helper: flushes, never commits.
    """
    remaining = quantity
    movements = []
    for lot in consumable_lots(item_id, as_of=as_of):
        if remaining <= QUANTITY_EPSILON:
            break
        take = min(lot.quantity_on_hand, remaining)
        movements.append(
            append_movement(
                lot=lot,
                movement_type=MovementType.CONSUMED,
                quantity=-take,
                reference_type=reference_type,
                reference_id=reference_id,
                reason=reason,
                performed_by=performed_by,
            )
        )
        remaining -= take
    shortfall = remaining if remaining > QUANTITY_EPSILON else 0.0
    return movements, shortfall


def record_movement(
    lot_id: int,
    *,
    movement_type: MovementType | str,
    quantity: float,
    reason: str | None = None,
    reference_type: str | None = None,
    reference_id: int | None = None,
    performed_by: str | None = None,
) -> StockMovement:
    """
    Public entry point: append one movement to a lot and commit.

    Used for manual adjustments, transfers, returns and write-offs.
    Nothing is written if the lot would go negative.
    """
    try:
        lot = lock_for_update(db.session.query(InventoryLot).filter_by(id=lot_id)).first()
        if lot is None:
            raise NotFound("InventoryLot", lot_id)
        movement_type = parse_enum(MovementType, movement_type, field="movement_type")
        if movement_type in (MovementType.ADJUSTED, MovementType.WRITTEN_OFF):
            reason = require_text(reason, field="reason", max_length=2000)

        movement = append_movement(
            lot=lot,
            movement_type=movement_type,
            quantity=quantity,
            reference_type=reference_type,
            reference_id=reference_id,
            reason=reason,
            performed_by=performed_by,
        )
        commit_or_conflict(f"Lot {lot_id}")
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Recorded %s movement of %g on lot %s", movement.movement_type, movement.quantity, lot_id
    )
    return movement


def list_movements(*, lot_id: int | None = None, item_id: int | None = None, limit: int = 200) -> list[StockMovement]:
    query = db.session.query(StockMovement)
    if lot_id is not None:
        query = query.filter(StockMovement.inventory_lot_id == lot_id)
    if item_id is not None:
        query = query.join(InventoryLot).filter(InventoryLot.inventory_item_id == item_id)
    return query.order_by(StockMovement.id.desc()).limit(limit).all()
