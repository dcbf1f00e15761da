# Overview: Service-layer read model for stock positions; on-hand, allocated, available and projected quantities.

"""
BrewPlan Quantity Ledger

================================================================================
PURPOSE: Answer "how much do we have, how much is promised, how much is free"
================================================================================

RAW MATERIALS (per inventory item):

    on_hand            SUM(stock_movements.quantity) over lots that are not
                       expired as of the read date. Read from the ledger, not
                       the cached lot column.
    requirement(b)     SUM(recipe ingredient qty) * b.batch_size / recipe size,
                       minus what batch b already consumed (never below 0)
    allocated          SUM requirement(b) for brewing batches, plus planned
                       batches dated within ALLOCATION_HORIZON_DAYS (or undated)
    future_consumption SUM requirement(b) for planned batches beyond the horizon
    on_order           SUM(ordered - received) on lines of open POs
                       (sent, acknowledged, partially_received)
    available          on_hand - allocated          (negative is surfaced)
    projected          available + on_order - future_consumption

FINISHED GOODS (per recipe + format):

    on_hand            SUM(finished_goods.quantity_on_hand)
    reserved           SUM(order_lines.quantity) for lines assigned to those rows
                       whose order is draft, confirmed, picking or dispatched
    available          on_hand - reserved           (negative = over-allocated)

RULES:
1. Everything here is a pure read. No writes except recompute_reservations(),
   which only refreshes a cached column from its definition.
2. Nothing is cached across calls; every call re-reads the database.
3. Unreceived PO quantity is incoming stock, never allocation.
================================================================================
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, asdict
from datetime import date, timedelta
from typing import Iterable, Optional

from flask import current_app
from sqlalchemy import func

from ..errors import NotFound
from ..extensions import db
from ..models import (
    Batch,
    FinishedGoods,
    InventoryItem,
    InventoryLot,
    MovementType,
    Order,
    OrderLine,
    PurchaseOrder,
    PurchaseOrderLine,
    Recipe,
    RecipeIngredient,
    StockMovement,
)
from ..time_utils import today
from .ledger_service import REF_BREW_BATCH, REF_PACKAGING, QUANTITY_EPSILON
from .lifecycle_policy import (
    BatchStatus,
    OPEN_PURCHASE_ORDER_STATUSES,
    RESERVING_ORDER_STATUSES,
)


@dataclass(frozen=True)
class InventoryPosition:
    item_id: int
    item_name: str
    unit: str
    on_hand: float
    allocated: float
    available: float
    on_order: float
    future_consumption: float
    projected: float
    reorder_point: Optional[float]
    below_reorder_point: bool

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class FinishedGoodsPosition:
    recipe_id: int
    product_name: str
    format: str
    on_hand: int
    reserved: int
    available: int
    over_allocated: bool

    def to_dict(self) -> dict:
        return asdict(self)


def allocation_horizon_days() -> int:
    return int(current_app.config.get("ALLOCATION_HORIZON_DAYS", 14))


# =============================================================================
# Raw materials
# =============================================================================

def _on_hand_by_item(as_of: date, item_ids: Iterable[int] | None = None) -> dict[int, float]:
    query = (
        db.session.query(
            InventoryLot.inventory_item_id,
            func.coalesce(func.sum(StockMovement.quantity), 0.0),
        )
        .join(StockMovement, StockMovement.inventory_lot_id == InventoryLot.id)
        .filter(db.or_(InventoryLot.expiry_date.is_(None), InventoryLot.expiry_date > as_of))
        .group_by(InventoryLot.inventory_item_id)
    )
    if item_ids is not None:
        query = query.filter(InventoryLot.inventory_item_id.in_(list(item_ids)))
    return {item_id: float(total) for item_id, total in query.all()}


def _on_order_by_item(item_ids: Iterable[int] | None = None) -> dict[int, float]:
    query = (
        db.session.query(
            PurchaseOrderLine.inventory_item_id,
            func.coalesce(
                func.sum(PurchaseOrderLine.quantity_ordered - PurchaseOrderLine.quantity_received),
                0.0,
            ),
        )
        .join(PurchaseOrder, PurchaseOrder.id == PurchaseOrderLine.purchase_order_id)
        .filter(PurchaseOrder.status.in_([s.value for s in OPEN_PURCHASE_ORDER_STATUSES]))
        .group_by(PurchaseOrderLine.inventory_item_id)
    )
    if item_ids is not None:
        query = query.filter(PurchaseOrderLine.inventory_item_id.in_(list(item_ids)))
    return {item_id: float(total) for item_id, total in query.all()}


def _consumed_by_batch_item(batch_ids: list[int]) -> dict[tuple[int, int], float]:
    """Quantity already drawn by each batch, per item (positive numbers)."""
    if not batch_ids:
        return {}
    rows = (
        db.session.query(
            StockMovement.reference_id,
            InventoryLot.inventory_item_id,
            func.sum(StockMovement.quantity),
        )
        .join(InventoryLot, InventoryLot.id == StockMovement.inventory_lot_id)
        .filter(
            StockMovement.movement_type == MovementType.CONSUMED.value,
            StockMovement.reference_type.in_([REF_BREW_BATCH, REF_PACKAGING]),
            StockMovement.reference_id.in_(batch_ids),
        )
        .group_by(StockMovement.reference_id, InventoryLot.inventory_item_id)
        .all()
    )
    return {(batch_id, item_id): -float(total) for batch_id, item_id, total in rows}


def batch_requirements(
    statuses: Iterable[BatchStatus],
    *,
    item_ids: Iterable[int] | None = None,
) -> list[tuple[Batch, int, float]]:
    """
    Outstanding material requirement per (batch, item).

    Returns (batch, item_id, quantity) with quantity already net of what the
    batch has consumed. Rows that are fully consumed are dropped.
    """
    query = (
        db.session.query(Batch, RecipeIngredient.inventory_item_id, func.sum(RecipeIngredient.quantity))
        .join(Recipe, Recipe.id == Batch.recipe_id)
        .join(RecipeIngredient, RecipeIngredient.recipe_id == Recipe.id)
        .filter(Batch.status.in_([s.value for s in statuses]))
        .group_by(Batch.id, RecipeIngredient.inventory_item_id)
    )
    if item_ids is not None:
        query = query.filter(RecipeIngredient.inventory_item_id.in_(list(item_ids)))
    rows = query.all()

    consumed = _consumed_by_batch_item(sorted({batch.id for batch, _, _ in rows}))
    result = []
    for batch, item_id, recipe_qty in rows:
        scale = batch.batch_size_litres / batch.recipe.batch_size_litres
        outstanding = float(recipe_qty) * scale - consumed.get((batch.id, item_id), 0.0)
        if outstanding > QUANTITY_EPSILON:
            result.append((batch, item_id, outstanding))
    return result


def _requirements_by_item(
    as_of: date,
    item_ids: Iterable[int] | None = None,
) -> tuple[dict[int, float], dict[int, float]]:
    """(allocated, future_consumption) per item, split at the allocation horizon."""
    horizon = as_of + timedelta(days=allocation_horizon_days())
    allocated: dict[int, float] = defaultdict(float)
    future: dict[int, float] = defaultdict(float)

    rows = batch_requirements((BatchStatus.PLANNED, BatchStatus.BREWING), item_ids=item_ids)
    for batch, item_id, qty in rows:
        beyond_horizon = (
            batch.status == BatchStatus.PLANNED.value
            and batch.planned_date is not None
            and batch.planned_date > horizon
        )
        if beyond_horizon:
            future[item_id] += qty
        else:
            allocated[item_id] += qty
    return allocated, future


def _build_position(
    item: InventoryItem,
    on_hand: float,
    allocated: float,
    on_order: float,
    future: float,
) -> InventoryPosition:
    available = on_hand - allocated
    projected = available + on_order - future
    below = item.reorder_point is not None and available <= item.reorder_point
    return InventoryPosition(
        item_id=item.id,
        item_name=item.name,
        unit=item.unit,
        on_hand=on_hand,
        allocated=allocated,
        available=available,
        on_order=on_order,
        future_consumption=future,
        projected=projected,
        reorder_point=item.reorder_point,
        below_reorder_point=below,
    )


def position_for_item(item_id: int, *, as_of: Optional[date] = None) -> InventoryPosition:
    item = db.session.get(InventoryItem, item_id)
    if item is None:
        raise NotFound("InventoryItem", item_id)
    as_of = as_of or today()

    on_hand = _on_hand_by_item(as_of, [item_id]).get(item_id, 0.0)
    on_order = _on_order_by_item([item_id]).get(item_id, 0.0)
    allocated, future = _requirements_by_item(as_of, [item_id])
    return _build_position(item, on_hand, allocated.get(item_id, 0.0), on_order, future.get(item_id, 0.0))


def position_for_all(*, as_of: Optional[date] = None, include_archived: bool = False) -> list[InventoryPosition]:
    """Positions for every item, ordered by name. One grouped query per component."""
    as_of = as_of or today()
    query = db.session.query(InventoryItem)
    if not include_archived:
        query = query.filter(InventoryItem.is_archived.is_(False))
    items = query.order_by(InventoryItem.name.asc()).all()

    on_hand = _on_hand_by_item(as_of)
    on_order = _on_order_by_item()
    allocated, future = _requirements_by_item(as_of)
    return [
        _build_position(
            item,
            on_hand.get(item.id, 0.0),
            allocated.get(item.id, 0.0),
            on_order.get(item.id, 0.0),
            future.get(item.id, 0.0),
        )
        for item in items
    ]


# =============================================================================
# Finished goods
# =============================================================================

def reserved_by_finished_goods(fg_ids: Iterable[int] | None = None) -> dict[int, int]:
    """Reservation per finished-goods row, derived from order lines."""
    query = (
        db.session.query(OrderLine.finished_goods_id, func.coalesce(func.sum(OrderLine.quantity), 0))
        .join(Order, Order.id == OrderLine.order_id)
        .filter(
            OrderLine.finished_goods_id.isnot(None),
            Order.status.in_([s.value for s in RESERVING_ORDER_STATUSES]),
        )
        .group_by(OrderLine.finished_goods_id)
    )
    if fg_ids is not None:
        query = query.filter(OrderLine.finished_goods_id.in_(list(fg_ids)))
    return {fg_id: int(total) for fg_id, total in query.all()}


def recompute_reservations(fg_ids: Iterable[int]) -> None:
    """
    Refresh FinishedGoods.quantity_reserved from the order lines.

    In-transaction helper: flushes, never commits. Called whenever a line
    assignment or an order status changes.
    """
    fg_ids = sorted({fg_id for fg_id in fg_ids if fg_id is not None})
    if not fg_ids:
        return
    db.session.flush()
    reserved = reserved_by_finished_goods(fg_ids)
    for fg in db.session.query(FinishedGoods).filter(FinishedGoods.id.in_(fg_ids)).all():
        value = reserved.get(fg.id, 0)
        if fg.quantity_reserved != value:
            fg.quantity_reserved = value
    db.session.flush()


def finished_goods_positions(
    *,
    recipe_id: int | None = None,
    format: str | None = None,
) -> list[FinishedGoodsPosition]:
    query = db.session.query(FinishedGoods)
    if recipe_id is not None:
        query = query.filter(FinishedGoods.recipe_id == recipe_id)
    if format is not None:
        query = query.filter(FinishedGoods.format == format)
    rows = query.order_by(FinishedGoods.recipe_id, FinishedGoods.format, FinishedGoods.id).all()
    reserved = reserved_by_finished_goods([fg.id for fg in rows])

    grouped: dict[tuple[int, str], dict] = {}
    for fg in rows:
        key = (fg.recipe_id, fg.format)
        agg = grouped.setdefault(key, {"product_name": fg.product_name, "on_hand": 0, "reserved": 0})
        agg["on_hand"] += fg.quantity_on_hand or 0
        agg["reserved"] += reserved.get(fg.id, 0)

    positions = []
    for (rid, fmt), agg in grouped.items():
        available = agg["on_hand"] - agg["reserved"]
        positions.append(
            FinishedGoodsPosition(
                recipe_id=rid,
                product_name=agg["product_name"],
                format=fmt,
                on_hand=agg["on_hand"],
                reserved=agg["reserved"],
                available=available,
                over_allocated=available < 0,
            )
        )
    return positions


def finished_goods_position(recipe_id: int, format: str) -> FinishedGoodsPosition:
    """Position for one (recipe, format). Zero stock is a zero position, not an error."""
    positions = finished_goods_positions(recipe_id=recipe_id, format=format)
    if positions:
        return positions[0]
    recipe = db.session.get(Recipe, recipe_id)
    return FinishedGoodsPosition(
        recipe_id=recipe_id,
        product_name=recipe.name if recipe else "",
        format=format,
        on_hand=0,
        reserved=0,
        available=0,
        over_allocated=False,
    )
