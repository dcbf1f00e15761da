# Overview: Service-layer operations for customer orders; lines, totals, picking, and order transition rules.

"""
BrewPlan Orders

LINES: editable only while the order is draft. Every line change recomputes
subtotal/tax/total in the same transaction.

PICKING: while confirmed or picking, each line is linked to a finished-goods
row of the same recipe and format. A link is refused if it would leave that
row's available quantity below zero.

RESERVATIONS: an assigned line reserves its quantity while the order is
draft, confirmed, picking or dispatched. FinishedGoods.quantity_reserved is
recomputed from the lines on every assignment and every order status change,
so cancelling releases exactly the cancelled line quantities.

DELIVERY: stock physically leaves on `delivered`; on-hand drops by the line
quantities and the reservation falls away with the status change.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Optional

from flask import current_app

from ..errors import InvalidState, NotFound, PreconditionFailed
from ..extensions import db
from ..models import Customer, FinishedGoods, Order, OrderLine, PackageFormat, Recipe
from ..time_utils import today, utcnow
from ..validation import parse_enum, require_cents, require_positive_int
from . import document_service
from .concurrency import check_expected_version, commit_or_conflict, lock_for_update
from .inventory_service import recompute_reservations, reserved_by_finished_goods
from .lifecycle_policy import OrderStatus
from .lifecycle_service import ORDER, TransitionContext, TransitionHandler, register_handler


PICKING_STATUSES = frozenset({OrderStatus.CONFIRMED, OrderStatus.PICKING})


def tax_rate_bps() -> int:
    return int(current_app.config.get("TAX_RATE_BPS", 0))


def compute_tax_cents(subtotal_cents: int, rate_bps: int) -> int:
    # Round half up on whole cents
    return (subtotal_cents * rate_bps + 5000) // 10000


def recalculate_totals(order: Order) -> Order:
    """In-transaction helper: subtotal = sum of lines, tax from TAX_RATE_BPS, total = both."""
    for line in order.lines:
        line.line_total_cents = line.quantity * line.unit_price_cents
    subtotal = sum(line.line_total_cents for line in order.lines)
    order.subtotal_cents = subtotal
    order.tax_cents = compute_tax_cents(subtotal, tax_rate_bps())
    order.total_cents = order.subtotal_cents + order.tax_cents
    return order


def _get_order_for_update(order_id: int) -> Order:
    order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
    if order is None:
        raise NotFound("Order", order_id)
    return order


def _get_line(line_id: int) -> OrderLine:
    line = db.session.get(OrderLine, line_id)
    if line is None:
        raise NotFound("OrderLine", line_id)
    return line


def _require_draft(order: Order) -> None:
    if order.status != OrderStatus.DRAFT.value:
        raise InvalidState(f"Order {order.order_number} is {order.status}; lines can only change while draft")


def create_order(
    customer_id: int,
    *,
    order_date: Optional[date] = None,
    delivery_date: Optional[date] = None,
    channel: str = "wholesale",
    notes: str | None = None,
) -> Order:
    try:
        if db.session.get(Customer, customer_id) is None:
            raise NotFound("Customer", customer_id)
        order = Order(
            order_number=document_service.next_document_number(
                document_type=document_service.ORDER,
                prefix=current_app.config["ORDER_NUMBER_PREFIX"],
            ),
            customer_id=customer_id,
            status=OrderStatus.DRAFT.value,
            channel=channel,
            order_date=order_date or today(),
            delivery_date=delivery_date,
            notes=notes,
        )
        db.session.add(order)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return order


def add_line(
    order_id: int,
    *,
    recipe_id: int,
    format,
    quantity,
    unit_price_cents: int = 0,
    description: str | None = None,
) -> OrderLine:
    try:
        order = _get_order_for_update(order_id)
        _require_draft(order)
        recipe = db.session.get(Recipe, recipe_id)
        if recipe is None:
            raise NotFound("Recipe", recipe_id)
        fmt = parse_enum(PackageFormat, format, field="format")

        line = OrderLine(
            recipe_id=recipe.id,
            format=fmt.value,
            description=description or f"{recipe.name} ({fmt.value})",
            quantity=require_positive_int(quantity),
            unit_price_cents=require_cents(unit_price_cents, field="unit_price_cents"),
        )
        order.lines.append(line)
        recalculate_totals(order)
        commit_or_conflict(f"Order {order_id}")
    except Exception:
        db.session.rollback()
        raise
    return line


def update_line(
    line_id: int,
    *,
    quantity=None,
    unit_price_cents: int | None = None,
    description: str | None = None,
) -> OrderLine:
    try:
        line = _get_line(line_id)
        order = _get_order_for_update(line.order_id)
        _require_draft(order)
        if quantity is not None:
            line.quantity = require_positive_int(quantity)
        if unit_price_cents is not None:
            line.unit_price_cents = require_cents(unit_price_cents, field="unit_price_cents")
        if description is not None:
            line.description = description
        recalculate_totals(order)
        recompute_reservations([line.finished_goods_id])
        commit_or_conflict(f"Order {order.id}")
    except Exception:
        db.session.rollback()
        raise
    return line


def remove_line(line_id: int) -> Order:
    try:
        line = _get_line(line_id)
        order = _get_order_for_update(line.order_id)
        _require_draft(order)
        fg_id = line.finished_goods_id
        order.lines.remove(line)
        db.session.flush()
        recalculate_totals(order)
        recompute_reservations([fg_id])
        commit_or_conflict(f"Order {order.id}")
    except Exception:
        db.session.rollback()
        raise
    return order


def assign_finished_goods(line_id: int, finished_goods_id: int) -> OrderLine:
    """
    Link a line to the stock it will ship from.

    The row must match the line's recipe and format, and its available
    quantity (on hand minus every other reservation) must cover the line.
    """
    try:
        line = _get_line(line_id)
        order = _get_order_for_update(line.order_id)
        if OrderStatus(order.status) not in PICKING_STATUSES:
            raise InvalidState(
                f"Order {order.order_number} is {order.status}; stock is assigned while confirmed or picking"
            )
        fg = lock_for_update(db.session.query(FinishedGoods).filter_by(id=finished_goods_id)).first()
        if fg is None:
            raise NotFound("FinishedGoods", finished_goods_id)
        if fg.recipe_id != line.recipe_id or fg.format != line.format:
            raise PreconditionFailed(
                f"Finished goods {fg.id} is {fg.product_name} {fg.format}; line needs recipe "
                f"{line.recipe_id} {line.format}"
            )

        previous_fg_id = line.finished_goods_id
        if previous_fg_id != fg.id:
            reserved_elsewhere = reserved_by_finished_goods([fg.id]).get(fg.id, 0)
            available_after = fg.quantity_on_hand - reserved_elsewhere - line.quantity
            if available_after < 0:
                raise PreconditionFailed(
                    f"Insufficient stock for {line.description}: need {line.quantity}, "
                    f"available {fg.quantity_on_hand - reserved_elsewhere}"
                )
            line.finished_goods_id = fg.id
            recompute_reservations([previous_fg_id, fg.id])
        commit_or_conflict(f"Order {order.id}")
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Order %s line %s picked from finished goods %s", order.order_number, line.id, fg.id)
    return line


def unassign_finished_goods(line_id: int) -> OrderLine:
    try:
        line = _get_line(line_id)
        order = _get_order_for_update(line.order_id)
        if OrderStatus(order.status) not in PICKING_STATUSES:
            raise InvalidState(f"Order {order.order_number} is {order.status}; picking is closed")
        fg_id = line.finished_goods_id
        line.finished_goods_id = None
        recompute_reservations([fg_id])
        commit_or_conflict(f"Order {order.id}")
    except Exception:
        db.session.rollback()
        raise
    return line


def update_order(
    order_id: int,
    *,
    delivery_date: Optional[date] = None,
    notes: str | None = None,
    expected_version: int | None = None,
) -> Order:
    try:
        order = _get_order_for_update(order_id)
        check_expected_version(order, expected_version, f"Order {order_id}")
        if delivery_date is not None:
            order.delivery_date = delivery_date
        if notes is not None:
            order.notes = notes
        commit_or_conflict(f"Order {order_id}")
    except Exception:
        db.session.rollback()
        raise
    return order


# =============================================================================
# Transition rules
# =============================================================================

def require_lines_to_confirm(ctx: TransitionContext) -> None:
    if ctx.target == OrderStatus.CONFIRMED and not ctx.entity.lines:
        raise PreconditionFailed(f"Order {ctx.entity.order_number} needs at least one line to confirm")


def require_all_lines_picked(ctx: TransitionContext) -> None:
    if ctx.target != OrderStatus.DISPATCHED:
        return
    missing = [line for line in ctx.entity.lines if line.finished_goods_id is None]
    if missing:
        raise PreconditionFailed(
            f"Order {ctx.entity.order_number} has {len(missing)} line(s) without assigned stock"
        )


def _delivery_quantities(order: Order) -> dict[int, int]:
    per_fg: dict[int, int] = defaultdict(int)
    for line in order.lines:
        if line.finished_goods_id is not None:
            per_fg[line.finished_goods_id] += line.quantity
    return per_fg


def require_stock_for_delivery(ctx: TransitionContext) -> None:
    if ctx.target != OrderStatus.DELIVERED:
        return
    for fg_id, qty in _delivery_quantities(ctx.entity).items():
        fg = lock_for_update(db.session.query(FinishedGoods).filter_by(id=fg_id)).first()
        if fg is None or fg.quantity_on_hand < qty:
            on_hand = fg.quantity_on_hand if fg is not None else 0
            raise PreconditionFailed(
                f"Finished goods {fg_id} has {on_hand} on hand; order {ctx.entity.order_number} delivers {qty}"
            )


def ship_finished_goods(ctx: TransitionContext) -> None:
    if ctx.target != OrderStatus.DELIVERED:
        return
    for fg_id, qty in _delivery_quantities(ctx.entity).items():
        fg = db.session.get(FinishedGoods, fg_id)
        fg.quantity_on_hand -= qty


def refresh_reservations(ctx: TransitionContext) -> None:
    recompute_reservations(line.finished_goods_id for line in ctx.entity.lines)


def assign_invoice_number(ctx: TransitionContext) -> None:
    order = ctx.entity
    if ctx.target != OrderStatus.INVOICED or order.invoice_number:
        return
    order.invoice_number = document_service.next_document_number(
        document_type=document_service.INVOICE,
        prefix=current_app.config["INVOICE_NUMBER_PREFIX"],
    )
    order.invoiced_at = utcnow()


def stamp_paid_at(ctx: TransitionContext) -> None:
    if ctx.target == OrderStatus.PAID and ctx.entity.paid_at is None:
        ctx.entity.paid_at = utcnow()


register_handler(
    TransitionHandler(
        entity_type=ORDER,
        label="Order",
        model=Order,
        status_enum=OrderStatus,
        preconditions=[require_lines_to_confirm, require_all_lines_picked, require_stock_for_delivery],
        side_effects=[ship_finished_goods, refresh_reservations, assign_invoice_number, stamp_paid_at],
    )
)
