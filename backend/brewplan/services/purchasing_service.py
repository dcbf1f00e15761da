# Overview: Service-layer operations for purchase orders; lines, totals, status derivation, and PO transition rules.

from __future__ import annotations

from datetime import date
from typing import Optional

from flask import current_app

from ..errors import InvalidState, NotFound, PreconditionFailed
from ..extensions import db
from ..models import InventoryItem, PurchaseOrder, PurchaseOrderLine, Supplier
from ..time_utils import today
from ..validation import ValidationError, require_cents, require_positive_quantity
from . import document_service
from .concurrency import check_expected_version, commit_or_conflict, lock_for_update
from .ledger_service import QUANTITY_EPSILON
from .lifecycle_policy import PurchaseOrderStatus
from .lifecycle_service import PURCHASE_ORDER, TransitionContext, TransitionHandler, register_handler
from .order_service import compute_tax_cents, tax_rate_bps


def derive_purchase_order_status(po: PurchaseOrder) -> Optional[PurchaseOrderStatus]:
    """
    Status implied by line receipt state, recomputed from every line.

    - every line fully received          -> received
    - some receipt, not all lines full   -> partially_received
    - nothing received                   -> None (leave status alone)
    """
    lines = list(po.lines)
    if not lines:
        return None
    if all(line.quantity_received >= line.quantity_ordered - QUANTITY_EPSILON for line in lines):
        return PurchaseOrderStatus.RECEIVED
    if any(line.quantity_received > QUANTITY_EPSILON for line in lines):
        return PurchaseOrderStatus.PARTIALLY_RECEIVED
    return None


def recalculate_totals(po: PurchaseOrder) -> PurchaseOrder:
    for line in po.lines:
        line.line_total_cents = int(round(line.quantity_ordered * line.unit_cost_cents))
    po.subtotal_cents = sum(line.line_total_cents for line in po.lines)
    po.tax_cents = compute_tax_cents(po.subtotal_cents, tax_rate_bps())
    po.total_cents = po.subtotal_cents + po.tax_cents
    return po


def _get_po_for_update(po_id: int) -> PurchaseOrder:
    po = lock_for_update(db.session.query(PurchaseOrder).filter_by(id=po_id)).first()
    if po is None:
        raise NotFound("PurchaseOrder", po_id)
    return po


def _require_draft(po: PurchaseOrder) -> None:
    if po.status != PurchaseOrderStatus.DRAFT.value:
        raise InvalidState(f"Purchase order {po.po_number} is {po.status}; lines can only change while draft")


def create_purchase_order(
    supplier_id: int,
    *,
    expected_delivery_date: Optional[date] = None,
    notes: str | None = None,
) -> PurchaseOrder:
    try:
        if db.session.get(Supplier, supplier_id) is None:
            raise NotFound("Supplier", supplier_id)
        po = PurchaseOrder(
            po_number=document_service.next_document_number(
                document_type=document_service.PURCHASE_ORDER,
                prefix=current_app.config["PO_NUMBER_PREFIX"],
            ),
            supplier_id=supplier_id,
            status=PurchaseOrderStatus.DRAFT.value,
            expected_delivery_date=expected_delivery_date,
            notes=notes,
        )
        db.session.add(po)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return po


def add_line(
    po_id: int,
    *,
    inventory_item_id: int,
    quantity_ordered,
    unit_cost_cents: int | None = None,
    notes: str | None = None,
) -> PurchaseOrderLine:
    try:
        po = _get_po_for_update(po_id)
        _require_draft(po)
        item = db.session.get(InventoryItem, inventory_item_id)
        if item is None:
            raise NotFound("InventoryItem", inventory_item_id)
        if unit_cost_cents is None:
            unit_cost_cents = item.unit_cost_cents or 0

        line = PurchaseOrderLine(
            inventory_item_id=item.id,
            quantity_ordered=require_positive_quantity(quantity_ordered, field="quantity_ordered"),
            quantity_received=0.0,
            unit=item.unit,
            unit_cost_cents=require_cents(unit_cost_cents, field="unit_cost_cents"),
            notes=notes,
        )
        po.lines.append(line)
        recalculate_totals(po)
        commit_or_conflict(f"Purchase order {po_id}")
    except Exception:
        db.session.rollback()
        raise
    return line


def update_line(line_id: int, *, quantity_ordered=None, unit_cost_cents: int | None = None) -> PurchaseOrderLine:
    try:
        line = db.session.get(PurchaseOrderLine, line_id)
        if line is None:
            raise NotFound("PurchaseOrderLine", line_id)
        po = _get_po_for_update(line.purchase_order_id)
        _require_draft(po)
        if quantity_ordered is not None:
            qty = require_positive_quantity(quantity_ordered, field="quantity_ordered")
            if qty < line.quantity_received:
                raise ValidationError(
                    f"quantity_ordered cannot go below the {line.quantity_received:g} already received"
                )
            line.quantity_ordered = qty
        if unit_cost_cents is not None:
            line.unit_cost_cents = require_cents(unit_cost_cents, field="unit_cost_cents")
        recalculate_totals(po)
        commit_or_conflict(f"Purchase order {po.id}")
    except Exception:
        db.session.rollback()
        raise
    return line


def remove_line(line_id: int) -> PurchaseOrder:
    try:
        line = db.session.get(PurchaseOrderLine, line_id)
        if line is None:
            raise NotFound("PurchaseOrderLine", line_id)
        po = _get_po_for_update(line.purchase_order_id)
        _require_draft(po)
        po.lines.remove(line)
        db.session.flush()
        recalculate_totals(po)
        commit_or_conflict(f"Purchase order {po.id}")
    except Exception:
        db.session.rollback()
        raise
    return po


def update_purchase_order(
    po_id: int,
    *,
    expected_delivery_date: Optional[date] = None,
    notes: str | None = None,
    expected_version: int | None = None,
) -> PurchaseOrder:
    try:
        po = _get_po_for_update(po_id)
        check_expected_version(po, expected_version, f"Purchase order {po_id}")
        if expected_delivery_date is not None:
            po.expected_delivery_date = expected_delivery_date
        if notes is not None:
            po.notes = notes
        commit_or_conflict(f"Purchase order {po_id}")
    except Exception:
        db.session.rollback()
        raise
    return po


# =============================================================================
# Transition rules
# =============================================================================

def require_lines_to_send(ctx: TransitionContext) -> None:
    if ctx.target == PurchaseOrderStatus.SENT and not ctx.entity.lines:
        raise PreconditionFailed(f"Purchase order {ctx.entity.po_number} needs at least one line to send")


def require_fully_received(ctx: TransitionContext) -> None:
    if ctx.target != PurchaseOrderStatus.RECEIVED:
        return
    open_lines = [line for line in ctx.entity.lines if line.quantity_outstanding > QUANTITY_EPSILON]
    if open_lines or not ctx.entity.lines:
        raise PreconditionFailed(
            f"Purchase order {ctx.entity.po_number} has {len(open_lines)} line(s) not fully received"
        )


def stamp_order_date(ctx: TransitionContext) -> None:
    if ctx.target == PurchaseOrderStatus.SENT and ctx.entity.order_date is None:
        ctx.entity.order_date = today()


register_handler(
    TransitionHandler(
        entity_type=PURCHASE_ORDER,
        label="PurchaseOrder",
        model=PurchaseOrder,
        status_enum=PurchaseOrderStatus,
        preconditions=[require_lines_to_send, require_fully_received],
        side_effects=[stamp_order_date],
    )
)
