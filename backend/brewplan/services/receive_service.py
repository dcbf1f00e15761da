# Overview: Service-layer operations for receiving stock against purchase order lines.

"""
BrewPlan Receiving Reconciler

================================================================================
PURPOSE: Turn a delivery against a PO line into stock, and keep PO status honest
================================================================================

receive_line(line_id, quantity_received, lot_number, location?, notes?)

PRECONDITIONS:
- line exists                                           else NotFound
- PO status in {sent, acknowledged, partially_received} else InvalidState
- quantity_received > 0, lot_number given               else ValidationError
- line.received + quantity_received <= line.ordered     else OverReceipt
  (never clamped)

EFFECTS (one transaction):
1. New lot for the line's item: qty, line unit cost, today, lot/location/notes
2. `received` stock movement on that lot, referencing the PO
3. line.quantity_received += quantity_received
4. PO status recomputed in full from every line and, if it changed, applied
   through the transition engine as source=reconciler (the only caller
   allowed to request partially_received)

Any failure rolls everything back; quantities are unchanged.
================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from flask import current_app

from ..errors import InvalidState, NotFound, OverReceipt
from ..extensions import db
from ..models import InventoryLot, PurchaseOrder, PurchaseOrderLine, StockMovement
from ..time_utils import today
from ..validation import require_positive_quantity, require_text
from . import ledger_service, lifecycle_service
from .concurrency import commit_or_conflict, lock_for_update
from .ledger_service import QUANTITY_EPSILON
from .lifecycle_policy import OPEN_PURCHASE_ORDER_STATUSES, PurchaseOrderStatus, SOURCE_RECONCILER
from .purchasing_service import derive_purchase_order_status


@dataclass(frozen=True)
class ReceiptResult:
    lot: InventoryLot
    movement: StockMovement
    line: PurchaseOrderLine
    purchase_order_status: str

    def to_dict(self) -> dict:
        return {
            "lot": self.lot.to_dict(),
            "movement": self.movement.to_dict(),
            "line": self.line.to_dict(),
            "purchase_order_status": self.purchase_order_status,
        }


def receive_line(
    line_id: int,
    quantity_received,
    lot_number: str,
    location: str | None = None,
    notes: str | None = None,
    *,
    expiry_date: Optional[date] = None,
    performed_by: str | None = None,
) -> ReceiptResult:
    try:
        line = lock_for_update(db.session.query(PurchaseOrderLine).filter_by(id=line_id)).first()
        if line is None:
            raise NotFound("PurchaseOrderLine", line_id)
        po = lock_for_update(db.session.query(PurchaseOrder).filter_by(id=line.purchase_order_id)).first()

        if PurchaseOrderStatus(po.status) not in OPEN_PURCHASE_ORDER_STATUSES:
            raise InvalidState(
                f"Purchase order {po.po_number} is {po.status}; receive against sent, acknowledged "
                f"or partially received orders"
            )
        qty = require_positive_quantity(quantity_received, field="quantity_received")
        lot_number = require_text(lot_number, field="lot_number", max_length=64)

        remaining = line.quantity_ordered - line.quantity_received
        if qty > remaining + QUANTITY_EPSILON:
            raise OverReceipt(line.id, qty, max(remaining, 0.0))

        lot, movement = ledger_service.create_lot(
            item=line.inventory_item,
            quantity=qty,
            lot_number=lot_number,
            unit_cost_cents=line.unit_cost_cents,
            received_date=today(),
            expiry_date=expiry_date,
            purchase_order_id=po.id,
            location=location,
            notes=notes,
            reference_type=ledger_service.REF_PURCHASE_ORDER,
            reference_id=po.id,
            reason=f"Received against {po.po_number}",
            performed_by=performed_by,
        )

        # Snap float noise to the ordered quantity
        new_received = line.quantity_received + qty
        line.quantity_received = line.quantity_ordered if abs(new_received - line.quantity_ordered) <= QUANTITY_EPSILON else new_received
        db.session.flush()

        derived = derive_purchase_order_status(po)
        if derived is not None and derived.value != po.status:
            lifecycle_service.transition_purchase_order(
                po.id,
                derived,
                source=SOURCE_RECONCILER,
                performed_by=performed_by,
                commit=False,
            )

        commit_or_conflict(f"Purchase order {po.id}")
    except Exception:
        db.session.rollback()
        lifecycle_service.discard_deferred_hooks()
        raise

    lifecycle_service.run_deferred_hooks()
    current_app.logger.info(
        "Received %g %s on %s line %s as lot %s; PO now %s",
        qty,
        line.unit,
        po.po_number,
        line.id,
        lot.lot_number,
        po.status,
    )
    return ReceiptResult(lot=lot, movement=movement, line=line, purchase_order_status=po.status)
