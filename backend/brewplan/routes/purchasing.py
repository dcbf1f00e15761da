# Overview: Flask API routes for purchase orders and receiving; parses input and returns JSON responses.

"""
Purchase Order Routes

- GET  /api/purchase-orders                        list (optional ?status=)
- POST /api/purchase-orders                        create draft PO
- GET  /api/purchase-orders/:id                    PO with lines
- POST /api/purchase-orders/:id/lines              add line (draft only)
- GET  /api/purchase-orders/:id/transitions        statuses a user may request next
- POST /api/purchase-orders/:id/transition         {"status": "...", "expected_version": n}
- POST /api/purchase-orders/lines/:line_id/receive {"quantity_received": x, "lot_number": "..."}

partially_received is never offered by /transitions and is refused by
/transition; it is set by /receive only.
"""

from flask import Blueprint, request, jsonify

from ..decorators import core_errors_as_json, json_body
from ..errors import NotFound
from ..extensions import db
from ..models import PurchaseOrder
from ..services import lifecycle_service, purchasing_service, receive_service
from ..services.lifecycle_policy import PurchaseOrderStatus
from ..validation import ValidationError, optional_date, optional_version, parse_enum


purchasing_bp = Blueprint("purchasing", __name__, url_prefix="/api/purchase-orders")


@purchasing_bp.get("")
@core_errors_as_json("list purchase orders")
def list_purchase_orders_route():
    query = db.session.query(PurchaseOrder)
    status = request.args.get("status")
    if status:
        query = query.filter(PurchaseOrder.status == parse_enum(PurchaseOrderStatus, status).value)
    pos = query.order_by(PurchaseOrder.id.desc()).all()
    return jsonify({"items": [po.to_dict() for po in pos], "count": len(pos)})


@purchasing_bp.post("")
@core_errors_as_json("create purchase order")
def create_purchase_order_route():
    data = json_body()
    supplier_id = data.get("supplier_id")
    if not isinstance(supplier_id, int):
        raise ValidationError("supplier_id is required")
    po = purchasing_service.create_purchase_order(
        supplier_id,
        expected_delivery_date=optional_date(data.get("expected_delivery_date"), field="expected_delivery_date"),
        notes=data.get("notes"),
    )
    return jsonify({"purchase_order": po.to_dict(include_lines=True)}), 201


@purchasing_bp.get("/<int:po_id>")
@core_errors_as_json("load purchase order")
def get_purchase_order_route(po_id: int):
    po = db.session.get(PurchaseOrder, po_id)
    if po is None:
        raise NotFound("PurchaseOrder", po_id)
    return jsonify({"purchase_order": po.to_dict(include_lines=True)})


@purchasing_bp.post("/<int:po_id>/lines")
@core_errors_as_json("add purchase order line")
def add_purchase_order_line_route(po_id: int):
    data = json_body()
    item_id = data.get("inventory_item_id")
    if not isinstance(item_id, int):
        raise ValidationError("inventory_item_id is required")
    line = purchasing_service.add_line(
        po_id,
        inventory_item_id=item_id,
        quantity_ordered=data.get("quantity_ordered"),
        unit_cost_cents=data.get("unit_cost_cents"),
        notes=data.get("notes"),
    )
    return jsonify({"line": line.to_dict(), "purchase_order": line.purchase_order.to_dict()}), 201


@purchasing_bp.get("/<int:po_id>/transitions")
@core_errors_as_json("list purchase order transitions")
def purchase_order_transitions_route(po_id: int):
    options = lifecycle_service.transition_options(lifecycle_service.PURCHASE_ORDER, po_id)
    return jsonify({"transitions": options})


@purchasing_bp.post("/<int:po_id>/transition")
@core_errors_as_json("transition purchase order")
def transition_purchase_order_route(po_id: int):
    data = json_body()
    po = lifecycle_service.transition_purchase_order(
        po_id,
        data.get("status"),
        expected_version=optional_version(data.get("expected_version")),
        performed_by=data.get("performed_by"),
    )
    return jsonify({"purchase_order": po.to_dict(include_lines=True)})


@purchasing_bp.post("/lines/<int:line_id>/receive")
@core_errors_as_json("receive purchase order line")
def receive_line_route(line_id: int):
    """
    Error responses:
        400 quantity <= 0 or missing lot_number
        404 unknown line
        422 PO not receivable (invalid_state) or more than outstanding (over_receipt)
    """
    data = json_body()
    result = receive_service.receive_line(
        line_id,
        data.get("quantity_received"),
        data.get("lot_number"),
        data.get("location"),
        data.get("notes"),
        expiry_date=optional_date(data.get("expiry_date"), field="expiry_date"),
        performed_by=data.get("performed_by"),
    )
    return jsonify(result.to_dict()), 201
