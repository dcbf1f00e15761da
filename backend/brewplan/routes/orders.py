# Overview: Flask API routes for customer orders; parses input and returns JSON responses.

"""
Order Routes

- GET    /api/orders                          list (optional ?status=)
- POST   /api/orders                          create draft order
- GET    /api/orders/:id                      order with lines
- POST   /api/orders/:id/lines                add line (draft only)
- PATCH  /api/orders/lines/:line_id           edit line (draft only)
- DELETE /api/orders/lines/:line_id           remove line (draft only)
- POST   /api/orders/lines/:line_id/assign    {"finished_goods_id": n}
- GET    /api/orders/:id/transitions          statuses a user may request next
- POST   /api/orders/:id/transition           {"status": "...", "expected_version": n}
"""

from flask import Blueprint, request, jsonify

from ..decorators import core_errors_as_json, json_body
from ..errors import NotFound
from ..extensions import db
from ..models import Order
from ..services import lifecycle_service, order_service
from ..services.lifecycle_policy import OrderStatus
from ..validation import ValidationError, optional_date, optional_version, parse_enum


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _require_int(data: dict, key: str) -> int:
    value = data.get(key)
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(f"{key} is required")
    return value


@orders_bp.get("")
@core_errors_as_json("list orders")
def list_orders_route():
    query = db.session.query(Order)
    status = request.args.get("status")
    if status:
        query = query.filter(Order.status == parse_enum(OrderStatus, status).value)
    orders = query.order_by(Order.id.desc()).all()
    return jsonify({"items": [o.to_dict() for o in orders], "count": len(orders)})


@orders_bp.post("")
@core_errors_as_json("create order")
def create_order_route():
    data = json_body()
    order = order_service.create_order(
        _require_int(data, "customer_id"),
        order_date=optional_date(data.get("order_date"), field="order_date"),
        delivery_date=optional_date(data.get("delivery_date"), field="delivery_date"),
        channel=data.get("channel") or "wholesale",
        notes=data.get("notes"),
    )
    return jsonify({"order": order.to_dict(include_lines=True)}), 201


@orders_bp.get("/<int:order_id>")
@core_errors_as_json("load order")
def get_order_route(order_id: int):
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFound("Order", order_id)
    return jsonify({"order": order.to_dict(include_lines=True)})


@orders_bp.post("/<int:order_id>/lines")
@core_errors_as_json("add order line")
def add_order_line_route(order_id: int):
    data = json_body()
    line = order_service.add_line(
        order_id,
        recipe_id=_require_int(data, "recipe_id"),
        format=data.get("format"),
        quantity=data.get("quantity"),
        unit_price_cents=data.get("unit_price_cents", 0),
        description=data.get("description"),
    )
    return jsonify({"line": line.to_dict(), "order": line.order.to_dict()}), 201


@orders_bp.patch("/lines/<int:line_id>")
@core_errors_as_json("update order line")
def update_order_line_route(line_id: int):
    data = json_body()
    line = order_service.update_line(
        line_id,
        quantity=data.get("quantity"),
        unit_price_cents=data.get("unit_price_cents"),
        description=data.get("description"),
    )
    return jsonify({"line": line.to_dict(), "order": line.order.to_dict()})


@orders_bp.delete("/lines/<int:line_id>")
@core_errors_as_json("remove order line")
def remove_order_line_route(line_id: int):
    order = order_service.remove_line(line_id)
    return jsonify({"order": order.to_dict(include_lines=True)})


@orders_bp.post("/lines/<int:line_id>/assign")
@core_errors_as_json("assign finished goods")
def assign_finished_goods_route(line_id: int):
    data = json_body()
    line = order_service.assign_finished_goods(line_id, _require_int(data, "finished_goods_id"))
    return jsonify({"line": line.to_dict()})


@orders_bp.get("/<int:order_id>/transitions")
@core_errors_as_json("list order transitions")
def order_transitions_route(order_id: int):
    options = lifecycle_service.transition_options(lifecycle_service.ORDER, order_id)
    return jsonify({"transitions": options})


@orders_bp.post("/<int:order_id>/transition")
@core_errors_as_json("transition order")
def transition_order_route(order_id: int):
    data = json_body()
    order = lifecycle_service.transition_order(
        order_id,
        data.get("status"),
        expected_version=optional_version(data.get("expected_version")),
        performed_by=data.get("performed_by"),
    )
    return jsonify({"order": order.to_dict(include_lines=True)})
