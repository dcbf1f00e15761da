# Overview: Flask API routes for stock positions and the movement ledger; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify

from ..decorators import core_errors_as_json, json_body
from ..services import inventory_service, ledger_service
from ..validation import ValidationError, optional_date, require_positive_quantity


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/positions")
@core_errors_as_json("load inventory positions")
def positions_route():
    as_of = optional_date(request.args.get("as_of"), field="as_of")
    include_archived = request.args.get("include_archived", "false").lower() == "true"
    positions = inventory_service.position_for_all(as_of=as_of, include_archived=include_archived)
    return jsonify({"items": [p.to_dict() for p in positions], "count": len(positions)})


@inventory_bp.get("/positions/<int:item_id>")
@core_errors_as_json("load inventory position")
def position_route(item_id: int):
    as_of = optional_date(request.args.get("as_of"), field="as_of")
    return jsonify({"position": inventory_service.position_for_item(item_id, as_of=as_of).to_dict()})


@inventory_bp.get("/finished-goods")
@core_errors_as_json("load finished goods positions")
def finished_goods_route():
    recipe_id = request.args.get("recipe_id", type=int)
    fmt = request.args.get("format")
    positions = inventory_service.finished_goods_positions(recipe_id=recipe_id, format=fmt)
    return jsonify({"items": [p.to_dict() for p in positions], "count": len(positions)})


@inventory_bp.get("/lots/<int:lot_id>/movements")
@core_errors_as_json("list lot movements")
def lot_movements_route(lot_id: int):
    limit = request.args.get("limit", 200, type=int)
    limit = max(1, min(limit, 500))
    movements = ledger_service.list_movements(lot_id=lot_id, limit=limit)
    return jsonify({"items": [m.to_dict() for m in movements], "count": len(movements)})


@inventory_bp.post("/lots/<int:lot_id>/movements")
@core_errors_as_json("record stock movement")
def record_movement_route(lot_id: int):
    """
    Manual ledger entry: {"movement_type": "adjusted", "quantity": -2.5, "reason": "spillage"}

    quantity is signed; written_off and consumed must be negative.
    """
    data = json_body()
    quantity = data.get("quantity")
    if isinstance(quantity, bool) or not isinstance(quantity, (int, float)):
        raise ValidationError("quantity must be a number")
    # Magnitude check only; sign is validated per movement type
    require_positive_quantity(abs(quantity))
    movement = ledger_service.record_movement(
        lot_id,
        movement_type=data.get("movement_type"),
        quantity=float(quantity),
        reason=data.get("reason"),
        performed_by=data.get("performed_by"),
    )
    return jsonify({"movement": movement.to_dict()}), 201
