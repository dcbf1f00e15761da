# Overview: Flask API routes for planning views; demand, materials, schedule, packaging priority, suggestions, purchase timing.

from flask import Blueprint, request, jsonify

from ..decorators import core_errors_as_json
from ..services import planning_service
from ..validation import optional_date


planning_bp = Blueprint("planning", __name__, url_prefix="/api/planning")


@planning_bp.get("/demand")
@core_errors_as_json("load demand view")
def demand_route():
    as_of = optional_date(request.args.get("as_of"), field="as_of")
    return jsonify(planning_service.demand_view(as_of=as_of).to_dict())


@planning_bp.get("/materials")
@core_errors_as_json("load material requirements")
def materials_route():
    as_of = optional_date(request.args.get("as_of"), field="as_of")
    rows = planning_service.materials_requirements(as_of=as_of)
    return jsonify({"items": rows, "count": len(rows)})


@planning_bp.get("/schedule")
@core_errors_as_json("load brew schedule")
def schedule_route():
    rows = planning_service.brew_schedule()
    return jsonify({"items": rows, "count": len(rows)})


@planning_bp.get("/packaging-priority")
@core_errors_as_json("load packaging priority")
def packaging_priority_route():
    as_of = optional_date(request.args.get("as_of"), field="as_of")
    rows = planning_service.packaging_priority(as_of=as_of)
    return jsonify({"items": rows, "count": len(rows)})


@planning_bp.get("/suggested-brews")
@core_errors_as_json("load suggested brews")
def suggested_brews_route():
    as_of = optional_date(request.args.get("as_of"), field="as_of")
    rows = planning_service.suggested_brews(as_of=as_of)
    return jsonify({"items": rows, "count": len(rows)})


@planning_bp.get("/purchase-timing")
@core_errors_as_json("load purchase timing")
def purchase_timing_route():
    as_of = optional_date(request.args.get("as_of"), field="as_of")
    return jsonify(planning_service.purchase_timing(as_of=as_of))
