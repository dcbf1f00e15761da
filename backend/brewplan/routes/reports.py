# Overview: Flask API routes for reports; production summary.

from flask import Blueprint, request, jsonify

from ..decorators import core_errors_as_json
from ..services import reporting_service
from ..validation import ValidationError, optional_date


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/production")
@core_errors_as_json("load production summary")
def production_summary_route():
    start = optional_date(request.args.get("start"), field="start")
    end = optional_date(request.args.get("end"), field="end")
    if start is None or end is None:
        raise ValidationError("start and end are required")
    return jsonify(reporting_service.production_summary(start=start, end=end))
