# backend/brewplan/routes/system.py
"""
System health endpoint.

Reports database connectivity for deployment checks.
"""

import time
from flask import Blueprint, jsonify, current_app
from sqlalchemy import text

from ..extensions import db
from brewplan.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "response_time_ms": round(elapsed_ms, 2)}
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception("Database health check failed")
        return {"status": "unhealthy", "error": str(e)}


@system_bp.get("/health")
def health():
    database = check_database_health()
    ok = database["status"] == "healthy"
    return jsonify({
        "status": "healthy" if ok else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database},
    }), 200 if ok else 503
