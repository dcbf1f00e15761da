# Overview: Request decorators for API routes; maps typed core failures to JSON error responses.

from functools import wraps
from flask import request, jsonify, current_app

from .errors import (
    ConcurrencyConflict,
    CoreError,
    InvalidState,
    InvalidTransition,
    NotFound,
    OverReceipt,
    PreconditionFailed,
)
from .validation import ValidationError


# Most specific first: ConcurrencyConflict/OverReceipt/InvalidState are PreconditionFailed too
ERROR_STATUS = (
    (NotFound, 404, "not_found"),
    (ConcurrencyConflict, 409, "concurrency_conflict"),
    (InvalidTransition, 409, "invalid_transition"),
    (OverReceipt, 422, "over_receipt"),
    (InvalidState, 422, "invalid_state"),
    (PreconditionFailed, 422, "precondition_failed"),
)


def error_response(exc: Exception):
    for exc_type, status, code in ERROR_STATUS:
        if isinstance(exc, exc_type):
            return jsonify({"error": str(exc), "code": code}), status
    return jsonify({"error": str(exc), "code": "error"}), 400


def core_errors_as_json(action: str):
    """
    Render core failures for the client.

    ValidationError -> 400, NotFound -> 404, InvalidTransition and
    ConcurrencyConflict -> 409, other PreconditionFailed -> 422.
    Anything else is logged with traceback and returned as a bare 500.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except ValidationError as e:
                return jsonify({"error": str(e), "code": "validation_error"}), 400
            except CoreError as e:
                return error_response(e)
            except Exception:
                current_app.logger.exception("Failed to %s", action)
                return jsonify({"error": "Internal server error"}), 500
        return decorated_function
    return decorator


def json_body() -> dict:
    """Request JSON object or ValidationError. Empty body is an empty dict."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data
