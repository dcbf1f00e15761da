# Overview: Service-layer operations for batch quality checks.

"""
BrewPlan Quality Checks

A check is logged against a brewed batch (never a planned or cancelled one)
and starts pending unless a result is given. Readings and the result can be
edited; only a pending check can be deleted.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from flask import current_app

from ..errors import InvalidState, NotFound
from ..extensions import db
from ..models import Batch, QualityCheck, QualityCheckType, QualityResult
from ..time_utils import utcnow
from ..validation import ValidationError, optional_number, parse_enum
from .lifecycle_policy import BatchStatus


UNBREWED_STATUSES = frozenset({BatchStatus.PLANNED, BatchStatus.CANCELLED})

# field -> (minimum, maximum)
READING_BOUNDS = {
    "ph": (0, 14),
    "dissolved_oxygen": (0, None),
    "turbidity": (0, None),
    "colour_srm": (0, None),
    "abv": (0, 100),
    "co2_volumes": (0, None),
}
TEXT_FIELDS = ("checked_by", "sensory_notes", "microbiological", "notes")


def _readings(values: dict) -> dict:
    cleaned = {}
    for name, (low, high) in READING_BOUNDS.items():
        if name in values:
            cleaned[name] = optional_number(values[name], field=name, minimum=low, maximum=high)
    return cleaned


def _get_check(check_id: int) -> QualityCheck:
    check = db.session.get(QualityCheck, check_id)
    if check is None:
        raise NotFound("QualityCheck", check_id)
    return check


def create_check(
    batch_id: int,
    *,
    check_type,
    checked_at: Optional[datetime] = None,
    result=None,
    **values,
) -> QualityCheck:
    unknown = set(values) - set(READING_BOUNDS) - set(TEXT_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown quality check fields: {', '.join(sorted(unknown))}")
    try:
        kind = parse_enum(QualityCheckType, check_type, field="check_type")
        outcome = QualityResult.PENDING if result is None else parse_enum(QualityResult, result, field="result")
        readings = _readings(values)

        batch = db.session.get(Batch, batch_id)
        if batch is None:
            raise NotFound("Batch", batch_id)
        if BatchStatus(batch.status) in UNBREWED_STATUSES:
            raise InvalidState(f"Batch {batch.batch_number} is {batch.status}; nothing to check yet")

        check = QualityCheck(
            batch_id=batch.id,
            check_type=kind.value,
            checked_at=checked_at or utcnow(),
            result=outcome.value,
            **readings,
            **{name: values.get(name) for name in TEXT_FIELDS},
        )
        db.session.add(check)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Quality check %s on batch %s: %s", kind.value, batch.batch_number, outcome.value)
    return check


def update_check(check_id: int, *, result=None, **values) -> QualityCheck:
    """Partial edit: only the given fields change; None leaves a field alone."""
    unknown = set(values) - set(READING_BOUNDS) - set(TEXT_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown quality check fields: {', '.join(sorted(unknown))}")
    try:
        check = _get_check(check_id)
        for name, value in _readings({k: v for k, v in values.items() if v is not None}).items():
            setattr(check, name, value)
        for name in TEXT_FIELDS:
            if values.get(name) is not None:
                setattr(check, name, values[name])
        if result is not None:
            check.result = parse_enum(QualityResult, result, field="result").value
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return check


def list_checks(batch_id: int) -> list[QualityCheck]:
    if db.session.get(Batch, batch_id) is None:
        raise NotFound("Batch", batch_id)
    return (
        db.session.query(QualityCheck)
        .filter_by(batch_id=batch_id)
        .order_by(QualityCheck.checked_at.desc(), QualityCheck.id.desc())
        .all()
    )


def delete_check(check_id: int) -> None:
    try:
        check = _get_check(check_id)
        if check.result != QualityResult.PENDING.value:
            raise InvalidState(f"Quality check {check.id} is {check.result}; only pending checks can be deleted")
        db.session.delete(check)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
