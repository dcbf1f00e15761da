# Overview: Service-layer read models for reporting; production summary over a date range.

from __future__ import annotations

from collections import Counter
from datetime import date, datetime, time, timedelta

from sqlalchemy import func

from ..extensions import db
from ..models import Batch, Vessel
from ..validation import ValidationError
from .lifecycle_policy import BatchStatus
from .planning_service import SCHEDULE_STATUSES


def _day_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    # Inclusive calendar days -> half-open datetime range
    return datetime.combine(start, time.min), datetime.combine(end + timedelta(days=1), time.min)


def production_summary(*, start: date, end: date) -> dict:
    """
    Output of batches completed between `start` and `end` (inclusive days).

    Volume counts the measured volume, falling back to the planned size.
    Vessel utilisation counts completed batches by the last vessel each
    occupied; every vessel is listed, idle ones with 0.
    """
    if start is None or end is None:
        raise ValidationError("start and end are required")
    if end < start:
        raise ValidationError("end must be on or after start")

    lo, hi = _day_bounds(start, end)
    completed = (
        db.session.query(Batch)
        .filter(
            Batch.status == BatchStatus.COMPLETED.value,
            Batch.completed_at >= lo,
            Batch.completed_at < hi,
        )
        .all()
    )
    in_progress = (
        db.session.query(func.count(Batch.id))
        .filter(Batch.status.in_([s.value for s in SCHEDULE_STATUSES]))
        .scalar()
    )

    total_volume = sum(b.actual_volume_litres or b.batch_size_litres for b in completed)
    average = total_volume / len(completed) if completed else 0.0
    per_vessel = Counter(b.last_vessel_id for b in completed if b.last_vessel_id is not None)

    vessels = db.session.query(Vessel).order_by(Vessel.name.asc()).all()
    return {
        "start": start.isoformat(),
        "end": end.isoformat(),
        "batches_completed": len(completed),
        "batches_in_progress": int(in_progress or 0),
        "total_volume_litres": round(total_volume, 2),
        "average_batch_size_litres": round(average, 2),
        "vessel_utilisation": [
            {"vessel_id": v.id, "vessel_name": v.name, "batch_count": per_vessel.get(v.id, 0)}
            for v in vessels
        ],
    }
