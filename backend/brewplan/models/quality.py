from __future__ import annotations

from enum import Enum

from ..extensions import db
from brewplan.time_utils import to_utc_z


class QualityCheckType(str, Enum):
    PRE_PACKAGING = "pre_packaging"
    POST_PACKAGING = "post_packaging"
    SENSORY = "sensory"
    LAB = "lab"


class QualityResult(str, Enum):
    PENDING = "pending"
    PASS = "pass"
    FAIL = "fail"


class QualityCheck(db.Model):
    """
    QC record against a batch.

    A check is created pending and later resolved to pass or fail. Only
    pending checks may be deleted; a resolved result is part of the batch's
    release record.
    """
    __tablename__ = "quality_checks"
    __table_args__ = (
        db.Index("ix_quality_checks_batch_checked", "batch_id", "checked_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    batch_id = db.Column(db.Integer, db.ForeignKey("batches.id"), nullable=False)
    check_type = db.Column(db.String(16), nullable=False)  # pre_packaging, post_packaging, sensory, lab
    checked_at = db.Column(db.DateTime(timezone=True), nullable=False)
    checked_by = db.Column(db.String(128), nullable=True)

    ph = db.Column(db.Float, nullable=True)
    dissolved_oxygen = db.Column(db.Float, nullable=True)  # ppb
    turbidity = db.Column(db.Float, nullable=True)  # EBC
    colour_srm = db.Column(db.Float, nullable=True)
    abv = db.Column(db.Float, nullable=True)
    co2_volumes = db.Column(db.Float, nullable=True)
    sensory_notes = db.Column(db.Text, nullable=True)
    microbiological = db.Column(db.Text, nullable=True)

    result = db.Column(db.String(8), nullable=False, default=QualityResult.PENDING.value, index=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    batch = db.relationship("Batch", backref=db.backref("quality_checks", lazy=True))

    def __repr__(self) -> str:
        return f"<QualityCheck id={self.id} batch={self.batch_id} {self.check_type} {self.result}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "batch_id": self.batch_id,
            "check_type": self.check_type,
            "checked_at": to_utc_z(self.checked_at),
            "checked_by": self.checked_by,
            "ph": self.ph,
            "dissolved_oxygen": self.dissolved_oxygen,
            "turbidity": self.turbidity,
            "colour_srm": self.colour_srm,
            "abv": self.abv,
            "co2_volumes": self.co2_volumes,
            "sensory_notes": self.sensory_notes,
            "microbiological": self.microbiological,
            "result": self.result,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
