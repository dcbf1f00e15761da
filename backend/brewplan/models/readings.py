from __future__ import annotations

from ..extensions import db
from brewplan.time_utils import to_utc_z


class FermentationLogEntry(db.Model):
    """
    Cellar reading taken while a batch is in a vessel.

    Append-only. Entries are history, not state: they never update the batch.
    """
    __tablename__ = "fermentation_log_entries"
    __table_args__ = (
        db.Index("ix_fermentation_log_batch_logged", "batch_id", "logged_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    batch_id = db.Column(db.Integer, db.ForeignKey("batches.id"), nullable=False)
    logged_at = db.Column(db.DateTime(timezone=True), nullable=False)
    gravity = db.Column(db.Float, nullable=True)
    temperature_celsius = db.Column(db.Float, nullable=True)
    ph = db.Column(db.Float, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    logged_by = db.Column(db.String(128), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "batch_id": self.batch_id,
            "logged_at": to_utc_z(self.logged_at),
            "gravity": self.gravity,
            "temperature_celsius": self.temperature_celsius,
            "ph": self.ph,
            "notes": self.notes,
            "logged_by": self.logged_by,
        }


class BatchMeasurement(db.Model):
    """
    Brewhouse measurement (OG, FG, volume, IBU).

    Non-null values are copied onto the batch's actual_* readings in the same
    transaction, so the latest measurement wins.
    """
    __tablename__ = "batch_measurements"
    __table_args__ = (
        db.Index("ix_batch_measurements_batch_logged", "batch_id", "logged_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    batch_id = db.Column(db.Integer, db.ForeignKey("batches.id"), nullable=False)
    logged_at = db.Column(db.DateTime(timezone=True), nullable=False)
    og = db.Column(db.Float, nullable=True)
    fg = db.Column(db.Float, nullable=True)
    volume_litres = db.Column(db.Float, nullable=True)
    ibu = db.Column(db.Float, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    logged_by = db.Column(db.String(128), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "batch_id": self.batch_id,
            "logged_at": to_utc_z(self.logged_at),
            "og": self.og,
            "fg": self.fg,
            "volume_litres": self.volume_litres,
            "ibu": self.ibu,
            "notes": self.notes,
            "logged_by": self.logged_by,
        }
