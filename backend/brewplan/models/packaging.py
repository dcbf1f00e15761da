from __future__ import annotations

from enum import Enum

from ..extensions import db
from brewplan.time_utils import to_utc_z, to_iso_date


class PackageFormat(str, Enum):
    KEG_50L = "keg_50l"
    KEG_30L = "keg_30l"
    KEG_20L = "keg_20l"
    CAN_375ML = "can_375ml"
    CAN_355ML = "can_355ml"
    BOTTLE_330ML = "bottle_330ml"
    BOTTLE_500ML = "bottle_500ml"
    OTHER = "other"


class PackagingRun(db.Model):
    __tablename__ = "packaging_runs"
    __table_args__ = (
        db.CheckConstraint("quantity_units > 0", name="ck_packaging_runs_units_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    batch_id = db.Column(db.Integer, db.ForeignKey("batches.id"), nullable=False, index=True)
    packaging_date = db.Column(db.Date, nullable=False)
    format = db.Column(db.String(16), nullable=False)
    quantity_units = db.Column(db.Integer, nullable=False)
    volume_litres = db.Column(db.Float, nullable=True)
    best_before_date = db.Column(db.Date, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    batch = db.relationship("Batch", backref=db.backref("packaging_runs", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "batch_id": self.batch_id,
            "packaging_date": to_iso_date(self.packaging_date),
            "format": self.format,
            "quantity_units": self.quantity_units,
            "volume_litres": self.volume_litres,
            "best_before_date": to_iso_date(self.best_before_date),
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }


class FinishedGoods(db.Model):
    """
    Packaged stock of one recipe in one format.

    quantity_reserved is a cached projection of order-line reservations,
    rewritten by inventory_service.recompute_reservations(). Available
    (on_hand - reserved) may go negative: that is an over-allocation anomaly
    that gets flagged, not a blocked state.
    """
    __tablename__ = "finished_goods"
    __table_args__ = (
        db.Index("ix_finished_goods_recipe_format", "recipe_id", "format"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    packaging_run_id = db.Column(db.Integer, db.ForeignKey("packaging_runs.id"), nullable=True, index=True)
    batch_id = db.Column(db.Integer, db.ForeignKey("batches.id"), nullable=True, index=True)
    recipe_id = db.Column(db.Integer, db.ForeignKey("recipes.id"), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    format = db.Column(db.String(16), nullable=False)

    quantity_on_hand = db.Column(db.Integer, nullable=False, default=0)
    quantity_reserved = db.Column(db.Integer, nullable=False, default=0)
    best_before_date = db.Column(db.Date, nullable=True)
    location = db.Column(db.String(128), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    packaging_run = db.relationship("PackagingRun")
    recipe = db.relationship("Recipe")
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def quantity_available(self) -> int:
        return (self.quantity_on_hand or 0) - (self.quantity_reserved or 0)

    def __repr__(self) -> str:
        return (
            f"<FinishedGoods id={self.id} recipe={self.recipe_id} format={self.format} "
            f"on_hand={self.quantity_on_hand} reserved={self.quantity_reserved}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "packaging_run_id": self.packaging_run_id,
            "batch_id": self.batch_id,
            "recipe_id": self.recipe_id,
            "product_name": self.product_name,
            "format": self.format,
            "quantity_on_hand": self.quantity_on_hand,
            "quantity_reserved": self.quantity_reserved,
            "quantity_available": self.quantity_available,
            "best_before_date": to_iso_date(self.best_before_date),
            "location": self.location,
            "version_id": self.version_id,
        }
