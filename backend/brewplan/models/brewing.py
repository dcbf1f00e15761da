from __future__ import annotations

from enum import Enum

from ..extensions import db
from brewplan.time_utils import to_utc_z, to_iso_date


class VesselStatus(str, Enum):
    AVAILABLE = "available"
    IN_USE = "in_use"
    CLEANING = "cleaning"
    MAINTENANCE = "maintenance"
    OUT_OF_SERVICE = "out_of_service"


class RecipeStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    ARCHIVED = "archived"


class UsageStage(str, Enum):
    MASH = "mash"
    BOIL = "boil"
    WHIRLPOOL = "whirlpool"
    FERMENT = "ferment"
    DRY_HOP = "dry_hop"
    PACKAGE = "package"
    OTHER = "other"


class Recipe(db.Model):
    """
    Recipe master data.

    VERSIONING: Recipes are never edited into a different beer. A new version
    is cloned (version + 1, parent_recipe_id -> source) and the old one archived.
    This is the only historical versioning the system keeps.

    batch_size_litres is the reference volume that ingredient quantities are
    written against; batch requirements scale by batch size / this value.
    """
    __tablename__ = "recipes"
    __table_args__ = (
        db.UniqueConstraint("name", "version", name="uq_recipes_name_version"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    style = db.Column(db.String(128), nullable=True)
    status = db.Column(db.String(16), nullable=False, default=RecipeStatus.DRAFT.value)  # draft, active, archived
    version = db.Column(db.Integer, nullable=False, default=1)
    parent_recipe_id = db.Column(db.Integer, db.ForeignKey("recipes.id"), nullable=True)

    batch_size_litres = db.Column(db.Float, nullable=False)
    estimated_total_days = db.Column(db.Integer, nullable=True)
    target_og = db.Column(db.Float, nullable=True)
    target_fg = db.Column(db.Float, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    ingredients = db.relationship(
        "RecipeIngredient",
        backref="recipe",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="RecipeIngredient.id",
    )
    parent_recipe = db.relationship("Recipe", remote_side=[id])

    def __repr__(self) -> str:
        return f"<Recipe id={self.id} name={self.name!r} v{self.version}>"

    def to_dict(self, include_ingredients: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "style": self.style,
            "status": self.status,
            "version": self.version,
            "parent_recipe_id": self.parent_recipe_id,
            "batch_size_litres": self.batch_size_litres,
            "estimated_total_days": self.estimated_total_days,
            "target_og": self.target_og,
            "target_fg": self.target_fg,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_ingredients:
            data["ingredients"] = [i.to_dict() for i in self.ingredients]
        return data


class RecipeIngredient(db.Model):
    __tablename__ = "recipe_ingredients"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_recipe_ingredients_qty_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    recipe_id = db.Column(db.Integer, db.ForeignKey("recipes.id"), nullable=False, index=True)
    inventory_item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)

    # Quantity per recipe.batch_size_litres, in `unit` (matches the item's unit)
    quantity = db.Column(db.Float, nullable=False)
    unit = db.Column(db.String(8), nullable=False)
    usage_stage = db.Column(db.String(16), nullable=False, default=UsageStage.BOIL.value)
    notes = db.Column(db.Text, nullable=True)

    inventory_item = db.relationship("InventoryItem")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "recipe_id": self.recipe_id,
            "inventory_item_id": self.inventory_item_id,
            "quantity": self.quantity,
            "unit": self.unit,
            "usage_stage": self.usage_stage,
            "notes": self.notes,
        }


class Vessel(db.Model):
    """
    Fermenter / brite tank.

    current_batch_id is a cached pointer maintained by batch_service; the
    batch's vessel_id is authoritative. No FK here to keep the
    batches <-> vessels pair acyclic.
    """
    __tablename__ = "vessels"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_vessels_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False)
    vessel_type = db.Column(db.String(32), nullable=False, default="fermenter")
    capacity_litres = db.Column(db.Float, nullable=False)
    status = db.Column(db.String(16), nullable=False, default=VesselStatus.AVAILABLE.value, index=True)
    current_batch_id = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Vessel id={self.id} name={self.name!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "vessel_type": self.vessel_type,
            "capacity_litres": self.capacity_litres,
            "status": self.status,
            "current_batch_id": self.current_batch_id,
            "notes": self.notes,
            "version_id": self.version_id,
        }


class Batch(db.Model):
    """
    A single brew of a recipe.

    LIFECYCLE: status only changes through lifecycle_service.transition().
    Batches are never deleted; they end in completed, cancelled or dumped.

    VESSEL INVARIANT:
    vessel_id is non-null only while status is brewing, fermenting,
    conditioning or ready_to_package. Leaving that range releases the vessel.
    """
    __tablename__ = "batches"
    __table_args__ = (
        db.UniqueConstraint("batch_number", name="uq_batches_batch_number"),
        db.Index("ix_batches_status_planned", "status", "planned_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    batch_number = db.Column(db.String(32), nullable=False)
    recipe_id = db.Column(db.Integer, db.ForeignKey("recipes.id"), nullable=False, index=True)
    vessel_id = db.Column(db.Integer, db.ForeignKey("vessels.id"), nullable=True, index=True)
    # Last vessel the batch occupied; survives release for utilisation reporting
    last_vessel_id = db.Column(db.Integer, db.ForeignKey("vessels.id"), nullable=True)

    status = db.Column(db.String(24), nullable=False, default="planned", index=True)

    planned_date = db.Column(db.Date, nullable=True)
    brew_date = db.Column(db.Date, nullable=True)
    estimated_ready_date = db.Column(db.Date, nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    # Set once package-stage materials have been drawn, even if the draw came up short
    packaging_materials_drawn_at = db.Column(db.DateTime(timezone=True), nullable=True)

    batch_size_litres = db.Column(db.Float, nullable=False)
    actual_volume_litres = db.Column(db.Float, nullable=True)
    actual_og = db.Column(db.Float, nullable=True)
    actual_fg = db.Column(db.Float, nullable=True)
    actual_abv = db.Column(db.Float, nullable=True)
    actual_ibu = db.Column(db.Float, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    recipe = db.relationship("Recipe")
    vessel = db.relationship("Vessel", foreign_keys=[vessel_id])
    last_vessel = db.relationship("Vessel", foreign_keys=[last_vessel_id])
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Batch id={self.id} number={self.batch_number!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "batch_number": self.batch_number,
            "recipe_id": self.recipe_id,
            "vessel_id": self.vessel_id,
            "last_vessel_id": self.last_vessel_id,
            "status": self.status,
            "planned_date": to_iso_date(self.planned_date),
            "brew_date": to_iso_date(self.brew_date),
            "estimated_ready_date": to_iso_date(self.estimated_ready_date),
            "completed_at": to_utc_z(self.completed_at),
            "packaging_materials_drawn_at": to_utc_z(self.packaging_materials_drawn_at),
            "batch_size_litres": self.batch_size_litres,
            "actual_volume_litres": self.actual_volume_litres,
            "actual_og": self.actual_og,
            "actual_fg": self.actual_fg,
            "actual_abv": self.actual_abv,
            "actual_ibu": self.actual_ibu,
            "notes": self.notes,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
