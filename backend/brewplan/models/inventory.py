from __future__ import annotations

from enum import Enum

from ..extensions import db
from brewplan.time_utils import to_utc_z, to_iso_date


class MovementType(str, Enum):
    RECEIVED = "received"
    CONSUMED = "consumed"
    ADJUSTED = "adjusted"
    TRANSFERRED = "transferred"
    RETURNED = "returned"
    WRITTEN_OFF = "written_off"


class Unit(str, Enum):
    KG = "kg"
    G = "g"
    ML = "ml"
    L = "l"
    EACH = "each"


class ItemCategory(str, Enum):
    GRAIN = "grain"
    HOP = "hop"
    YEAST = "yeast"
    ADJUNCT = "adjunct"
    PACKAGING = "packaging"
    CHEMICAL = "chemical"
    OTHER = "other"


class Supplier(db.Model):
    __tablename__ = "suppliers"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_suppliers_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    contact_name = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    lead_time_days = db.Column(db.Integer, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Supplier id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "contact_name": self.contact_name,
            "email": self.email,
            "phone": self.phone,
            "lead_time_days": self.lead_time_days,
            "is_active": self.is_active,
            "notes": self.notes,
        }


class InventoryItem(db.Model):
    """
    Raw-material catalog entry (malt, hops, yeast, cans, kegs caps...).

    Quantities are never stored here. On-hand lives in lots, and lots derive
    theirs from the stock movement ledger.
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_inventory_items_name"),
        db.Index("ix_inventory_items_category_archived", "category", "is_archived"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(16), nullable=False, default=ItemCategory.OTHER.value)
    unit = db.Column(db.String(8), nullable=False)

    # Authoritative storage in cents, per unit
    unit_cost_cents = db.Column(db.Integer, nullable=True)
    reorder_point = db.Column(db.Float, nullable=True)
    reorder_qty = db.Column(db.Float, nullable=True)

    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)
    is_archived = db.Column(db.Boolean, nullable=False, default=False)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    supplier = db.relationship("Supplier")
    lots = db.relationship("InventoryLot", backref="inventory_item", lazy=True, order_by="InventoryLot.id")

    def __repr__(self) -> str:
        return f"<InventoryItem id={self.id} name={self.name!r} unit={self.unit}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "unit": self.unit,
            "unit_cost_cents": self.unit_cost_cents,
            "reorder_point": self.reorder_point,
            "reorder_qty": self.reorder_qty,
            "supplier_id": self.supplier_id,
            "is_archived": self.is_archived,
            "notes": self.notes,
        }


class InventoryLot(db.Model):
    """
    A physically received quantity of one item.

    CACHED PROJECTION:
    quantity_on_hand == SUM(stock_movements.quantity) for this lot, rewritten
    by ledger_service after every append. Nothing else may assign it.
    """
    __tablename__ = "inventory_lots"
    __table_args__ = (
        db.CheckConstraint("quantity_on_hand >= 0", name="ck_inventory_lots_on_hand_nonneg"),
        db.Index("ix_inventory_lots_item_received", "inventory_item_id", "received_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    inventory_item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)
    lot_number = db.Column(db.String(64), nullable=False)

    quantity_on_hand = db.Column(db.Float, nullable=False, default=0.0)
    unit_cost_cents = db.Column(db.Integer, nullable=True)
    received_date = db.Column(db.Date, nullable=False)
    expiry_date = db.Column(db.Date, nullable=True)

    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=True, index=True)
    location = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    movements = db.relationship("StockMovement", backref="lot", lazy=True, order_by="StockMovement.id")
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<InventoryLot id={self.id} lot={self.lot_number!r} on_hand={self.quantity_on_hand}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "inventory_item_id": self.inventory_item_id,
            "lot_number": self.lot_number,
            "quantity_on_hand": self.quantity_on_hand,
            "unit_cost_cents": self.unit_cost_cents,
            "received_date": to_iso_date(self.received_date),
            "expiry_date": to_iso_date(self.expiry_date),
            "purchase_order_id": self.purchase_order_id,
            "location": self.location,
            "notes": self.notes,
            "version_id": self.version_id,
        }


class StockMovement(db.Model):
    """
    Append-only stock ledger entry against a lot.

    Quantity is signed: positive adds to the lot, negative removes.
    Rows are never updated or deleted; corrections are new `adjusted` rows.
    reference_type/reference_id point at the originating document
    (purchase_order, brew_batch, packaging, order...).
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.CheckConstraint("quantity <> 0", name="ck_stock_movements_qty_nonzero"),
        db.Index("ix_stock_movements_lot_created", "inventory_lot_id", "created_at"),
        db.Index("ix_stock_movements_reference", "reference_type", "reference_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    inventory_lot_id = db.Column(db.Integer, db.ForeignKey("inventory_lots.id"), nullable=False, index=True)
    movement_type = db.Column(db.String(16), nullable=False, index=True)
    quantity = db.Column(db.Float, nullable=False)

    reference_type = db.Column(db.String(32), nullable=True)
    reference_id = db.Column(db.Integer, nullable=True)
    reason = db.Column(db.Text, nullable=True)
    performed_by = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<StockMovement id={self.id} lot={self.inventory_lot_id} {self.movement_type} {self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "inventory_lot_id": self.inventory_lot_id,
            "movement_type": self.movement_type,
            "quantity": self.quantity,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "reason": self.reason,
            "performed_by": self.performed_by,
            "created_at": to_utc_z(self.created_at),
        }
