from __future__ import annotations

from ..extensions import db
from brewplan.time_utils import to_utc_z, to_iso_date


class PurchaseOrder(db.Model):
    """
    Supplier purchase order.

    DERIVED FIELDS:
    - subtotal/tax/total are recomputed from lines on every line change.
    - status past `sent` is derived from line receipt state by receive_service
      (partially_received / received) and is never trusted as independent.
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        db.UniqueConstraint("po_number", name="uq_purchase_orders_po_number"),
        db.Index("ix_purchase_orders_status_expected", "status", "expected_delivery_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    po_number = db.Column(db.String(32), nullable=False)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)

    status = db.Column(db.String(24), nullable=False, default="draft", index=True)
    order_date = db.Column(db.Date, nullable=True)
    expected_delivery_date = db.Column(db.Date, nullable=True)

    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    supplier = db.relationship("Supplier")
    lines = db.relationship(
        "PurchaseOrderLine",
        backref="purchase_order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="PurchaseOrderLine.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<PurchaseOrder id={self.id} number={self.po_number!r} status={self.status}>"

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "po_number": self.po_number,
            "supplier_id": self.supplier_id,
            "status": self.status,
            "order_date": to_iso_date(self.order_date),
            "expected_delivery_date": to_iso_date(self.expected_delivery_date),
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "notes": self.notes,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class PurchaseOrderLine(db.Model):
    """
    One item on a purchase order.

    DB-ENFORCED: 0 <= quantity_received <= quantity_ordered.
    The receiving service checks this first and raises OverReceipt, the
    constraint is the backstop.
    """
    __tablename__ = "purchase_order_lines"
    __table_args__ = (
        db.CheckConstraint("quantity_ordered > 0", name="ck_po_lines_ordered_positive"),
        db.CheckConstraint("quantity_received >= 0", name="ck_po_lines_received_nonneg"),
        db.CheckConstraint("quantity_received <= quantity_ordered", name="ck_po_lines_received_le_ordered"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False, index=True)
    inventory_item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)

    quantity_ordered = db.Column(db.Float, nullable=False)
    quantity_received = db.Column(db.Float, nullable=False, default=0.0)
    unit = db.Column(db.String(8), nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    line_total_cents = db.Column(db.Integer, nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    inventory_item = db.relationship("InventoryItem")
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def quantity_outstanding(self) -> float:
        return max(0.0, (self.quantity_ordered or 0.0) - (self.quantity_received or 0.0))

    @property
    def is_fully_received(self) -> bool:
        return (self.quantity_received or 0.0) >= self.quantity_ordered

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_order_id": self.purchase_order_id,
            "inventory_item_id": self.inventory_item_id,
            "quantity_ordered": self.quantity_ordered,
            "quantity_received": self.quantity_received,
            "quantity_outstanding": self.quantity_outstanding,
            "unit": self.unit,
            "unit_cost_cents": self.unit_cost_cents,
            "line_total_cents": self.line_total_cents,
            "notes": self.notes,
            "version_id": self.version_id,
        }
