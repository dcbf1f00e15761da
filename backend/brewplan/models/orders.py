from __future__ import annotations

from ..extensions import db
from brewplan.time_utils import to_utc_z, to_iso_date


class Customer(db.Model):
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    customer_type = db.Column(db.String(16), nullable=False, default="other")  # pub, restaurant, retail, distributor, other
    contact_name = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    address = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Customer id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "customer_type": self.customer_type,
            "contact_name": self.contact_name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "is_active": self.is_active,
        }


class Order(db.Model):
    """
    Customer order.

    DERIVED FIELDS:
    subtotal_cents = SUM(lines.line_total_cents); tax_cents from TAX_RATE_BPS;
    total_cents = subtotal + tax. Recomputed by order_service on every line
    change, never written by callers.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("order_number", name="uq_orders_order_number"),
        db.UniqueConstraint("invoice_number", name="uq_orders_invoice_number"),
        db.Index("ix_orders_status_delivery", "status", "delivery_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(32), nullable=False)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default="draft", index=True)
    channel = db.Column(db.String(16), nullable=False, default="wholesale")  # wholesale, taproom, online, other
    order_date = db.Column(db.Date, nullable=True)
    delivery_date = db.Column(db.Date, nullable=True)

    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    invoice_number = db.Column(db.String(32), nullable=True)
    invoiced_at = db.Column(db.DateTime(timezone=True), nullable=True)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    customer = db.relationship("Customer")
    lines = db.relationship(
        "OrderLine",
        backref="order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="OrderLine.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Order id={self.id} number={self.order_number!r} status={self.status}>"

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "customer_id": self.customer_id,
            "status": self.status,
            "channel": self.channel,
            "order_date": to_iso_date(self.order_date),
            "delivery_date": to_iso_date(self.delivery_date),
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "invoice_number": self.invoice_number,
            "invoiced_at": to_utc_z(self.invoiced_at),
            "paid_at": to_utc_z(self.paid_at),
            "notes": self.notes,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class OrderLine(db.Model):
    """
    One product/format on an order.

    finished_goods_id is set while picking. While the order is in a reserving
    status the line's quantity counts toward that row's quantity_reserved.
    """
    __tablename__ = "order_lines"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_order_lines_qty_positive"),
        db.Index("ix_order_lines_recipe_format", "recipe_id", "format"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    recipe_id = db.Column(db.Integer, db.ForeignKey("recipes.id"), nullable=False, index=True)
    format = db.Column(db.String(16), nullable=False)
    description = db.Column(db.String(255), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False, default=0)
    line_total_cents = db.Column(db.Integer, nullable=False, default=0)

    finished_goods_id = db.Column(db.Integer, db.ForeignKey("finished_goods.id"), nullable=True, index=True)

    recipe = db.relationship("Recipe")
    finished_goods = db.relationship("FinishedGoods")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "recipe_id": self.recipe_id,
            "format": self.format,
            "description": self.description,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
            "finished_goods_id": self.finished_goods_id,
        }
