# Overview: Service-layer operations for suppliers, customers, and inventory items.

from __future__ import annotations

from ..errors import NotFound
from ..extensions import db
from ..models import Customer, InventoryItem, ItemCategory, Supplier, Unit
from ..validation import parse_enum, require_cents, require_text


def create_supplier(*, name: str, contact_name: str | None = None, email: str | None = None,
                    phone: str | None = None, lead_time_days: int | None = None) -> Supplier:
    try:
        supplier = Supplier(
            name=require_text(name, field="name"),
            contact_name=contact_name,
            email=email,
            phone=phone,
            lead_time_days=lead_time_days,
        )
        db.session.add(supplier)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return supplier


def create_customer(*, name: str, customer_type: str = "other", contact_name: str | None = None,
                    email: str | None = None, phone: str | None = None, address: str | None = None) -> Customer:
    try:
        customer = Customer(
            name=require_text(name, field="name"),
            customer_type=customer_type,
            contact_name=contact_name,
            email=email,
            phone=phone,
            address=address,
        )
        db.session.add(customer)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return customer


def create_inventory_item(
    *,
    name: str,
    unit,
    category=ItemCategory.OTHER,
    unit_cost_cents: int | None = None,
    reorder_point: float | None = None,
    reorder_qty: float | None = None,
    supplier_id: int | None = None,
    notes: str | None = None,
) -> InventoryItem:
    try:
        item = InventoryItem(
            name=require_text(name, field="name"),
            unit=parse_enum(Unit, unit, field="unit").value,
            category=parse_enum(ItemCategory, category, field="category").value,
            unit_cost_cents=None if unit_cost_cents is None else require_cents(unit_cost_cents, field="unit_cost_cents"),
            reorder_point=reorder_point,
            reorder_qty=reorder_qty,
            supplier_id=supplier_id,
            notes=notes,
        )
        db.session.add(item)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return item


def archive_inventory_item(item_id: int) -> InventoryItem:
    item = db.session.get(InventoryItem, item_id)
    if item is None:
        raise NotFound("InventoryItem", item_id)
    item.is_archived = True
    db.session.commit()
    return item
