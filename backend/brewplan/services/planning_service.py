# Overview: Service-layer read models for planning; demand, material needs, brew schedule, packaging priority, brew suggestions, purchase timing.

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, asdict, field
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import case, func

from ..extensions import db
from ..models import (
    Batch,
    Customer,
    FinishedGoods,
    InventoryItem,
    Order,
    OrderLine,
    PurchaseOrder,
    Recipe,
    RecipeIngredient,
    Supplier,
    Vessel,
)
from ..time_utils import today, to_iso_date
from .inventory_service import batch_requirements, finished_goods_position, position_for_all
from .lifecycle_policy import BatchStatus, DEMAND_ORDER_STATUSES, OPEN_PURCHASE_ORDER_STATUSES
from .order_service import PICKING_STATUSES


@dataclass(frozen=True)
class ProductDemand:
    recipe_id: int
    recipe_name: str
    format: str
    quantity_demanded: int
    order_count: int
    available: int
    shortfall: int

    @property
    def unfulfillable(self) -> bool:
        return self.shortfall > 0

    def to_dict(self) -> dict:
        data = asdict(self)
        data["unfulfillable"] = self.unfulfillable
        return data


@dataclass(frozen=True)
class DemandView:
    upcoming_orders: list[dict] = field(default_factory=list)
    demand_by_product: list[ProductDemand] = field(default_factory=list)
    unfulfillable: list[ProductDemand] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "upcoming_orders": self.upcoming_orders,
            "demand_by_product": [d.to_dict() for d in self.demand_by_product],
            "unfulfillable": [d.to_dict() for d in self.unfulfillable],
        }


def demand_view(*, as_of: Optional[date] = None) -> DemandView:
    """
    Committed, unfulfilled demand per (recipe, format) against finished goods.

    Orders: confirmed, picking or dispatched, delivering on/after `as_of` or
    undated. Lines already assigned to stock hold a reservation that the
    finished-goods position has subtracted; that reservation is added back
    so the same units are not counted against the demand twice.
    Empty data is an empty view, not an error.
    """
    as_of = as_of or today()
    orders = (
        db.session.query(Order, Customer.name)
        .join(Customer, Customer.id == Order.customer_id)
        .filter(
            Order.status.in_([s.value for s in DEMAND_ORDER_STATUSES]),
            db.or_(Order.delivery_date.is_(None), Order.delivery_date >= as_of),
        )
        .order_by(Order.delivery_date.is_(None), Order.delivery_date.asc(), Order.id.asc())
        .all()
    )

    upcoming = []
    groups: dict[tuple[int, str], dict] = {}
    for order, customer_name in orders:
        upcoming.append({
            "id": order.id,
            "order_number": order.order_number,
            "customer_id": order.customer_id,
            "customer_name": customer_name,
            "status": order.status,
            "delivery_date": to_iso_date(order.delivery_date),
            "total_cents": order.total_cents,
        })
        for line in order.lines:
            group = groups.setdefault(
                (line.recipe_id, line.format),
                {"quantity": 0, "held": 0, "orders": set()},
            )
            group["quantity"] += line.quantity
            group["orders"].add(order.id)
            if line.finished_goods_id is not None:
                group["held"] += line.quantity

    names = dict(
        db.session.query(Recipe.id, Recipe.name).filter(Recipe.id.in_([rid for rid, _ in groups])).all()
    ) if groups else {}

    demand = []
    for (recipe_id, fmt), group in sorted(groups.items(), key=lambda kv: (names.get(kv[0][0], ""), kv[0][1])):
        position = finished_goods_position(recipe_id, fmt)
        available = position.available + group["held"]
        demand.append(
            ProductDemand(
                recipe_id=recipe_id,
                recipe_name=names.get(recipe_id, ""),
                format=fmt,
                quantity_demanded=group["quantity"],
                order_count=len(group["orders"]),
                available=available,
                shortfall=max(0, group["quantity"] - available),
            )
        )

    return DemandView(
        upcoming_orders=upcoming,
        demand_by_product=demand,
        unfulfillable=[d for d in demand if d.unfulfillable],
    )


def materials_requirements(*, as_of: Optional[date] = None) -> list[dict]:
    """
    Raw material needs of planned batches against stock.

    shortfall is what remains uncovered after every planned and brewing
    requirement and every open PO line: max(0, -projected).
    """
    needed: dict[int, float] = defaultdict(float)
    for _batch, item_id, qty in batch_requirements((BatchStatus.PLANNED,)):
        needed[item_id] += qty
    if not needed:
        return []

    positions = {p.item_id: p for p in position_for_all(as_of=as_of, include_archived=True)}
    rows = []
    for item_id, qty in needed.items():
        p = positions[item_id]
        rows.append({
            "inventory_item_id": item_id,
            "inventory_item_name": p.item_name,
            "unit": p.unit,
            "quantity_needed": qty,
            "quantity_on_hand": p.on_hand,
            "quantity_allocated": p.allocated,
            "quantity_available": p.available,
            "quantity_on_order": p.on_order,
            "shortfall": max(0.0, -p.projected),
        })
    rows.sort(key=lambda r: r["inventory_item_name"])
    return rows


SCHEDULE_STATUSES = (
    BatchStatus.PLANNED,
    BatchStatus.BREWING,
    BatchStatus.FERMENTING,
    BatchStatus.CONDITIONING,
    BatchStatus.READY_TO_PACKAGE,
)


def brew_schedule() -> list[dict]:
    """Planned and in-progress batches with their vessel, earliest first."""
    rows = (
        db.session.query(Batch, Recipe.name, Vessel.name)
        .join(Recipe, Recipe.id == Batch.recipe_id)
        .outerjoin(Vessel, Vessel.id == Batch.vessel_id)
        .filter(Batch.status.in_([s.value for s in SCHEDULE_STATUSES]))
        .order_by(Batch.planned_date.is_(None), Batch.planned_date.asc(), Batch.created_at.asc(), Batch.id.asc())
        .all()
    )
    return [
        {
            **batch.to_dict(),
            "recipe_name": recipe_name,
            "vessel_name": vessel_name,
        }
        for batch, recipe_name, vessel_name in rows
    ]


# =============================================================================
# Packaging priority, brew suggestions, purchase timing
# =============================================================================

# Fermentation + packaging lead when a recipe has no estimated_total_days
DEFAULT_BREW_LEAD_DAYS = 21
# Slack between a PO's expected arrival and the brew day that needs it
ORDER_BUFFER_DAYS = 2


@dataclass(frozen=True)
class RecipeOrderDemand:
    recipe_id: int
    quantity: int
    unpicked: int
    earliest_delivery: Optional[date]


def _order_demand_by_recipe() -> dict[int, RecipeOrderDemand]:
    """Units on confirmed and picking orders per recipe; `unpicked` excludes lines already assigned to stock."""
    rows = (
        db.session.query(
            OrderLine.recipe_id,
            func.sum(OrderLine.quantity),
            func.sum(case((OrderLine.finished_goods_id.is_(None), OrderLine.quantity), else_=0)),
            func.min(Order.delivery_date),
        )
        .join(Order, Order.id == OrderLine.order_id)
        .filter(Order.status.in_([s.value for s in PICKING_STATUSES]))
        .group_by(OrderLine.recipe_id)
        .all()
    )
    return {
        recipe_id: RecipeOrderDemand(recipe_id, int(quantity or 0), int(unpicked or 0), earliest)
        for recipe_id, quantity, unpicked, earliest in rows
    }


def packaging_priority(*, as_of: Optional[date] = None) -> list[dict]:
    """
    Batches in ready_to_package, most urgent first.

    Batches whose recipe has unpicked order demand come first, earliest
    delivery first (undated demand after dated). The rest follow, longest
    in tank first. days_in_tank counts from brew_date (0 if never stamped).
    """
    as_of = as_of or today()
    rows = (
        db.session.query(Batch, Recipe.name, Vessel.name)
        .join(Recipe, Recipe.id == Batch.recipe_id)
        .outerjoin(Vessel, Vessel.id == Batch.vessel_id)
        .filter(Batch.status == BatchStatus.READY_TO_PACKAGE.value)
        .all()
    )
    demand = _order_demand_by_recipe()

    ranked = []
    for batch, recipe_name, vessel_name in rows:
        d = demand.get(batch.recipe_id)
        unpicked = d.unpicked if d else 0
        earliest = d.earliest_delivery if d and unpicked else None
        days_in_tank = (as_of - batch.brew_date).days if batch.brew_date else 0
        key = (unpicked == 0, earliest is None, earliest or date.max, -days_in_tank, batch.id)
        ranked.append((key, {
            "batch_id": batch.id,
            "batch_number": batch.batch_number,
            "recipe_id": batch.recipe_id,
            "recipe_name": recipe_name,
            "vessel_id": batch.vessel_id,
            "vessel_name": vessel_name,
            "brew_date": to_iso_date(batch.brew_date),
            "estimated_ready_date": to_iso_date(batch.estimated_ready_date),
            "volume_litres": batch.actual_volume_litres or batch.batch_size_litres,
            "days_in_tank": days_in_tank,
            "order_demand": unpicked,
            "earliest_delivery": to_iso_date(earliest),
        }))
    ranked.sort(key=lambda pair: pair[0])
    return [row for _key, row in ranked]


def suggested_brews(*, as_of: Optional[date] = None) -> list[dict]:
    """
    Recipes with order demand that nothing in stock or in the tanks will meet.

    unmet_demand = unpicked units - free finished goods (on hand - reserved).
    A recipe is suggested when unmet_demand > 0, or when it has demand and
    no batch planned or in progress. latest_brew_date backs off the
    earliest delivery by the recipe's estimated_total_days.
    """
    as_of = as_of or today()
    demand = _order_demand_by_recipe()
    if not demand:
        return []
    recipe_ids = list(demand)

    free_stock = dict(
        db.session.query(
            FinishedGoods.recipe_id,
            func.sum(FinishedGoods.quantity_on_hand - FinishedGoods.quantity_reserved),
        )
        .filter(FinishedGoods.recipe_id.in_(recipe_ids))
        .group_by(FinishedGoods.recipe_id)
        .all()
    )
    active = dict(
        db.session.query(Batch.recipe_id, func.count(Batch.id))
        .filter(
            Batch.recipe_id.in_(recipe_ids),
            Batch.status.in_([s.value for s in SCHEDULE_STATUSES]),
        )
        .group_by(Batch.recipe_id)
        .all()
    )
    recipes = {r.id: r for r in db.session.query(Recipe).filter(Recipe.id.in_(recipe_ids)).all()}

    suggestions = []
    for recipe_id, d in demand.items():
        available = int(free_stock.get(recipe_id) or 0)
        active_count = active.get(recipe_id, 0)
        unmet = max(0, d.unpicked - available)
        if unmet <= 0 and active_count > 0:
            continue

        recipe = recipes[recipe_id]
        latest = None
        if d.earliest_delivery is not None:
            latest = d.earliest_delivery - timedelta(days=recipe.estimated_total_days or DEFAULT_BREW_LEAD_DAYS)
        suggestions.append({
            "recipe_id": recipe_id,
            "recipe_name": recipe.name,
            "recipe_style": recipe.style,
            "demand_quantity": d.quantity,
            "unpicked_quantity": d.unpicked,
            "available_stock": available,
            "unmet_demand": unmet,
            "active_batch_count": active_count,
            "earliest_delivery": to_iso_date(d.earliest_delivery),
            "latest_brew_date": to_iso_date(latest),
            "overdue": latest is not None and latest < as_of,
        })
    suggestions.sort(key=lambda s: (s["latest_brew_date"] is None, s["latest_brew_date"] or "", s["recipe_name"]))
    return suggestions


def _earliest_planned_batch(item_id: int):
    return (
        db.session.query(Batch.planned_date, Batch.batch_number)
        .join(RecipeIngredient, RecipeIngredient.recipe_id == Batch.recipe_id)
        .filter(
            RecipeIngredient.inventory_item_id == item_id,
            Batch.status == BatchStatus.PLANNED.value,
        )
        .order_by(Batch.planned_date.is_(None), Batch.planned_date.asc(), Batch.id.asc())
        .first()
    )


def purchase_timing(*, as_of: Optional[date] = None) -> dict:
    """
    When to order each short material, and what is already on the way.

    items: every materials_requirements() row with a shortfall, plus the
    earliest planned batch that needs it (required_by) and
    order_by = required_by - supplier lead time - ORDER_BUFFER_DAYS.
    order_by is None when either date is unknown.
    pending_deliveries: open purchase orders, earliest expected first.
    """
    as_of = as_of or today()
    items = []
    for row in materials_requirements(as_of=as_of):
        if row["shortfall"] <= 0:
            continue
        item = db.session.get(InventoryItem, row["inventory_item_id"])
        supplier = item.supplier
        first = _earliest_planned_batch(item.id)
        required_by = first.planned_date if first else None

        order_by = None
        if required_by is not None and supplier is not None and supplier.lead_time_days is not None:
            order_by = required_by - timedelta(days=supplier.lead_time_days + ORDER_BUFFER_DAYS)
        items.append({
            **row,
            "required_by": to_iso_date(required_by),
            "order_by": to_iso_date(order_by),
            "overdue": order_by is not None and order_by < as_of,
            "batch_number": first.batch_number if first else None,
            "supplier_id": supplier.id if supplier else None,
            "supplier_name": supplier.name if supplier else None,
            "lead_time_days": supplier.lead_time_days if supplier else None,
        })
    items.sort(key=lambda r: (r["order_by"] is None, r["order_by"] or "", r["inventory_item_name"]))

    pending = (
        db.session.query(PurchaseOrder, Supplier.name)
        .join(Supplier, Supplier.id == PurchaseOrder.supplier_id)
        .filter(PurchaseOrder.status.in_([s.value for s in OPEN_PURCHASE_ORDER_STATUSES]))
        .order_by(
            PurchaseOrder.expected_delivery_date.is_(None),
            PurchaseOrder.expected_delivery_date.asc(),
            PurchaseOrder.id.asc(),
        )
        .all()
    )
    return {
        "items": items,
        "pending_deliveries": [
            {
                "id": po.id,
                "po_number": po.po_number,
                "status": po.status,
                "supplier_name": supplier_name,
                "expected_delivery_date": to_iso_date(po.expected_delivery_date),
                "total_cents": po.total_cents,
            }
            for po, supplier_name in pending
        ],
    }
