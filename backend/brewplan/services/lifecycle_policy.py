# Overview: Static lifecycle policy tables for batches, orders, and purchase orders.

"""
BrewPlan Lifecycle Policy Tables

================================================================================
PURPOSE: Declare, as data only, which status changes each document allows
================================================================================

STATE MACHINES:

    Batch:
        planned -> brewing -> fermenting -> conditioning -> ready_to_package
                                   \\______________________/ (shortcut edge)
        ready_to_package -> packaged -> completed
        planned/brewing -> cancelled;  brewing..ready_to_package -> dumped

    Order:
        draft -> confirmed -> picking -> dispatched -> delivered -> invoiced -> paid
        draft/confirmed/picking -> cancelled

    PurchaseOrder:
        draft -> sent -> acknowledged -> partially_received -> received
        sent/acknowledged may jump straight to received; anything open -> cancelled

RULES:
1. No transition is implicit. A status missing from a table is terminal.
2. Tables are built once at import and wrapped in MappingProxyType; nothing
   mutates them at runtime.
3. Engine-only targets (PO partially_received) are valid edges but are never
   offered to, or accepted from, a user request. Only the receiving
   reconciler may request them.
================================================================================
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Mapping


class BatchStatus(str, Enum):
    PLANNED = "planned"
    BREWING = "brewing"
    FERMENTING = "fermenting"
    CONDITIONING = "conditioning"
    READY_TO_PACKAGE = "ready_to_package"
    PACKAGED = "packaged"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DUMPED = "dumped"


class OrderStatus(str, Enum):
    DRAFT = "draft"
    CONFIRMED = "confirmed"
    PICKING = "picking"
    DISPATCHED = "dispatched"
    DELIVERED = "delivered"
    INVOICED = "invoiced"
    PAID = "paid"
    CANCELLED = "cancelled"


class PurchaseOrderStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    ACKNOWLEDGED = "acknowledged"
    PARTIALLY_RECEIVED = "partially_received"
    RECEIVED = "received"
    CANCELLED = "cancelled"


# Source of a transition request
SOURCE_USER = "user"
SOURCE_RECONCILER = "reconciler"
SOURCE_SYSTEM = "system"


B = BatchStatus
BATCH_TRANSITIONS: Mapping[BatchStatus, tuple[BatchStatus, ...]] = MappingProxyType({
    B.PLANNED: (B.BREWING, B.CANCELLED),
    B.BREWING: (B.FERMENTING, B.DUMPED, B.CANCELLED),
    B.FERMENTING: (B.CONDITIONING, B.READY_TO_PACKAGE, B.DUMPED),
    B.CONDITIONING: (B.READY_TO_PACKAGE, B.DUMPED),
    B.READY_TO_PACKAGE: (B.PACKAGED, B.DUMPED),
    B.PACKAGED: (B.COMPLETED,),
})

O = OrderStatus
ORDER_TRANSITIONS: Mapping[OrderStatus, tuple[OrderStatus, ...]] = MappingProxyType({
    O.DRAFT: (O.CONFIRMED, O.CANCELLED),
    O.CONFIRMED: (O.PICKING, O.CANCELLED),
    O.PICKING: (O.DISPATCHED, O.CANCELLED),
    O.DISPATCHED: (O.DELIVERED,),
    O.DELIVERED: (O.INVOICED,),
    O.INVOICED: (O.PAID,),
})

P = PurchaseOrderStatus
PURCHASE_ORDER_TRANSITIONS: Mapping[PurchaseOrderStatus, tuple[PurchaseOrderStatus, ...]] = MappingProxyType({
    P.DRAFT: (P.SENT, P.CANCELLED),
    P.SENT: (P.ACKNOWLEDGED, P.PARTIALLY_RECEIVED, P.RECEIVED, P.CANCELLED),
    P.ACKNOWLEDGED: (P.PARTIALLY_RECEIVED, P.RECEIVED, P.CANCELLED),
    P.PARTIALLY_RECEIVED: (P.RECEIVED, P.CANCELLED),
})
del B, O, P


ENGINE_ONLY_TARGETS: Mapping[type, frozenset] = MappingProxyType({
    BatchStatus: frozenset(),
    OrderStatus: frozenset(),
    PurchaseOrderStatus: frozenset({PurchaseOrderStatus.PARTIALLY_RECEIVED}),
})

POLICIES: Mapping[type, Mapping] = MappingProxyType({
    BatchStatus: BATCH_TRANSITIONS,
    OrderStatus: ORDER_TRANSITIONS,
    PurchaseOrderStatus: PURCHASE_ORDER_TRANSITIONS,
})


# A batch holds its vessel only while in one of these
VESSEL_OCCUPYING_STATUSES = frozenset({
    BatchStatus.BREWING,
    BatchStatus.FERMENTING,
    BatchStatus.CONDITIONING,
    BatchStatus.READY_TO_PACKAGE,
})

# Orders whose lines hold finished-goods reservations
RESERVING_ORDER_STATUSES = frozenset({
    OrderStatus.DRAFT,
    OrderStatus.CONFIRMED,
    OrderStatus.PICKING,
    OrderStatus.DISPATCHED,
})

# Orders that count as committed, unfulfilled demand
DEMAND_ORDER_STATUSES = frozenset({
    OrderStatus.CONFIRMED,
    OrderStatus.PICKING,
    OrderStatus.DISPATCHED,
})

# POs that can be received against and whose open lines count as incoming
OPEN_PURCHASE_ORDER_STATUSES = frozenset({
    PurchaseOrderStatus.SENT,
    PurchaseOrderStatus.ACKNOWLEDGED,
    PurchaseOrderStatus.PARTIALLY_RECEIVED,
})


def allowed_targets(status: Enum) -> tuple:
    """Every status reachable from `status` in one step (engine view)."""
    return POLICIES[type(status)].get(status, ())


def user_transition_options(status: Enum) -> tuple:
    """Targets a user may request from `status`; engine-only targets are hidden."""
    hidden = ENGINE_ONLY_TARGETS[type(status)]
    return tuple(t for t in allowed_targets(status) if t not in hidden)


def is_allowed(current: Enum, target: Enum, *, source: str = SOURCE_USER) -> bool:
    if type(current) is not type(target):
        return False
    if target not in allowed_targets(current):
        return False
    if source == SOURCE_USER and target in ENGINE_ONLY_TARGETS[type(target)]:
        return False
    return True


def is_terminal(status: Enum) -> bool:
    return not allowed_targets(status)
