# Overview: Pytest coverage for the static lifecycle policy tables.

"""
Lifecycle Policy Tests

The tables are plain data: these tests pin the edges that the rest of the
system relies on (shortcut edges, terminal states, engine-only targets) and
check that the tables cannot be changed at runtime.
"""

import pytest

from brewplan.services.lifecycle_policy import (
    BATCH_TRANSITIONS,
    ORDER_TRANSITIONS,
    POLICIES,
    PURCHASE_ORDER_TRANSITIONS,
    SOURCE_RECONCILER,
    SOURCE_USER,
    BatchStatus,
    OrderStatus,
    PurchaseOrderStatus,
    allowed_targets,
    is_allowed,
    is_terminal,
    user_transition_options,
)


class TestPolicyTables:
    def test_tables_are_read_only(self):
        with pytest.raises(TypeError):
            BATCH_TRANSITIONS[BatchStatus.COMPLETED] = (BatchStatus.PLANNED,)
        with pytest.raises(TypeError):
            POLICIES[OrderStatus] = {}

    @pytest.mark.parametrize("enum_cls", [BatchStatus, OrderStatus, PurchaseOrderStatus])
    def test_targets_stay_within_their_enum(self, enum_cls):
        for current, targets in POLICIES[enum_cls].items():
            assert isinstance(current, enum_cls)
            assert all(isinstance(t, enum_cls) for t in targets)
            assert current not in targets

    def test_terminal_statuses(self):
        assert is_terminal(BatchStatus.COMPLETED)
        assert is_terminal(BatchStatus.CANCELLED)
        assert is_terminal(BatchStatus.DUMPED)
        assert is_terminal(OrderStatus.PAID)
        assert is_terminal(OrderStatus.CANCELLED)
        assert is_terminal(PurchaseOrderStatus.RECEIVED)
        assert is_terminal(PurchaseOrderStatus.CANCELLED)
        assert not is_terminal(BatchStatus.PACKAGED)
        assert allowed_targets(OrderStatus.PAID) == ()

    def test_fermenting_may_skip_conditioning(self):
        assert BatchStatus.READY_TO_PACKAGE in BATCH_TRANSITIONS[BatchStatus.FERMENTING]
        assert BatchStatus.CONDITIONING in BATCH_TRANSITIONS[BatchStatus.FERMENTING]

    def test_planned_batch_cannot_be_dumped(self):
        assert not is_allowed(BatchStatus.PLANNED, BatchStatus.DUMPED)
        assert is_allowed(BatchStatus.PLANNED, BatchStatus.CANCELLED)

    def test_order_cannot_cancel_after_dispatch(self):
        assert is_allowed(OrderStatus.PICKING, OrderStatus.CANCELLED)
        assert not is_allowed(OrderStatus.DISPATCHED, OrderStatus.CANCELLED)
        assert ORDER_TRANSITIONS[OrderStatus.DISPATCHED] == (OrderStatus.DELIVERED,)

    def test_mixed_enum_types_never_allowed(self):
        assert not is_allowed(OrderStatus.DRAFT, PurchaseOrderStatus.SENT)


class TestEngineOnlyTargets:
    def test_partially_received_hidden_from_users(self):
        for status in (PurchaseOrderStatus.SENT, PurchaseOrderStatus.ACKNOWLEDGED):
            assert PurchaseOrderStatus.PARTIALLY_RECEIVED in PURCHASE_ORDER_TRANSITIONS[status]
            assert PurchaseOrderStatus.PARTIALLY_RECEIVED not in user_transition_options(status)

    def test_partially_received_allowed_for_reconciler_only(self):
        current = PurchaseOrderStatus.SENT
        target = PurchaseOrderStatus.PARTIALLY_RECEIVED
        assert not is_allowed(current, target, source=SOURCE_USER)
        assert is_allowed(current, target, source=SOURCE_RECONCILER)

    def test_received_open_to_users(self):
        assert PurchaseOrderStatus.RECEIVED in user_transition_options(PurchaseOrderStatus.PARTIALLY_RECEIVED)
