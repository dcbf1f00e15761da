# Overview: Service-layer operations for lifecycle; the generic status transition engine.

"""
BrewPlan Transition Engine

================================================================================
PURPOSE: One code path for every status change on Batch, Order, PurchaseOrder
================================================================================

ALGORITHM (transition()):
    1. Load the entity FOR UPDATE                       -> NotFound
    2. target == current                                -> no-op success
    3. Optional client version check                    -> ConcurrencyConflict
    4. target not in policy[current]                    -> InvalidTransition
       (engine-only targets requested by a user count as not in policy)
    5. Entity preconditions                             -> PreconditionFailed
    6. Status write + in-transaction side effects, in registration order
    7. Commit (StaleDataError -> ConcurrencyConflict). Any failure before
       this point rolls the whole session back: no partial transition.
    8. Post-commit hooks for (entity type, target), synchronously

HANDLERS:
    Each entity module (batch_service, order_service, purchasing_service)
    registers a TransitionHandler describing its model, status enum,
    preconditions, side effects and post-commit hooks. The engine knows
    nothing entity-specific.

RULES:
1. Side effects must be idempotent: each checks the state it is about to
   write and does nothing if it is already there.
2. Re-requesting the status an entity is already in is success, not an error,
   and runs no side effects or hooks.
3. Post-commit hooks run after the status change is durable. A failing hook
   is logged and its own writes rolled back; it never un-does the transition.
4. commit=False lets a caller (the receiving reconciler) fold the transition
   into its own transaction. That caller owns commit, rollback and
   run_deferred_hooks().
================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from flask import current_app
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConcurrencyConflict, InvalidTransition, NotFound
from ..extensions import db
from ..validation import parse_enum
from .concurrency import check_expected_version, commit_or_conflict, lock_for_update
from .lifecycle_policy import SOURCE_USER, is_allowed, user_transition_options


# Entity type keys
BATCH = "batch"
ORDER = "order"
PURCHASE_ORDER = "purchase_order"

_PENDING_HOOKS_KEY = "brewplan_pending_transition_hooks"


@dataclass
class TransitionContext:
    entity_type: str
    entity: object
    previous: Enum
    target: Enum
    source: str = SOURCE_USER
    performed_by: Optional[str] = None


Hook = Callable[[TransitionContext], None]


@dataclass
class TransitionHandler:
    entity_type: str
    label: str
    model: type
    status_enum: type
    preconditions: list[Hook] = field(default_factory=list)
    side_effects: list[Hook] = field(default_factory=list)
    post_commit: list[Hook] = field(default_factory=list)


_HANDLERS: dict[str, TransitionHandler] = {}


def register_handler(handler: TransitionHandler) -> TransitionHandler:
    _HANDLERS[handler.entity_type] = handler
    return handler


def get_handler(entity_type: str) -> TransitionHandler:
    # Entity modules register themselves on import
    from . import batch_service, order_service, purchasing_service  # noqa: F401

    try:
        return _HANDLERS[entity_type]
    except KeyError:
        raise ValueError(f"Unknown entity type '{entity_type}'")


def _load_for_update(handler: TransitionHandler, entity_id: int):
    entity = lock_for_update(db.session.query(handler.model).filter_by(id=entity_id)).first()
    if entity is None:
        raise NotFound(handler.label, entity_id)
    return entity


def transition(
    entity_type: str,
    entity_id: int,
    target_status,
    *,
    source: str = SOURCE_USER,
    expected_version: int | None = None,
    performed_by: str | None = None,
    commit: bool = True,
):
    """
    Move an entity to `target_status`.

    Returns the updated entity. Raises NotFound, ValidationError (unknown
    status string), InvalidTransition, PreconditionFailed or
    ConcurrencyConflict.
    """
    handler = get_handler(entity_type)
    target = parse_enum(handler.status_enum, target_status)
    label = f"{handler.label} {entity_id}"

    try:
        entity = _load_for_update(handler, entity_id)

        # A retried request whose first attempt landed is already satisfied
        current = handler.status_enum(entity.status)
        if current == target:
            if commit:
                db.session.commit()
            return entity

        check_expected_version(entity, expected_version, label)
        if not is_allowed(current, target, source=source):
            raise InvalidTransition(handler.label, entity_id, current.value, target.value)

        ctx = TransitionContext(
            entity_type=entity_type,
            entity=entity,
            previous=current,
            target=target,
            source=source,
            performed_by=performed_by,
        )
        for check in handler.preconditions:
            check(ctx)

        entity.status = target.value
        for effect in handler.side_effects:
            effect(ctx)

        try:
            db.session.flush()
        except StaleDataError as exc:
            raise ConcurrencyConflict(f"{label} was modified concurrently; reload and retry") from exc

        if commit:
            commit_or_conflict(label)
    except Exception:
        if commit:
            db.session.rollback()
        raise

    current_app.logger.info(
        "%s: %s -> %s (source=%s)", label, current.value, target.value, source
    )

    if commit:
        _run_post_commit_hooks(handler, ctx)
    else:
        db.session.info.setdefault(_PENDING_HOOKS_KEY, []).append(ctx)
    return entity


def _run_post_commit_hooks(handler: TransitionHandler, ctx: TransitionContext) -> None:
    for hook in handler.post_commit:
        try:
            hook(ctx)
        except Exception:
            db.session.rollback()
            current_app.logger.exception(
                "Post-commit hook %s failed for %s %s -> %s",
                getattr(hook, "__name__", hook),
                handler.label,
                ctx.entity.id,
                ctx.target.value,
            )


def run_deferred_hooks() -> None:
    """Run hooks of transitions applied with commit=False. Call after committing."""
    pending = db.session.info.pop(_PENDING_HOOKS_KEY, [])
    for ctx in pending:
        _run_post_commit_hooks(get_handler(ctx.entity_type), ctx)


def discard_deferred_hooks() -> None:
    """Drop hooks of transitions whose enclosing transaction was rolled back."""
    db.session.info.pop(_PENDING_HOOKS_KEY, None)


def transition_options(entity_type: str, entity_id: int) -> list[str]:
    """Statuses a user may request next (engine-only targets hidden)."""
    handler = get_handler(entity_type)
    entity = db.session.get(handler.model, entity_id)
    if entity is None:
        raise NotFound(handler.label, entity_id)
    return [s.value for s in user_transition_options(handler.status_enum(entity.status))]


def transition_batch(batch_id: int, target_status, **kwargs):
    return transition(BATCH, batch_id, target_status, **kwargs)


def transition_order(order_id: int, target_status, **kwargs):
    return transition(ORDER, order_id, target_status, **kwargs)


def transition_purchase_order(po_id: int, target_status, **kwargs):
    return transition(PURCHASE_ORDER, po_id, target_status, **kwargs)
