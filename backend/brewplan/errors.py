# Overview: Typed core failures shared by the transition engine, receiving, and the request layer.

"""
BrewPlan core error taxonomy.

Every write path in services/ raises one of these (or validation.ValidationError
for malformed input) after rolling back the session. Routes translate them to
HTTP status codes; services never know about HTTP.

    CoreError
    ├── NotFound               id does not resolve
    ├── InvalidTransition      target status not reachable per policy
    └── PreconditionFailed     policy-legal, but an invariant blocks it
        ├── InvalidState       document is in the wrong status for the operation
        ├── OverReceipt        receipt would exceed the ordered quantity
        └── ConcurrencyConflict  optimistic version mismatch
"""

from __future__ import annotations


class CoreError(Exception):
    """Base class for all domain failures raised by the core."""


class NotFound(CoreError):
    def __init__(self, entity_type: str, entity_id):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} {entity_id} not found")


class InvalidTransition(CoreError):
    def __init__(self, entity_type: str, entity_id, current: str, target: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.current = current
        self.target = target
        super().__init__(
            f"Cannot move {entity_type} {entity_id} from '{current}' to '{target}'"
        )


class PreconditionFailed(CoreError):
    """A transition or edit is legal by policy but blocked by a business invariant."""


class InvalidState(PreconditionFailed):
    """The document's current status does not permit the requested operation."""


class OverReceipt(PreconditionFailed):
    def __init__(self, line_id: int, requested: float, remaining: float):
        self.line_id = line_id
        self.requested = requested
        self.remaining = remaining
        super().__init__(
            f"Cannot receive {requested:g} on line {line_id}: only {remaining:g} remaining"
        )


class ConcurrencyConflict(PreconditionFailed):
    """
    Raised when the row changed underneath the caller.

    Handlers for PreconditionFailed catch it too.
    """
