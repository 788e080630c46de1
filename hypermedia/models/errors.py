from __future__ import annotations

from typing import Optional


# -----------------------------------------------------------------------------
# Error taxonomy
# -----------------------------------------------------------------------------
class HypermediaError(Exception):
    """Base class for every error raised by the representation engine."""


class NotFound(HypermediaError):
    """No entity exists for the given (type, id)."""

    def __init__(self, type: str, id: str) -> None:
        self.type = type
        self.id = id
        super().__init__(f"Entity not found: {type}/{id}")


class UnknownRelationship(HypermediaError):
    """Relationship name is not declared for the entity's type."""

    def __init__(self, type: str, relationship: str) -> None:
        self.type = type
        self.relationship = relationship
        super().__init__(f"Relationship '{relationship}' is not declared for type '{type}'")


class UnresolvableRelationship(HypermediaError):
    """No URI template is registered for a (type, link name) pair."""

    def __init__(self, type: str, relationship: str) -> None:
        self.type = type
        self.relationship = relationship
        super().__init__(f"No link template registered for '{type}.{relationship}'")


class InvalidIncludePath(HypermediaError):
    """Malformed or too deep include path supplied by the caller."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid include path '{path}': {reason}")


class GraphIntegrityError(HypermediaError, ValueError):
    """Caller-supplied graph data violates a graph invariant."""


# Not raised. Used as the diagnostic code for link-only revisits.
CYCLE_GUARD_TRIGGERED = "CycleGuardTriggered"
