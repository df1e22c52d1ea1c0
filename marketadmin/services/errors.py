"""
Error taxonomy for the admin core.

Every error carries a stable machine-readable `code` and the HTTP status the
API layer renders it with (see the exception handlers in marketadmin.main).

A dependency-blocked destructive operation is NOT an error: it comes back as a
LifecycleResult with `blocked` set, because the caller is expected to act on
the counts and suggestions it carries.
"""

from typing import Any


class MarketAdminError(Exception):
    """Base class for all errors raised by the admin core."""

    code = "error"
    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFound(MarketAdminError):
    """Entity id unknown (or already deleted, for delete-style mutations)."""

    code = "not_found"
    status_code = 404

    def __init__(self, entity_type: str, entity_id: Any, message: str | None = None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(message or f"{entity_type} not found with id of {entity_id}")


class ValidationFailed(MarketAdminError):
    """Malformed input or a missing required reason. Raised before any mutation."""

    code = "validation_failed"
    status_code = 422


class Conflict(MarketAdminError):
    """Uniqueness violation or an illegal state transition."""

    code = "conflict"
    status_code = 409


class EntityDeleted(Conflict):
    """Attempt to mutate a soft-deleted entity."""

    code = "entity_deleted"

    def __init__(self, entity_type: str, entity_id: Any, verb: str = "update"):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"Cannot {verb} deleted {entity_type.lower()}")


class Forbidden(MarketAdminError):
    """The entity's current state does not allow the requested operation."""

    code = "forbidden"
    status_code = 403
