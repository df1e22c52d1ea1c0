"""
Audit logger: the only way to write AuditLogEntry rows.

Rules enforced here:
  - created_at is always server-set (DB default), never passed by application code
  - metadata and changes are always plain JSON (no ORM objects, UUIDs or Decimals)
  - All writes go through log_action(); nothing else instantiates AuditLogEntry
  - The write runs in a SAVEPOINT of the caller's transaction: it commits with
    the primary mutation, but a failed audit write only rolls back itself

A failed write is logged at ERROR level and reported to the caller as a None
return. It is never fatal to the mutation being audited.
"""

import json
import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketadmin.models.audit import AuditLogEntry, AuditSeverity, AuditStatus, ImpactLevel
from marketadmin.services.context import Actor
from marketadmin.settings import settings

logger = logging.getLogger(__name__)


def log_action(
    db: Session,
    actor: Actor,
    action: str,
    entity_type: str,
    entity_id: Optional[uuid.UUID],
    description: str,
    reason: Optional[str] = None,
    severity: str = AuditSeverity.MEDIUM,
    impact_level: str = ImpactLevel.MINOR,
    changes: Optional[dict[str, Any]] = None,
    metadata: Optional[dict[str, Any]] = None,
    status: str = AuditStatus.SUCCESS,
) -> Optional[AuditLogEntry]:
    """
    Append one audit entry inside the caller's transaction.

    Args:
        db:           SQLAlchemy session (caller owns the outer transaction)
        actor:        who performed the action
        action:       snake_case verb phrase (e.g. "vendor_verified")
        entity_type:  "Vendor", "Listing", ...
        entity_id:    id of the entity; None only for batch entries
        description:  human-readable summary, truncated to 1000 chars
        reason:       admin-supplied justification, truncated to 500 chars
        changes:      {"before": {...}, "after": {...}}
        metadata:     free-form context, must be JSON-serializable after coercion

    Returns the flushed entry, or None if the write failed.
    """
    try:
        with db.begin_nested():
            entry = AuditLogEntry(
                actor_id=actor.id,
                actor_role=actor.role,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                description=description[:1000],
                reason=reason[:500] if reason else None,
                severity=severity,
                impact_level=impact_level,
                status=status,
                changes=_safe_payload(changes) if changes else None,
                metadata_=_safe_payload(metadata or {}),
                expires_at=datetime.now(timezone.utc)
                + timedelta(days=settings.audit_retention_days),
                # created_at is intentionally NOT set here; the DB server_default owns it
            )
            db.add(entry)
        return entry
    except (SQLAlchemyError, TypeError, ValueError) as exc:
        logger.error(
            "Failed to write audit entry %r for %s:%s - %s",
            action,
            entity_type,
            entity_id,
            exc,
        )
        return None


def _safe_payload(payload: dict) -> dict:
    """
    Ensure payload is JSON-serializable.
    Converts UUID, datetime/date and Decimal to strings; anything else raises TypeError.
    """

    def default(obj: Any) -> Any:
        if isinstance(obj, uuid.UUID):
            return str(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Decimal):
            return str(obj)
        raise TypeError(f"Object of type {type(obj)} is not JSON serializable")

    # Round-trip through JSON to strip any non-serializable types
    return json.loads(json.dumps(payload, default=default))


# ── Description helpers ───────────────────────────────────────────────────────


def describe_changes(before: dict[str, Any], after: dict[str, Any], labels: dict[str, str]) -> list[str]:
    """
    One phrase per changed field, in `labels` order:
        "business name changed from 'Old' to 'New'"
    """
    phrases = []
    for field, label in labels.items():
        if field in before and before[field] != after.get(field):
            phrases.append(f"{label} changed from '{_display(before[field])}' to '{_display(after.get(field))}'")
    return phrases


def _display(value: Any) -> str:
    return "" if value is None else str(value)


# ── Convenience wrappers for common entries ───────────────────────────────────


def log_bulk_action(
    db: Session,
    actor: Actor,
    action: str,
    entity_type: str,
    entity_ids: list[uuid.UUID],
    success_count: int,
    failed_count: int,
    action_data: Optional[dict[str, Any]] = None,
    reason: Optional[str] = None,
) -> Optional[AuditLogEntry]:
    """One entry for a whole batch. entity_id stays NULL; ids go in metadata."""
    if failed_count == 0:
        status = AuditStatus.SUCCESS
    elif success_count == 0:
        status = AuditStatus.FAILED
    else:
        status = AuditStatus.PARTIAL
    return log_action(
        db,
        actor,
        action,
        entity_type,
        None,
        description=(
            f"{action}: {len(entity_ids)} {entity_type.lower()}s processed, "
            f"{success_count} succeeded, {failed_count} failed"
        ),
        reason=reason,
        severity=AuditSeverity.MEDIUM,
        impact_level=ImpactLevel.MODERATE,
        metadata={
            "batch_size": len(entity_ids),
            "entity_ids": entity_ids,
            "success_count": success_count,
            "failed_count": failed_count,
            "action_data": action_data or {},
        },
        status=status,
    )
