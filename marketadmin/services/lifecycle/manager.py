"""
LifecycleManager: create / update / soft-delete / deactivate / reactivate for
every marketplace entity, driven by an EntityProfile.

Each public operation:
  1. validates its input (ValidationFailed, before any mutation)
  2. loads the row FOR UPDATE (NotFound / EntityDeleted)
  3. for destructive operations, asks the DependencyGuard first and returns a
     blocked LifecycleResult without mutating anything if it objects
  4. mutates, cascades to linked user accounts, and appends exactly one audit
     entry, all inside one scoped transaction (atomic)

Subclasses add entity-specific rules by overriding _before_write / _on_delete
(see ListingModerationFlow, ProductLifecycle, CategoryLifecycle, UserLifecycle).
"""

import logging
import re
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketadmin.models.audit import AuditLogEntry, AuditSeverity, ImpactLevel
from marketadmin.models.marketplace import Market
from marketadmin.models.user import User
from marketadmin.services.audit import logger as audit
from marketadmin.services.context import Actor
from marketadmin.services.errors import (
    Conflict,
    EntityDeleted,
    NotFound,
    ValidationFailed,
)
from marketadmin.services.lifecycle.dependency_guard import (
    DependencyReport,
    GuardedOperation,
    check_dependencies,
)
from marketadmin.services.lifecycle.profiles import EntityProfile
from marketadmin.services.storage.base import StorageBackend, get_storage, validate_image_filename
from marketadmin.services.transaction import atomic

logger = logging.getLogger(__name__)


@dataclass
class LifecycleResult:
    """
    Outcome of one lifecycle operation.

    blocked:      set when the DependencyGuard refused a destructive operation;
                  nothing was mutated in that case
    audit_failed: the mutation committed but its audit entry could not be written
    """

    entity: Any = None
    message: str = ""
    audit_entry: Optional[AuditLogEntry] = None
    audit_failed: bool = False
    blocked: Optional[DependencyReport] = None

    @property
    def success(self) -> bool:
        return self.blocked is None

    @property
    def audit_recorded(self) -> bool:
        return not self.audit_failed


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")
    return slug or "item"


class LifecycleManager:
    def __init__(self, db: Session, profile: EntityProfile):
        self.db = db
        self.profile = profile

    # ── Reads ─────────────────────────────────────────────────────────────────

    def get(self, entity_id: uuid.UUID):
        """Load one entity, deleted or not. Raises NotFound."""
        entity = self.db.get(self.profile.model, entity_id)
        if entity is None:
            raise NotFound(self.profile.entity_type, entity_id)
        return entity

    # ── Create ────────────────────────────────────────────────────────────────

    def create(self, data: dict[str, Any], actor: Actor) -> LifecycleResult:
        if not self.profile.creatable:
            raise ValidationFailed(
                f"{self.profile.entity_type} records cannot be created directly"
            )
        data = self._clean(data, creating=True)
        missing = [f for f in self.profile.required if data.get(f) in (None, "", [])]
        if missing:
            raise ValidationFailed(f"Missing required fields: {', '.join(missing)}")
        if self.profile.requires_markets and not data.get("markets"):
            raise ValidationFailed(
                f"{self.profile.noun.capitalize()}s must operate in at least one market"
            )
        self.check_unique(data)

        entity = self.profile.model()
        with self._translating_integrity_errors(), atomic(self.db):
            self._before_write(entity, data, creating=True)
            self._assign(entity, data, creating=True)
            entity.created_by_id = actor.id
            entity.updated_by_id = actor.id
            self.db.add(entity)
            self.db.flush()
            entry = audit.log_action(
                self.db,
                actor,
                f"{self.profile.noun}_created",
                self.profile.entity_type,
                entity.id,
                description=f"Created {self.profile.noun}: {self.profile.display(entity)}",
                severity=AuditSeverity.MEDIUM,
                impact_level=ImpactLevel.MODERATE,
                metadata={"fields": sorted(data.keys())},
            )

        logger.info("%s %s created by %s", self.profile.entity_type, entity.id, actor.id)
        return LifecycleResult(
            entity=entity,
            message=f"{self.profile.entity_type} created successfully",
            audit_entry=entry,
            audit_failed=entry is None,
        )

    # ── Update ────────────────────────────────────────────────────────────────

    def update(self, entity_id: uuid.UUID, patch: dict[str, Any], actor: Actor) -> LifecycleResult:
        """
        Apply `patch` to a live entity. Writes one audit entry describing every
        changed watched field; a patch that changes no watched field is not audited.
        """
        data = self._clean(patch, creating=False)
        if not data:
            raise ValidationFailed("No updatable fields supplied")
        if self.profile.requires_markets and "markets" in data and not data["markets"]:
            raise ValidationFailed(
                f"{self.profile.noun.capitalize()}s must operate in at least one market"
            )

        with self._translating_integrity_errors(), atomic(self.db):
            entity = self.load_for_update(entity_id)
            if entity.is_deleted:
                raise EntityDeleted(self.profile.entity_type, entity_id, "update")
            self.check_unique(data, exclude_id=entity.id)

            before = self._snapshot(entity)
            self._before_write(entity, data, creating=False)
            self._assign(entity, data, creating=False)
            entity.updated_by_id = actor.id
            self.db.flush()
            after = self._snapshot(entity)

            entry = None
            phrases = audit.describe_changes(before, after, self.profile.watched_labels)
            if phrases:
                changed = [f for f in self.profile.watched_labels if before[f] != after[f]]
                entry = audit.log_action(
                    self.db,
                    actor,
                    f"{self.profile.noun}_updated",
                    self.profile.entity_type,
                    entity.id,
                    description=(
                        f"Updated {self.profile.noun} {self.profile.display(entity)}: "
                        + ", ".join(phrases)
                    ),
                    severity=AuditSeverity.MEDIUM,
                    impact_level=ImpactLevel.MODERATE,
                    changes={
                        "before": {f: before[f] for f in changed},
                        "after": {f: after[f] for f in changed},
                    },
                    metadata={"updated_fields": sorted(data.keys())},
                )

        return LifecycleResult(
            entity=entity,
            message=f"{self.profile.entity_type} updated successfully",
            audit_entry=entry,
            audit_failed=bool(phrases) and entry is None,
        )

    # ── Soft delete ───────────────────────────────────────────────────────────

    def soft_delete(
        self, entity_id: uuid.UUID, actor: Actor, reason: Optional[str] = None
    ) -> LifecycleResult:
        """
        Mark the entity deleted after the DependencyGuard clears it.

        A second call on the same entity raises NotFound: the row lock taken
        here means a concurrent caller sees the committed delete and stops.
        """
        reason = (reason or "").strip() or None
        with atomic(self.db):
            entity = self.load_for_update(entity_id)
            if entity.is_deleted:
                raise NotFound(
                    self.profile.entity_type,
                    entity_id,
                    f"{self.profile.entity_type} is already deleted",
                )
            report = check_dependencies(
                self.db, self.profile.entity_type, entity.id, GuardedOperation.DELETE
            )
            if report.blocking:
                logger.info("Delete of %s %s blocked: %s", self.profile.entity_type, entity.id, report.counts)
                return LifecycleResult(entity=entity, message=report.message, blocked=report)

            now = utcnow()
            self._mark_deleted(entity, actor, reason, now)
            affected_users = self._cascade_to_users(entity, actor, now, reason, delete=True)
            self.db.flush()
            entry = audit.log_action(
                self.db,
                actor,
                f"{self.profile.noun}_deleted",
                self.profile.entity_type,
                entity.id,
                description=f"Deleted {self.profile.noun}: {self.profile.display(entity)}",
                reason=reason,
                severity=AuditSeverity.HIGH,
                impact_level=ImpactLevel.SIGNIFICANT,
                metadata={"deletion_reason": reason, "affected_users": affected_users},
            )

        logger.info("%s %s soft-deleted by %s", self.profile.entity_type, entity.id, actor.id)
        return LifecycleResult(
            entity=entity,
            message=f"{self.profile.entity_type} deleted successfully",
            audit_entry=entry,
            audit_failed=entry is None,
        )

    # ── Deactivate / reactivate ───────────────────────────────────────────────

    def deactivate(self, entity_id: uuid.UUID, actor: Actor, reason: str) -> LifecycleResult:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationFailed(f"A reason is required to deactivate a {self.profile.noun}")

        with atomic(self.db):
            entity = self.load_for_update(entity_id)
            if entity.is_deleted:
                raise EntityDeleted(self.profile.entity_type, entity_id, "deactivate")
            if not entity.is_active:
                raise Conflict(f"{self.profile.entity_type} is already inactive")
            report = check_dependencies(
                self.db, self.profile.entity_type, entity.id, GuardedOperation.DEACTIVATE
            )
            if report.blocking:
                return LifecycleResult(entity=entity, message=report.message, blocked=report)

            now = utcnow()
            entity.is_active = False
            entity.status_updated_by_id = actor.id
            entity.status_updated_at = now
            entity.admin_notes = reason
            entity.updated_by_id = actor.id
            affected_users = self._cascade_to_users(entity, actor, now, reason, delete=False)
            self.db.flush()
            entry = audit.log_action(
                self.db,
                actor,
                f"{self.profile.noun}_deactivated",
                self.profile.entity_type,
                entity.id,
                description=f"Deactivated {self.profile.noun}: {self.profile.display(entity)}",
                reason=reason,
                severity=AuditSeverity.HIGH,
                impact_level=ImpactLevel.MAJOR,
                metadata={"deactivation_reason": reason, "affected_users": affected_users},
            )

        return LifecycleResult(
            entity=entity,
            message=f"{self.profile.entity_type} deactivated successfully",
            audit_entry=entry,
            audit_failed=entry is None,
        )

    def reactivate(
        self, entity_id: uuid.UUID, actor: Actor, reason: Optional[str] = None
    ) -> LifecycleResult:
        """Flip is_active back on. Never touches is_deleted; linked users stay as they are."""
        reason = (reason or "").strip() or None
        with atomic(self.db):
            entity = self.load_for_update(entity_id)
            if entity.is_deleted:
                raise EntityDeleted(self.profile.entity_type, entity_id, "reactivate")
            if entity.is_active:
                raise Conflict(f"{self.profile.entity_type} is already active")

            entity.is_active = True
            entity.status_updated_by_id = actor.id
            entity.status_updated_at = utcnow()
            entity.updated_by_id = actor.id
            if reason:
                entity.admin_notes = reason
            self.db.flush()
            entry = audit.log_action(
                self.db,
                actor,
                f"{self.profile.noun}_reactivated",
                self.profile.entity_type,
                entity.id,
                description=f"Reactivated {self.profile.noun}: {self.profile.display(entity)}",
                reason=reason,
                severity=AuditSeverity.MEDIUM,
                impact_level=ImpactLevel.MODERATE,
            )

        return LifecycleResult(
            entity=entity,
            message=f"{self.profile.entity_type} reactivated successfully",
            audit_entry=entry,
            audit_failed=entry is None,
        )

    # ── Images ────────────────────────────────────────────────────────────────

    def replace_image(
        self,
        entity_id: uuid.UUID,
        data: bytes,
        filename: str,
        actor: Actor,
        storage: Optional[StorageBackend] = None,
    ) -> LifecycleResult:
        """
        Store a new logo/image and point the entity at it through update(), so
        the change is audited. The previous image is removed best-effort.
        """
        field = self.profile.image_field
        if field is None:
            raise ValidationFailed(f"{self.profile.entity_type} has no image field")
        validate_image_filename(filename)
        if not data:
            raise ValidationFailed("Uploaded image is empty")

        entity = self.get(entity_id)
        if entity.is_deleted:
            raise EntityDeleted(self.profile.entity_type, entity_id, "update")
        old_url = getattr(entity, field)

        storage = storage or get_storage()
        new_url = storage.save(data, filename, subfolder=self.profile.plural)
        try:
            result = self.update(entity_id, {field: new_url}, actor)
        except Exception:
            _discard_image(storage, new_url)
            raise

        if old_url and old_url != new_url:
            _discard_image(storage, old_url)
        return result

    # ── Hooks ─────────────────────────────────────────────────────────────────

    def _before_write(self, entity, data: dict[str, Any], creating: bool) -> None:
        """Entity-specific validation against the loaded row. May normalise `data`."""

    def _on_delete(self, entity, actor: Actor, now: datetime) -> None:
        """Entity-specific side effects of a soft delete."""

    # ── Internals ─────────────────────────────────────────────────────────────

    def load_for_update(self, entity_id: uuid.UUID):
        model = self.profile.model
        entity = (
            self.db.query(model)
            .filter(model.id == entity_id)
            .with_for_update()
            .populate_existing()
            .one_or_none()
        )
        if entity is None:
            raise NotFound(self.profile.entity_type, entity_id)
        return entity

    def _clean(self, data: dict[str, Any], creating: bool) -> dict[str, Any]:
        allowed = self.profile.writable | (self.profile.create_only if creating else frozenset())
        unknown = sorted(set(data) - allowed)
        if unknown:
            raise ValidationFailed(f"Unknown or read-only fields: {', '.join(unknown)}")
        cleaned = {}
        for key, value in data.items():
            if isinstance(value, str):
                value = value.strip()
                if key == "email":
                    value = value.lower()
            cleaned[key] = value
        return cleaned

    def check_unique(self, data: dict[str, Any], exclude_id: Optional[uuid.UUID] = None) -> None:
        model = self.profile.model
        for field in self.profile.unique:
            value = data.get(field)
            if value in (None, ""):
                continue
            query = self.db.query(model.id).filter(getattr(model, field) == value)
            if exclude_id is not None:
                query = query.filter(model.id != exclude_id)
            if query.first() is not None:
                label = self.profile.watched_labels.get(field, field)
                raise Conflict(
                    f"{self.profile.entity_type} with this {label} already exists"
                )

    def _assign(self, entity, data: dict[str, Any], creating: bool) -> None:
        for key, value in data.items():
            if key == "markets":
                entity.markets = self.resolve_markets(value)
            else:
                setattr(entity, key, value)
        source = self.profile.slug_source
        if source and (creating or source in data):
            entity.slug = self._unique_slug(
                getattr(entity, source), exclude_id=None if creating else entity.id
            )

    def resolve_markets(self, market_ids: list) -> list[Market]:
        ids = {uuid.UUID(str(m)) for m in market_ids}
        markets = (
            self.db.query(Market)
            .filter(
                Market.id.in_(ids),
                Market.is_active.is_(True),
                Market.is_available.is_(True),
                Market.is_deleted.is_(False),
            )
            .all()
        )
        if len(markets) != len(ids):
            raise ValidationFailed("One or more selected markets are invalid or unavailable")
        return markets

    def _unique_slug(self, name: str, exclude_id: Optional[uuid.UUID]) -> str:
        model = self.profile.model
        base = slugify(name)
        candidate, suffix = base, 2
        while True:
            query = self.db.query(model.id).filter(model.slug == candidate)
            if exclude_id is not None:
                query = query.filter(model.id != exclude_id)
            if query.first() is None:
                return candidate
            candidate = f"{base}-{suffix}"
            suffix += 1

    def _snapshot(self, entity) -> dict[str, Any]:
        return {field: getattr(entity, field) for field in self.profile.watched_labels}

    def _mark_deleted(self, entity, actor: Actor, reason: Optional[str], now: datetime) -> None:
        entity.is_deleted = True
        entity.is_active = False
        entity.deleted_at = now
        entity.deleted_by_id = actor.id
        entity.updated_by_id = actor.id
        entity.admin_notes = reason or f"Deleted by {actor.role}"
        self._on_delete(entity, actor, now)

    def _cascade_to_users(
        self, entity, actor: Actor, now: datetime, reason: Optional[str], delete: bool
    ) -> int:
        """Deactivate (or soft-delete) every live account linked to `entity`."""
        link = self.profile.user_link
        if link is None:
            return 0
        users = (
            self.db.query(User)
            .filter(getattr(User, link) == entity.id, User.is_deleted.is_(False))
            .all()
        )
        verb = "deleted" if delete else "deactivated"
        for user in users:
            user.is_active = False
            user.status_updated_by_id = actor.id
            user.status_updated_at = now
            user.admin_notes = f"Account {verb} with {self.profile.noun}: {reason or 'no reason given'}"
            if delete:
                user.is_deleted = True
                user.deleted_at = now
                user.deleted_by_id = actor.id
        return len(users)

    def _translating_integrity_errors(self):
        return integrity_errors_as_conflict(self.profile.entity_type)


@contextmanager
def integrity_errors_as_conflict(entity_type: str) -> Iterator[None]:
    """Re-raise database uniqueness violations as Conflict."""
    try:
        yield
    except IntegrityError as exc:
        raise Conflict(f"{entity_type} conflicts with an existing record") from exc


def _discard_image(storage: StorageBackend, url: str) -> None:
    try:
        storage.delete(url)
    except OSError as exc:
        logger.warning("Could not delete image %s: %s", url, exc)
