"""
Availability flag for reference data (markets, product categories).

An admin can take a live row out of circulation without deactivating it:
is_available=False keeps existing links intact but stops the row being
attached to anything new. Disabling needs a reason, which is kept on the row
alongside who flagged it and when.
"""

import uuid
from typing import Optional

from marketadmin.models.audit import AuditSeverity, ImpactLevel
from marketadmin.models.base import AdminStatus
from marketadmin.services.audit import logger as audit
from marketadmin.services.context import Actor
from marketadmin.services.errors import EntityDeleted, ValidationFailed
from marketadmin.services.lifecycle.manager import LifecycleManager, LifecycleResult, utcnow
from marketadmin.services.transaction import atomic


class AvailabilityLifecycle(LifecycleManager):
    """LifecycleManager for profiles whose model carries AvailabilityMixin."""

    def set_availability(
        self,
        entity_id: uuid.UUID,
        is_available: bool,
        actor: Actor,
        reason: Optional[str] = None,
    ) -> LifecycleResult:
        """Flag the row unavailable (reason required) or clear the flag."""
        noun = self.profile.noun
        reason = (reason or "").strip() or None
        if not is_available and not reason:
            raise ValidationFailed(f"Reason is required when disabling {noun} availability")

        with atomic(self.db):
            entity = self.load_for_update(entity_id)
            if entity.is_deleted:
                raise EntityDeleted(self.profile.entity_type, entity_id, "update")

            previous = entity.is_available
            entity.is_available = is_available
            entity.updated_by_id = actor.id
            if is_available:
                entity.admin_status = AdminStatus.ACTIVE
                entity.flag_reason = None
                entity.flagged_by_id = None
                entity.flagged_at = None
                action, verb = f"{noun}_unflagged", "Enabled"
            else:
                entity.admin_status = AdminStatus.DISABLED
                entity.flag_reason = reason
                entity.flagged_by_id = actor.id
                entity.flagged_at = utcnow()
                action, verb = f"{noun}_flagged", "Disabled"
            self.db.flush()
            entry = audit.log_action(
                self.db,
                actor,
                action,
                self.profile.entity_type,
                entity.id,
                description=f"{verb} {noun} availability: {self.profile.display(entity)}",
                reason=reason,
                severity=AuditSeverity.MEDIUM,
                impact_level=ImpactLevel.MODERATE,
                changes={
                    "before": {"is_available": previous},
                    "after": {"is_available": is_available},
                },
            )

        return LifecycleResult(
            entity=entity,
            message=(
                f"{noun.capitalize()} availability "
                f"{'enabled' if is_available else 'disabled'} successfully"
            ),
            audit_entry=entry,
            audit_failed=entry is None,
        )
