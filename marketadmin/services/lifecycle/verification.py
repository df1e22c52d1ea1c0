"""
VerificationStateMachine: pending / approved / rejected for Vendors and Buyers.

Every state can move to every other state. A reason is mandatory when the
target is `rejected`, or when leaving `approved` (revocation). The status
change, its tracking fields and the audit entry commit together; approval
notifications to the entity's active users go out only after that commit and
never fail the transition.

    machine = VerificationStateMachine(db, VENDOR)
    result = machine.transition(vendor_id, "approved", actor)
"""

import logging
import uuid
from typing import Optional

from sqlalchemy.orm import Session

from marketadmin.models.audit import AuditSeverity, ImpactLevel
from marketadmin.models.base import VerificationStatus
from marketadmin.models.notification import NotificationType
from marketadmin.models.user import User
from marketadmin.services.audit import logger as audit
from marketadmin.services.context import Actor
from marketadmin.services.errors import EntityDeleted, ValidationFailed
from marketadmin.services.lifecycle.manager import LifecycleManager, LifecycleResult, utcnow
from marketadmin.services.lifecycle.profiles import EntityProfile
from marketadmin.services.notifications.dispatcher import (
    NotificationDispatcher,
    NotificationMessage,
    get_dispatcher,
    notify_safely,
)
from marketadmin.services.transaction import atomic

logger = logging.getLogger(__name__)

# target status -> (action suffix, description verb, success message verb)
_TRANSITIONS = {
    VerificationStatus.APPROVED: ("verified", "Verified", "verified"),
    VerificationStatus.REJECTED: ("verification_revoked", "Rejected verification of", "verification revoked"),
    VerificationStatus.PENDING: ("status_reset", "Reset to pending", "status reset to pending"),
}

_NOTIFICATION_TITLES = {
    VerificationStatus.APPROVED: "{label} Approved",
    VerificationStatus.REJECTED: "{label} Verification Rejected",
    VerificationStatus.PENDING: "{label} Verification Under Review",
}


def reason_required(old_status: str, new_status: str) -> bool:
    return new_status == VerificationStatus.REJECTED or (
        old_status == VerificationStatus.APPROVED and new_status != VerificationStatus.APPROVED
    )


class VerificationStateMachine:
    def __init__(
        self,
        db: Session,
        profile: EntityProfile,
        dispatcher: Optional[NotificationDispatcher] = None,
    ):
        if profile.user_link is None or not hasattr(profile.model, "verification_status"):
            raise ValueError(f"{profile.entity_type} is not a verifiable entity")
        self.db = db
        self.profile = profile
        self._entities = LifecycleManager(db, profile)
        self._dispatcher = dispatcher

    @property
    def dispatcher(self) -> NotificationDispatcher:
        if self._dispatcher is None:
            self._dispatcher = get_dispatcher(self.db)
        return self._dispatcher

    def transition(
        self,
        entity_id: uuid.UUID,
        new_status: str,
        actor: Actor,
        reason: Optional[str] = None,
    ) -> LifecycleResult:
        if new_status not in VerificationStatus.ALL:
            raise ValidationFailed(
                f"Invalid verification status. Must be one of: {', '.join(VerificationStatus.ALL)}"
            )
        reason = (reason or "").strip() or None
        label = self.profile.entity_type

        with atomic(self.db):
            entity = self._entities.load_for_update(entity_id)
            if entity.is_deleted:
                raise EntityDeleted(label, entity_id, "verify")

            old_status = entity.verification_status
            if reason_required(old_status, new_status) and not reason:
                if new_status == VerificationStatus.REJECTED:
                    raise ValidationFailed("Reason is required when rejecting verification")
                raise ValidationFailed("Reason is required when revoking an approved verification")

            previous_notes = entity.admin_notes
            now = utcnow()
            entity.verification_status = new_status
            entity.verification_date = now if new_status == VerificationStatus.APPROVED else None
            entity.status_updated_by_id = actor.id
            entity.status_updated_at = now
            entity.updated_by_id = actor.id
            # Notes are replaced, not appended; the previous value survives in the audit metadata
            entity.admin_notes = reason

            recipients = self._active_users(entity)
            self.db.flush()

            suffix, verb, _ = _TRANSITIONS[new_status]
            entry = audit.log_action(
                self.db,
                actor,
                f"{self.profile.noun}_{suffix}",
                label,
                entity.id,
                description=f"{verb} {self.profile.noun}: {self.profile.display(entity)}",
                reason=reason,
                severity=AuditSeverity.HIGH,
                impact_level=ImpactLevel.SIGNIFICANT,
                changes={
                    "before": {"verification_status": old_status},
                    "after": {"verification_status": new_status},
                },
                metadata={
                    "old_status": old_status,
                    "new_status": new_status,
                    "affected_users": len(recipients),
                    "previous_admin_notes": previous_notes,
                },
            )
            messages = [
                self._notification(user_id, entity, new_status, reason) for user_id in recipients
            ]

        delivered = notify_safely(self.dispatcher, messages)
        logger.info(
            "%s %s verification %s -> %s by %s (%d/%d notified)",
            label,
            entity.id,
            old_status,
            new_status,
            actor.id,
            delivered,
            len(messages),
        )
        return LifecycleResult(
            entity=entity,
            message=f"{label} {_TRANSITIONS[new_status][2]} successfully",
            audit_entry=entry,
            audit_failed=entry is None,
        )

    def _active_users(self, entity) -> list[uuid.UUID]:
        link = getattr(User, self.profile.user_link)
        rows = (
            self.db.query(User.id)
            .filter(link == entity.id, User.is_active.is_(True), User.is_deleted.is_(False))
            .all()
        )
        return [row.id for row in rows]

    def _notification(self, user_id, entity, new_status: str, reason: Optional[str]) -> NotificationMessage:
        name = self.profile.display(entity)
        title = _NOTIFICATION_TITLES[new_status].format(label=self.profile.entity_type)
        if new_status == VerificationStatus.APPROVED:
            body = f"{name} has been verified. You now have full access to the marketplace."
        elif new_status == VerificationStatus.REJECTED:
            body = f"Verification of {name} was rejected. Reason: {reason}"
        else:
            body = f"Verification of {name} is under review again."
            if reason:
                body += f" Reason: {reason}"
        return NotificationMessage(
            recipient_id=user_id,
            notification_type=NotificationType.VERIFICATION_RESULT,
            title=title,
            message=body,
            related_entity_type=self.profile.entity_type,
            related_entity_id=entity.id,
            metadata={"verification_status": new_status},
        )
