"""
VerificationStateMachine tests: transitions, reason rules, audit entries and
post-commit notifications.
"""

import uuid

import pytest

from marketadmin.models.notification import Notification, NotificationType
from marketadmin.services.errors import EntityDeleted, NotFound, ValidationFailed
from marketadmin.services.lifecycle.manager import LifecycleManager
from marketadmin.services.lifecycle.profiles import BUYER, MARKET, VENDOR
from marketadmin.services.lifecycle.verification import VerificationStateMachine, reason_required
from marketadmin.services.notifications.dispatcher import (
    NotificationDispatcher,
    NullNotificationDispatcher,
)


pytestmark = pytest.mark.usefixtures("db")


class RecordingDispatcher(NotificationDispatcher):
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    def dispatch(self, message):
        if self.fail:
            raise ConnectionError("mail relay down")
        self.sent.append(message)


@pytest.fixture
def machine(db):
    return VerificationStateMachine(db, VENDOR, NullNotificationDispatcher())


class TestTransitions:
    def test_approve_sets_verification_date(self, machine, actor, vendor, audit_entries):
        result = machine.transition(vendor.id, "approved", actor)

        assert result.entity.verification_status == "approved"
        assert result.entity.verification_date is not None
        assert result.entity.status_updated_by_id == actor.id
        assert result.message == "Vendor verified successfully"
        [entry] = audit_entries(vendor.id, "vendor_verified")
        assert entry.changes == {
            "before": {"verification_status": "pending"},
            "after": {"verification_status": "approved"},
        }

    def test_reject_requires_reason(self, machine, actor, vendor):
        with pytest.raises(ValidationFailed, match="rejecting"):
            machine.transition(vendor.id, "rejected", actor)

    def test_reject_with_reason(self, machine, actor, vendor, audit_entries):
        result = machine.transition(vendor.id, "rejected", actor, "Trade license expired")

        assert result.entity.verification_status == "rejected"
        assert result.entity.verification_date is None
        assert result.entity.admin_notes == "Trade license expired"
        [entry] = audit_entries(vendor.id, "vendor_verification_revoked")
        assert entry.reason == "Trade license expired"

    def test_revoking_approval_requires_reason(self, machine, actor, vendor):
        machine.transition(vendor.id, "approved", actor)

        with pytest.raises(ValidationFailed, match="revoking"):
            machine.transition(vendor.id, "pending", actor)

    def test_revoke_to_pending_clears_date(self, machine, actor, vendor):
        machine.transition(vendor.id, "approved", actor)

        result = machine.transition(vendor.id, "pending", actor, "Documents under re-review")

        assert result.entity.verification_status == "pending"
        assert result.entity.verification_date is None

    def test_rejected_back_to_pending_needs_no_reason(self, machine, actor, vendor):
        machine.transition(vendor.id, "rejected", actor, "Blurry documents")

        result = machine.transition(vendor.id, "pending", actor)

        assert result.entity.verification_status == "pending"

    def test_admin_notes_replaced_and_previous_kept_in_audit(self, machine, actor, vendor, audit_entries):
        machine.transition(vendor.id, "rejected", actor, "First reason")
        machine.transition(vendor.id, "rejected", actor, "Second reason")

        assert vendor.admin_notes == "Second reason"
        entries = audit_entries(vendor.id, "vendor_verification_revoked")
        notes = sorted(e.metadata_["previous_admin_notes"] or "" for e in entries)
        assert notes == ["", "First reason"]

    def test_invalid_status(self, machine, actor, vendor):
        with pytest.raises(ValidationFailed, match="Invalid verification status"):
            machine.transition(vendor.id, "verified", actor)

    def test_deleted_vendor(self, machine, db, actor, vendor):
        LifecycleManager(db, VENDOR).soft_delete(vendor.id, actor)

        with pytest.raises(EntityDeleted):
            machine.transition(vendor.id, "approved", actor)

    def test_unknown_vendor(self, machine, actor):
        with pytest.raises(NotFound):
            machine.transition(uuid.uuid4(), "approved", actor)

    def test_markets_are_not_verifiable(self, db):
        with pytest.raises(ValueError):
            VerificationStateMachine(db, MARKET)


class TestNotifications:
    def test_approval_notifies_active_users(self, db, actor, vendor, vendor_user):
        dispatcher = RecordingDispatcher()

        VerificationStateMachine(db, VENDOR, dispatcher).transition(vendor.id, "approved", actor)

        [message] = dispatcher.sent
        assert message.recipient_id == vendor_user.id
        assert message.title == "Vendor Approved"
        assert message.notification_type == NotificationType.VERIFICATION_RESULT

    def test_inactive_users_are_skipped(self, db, actor, vendor, vendor_user):
        vendor_user.is_active = False
        db.commit()
        dispatcher = RecordingDispatcher()

        result = VerificationStateMachine(db, VENDOR, dispatcher).transition(vendor.id, "approved", actor)

        assert dispatcher.sent == []
        assert result.audit_entry.metadata_["affected_users"] == 0

    def test_delivery_failure_does_not_fail_transition(self, db, actor, vendor, vendor_user):
        result = VerificationStateMachine(db, VENDOR, RecordingDispatcher(fail=True)).transition(
            vendor.id, "approved", actor
        )

        assert result.success is True
        assert result.entity.verification_status == "approved"

    def test_inline_backend_writes_notification_rows(self, db, actor, buyer, buyer_owner):
        VerificationStateMachine(db, BUYER).transition(buyer.id, "rejected", actor, "Missing trade license")

        [notification] = db.query(Notification).filter(Notification.recipient_id == buyer_owner.id).all()
        assert notification.title == "Buyer Verification Rejected"
        assert "Missing trade license" in notification.message
        assert notification.related_entity_id == buyer.id


@pytest.mark.parametrize(
    "old, new, required",
    [
        ("pending", "approved", False),
        ("pending", "rejected", True),
        ("approved", "pending", True),
        ("approved", "rejected", True),
        ("rejected", "pending", False),
        ("rejected", "approved", False),
        ("approved", "approved", False),
    ],
)
def test_reason_required(old, new, required):
    assert reason_required(old, new) is required
