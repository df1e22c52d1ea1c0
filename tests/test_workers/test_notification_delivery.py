"""
Notification delivery: the RQ job body, best-effort dispatch and backend
selection.
"""

import uuid

import pytest

from marketadmin.models.notification import Notification, NotificationType
from marketadmin.services.notifications.dispatcher import (
    InlineNotificationDispatcher,
    NotificationDispatcher,
    NotificationMessage,
    NullNotificationDispatcher,
    QueueNotificationDispatcher,
    get_dispatcher,
    notify_safely,
)
from marketadmin.settings import settings
from marketadmin.workers.notifications import deliver_notification_sync


pytestmark = pytest.mark.usefixtures("db")


class ExplodingDispatcher(NotificationDispatcher):
    def __init__(self):
        self.calls = 0

    def dispatch(self, message):
        self.calls += 1
        raise ConnectionError("redis unavailable")


def _message(recipient_id, title="Verification approved"):
    return NotificationMessage(
        recipient_id=recipient_id,
        notification_type=NotificationType.VERIFICATION_RESULT,
        title=title,
        message="Your business has been verified.",
        related_entity_type="Vendor",
        related_entity_id=uuid.uuid4(),
        metadata={"status": "approved"},
    )


class TestDeliveryJob:
    def test_job_payload_persists_notification(self, db, vendor_user):
        payload = _message(vendor_user.id).to_job_args()

        notification_id = deliver_notification_sync(payload, db)

        notification = db.get(Notification, uuid.UUID(notification_id))
        assert notification.recipient_id == vendor_user.id
        assert notification.title == "Verification approved"
        assert notification.metadata_ == {"status": "approved"}
        assert notification.is_read is False

    def test_job_payload_is_plain_json(self, vendor_user):
        payload = _message(vendor_user.id).to_job_args()

        assert payload["recipient_id"] == str(vendor_user.id)
        assert isinstance(payload["related_entity_id"], str)


class TestNotifySafely:
    def test_failures_are_swallowed(self, vendor_user):
        dispatcher = ExplodingDispatcher()

        delivered = notify_safely(dispatcher, [_message(vendor_user.id), _message(vendor_user.id)])

        assert delivered == 0
        assert dispatcher.calls == 2

    def test_inline_counts_deliveries(self, db, vendor_user):
        delivered = notify_safely(
            InlineNotificationDispatcher(db),
            [_message(vendor_user.id), _message(vendor_user.id, "Account deactivated")],
        )

        assert delivered == 2
        assert db.query(Notification).filter(Notification.recipient_id == vendor_user.id).count() == 2


class TestBackendSelection:
    @pytest.mark.parametrize(
        "backend, expected",
        [
            ("inline", InlineNotificationDispatcher),
            ("rq", QueueNotificationDispatcher),
            ("disabled", NullNotificationDispatcher),
        ],
    )
    def test_configured_backend(self, db, monkeypatch, backend, expected):
        monkeypatch.setattr(settings, "notification_backend", backend)

        assert isinstance(get_dispatcher(db), expected)

    def test_unknown_backend(self, db, monkeypatch):
        monkeypatch.setattr(settings, "notification_backend", "carrier-pigeon")

        with pytest.raises(ValueError, match="Unknown notification backend"):
            get_dispatcher(db)
