"""
NotificationDispatcher: delivers user-facing messages after a mutation commits.

Dispatch is best-effort. Callers invoke it only after their transaction has
committed, and a failure here never rolls back or fails the mutation; the
helper `notify_safely` logs and swallows delivery errors.

Backends (NOTIFICATION_BACKEND):
  inline    write Notification rows through the caller's session
  rq        enqueue a delivery job on Redis for the worker
  disabled  log and drop
"""

import abc
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy.orm import Session

from marketadmin.models.notification import DeliveryStatus, Notification
from marketadmin.services.transaction import atomic

logger = logging.getLogger(__name__)


@dataclass
class NotificationMessage:
    recipient_id: uuid.UUID
    notification_type: str
    title: str
    message: str
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[uuid.UUID] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_job_args(self) -> dict[str, Any]:
        """Plain-JSON form for the RQ job payload."""
        return {
            "recipient_id": str(self.recipient_id),
            "notification_type": self.notification_type,
            "title": self.title,
            "message": self.message,
            "related_entity_type": self.related_entity_type,
            "related_entity_id": str(self.related_entity_id) if self.related_entity_id else None,
            "metadata": self.metadata,
        }


class NotificationDispatcher(abc.ABC):
    @abc.abstractmethod
    def dispatch(self, message: NotificationMessage) -> None:
        """Deliver one message. May raise; callers wrap with notify_safely."""


class InlineNotificationDispatcher(NotificationDispatcher):
    """Writes the Notification row in its own short transaction on `db`."""

    def __init__(self, db: Session):
        self.db = db

    def dispatch(self, message: NotificationMessage) -> None:
        with atomic(self.db):
            self.db.add(build_notification(message))


class QueueNotificationDispatcher(NotificationDispatcher):
    """Hands delivery to the RQ worker (marketadmin.workers.notifications)."""

    def dispatch(self, message: NotificationMessage) -> None:
        from marketadmin.workers.queue import enqueue_notification  # avoid circular import

        enqueue_notification(message.to_job_args())


class NullNotificationDispatcher(NotificationDispatcher):
    def dispatch(self, message: NotificationMessage) -> None:
        logger.debug("Notifications disabled; dropping %r for %s", message.title, message.recipient_id)


def build_notification(message: NotificationMessage) -> Notification:
    return Notification(
        recipient_id=message.recipient_id,
        notification_type=message.notification_type,
        title=message.title,
        message=message.message,
        related_entity_type=message.related_entity_type,
        related_entity_id=message.related_entity_id,
        metadata_=message.metadata,
        delivery_status=DeliveryStatus.DELIVERED,
    )


def notify_safely(dispatcher: NotificationDispatcher, messages: list[NotificationMessage]) -> int:
    """
    Dispatch each message, logging and skipping failures.
    Returns the number delivered.
    """
    delivered = 0
    for message in messages:
        try:
            dispatcher.dispatch(message)
            delivered += 1
        except Exception as exc:  # delivery must never surface to the admin caller
            logger.warning(
                "Notification %r to user %s failed: %s",
                message.title,
                message.recipient_id,
                exc,
            )
    return delivered


def get_dispatcher(db: Session) -> NotificationDispatcher:
    """Factory, returns the configured dispatcher."""
    from marketadmin.settings import settings

    if settings.notification_backend == "inline":
        return InlineNotificationDispatcher(db)
    if settings.notification_backend == "rq":
        return QueueNotificationDispatcher()
    if settings.notification_backend == "disabled":
        return NullNotificationDispatcher()
    raise ValueError(f"Unknown notification backend: {settings.notification_backend!r}")
