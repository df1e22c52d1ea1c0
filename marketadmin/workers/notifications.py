"""
RQ job: deliver a queued notification.

Run the worker with:
    rq worker marketadmin-notifications --url $REDIS_URL
"""

import logging
import uuid

from sqlalchemy.orm import Session

from marketadmin.database import SessionLocal
from marketadmin.services.notifications.dispatcher import (
    NotificationMessage,
    build_notification,
)

logger = logging.getLogger(__name__)


def deliver_notification(payload: dict) -> str:
    """RQ entry point. Opens its own session."""
    with SessionLocal() as db:
        return deliver_notification_sync(payload, db)


def deliver_notification_sync(payload: dict, db: Session) -> str:
    """Persist one notification on `db`. Returns the Notification id."""
    message = NotificationMessage(
        recipient_id=uuid.UUID(payload["recipient_id"]),
        notification_type=payload["notification_type"],
        title=payload["title"],
        message=payload["message"],
        related_entity_type=payload.get("related_entity_type"),
        related_entity_id=(
            uuid.UUID(payload["related_entity_id"])
            if payload.get("related_entity_id")
            else None
        ),
        metadata=payload.get("metadata") or {},
    )
    notification = build_notification(message)
    db.add(notification)
    db.commit()
    logger.info(
        "Delivered notification %s (%s) to user %s",
        notification.id,
        message.notification_type,
        message.recipient_id,
    )
    return str(notification.id)
