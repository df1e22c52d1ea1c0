"""
Notification: in-app message to a user, written after the triggering
mutation has committed.
"""

import uuid
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, String, Uuid, false
from sqlalchemy.orm import Mapped, mapped_column

from marketadmin.models.base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin


class NotificationType:
    VERIFICATION_RESULT = "verification_result"
    ACCOUNT_STATUS = "account_status"


class DeliveryStatus:
    PENDING = "pending"
    DELIVERED = "delivered"
    FAILED = "failed"


class Notification(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "notifications"

    recipient_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    notification_type: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(String(1000), nullable=False)

    related_entity_type: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    related_entity_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    metadata_: Mapped[dict] = mapped_column(
        "metadata", JSONType, nullable=False, default=dict
    )

    is_read: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    delivery_status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=DeliveryStatus.DELIVERED
    )

    def __repr__(self) -> str:
        return f"<Notification type={self.notification_type!r} to={self.recipient_id}>"
