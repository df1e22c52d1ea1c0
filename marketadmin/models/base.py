"""
Declarative base and shared column mixins.

Column types are chosen so the same models run on Postgres (deployment) and
SQLite (tests): `Uuid` is native UUID on Postgres, CHAR(32) elsewhere, and
`JSONType` is JSONB on Postgres, JSON elsewhere.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Boolean, DateTime, String, Text, Uuid, false, func, true
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    pass


class UUIDPrimaryKeyMixin:
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class LifecycleMixin:
    """
    Activation, soft-delete and admin tracking columns.

    Actor references are plain UUIDs (User.id of the admin who acted), not
    foreign keys: the acting account may itself be soft-deleted later and the
    reference must survive.

    Invariant: is_deleted implies not is_active.
    """

    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )
    is_deleted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false(), index=True
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    deleted_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)

    created_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    updated_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    status_updated_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, nullable=True
    )
    status_updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    admin_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    @property
    def is_live(self) -> bool:
        return not self.is_deleted


class VerificationStatus:
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    ALL = (PENDING, APPROVED, REJECTED)


class VerifiableMixin:
    """Vendor / Buyer verification columns. verification_date is set iff approved."""

    verification_status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=VerificationStatus.PENDING,
        index=True,
        comment="pending | approved | rejected",
    )
    verification_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


class AdminStatus:
    ACTIVE = "active"
    DISABLED = "disabled"
    DEPRECATED = "deprecated"

    ALL = (ACTIVE, DISABLED, DEPRECATED)


class AvailabilityMixin:
    """
    Admin flag system for reference data (markets, product categories).

    An unavailable row stays live but cannot be attached to new records.
    flag_reason / flagged_by_id / flagged_at are set iff is_available is False.
    """

    is_available: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )
    admin_status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=AdminStatus.ACTIVE,
        comment="active | disabled | deprecated",
    )
    flag_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    flagged_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    flagged_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
