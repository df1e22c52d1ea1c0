"""
AuditLogEntry: the append-only admin audit log.

This table is append-only. The application never issues UPDATE or DELETE
against it; rows leave only through retention expiry
(scripts/purge_audit_log.py, driven by expires_at).

created_at comes from the DB server_default, never from application code.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from marketadmin.models.base import Base, JSONType


class EntityType:
    MARKET = "Market"
    VENDOR = "Vendor"
    BUYER = "Buyer"
    CATEGORY = "Category"
    PRODUCT = "Product"
    LISTING = "Listing"
    ORDER = "Order"
    USER = "User"


class AuditSeverity:
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    ALL = (LOW, MEDIUM, HIGH, CRITICAL)


class ImpactLevel:
    NONE = "none"
    MINOR = "minor"
    MODERATE = "moderate"
    SIGNIFICANT = "significant"
    MAJOR = "major"

    ALL = (NONE, MINOR, MODERATE, SIGNIFICANT, MAJOR)


class AuditStatus:
    SUCCESS = "success"
    FAILED = "failed"
    PARTIAL = "partial"


class AuditLogEntry(Base):
    """
    Immutable record of one administrative action.

    entity_type + entity_id: the thing acted on. entity_id is NULL only for
        batch entries (bulk_listing_*), which carry the ids in metadata.
    action: snake_case verb phrase, e.g. "vendor_verified", "listing_flagged"
    actor_*: who did it
    changes: {"before": {...}, "after": {...}} for field-level diffs
    metadata_: free-form context (counts, old/new status, batch totals)
    """

    __tablename__ = "audit_log_entries"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )

    # ── Who ──────────────────────────────────────────────────────────────────
    actor_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, nullable=True, index=True, comment="User.id; NULL for system actions"
    )
    actor_role: Mapped[str] = mapped_column(String(32), nullable=False)

    # ── What ─────────────────────────────────────────────────────────────────
    action: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    entity_type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        index=True,
        comment="Vendor | Buyer | Market | Product | Listing | Order | User",
    )
    entity_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)

    description: Mapped[str] = mapped_column(String(1000), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    severity: Mapped[str] = mapped_column(
        String(16), nullable=False, default=AuditSeverity.MEDIUM, index=True
    )
    impact_level: Mapped[str] = mapped_column(
        String(16), nullable=False, default=ImpactLevel.MINOR
    )
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=AuditStatus.SUCCESS
    )
    error_message: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    changes: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    metadata_: Mapped[dict] = mapped_column(
        "metadata", JSONType, nullable=False, default=dict
    )

    # ── When ─────────────────────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )

    def __repr__(self) -> str:
        return (
            f"<AuditLogEntry action={self.action!r} "
            f"entity={self.entity_type}:{self.entity_id} "
            f"actor={self.actor_role}:{self.actor_id}>"
        )
