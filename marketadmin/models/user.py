"""
User accounts: admins, vendor staff, buyer owners and buyer managers.
"""

import uuid
from typing import TYPE_CHECKING, Optional

from sqlalchemy import ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketadmin.models.base import (
    Base,
    LifecycleMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)

if TYPE_CHECKING:
    from marketadmin.models.marketplace import Buyer, Vendor


class UserRole:
    ADMIN = "admin"
    VENDOR = "vendor"
    BUYER_OWNER = "buyer_owner"
    BUYER_MANAGER = "buyer_manager"

    ALL = (ADMIN, VENDOR, BUYER_OWNER, BUYER_MANAGER)
    BUYER_ROLES = (BUYER_OWNER, BUYER_MANAGER)


class User(Base, UUIDPrimaryKeyMixin, TimestampMixin, LifecycleMixin):
    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(
        String(256), nullable=False, unique=True, index=True
    )
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, unique=True)
    hashed_password: Mapped[str] = mapped_column(String(256), nullable=False)
    role: Mapped[str] = mapped_column(
        String(32), nullable=False, comment="admin | vendor | buyer_owner | buyer_manager"
    )

    # Set for vendor role; null otherwise
    vendor_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("vendors.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    # Set for buyer_owner / buyer_manager roles; null otherwise
    buyer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("buyers.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Relationships
    vendor: Mapped[Optional["Vendor"]] = relationship(
        "Vendor", back_populates="users", foreign_keys=[vendor_id]
    )
    buyer: Mapped[Optional["Buyer"]] = relationship(
        "Buyer", back_populates="users", foreign_keys=[buyer_id]
    )

    def __repr__(self) -> str:
        return f"<User email={self.email!r} role={self.role!r}>"
