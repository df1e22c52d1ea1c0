"""
Orders, their line items and status history.

Money fields are Numeric (never float). total_amount is derived:
subtotal + delivery_fee + tax - discount, recomputed by the order lifecycle
whenever items or charges change.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    false,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketadmin.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from marketadmin.models.marketplace import Buyer, Vendor


class OrderStatus:
    PENDING_APPROVAL = "pending_approval"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    READY_FOR_PICKUP = "ready_for_pickup"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"

    ALL = (
        PENDING_APPROVAL,
        CONFIRMED,
        PROCESSING,
        READY_FOR_PICKUP,
        OUT_FOR_DELIVERY,
        DELIVERED,
        CANCELLED,
        REFUNDED,
    )
    # Not yet fulfilled: block deletion/deactivation of the parties involved
    INCOMPLETE = (PENDING_APPROVAL, CONFIRMED, PROCESSING)
    # Committed but not started: block deletion of listings / users
    OPEN = (PENDING_APPROVAL, CONFIRMED)
    CANCELLABLE = (PENDING_APPROVAL, CONFIRMED, PROCESSING)
    TERMINAL = (CANCELLED, REFUNDED)


class DeliveryType:
    PICKUP = "pickup"
    DELIVERY = "delivery"

    ALL = (PICKUP, DELIVERY)


class Order(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "orders"

    # ORD-YYYYMMDD-NNNN, assigned once at creation
    order_number: Mapped[str] = mapped_column(
        String(32), nullable=False, unique=True, index=True
    )

    buyer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("buyers.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    vendor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("vendors.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    placed_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, nullable=True, index=True
    )
    approved_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, nullable=True, index=True
    )

    status: Mapped[str] = mapped_column(
        String(24),
        nullable=False,
        default=OrderStatus.PENDING_APPROVAL,
        index=True,
    )

    # ── Money ───────────────────────────────────────────────────────────────
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    delivery_fee: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    tax: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    discount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))

    delivery_type: Mapped[str] = mapped_column(
        String(16), nullable=False, default=DeliveryType.DELIVERY
    )
    payment_method: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ── Status stamps ───────────────────────────────────────────────────────
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Relationships
    buyer: Mapped["Buyer"] = relationship("Buyer")
    vendor: Mapped["Vendor"] = relationship("Vendor")
    items: Mapped[list["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.line_number",
    )
    status_history: Mapped[list["OrderStatusHistory"]] = relationship(
        "OrderStatusHistory",
        back_populates="order",
        order_by="OrderStatusHistory.changed_at",
    )

    def __repr__(self) -> str:
        return f"<Order number={self.order_number!r} status={self.status!r}>"


class OrderItem(Base, UUIDPrimaryKeyMixin):
    __tablename__ = "order_items"
    __table_args__ = (
        UniqueConstraint("order_id", "line_number", name="uq_order_item_line"),
    )

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)

    listing_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("listings.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False
    )
    # Snapshot so renamed/deleted products still read correctly on old orders
    product_name: Mapped[str] = mapped_column(String(100), nullable=False)

    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    unit: Mapped[str] = mapped_column(String(16), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    is_pack_based: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    number_of_packs: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    price_per_pack: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)

    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    order: Mapped["Order"] = relationship("Order", back_populates="items")

    def __repr__(self) -> str:
        return f"<OrderItem line={self.line_number} product={self.product_name!r}>"


class OrderStatusHistory(Base, UUIDPrimaryKeyMixin):
    """Append-only trail of status changes for one order."""

    __tablename__ = "order_status_history"

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(24), nullable=False)
    changed_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    order: Mapped["Order"] = relationship("Order", back_populates="status_history")

    def __repr__(self) -> str:
        return f"<OrderStatusHistory status={self.status!r}>"
