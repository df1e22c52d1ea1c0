"""
Order lifecycle: creation, charge edits while pending, and status progression.

Status flow (forward only):

    pending_approval -> confirmed -> processing -> ready_for_pickup | out_for_delivery -> delivered

    cancelled: from pending_approval / confirmed / processing, reason required
    refunded:  from confirmed onwards (including delivered)
    cancelled and refunded are terminal.

Orders are never deleted; their history is part of the record.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from marketadmin.models.audit import AuditSeverity, EntityType, ImpactLevel
from marketadmin.models.marketplace import Buyer, Listing, ListingStatus, Vendor
from marketadmin.models.order import (
    DeliveryType,
    Order,
    OrderItem,
    OrderStatus,
    OrderStatusHistory,
)
from marketadmin.services.audit import logger as audit
from marketadmin.services.context import Actor
from marketadmin.services.errors import Conflict, NotFound, ValidationFailed
from marketadmin.services.lifecycle.manager import (
    LifecycleResult,
    integrity_errors_as_conflict,
    utcnow,
)
from marketadmin.services.transaction import atomic

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

# Position along the fulfilment sequence; equal rank = alternative branches
_RANK = {
    OrderStatus.PENDING_APPROVAL: 0,
    OrderStatus.CONFIRMED: 1,
    OrderStatus.PROCESSING: 2,
    OrderStatus.READY_FOR_PICKUP: 3,
    OrderStatus.OUT_FOR_DELIVERY: 3,
    OrderStatus.DELIVERED: 4,
}

_CHARGE_FIELDS = ("delivery_fee", "tax", "discount")


@dataclass
class Totals:
    subtotal: Decimal
    delivery_fee: Decimal
    tax: Decimal
    discount: Decimal
    total_amount: Decimal


def _money(value: Any, field: str) -> Decimal:
    try:
        amount = Decimal(str(value if value is not None else 0))
    except ArithmeticError as exc:
        raise ValidationFailed(f"{field} must be a number") from exc
    if not amount.is_finite():
        raise ValidationFailed(f"{field} must be a finite number")
    if amount < 0:
        raise ValidationFailed(f"{field} must not be negative")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def line_total(item: dict[str, Any]) -> Decimal:
    """quantity x unit_price, or number_of_packs x price_per_pack for pack-based lines."""
    if item.get("is_pack_based"):
        packs = item.get("number_of_packs")
        if not packs or packs <= 0:
            raise ValidationFailed("number_of_packs must be positive for pack-based items")
        return (_money(item.get("price_per_pack"), "price_per_pack") * packs).quantize(CENT)
    try:
        quantity = Decimal(str(item.get("quantity") or 0))
    except ArithmeticError as exc:
        raise ValidationFailed("quantity must be a number") from exc
    if not quantity.is_finite() or quantity <= 0:
        raise ValidationFailed("quantity must be positive")
    return (quantity * _money(item.get("unit_price"), "unit_price")).quantize(
        CENT, rounding=ROUND_HALF_UP
    )


def compute_totals(
    line_totals: list[Decimal],
    delivery_fee: Any = 0,
    tax: Any = 0,
    discount: Any = 0,
) -> Totals:
    """total_amount = subtotal + delivery_fee + tax - discount; never negative."""
    subtotal = sum(line_totals, Decimal("0")).quantize(CENT)
    fee = _money(delivery_fee, "delivery_fee")
    tax_amount = _money(tax, "tax")
    discount_amount = _money(discount, "discount")
    total = subtotal + fee + tax_amount - discount_amount
    if total < 0:
        raise ValidationFailed("Order total cannot be negative; discount exceeds order value")
    return Totals(subtotal, fee, tax_amount, discount_amount, total)


def can_transition(current: str, target: str) -> bool:
    if current in OrderStatus.TERMINAL or current == target:
        return False
    if target == OrderStatus.CANCELLED:
        return current in OrderStatus.CANCELLABLE
    if target == OrderStatus.REFUNDED:
        return _RANK[current] >= _RANK[OrderStatus.CONFIRMED]
    if current == OrderStatus.PROCESSING:
        return target in (OrderStatus.READY_FOR_PICKUP, OrderStatus.OUT_FOR_DELIVERY)
    if _RANK[current] == _RANK[OrderStatus.READY_FOR_PICKUP]:
        return target == OrderStatus.DELIVERED
    return _RANK[target] == _RANK[current] + 1


class OrderLifecycle:
    def __init__(self, db: Session):
        self.db = db

    def get(self, order_id: uuid.UUID) -> Order:
        order = self.db.get(Order, order_id)
        if order is None:
            raise NotFound(EntityType.ORDER, order_id)
        return order

    # ── Create ────────────────────────────────────────────────────────────────

    def create(self, data: dict[str, Any], actor: Actor) -> LifecycleResult:
        items = data.get("items") or []
        if not items:
            raise ValidationFailed("An order must contain at least one item")
        delivery_type = data.get("delivery_type", DeliveryType.DELIVERY)
        if delivery_type not in DeliveryType.ALL:
            raise ValidationFailed(f"Invalid delivery type. Must be one of: {', '.join(DeliveryType.ALL)}")

        buyer = self._live_party(Buyer, data.get("buyer_id"), EntityType.BUYER)
        vendor = self._live_party(Vendor, data.get("vendor_id"), EntityType.VENDOR)
        lines = [self._build_line(vendor, n, item) for n, item in enumerate(items, start=1)]
        totals = compute_totals(
            [line.total_price for line in lines],
            data.get("delivery_fee"),
            data.get("tax"),
            data.get("discount"),
        )

        with integrity_errors_as_conflict(EntityType.ORDER), atomic(self.db):
            now = utcnow()
            order = Order(
                order_number=self._next_order_number(now),
                buyer_id=buyer.id,
                vendor_id=vendor.id,
                placed_by_id=data.get("placed_by_id") or actor.id,
                status=OrderStatus.PENDING_APPROVAL,
                delivery_type=delivery_type,
                payment_method=data.get("payment_method"),
                notes=data.get("notes"),
                items=lines,
            )
            self._apply_totals(order, totals)
            self.db.add(order)
            self.db.flush()
            self._record_status(order, OrderStatus.PENDING_APPROVAL, actor, "Order placed", now)
            entry = audit.log_action(
                self.db,
                actor,
                "order_created",
                EntityType.ORDER,
                order.id,
                description=f"Created order {order.order_number} for {buyer.name}",
                severity=AuditSeverity.MEDIUM,
                impact_level=ImpactLevel.MODERATE,
                metadata={
                    "order_number": order.order_number,
                    "buyer_id": buyer.id,
                    "vendor_id": vendor.id,
                    "item_count": len(lines),
                    "total_amount": totals.total_amount,
                },
            )

        logger.info("Order %s created by %s", order.order_number, actor.id)
        return LifecycleResult(
            entity=order,
            message="Order created successfully",
            audit_entry=entry,
            audit_failed=entry is None,
        )

    # ── Charges ───────────────────────────────────────────────────────────────

    def update_charges(self, order_id: uuid.UUID, patch: dict[str, Any], actor: Actor) -> LifecycleResult:
        """Replace items and/or fees while the order is still pending approval."""
        unknown = sorted(set(patch) - {"items", *_CHARGE_FIELDS})
        if unknown:
            raise ValidationFailed(f"Unknown or read-only fields: {', '.join(unknown)}")
        if not patch:
            raise ValidationFailed("No updatable fields supplied")

        with atomic(self.db):
            order = self._load_for_update(order_id)
            if order.status != OrderStatus.PENDING_APPROVAL:
                raise Conflict("Order can only be modified while pending approval")

            before = {"subtotal": order.subtotal, "total_amount": order.total_amount}
            if "items" in patch:
                if not patch["items"]:
                    raise ValidationFailed("An order must contain at least one item")
                vendor = self._live_party(Vendor, order.vendor_id, EntityType.VENDOR)
                # Old lines must be gone before new ones reuse their line numbers
                order.items.clear()
                self.db.flush()
                order.items = [
                    self._build_line(vendor, n, item) for n, item in enumerate(patch["items"], start=1)
                ]
                self.db.flush()
            totals = compute_totals(
                [item.total_price for item in order.items],
                patch.get("delivery_fee", order.delivery_fee),
                patch.get("tax", order.tax),
                patch.get("discount", order.discount),
            )
            self._apply_totals(order, totals)
            self.db.flush()
            entry = audit.log_action(
                self.db,
                actor,
                "order_updated",
                EntityType.ORDER,
                order.id,
                description=(
                    f"Updated order {order.order_number}: total changed from "
                    f"'{before['total_amount']}' to '{order.total_amount}'"
                ),
                severity=AuditSeverity.MEDIUM,
                impact_level=ImpactLevel.MODERATE,
                changes={
                    "before": before,
                    "after": {"subtotal": order.subtotal, "total_amount": order.total_amount},
                },
                metadata={"updated_fields": sorted(patch.keys())},
            )

        return LifecycleResult(
            entity=order,
            message="Order updated successfully",
            audit_entry=entry,
            audit_failed=entry is None,
        )

    # ── Status ────────────────────────────────────────────────────────────────

    def update_status(
        self,
        order_id: uuid.UUID,
        status: str,
        actor: Actor,
        reason: Optional[str] = None,
    ) -> LifecycleResult:
        if status not in OrderStatus.ALL or status == OrderStatus.PENDING_APPROVAL:
            raise ValidationFailed(f"Invalid target status: {status!r}")
        reason = (reason or "").strip() or None
        if status in OrderStatus.TERMINAL and not reason:
            raise ValidationFailed(f"Reason is required when an order is {status}")

        with atomic(self.db):
            order = self._load_for_update(order_id)
            old_status = order.status
            if not can_transition(old_status, status):
                raise Conflict(f"Cannot change order status from {old_status} to {status}")

            now = utcnow()
            order.status = status
            if status == OrderStatus.CONFIRMED:
                order.approved_by_id = actor.id
                order.approved_at = now
                order.confirmed_at = now
            elif status == OrderStatus.DELIVERED:
                order.delivered_at = now
            elif status == OrderStatus.CANCELLED:
                order.cancelled_at = now
                order.cancellation_reason = reason
            self._record_status(order, status, actor, reason, now)
            self.db.flush()

            if status == OrderStatus.CONFIRMED:
                action, severity = "order_approved", AuditSeverity.MEDIUM
            elif status in OrderStatus.TERMINAL:
                action, severity = f"order_{status}", AuditSeverity.HIGH
            else:
                action, severity = "order_status_changed", AuditSeverity.LOW
            entry = audit.log_action(
                self.db,
                actor,
                action,
                EntityType.ORDER,
                order.id,
                description=f"Order {order.order_number} status changed from '{old_status}' to '{status}'",
                reason=reason,
                severity=severity,
                impact_level=ImpactLevel.MODERATE,
                changes={"before": {"status": old_status}, "after": {"status": status}},
                metadata={"old_status": old_status, "new_status": status},
            )

        return LifecycleResult(
            entity=order,
            message=f"Order status updated to {status}",
            audit_entry=entry,
            audit_failed=entry is None,
        )

    def cancel(self, order_id: uuid.UUID, actor: Actor, reason: str) -> LifecycleResult:
        return self.update_status(order_id, OrderStatus.CANCELLED, actor, reason)

    # ── Internals ─────────────────────────────────────────────────────────────

    def _load_for_update(self, order_id: uuid.UUID) -> Order:
        order = (
            self.db.query(Order)
            .filter(Order.id == order_id)
            .with_for_update()
            .populate_existing()
            .one_or_none()
        )
        if order is None:
            raise NotFound(EntityType.ORDER, order_id)
        return order

    def _live_party(self, model, entity_id, label: str):
        if entity_id is None:
            raise ValidationFailed(f"{label.lower()}_id is required")
        party = self.db.get(model, entity_id)
        if party is None or party.is_deleted:
            raise ValidationFailed(f"{label} {entity_id} does not exist")
        if not party.is_active:
            raise ValidationFailed(f"{label} {entity_id} is inactive")
        return party

    def _build_line(self, vendor: Vendor, line_number: int, item: dict[str, Any]) -> OrderItem:
        listing = self.db.get(Listing, item.get("listing_id"))
        if listing is None or listing.is_deleted:
            raise ValidationFailed(f"Line {line_number}: listing does not exist")
        if listing.vendor_id != vendor.id:
            raise ValidationFailed(f"Line {line_number}: listing belongs to another vendor")
        if listing.status != ListingStatus.ACTIVE:
            raise ValidationFailed(f"Line {line_number}: listing is not active")

        priced = dict(item)
        if priced.get("unit_price") is None:
            priced["unit_price"] = listing.price_per_unit
        return OrderItem(
            line_number=line_number,
            listing_id=listing.id,
            product_id=listing.product_id,
            product_name=listing.product.name,
            quantity=Decimal(str(priced.get("quantity") or 0)),
            unit=priced.get("unit") or listing.unit,
            unit_price=_money(priced["unit_price"], "unit_price"),
            is_pack_based=bool(priced.get("is_pack_based")),
            number_of_packs=priced.get("number_of_packs"),
            price_per_pack=priced.get("price_per_pack"),
            total_price=line_total(priced),
        )

    def _apply_totals(self, order: Order, totals: Totals) -> None:
        order.subtotal = totals.subtotal
        order.delivery_fee = totals.delivery_fee
        order.tax = totals.tax
        order.discount = totals.discount
        order.total_amount = totals.total_amount

    def _next_order_number(self, now: datetime) -> str:
        prefix = f"ORD-{now:%Y%m%d}-"
        latest = (
            self.db.query(Order.order_number)
            .filter(Order.order_number.like(f"{prefix}%"))
            # numeric order: longer sequence numbers sort after 9999
            .order_by(func.length(Order.order_number).desc(), Order.order_number.desc())
            .first()
        )
        sequence = int(latest.order_number.rsplit("-", 1)[1]) + 1 if latest else 1
        return f"{prefix}{sequence:04d}"

    def _record_status(
        self, order: Order, status: str, actor: Actor, reason: Optional[str], now: datetime
    ) -> None:
        self.db.add(
            OrderStatusHistory(
                order_id=order.id,
                status=status,
                changed_by_id=actor.id,
                reason=reason,
                changed_at=now,
            )
        )
