"""
DependencyGuard: counts live dependents that block a destructive operation.

Pure read. Counts are re-derived from the database on every call and never
cached, so a report always reflects the state at the moment it was taken.

    report = check_dependencies(db, EntityType.VENDOR, vendor_id)
    if report.blocking:
        ...  # report.counts, report.suggestions
"""

import uuid
from collections.abc import Callable
from dataclasses import dataclass, field

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from marketadmin.models.audit import EntityType
from marketadmin.models.marketplace import (
    Listing,
    ListingStatus,
    Product,
    ProductCategory,
    Vendor,
    vendor_markets,
)
from marketadmin.models.order import Order, OrderItem, OrderStatus


class GuardedOperation:
    DELETE = "delete"
    DEACTIVATE = "deactivate"


@dataclass
class DependencyReport:
    entity_type: str
    entity_id: uuid.UUID
    operation: str
    counts: dict[str, int] = field(default_factory=dict)
    suggestions: list[str] = field(default_factory=list)

    @property
    def blocking(self) -> bool:
        return any(count > 0 for count in self.counts.values())

    @property
    def message(self) -> str:
        if not self.blocking:
            return f"{self.entity_type} has no blocking dependencies"
        parts = [
            f"{count} {name.replace('_', ' ')}"
            for name, count in self.counts.items()
            if count > 0
        ]
        return (
            f"Cannot {self.operation} {self.entity_type.lower()}: "
            f"it has {', '.join(parts)}"
        )

    def as_dict(self) -> dict:
        return {
            "blocking": self.blocking,
            "counts": dict(self.counts),
            "suggestions": list(self.suggestions),
        }


# ── Counters ──────────────────────────────────────────────────────────────────

Counter = Callable[[Session, uuid.UUID], int]


def _vendor_incomplete_orders(db: Session, vendor_id: uuid.UUID) -> int:
    return (
        db.query(func.count(Order.id))
        .filter(Order.vendor_id == vendor_id, Order.status.in_(OrderStatus.INCOMPLETE))
        .scalar()
    )


def _vendor_active_listings(db: Session, vendor_id: uuid.UUID) -> int:
    return (
        db.query(func.count(Listing.id))
        .filter(
            Listing.vendor_id == vendor_id,
            Listing.status == ListingStatus.ACTIVE,
            Listing.is_deleted.is_(False),
        )
        .scalar()
    )


def _buyer_incomplete_orders(db: Session, buyer_id: uuid.UUID) -> int:
    return (
        db.query(func.count(Order.id))
        .filter(Order.buyer_id == buyer_id, Order.status.in_(OrderStatus.INCOMPLETE))
        .scalar()
    )


def _market_vendors(db: Session, market_id: uuid.UUID) -> int:
    return (
        db.query(func.count(Vendor.id))
        .join(vendor_markets, vendor_markets.c.vendor_id == Vendor.id)
        .filter(vendor_markets.c.market_id == market_id, Vendor.is_deleted.is_(False))
        .scalar()
    )


def _product_live_listings(db: Session, product_id: uuid.UUID) -> int:
    return (
        db.query(func.count(Listing.id))
        .filter(
            Listing.product_id == product_id,
            Listing.status != ListingStatus.DISCONTINUED,
            Listing.is_deleted.is_(False),
        )
        .scalar()
    )


def _category_products(db: Session, category_id: uuid.UUID) -> int:
    return (
        db.query(func.count(Product.id))
        .filter(Product.category_id == category_id, Product.is_deleted.is_(False))
        .scalar()
    )


def _category_subcategories(db: Session, category_id: uuid.UUID) -> int:
    return (
        db.query(func.count(ProductCategory.id))
        .filter(ProductCategory.parent_id == category_id, ProductCategory.is_deleted.is_(False))
        .scalar()
    )


def _listing_open_orders(db: Session, listing_id: uuid.UUID) -> int:
    return (
        db.query(func.count(func.distinct(Order.id)))
        .join(OrderItem, OrderItem.order_id == Order.id)
        .filter(OrderItem.listing_id == listing_id, Order.status.in_(OrderStatus.OPEN))
        .scalar()
    )


def _user_open_orders(db: Session, user_id: uuid.UUID) -> int:
    return (
        db.query(func.count(Order.id))
        .filter(
            or_(Order.placed_by_id == user_id, Order.approved_by_id == user_id),
            Order.status.in_(OrderStatus.OPEN),
        )
        .scalar()
    )


# ── Rules: (entity_type, operation) -> (named counters, suggestions) ──────────

_BUYER_SUGGESTIONS = [
    "Complete all pending orders first",
    "Contact the buyer to resolve ongoing orders",
    "Use deactivation if you need to preserve incomplete order data",
]
_MARKET_SUGGESTIONS = [
    "Move vendors to another market first",
    "Or deactivate this market instead of deleting",
]
_PRODUCT_SUGGESTIONS = [
    "Discontinue all active listings first",
    "Or use soft delete to preserve data integrity",
]
_CATEGORY_SUGGESTIONS = [
    "Move products to another category first",
    "Or delete all products in this category",
    "Move or delete subcategories before removing their parent",
]
_LISTING_SUGGESTIONS = [
    "Wait for pending orders to be fulfilled or cancelled",
    "Set the listing to inactive to stop new orders",
]
_USER_SUGGESTIONS = [
    "Complete or reassign the user's pending orders first",
    "Deactivate the user instead to preserve order history",
]

_RULES: dict[tuple[str, str], tuple[list[tuple[str, Counter]], list[str]]] = {
    (EntityType.VENDOR, GuardedOperation.DELETE): (
        [
            ("incomplete_orders", _vendor_incomplete_orders),
            ("active_listings", _vendor_active_listings),
        ],
        [
            "Complete all pending orders first",
            "Deactivate all active listings",
            "Contact vendor to resolve ongoing operations",
        ],
    ),
    (EntityType.VENDOR, GuardedOperation.DEACTIVATE): (
        [
            ("active_listings", _vendor_active_listings),
            ("pending_orders", _vendor_incomplete_orders),
        ],
        [
            "Deactivate all active listings first",
            "Complete or cancel pending orders",
        ],
    ),
    (EntityType.BUYER, GuardedOperation.DELETE): (
        [("incomplete_orders", _buyer_incomplete_orders)],
        _BUYER_SUGGESTIONS,
    ),
    (EntityType.BUYER, GuardedOperation.DEACTIVATE): (
        [("incomplete_orders", _buyer_incomplete_orders)],
        _BUYER_SUGGESTIONS,
    ),
    (EntityType.MARKET, GuardedOperation.DELETE): (
        [("vendors", _market_vendors)],
        _MARKET_SUGGESTIONS,
    ),
    (EntityType.MARKET, GuardedOperation.DEACTIVATE): (
        [("vendors", _market_vendors)],
        _MARKET_SUGGESTIONS,
    ),
    (EntityType.PRODUCT, GuardedOperation.DELETE): (
        [("active_listings", _product_live_listings)],
        _PRODUCT_SUGGESTIONS,
    ),
    (EntityType.PRODUCT, GuardedOperation.DEACTIVATE): (
        [("active_listings", _product_live_listings)],
        _PRODUCT_SUGGESTIONS,
    ),
    (EntityType.CATEGORY, GuardedOperation.DELETE): (
        [("products", _category_products), ("subcategories", _category_subcategories)],
        _CATEGORY_SUGGESTIONS,
    ),
    (EntityType.CATEGORY, GuardedOperation.DEACTIVATE): (
        [("products", _category_products), ("subcategories", _category_subcategories)],
        _CATEGORY_SUGGESTIONS,
    ),
    (EntityType.LISTING, GuardedOperation.DELETE): (
        [("active_orders", _listing_open_orders)],
        _LISTING_SUGGESTIONS,
    ),
    (EntityType.LISTING, GuardedOperation.DEACTIVATE): (
        [("active_orders", _listing_open_orders)],
        _LISTING_SUGGESTIONS,
    ),
    (EntityType.USER, GuardedOperation.DELETE): (
        [("active_orders", _user_open_orders)],
        _USER_SUGGESTIONS,
    ),
    (EntityType.USER, GuardedOperation.DEACTIVATE): (
        [("active_orders", _user_open_orders)],
        _USER_SUGGESTIONS,
    ),
}


def check_dependencies(
    db: Session,
    entity_type: str,
    entity_id: uuid.UUID,
    operation: str = GuardedOperation.DELETE,
) -> DependencyReport:
    """
    Count the live dependents of one entity for `operation`.

    Raises KeyError for an (entity_type, operation) pair without rules; callers
    only guard the pairs listed in _RULES.
    """
    counters, suggestions = _RULES[(entity_type, operation)]
    counts = {name: int(counter(db, entity_id) or 0) for name, counter in counters}
    report = DependencyReport(
        entity_type=entity_type,
        entity_id=entity_id,
        operation=operation,
        counts=counts,
    )
    if report.blocking:
        report.suggestions = list(suggestions)
    return report
