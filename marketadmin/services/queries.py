"""
Read paths: typed filter builders for the admin list endpoints.

Each filter is a dataclass with one optional field per supported filter; the
routers take them as FastAPI dependencies, so every field is a query
parameter. Values are validated on construction (ValidationFailed), and
apply() turns the filter into SQLAlchemy criteria. Reads never mutate.
"""

import math
import uuid
from dataclasses import dataclass
from typing import Any, ClassVar, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session

from marketadmin.models.base import VerificationStatus
from marketadmin.models.marketplace import (
    Buyer,
    BuyerType,
    Listing,
    ListingStatus,
    Market,
    Product,
    ProductCategory,
    Vendor,
    vendor_markets,
)
from marketadmin.models.order import Order, OrderStatus
from marketadmin.models.user import User, UserRole
from marketadmin.services.errors import ValidationFailed

MAX_PAGE_SIZE = 100


@dataclass
class Page:
    items: list
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def meta(self) -> dict[str, int]:
        return {"total": self.total, "page": self.page, "limit": self.limit, "pages": self.pages}


@dataclass
class ListFilter:
    page: int = 1
    limit: int = 20
    sort_by: str = "created_at"
    sort_order: str = "desc"

    model: ClassVar[Any] = None
    sort_fields: ClassVar[tuple] = ("created_at", "updated_at")
    search_fields: ClassVar[tuple] = ()
    soft_deletable: ClassVar[bool] = True

    def __post_init__(self):
        if self.page < 1:
            raise ValidationFailed("page must be 1 or greater")
        if not 1 <= self.limit <= MAX_PAGE_SIZE:
            raise ValidationFailed(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        if self.sort_by not in self.sort_fields:
            raise ValidationFailed(f"sort_by must be one of: {', '.join(self.sort_fields)}")
        if self.sort_order not in ("asc", "desc"):
            raise ValidationFailed("sort_order must be 'asc' or 'desc'")

    def apply(self, query: Query) -> Query:
        return query

    def run(self, db: Session, include_deleted: bool = False) -> Page:
        query = db.query(self.model)
        if self.soft_deletable and not include_deleted:
            query = query.filter(self.model.is_deleted.is_(False))
        search = getattr(self, "search", None)
        if search and self.search_fields:
            pattern = f"%{_escape_like(search.strip())}%"
            query = query.filter(
                or_(*[getattr(self.model, f).ilike(pattern, escape="\\") for f in self.search_fields])
            )
        query = self.apply(query)

        total = query.order_by(None).count()
        column = getattr(self.model, self.sort_by)
        query = query.order_by(column.asc() if self.sort_order == "asc" else column.desc())
        items = query.offset((self.page - 1) * self.limit).limit(self.limit).all()
        return Page(items=items, total=total, page=self.page, limit=self.limit)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _check_choice(value: Optional[str], choices: tuple, name: str) -> None:
    if value is not None and value not in choices:
        raise ValidationFailed(f"{name} must be one of: {', '.join(choices)}")


@dataclass
class VendorFilter(ListFilter):
    status: Optional[str] = None
    is_active: Optional[bool] = None
    search: Optional[str] = None
    market_id: Optional[uuid.UUID] = None
    platform_owned: Optional[bool] = None

    model: ClassVar[Any] = Vendor
    sort_fields: ClassVar[tuple] = ("created_at", "updated_at", "business_name", "verification_date")
    search_fields: ClassVar[tuple] = ("business_name", "owner_name", "email", "phone")

    def __post_init__(self):
        super().__post_init__()
        _check_choice(self.status, VerificationStatus.ALL, "status")

    def apply(self, query: Query) -> Query:
        if self.status:
            query = query.filter(Vendor.verification_status == self.status)
        if self.is_active is not None:
            query = query.filter(Vendor.is_active.is_(self.is_active))
        if self.market_id:
            query = query.join(vendor_markets, vendor_markets.c.vendor_id == Vendor.id).filter(
                vendor_markets.c.market_id == self.market_id
            )
        if self.platform_owned is not None:
            query = query.filter(Vendor.is_platform_owned.is_(self.platform_owned))
        return query


@dataclass
class BuyerFilter(ListFilter):
    status: Optional[str] = None
    is_active: Optional[bool] = None
    search: Optional[str] = None
    buyer_type: Optional[str] = None

    model: ClassVar[Any] = Buyer
    sort_fields: ClassVar[tuple] = ("created_at", "updated_at", "name", "verification_date")
    search_fields: ClassVar[tuple] = ("name", "owner_name", "email", "phone")

    def __post_init__(self):
        super().__post_init__()
        _check_choice(self.status, VerificationStatus.ALL, "status")
        _check_choice(self.buyer_type, BuyerType.ALL, "buyer_type")

    def apply(self, query: Query) -> Query:
        if self.status:
            query = query.filter(Buyer.verification_status == self.status)
        if self.is_active is not None:
            query = query.filter(Buyer.is_active.is_(self.is_active))
        if self.buyer_type:
            query = query.filter(Buyer.buyer_type == self.buyer_type)
        return query


@dataclass
class MarketFilter(ListFilter):
    is_active: Optional[bool] = None
    is_available: Optional[bool] = None
    city: Optional[str] = None
    search: Optional[str] = None

    model: ClassVar[Any] = Market
    sort_fields: ClassVar[tuple] = ("created_at", "updated_at", "name")
    search_fields: ClassVar[tuple] = ("name", "description", "city")

    def apply(self, query: Query) -> Query:
        if self.is_active is not None:
            query = query.filter(Market.is_active.is_(self.is_active))
        if self.is_available is not None:
            query = query.filter(Market.is_available.is_(self.is_available))
        if self.city:
            query = query.filter(Market.city == self.city)
        return query


@dataclass
class CategoryFilter(ListFilter):
    parent_id: Optional[uuid.UUID] = None
    level: Optional[int] = None
    is_active: Optional[bool] = None
    is_available: Optional[bool] = None
    search: Optional[str] = None

    model: ClassVar[Any] = ProductCategory
    sort_fields: ClassVar[tuple] = ("created_at", "updated_at", "name", "level", "sort_order")
    search_fields: ClassVar[tuple] = ("name", "description")

    def apply(self, query: Query) -> Query:
        if self.parent_id is not None:
            query = query.filter(ProductCategory.parent_id == self.parent_id)
        if self.level is not None:
            query = query.filter(ProductCategory.level == self.level)
        if self.is_active is not None:
            query = query.filter(ProductCategory.is_active.is_(self.is_active))
        if self.is_available is not None:
            query = query.filter(ProductCategory.is_available.is_(self.is_available))
        return query


@dataclass
class ProductFilter(ListFilter):
    category_id: Optional[uuid.UUID] = None
    is_active: Optional[bool] = None
    search: Optional[str] = None

    model: ClassVar[Any] = Product
    sort_fields: ClassVar[tuple] = ("created_at", "updated_at", "name")
    search_fields: ClassVar[tuple] = ("name", "description", "variety")

    def apply(self, query: Query) -> Query:
        if self.category_id is not None:
            query = query.filter(Product.category_id == self.category_id)
        if self.is_active is not None:
            query = query.filter(Product.is_active.is_(self.is_active))
        return query


@dataclass
class ListingFilter(ListFilter):
    status: Optional[str] = None
    featured: Optional[bool] = None
    is_flagged: Optional[bool] = None
    vendor_id: Optional[uuid.UUID] = None
    product_id: Optional[uuid.UUID] = None
    market_id: Optional[uuid.UUID] = None

    model: ClassVar[Any] = Listing
    sort_fields: ClassVar[tuple] = (
        "created_at",
        "updated_at",
        "price_per_unit",
        "quantity_available",
        "last_status_update",
    )

    def __post_init__(self):
        super().__post_init__()
        _check_choice(self.status, ListingStatus.ALL, "status")

    def apply(self, query: Query) -> Query:
        if self.status:
            query = query.filter(Listing.status == self.status)
        if self.featured is not None:
            query = query.filter(Listing.featured.is_(self.featured))
        if self.is_flagged is not None:
            query = query.filter(Listing.is_flagged.is_(self.is_flagged))
        for column, value in (
            (Listing.vendor_id, self.vendor_id),
            (Listing.product_id, self.product_id),
            (Listing.market_id, self.market_id),
        ):
            if value:
                query = query.filter(column == value)
        return query


@dataclass
class OrderFilter(ListFilter):
    status: Optional[str] = None
    buyer_id: Optional[uuid.UUID] = None
    vendor_id: Optional[uuid.UUID] = None
    search: Optional[str] = None

    model: ClassVar[Any] = Order
    sort_fields: ClassVar[tuple] = ("created_at", "updated_at", "total_amount", "order_number")
    search_fields: ClassVar[tuple] = ("order_number",)
    soft_deletable: ClassVar[bool] = False

    def __post_init__(self):
        super().__post_init__()
        _check_choice(self.status, OrderStatus.ALL, "status")

    def apply(self, query: Query) -> Query:
        if self.status:
            query = query.filter(Order.status == self.status)
        if self.buyer_id:
            query = query.filter(Order.buyer_id == self.buyer_id)
        if self.vendor_id:
            query = query.filter(Order.vendor_id == self.vendor_id)
        return query


@dataclass
class UserFilter(ListFilter):
    role: Optional[str] = None
    is_active: Optional[bool] = None
    vendor_id: Optional[uuid.UUID] = None
    buyer_id: Optional[uuid.UUID] = None
    search: Optional[str] = None

    model: ClassVar[Any] = User
    sort_fields: ClassVar[tuple] = ("created_at", "updated_at", "name", "email")
    search_fields: ClassVar[tuple] = ("name", "email", "phone")

    def __post_init__(self):
        super().__post_init__()
        _check_choice(self.role, UserRole.ALL, "role")

    def apply(self, query: Query) -> Query:
        if self.role:
            query = query.filter(User.role == self.role)
        if self.is_active is not None:
            query = query.filter(User.is_active.is_(self.is_active))
        if self.vendor_id:
            query = query.filter(User.vendor_id == self.vendor_id)
        if self.buyer_id:
            query = query.filter(User.buyer_id == self.buyer_id)
        return query


def verification_stats(db: Session, model) -> dict[str, int]:
    """Counts of live Vendors/Buyers per verification status, plus total."""
    rows = (
        db.query(model.verification_status, func.count(model.id))
        .filter(model.is_deleted.is_(False))
        .group_by(model.verification_status)
        .all()
    )
    stats = {status: 0 for status in VerificationStatus.ALL}
    stats.update({status: count for status, count in rows})
    stats["total"] = sum(count for _, count in rows)
    return stats
