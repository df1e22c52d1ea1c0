"""
Marketplace entities: Market, Vendor, Buyer, ProductCategory, Product, Listing.

Every entity carries LifecycleMixin (activation + soft delete). Vendors and
Buyers also carry VerifiableMixin; Markets and ProductCategories carry
AvailabilityMixin. Nothing here is ever hard-deleted by the application.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    Uuid,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketadmin.models.base import (
    AvailabilityMixin,
    Base,
    JSONType,
    LifecycleMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    VerifiableMixin,
)

if TYPE_CHECKING:
    from marketadmin.models.user import User


# ── Enums (stored as strings for readability + migration safety) ────────────


class BuyerType:
    RESTAURANT = "restaurant"
    CORPORATE = "corporate"
    SUPERSHOP = "supershop"
    CATERING = "catering"

    ALL = (RESTAURANT, CORPORATE, SUPERSHOP, CATERING)


class ListingStatus:
    ACTIVE = "active"
    INACTIVE = "inactive"
    OUT_OF_STOCK = "out_of_stock"
    DISCONTINUED = "discontinued"

    ALL = (ACTIVE, INACTIVE, OUT_OF_STOCK, DISCONTINUED)


# ── Association tables ──────────────────────────────────────────────────────

vendor_markets = Table(
    "vendor_markets",
    Base.metadata,
    Column(
        "vendor_id",
        Uuid,
        ForeignKey("vendors.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "market_id",
        Uuid,
        ForeignKey("markets.id", ondelete="RESTRICT"),
        primary_key=True,
        index=True,
    ),
)


# ── Models ──────────────────────────────────────────────────────────────────


class Market(Base, UUIDPrimaryKeyMixin, TimestampMixin, LifecycleMixin, AvailabilityMixin):
    """A physical market location vendors operate in."""

    __tablename__ = "markets"

    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    slug: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    image: Mapped[str] = mapped_column(String(512), nullable=False)

    address: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    district: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    vendors: Mapped[list["Vendor"]] = relationship(
        "Vendor", secondary=vendor_markets, back_populates="markets"
    )

    def __repr__(self) -> str:
        return f"<Market name={self.name!r}>"


class Vendor(Base, UUIDPrimaryKeyMixin, TimestampMixin, LifecycleMixin, VerifiableMixin):
    """A seller operating in one or more markets."""

    __tablename__ = "vendors"

    business_name: Mapped[str] = mapped_column(String(100), nullable=False)
    owner_name: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(256), nullable=True, unique=True)
    phone: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    trade_license_no: Mapped[Optional[str]] = mapped_column(
        String(30), nullable=True, unique=True
    )
    # {"street": ..., "city": ..., "area": ..., "postal_code": ...}
    address: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    logo: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    specialties: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)

    is_platform_owned: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    platform_name: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # Relationships
    markets: Mapped[list["Market"]] = relationship(
        "Market", secondary=vendor_markets, back_populates="vendors"
    )
    users: Mapped[list["User"]] = relationship(
        "User", back_populates="vendor", foreign_keys="User.vendor_id"
    )
    listings: Mapped[list["Listing"]] = relationship("Listing", back_populates="vendor")

    def __repr__(self) -> str:
        return f"<Vendor business_name={self.business_name!r}>"


class Buyer(Base, UUIDPrimaryKeyMixin, TimestampMixin, LifecycleMixin, VerifiableMixin):
    """A purchasing business (restaurant, corporate kitchen, supershop, caterer)."""

    __tablename__ = "buyers"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    owner_name: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(256), nullable=True, unique=True)
    phone: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    trade_license_no: Mapped[Optional[str]] = mapped_column(
        String(30), nullable=True, unique=True
    )
    buyer_type: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=BuyerType.RESTAURANT,
        comment="restaurant | corporate | supershop | catering",
    )
    address: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    logo: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    # User.id of the buyer_owner account; plain UUID to avoid a users <-> buyers FK cycle
    owner_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)

    users: Mapped[list["User"]] = relationship(
        "User", back_populates="buyer", foreign_keys="User.buyer_id"
    )

    def __repr__(self) -> str:
        return f"<Buyer name={self.name!r} type={self.buyer_type!r}>"


class ProductCategory(Base, UUIDPrimaryKeyMixin, TimestampMixin, LifecycleMixin, AvailabilityMixin):
    """A catalogue category (e.g. "Leafy Greens"), optionally nested under a parent."""

    __tablename__ = "product_categories"

    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    slug: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    image: Mapped[str] = mapped_column(String(512), nullable=False)

    parent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("product_categories.id", ondelete="RESTRICT"), nullable=True, index=True
    )
    # 0 for a root category, parent.level + 1 below it
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    parent: Mapped[Optional["ProductCategory"]] = relationship(
        "ProductCategory", remote_side="ProductCategory.id", back_populates="children"
    )
    children: Mapped[list["ProductCategory"]] = relationship(
        "ProductCategory", back_populates="parent"
    )
    products: Mapped[list["Product"]] = relationship("Product", back_populates="category")

    def __repr__(self) -> str:
        return f"<ProductCategory name={self.name!r}>"


class Product(Base, UUIDPrimaryKeyMixin, TimestampMixin, LifecycleMixin):
    """A catalog product vendors can list (e.g. 'Red Onion')."""

    __tablename__ = "products"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(120), nullable=False, unique=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("product_categories.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    variety: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    origin: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    is_organic: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    # List of image URLs; at least one required at creation
    images: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    category: Mapped["ProductCategory"] = relationship("ProductCategory", back_populates="products")
    listings: Mapped[list["Listing"]] = relationship("Listing", back_populates="product")

    def __repr__(self) -> str:
        return f"<Product name={self.name!r}>"


class Listing(Base, UUIDPrimaryKeyMixin, TimestampMixin, LifecycleMixin):
    """A vendor's offer of a product in a market. Subject to moderation."""

    __tablename__ = "listings"

    vendor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("vendors.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    market_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("markets.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=ListingStatus.ACTIVE,
        index=True,
        comment="active | inactive | out_of_stock | discontinued",
    )
    featured: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    # ── Moderation ──────────────────────────────────────────────────────────
    is_flagged: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false(), index=True
    )
    flag_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    moderation_notes: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    moderated_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    last_status_update: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # ── Offer details ───────────────────────────────────────────────────────
    description: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    quality_grade: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    unit: Mapped[str] = mapped_column(String(16), nullable=False, default="kg")
    price_per_unit: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    quantity_available: Mapped[Decimal] = mapped_column(
        Numeric(12, 3), nullable=False, default=Decimal("0")
    )

    # Relationships
    vendor: Mapped["Vendor"] = relationship("Vendor", back_populates="listings")
    product: Mapped["Product"] = relationship("Product", back_populates="listings")
    market: Mapped["Market"] = relationship("Market")

    def __repr__(self) -> str:
        return f"<Listing id={self.id} status={self.status!r}>"
