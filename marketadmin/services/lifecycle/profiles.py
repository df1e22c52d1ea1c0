"""
Per-entity configuration for the generic lifecycle services.

An EntityProfile tells LifecycleManager / VerificationStateMachine everything
entity-specific: which model, which fields an admin may write, which fields
are diffed into the audit description, which must be unique, and which user
accounts hang off the entity.
"""

from dataclasses import dataclass
from typing import Optional

from marketadmin.models.audit import EntityType
from marketadmin.models.marketplace import Buyer, Listing, Market, Product, ProductCategory, Vendor
from marketadmin.models.user import User


@dataclass(frozen=True)
class EntityProfile:
    entity_type: str
    model: type
    # Audit action prefix and noun used in messages ("vendor" -> "vendor_deleted")
    noun: str
    display_attr: str
    # Fields an admin may set on create and update
    writable: frozenset
    # Fields accepted on create only (immutable afterwards)
    create_only: frozenset = frozenset()
    required: tuple = ()
    # (attribute, label) pairs diffed into "<label> changed from 'a' to 'b'"
    watched: tuple = ()
    unique: tuple = ()
    # Column on User linking accounts to this entity; cascades follow it
    user_link: Optional[str] = None
    image_field: Optional[str] = None
    slug_source: Optional[str] = None
    requires_markets: bool = False
    creatable: bool = True

    @property
    def plural(self) -> str:
        if self.noun.endswith("y"):
            return self.noun[:-1] + "ies"
        return self.noun + "s"

    @property
    def watched_labels(self) -> dict[str, str]:
        return dict(self.watched)

    def display(self, entity) -> str:
        return str(getattr(entity, self.display_attr, entity.id))


MARKET = EntityProfile(
    entity_type=EntityType.MARKET,
    model=Market,
    noun="market",
    display_attr="name",
    writable=frozenset({"name", "description", "image", "address", "city", "district"}),
    required=("name", "image"),
    watched=(("name", "name"), ("description", "description"), ("image", "image")),
    unique=("name",),
    image_field="image",
    slug_source="name",
)

VENDOR = EntityProfile(
    entity_type=EntityType.VENDOR,
    model=Vendor,
    noun="vendor",
    display_attr="business_name",
    writable=frozenset(
        {
            "business_name",
            "owner_name",
            "email",
            "phone",
            "trade_license_no",
            "address",
            "logo",
            "specialties",
            "markets",
        }
    ),
    required=("business_name", "phone"),
    watched=(
        ("business_name", "business name"),
        ("email", "email"),
        ("phone", "phone"),
        ("trade_license_no", "trade license"),
        ("logo", "logo"),
    ),
    unique=("email", "phone", "trade_license_no"),
    user_link="vendor_id",
    image_field="logo",
    requires_markets=True,
)

BUYER = EntityProfile(
    entity_type=EntityType.BUYER,
    model=Buyer,
    noun="buyer",
    display_attr="name",
    writable=frozenset(
        {
            "name",
            "owner_name",
            "email",
            "phone",
            "trade_license_no",
            "buyer_type",
            "address",
            "logo",
        }
    ),
    required=("name", "phone"),
    watched=(
        ("name", "name"),
        ("email", "email"),
        ("phone", "phone"),
        ("trade_license_no", "trade license"),
        ("logo", "logo"),
    ),
    unique=("email", "phone", "trade_license_no"),
    user_link="buyer_id",
    image_field="logo",
)

CATEGORY = EntityProfile(
    entity_type=EntityType.CATEGORY,
    model=ProductCategory,
    noun="category",
    display_attr="name",
    writable=frozenset({"name", "description", "image", "parent_id", "sort_order"}),
    required=("name", "image"),
    watched=(
        ("name", "name"),
        ("description", "description"),
        ("image", "image"),
        ("parent_id", "parent category"),
    ),
    unique=("name",),
    image_field="image",
    slug_source="name",
)

PRODUCT = EntityProfile(
    entity_type=EntityType.PRODUCT,
    model=Product,
    noun="product",
    display_attr="name",
    writable=frozenset(
        {"name", "description", "category_id", "variety", "origin", "is_organic", "images"}
    ),
    required=("name", "category_id", "images"),
    watched=(("name", "name"), ("category_id", "category"), ("images", "images")),
    slug_source="name",
)

LISTING = EntityProfile(
    entity_type=EntityType.LISTING,
    model=Listing,
    noun="listing",
    display_attr="id",
    writable=frozenset(
        {"description", "quality_grade", "unit", "price_per_unit", "quantity_available"}
    ),
    create_only=frozenset({"vendor_id", "product_id", "market_id"}),
    required=("vendor_id", "product_id", "market_id", "price_per_unit"),
    watched=(
        ("price_per_unit", "price"),
        ("quantity_available", "quantity"),
        ("quality_grade", "quality grade"),
        ("description", "description"),
    ),
)

USER = EntityProfile(
    entity_type=EntityType.USER,
    model=User,
    noun="user",
    display_attr="email",
    writable=frozenset({"name", "email", "phone", "role", "vendor_id", "buyer_id"}),
    watched=(("name", "name"), ("email", "email"), ("phone", "phone"), ("role", "role")),
    unique=("email", "phone"),
    # Accounts are created through the onboarding flows, which hash passwords
    creatable=False,
)

PROFILES = {p.entity_type: p for p in (MARKET, VENDOR, BUYER, CATEGORY, PRODUCT, LISTING, USER)}
