"""
Demo seed script: a market, a product category, an approved vendor with a
listing, and a buyer
with an owner account, created through the lifecycle services so every row
has its audit entry.

Usage:
    python scripts/seed_demo.py

Idempotent: safe to re-run; skips records that already exist.
"""

import os
import sys
from decimal import Decimal

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from getpass import getpass

from marketadmin.database import SessionLocal
from marketadmin.models.base import VerificationStatus
from marketadmin.models.marketplace import (
    Buyer,
    BuyerType,
    Listing,
    Market,
    Product,
    ProductCategory,
    Vendor,
)
from marketadmin.models.user import User, UserRole
from marketadmin.services.context import Actor
from marketadmin.services.errors import MarketAdminError
from marketadmin.services.lifecycle.categories import CategoryLifecycle
from marketadmin.services.lifecycle.listing_moderation import ListingModerationFlow
from marketadmin.services.lifecycle.manager import LifecycleManager
from marketadmin.services.lifecycle.markets import MarketLifecycle
from marketadmin.services.lifecycle.onboarding import OnboardingService
from marketadmin.services.lifecycle.products import ProductLifecycle
from marketadmin.services.lifecycle.profiles import VENDOR
from marketadmin.services.lifecycle.verification import VerificationStateMachine
from marketadmin.services.notifications.dispatcher import NullNotificationDispatcher

# ── Demo data constants ────────────────────────────────────────────────────────

MARKET = {
    "name": "Karwan Bazar",
    "description": "Wholesale vegetable and fruit market",
    "image": "/media/markets/karwan-bazar.jpg",
    "city": "Dhaka",
    "district": "Dhaka",
}

CATEGORY_DATA = {
    "name": "Vegetables",
    "description": "Fresh vegetables from local farms",
    "image": "/media/categories/vegetables.jpg",
}

VENDOR_DATA = {
    "business_name": "Green Valley Produce",
    "owner_name": "Rahim Uddin",
    "email": "vendor@greenvalley.example",
    "phone": "+8801711000001",
    "trade_license_no": "TL-2025-0001",
    "specialties": ["leafy greens", "onions"],
}

PRODUCT_DATA = {
    "name": "Red Onion",
    "variety": "Local",
    "origin": "Pabna",
    "images": ["/media/products/red-onion.jpg"],
}

LISTING_PRICE = Decimal("55.00")
LISTING_QUANTITY = Decimal("500")

BUYER_DATA = {
    "name": "Spice Route Kitchen",
    "owner_name": "Nadia Karim",
    "email": "owner@spiceroute.example",
    "phone": "+8801811000002",
    "buyer_type": BuyerType.RESTAURANT,
}


def _admin_actor(db) -> Actor:
    admin = db.query(User).filter(User.role == UserRole.ADMIN, User.is_deleted.is_(False)).first()
    if admin is None:
        print("ERROR: no admin account; run scripts/bootstrap.py first.")
        sys.exit(1)
    return Actor.from_user(admin)


def main() -> None:
    print("\n=== Marketplace Admin: Demo seed ===\n")
    db = SessionLocal()
    try:
        actor = _admin_actor(db)

        market = db.query(Market).filter(Market.name == MARKET["name"]).first()
        if market:
            print(f"Market '{market.name}' already exists; skipping.")
        else:
            market = MarketLifecycle(db).create(MARKET, actor).entity
            print(f"Market '{market.name}' created (id={market.id})")

        vendor = db.query(Vendor).filter(Vendor.phone == VENDOR_DATA["phone"]).first()
        if vendor:
            print(f"Vendor '{vendor.business_name}' already exists; skipping.")
        else:
            vendor = LifecycleManager(db, VENDOR).create(
                {**VENDOR_DATA, "markets": [market.id]}, actor
            ).entity
            print(f"Vendor '{vendor.business_name}' created (id={vendor.id})")
        if vendor.verification_status != VerificationStatus.APPROVED:
            VerificationStateMachine(db, VENDOR, NullNotificationDispatcher()).transition(
                vendor.id, VerificationStatus.APPROVED, actor
            )
            print(f"Vendor '{vendor.business_name}' approved")

        category = db.query(ProductCategory).filter(ProductCategory.name == CATEGORY_DATA["name"]).first()
        if category:
            print(f"Category '{category.name}' already exists; skipping.")
        else:
            category = CategoryLifecycle(db).create(CATEGORY_DATA, actor).entity
            print(f"Category '{category.name}' created (id={category.id})")

        product = db.query(Product).filter(Product.name == PRODUCT_DATA["name"]).first()
        if product:
            print(f"Product '{product.name}' already exists; skipping.")
        else:
            product = ProductLifecycle(db).create(
                {**PRODUCT_DATA, "category_id": category.id}, actor
            ).entity
            print(f"Product '{product.name}' created (id={product.id})")

        listing = (
            db.query(Listing)
            .filter(Listing.vendor_id == vendor.id, Listing.product_id == product.id)
            .first()
        )
        if listing:
            print(f"Listing {listing.id} already exists; skipping.")
        else:
            listing = ListingModerationFlow(db).create(
                {
                    "vendor_id": vendor.id,
                    "product_id": product.id,
                    "market_id": market.id,
                    "price_per_unit": LISTING_PRICE,
                    "quantity_available": LISTING_QUANTITY,
                },
                actor,
            ).entity
            print(f"Listing {listing.id} created at {LISTING_PRICE}/kg")

        buyer = db.query(Buyer).filter(Buyer.phone == BUYER_DATA["phone"]).first()
        if buyer:
            print(f"Buyer '{buyer.name}' already exists; skipping.")
        else:
            password = getpass("Password for the demo buyer owner account: ")
            buyer = OnboardingService(db).create_buyer_with_owner(
                {**BUYER_DATA, "password": password}, actor
            ).entity
            print(f"Buyer '{buyer.name}' created with owner {BUYER_DATA['email']}")

        print("\nDemo seed complete.\n")

    except MarketAdminError as e:
        print(f"\nERROR: {e.message}")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
