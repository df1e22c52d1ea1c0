"""
Test fixtures and shared setup.

Tests run against an in-memory SQLite database. Every test runs inside one
outer transaction that is rolled back afterwards, so the DB is always clean
without needing to truncate tables. The services commit their own scoped
transactions; the session turns those commits into SAVEPOINT releases.
"""

import os
import pytest
from decimal import Decimal

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

# ── Override settings BEFORE importing app modules ────────────────────────────
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("NOTIFICATION_BACKEND", "inline")
os.environ.setdefault("STORAGE_BACKEND", "local")
os.environ.setdefault("LOCAL_STORAGE_PATH", "/tmp/marketadmin_test_media")

from marketadmin.main import app
from marketadmin.database import build_engine, get_db
from marketadmin.models.base import Base
from marketadmin.models import *  # noqa: F401,F403 - registers all models
from marketadmin.services.context import Actor


# ── Test engine ───────────────────────────────────────────────────────────────
TEST_DATABASE_URL = os.environ["DATABASE_URL"]
test_engine = build_engine(TEST_DATABASE_URL)

# Never a real bcrypt hash; login tests hash their own password
DUMMY_HASH = "not-a-real-hash"


@pytest.fixture(scope="session")
def create_test_tables():
    """Create all tables once per test session."""
    Base.metadata.create_all(bind=test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def db(create_test_tables) -> Session:
    """
    Provide a DB session that is rolled back after each test.
    Service-level commits release SAVEPOINTs inside the outer transaction.
    """
    connection = test_engine.connect()
    transaction = connection.begin()
    session = Session(
        bind=connection,
        autoflush=False,
        join_transaction_mode="create_savepoint",
    )

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def client(db: Session) -> TestClient:
    """
    FastAPI test client with DB dependency overridden to use the test session.
    """

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ── Data builder fixtures ──────────────────────────────────────────────────────
# Builders commit (not just flush) so a later failing operation that rolls
# back its own scope cannot take the fixture rows with it.


@pytest.fixture
def admin_user(db: Session):
    from marketadmin.models.user import User, UserRole

    user = User(
        name="Test Admin",
        email="admin@marketadmin.test",
        phone="+8801700000001",
        hashed_password=DUMMY_HASH,
        role=UserRole.ADMIN,
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def actor(admin_user) -> Actor:
    return Actor.from_user(admin_user)


@pytest.fixture
def market(db: Session):
    from marketadmin.models.marketplace import Market

    market = Market(
        name="Karwan Bazar",
        slug="karwan-bazar",
        image="/media/markets/karwan-bazar.jpg",
        city="Dhaka",
    )
    db.add(market)
    db.commit()
    return market


@pytest.fixture
def second_market(db: Session):
    from marketadmin.models.marketplace import Market

    market = Market(
        name="Mirpur 1",
        slug="mirpur-1",
        image="/media/markets/mirpur-1.jpg",
        city="Dhaka",
    )
    db.add(market)
    db.commit()
    return market


@pytest.fixture
def vendor(db: Session, market):
    from marketadmin.models.marketplace import Vendor

    vendor = Vendor(
        business_name="Green Valley Farms",
        owner_name="Rahim Uddin",
        email="greenvalley@marketadmin.test",
        phone="+8801711111111",
        trade_license_no="TL-1001",
        markets=[market],
    )
    db.add(vendor)
    db.commit()
    return vendor


@pytest.fixture
def vendor_user(db: Session, vendor):
    from marketadmin.models.user import User, UserRole

    user = User(
        name="Rahim Uddin",
        email="rahim@marketadmin.test",
        phone="+8801711111112",
        hashed_password=DUMMY_HASH,
        role=UserRole.VENDOR,
        vendor_id=vendor.id,
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def buyer(db: Session):
    from marketadmin.models.marketplace import Buyer, BuyerType

    buyer = Buyer(
        name="Spice Route Restaurant",
        owner_name="Karim Ahmed",
        email="spiceroute@marketadmin.test",
        phone="+8801722222222",
        buyer_type=BuyerType.RESTAURANT,
    )
    db.add(buyer)
    db.commit()
    return buyer


@pytest.fixture
def buyer_owner(db: Session, buyer):
    from marketadmin.models.user import User, UserRole

    owner = User(
        name="Karim Ahmed",
        email="karim@marketadmin.test",
        phone="+8801722222223",
        hashed_password=DUMMY_HASH,
        role=UserRole.BUYER_OWNER,
        buyer_id=buyer.id,
    )
    db.add(owner)
    db.flush()
    buyer.owner_id = owner.id
    db.commit()
    return owner


@pytest.fixture
def category(db: Session):
    from marketadmin.models.marketplace import ProductCategory

    category = ProductCategory(
        name="Vegetables",
        slug="vegetables",
        image="/media/categories/vegetables.jpg",
    )
    db.add(category)
    db.commit()
    return category


@pytest.fixture
def product(db: Session, category):
    from marketadmin.models.marketplace import Product

    product = Product(
        name="Red Onion",
        slug="red-onion",
        category_id=category.id,
        images=["/media/products/red-onion.jpg"],
    )
    db.add(product)
    db.commit()
    return product


@pytest.fixture
def make_listing(db: Session, vendor, product, market):
    from marketadmin.models.marketplace import Listing, ListingStatus

    def _make(status=ListingStatus.ACTIVE, featured=False, price="45.00"):
        listing = Listing(
            vendor_id=vendor.id,
            product_id=product.id,
            market_id=market.id,
            status=status,
            featured=featured,
            price_per_unit=Decimal(price),
            quantity_available=Decimal("100"),
            unit="kg",
        )
        db.add(listing)
        db.commit()
        return listing

    return _make


@pytest.fixture
def listing(make_listing):
    return make_listing()


@pytest.fixture
def make_order(db: Session, buyer, vendor, product):
    """Insert an order row directly in the given status with one line item."""
    from marketadmin.models.order import Order, OrderItem, OrderStatus

    counter = {"n": 0}

    def _make(listing, status=OrderStatus.PENDING_APPROVAL, placed_by=None):
        counter["n"] += 1
        order = Order(
            order_number=f"ORD-20250101-{counter['n']:04d}",
            buyer_id=buyer.id,
            vendor_id=vendor.id,
            placed_by_id=placed_by.id if placed_by else None,
            status=status,
            subtotal=Decimal("450.00"),
            total_amount=Decimal("450.00"),
            items=[
                OrderItem(
                    line_number=1,
                    listing_id=listing.id,
                    product_id=product.id,
                    product_name=product.name,
                    quantity=Decimal("10"),
                    unit="kg",
                    unit_price=Decimal("45.00"),
                    total_price=Decimal("450.00"),
                )
            ],
        )
        db.add(order)
        db.commit()
        return order

    return _make


@pytest.fixture
def audit_entries(db: Session):
    """Fetch audit entries for one entity (or batch entries when entity_id is None)."""
    from marketadmin.models.audit import AuditLogEntry

    def _fetch(entity_id=None, action=None):
        query = db.query(AuditLogEntry)
        if entity_id is not None:
            query = query.filter(AuditLogEntry.entity_id == entity_id)
        if action is not None:
            query = query.filter(AuditLogEntry.action == action)
        return query.all()

    return _fetch
