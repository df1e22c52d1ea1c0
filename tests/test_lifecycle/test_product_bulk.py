"""
Bulk product operations: the id cap, per-product isolation, the dependency
guard on deactivate / delete, and the single batch audit entry.
"""

import uuid

import pytest

from marketadmin.models.audit import AuditLogEntry, AuditStatus
from marketadmin.models.marketplace import ListingStatus, Product
from marketadmin.services.errors import ValidationFailed
from marketadmin.services.lifecycle.products import (
    MAX_BULK_PRODUCTS,
    ProductBulkAction,
    ProductLifecycle,
)


pytestmark = pytest.mark.usefixtures("db")


@pytest.fixture
def lifecycle(db):
    return ProductLifecycle(db)


@pytest.fixture
def make_product(db, category):
    def _make(name, is_active=True):
        product = Product(
            name=name,
            slug=name.lower().replace(" ", "-"),
            category_id=category.id,
            images=[f"/media/products/{name.lower()}.jpg"],
            is_active=is_active,
        )
        db.add(product)
        db.commit()
        return product

    return _make


def _bulk_entries(db, action):
    return db.query(AuditLogEntry).filter(AuditLogEntry.action == f"bulk_product_{action}").all()


class TestValidation:
    def test_cap_is_enforced_before_touching_the_database(self, lifecycle, db, actor):
        ids = [uuid.uuid4() for _ in range(MAX_BULK_PRODUCTS + 1)]

        with pytest.raises(ValidationFailed, match="more than 50 products"):
            lifecycle.bulk_apply(ids, ProductBulkAction.DELETE, actor)
        assert db.query(AuditLogEntry).count() == 0

    def test_empty_ids(self, lifecycle, actor):
        with pytest.raises(ValidationFailed):
            lifecycle.bulk_apply([], ProductBulkAction.ACTIVATE, actor)

    def test_unknown_action(self, lifecycle, actor, product):
        with pytest.raises(ValidationFailed, match="Invalid bulk action"):
            lifecycle.bulk_apply([product.id], "archive", actor)


class TestApply:
    def test_activate_with_partial_failure(self, lifecycle, db, actor, make_product):
        dormant = make_product("Garlic", is_active=False)
        already = make_product("Ginger")
        missing = uuid.uuid4()

        result = lifecycle.bulk_apply(
            [dormant.id, already.id, missing], ProductBulkAction.ACTIVATE, actor, "Back in season"
        )

        assert result.successful == [dormant.id]
        assert {e.id for e in result.errors} == {already.id, missing}
        assert dormant.is_active is True
        assert dormant.status_updated_by_id == actor.id
        assert dormant.admin_notes == "Back in season"

        [entry] = _bulk_entries(db, ProductBulkAction.ACTIVATE)
        assert entry.entity_id is None
        assert entry.status == AuditStatus.PARTIAL
        assert entry.metadata_["batch_size"] == 3
        assert entry.reason == "Back in season"

    def test_deactivate_skips_products_with_live_listings(
        self, lifecycle, db, actor, product, listing, make_product
    ):
        idle = make_product("Garlic")

        result = lifecycle.bulk_apply([product.id, idle.id], ProductBulkAction.DEACTIVATE, actor)

        assert result.successful == [idle.id]
        assert result.errors[0].id == product.id
        assert "1 active listings" in result.errors[0].message
        db.expire_all()
        assert db.get(Product, product.id).is_active is True
        assert db.get(Product, idle.id).is_active is False

    def test_delete_goes_through_the_guard(self, lifecycle, db, actor, product, make_listing, make_product):
        make_listing(status=ListingStatus.DISCONTINUED)
        busy = make_product("Ginger")
        busy_listing = make_listing()
        busy_listing.product_id = busy.id
        db.commit()

        result = lifecycle.bulk_apply([product.id, busy.id], ProductBulkAction.DELETE, actor, "Catalogue cleanup")

        assert result.successful == [product.id]
        assert result.errors[0].id == busy.id
        db.expire_all()
        deleted = db.get(Product, product.id)
        assert deleted.is_deleted is True
        assert deleted.is_active is False
        assert deleted.deleted_by_id == actor.id
        assert db.get(Product, busy.id).is_deleted is False

    def test_deleted_products_are_reported(self, lifecycle, db, actor, product):
        product.is_deleted = True
        product.is_active = False
        db.commit()

        result = lifecycle.bulk_apply([product.id], ProductBulkAction.ACTIVATE, actor)

        assert result.success_count == 0
        assert result.errors[0].message == "Cannot update deleted product"
        [entry] = _bulk_entries(db, ProductBulkAction.ACTIVATE)
        assert entry.status == AuditStatus.FAILED

    def test_duplicate_ids_processed_once(self, lifecycle, db, actor, make_product):
        garlic = make_product("Garlic")

        result = lifecycle.bulk_apply([garlic.id, garlic.id], ProductBulkAction.DEACTIVATE, actor)

        assert result.success_count == 1
        assert result.failed_count == 0
        assert len(_bulk_entries(db, ProductBulkAction.DEACTIVATE)) == 1
