"""
LifecycleManager tests: create / update / soft delete / deactivate /
reactivate across entity profiles, including user cascades and audit entries.
"""

import uuid

import pytest

from marketadmin.models.audit import AuditSeverity
from marketadmin.models.base import AdminStatus
from marketadmin.models.marketplace import Market, Product, Vendor
from marketadmin.models.order import OrderStatus
from marketadmin.models.user import User
from marketadmin.services.errors import (
    Conflict,
    EntityDeleted,
    Forbidden,
    NotFound,
    ValidationFailed,
)
from marketadmin.services.lifecycle.manager import LifecycleManager, slugify
from marketadmin.services.lifecycle.markets import MarketLifecycle
from marketadmin.services.lifecycle.profiles import BUYER, PRODUCT, USER, VENDOR
from marketadmin.services.lifecycle.users import UserLifecycle
from marketadmin.services.storage.base import StorageBackend


pytestmark = pytest.mark.usefixtures("db")


class FakeStorage(StorageBackend):
    def __init__(self):
        self.saved = []
        self.deleted = []

    def save(self, data, filename, subfolder=""):
        url = f"/media/{subfolder}/{len(self.saved)}-{filename}"
        self.saved.append(url)
        return url

    def delete(self, url):
        self.deleted.append(url)
        return True

    def exists(self, url):
        return url in self.saved


class TestCreate:
    def test_create_market_generates_slug_and_audits(self, db, actor, audit_entries):
        result = MarketLifecycle(db).create(
            {"name": "Jatrabari Wholesale", "image": "/media/markets/j.jpg"}, actor
        )

        market = result.entity
        assert market.slug == "jatrabari-wholesale"
        assert market.created_by_id == actor.id
        assert result.audit_recorded is True
        [entry] = audit_entries(market.id)
        assert entry.action == "market_created"
        assert entry.description == "Created market: Jatrabari Wholesale"

    def test_duplicate_market_name_conflicts(self, db, actor, market):
        with pytest.raises(Conflict):
            MarketLifecycle(db).create({"name": "Karwan Bazar", "image": "/x.jpg"}, actor)

    def test_missing_required_field(self, db, actor):
        with pytest.raises(ValidationFailed, match="image"):
            MarketLifecycle(db).create({"name": "No Image Market"}, actor)
        assert db.query(Market).count() == 0

    def test_unknown_field_rejected(self, db, actor):
        with pytest.raises(ValidationFailed, match="is_deleted"):
            MarketLifecycle(db).create({"name": "M", "image": "/m.jpg", "is_deleted": True}, actor)

    def test_vendor_requires_a_market(self, db, actor):
        with pytest.raises(ValidationFailed, match="at least one market"):
            LifecycleManager(db, VENDOR).create(
                {"business_name": "Lonely Farm", "phone": "+8801733333333", "markets": []}, actor
            )

    def test_vendor_cannot_join_unavailable_market(self, db, actor, market):
        market.is_available = False
        db.commit()

        with pytest.raises(ValidationFailed, match="invalid or unavailable"):
            LifecycleManager(db, VENDOR).create(
                {"business_name": "Late Farm", "phone": "+8801733333333", "markets": [market.id]},
                actor,
            )

    def test_vendor_starts_pending(self, db, actor, market):
        result = LifecycleManager(db, VENDOR).create(
            {
                "business_name": "Sunrise Produce",
                "phone": "+8801733333333",
                "email": " Sunrise@Example.COM ",
                "markets": [str(market.id)],
            },
            actor,
        )

        vendor = result.entity
        assert vendor.verification_status == "pending"
        assert vendor.email == "sunrise@example.com"
        assert [m.id for m in vendor.markets] == [market.id]

    def test_product_slugs_are_unique(self, db, actor, category, product):
        result = LifecycleManager(db, PRODUCT).create(
            {"name": "Red Onion", "category_id": category.id, "images": ["/p.jpg"]}, actor
        )

        assert result.entity.slug == "red-onion-2"

    def test_users_are_not_created_directly(self, db, actor):
        with pytest.raises(ValidationFailed, match="cannot be created directly"):
            LifecycleManager(db, USER).create({"name": "x", "email": "x@y.z"}, actor)


class TestUpdate:
    def test_watched_field_change_is_described(self, db, actor, vendor, audit_entries):
        result = LifecycleManager(db, VENDOR).update(
            vendor.id, {"business_name": "Green Valley Organics"}, actor
        )

        assert result.entity.business_name == "Green Valley Organics"
        [entry] = audit_entries(vendor.id, "vendor_updated")
        assert "business name changed from 'Green Valley Farms' to 'Green Valley Organics'" in entry.description
        assert entry.changes == {
            "before": {"business_name": "Green Valley Farms"},
            "after": {"business_name": "Green Valley Organics"},
        }

    def test_unwatched_change_is_not_audited(self, db, actor, vendor, audit_entries):
        result = LifecycleManager(db, VENDOR).update(
            vendor.id, {"address": {"city": "Dhaka"}}, actor
        )

        assert result.entity.address == {"city": "Dhaka"}
        assert result.audit_entry is None
        assert result.audit_recorded is True
        assert audit_entries(vendor.id) == []

    def test_unique_field_conflict(self, db, actor, vendor, market):
        other = Vendor(business_name="Other", phone="+8801744444444", markets=[market])
        db.add(other)
        db.commit()

        with pytest.raises(Conflict, match="phone"):
            LifecycleManager(db, VENDOR).update(other.id, {"phone": vendor.phone}, actor)

    def test_deleted_entity_cannot_be_updated(self, db, actor, vendor):
        LifecycleManager(db, VENDOR).soft_delete(vendor.id, actor)

        with pytest.raises(EntityDeleted):
            LifecycleManager(db, VENDOR).update(vendor.id, {"business_name": "Back"}, actor)

    def test_unknown_id(self, db, actor):
        with pytest.raises(NotFound):
            LifecycleManager(db, VENDOR).update(uuid.uuid4(), {"business_name": "x"}, actor)

    def test_empty_patch(self, db, actor, vendor):
        with pytest.raises(ValidationFailed):
            LifecycleManager(db, VENDOR).update(vendor.id, {}, actor)

    def test_renaming_market_refreshes_slug(self, db, actor, market):
        result = MarketLifecycle(db).update(market.id, {"name": "Karwan Bazar North"}, actor)

        assert result.entity.slug == "karwan-bazar-north"


class TestSoftDelete:
    def test_blocked_delete_mutates_nothing(self, db, actor, vendor, listing, make_order, audit_entries):
        make_order(listing)

        result = LifecycleManager(db, VENDOR).soft_delete(vendor.id, actor, "Closing")

        assert result.success is False
        assert result.blocked.counts == {"incomplete_orders": 1, "active_listings": 1}
        db.expire_all()
        assert db.get(Vendor, vendor.id).is_deleted is False
        assert audit_entries(vendor.id) == []

    def test_delete_cascades_to_linked_users(self, db, actor, vendor, vendor_user, audit_entries):
        result = LifecycleManager(db, VENDOR).soft_delete(vendor.id, actor, "Fraudulent documents")

        assert result.success is True
        assert vendor.is_deleted is True
        assert vendor.is_active is False
        assert vendor.deleted_by_id == actor.id
        assert vendor.admin_notes == "Fraudulent documents"

        db.refresh(vendor_user)
        assert vendor_user.is_deleted is True
        assert vendor_user.is_active is False

        [entry] = audit_entries(vendor.id, "vendor_deleted")
        assert entry.severity == AuditSeverity.HIGH
        assert entry.metadata_["affected_users"] == 1
        assert entry.reason == "Fraudulent documents"

    def test_default_admin_note_without_reason(self, db, actor, product):
        LifecycleManager(db, PRODUCT).soft_delete(product.id, actor)

        assert db.get(Product, product.id).admin_notes == "Deleted by admin"

    def test_second_delete_is_not_found(self, db, actor, vendor):
        manager = LifecycleManager(db, VENDOR)
        manager.soft_delete(vendor.id, actor)

        with pytest.raises(NotFound):
            manager.soft_delete(vendor.id, actor)

    def test_delivered_orders_do_not_block(self, db, actor, buyer, listing, make_order):
        make_order(listing, status=OrderStatus.DELIVERED)

        result = LifecycleManager(db, BUYER).soft_delete(buyer.id, actor)

        assert result.success is True


class TestDeactivateReactivate:
    def test_reason_is_required(self, db, actor, vendor):
        with pytest.raises(ValidationFailed, match="reason"):
            LifecycleManager(db, VENDOR).deactivate(vendor.id, actor, "   ")

    def test_deactivate_cascades_without_deleting_users(self, db, actor, vendor, vendor_user, audit_entries):
        result = LifecycleManager(db, VENDOR).deactivate(vendor.id, actor, "Expired license")

        assert result.entity.is_active is False
        assert result.entity.is_deleted is False
        assert result.entity.status_updated_by_id == actor.id
        db.refresh(vendor_user)
        assert vendor_user.is_active is False
        assert vendor_user.is_deleted is False
        [entry] = audit_entries(vendor.id, "vendor_deactivated")
        assert entry.metadata_["deactivation_reason"] == "Expired license"

    def test_deactivate_blocked_by_active_listings(self, db, actor, vendor, listing):
        result = LifecycleManager(db, VENDOR).deactivate(vendor.id, actor, "Expired license")

        assert result.blocked is not None
        assert result.blocked.counts["active_listings"] == 1
        assert db.get(Vendor, vendor.id).is_active is True

    def test_already_inactive(self, db, actor, vendor):
        manager = LifecycleManager(db, VENDOR)
        manager.deactivate(vendor.id, actor, "Paused")

        with pytest.raises(Conflict):
            manager.deactivate(vendor.id, actor, "Paused again")

    def test_reactivate_does_not_touch_linked_users(self, db, actor, vendor, vendor_user):
        manager = LifecycleManager(db, VENDOR)
        manager.deactivate(vendor.id, actor, "Paused")

        result = manager.reactivate(vendor.id, actor)

        assert result.entity.is_active is True
        db.refresh(vendor_user)
        assert vendor_user.is_active is False

    def test_reactivate_deleted_entity(self, db, actor, vendor):
        manager = LifecycleManager(db, VENDOR)
        manager.soft_delete(vendor.id, actor)

        with pytest.raises(EntityDeleted):
            manager.reactivate(vendor.id, actor)

    def test_reactivate_active_entity(self, db, actor, vendor):
        with pytest.raises(Conflict):
            LifecycleManager(db, VENDOR).reactivate(vendor.id, actor)


class TestMarketAvailability:
    def test_disabling_requires_reason(self, db, actor, market):
        with pytest.raises(ValidationFailed):
            MarketLifecycle(db).set_availability(market.id, False, actor)

    def test_disable_then_enable(self, db, actor, market, audit_entries):
        lifecycle = MarketLifecycle(db)

        disabled = lifecycle.set_availability(market.id, False, actor, "Renovation")
        assert disabled.entity.is_available is False
        assert disabled.entity.admin_status == AdminStatus.DISABLED
        assert disabled.entity.flag_reason == "Renovation"

        enabled = lifecycle.set_availability(market.id, True, actor)
        assert enabled.entity.is_available is True
        assert enabled.entity.flag_reason is None

        actions = sorted(e.action for e in audit_entries(market.id))
        assert actions == ["market_flagged", "market_unflagged"]


class TestUserLifecycle:
    def test_cannot_deactivate_own_account(self, db, actor):
        with pytest.raises(Forbidden):
            UserLifecycle(db).deactivate(actor.id, actor, "Leaving")

    def test_cannot_delete_own_account(self, db, actor):
        with pytest.raises(Forbidden):
            UserLifecycle(db).soft_delete(actor.id, actor)

    def test_vendor_role_requires_vendor(self, db, actor, buyer_owner):
        with pytest.raises(ValidationFailed, match="vendor_id"):
            UserLifecycle(db).update(buyer_owner.id, {"role": "vendor"}, actor)

    def test_switching_to_admin_clears_links(self, db, actor, buyer_owner):
        result = UserLifecycle(db).update(buyer_owner.id, {"role": "admin"}, actor)

        assert result.entity.role == "admin"
        assert result.entity.buyer_id is None

    def test_invalid_role(self, db, actor, buyer_owner):
        with pytest.raises(ValidationFailed, match="Invalid role"):
            UserLifecycle(db).update(buyer_owner.id, {"role": "superuser"}, actor)

    def test_user_with_open_orders_cannot_be_deleted(self, db, actor, buyer_owner, listing, make_order):
        make_order(listing, placed_by=buyer_owner)

        result = UserLifecycle(db).soft_delete(buyer_owner.id, actor)

        assert result.blocked is not None
        assert db.get(User, buyer_owner.id).is_deleted is False


class TestReplaceImage:
    def test_new_logo_is_stored_and_old_one_removed(self, db, actor, vendor, audit_entries):
        vendor.logo = "/media/vendors/old.png"
        db.commit()
        storage = FakeStorage()

        result = LifecycleManager(db, VENDOR).replace_image(
            vendor.id, b"\x89PNG...", "logo.png", actor, storage=storage
        )

        assert result.entity.logo == storage.saved[0]
        assert storage.deleted == ["/media/vendors/old.png"]
        [entry] = audit_entries(vendor.id, "vendor_updated")
        assert "logo changed" in entry.description

    def test_unsupported_extension(self, db, actor, vendor):
        with pytest.raises(ValidationFailed, match="Unsupported image type"):
            LifecycleManager(db, VENDOR).replace_image(
                vendor.id, b"data", "logo.exe", actor, storage=FakeStorage()
            )

    def test_product_has_no_single_image_field(self, db, actor, product):
        with pytest.raises(ValidationFailed):
            LifecycleManager(db, PRODUCT).replace_image(
                product.id, b"data", "p.png", actor, storage=FakeStorage()
            )


def test_slugify():
    assert slugify("  Fresh & Green  Market ") == "fresh-green-market"
    assert slugify("!!!") == "item"
