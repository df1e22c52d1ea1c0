"""
ListingModerationFlow tests: status, featuring, flagging, creation rules and
bulk moderation with per-item failures.
"""

import uuid
from decimal import Decimal

import pytest

from marketadmin.models.audit import AuditLogEntry, AuditStatus
from marketadmin.models.marketplace import Listing, ListingStatus
from marketadmin.models.order import OrderStatus
from marketadmin.services.errors import EntityDeleted, Forbidden, ValidationFailed
from marketadmin.services.lifecycle.listing_moderation import (
    MAX_BULK_LISTINGS,
    BulkAction,
    ListingModerationFlow,
)


pytestmark = pytest.mark.usefixtures("db")


@pytest.fixture
def flow(db):
    return ListingModerationFlow(db)


def _bulk_entries(db, action):
    return db.query(AuditLogEntry).filter(AuditLogEntry.action == f"bulk_listing_{action}").all()


class TestStatusAndFeatured:
    def test_status_change_keeps_featured(self, flow, actor, make_listing, audit_entries):
        listing = make_listing(featured=True)

        result = flow.set_status(listing.id, ListingStatus.OUT_OF_STOCK, actor, "Sold out")

        assert result.entity.status == ListingStatus.OUT_OF_STOCK
        assert result.entity.featured is True
        assert result.entity.moderated_by_id == actor.id
        [entry] = audit_entries(listing.id, "listing_status_updated")
        assert entry.metadata_ == {"old_status": "active", "new_status": "out_of_stock"}
        assert entry.description == "Changed listing status from 'active' to 'out_of_stock'"

    def test_invalid_status(self, flow, actor, listing):
        with pytest.raises(ValidationFailed, match="Invalid listing status"):
            flow.set_status(listing.id, "archived", actor)

    def test_toggle_featured_on_and_off(self, flow, actor, listing):
        assert flow.toggle_featured(listing.id, actor).entity.featured is True
        assert flow.toggle_featured(listing.id, actor).entity.featured is False

    def test_inactive_listing_cannot_be_featured(self, flow, actor, make_listing):
        listing = make_listing(status=ListingStatus.INACTIVE)

        with pytest.raises(Forbidden):
            flow.toggle_featured(listing.id, actor)

    def test_deleted_listing_cannot_be_moderated(self, flow, actor, listing):
        flow.soft_delete(listing.id, actor)

        with pytest.raises(EntityDeleted):
            flow.set_status(listing.id, ListingStatus.ACTIVE, actor)


class TestFlagging:
    def test_flag_requires_reason(self, flow, actor, listing):
        with pytest.raises(ValidationFailed, match="Flag reason"):
            flow.flag(listing.id, actor, "  ")

    def test_flag_then_unflag(self, flow, actor, listing, audit_entries):
        flagged = flow.flag(listing.id, actor, "Misleading photo", "Reported by buyer")
        assert flagged.entity.is_flagged is True
        assert flagged.entity.flag_reason == "Misleading photo"
        assert flagged.entity.moderation_notes == "Reported by buyer"

        unflagged = flow.unflag(listing.id, actor)
        assert unflagged.entity.is_flagged is False
        assert unflagged.entity.flag_reason is None
        assert unflagged.entity.moderation_notes == "Flag removed by admin"

        [entry] = audit_entries(listing.id, "listing_unflagged")
        assert entry.metadata_["previous_flag_reason"] == "Misleading photo"


class TestCreate:
    def test_create_listing(self, flow, actor, vendor, product, market):
        result = flow.create(
            {
                "vendor_id": vendor.id,
                "product_id": product.id,
                "market_id": market.id,
                "price_per_unit": Decimal("38.50"),
            },
            actor,
        )

        assert result.entity.status == ListingStatus.ACTIVE
        assert result.entity.price_per_unit == Decimal("38.50")

    def test_vendor_must_operate_in_market(self, flow, actor, vendor, product, second_market):
        with pytest.raises(ValidationFailed, match="does not operate"):
            flow.create(
                {
                    "vendor_id": vendor.id,
                    "product_id": product.id,
                    "market_id": second_market.id,
                    "price_per_unit": Decimal("10"),
                },
                actor,
            )

    def test_negative_price(self, flow, actor, vendor, product, market):
        with pytest.raises(ValidationFailed, match="negative"):
            flow.create(
                {
                    "vendor_id": vendor.id,
                    "product_id": product.id,
                    "market_id": market.id,
                    "price_per_unit": Decimal("-1"),
                },
                actor,
            )

    def test_vendor_id_is_create_only(self, flow, actor, listing, vendor):
        with pytest.raises(ValidationFailed, match="read-only"):
            flow.update(listing.id, {"vendor_id": vendor.id}, actor)


class TestDelete:
    def test_delete_discontinues(self, flow, actor, make_listing):
        listing = make_listing(featured=True)

        result = flow.soft_delete(listing.id, actor, "Duplicate")

        assert result.entity.is_deleted is True
        assert result.entity.status == ListingStatus.DISCONTINUED
        assert result.entity.featured is False

    def test_open_order_blocks_delete(self, flow, actor, listing, make_order):
        make_order(listing, status=OrderStatus.CONFIRMED)

        result = flow.soft_delete(listing.id, actor)

        assert result.blocked.counts == {"active_orders": 1}


class TestBulk:
    def test_cap_is_enforced_before_touching_the_database(self, flow, db, actor):
        ids = [uuid.uuid4() for _ in range(MAX_BULK_LISTINGS + 1)]

        with pytest.raises(ValidationFailed, match="more than 50"):
            flow.bulk_apply(ids, BulkAction.FLAG, actor, {"flag_reason": "x"})
        assert db.query(AuditLogEntry).count() == 0

    def test_exactly_fifty_is_allowed(self, flow, actor):
        ids = [uuid.uuid4() for _ in range(MAX_BULK_LISTINGS)]

        result = flow.bulk_apply(ids, BulkAction.UNFLAG, actor)

        assert result.failed_count == MAX_BULK_LISTINGS

    def test_empty_ids(self, flow, actor):
        with pytest.raises(ValidationFailed):
            flow.bulk_apply([], BulkAction.UNFLAG, actor)

    def test_unknown_action(self, flow, actor, listing):
        with pytest.raises(ValidationFailed, match="Invalid bulk action"):
            flow.bulk_apply([listing.id], "archive", actor)

    def test_flag_requires_reason_up_front(self, flow, actor, listing):
        with pytest.raises(ValidationFailed, match="Flag reason"):
            flow.bulk_apply([listing.id], BulkAction.FLAG, actor, {})

    def test_partial_success(self, flow, db, actor, make_listing):
        first = make_listing()
        second = make_listing()
        missing = uuid.uuid4()

        result = flow.bulk_apply(
            [first.id, missing, second.id], BulkAction.FLAG, actor, {"flag_reason": "Price gouging"}
        )

        assert result.success_count == 2
        assert result.failed_count == 1
        assert result.successful == [first.id, second.id]
        assert result.errors[0].id == missing
        assert db.get(Listing, first.id).is_flagged is True

        [entry] = _bulk_entries(db, BulkAction.FLAG)
        assert entry.entity_id is None
        assert entry.status == AuditStatus.PARTIAL
        assert entry.metadata_["success_count"] == 2
        assert entry.metadata_["failed_count"] == 1
        assert entry.reason == "Price gouging"

    def test_failed_item_is_rolled_back_alone(self, flow, db, actor, make_listing):
        active = make_listing()
        inactive = make_listing(status=ListingStatus.INACTIVE)

        result = flow.bulk_apply([active.id, inactive.id], BulkAction.TOGGLE_FEATURED, actor)

        assert result.successful == [active.id]
        assert result.errors[0].message == "Only active listings can be featured"
        db.expire_all()
        assert db.get(Listing, active.id).featured is True
        assert db.get(Listing, inactive.id).featured is False

    def test_duplicate_ids_processed_once(self, flow, actor, listing):
        result = flow.bulk_apply([listing.id, listing.id], BulkAction.TOGGLE_FEATURED, actor)

        assert result.success_count == 1
        assert result.failed_count == 0
        assert listing.featured is True

    def test_bulk_status_update(self, flow, db, actor, make_listing):
        listings = [make_listing(featured=True) for _ in range(3)]

        result = flow.bulk_apply(
            [item.id for item in listings], BulkAction.UPDATE_STATUS, actor, {"status": ListingStatus.INACTIVE}
        )

        assert result.success_count == 3
        for listing in listings:
            db.refresh(listing)
            assert listing.status == ListingStatus.INACTIVE
            assert listing.featured is True

    def test_bulk_delete_skips_listings_with_open_orders(self, flow, db, actor, make_listing, make_order):
        free = make_listing()
        busy = make_listing()
        make_order(busy)

        result = flow.bulk_apply([free.id, busy.id], BulkAction.DELETE, actor, {"reason": "Cleanup"})

        assert result.successful == [free.id]
        assert "1 active orders" in result.errors[0].message
        db.expire_all()
        assert db.get(Listing, free.id).is_deleted is True
        assert db.get(Listing, busy.id).is_deleted is False

    def test_all_failed_batch_is_still_audited(self, flow, db, actor):
        result = flow.bulk_apply([uuid.uuid4()], BulkAction.UNFLAG, actor)

        assert result.success_count == 0
        assert result.audit_recorded is True
        [entry] = _bulk_entries(db, BulkAction.UNFLAG)
        assert entry.status == AuditStatus.FAILED
