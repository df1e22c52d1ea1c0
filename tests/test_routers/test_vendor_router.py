"""
Integration tests for the /admin/vendors and /admin/buyers routers.

Covers:
  - Role guards (only admins reach the admin routes)
  - Response envelopes for lists, details, mutations and errors
  - Vendor onboarding: create, verify, deactivate with cascade, reactivate
  - Dependency-blocked deletes rendered as 409 with counts and suggestions
"""

import uuid

import pytest

from marketadmin.models.order import OrderStatus
from marketadmin.models.user import User
from marketadmin.security import create_access_token


pytestmark = pytest.mark.usefixtures("db")


# ── Helpers ───────────────────────────────────────────────────────────────────


def _auth_header(user) -> dict:
    """Build Authorization header with a fresh JWT for the given user."""
    token = create_access_token(
        {"sub": user.email, "user_id": str(user.id), "role": user.role}
    )
    return {"Authorization": f"Bearer {token}"}


def _vendor_payload(market_id, **overrides):
    data = {
        "business_name": "Fresh Harvest Co",
        "owner_name": "Jamal Hossain",
        "email": "fresh.harvest@example.com",
        "phone": "+8801790000001",
        "markets": [str(market_id)],
    }
    data.update(overrides)
    return data


class TestAccess:
    def test_missing_token(self, client):
        r = client.get("/admin/vendors")
        assert r.status_code == 401
        assert r.json()["error"] == "unauthorized"

    def test_non_admin_is_forbidden(self, client, vendor_user):
        r = client.get("/admin/vendors", headers=_auth_header(vendor_user))
        assert r.status_code == 403
        body = r.json()
        assert body["success"] is False
        assert body["error"] == "forbidden"

    def test_deactivated_admin_token_is_rejected(self, client, db, admin_user):
        headers = _auth_header(admin_user)
        admin_user.is_active = False
        db.commit()

        assert client.get("/admin/vendors", headers=headers).status_code == 401


class TestVendorReads:
    def test_list_includes_pagination_and_stats(self, client, admin_user, vendor):
        r = client.get("/admin/vendors", headers=_auth_header(admin_user))

        assert r.status_code == 200
        body = r.json()
        assert body["success"] is True
        assert [v["business_name"] for v in body["data"]] == ["Green Valley Farms"]
        assert body["pagination"] == {"total": 1, "page": 1, "limit": 20, "pages": 1}
        assert body["stats"] == {"pending": 1, "approved": 0, "rejected": 0, "total": 1}

    def test_invalid_limit_is_a_validation_error(self, client, admin_user):
        r = client.get("/admin/vendors?limit=500", headers=_auth_header(admin_user))

        assert r.status_code == 422
        assert r.json()["error"] == "validation_failed"

    def test_detail_includes_markets(self, client, admin_user, vendor, market):
        r = client.get(f"/admin/vendors/{vendor.id}", headers=_auth_header(admin_user))

        assert r.status_code == 200
        assert r.json()["data"]["markets"] == [
            {"id": str(market.id), "name": "Karwan Bazar", "slug": "karwan-bazar"}
        ]

    def test_unknown_vendor(self, client, admin_user):
        r = client.get(f"/admin/vendors/{uuid.uuid4()}", headers=_auth_header(admin_user))

        assert r.status_code == 404
        assert r.json()["error"] == "not_found"


class TestVendorOnboarding:
    def test_create_verify_deactivate_reactivate(self, client, db, admin_user, market):
        headers = _auth_header(admin_user)

        r = client.post("/admin/vendors", json=_vendor_payload(market.id), headers=headers)
        assert r.status_code == 201
        created = r.json()
        assert created["success"] is True
        assert created["audit_recorded"] is True
        assert created["data"]["verification_status"] == "pending"
        vendor_id = created["data"]["id"]

        # A login account for the new vendor
        db.add(
            User(
                name="Jamal Hossain",
                email="jamal@example.com",
                phone="+8801790000002",
                hashed_password="not-a-real-hash",
                role="vendor",
                vendor_id=uuid.UUID(vendor_id),
            )
        )
        db.commit()

        r = client.post(f"/admin/vendors/{vendor_id}/verify", json={"status": "approved"}, headers=headers)
        assert r.status_code == 200
        assert r.json()["data"]["verification_status"] == "approved"
        assert r.json()["data"]["verification_date"] is not None

        r = client.post(
            f"/admin/vendors/{vendor_id}/deactivate", json={"reason": "Health inspection failed"}, headers=headers
        )
        assert r.status_code == 200
        assert r.json()["data"]["is_active"] is False
        account = db.query(User).filter(User.email == "jamal@example.com").one()
        assert account.is_active is False

        r = client.post(f"/admin/vendors/{vendor_id}/reactivate", headers=headers)
        assert r.status_code == 200
        assert r.json()["data"]["is_active"] is True

    def test_reject_without_reason(self, client, admin_user, vendor):
        r = client.post(
            f"/admin/vendors/{vendor.id}/verify", json={"status": "rejected"}, headers=_auth_header(admin_user)
        )

        assert r.status_code == 422
        assert r.json()["error"] == "validation_failed"
        assert "Reason is required" in r.json()["message"]

    def test_deactivate_without_reason(self, client, admin_user, vendor):
        r = client.post(f"/admin/vendors/{vendor.id}/deactivate", json={}, headers=_auth_header(admin_user))

        assert r.status_code == 422

    def test_duplicate_phone_conflicts(self, client, admin_user, vendor, market):
        r = client.post(
            "/admin/vendors",
            json=_vendor_payload(market.id, phone=vendor.phone, email="other@example.com"),
            headers=_auth_header(admin_user),
        )

        assert r.status_code == 409
        assert r.json()["error"] == "conflict"

    def test_malformed_phone(self, client, admin_user, market):
        r = client.post(
            "/admin/vendors", json=_vendor_payload(market.id, phone="call me"), headers=_auth_header(admin_user)
        )

        body = r.json()
        assert r.status_code == 422
        assert body["details"][0]["field"] == "phone"

    def test_update_deleted_vendor(self, client, admin_user, vendor):
        headers = _auth_header(admin_user)
        assert client.delete(f"/admin/vendors/{vendor.id}", headers=headers).status_code == 200

        r = client.patch(f"/admin/vendors/{vendor.id}", json={"business_name": "Revived"}, headers=headers)

        assert r.status_code == 409
        assert r.json()["error"] == "entity_deleted"

    def test_deleted_vendor_hidden_from_list(self, client, admin_user, vendor):
        headers = _auth_header(admin_user)
        client.delete(f"/admin/vendors/{vendor.id}?reason=Duplicate", headers=headers)

        assert client.get("/admin/vendors", headers=headers).json()["data"] == []
        listed = client.get("/admin/vendors?include_deleted=true", headers=headers).json()["data"]
        assert [v["id"] for v in listed] == [str(vendor.id)]
        assert listed[0]["admin_notes"] == "Duplicate"


class TestBlockedOperations:
    def test_vendor_delete_blocked(self, client, admin_user, vendor, listing, make_order):
        make_order(listing)

        r = client.delete(f"/admin/vendors/{vendor.id}", headers=_auth_header(admin_user))

        assert r.status_code == 409
        body = r.json()
        assert body["success"] is False
        assert body["error"] == "dependency_blocked"
        assert body["dependencies"] == {"incomplete_orders": 1, "active_listings": 1}
        assert body["suggestions"]

    def test_buyer_delete_blocked_by_incomplete_order(self, client, admin_user, buyer, listing, make_order):
        make_order(listing, status=OrderStatus.PROCESSING)

        r = client.delete(f"/admin/buyers/{buyer.id}", headers=_auth_header(admin_user))

        assert r.status_code == 409
        assert r.json()["dependencies"] == {"incomplete_orders": 1}

    def test_buyer_delete_after_orders_complete(self, client, admin_user, buyer, buyer_owner, listing, make_order):
        make_order(listing, status=OrderStatus.DELIVERED)

        r = client.delete(f"/admin/buyers/{buyer.id}", headers=_auth_header(admin_user))

        assert r.status_code == 200
        assert r.json()["data"]["is_deleted"] is True


class TestBuyerRoutes:
    def test_create_buyer_with_owner(self, client, db, admin_user):
        r = client.post(
            "/admin/buyers",
            json={
                "name": "Rooftop Grill",
                "email": "owner@rooftopgrill.example.com",
                "phone": "+8801791111111",
                "password": "grill-owner-pass",
                "buyer_type": "restaurant",
            },
            headers=_auth_header(admin_user),
        )

        assert r.status_code == 201
        data = r.json()["data"]
        owner = db.get(User, uuid.UUID(data["owner_id"]))
        assert owner.role == "buyer_owner"

    def test_list_filters_by_type(self, client, admin_user, buyer):
        headers = _auth_header(admin_user)

        assert client.get("/admin/buyers?buyer_type=restaurant", headers=headers).json()["pagination"]["total"] == 1
        assert client.get("/admin/buyers?buyer_type=catering", headers=headers).json()["pagination"]["total"] == 0
