"""
Onboarding flows: platform vendors, buyers with owner accounts, managers and
ownership transfer.
"""

import pytest

from marketadmin.models.marketplace import Buyer, Vendor
from marketadmin.models.user import User, UserRole
from marketadmin.security import verify_password
from marketadmin.services.errors import Conflict, EntityDeleted, ValidationFailed
from marketadmin.services.lifecycle.manager import LifecycleManager
from marketadmin.services.lifecycle.onboarding import OnboardingService
from marketadmin.services.lifecycle.profiles import BUYER


pytestmark = pytest.mark.usefixtures("db")


@pytest.fixture
def onboarding(db):
    return OnboardingService(db)


def _buyer_payload(**overrides):
    data = {
        "name": "Dhaba Express",
        "owner_name": "Nadia Islam",
        "email": "Nadia@DhabaExpress.test",
        "phone": "+8801755555555",
        "password": "sup3r-secret",
        "buyer_type": "restaurant",
    }
    data.update(overrides)
    return data


class TestPlatformVendor:
    def test_created_approved_with_account(self, onboarding, db, actor, market, audit_entries):
        result = onboarding.create_platform_vendor(
            {
                "platform_name": "Aaroth Organics",
                "email": "organics@aaroth.test",
                "phone": "+8801766666666",
                "password": "platform-pass",
                "markets": [market.id],
            },
            actor,
        )

        vendor = result.entity
        assert vendor.is_platform_owned is True
        assert vendor.verification_status == "approved"
        assert vendor.verification_date is not None
        account = db.query(User).filter(User.vendor_id == vendor.id).one()
        assert account.role == UserRole.VENDOR
        assert verify_password("platform-pass", account.hashed_password)
        assert len(audit_entries(vendor.id, "platform_vendor_created")) == 1

    def test_unknown_platform_name(self, onboarding, actor, market):
        with pytest.raises(ValidationFailed, match="Invalid platform name"):
            onboarding.create_platform_vendor(
                {
                    "platform_name": "Someone Else",
                    "email": "x@y.test",
                    "phone": "+8801766666666",
                    "password": "platform-pass",
                    "markets": [market.id],
                },
                actor,
            )

    def test_one_live_vendor_per_platform_name(self, onboarding, db, actor, market):
        db.add(
            Vendor(
                business_name="Aaroth Mall",
                phone="+8801766666660",
                is_platform_owned=True,
                platform_name="Aaroth Mall",
                markets=[market],
            )
        )
        db.commit()

        with pytest.raises(Conflict, match="already exists"):
            onboarding.create_platform_vendor(
                {
                    "platform_name": "Aaroth Mall",
                    "email": "mall@aaroth.test",
                    "phone": "+8801766666661",
                    "password": "platform-pass",
                    "markets": [market.id],
                },
                actor,
            )


class TestBuyerOnboarding:
    def test_buyer_and_owner_created_together(self, onboarding, db, actor):
        result = onboarding.create_buyer_with_owner(_buyer_payload(), actor)

        buyer = result.entity
        owner = db.get(User, buyer.owner_id)
        assert buyer.verification_status == "pending"
        assert owner.role == UserRole.BUYER_OWNER
        assert owner.buyer_id == buyer.id
        assert owner.email == "nadia@dhabaexpress.test"

    def test_short_password(self, onboarding, db, actor):
        with pytest.raises(ValidationFailed, match="at least 8"):
            onboarding.create_buyer_with_owner(_buyer_payload(password="short"), actor)
        assert db.query(Buyer).count() == 0

    def test_duplicate_account_email(self, onboarding, actor, buyer_owner):
        with pytest.raises(Conflict, match="email"):
            onboarding.create_buyer_with_owner(_buyer_payload(email=buyer_owner.email), actor)

    def test_invalid_buyer_type(self, onboarding, actor):
        with pytest.raises(ValidationFailed, match="buyer type"):
            onboarding.create_buyer_with_owner(_buyer_payload(buyer_type="hotel"), actor)


class TestManagersAndOwnership:
    @pytest.fixture
    def manager(self, onboarding, actor, buyer, buyer_owner):
        return onboarding.add_buyer_manager(
            buyer.id,
            {"name": "Sadia Khan", "email": "sadia@test.local", "phone": "+8801777777777", "password": "manager-pass"},
            actor,
        ).entity

    def test_manager_is_linked(self, manager, buyer):
        assert manager.role == UserRole.BUYER_MANAGER
        assert manager.buyer_id == buyer.id

    def test_transfer_swaps_roles(self, onboarding, db, actor, buyer, buyer_owner, manager, audit_entries):
        result = onboarding.transfer_buyer_ownership(buyer.id, manager.id, actor, "Owner retiring")

        assert result.entity.owner_id == manager.id
        assert result.entity.owner_name == "Sadia Khan"
        db.refresh(buyer_owner)
        db.refresh(manager)
        assert buyer_owner.role == UserRole.BUYER_MANAGER
        assert manager.role == UserRole.BUYER_OWNER
        [entry] = audit_entries(buyer.id, "buyer_ownership_transferred")
        assert entry.changes["after"]["owner_id"] == str(manager.id)

    def test_transfer_to_current_owner(self, onboarding, actor, buyer, buyer_owner):
        with pytest.raises(Conflict):
            onboarding.transfer_buyer_ownership(buyer.id, buyer_owner.id, actor)

    def test_transfer_to_outsider(self, onboarding, actor, buyer, buyer_owner, vendor_user):
        with pytest.raises(ValidationFailed, match="account of this buyer"):
            onboarding.transfer_buyer_ownership(buyer.id, vendor_user.id, actor)

    def test_no_managers_on_deleted_buyer(self, onboarding, db, actor, buyer):
        LifecycleManager(db, BUYER).soft_delete(buyer.id, actor)

        with pytest.raises(EntityDeleted):
            onboarding.add_buyer_manager(
                buyer.id,
                {"name": "Late", "email": "late@test.local", "phone": "+8801788888888", "password": "manager-pass"},
                actor,
            )
