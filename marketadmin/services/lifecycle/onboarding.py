"""
Onboarding flows that create or re-link user accounts together with the
business they belong to. Each flow is a single scoped transaction: either the
business, its accounts and the audit entry all commit, or nothing does.
"""

import logging
import uuid
from typing import Any, Optional

from sqlalchemy.orm import Session

from marketadmin.models.audit import AuditSeverity, EntityType, ImpactLevel
from marketadmin.models.base import VerificationStatus
from marketadmin.models.marketplace import Buyer, BuyerType, Vendor
from marketadmin.models.user import User, UserRole
from marketadmin.security import hash_password
from marketadmin.services.audit import logger as audit
from marketadmin.services.context import Actor
from marketadmin.services.errors import Conflict, EntityDeleted, NotFound, ValidationFailed
from marketadmin.services.lifecycle.manager import (
    LifecycleManager,
    LifecycleResult,
    integrity_errors_as_conflict,
    utcnow,
)
from marketadmin.services.lifecycle.profiles import BUYER, VENDOR
from marketadmin.services.transaction import atomic
from marketadmin.settings import settings

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


class OnboardingService:
    def __init__(self, db: Session):
        self.db = db

    # ── Platform vendors ──────────────────────────────────────────────────────

    def create_platform_vendor(self, data: dict[str, Any], actor: Actor) -> LifecycleResult:
        """
        Create a marketplace-operated vendor and its login account.
        Platform vendors skip verification: they start approved.
        """
        platform_name = (data.get("platform_name") or "").strip()
        if platform_name not in settings.platform_vendor_names:
            raise ValidationFailed(
                f"Invalid platform name. Must be one of: {', '.join(settings.platform_vendor_names)}"
            )
        existing = (
            self.db.query(Vendor.id)
            .filter(Vendor.platform_name == platform_name, Vendor.is_deleted.is_(False))
            .first()
        )
        if existing is not None:
            raise Conflict(f"Platform vendor '{platform_name}' already exists")

        email, phone = self._account_identity(data)
        password = self._password(data)
        vendors = LifecycleManager(self.db, VENDOR)
        markets_ids = data.get("markets") or []
        if not markets_ids:
            raise ValidationFailed("Vendors must operate in at least one market")
        vendors.check_unique({"email": email, "phone": phone, "trade_license_no": data.get("trade_license_no")})

        with integrity_errors_as_conflict(EntityType.VENDOR), atomic(self.db):
            now = utcnow()
            markets = vendors.resolve_markets(markets_ids)
            user = User(
                name=data.get("owner_name") or platform_name,
                email=email,
                phone=phone,
                hashed_password=hash_password(password),
                role=UserRole.VENDOR,
                created_by_id=actor.id,
            )
            self.db.add(user)
            self.db.flush()

            vendor = Vendor(
                business_name=platform_name,
                owner_name=data.get("owner_name") or platform_name,
                email=email,
                phone=phone,
                trade_license_no=data.get("trade_license_no"),
                address=data.get("address"),
                markets=markets,
                is_platform_owned=True,
                platform_name=platform_name,
                verification_status=VerificationStatus.APPROVED,
                verification_date=now,
                status_updated_by_id=actor.id,
                status_updated_at=now,
                created_by_id=actor.id,
                updated_by_id=actor.id,
            )
            self.db.add(vendor)
            self.db.flush()
            user.vendor_id = vendor.id
            self.db.flush()

            entry = audit.log_action(
                self.db,
                actor,
                "platform_vendor_created",
                EntityType.VENDOR,
                vendor.id,
                description=f"Created platform vendor: {platform_name}",
                severity=AuditSeverity.HIGH,
                impact_level=ImpactLevel.SIGNIFICANT,
                metadata={
                    "platform_name": platform_name,
                    "user_id": user.id,
                    "markets": [m.id for m in markets],
                },
            )

        logger.info("Platform vendor %s (%s) created by %s", platform_name, vendor.id, actor.id)
        return LifecycleResult(
            entity=vendor,
            message="Platform vendor created successfully",
            audit_entry=entry,
            audit_failed=entry is None,
        )

    # ── Buyers ────────────────────────────────────────────────────────────────

    def create_buyer_with_owner(self, data: dict[str, Any], actor: Actor) -> LifecycleResult:
        """Create a Buyer (pending verification) and its buyer_owner account."""
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationFailed("Missing required fields: name")
        buyer_type = data.get("buyer_type") or BuyerType.RESTAURANT
        if buyer_type not in BuyerType.ALL:
            raise ValidationFailed(f"Invalid buyer type. Must be one of: {', '.join(BuyerType.ALL)}")
        email, phone = self._account_identity(data)
        password = self._password(data)
        buyers = LifecycleManager(self.db, BUYER)
        buyers.check_unique({"email": email, "phone": phone, "trade_license_no": data.get("trade_license_no")})

        with integrity_errors_as_conflict(EntityType.BUYER), atomic(self.db):
            buyer = Buyer(
                name=name,
                owner_name=data.get("owner_name"),
                email=email,
                phone=phone,
                trade_license_no=data.get("trade_license_no"),
                buyer_type=buyer_type,
                address=data.get("address"),
                verification_status=VerificationStatus.PENDING,
                created_by_id=actor.id,
                updated_by_id=actor.id,
            )
            self.db.add(buyer)
            self.db.flush()

            owner = User(
                name=data.get("owner_name") or name,
                email=email,
                phone=phone,
                hashed_password=hash_password(password),
                role=UserRole.BUYER_OWNER,
                buyer_id=buyer.id,
                created_by_id=actor.id,
            )
            self.db.add(owner)
            self.db.flush()
            buyer.owner_id = owner.id

            entry = audit.log_action(
                self.db,
                actor,
                "buyer_created",
                EntityType.BUYER,
                buyer.id,
                description=f"Created buyer {name} with owner {email}",
                severity=AuditSeverity.MEDIUM,
                impact_level=ImpactLevel.MODERATE,
                metadata={"owner_id": owner.id, "buyer_type": buyer_type},
            )

        return LifecycleResult(
            entity=buyer,
            message="Buyer and owner account created successfully",
            audit_entry=entry,
            audit_failed=entry is None,
        )

    def add_buyer_manager(self, buyer_id: uuid.UUID, data: dict[str, Any], actor: Actor) -> LifecycleResult:
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationFailed("Missing required fields: name")
        email, phone = self._account_identity(data)
        password = self._password(data)

        with integrity_errors_as_conflict(EntityType.USER), atomic(self.db):
            buyer = self._live_buyer(buyer_id)
            manager = User(
                name=name,
                email=email,
                phone=phone,
                hashed_password=hash_password(password),
                role=UserRole.BUYER_MANAGER,
                buyer_id=buyer.id,
                created_by_id=actor.id,
            )
            self.db.add(manager)
            self.db.flush()
            entry = audit.log_action(
                self.db,
                actor,
                "user_created",
                EntityType.USER,
                manager.id,
                description=f"Added manager {email} to buyer {buyer.name}",
                severity=AuditSeverity.MEDIUM,
                impact_level=ImpactLevel.MINOR,
                metadata={"buyer_id": buyer.id, "role": UserRole.BUYER_MANAGER},
            )

        return LifecycleResult(
            entity=manager,
            message="Buyer manager created successfully",
            audit_entry=entry,
            audit_failed=entry is None,
        )

    def transfer_buyer_ownership(
        self,
        buyer_id: uuid.UUID,
        new_owner_id: uuid.UUID,
        actor: Actor,
        reason: Optional[str] = None,
    ) -> LifecycleResult:
        """
        Promote one of the buyer's accounts to owner and demote the current
        owner to manager. Buyer and both accounts change in one transaction.
        """
        reason = (reason or "").strip() or None
        with atomic(self.db):
            buyer = self._live_buyer(buyer_id)
            new_owner = (
                self.db.query(User)
                .filter(User.id == new_owner_id)
                .with_for_update()
                .one_or_none()
            )
            if new_owner is None or new_owner.is_deleted:
                raise NotFound(EntityType.USER, new_owner_id)
            if new_owner.buyer_id != buyer.id or new_owner.role not in UserRole.BUYER_ROLES:
                raise ValidationFailed("New owner must be an account of this buyer")
            if not new_owner.is_active:
                raise ValidationFailed("New owner account is inactive")
            if buyer.owner_id == new_owner.id:
                raise Conflict("User already owns this buyer")

            previous_owner_id = buyer.owner_id
            if previous_owner_id is not None:
                previous = self.db.get(User, previous_owner_id)
                if previous is not None and previous.buyer_id == buyer.id and not previous.is_deleted:
                    previous.role = UserRole.BUYER_MANAGER
                    previous.updated_by_id = actor.id

            new_owner.role = UserRole.BUYER_OWNER
            new_owner.updated_by_id = actor.id
            buyer.owner_id = new_owner.id
            buyer.owner_name = new_owner.name
            buyer.updated_by_id = actor.id
            self.db.flush()

            entry = audit.log_action(
                self.db,
                actor,
                "buyer_ownership_transferred",
                EntityType.BUYER,
                buyer.id,
                description=f"Transferred ownership of {buyer.name} to {new_owner.email}",
                reason=reason,
                severity=AuditSeverity.HIGH,
                impact_level=ImpactLevel.MAJOR,
                changes={
                    "before": {"owner_id": previous_owner_id},
                    "after": {"owner_id": new_owner.id},
                },
            )

        return LifecycleResult(
            entity=buyer,
            message="Buyer ownership transferred successfully",
            audit_entry=entry,
            audit_failed=entry is None,
        )

    # ── Internals ─────────────────────────────────────────────────────────────

    def _live_buyer(self, buyer_id: uuid.UUID) -> Buyer:
        buyer = LifecycleManager(self.db, BUYER).load_for_update(buyer_id)
        if buyer.is_deleted:
            raise EntityDeleted(EntityType.BUYER, buyer_id, "update")
        return buyer

    def _account_identity(self, data: dict[str, Any]) -> tuple[str, str]:
        email = (data.get("email") or "").strip().lower()
        phone = (data.get("phone") or "").strip()
        if not email or not phone:
            raise ValidationFailed("Email and phone are required")
        self._check_account_unique(email, phone)
        return email, phone

    def _check_account_unique(self, email: str, phone: str) -> None:
        if self.db.query(User.id).filter(User.email == email).first() is not None:
            raise Conflict("A user with this email already exists")
        if self.db.query(User.id).filter(User.phone == phone).first() is not None:
            raise Conflict("A user with this phone number already exists")

    def _password(self, data: dict[str, Any]) -> str:
        password = data.get("password") or ""
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationFailed(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        return password
