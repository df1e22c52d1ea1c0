"""
ListingModerationFlow: status changes, featuring, flagging and bulk moderation.

A LifecycleManager bound to the Listing profile, so listings also get the
generic create / update / soft_delete / deactivate / reactivate.

Bulk moderation:
  - at most MAX_BULK_LISTINGS ids; larger, empty or malformed requests are
    rejected before the database is touched
  - each listing is processed in its own SAVEPOINT; a failure is recorded
    against that id and the batch carries on
  - the batch writes exactly one audit entry with aggregate counts
"""

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketadmin.models.audit import AuditSeverity, ImpactLevel
from marketadmin.models.marketplace import Listing, ListingStatus, Market, Product, Vendor
from marketadmin.services.audit import logger as audit
from marketadmin.services.context import Actor
from marketadmin.services.errors import (
    Conflict,
    EntityDeleted,
    Forbidden,
    MarketAdminError,
    ValidationFailed,
)
from marketadmin.services.lifecycle.dependency_guard import GuardedOperation, check_dependencies
from marketadmin.services.lifecycle.manager import LifecycleManager, LifecycleResult, utcnow
from marketadmin.services.lifecycle.profiles import LISTING
from marketadmin.services.transaction import atomic

logger = logging.getLogger(__name__)

MAX_BULK_LISTINGS = 50


class BulkAction:
    UPDATE_STATUS = "update_status"
    TOGGLE_FEATURED = "toggle_featured"
    FLAG = "flag"
    UNFLAG = "unflag"
    DELETE = "delete"

    ALL = (UPDATE_STATUS, TOGGLE_FEATURED, FLAG, UNFLAG, DELETE)


@dataclass
class BulkItemError:
    id: uuid.UUID
    message: str


@dataclass
class BulkResult:
    action: str
    successful: list[uuid.UUID] = field(default_factory=list)
    errors: list[BulkItemError] = field(default_factory=list)
    audit_failed: bool = False

    @property
    def success_count(self) -> int:
        return len(self.successful)

    @property
    def failed_count(self) -> int:
        return len(self.errors)

    @property
    def audit_recorded(self) -> bool:
        return not self.audit_failed


class ListingModerationFlow(LifecycleManager):
    def __init__(self, db: Session):
        super().__init__(db, LISTING)

    # ── Single-listing moderation ─────────────────────────────────────────────

    def set_status(
        self,
        listing_id: uuid.UUID,
        status: str,
        actor: Actor,
        reason: Optional[str] = None,
    ) -> LifecycleResult:
        _validate_listing_status(status)
        with atomic(self.db):
            listing = self._load_live(listing_id)
            old_status = self._apply_status(listing, status, actor)
            self.db.flush()
            entry = audit.log_action(
                self.db,
                actor,
                "listing_status_updated",
                LISTING.entity_type,
                listing.id,
                description=f"Changed listing status from '{old_status}' to '{status}'",
                reason=reason,
                severity=AuditSeverity.MEDIUM,
                impact_level=ImpactLevel.MODERATE,
                changes={"before": {"status": old_status}, "after": {"status": status}},
                metadata={"old_status": old_status, "new_status": status},
            )
        return LifecycleResult(
            entity=listing,
            message=f"Listing status updated to {status}",
            audit_entry=entry,
            audit_failed=entry is None,
        )

    def toggle_featured(self, listing_id: uuid.UUID, actor: Actor) -> LifecycleResult:
        with atomic(self.db):
            listing = self._load_live(listing_id)
            featured = self._apply_toggle_featured(listing, actor)
            self.db.flush()
            entry = audit.log_action(
                self.db,
                actor,
                "listing_featured" if featured else "listing_unfeatured",
                LISTING.entity_type,
                listing.id,
                description=f"{'Featured' if featured else 'Unfeatured'} listing {listing.id}",
                severity=AuditSeverity.LOW,
                impact_level=ImpactLevel.MINOR,
                metadata={"featured": featured},
            )
        return LifecycleResult(
            entity=listing,
            message=f"Listing {'featured' if featured else 'unfeatured'} successfully",
            audit_entry=entry,
            audit_failed=entry is None,
        )

    def flag(
        self,
        listing_id: uuid.UUID,
        actor: Actor,
        reason: str,
        notes: Optional[str] = None,
    ) -> LifecycleResult:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationFailed("Flag reason is required when flagging")
        with atomic(self.db):
            listing = self._load_live(listing_id)
            self._apply_flag(listing, actor, reason, notes)
            self.db.flush()
            entry = audit.log_action(
                self.db,
                actor,
                "listing_flagged",
                LISTING.entity_type,
                listing.id,
                description=f"Flagged listing {listing.id}: {reason}",
                reason=reason,
                severity=AuditSeverity.MEDIUM,
                impact_level=ImpactLevel.MODERATE,
                metadata={"moderation_notes": notes},
            )
        return LifecycleResult(
            entity=listing,
            message="Listing flagged successfully",
            audit_entry=entry,
            audit_failed=entry is None,
        )

    def unflag(
        self, listing_id: uuid.UUID, actor: Actor, notes: Optional[str] = None
    ) -> LifecycleResult:
        with atomic(self.db):
            listing = self._load_live(listing_id)
            previous_reason = listing.flag_reason
            self._apply_unflag(listing, actor, notes)
            self.db.flush()
            entry = audit.log_action(
                self.db,
                actor,
                "listing_unflagged",
                LISTING.entity_type,
                listing.id,
                description=f"Removed flag from listing {listing.id}",
                reason=notes,
                severity=AuditSeverity.LOW,
                impact_level=ImpactLevel.MINOR,
                metadata={"previous_flag_reason": previous_reason},
            )
        return LifecycleResult(
            entity=listing,
            message="Listing unflagged successfully",
            audit_entry=entry,
            audit_failed=entry is None,
        )

    # ── Bulk ──────────────────────────────────────────────────────────────────

    def bulk_apply(
        self,
        listing_ids: list[uuid.UUID],
        action: str,
        actor: Actor,
        data: Optional[dict[str, Any]] = None,
    ) -> BulkResult:
        if not listing_ids:
            raise ValidationFailed("listing_ids must contain at least one listing id")
        if len(listing_ids) > MAX_BULK_LISTINGS:
            raise ValidationFailed(
                f"Cannot process more than {MAX_BULK_LISTINGS} listings at once"
            )
        if action not in BulkAction.ALL:
            raise ValidationFailed(
                f"Invalid bulk action. Must be one of: {', '.join(BulkAction.ALL)}"
            )
        data = dict(data or {})
        apply = self._bulk_handler(action, data, actor)
        ids = list(dict.fromkeys(listing_ids))

        result = BulkResult(action=action)
        with atomic(self.db):
            for listing_id in ids:
                try:
                    with self.db.begin_nested():
                        apply(self._load_live(listing_id))
                        self.db.flush()
                    result.successful.append(listing_id)
                except MarketAdminError as exc:
                    result.errors.append(BulkItemError(listing_id, exc.message))
                except SQLAlchemyError as exc:
                    logger.warning("Bulk %s failed on listing %s: %s", action, listing_id, exc)
                    result.errors.append(BulkItemError(listing_id, "Database error while updating listing"))

            entry = audit.log_bulk_action(
                self.db,
                actor,
                f"bulk_listing_{action}",
                LISTING.entity_type,
                ids,
                success_count=result.success_count,
                failed_count=result.failed_count,
                action_data=data,
                reason=data.get("reason") or data.get("flag_reason"),
            )
        result.audit_failed = entry is None
        logger.info(
            "Bulk %s on %d listings by %s: %d ok, %d failed",
            action,
            len(ids),
            actor.id,
            result.success_count,
            result.failed_count,
        )
        return result

    def _bulk_handler(
        self, action: str, data: dict[str, Any], actor: Actor
    ) -> Callable[[Listing], None]:
        """Validate the action's data up front and return the per-listing mutation."""
        if action == BulkAction.UPDATE_STATUS:
            status = data.get("status")
            _validate_listing_status(status)
            return lambda listing: self._apply_status(listing, status, actor)

        if action == BulkAction.TOGGLE_FEATURED:
            return lambda listing: self._apply_toggle_featured(listing, actor)

        if action == BulkAction.FLAG:
            reason = (data.get("flag_reason") or "").strip()
            if not reason:
                raise ValidationFailed("Flag reason is required when flagging")
            notes = data.get("moderation_notes")
            return lambda listing: self._apply_flag(listing, actor, reason, notes)

        if action == BulkAction.UNFLAG:
            notes = data.get("moderation_notes")
            return lambda listing: self._apply_unflag(listing, actor, notes)

        reason = (data.get("reason") or "").strip() or None

        def delete(listing: Listing) -> None:
            report = check_dependencies(
                self.db, LISTING.entity_type, listing.id, GuardedOperation.DELETE
            )
            if report.blocking:
                raise Conflict(report.message)
            self._mark_deleted(listing, actor, reason, utcnow())

        return delete

    # ── Mutations (no audit, no commit) ───────────────────────────────────────

    def _apply_status(self, listing: Listing, status: str, actor: Actor) -> str:
        # featured is only checked when toggled, never cleared here
        old_status = listing.status
        listing.status = status
        self._stamp(listing, actor)
        return old_status

    def _apply_toggle_featured(self, listing: Listing, actor: Actor) -> bool:
        if not listing.featured and listing.status != ListingStatus.ACTIVE:
            raise Forbidden("Only active listings can be featured")
        listing.featured = not listing.featured
        listing.updated_by_id = actor.id
        return listing.featured

    def _apply_flag(self, listing: Listing, actor: Actor, reason: str, notes: Optional[str]) -> None:
        listing.is_flagged = True
        listing.flag_reason = reason
        listing.moderation_notes = notes
        self._stamp(listing, actor)

    def _apply_unflag(self, listing: Listing, actor: Actor, notes: Optional[str]) -> None:
        listing.is_flagged = False
        listing.flag_reason = None
        listing.moderation_notes = notes or "Flag removed by admin"
        self._stamp(listing, actor)

    def _stamp(self, listing: Listing, actor: Actor) -> None:
        listing.moderated_by_id = actor.id
        listing.last_status_update = utcnow()
        listing.updated_by_id = actor.id

    def _load_live(self, listing_id: uuid.UUID) -> Listing:
        listing = self.load_for_update(listing_id)
        if listing.is_deleted:
            raise EntityDeleted(LISTING.entity_type, listing_id, "moderate")
        return listing

    # ── LifecycleManager hooks ────────────────────────────────────────────────

    def _before_write(self, entity, data: dict[str, Any], creating: bool) -> None:
        if not creating:
            return
        vendor = self.db.get(Vendor, data["vendor_id"])
        if vendor is None or vendor.is_deleted or not vendor.is_active:
            raise ValidationFailed("Listing vendor does not exist or is inactive")
        product = self.db.get(Product, data["product_id"])
        if product is None or product.is_deleted or not product.is_active:
            raise ValidationFailed("Listing product does not exist or is inactive")
        market = self.db.get(Market, data["market_id"])
        if market is None or market.is_deleted or not market.is_active or not market.is_available:
            raise ValidationFailed("Listing market does not exist or is unavailable")
        if market not in vendor.markets:
            raise ValidationFailed("Vendor does not operate in the selected market")
        if data["price_per_unit"] is not None and data["price_per_unit"] < 0:
            raise ValidationFailed("price_per_unit must not be negative")

    def _on_delete(self, entity, actor: Actor, now) -> None:
        entity.status = ListingStatus.DISCONTINUED
        entity.featured = False
        entity.last_status_update = now


def _validate_listing_status(status: Optional[str]) -> None:
    if status not in ListingStatus.ALL:
        raise ValidationFailed(
            f"Invalid listing status. Must be one of: {', '.join(ListingStatus.ALL)}"
        )
