"""
Product catalogue lifecycle: category checks on write, and bulk
activate / deactivate / delete.

Bulk operations follow the listing moderation batches: at most
MAX_BULK_PRODUCTS ids, one SAVEPOINT per product, one audit entry per batch.
Deactivate and delete ask the DependencyGuard for every product, so a
product with live listings is reported as failed and left untouched.
"""

import logging
import uuid
from collections.abc import Callable
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketadmin.models.marketplace import Product, ProductCategory
from marketadmin.services.audit import logger as audit
from marketadmin.services.context import Actor
from marketadmin.services.errors import Conflict, EntityDeleted, MarketAdminError, ValidationFailed
from marketadmin.services.lifecycle.dependency_guard import GuardedOperation, check_dependencies
from marketadmin.services.lifecycle.listing_moderation import BulkItemError, BulkResult
from marketadmin.services.lifecycle.manager import LifecycleManager, utcnow
from marketadmin.services.lifecycle.profiles import PRODUCT
from marketadmin.services.transaction import atomic

logger = logging.getLogger(__name__)

MAX_BULK_PRODUCTS = 50


class ProductBulkAction:
    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"
    DELETE = "delete"

    ALL = (ACTIVATE, DEACTIVATE, DELETE)


class ProductLifecycle(LifecycleManager):
    def __init__(self, db: Session):
        super().__init__(db, PRODUCT)

    def bulk_apply(
        self,
        product_ids: list[uuid.UUID],
        action: str,
        actor: Actor,
        reason: Optional[str] = None,
    ) -> BulkResult:
        if not product_ids:
            raise ValidationFailed("product_ids must contain at least one product id")
        if len(product_ids) > MAX_BULK_PRODUCTS:
            raise ValidationFailed(
                f"Cannot process more than {MAX_BULK_PRODUCTS} products at once"
            )
        if action not in ProductBulkAction.ALL:
            raise ValidationFailed(
                f"Invalid bulk action. Must be one of: {', '.join(ProductBulkAction.ALL)}"
            )
        reason = (reason or "").strip() or None
        apply = self._bulk_handler(action, actor, reason)
        ids = list(dict.fromkeys(product_ids))

        result = BulkResult(action=action)
        with atomic(self.db):
            for product_id in ids:
                try:
                    with self.db.begin_nested():
                        apply(self._load_live(product_id))
                        self.db.flush()
                    result.successful.append(product_id)
                except MarketAdminError as exc:
                    result.errors.append(BulkItemError(product_id, exc.message))
                except SQLAlchemyError as exc:
                    logger.warning("Bulk %s failed on product %s: %s", action, product_id, exc)
                    result.errors.append(BulkItemError(product_id, "Database error while updating product"))

            entry = audit.log_bulk_action(
                self.db,
                actor,
                f"bulk_product_{action}",
                PRODUCT.entity_type,
                ids,
                success_count=result.success_count,
                failed_count=result.failed_count,
                action_data={"reason": reason} if reason else None,
                reason=reason,
            )
        result.audit_failed = entry is None
        logger.info(
            "Bulk %s on %d products by %s: %d ok, %d failed",
            action,
            len(ids),
            actor.id,
            result.success_count,
            result.failed_count,
        )
        return result

    def _bulk_handler(
        self, action: str, actor: Actor, reason: Optional[str]
    ) -> Callable[[Product], None]:
        if action == ProductBulkAction.ACTIVATE:
            return lambda product: self._apply_active(product, True, actor, reason)

        if action == ProductBulkAction.DEACTIVATE:

            def deactivate(product: Product) -> None:
                self._guard(product, GuardedOperation.DEACTIVATE)
                self._apply_active(product, False, actor, reason)

            return deactivate

        def delete(product: Product) -> None:
            self._guard(product, GuardedOperation.DELETE)
            self._mark_deleted(product, actor, reason, utcnow())

        return delete

    # ── Mutations (no audit, no commit) ───────────────────────────────────────

    def _apply_active(
        self, product: Product, active: bool, actor: Actor, reason: Optional[str]
    ) -> None:
        if product.is_active == active:
            raise Conflict(f"Product is already {'active' if active else 'inactive'}")
        product.is_active = active
        product.status_updated_by_id = actor.id
        product.status_updated_at = utcnow()
        product.updated_by_id = actor.id
        if reason:
            product.admin_notes = reason

    def _guard(self, product: Product, operation: str) -> None:
        report = check_dependencies(self.db, PRODUCT.entity_type, product.id, operation)
        if report.blocking:
            raise Conflict(report.message)

    def _load_live(self, product_id: uuid.UUID) -> Product:
        product = self.load_for_update(product_id)
        if product.is_deleted:
            raise EntityDeleted(PRODUCT.entity_type, product_id, "update")
        return product

    # ── LifecycleManager hooks ────────────────────────────────────────────────

    def _before_write(self, entity, data: dict[str, Any], creating: bool) -> None:
        if "category_id" not in data:
            return
        if data["category_id"] is None:
            raise ValidationFailed("Products must belong to a category")
        if not creating and data["category_id"] == entity.category_id:
            return
        category = self.db.get(ProductCategory, data["category_id"])
        if category is None or category.is_deleted or not category.is_active:
            raise ValidationFailed("Product category does not exist or is inactive")
        if not category.is_available:
            raise ValidationFailed("Product category is currently unavailable")
