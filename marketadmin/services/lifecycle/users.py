"""User account lifecycle: update with role rules, deactivate, soft delete."""

import uuid
from typing import Any, Optional

from sqlalchemy.orm import Session

from marketadmin.models.marketplace import Buyer, Vendor
from marketadmin.models.user import UserRole
from marketadmin.services.context import Actor
from marketadmin.services.errors import Forbidden, ValidationFailed
from marketadmin.services.lifecycle.manager import LifecycleManager, LifecycleResult
from marketadmin.services.lifecycle.profiles import USER


class UserLifecycle(LifecycleManager):
    def __init__(self, db: Session):
        super().__init__(db, USER)

    def soft_delete(
        self, entity_id: uuid.UUID, actor: Actor, reason: Optional[str] = None
    ) -> LifecycleResult:
        if actor.id == entity_id:
            raise Forbidden("You cannot delete your own account")
        return super().soft_delete(entity_id, actor, reason)

    def deactivate(self, entity_id: uuid.UUID, actor: Actor, reason: str) -> LifecycleResult:
        if actor.id == entity_id:
            raise Forbidden("You cannot deactivate your own account")
        return super().deactivate(entity_id, actor, reason)

    def _before_write(self, entity, data: dict[str, Any], creating: bool) -> None:
        """
        Role/link consistency:
          vendor                        -> vendor_id required, buyer_id cleared
          buyer_owner / buyer_manager   -> buyer_id required, vendor_id cleared
          admin                         -> both links cleared
        """
        role = data.get("role", entity.role)
        if role not in UserRole.ALL:
            raise ValidationFailed(f"Invalid role. Must be one of: {', '.join(UserRole.ALL)}")

        vendor_id = data.get("vendor_id", entity.vendor_id)
        buyer_id = data.get("buyer_id", entity.buyer_id)

        if role == UserRole.VENDOR:
            if not vendor_id:
                raise ValidationFailed("vendor_id is required for vendor role")
            self._require_live(Vendor, vendor_id, "Vendor")
            data["buyer_id"] = None
        elif role in UserRole.BUYER_ROLES:
            if not buyer_id:
                raise ValidationFailed(f"buyer_id is required for {role} role")
            self._require_live(Buyer, buyer_id, "Buyer")
            data["vendor_id"] = None
        else:
            data["vendor_id"] = None
            data["buyer_id"] = None

    def _require_live(self, model, entity_id, label: str) -> None:
        target = self.db.get(model, entity_id)
        if target is None or target.is_deleted:
            raise ValidationFailed(f"{label} {entity_id} does not exist or is deleted")
