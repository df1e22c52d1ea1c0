"""
Product category lifecycle.

Categories form a tree at most MAX_CATEGORY_LEVEL levels below the root.
A category's level is derived from its parent and re-derived for the whole
subtree when it moves. Deleting or deactivating a category is refused while
live products or subcategories still point at it; disabling availability is
not, it only stops new products from being filed under the category.
"""

import uuid
from typing import Any, Optional

from sqlalchemy.orm import Session

from marketadmin.models.marketplace import ProductCategory
from marketadmin.services.errors import ValidationFailed
from marketadmin.services.lifecycle.availability import AvailabilityLifecycle
from marketadmin.services.lifecycle.profiles import CATEGORY

MAX_CATEGORY_LEVEL = 3


class CategoryLifecycle(AvailabilityLifecycle):
    def __init__(self, db: Session):
        super().__init__(db, CATEGORY)

    def _before_write(self, entity, data: dict[str, Any], creating: bool) -> None:
        if "sort_order" in data and (data["sort_order"] is None or data["sort_order"] < 0):
            raise ValidationFailed("sort_order must be a non-negative integer")
        if not creating and "parent_id" not in data:
            return

        parent = self._resolve_parent(entity, data.get("parent_id"), creating)
        level = 0 if parent is None else parent.level + 1
        if level + (0 if creating else self._subtree_depth(entity)) > MAX_CATEGORY_LEVEL:
            raise ValidationFailed(f"Maximum nesting level is {MAX_CATEGORY_LEVEL}")
        entity.level = level
        if not creating:
            self._relevel_children(entity)

    def _resolve_parent(
        self, entity, parent_id: Optional[uuid.UUID], creating: bool
    ) -> Optional[ProductCategory]:
        if parent_id is None:
            return None
        parent = self.db.get(ProductCategory, parent_id)
        if parent is None or parent.is_deleted:
            raise ValidationFailed("Parent category does not exist")
        if not creating:
            # walking up from the new parent must never reach the category itself
            node = parent
            while node is not None:
                if node.id == entity.id:
                    raise ValidationFailed("A category cannot be nested under itself")
                node = node.parent
        return parent

    def _subtree_depth(self, entity) -> int:
        children = [c for c in entity.children if not c.is_deleted]
        if not children:
            return 0
        return 1 + max(self._subtree_depth(child) for child in children)

    def _relevel_children(self, entity) -> None:
        for child in entity.children:
            child.level = entity.level + 1
            self._relevel_children(child)
