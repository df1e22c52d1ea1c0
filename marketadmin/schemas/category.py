"""Product category schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from marketadmin.schemas.common import BaseSchema, LifecycleFields


class CategoryCreate(BaseSchema):
    name: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)
    image: str = Field(..., min_length=1, max_length=512)
    parent_id: Optional[uuid.UUID] = None
    sort_order: int = Field(default=0, ge=0)


class CategoryUpdate(BaseSchema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)
    image: Optional[str] = Field(default=None, min_length=1, max_length=512)
    # explicit null moves the category to the root
    parent_id: Optional[uuid.UUID] = None
    sort_order: Optional[int] = Field(default=None, ge=0)


class CategoryResponse(LifecycleFields):
    name: str
    slug: str
    description: Optional[str] = None
    image: str
    parent_id: Optional[uuid.UUID] = None
    level: int
    sort_order: int
    is_available: bool
    admin_status: str
    flag_reason: Optional[str] = None
    flagged_by_id: Optional[uuid.UUID] = None
    flagged_at: Optional[datetime] = None
