"""Product catalogue schemas."""

import uuid
from typing import Optional

from pydantic import Field

from marketadmin.schemas.common import BaseSchema, LifecycleFields


class ProductCreate(BaseSchema):
    name: str = Field(..., min_length=1, max_length=100)
    category_id: uuid.UUID
    description: Optional[str] = None
    variety: Optional[str] = Field(default=None, max_length=64)
    origin: Optional[str] = Field(default=None, max_length=64)
    is_organic: bool = False
    images: list[str] = []


class ProductUpdate(BaseSchema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    category_id: Optional[uuid.UUID] = None
    description: Optional[str] = None
    variety: Optional[str] = Field(default=None, max_length=64)
    origin: Optional[str] = Field(default=None, max_length=64)
    is_organic: Optional[bool] = None
    images: Optional[list[str]] = None


class BulkProductRequest(BaseSchema):
    """action: activate | deactivate | delete"""

    product_ids: list[uuid.UUID]
    action: str
    reason: Optional[str] = Field(default=None, max_length=500)


class ProductResponse(LifecycleFields):
    name: str
    slug: str
    category_id: uuid.UUID
    description: Optional[str] = None
    variety: Optional[str] = None
    origin: Optional[str] = None
    is_organic: bool
    images: list = []
