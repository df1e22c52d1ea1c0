"""Listing schemas, including moderation and bulk requests."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import Field

from marketadmin.schemas.common import BaseSchema, LifecycleFields


class ListingCreate(BaseSchema):
    vendor_id: uuid.UUID
    product_id: uuid.UUID
    market_id: uuid.UUID
    price_per_unit: Decimal
    quantity_available: Decimal = Decimal("0")
    unit: str = Field(default="kg", max_length=16)
    quality_grade: Optional[str] = Field(default=None, max_length=32)
    description: Optional[str] = Field(default=None, max_length=1000)


class ListingUpdate(BaseSchema):
    price_per_unit: Optional[Decimal] = None
    quantity_available: Optional[Decimal] = None
    unit: Optional[str] = Field(default=None, max_length=16)
    quality_grade: Optional[str] = Field(default=None, max_length=32)
    description: Optional[str] = Field(default=None, max_length=1000)


class ListingStatusPayload(BaseSchema):
    status: str
    reason: Optional[str] = Field(default=None, max_length=500)


class FlagPayload(BaseSchema):
    flag_reason: Optional[str] = Field(default=None, max_length=500)
    moderation_notes: Optional[str] = Field(default=None, max_length=1000)


class UnflagPayload(BaseSchema):
    moderation_notes: Optional[str] = Field(default=None, max_length=1000)


class BulkListingRequest(BaseSchema):
    """
    action: update_status | toggle_featured | flag | unflag | delete
    data:   {"status": ...} for update_status, {"flag_reason": ...} for flag,
            optional {"reason": ...} for delete
    """

    listing_ids: list[uuid.UUID]
    action: str
    data: dict[str, Any] = {}


class ListingResponse(LifecycleFields):
    vendor_id: uuid.UUID
    product_id: uuid.UUID
    market_id: uuid.UUID
    status: str
    featured: bool
    is_flagged: bool
    flag_reason: Optional[str] = None
    moderation_notes: Optional[str] = None
    moderated_by_id: Optional[uuid.UUID] = None
    last_status_update: Optional[datetime] = None
    description: Optional[str] = None
    quality_grade: Optional[str] = None
    unit: str
    price_per_unit: Decimal
    quantity_available: Decimal
