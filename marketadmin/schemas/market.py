"""Market request/response schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from marketadmin.schemas.common import BaseSchema, IDSchema, LifecycleFields


class MarketCreate(BaseSchema):
    name: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)
    image: str = Field(..., min_length=1, max_length=512)
    address: Optional[str] = Field(default=None, max_length=200)
    city: Optional[str] = Field(default=None, max_length=50)
    district: Optional[str] = Field(default=None, max_length=50)


class MarketUpdate(BaseSchema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)
    image: Optional[str] = Field(default=None, min_length=1, max_length=512)
    address: Optional[str] = Field(default=None, max_length=200)
    city: Optional[str] = Field(default=None, max_length=50)
    district: Optional[str] = Field(default=None, max_length=50)


class AvailabilityPayload(BaseSchema):
    is_available: bool
    reason: Optional[str] = Field(default=None, max_length=500)


class MarketSummary(IDSchema):
    name: str
    slug: str


class MarketResponse(LifecycleFields):
    name: str
    slug: str
    description: Optional[str] = None
    image: str
    address: Optional[str] = None
    city: Optional[str] = None
    district: Optional[str] = None
    is_available: bool
    admin_status: str
    flag_reason: Optional[str] = None
    flagged_by_id: Optional[uuid.UUID] = None
    flagged_at: Optional[datetime] = None
