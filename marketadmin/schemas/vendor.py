"""Vendor request/response schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from marketadmin.schemas.common import PHONE_PATTERN, BaseSchema, LifecycleFields
from marketadmin.schemas.market import MarketSummary


class VendorCreate(BaseSchema):
    business_name: str = Field(..., min_length=1, max_length=100)
    owner_name: Optional[str] = Field(default=None, max_length=50)
    email: Optional[EmailStr] = None
    phone: str = Field(..., pattern=PHONE_PATTERN)
    trade_license_no: Optional[str] = Field(default=None, max_length=64)
    address: Optional[dict] = None
    specialties: Optional[list[str]] = None
    # Non-empty is enforced by the lifecycle service so the error reads the same everywhere
    markets: list[uuid.UUID] = []


class VendorUpdate(BaseSchema):
    business_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    owner_name: Optional[str] = Field(default=None, max_length=50)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    trade_license_no: Optional[str] = Field(default=None, max_length=64)
    address: Optional[dict] = None
    specialties: Optional[list[str]] = None
    markets: Optional[list[uuid.UUID]] = None


class PlatformVendorCreate(BaseSchema):
    """A marketplace-operated vendor plus its login account. Starts approved."""

    platform_name: str = Field(..., min_length=1, max_length=64)
    owner_name: Optional[str] = Field(default=None, max_length=50)
    email: EmailStr
    phone: str = Field(..., pattern=PHONE_PATTERN)
    password: str = Field(..., min_length=1)
    trade_license_no: Optional[str] = Field(default=None, max_length=64)
    address: Optional[dict] = None
    markets: list[uuid.UUID] = []


class VendorResponse(LifecycleFields):
    business_name: str
    owner_name: Optional[str] = None
    email: Optional[str] = None
    phone: str
    trade_license_no: Optional[str] = None
    address: Optional[dict] = None
    logo: Optional[str] = None
    specialties: Optional[list] = None
    is_platform_owned: bool
    platform_name: Optional[str] = None
    verification_status: str
    verification_date: Optional[datetime] = None
    markets: list[MarketSummary] = []
