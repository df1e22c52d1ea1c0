"""Buyer request/response schemas, including the owner/manager account flows."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from marketadmin.schemas.common import PHONE_PATTERN, BaseSchema, LifecycleFields


class BuyerCreate(BaseSchema):
    """Creates the buyer and its buyer_owner account in one step."""

    name: str = Field(..., min_length=1, max_length=100)
    owner_name: Optional[str] = Field(default=None, max_length=50)
    email: EmailStr
    phone: str = Field(..., pattern=PHONE_PATTERN)
    password: str = Field(..., min_length=1)
    trade_license_no: Optional[str] = Field(default=None, max_length=64)
    buyer_type: Optional[str] = None
    address: Optional[dict] = None


class BuyerUpdate(BaseSchema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    owner_name: Optional[str] = Field(default=None, max_length=50)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    trade_license_no: Optional[str] = Field(default=None, max_length=64)
    buyer_type: Optional[str] = None
    address: Optional[dict] = None


class BuyerManagerCreate(BaseSchema):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: str = Field(..., pattern=PHONE_PATTERN)
    password: str = Field(..., min_length=1)


class OwnershipTransferPayload(BaseSchema):
    new_owner_id: uuid.UUID
    reason: Optional[str] = Field(default=None, max_length=500)


class BuyerResponse(LifecycleFields):
    name: str
    owner_name: Optional[str] = None
    email: Optional[str] = None
    phone: str
    trade_license_no: Optional[str] = None
    buyer_type: str
    address: Optional[dict] = None
    logo: Optional[str] = None
    owner_id: Optional[uuid.UUID] = None
    verification_status: str
    verification_date: Optional[datetime] = None
