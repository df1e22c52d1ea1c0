"""User account schemas."""

import uuid
from typing import Optional

from pydantic import EmailStr, Field

from marketadmin.schemas.common import PHONE_PATTERN, BaseSchema, LifecycleFields


class UserUpdate(BaseSchema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    role: Optional[str] = None
    vendor_id: Optional[uuid.UUID] = None
    buyer_id: Optional[uuid.UUID] = None


class UserResponse(LifecycleFields):
    name: str
    email: str
    phone: Optional[str] = None
    role: str
    vendor_id: Optional[uuid.UUID] = None
    buyer_id: Optional[uuid.UUID] = None
