"""Auth schemas: token response and the current-user view."""

import uuid
from typing import Optional

from marketadmin.schemas.common import BaseSchema


class TokenResponse(BaseSchema):
    access_token: str
    token_type: str = "bearer"
    role: str


class UserMeResponse(BaseSchema):
    """Current authenticated user, returned by GET /auth/me."""

    id: uuid.UUID
    name: str
    email: str
    role: str
    is_active: bool
    vendor_id: Optional[uuid.UUID] = None
    buyer_id: Optional[uuid.UUID] = None
