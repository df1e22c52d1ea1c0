"""The acting identity passed into every core operation."""

import uuid
from dataclasses import dataclass
from typing import Optional

from marketadmin.models.user import UserRole


@dataclass(frozen=True)
class Actor:
    """Already-authenticated {id, role} pair. The core never authenticates."""

    id: Optional[uuid.UUID]
    role: str

    @classmethod
    def from_user(cls, user) -> "Actor":
        return cls(id=user.id, role=user.role)

    @classmethod
    def system(cls) -> "Actor":
        return cls(id=None, role="system")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
