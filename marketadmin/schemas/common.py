"""Shared schema primitives."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from marketadmin.models.base import VerificationStatus

# E.164: optional +, no leading zero, up to 15 digits
PHONE_PATTERN = r"^\+?[1-9]\d{1,14}$"


class BaseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class IDSchema(BaseSchema):
    id: uuid.UUID


class TimestampedSchema(IDSchema):
    created_at: datetime
    updated_at: datetime


class LifecycleFields(TimestampedSchema):
    """Lifecycle and actor-tracking columns shared by every admin-managed entity."""

    is_active: bool
    is_deleted: bool
    deleted_at: Optional[datetime] = None
    admin_notes: Optional[str] = None
    status_updated_at: Optional[datetime] = None
    status_updated_by_id: Optional[uuid.UUID] = None
    created_by_id: Optional[uuid.UUID] = None
    updated_by_id: Optional[uuid.UUID] = None


class MessageResponse(BaseSchema):
    message: str


class ErrorDetail(BaseSchema):
    field: str | None = None
    message: str


class ErrorResponse(BaseSchema):
    """Body of every non-2xx response."""

    success: bool = False
    error: str
    message: str
    details: list[ErrorDetail] = []
    # Only on dependency_blocked responses
    dependencies: Optional[dict[str, int]] = None
    suggestions: list[str] = []


class PageMeta(BaseSchema):
    total: int
    page: int
    limit: int
    pages: int


class ReasonPayload(BaseSchema):
    reason: Optional[str] = Field(default=None, max_length=500)


class RequiredReasonPayload(BaseSchema):
    """Deactivation: the core rejects a blank reason with a validation error."""

    reason: str = Field(default="", max_length=500)


class VerificationPayload(BaseSchema):
    status: str
    reason: Optional[str] = Field(default=None, max_length=500)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        if v not in VerificationStatus.ALL:
            raise ValueError(f"status must be one of: {list(VerificationStatus.ALL)}")
        return v


class BulkItemErrorView(BaseSchema):
    id: uuid.UUID
    message: str


class BulkResponse(BaseSchema):
    """Per-item outcome of a bulk listing or product operation."""

    success: bool = True
    action: str
    success_count: int
    failed_count: int
    successful: list[uuid.UUID]
    errors: list[BulkItemErrorView]
    audit_recorded: bool

    @classmethod
    def from_result(cls, result) -> "BulkResponse":
        return cls(
            action=result.action,
            success_count=result.success_count,
            failed_count=result.failed_count,
            successful=result.successful,
            errors=[BulkItemErrorView(id=e.id, message=e.message) for e in result.errors],
            audit_recorded=result.audit_recorded,
        )
