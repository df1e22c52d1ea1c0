"""
Response rendering shared by the admin routers.

Mutations answer with {"success": true, "message", "data", "audit_recorded"}.
A dependency-blocked lifecycle result is rendered as HTTP 409 with
error="dependency_blocked" plus the blocking counts and suggestions.
"""

from typing import Any

from fastapi import status
from fastapi.responses import JSONResponse

from marketadmin.schemas.common import BaseSchema
from marketadmin.services.lifecycle.dependency_guard import DependencyReport
from marketadmin.services.lifecycle.manager import LifecycleResult
from marketadmin.services.queries import Page


def serialize(schema: type[BaseSchema], entity: Any) -> dict:
    return schema.model_validate(entity).model_dump(mode="json")


def blocked_response(report: DependencyReport) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={
            "success": False,
            "error": "dependency_blocked",
            "message": report.message,
            "dependencies": dict(report.counts),
            "suggestions": list(report.suggestions),
        },
    )


def mutation_response(result: LifecycleResult, schema: type[BaseSchema], status_code: int = 200):
    if result.blocked is not None:
        return blocked_response(result.blocked)
    body = {
        "success": True,
        "message": result.message,
        "data": serialize(schema, result.entity),
        "audit_recorded": result.audit_recorded,
    }
    if status_code != status.HTTP_200_OK:
        return JSONResponse(status_code=status_code, content=body)
    return body


def page_response(page: Page, schema: type[BaseSchema], **extra: Any) -> dict:
    body = {
        "success": True,
        "data": [serialize(schema, item) for item in page.items],
        "pagination": page.meta(),
    }
    body.update(extra)
    return body


def detail_response(entity: Any, schema: type[BaseSchema]) -> dict:
    return {"success": True, "data": serialize(schema, entity)}
