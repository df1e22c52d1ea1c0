"""
Product category admin routes.

  GET    /admin/categories                       → filtered list
  GET    /admin/categories/{id}                  → one category
  POST   /admin/categories                       → create
  PATCH  /admin/categories/{id}                  → update (including re-parenting)
  POST   /admin/categories/{id}/availability     → enable / disable (reason required to disable)
  POST   /admin/categories/{id}/deactivate       → deactivate (guarded)
  POST   /admin/categories/{id}/reactivate       → reactivate
  DELETE /admin/categories/{id}                  → soft delete (guarded)
  POST   /admin/categories/{id}/image            → replace image
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.orm import Session

from marketadmin.database import get_db
from marketadmin.routers.auth import get_admin_actor
from marketadmin.routers.common import detail_response, mutation_response, page_response
from marketadmin.schemas.category import CategoryCreate, CategoryResponse, CategoryUpdate
from marketadmin.schemas.common import ReasonPayload, RequiredReasonPayload
from marketadmin.schemas.market import AvailabilityPayload
from marketadmin.services.context import Actor
from marketadmin.services.lifecycle.categories import CategoryLifecycle
from marketadmin.services.queries import CategoryFilter

router = APIRouter(prefix="/admin/categories", tags=["categories"])


@router.get("")
def list_categories(
    filters: CategoryFilter = Depends(),
    include_deleted: bool = False,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
) -> dict:
    return page_response(filters.run(db, include_deleted=include_deleted), CategoryResponse)


@router.get("/{category_id}")
def get_category(
    category_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
) -> dict:
    return detail_response(CategoryLifecycle(db).get(category_id), CategoryResponse)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = CategoryLifecycle(db).create(payload.model_dump(exclude_none=True), actor)
    return mutation_response(result, CategoryResponse, status.HTTP_201_CREATED)


@router.patch("/{category_id}")
def update_category(
    category_id: uuid.UUID,
    payload: CategoryUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = CategoryLifecycle(db).update(
        category_id, payload.model_dump(exclude_unset=True), actor
    )
    return mutation_response(result, CategoryResponse)


@router.post("/{category_id}/availability")
def set_category_availability(
    category_id: uuid.UUID,
    payload: AvailabilityPayload,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = CategoryLifecycle(db).set_availability(
        category_id, payload.is_available, actor, payload.reason
    )
    return mutation_response(result, CategoryResponse)


@router.post("/{category_id}/deactivate")
def deactivate_category(
    category_id: uuid.UUID,
    payload: RequiredReasonPayload,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = CategoryLifecycle(db).deactivate(category_id, actor, payload.reason)
    return mutation_response(result, CategoryResponse)


@router.post("/{category_id}/reactivate")
def reactivate_category(
    category_id: uuid.UUID,
    payload: ReasonPayload = ReasonPayload(),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = CategoryLifecycle(db).reactivate(category_id, actor, payload.reason)
    return mutation_response(result, CategoryResponse)


@router.delete("/{category_id}")
def delete_category(
    category_id: uuid.UUID,
    reason: Optional[str] = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = CategoryLifecycle(db).soft_delete(category_id, actor, reason)
    return mutation_response(result, CategoryResponse)


@router.post("/{category_id}/image")
def upload_category_image(
    category_id: uuid.UUID,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = CategoryLifecycle(db).replace_image(
        category_id, file.file.read(), file.filename or "", actor
    )
    return mutation_response(result, CategoryResponse)
