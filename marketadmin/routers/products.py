"""
Product catalogue admin routes.

  GET    /admin/products                     → filtered list
  GET    /admin/products/{id}                → one product
  POST   /admin/products                     → create (category must be live and available)
  PATCH  /admin/products/{id}                → update
  POST   /admin/products/bulk                → bulk activate / deactivate / delete, max 50 ids
  POST   /admin/products/{id}/deactivate     → deactivate (guarded)
  POST   /admin/products/{id}/reactivate     → reactivate
  DELETE /admin/products/{id}                → soft delete (guarded)
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from marketadmin.database import get_db
from marketadmin.routers.auth import get_admin_actor
from marketadmin.routers.common import detail_response, mutation_response, page_response
from marketadmin.schemas.common import BulkResponse, ReasonPayload, RequiredReasonPayload
from marketadmin.schemas.product import (
    BulkProductRequest,
    ProductCreate,
    ProductResponse,
    ProductUpdate,
)
from marketadmin.services.context import Actor
from marketadmin.services.lifecycle.products import ProductLifecycle
from marketadmin.services.queries import ProductFilter

router = APIRouter(prefix="/admin/products", tags=["products"])


@router.get("")
def list_products(
    filters: ProductFilter = Depends(),
    include_deleted: bool = False,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
) -> dict:
    return page_response(filters.run(db, include_deleted=include_deleted), ProductResponse)


@router.get("/{product_id}")
def get_product(
    product_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
) -> dict:
    return detail_response(ProductLifecycle(db).get(product_id), ProductResponse)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = ProductLifecycle(db).create(payload.model_dump(exclude_none=True), actor)
    return mutation_response(result, ProductResponse, status.HTTP_201_CREATED)


@router.patch("/{product_id}")
def update_product(
    product_id: uuid.UUID,
    payload: ProductUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = ProductLifecycle(db).update(
        product_id, payload.model_dump(exclude_unset=True), actor
    )
    return mutation_response(result, ProductResponse)


@router.post("/bulk", response_model=BulkResponse)
def bulk_update_products(
    payload: BulkProductRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
) -> BulkResponse:
    result = ProductLifecycle(db).bulk_apply(
        payload.product_ids, payload.action, actor, payload.reason
    )
    return BulkResponse.from_result(result)


@router.post("/{product_id}/deactivate")
def deactivate_product(
    product_id: uuid.UUID,
    payload: RequiredReasonPayload,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = ProductLifecycle(db).deactivate(product_id, actor, payload.reason)
    return mutation_response(result, ProductResponse)


@router.post("/{product_id}/reactivate")
def reactivate_product(
    product_id: uuid.UUID,
    payload: ReasonPayload = ReasonPayload(),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = ProductLifecycle(db).reactivate(product_id, actor, payload.reason)
    return mutation_response(result, ProductResponse)


@router.delete("/{product_id}")
def delete_product(
    product_id: uuid.UUID,
    reason: Optional[str] = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = ProductLifecycle(db).soft_delete(product_id, actor, reason)
    return mutation_response(result, ProductResponse)
