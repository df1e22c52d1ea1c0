"""
Market admin routes.

  GET    /admin/markets                       → filtered list
  GET    /admin/markets/{id}                  → one market
  POST   /admin/markets                       → create
  PATCH  /admin/markets/{id}                  → update
  POST   /admin/markets/{id}/availability     → enable / disable (reason required to disable)
  POST   /admin/markets/{id}/deactivate       → deactivate (guarded)
  POST   /admin/markets/{id}/reactivate       → reactivate
  DELETE /admin/markets/{id}                  → soft delete (guarded)
  POST   /admin/markets/{id}/image            → replace image
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.orm import Session

from marketadmin.database import get_db
from marketadmin.routers.auth import get_admin_actor
from marketadmin.routers.common import detail_response, mutation_response, page_response
from marketadmin.schemas.common import ReasonPayload, RequiredReasonPayload
from marketadmin.schemas.market import AvailabilityPayload, MarketCreate, MarketResponse, MarketUpdate
from marketadmin.services.context import Actor
from marketadmin.services.lifecycle.markets import MarketLifecycle
from marketadmin.services.queries import MarketFilter

router = APIRouter(prefix="/admin/markets", tags=["markets"])


@router.get("")
def list_markets(
    filters: MarketFilter = Depends(),
    include_deleted: bool = False,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
) -> dict:
    return page_response(filters.run(db, include_deleted=include_deleted), MarketResponse)


@router.get("/{market_id}")
def get_market(
    market_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
) -> dict:
    return detail_response(MarketLifecycle(db).get(market_id), MarketResponse)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_market(
    payload: MarketCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = MarketLifecycle(db).create(payload.model_dump(exclude_none=True), actor)
    return mutation_response(result, MarketResponse, status.HTTP_201_CREATED)


@router.patch("/{market_id}")
def update_market(
    market_id: uuid.UUID,
    payload: MarketUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = MarketLifecycle(db).update(market_id, payload.model_dump(exclude_unset=True), actor)
    return mutation_response(result, MarketResponse)


@router.post("/{market_id}/availability")
def set_market_availability(
    market_id: uuid.UUID,
    payload: AvailabilityPayload,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = MarketLifecycle(db).set_availability(
        market_id, payload.is_available, actor, payload.reason
    )
    return mutation_response(result, MarketResponse)


@router.post("/{market_id}/deactivate")
def deactivate_market(
    market_id: uuid.UUID,
    payload: RequiredReasonPayload,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = MarketLifecycle(db).deactivate(market_id, actor, payload.reason)
    return mutation_response(result, MarketResponse)


@router.post("/{market_id}/reactivate")
def reactivate_market(
    market_id: uuid.UUID,
    payload: ReasonPayload = ReasonPayload(),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = MarketLifecycle(db).reactivate(market_id, actor, payload.reason)
    return mutation_response(result, MarketResponse)


@router.delete("/{market_id}")
def delete_market(
    market_id: uuid.UUID,
    reason: Optional[str] = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = MarketLifecycle(db).soft_delete(market_id, actor, reason)
    return mutation_response(result, MarketResponse)


@router.post("/{market_id}/image")
def upload_market_image(
    market_id: uuid.UUID,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = MarketLifecycle(db).replace_image(
        market_id, file.file.read(), file.filename or "", actor
    )
    return mutation_response(result, MarketResponse)
