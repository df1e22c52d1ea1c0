"""
Listing admin and moderation routes.

  GET    /admin/listings                       → filtered list
  GET    /admin/listings/{id}                  → one listing
  POST   /admin/listings                       → create
  PATCH  /admin/listings/{id}                  → update offer fields
  PATCH  /admin/listings/{id}/status           → set status
  PATCH  /admin/listings/{id}/featured         → toggle featured (active only)
  POST   /admin/listings/{id}/flag             → flag (reason required)
  POST   /admin/listings/{id}/unflag           → clear flag
  POST   /admin/listings/bulk                  → bulk moderation, max 50 ids
  POST   /admin/listings/{id}/deactivate       → deactivate (guarded)
  POST   /admin/listings/{id}/reactivate       → reactivate
  DELETE /admin/listings/{id}                  → soft delete (guarded)
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from marketadmin.database import get_db
from marketadmin.routers.auth import get_admin_actor
from marketadmin.routers.common import detail_response, mutation_response, page_response
from marketadmin.schemas.common import BulkResponse, ReasonPayload, RequiredReasonPayload
from marketadmin.schemas.listing import (
    BulkListingRequest,
    FlagPayload,
    ListingCreate,
    ListingResponse,
    ListingStatusPayload,
    ListingUpdate,
    UnflagPayload,
)
from marketadmin.services.context import Actor
from marketadmin.services.lifecycle.listing_moderation import ListingModerationFlow
from marketadmin.services.queries import ListingFilter

router = APIRouter(prefix="/admin/listings", tags=["listings"])


@router.get("")
def list_listings(
    filters: ListingFilter = Depends(),
    include_deleted: bool = False,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
) -> dict:
    return page_response(filters.run(db, include_deleted=include_deleted), ListingResponse)


@router.get("/{listing_id}")
def get_listing(
    listing_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
) -> dict:
    return detail_response(ListingModerationFlow(db).get(listing_id), ListingResponse)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_listing(
    payload: ListingCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = ListingModerationFlow(db).create(payload.model_dump(exclude_none=True), actor)
    return mutation_response(result, ListingResponse, status.HTTP_201_CREATED)


@router.patch("/{listing_id}")
def update_listing(
    listing_id: uuid.UUID,
    payload: ListingUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = ListingModerationFlow(db).update(
        listing_id, payload.model_dump(exclude_unset=True), actor
    )
    return mutation_response(result, ListingResponse)


# ── Moderation ────────────────────────────────────────────────────────────────


@router.patch("/{listing_id}/status")
def set_listing_status(
    listing_id: uuid.UUID,
    payload: ListingStatusPayload,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = ListingModerationFlow(db).set_status(listing_id, payload.status, actor, payload.reason)
    return mutation_response(result, ListingResponse)


@router.patch("/{listing_id}/featured")
def toggle_listing_featured(
    listing_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = ListingModerationFlow(db).toggle_featured(listing_id, actor)
    return mutation_response(result, ListingResponse)


@router.post("/{listing_id}/flag")
def flag_listing(
    listing_id: uuid.UUID,
    payload: FlagPayload,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = ListingModerationFlow(db).flag(
        listing_id, actor, payload.flag_reason or "", payload.moderation_notes
    )
    return mutation_response(result, ListingResponse)


@router.post("/{listing_id}/unflag")
def unflag_listing(
    listing_id: uuid.UUID,
    payload: UnflagPayload = UnflagPayload(),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = ListingModerationFlow(db).unflag(listing_id, actor, payload.moderation_notes)
    return mutation_response(result, ListingResponse)


@router.post("/bulk", response_model=BulkResponse)
def bulk_moderate_listings(
    payload: BulkListingRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
) -> BulkResponse:
    result = ListingModerationFlow(db).bulk_apply(
        payload.listing_ids, payload.action, actor, payload.data
    )
    return BulkResponse.from_result(result)


# ── Lifecycle ─────────────────────────────────────────────────────────────────


@router.post("/{listing_id}/deactivate")
def deactivate_listing(
    listing_id: uuid.UUID,
    payload: RequiredReasonPayload,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = ListingModerationFlow(db).deactivate(listing_id, actor, payload.reason)
    return mutation_response(result, ListingResponse)


@router.post("/{listing_id}/reactivate")
def reactivate_listing(
    listing_id: uuid.UUID,
    payload: ReasonPayload = ReasonPayload(),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = ListingModerationFlow(db).reactivate(listing_id, actor, payload.reason)
    return mutation_response(result, ListingResponse)


@router.delete("/{listing_id}")
def delete_listing(
    listing_id: uuid.UUID,
    reason: Optional[str] = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = ListingModerationFlow(db).soft_delete(listing_id, actor, reason)
    return mutation_response(result, ListingResponse)
