"""
Buyer admin routes.

  GET    /admin/buyers                               → filtered list + verification stats
  GET    /admin/buyers/{id}                          → one buyer
  POST   /admin/buyers                               → buyer + buyer_owner account
  PATCH  /admin/buyers/{id}                          → update fields
  POST   /admin/buyers/{id}/verify                   → verification transition
  POST   /admin/buyers/{id}/deactivate               → deactivate (reason required, guarded)
  POST   /admin/buyers/{id}/reactivate               → reactivate
  DELETE /admin/buyers/{id}                          → soft delete (guarded)
  POST   /admin/buyers/{id}/managers                 → add a buyer_manager account
  POST   /admin/buyers/{id}/transfer-ownership       → promote an account to owner
  POST   /admin/buyers/{id}/logo                     → replace logo
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.orm import Session

from marketadmin.database import get_db
from marketadmin.models.marketplace import Buyer
from marketadmin.routers.auth import get_admin_actor
from marketadmin.routers.common import detail_response, mutation_response, page_response
from marketadmin.schemas.buyer import (
    BuyerCreate,
    BuyerManagerCreate,
    BuyerResponse,
    BuyerUpdate,
    OwnershipTransferPayload,
)
from marketadmin.schemas.common import ReasonPayload, RequiredReasonPayload, VerificationPayload
from marketadmin.schemas.user import UserResponse
from marketadmin.services.context import Actor
from marketadmin.services.lifecycle.manager import LifecycleManager
from marketadmin.services.lifecycle.onboarding import OnboardingService
from marketadmin.services.lifecycle.profiles import BUYER
from marketadmin.services.lifecycle.verification import VerificationStateMachine
from marketadmin.services.queries import BuyerFilter, verification_stats

router = APIRouter(prefix="/admin/buyers", tags=["buyers"])


@router.get("")
def list_buyers(
    filters: BuyerFilter = Depends(),
    include_deleted: bool = False,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
) -> dict:
    page = filters.run(db, include_deleted=include_deleted)
    return page_response(page, BuyerResponse, stats=verification_stats(db, Buyer))


@router.get("/{buyer_id}")
def get_buyer(
    buyer_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
) -> dict:
    return detail_response(LifecycleManager(db, BUYER).get(buyer_id), BuyerResponse)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_buyer(
    payload: BuyerCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = OnboardingService(db).create_buyer_with_owner(payload.model_dump(), actor)
    return mutation_response(result, BuyerResponse, status.HTTP_201_CREATED)


@router.patch("/{buyer_id}")
def update_buyer(
    buyer_id: uuid.UUID,
    payload: BuyerUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = LifecycleManager(db, BUYER).update(buyer_id, payload.model_dump(exclude_unset=True), actor)
    return mutation_response(result, BuyerResponse)


@router.post("/{buyer_id}/verify")
def verify_buyer(
    buyer_id: uuid.UUID,
    payload: VerificationPayload,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = VerificationStateMachine(db, BUYER).transition(
        buyer_id, payload.status, actor, payload.reason
    )
    return mutation_response(result, BuyerResponse)


@router.post("/{buyer_id}/deactivate")
def deactivate_buyer(
    buyer_id: uuid.UUID,
    payload: RequiredReasonPayload,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = LifecycleManager(db, BUYER).deactivate(buyer_id, actor, payload.reason)
    return mutation_response(result, BuyerResponse)


@router.post("/{buyer_id}/reactivate")
def reactivate_buyer(
    buyer_id: uuid.UUID,
    payload: ReasonPayload = ReasonPayload(),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = LifecycleManager(db, BUYER).reactivate(buyer_id, actor, payload.reason)
    return mutation_response(result, BuyerResponse)


@router.delete("/{buyer_id}")
def delete_buyer(
    buyer_id: uuid.UUID,
    reason: Optional[str] = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = LifecycleManager(db, BUYER).soft_delete(buyer_id, actor, reason)
    return mutation_response(result, BuyerResponse)


# ── Accounts ──────────────────────────────────────────────────────────────────


@router.post("/{buyer_id}/managers", status_code=status.HTTP_201_CREATED)
def add_buyer_manager(
    buyer_id: uuid.UUID,
    payload: BuyerManagerCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = OnboardingService(db).add_buyer_manager(buyer_id, payload.model_dump(), actor)
    return mutation_response(result, UserResponse, status.HTTP_201_CREATED)


@router.post("/{buyer_id}/transfer-ownership")
def transfer_buyer_ownership(
    buyer_id: uuid.UUID,
    payload: OwnershipTransferPayload,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = OnboardingService(db).transfer_buyer_ownership(
        buyer_id, payload.new_owner_id, actor, payload.reason
    )
    return mutation_response(result, BuyerResponse)


@router.post("/{buyer_id}/logo")
def upload_buyer_logo(
    buyer_id: uuid.UUID,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = LifecycleManager(db, BUYER).replace_image(
        buyer_id, file.file.read(), file.filename or "", actor
    )
    return mutation_response(result, BuyerResponse)
