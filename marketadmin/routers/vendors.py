"""
Vendor admin routes.

  GET    /admin/vendors                    → filtered list + verification stats
  GET    /admin/vendors/{id}               → one vendor (deleted ones included)
  POST   /admin/vendors                    → create vendor record (pending)
  POST   /admin/vendors/platform           → create platform vendor + account (approved)
  PATCH  /admin/vendors/{id}               → update fields / markets
  POST   /admin/vendors/{id}/verify        → verification transition
  POST   /admin/vendors/{id}/deactivate    → deactivate (reason required, guarded)
  POST   /admin/vendors/{id}/reactivate    → reactivate
  DELETE /admin/vendors/{id}               → soft delete (guarded)
  POST   /admin/vendors/{id}/logo          → replace logo
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.orm import Session

from marketadmin.database import get_db
from marketadmin.models.marketplace import Vendor
from marketadmin.routers.auth import get_admin_actor
from marketadmin.routers.common import detail_response, mutation_response, page_response
from marketadmin.schemas.common import ReasonPayload, RequiredReasonPayload, VerificationPayload
from marketadmin.schemas.vendor import PlatformVendorCreate, VendorCreate, VendorResponse, VendorUpdate
from marketadmin.services.context import Actor
from marketadmin.services.lifecycle.manager import LifecycleManager
from marketadmin.services.lifecycle.onboarding import OnboardingService
from marketadmin.services.lifecycle.profiles import VENDOR
from marketadmin.services.lifecycle.verification import VerificationStateMachine
from marketadmin.services.queries import VendorFilter, verification_stats

router = APIRouter(prefix="/admin/vendors", tags=["vendors"])


@router.get("")
def list_vendors(
    filters: VendorFilter = Depends(),
    include_deleted: bool = False,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
) -> dict:
    page = filters.run(db, include_deleted=include_deleted)
    return page_response(page, VendorResponse, stats=verification_stats(db, Vendor))


@router.get("/{vendor_id}")
def get_vendor(
    vendor_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
) -> dict:
    return detail_response(LifecycleManager(db, VENDOR).get(vendor_id), VendorResponse)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_vendor(
    payload: VendorCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = LifecycleManager(db, VENDOR).create(payload.model_dump(exclude_none=True), actor)
    return mutation_response(result, VendorResponse, status.HTTP_201_CREATED)


@router.post("/platform", status_code=status.HTTP_201_CREATED)
def create_platform_vendor(
    payload: PlatformVendorCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = OnboardingService(db).create_platform_vendor(payload.model_dump(), actor)
    return mutation_response(result, VendorResponse, status.HTTP_201_CREATED)


@router.patch("/{vendor_id}")
def update_vendor(
    vendor_id: uuid.UUID,
    payload: VendorUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = LifecycleManager(db, VENDOR).update(vendor_id, payload.model_dump(exclude_unset=True), actor)
    return mutation_response(result, VendorResponse)


@router.post("/{vendor_id}/verify")
def verify_vendor(
    vendor_id: uuid.UUID,
    payload: VerificationPayload,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = VerificationStateMachine(db, VENDOR).transition(
        vendor_id, payload.status, actor, payload.reason
    )
    return mutation_response(result, VendorResponse)


@router.post("/{vendor_id}/deactivate")
def deactivate_vendor(
    vendor_id: uuid.UUID,
    payload: RequiredReasonPayload,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = LifecycleManager(db, VENDOR).deactivate(vendor_id, actor, payload.reason)
    return mutation_response(result, VendorResponse)


@router.post("/{vendor_id}/reactivate")
def reactivate_vendor(
    vendor_id: uuid.UUID,
    payload: ReasonPayload = ReasonPayload(),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = LifecycleManager(db, VENDOR).reactivate(vendor_id, actor, payload.reason)
    return mutation_response(result, VendorResponse)


@router.delete("/{vendor_id}")
def delete_vendor(
    vendor_id: uuid.UUID,
    reason: Optional[str] = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = LifecycleManager(db, VENDOR).soft_delete(vendor_id, actor, reason)
    return mutation_response(result, VendorResponse)


@router.post("/{vendor_id}/logo")
def upload_vendor_logo(
    vendor_id: uuid.UUID,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = LifecycleManager(db, VENDOR).replace_image(
        vendor_id, file.file.read(), file.filename or "", actor
    )
    return mutation_response(result, VendorResponse)
