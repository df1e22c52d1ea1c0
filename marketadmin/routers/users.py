"""
User account admin routes. Accounts are created through the vendor and buyer
onboarding routes; here they are listed, edited, deactivated and deleted.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketadmin.database import get_db
from marketadmin.routers.auth import get_admin_actor
from marketadmin.routers.common import detail_response, mutation_response, page_response
from marketadmin.schemas.common import ReasonPayload, RequiredReasonPayload
from marketadmin.schemas.user import UserResponse, UserUpdate
from marketadmin.services.context import Actor
from marketadmin.services.lifecycle.users import UserLifecycle
from marketadmin.services.queries import UserFilter

router = APIRouter(prefix="/admin/users", tags=["users"])


@router.get("")
def list_users(
    filters: UserFilter = Depends(),
    include_deleted: bool = False,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
) -> dict:
    return page_response(filters.run(db, include_deleted=include_deleted), UserResponse)


@router.get("/{user_id}")
def get_user(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
) -> dict:
    return detail_response(UserLifecycle(db).get(user_id), UserResponse)


@router.patch("/{user_id}")
def update_user(
    user_id: uuid.UUID,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = UserLifecycle(db).update(user_id, payload.model_dump(exclude_unset=True), actor)
    return mutation_response(result, UserResponse)


@router.post("/{user_id}/deactivate")
def deactivate_user(
    user_id: uuid.UUID,
    payload: RequiredReasonPayload,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = UserLifecycle(db).deactivate(user_id, actor, payload.reason)
    return mutation_response(result, UserResponse)


@router.post("/{user_id}/reactivate")
def reactivate_user(
    user_id: uuid.UUID,
    payload: ReasonPayload = ReasonPayload(),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = UserLifecycle(db).reactivate(user_id, actor, payload.reason)
    return mutation_response(result, UserResponse)


@router.delete("/{user_id}")
def delete_user(
    user_id: uuid.UUID,
    reason: Optional[str] = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = UserLifecycle(db).soft_delete(user_id, actor, reason)
    return mutation_response(result, UserResponse)
