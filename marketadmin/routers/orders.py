"""
Order admin routes. Orders are never deleted; cancellation is a status.

  GET    /admin/orders                 → filtered list
  GET    /admin/orders/{id}            → one order with items and status history
  POST   /admin/orders                 → create (pending_approval)
  PATCH  /admin/orders/{id}            → replace items / fees while pending approval
  PATCH  /admin/orders/{id}/status     → move along the fulfilment flow
  POST   /admin/orders/{id}/cancel     → cancel (reason required)
"""

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from marketadmin.database import get_db
from marketadmin.routers.auth import get_admin_actor
from marketadmin.routers.common import detail_response, mutation_response, page_response
from marketadmin.schemas.common import RequiredReasonPayload
from marketadmin.schemas.order import (
    OrderChargesUpdate,
    OrderCreate,
    OrderResponse,
    OrderStatusPayload,
)
from marketadmin.services.context import Actor
from marketadmin.services.lifecycle.orders import OrderLifecycle
from marketadmin.services.queries import OrderFilter

router = APIRouter(prefix="/admin/orders", tags=["orders"])


@router.get("")
def list_orders(
    filters: OrderFilter = Depends(),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
) -> dict:
    return page_response(filters.run(db), OrderResponse)


@router.get("/{order_id}")
def get_order(
    order_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
) -> dict:
    return detail_response(OrderLifecycle(db).get(order_id), OrderResponse)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_order(
    payload: OrderCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = OrderLifecycle(db).create(payload.model_dump(exclude_none=True), actor)
    return mutation_response(result, OrderResponse, status.HTTP_201_CREATED)


@router.patch("/{order_id}")
def update_order_charges(
    order_id: uuid.UUID,
    payload: OrderChargesUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = OrderLifecycle(db).update_charges(
        order_id, payload.model_dump(exclude_unset=True), actor
    )
    return mutation_response(result, OrderResponse)


@router.patch("/{order_id}/status")
def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusPayload,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = OrderLifecycle(db).update_status(order_id, payload.status, actor, payload.reason)
    return mutation_response(result, OrderResponse)


@router.post("/{order_id}/cancel")
def cancel_order(
    order_id: uuid.UUID,
    payload: RequiredReasonPayload,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_admin_actor),
):
    result = OrderLifecycle(db).cancel(order_id, actor, payload.reason)
    return mutation_response(result, OrderResponse)
