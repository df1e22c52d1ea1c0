"""Order schemas."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field

from marketadmin.schemas.common import BaseSchema, IDSchema, TimestampedSchema


class OrderItemInput(BaseSchema):
    listing_id: uuid.UUID
    quantity: Decimal = Field(..., gt=0)
    # Defaults to the listing's current price
    unit_price: Optional[Decimal] = None
    unit: Optional[str] = Field(default=None, max_length=16)
    is_pack_based: bool = False
    number_of_packs: Optional[int] = None
    price_per_pack: Optional[Decimal] = None


class OrderCreate(BaseSchema):
    buyer_id: uuid.UUID
    vendor_id: uuid.UUID
    items: list[OrderItemInput]
    placed_by_id: Optional[uuid.UUID] = None
    delivery_type: Optional[str] = None
    payment_method: Optional[str] = Field(default=None, max_length=32)
    notes: Optional[str] = None
    delivery_fee: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    discount: Decimal = Decimal("0")


class OrderChargesUpdate(BaseSchema):
    items: Optional[list[OrderItemInput]] = None
    delivery_fee: Optional[Decimal] = None
    tax: Optional[Decimal] = None
    discount: Optional[Decimal] = None


class OrderStatusPayload(BaseSchema):
    status: str
    reason: Optional[str] = Field(default=None, max_length=500)


class OrderItemResponse(IDSchema):
    line_number: int
    listing_id: uuid.UUID
    product_id: uuid.UUID
    product_name: str
    quantity: Decimal
    unit: str
    unit_price: Decimal
    is_pack_based: bool
    number_of_packs: Optional[int] = None
    price_per_pack: Optional[Decimal] = None
    total_price: Decimal


class OrderStatusHistoryResponse(IDSchema):
    status: str
    changed_by_id: Optional[uuid.UUID] = None
    reason: Optional[str] = None
    changed_at: datetime


class OrderResponse(TimestampedSchema):
    order_number: str
    buyer_id: uuid.UUID
    vendor_id: uuid.UUID
    placed_by_id: Optional[uuid.UUID] = None
    approved_by_id: Optional[uuid.UUID] = None
    status: str
    subtotal: Decimal
    delivery_fee: Decimal
    tax: Decimal
    discount: Decimal
    total_amount: Decimal
    delivery_type: str
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    approved_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    items: list[OrderItemResponse] = []
    status_history: list[OrderStatusHistoryResponse] = []
