"""Pydantic schemas for the Order API."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from fulfillment.models.order import OrderStatus


# ── Request Schemas ───────────────────────────


class OrderCreate(BaseModel):
    """A booking handed over by the customer site (prices already computed)."""

    customer_id: str = Field(..., min_length=1, max_length=100)
    service_type: str = Field(..., min_length=1, max_length=50, examples=["laundry"])
    subtotal: Decimal = Field(..., ge=0, decimal_places=2)
    delivery_fee: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    discount: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    pickup_address: str = Field(..., min_length=1)
    delivery_address: str = Field(..., min_length=1)
    pickup_date: date | None = None
    pickup_time_slot: str | None = Field(None, max_length=50)
    delivery_date: date | None = None
    delivery_time_slot: str | None = Field(None, max_length=50)


class StatusTransitionRequest(BaseModel):
    # Checked by the engine so an unknown value gets the typed error body
    status: str = Field(..., min_length=1, max_length=32, examples=["confirmed"])
    note: str | None = Field(None, max_length=2000)


class DriverAssignmentRequest(BaseModel):
    """``driver_id: null`` unassigns."""

    driver_id: uuid.UUID | None = None


class PriorityUpdate(BaseModel):
    is_priority: bool


class InternalNotesUpdate(BaseModel):
    internal_notes: str = Field("", max_length=5000)


# ── Response Schemas ──────────────────────────


class StatusHistoryItem(BaseModel):
    """Single entry in order status history."""

    id: int
    status: OrderStatus
    notes: str | None
    changed_by: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class OrderResponse(BaseModel):
    """Full order detail for the operations console."""

    id: uuid.UUID
    order_number: str
    customer_id: str
    status: OrderStatus
    service_type: str
    subtotal: Decimal
    delivery_fee: Decimal
    discount: Decimal
    total: Decimal
    pickup_address: str
    delivery_address: str
    pickup_date: date | None = None
    pickup_time_slot: str | None = None
    delivery_date: date | None = None
    delivery_time_slot: str | None = None
    driver_id: uuid.UUID | None = None
    assigned_at: datetime | None = None
    assigned_by: str | None = None
    is_priority: bool = False
    internal_notes: str | None = None
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class OrderListResponse(BaseModel):
    """Paginated order list."""

    orders: list[OrderResponse]
    total: int


class OrderHistoryResponse(BaseModel):
    order_id: uuid.UUID
    entries: list[StatusHistoryItem]
