"""Pydantic schemas for the Driver and Trip API."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from fulfillment.models.driver import DriverStatus, TripType


class DriverCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=3, max_length=30)
    email: str | None = Field(None, max_length=255)
    zone_id: str | None = Field(None, max_length=50)
    vehicle_info: str | None = None
    max_orders: int = Field(10, ge=1, le=100)


class DriverStatusUpdate(BaseModel):
    status: DriverStatus


class DriverResponse(BaseModel):
    id: uuid.UUID
    name: str
    phone: str
    email: str | None = None
    zone_id: str | None = None
    vehicle_info: str | None = None
    status: DriverStatus
    rating: Decimal | None = None
    on_time_rate: Decimal | None = None
    max_orders: int
    current_orders: int = 0
    created_at: datetime

    model_config = {"from_attributes": True}


class DriverListResponse(BaseModel):
    drivers: list[DriverResponse]
    total: int


class TripStart(BaseModel):
    order_id: uuid.UUID
    trip_type: TripType
    started_at: datetime | None = None


class TripComplete(BaseModel):
    completed_at: datetime | None = None


class TripResponse(BaseModel):
    id: uuid.UUID
    order_id: uuid.UUID
    order_number: str | None = None
    driver_id: uuid.UUID | None = None
    trip_type: TripType
    started_at: datetime
    completed_at: datetime | None = None
    duration_minutes: Decimal | None = None

    model_config = {"from_attributes": True}


class TripListResponse(BaseModel):
    driver_id: uuid.UUID
    trips: list[TripResponse]
