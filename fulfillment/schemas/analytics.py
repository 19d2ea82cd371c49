"""Pydantic schemas for dashboard aggregates."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from fulfillment.models.driver import DriverStatus
from fulfillment.services.driver_performance import MetricSource
from fulfillment.services.periods import Period


class ServiceBucketResponse(BaseModel):
    service: str
    label: str
    amount: Decimal
    orders: int

    model_config = {"from_attributes": True}


class PeriodStatsResponse(BaseModel):
    period: Period
    start: datetime
    end: datetime
    total: Decimal
    orders: int
    avg_order: Decimal
    growth: Decimal
    previous_total: Decimal
    new_customers: int
    service_breakdown: list[ServiceBucketResponse]

    model_config = {"from_attributes": True}


class DriverStatsResponse(BaseModel):
    driver_id: uuid.UUID
    name: str
    phone: str
    status: DriverStatus
    zone_id: str | None = None
    rating: Decimal
    pickups: int
    deliveries: int
    completed_pickups: int
    completed_deliveries: int
    avg_pickup_minutes: Decimal
    avg_delivery_minutes: Decimal
    on_time_rate: Decimal
    on_time_source: MetricSource

    model_config = {"from_attributes": True}


class FleetSummaryResponse(BaseModel):
    total: int
    active: int
    pickups: int
    deliveries: int

    model_config = {"from_attributes": True}


class FleetPerformanceResponse(BaseModel):
    summary: FleetSummaryResponse
    drivers: list[DriverStatsResponse]
