"""Driver registry and trip routes."""

from __future__ import annotations

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from fulfillment.core.auth import Actor, require_operator
from fulfillment.core.database import get_session
from fulfillment.models.driver import Driver, DriverStatus
from fulfillment.schemas.driver import (
    DriverCreate,
    DriverListResponse,
    DriverResponse,
    DriverStatusUpdate,
    TripListResponse,
    TripResponse,
    TripStart,
)
from fulfillment.services import driver_registry, trip_tracker

router = APIRouter(prefix="/api/drivers", tags=["Drivers"])


def _driver_response(driver: Driver, counts: dict[uuid.UUID, int]) -> DriverResponse:
    response = DriverResponse.model_validate(driver)
    response.current_orders = counts.get(driver.id, 0)
    return response


@router.post("", response_model=DriverResponse, status_code=status.HTTP_201_CREATED)
async def create_driver(
    payload: DriverCreate,
    actor: Actor = Depends(require_operator),
    session: AsyncSession = Depends(get_session),
) -> DriverResponse:
    driver = await driver_registry.create_driver(
        session,
        name=payload.name,
        phone=payload.phone,
        email=payload.email,
        zone_id=payload.zone_id,
        vehicle_info=payload.vehicle_info,
        max_orders=payload.max_orders,
        created_by=actor.id,
    )
    return DriverResponse.model_validate(driver)


@router.get("", response_model=DriverListResponse)
async def list_drivers(
    driver_status: DriverStatus | None = Query(None, alias="status"),
    actor: Actor = Depends(require_operator),
    session: AsyncSession = Depends(get_session),
) -> DriverListResponse:
    """Drivers by name, each with their count of open assigned orders."""
    drivers = await driver_registry.list_drivers(session, status=driver_status)
    counts = await driver_registry.current_order_counts(session)
    return DriverListResponse(
        drivers=[_driver_response(d, counts) for d in drivers],
        total=len(drivers),
    )


@router.get("/{driver_id}", response_model=DriverResponse)
async def get_driver(
    driver_id: uuid.UUID,
    actor: Actor = Depends(require_operator),
    session: AsyncSession = Depends(get_session),
) -> DriverResponse:
    driver = await driver_registry.get_driver(session, driver_id)
    counts = await driver_registry.current_order_counts(session)
    return _driver_response(driver, counts)


@router.patch("/{driver_id}/status", response_model=DriverResponse)
async def set_driver_status(
    driver_id: uuid.UUID,
    payload: DriverStatusUpdate,
    actor: Actor = Depends(require_operator),
    session: AsyncSession = Depends(get_session),
) -> DriverResponse:
    driver = await driver_registry.set_driver_status(session, driver_id, payload.status)
    return DriverResponse.model_validate(driver)


@router.get("/{driver_id}/trips", response_model=TripListResponse)
async def list_trips(
    driver_id: uuid.UUID,
    started_from: datetime | None = Query(None, alias="from"),
    started_to: datetime | None = Query(None, alias="to"),
    limit: int = Query(100, ge=1, le=500),
    actor: Actor = Depends(require_operator),
    session: AsyncSession = Depends(get_session),
) -> TripListResponse:
    """Recent legs of one driver with order numbers and durations."""
    views = await trip_tracker.list_trips(
        session,
        driver_id,
        started_from=started_from,
        started_to=started_to,
        limit=limit,
    )
    return TripListResponse(
        driver_id=driver_id,
        trips=[TripResponse.model_validate(v) for v in views],
    )


@router.post(
    "/{driver_id}/trips",
    response_model=TripResponse,
    status_code=status.HTTP_201_CREATED,
)
async def start_trip(
    driver_id: uuid.UUID,
    payload: TripStart,
    actor: Actor = Depends(require_operator),
    session: AsyncSession = Depends(get_session),
) -> TripResponse:
    trip = await trip_tracker.start_trip(
        session,
        order_id=payload.order_id,
        driver_id=driver_id,
        trip_type=payload.trip_type,
        started_at=payload.started_at,
    )
    return TripResponse.model_validate(trip)
