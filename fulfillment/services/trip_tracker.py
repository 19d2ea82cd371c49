"""Start/stop intervals per driver, order and leg type.

Legs are never deleted; completing one is a single update of ``completed_at``.
``stage_*`` functions add work to the caller's transaction (the fulfillment
engine uses them inside a status transition); ``start_trip`` and
``complete_trip`` are the standalone, self-committing operations used by the
driver app.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fulfillment.core.errors import ValidationError
from fulfillment.models.driver import DriverTrip, TripType
from fulfillment.models.order import Order
from fulfillment.services import driver_registry
from fulfillment.services import order_store
from fulfillment.services.periods import as_utc

logger = structlog.get_logger()

# Tolerated drift between a driver device clock and ours
CLOCK_SKEW = timedelta(minutes=2)


@dataclass(frozen=True)
class TripView:
    """A leg as shown in the driver report."""

    id: uuid.UUID
    order_id: uuid.UUID
    order_number: str | None
    trip_type: TripType
    started_at: datetime
    completed_at: datetime | None
    duration_minutes: Decimal | None


def parse_trip_type(value: str | TripType) -> TripType:
    try:
        return TripType(value)
    except ValueError:
        raise ValidationError(f"Unknown trip type '{value}'. Expected 'pickup' or 'delivery'.")


def duration_minutes(trip: DriverTrip) -> Decimal | None:
    """Elapsed minutes of a completed leg, or None while it is in progress."""
    if trip.completed_at is None:
        return None
    elapsed = as_utc(trip.completed_at) - as_utc(trip.started_at)
    return Decimal(str(elapsed.total_seconds())) / Decimal(60)


async def _open_legs(
    session: AsyncSession, order_id: uuid.UUID, trip_type: TripType
) -> Sequence[DriverTrip]:
    stmt = (
        select(DriverTrip)
        .where(DriverTrip.order_id == order_id)
        .where(DriverTrip.trip_type == trip_type)
        .where(DriverTrip.completed_at.is_(None))
        .order_by(DriverTrip.started_at.asc())
    )
    result = await session.execute(stmt)
    return result.scalars().all()


async def stage_start(
    session: AsyncSession,
    *,
    order_id: uuid.UUID,
    driver_id: uuid.UUID,
    trip_type: TripType,
    started_at: datetime | None = None,
) -> DriverTrip:
    """Open a leg, or re-point the open leg of the same type for this order."""
    started_at = as_utc(started_at) if started_at else datetime.now(timezone.utc)
    open_legs = await _open_legs(session, order_id, trip_type)
    if open_legs:
        trip = open_legs[0]
        trip.driver_id = driver_id
        trip.started_at = started_at
    else:
        trip = DriverTrip(
            id=uuid.uuid4(),
            order_id=order_id,
            driver_id=driver_id,
            trip_type=trip_type,
            started_at=started_at,
        )
        session.add(trip)
    return trip


async def stage_complete(
    session: AsyncSession,
    *,
    order_id: uuid.UUID,
    trip_type: TripType,
    completed_at: datetime | None = None,
    strict: bool = True,
) -> list[DriverTrip]:
    """Close every open leg of this type for the order.

    With ``strict=False`` (status moves) a leg that claims to have started after
    ``completed_at`` is closed at its own start instead of blocking the move.
    """
    completed_at = as_utc(completed_at) if completed_at else datetime.now(timezone.utc)
    open_legs = await _open_legs(session, order_id, trip_type)
    for trip in open_legs:
        started_at = as_utc(trip.started_at)
        if completed_at >= started_at:
            trip.completed_at = completed_at
            continue
        if strict:
            raise ValidationError(
                f"Trip {trip.id} cannot complete before it started "
                f"({completed_at.isoformat()} < {started_at.isoformat()})."
            )
        logger.warning(
            "trip_completion_clamped",
            trip_id=trip.id,
            order_id=order_id,
            started_at=started_at.isoformat(),
            completed_at=completed_at.isoformat(),
        )
        trip.completed_at = started_at
    return list(open_legs)


async def start_trip(
    session: AsyncSession,
    *,
    order_id: uuid.UUID,
    driver_id: uuid.UUID,
    trip_type: str | TripType,
    started_at: datetime | None = None,
) -> DriverTrip:
    """A driver begins a pickup or delivery leg."""
    leg = parse_trip_type(trip_type)
    if started_at is not None and as_utc(started_at) > datetime.now(timezone.utc) + CLOCK_SKEW:
        raise ValidationError(f"Trip start {as_utc(started_at).isoformat()} is in the future.")
    await order_store.get_order(session, order_id)
    await driver_registry.get_driver(session, driver_id)

    trip = await stage_start(
        session,
        order_id=order_id,
        driver_id=driver_id,
        trip_type=leg,
        started_at=started_at,
    )
    await order_store.commit(session, order_id=order_id)

    logger.info("trip_started", trip_id=trip.id, order_id=order_id, driver_id=driver_id, trip_type=leg.value)
    return trip


async def complete_trip(
    session: AsyncSession,
    *,
    order_id: uuid.UUID,
    trip_type: str | TripType,
    completed_at: datetime | None = None,
) -> DriverTrip | None:
    """Close the open leg of this type; returns None when nothing was open."""
    leg = parse_trip_type(trip_type)
    await order_store.get_order(session, order_id)

    async with order_store.unit_of_work(session, order_id=order_id):
        closed = await stage_complete(
            session, order_id=order_id, trip_type=leg, completed_at=completed_at
        )
    if not closed:
        logger.info("trip_complete_noop", order_id=order_id, trip_type=leg.value)
        return None

    for trip in closed:
        logger.info("trip_completed", trip_id=trip.id, order_id=order_id, trip_type=leg.value)
    return closed[-1]


async def trips_for_driver(
    session: AsyncSession,
    driver_id: uuid.UUID,
    *,
    started_from: datetime | None = None,
    started_to: datetime | None = None,
    limit: int | None = None,
) -> Sequence[DriverTrip]:
    """Legs of one driver, most recent first, optionally bounded by ``started_at``."""
    stmt = select(DriverTrip).where(DriverTrip.driver_id == driver_id)
    if started_from is not None:
        stmt = stmt.where(DriverTrip.started_at >= as_utc(started_from))
    if started_to is not None:
        stmt = stmt.where(DriverTrip.started_at <= as_utc(started_to))
    stmt = stmt.order_by(DriverTrip.started_at.desc())
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await session.execute(stmt)
    return result.scalars().all()


async def list_trips(
    session: AsyncSession,
    driver_id: uuid.UUID,
    *,
    started_from: datetime | None = None,
    started_to: datetime | None = None,
    limit: int = 100,
) -> list[TripView]:
    """The driver report: recent legs with their order numbers and durations."""
    await driver_registry.get_driver(session, driver_id)
    trips = await trips_for_driver(
        session,
        driver_id,
        started_from=started_from,
        started_to=started_to,
        limit=limit,
    )

    order_ids = {t.order_id for t in trips}
    numbers: dict[uuid.UUID, str] = {}
    if order_ids:
        result = await session.execute(
            select(Order.id, Order.order_number).where(Order.id.in_(order_ids))
        )
        numbers = {oid: number for oid, number in result.all()}

    views = []
    for trip in trips:
        minutes = duration_minutes(trip)
        views.append(
            TripView(
                id=trip.id,
                order_id=trip.order_id,
                order_number=numbers.get(trip.order_id),
                trip_type=trip.trip_type,
                started_at=trip.started_at,
                completed_at=trip.completed_at,
                duration_minutes=minutes.quantize(Decimal("0.1")) if minutes is not None else None,
            )
        )
    return views
