"""Counts, durations and on-time rates from trips.

Metrics are derived from completed legs when there are any. With no data the
aggregator reports the configured fallback instead of zero, because a driver
with no trips yet has not been late. Computed values are returned only; the
operator-set baselines on the driver row are left untouched.
"""

from __future__ import annotations

import enum
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from fulfillment.core.config import settings
from fulfillment.models.driver import Driver, DriverStatus, DriverTrip, TripType
from fulfillment.services import driver_registry, trip_tracker
from fulfillment.services.periods import Window

logger = structlog.get_logger()

TENTH = Decimal("0.1")
# The console estimates delivery legs from pickup legs when none completed
DELIVERY_ESTIMATE_FACTOR = Decimal("1.2")


class MetricSource(str, enum.Enum):
    TRIPS = "trips"
    BASELINE = "baseline"


@dataclass(frozen=True)
class DriverStats:
    driver_id: uuid.UUID
    name: str
    phone: str
    status: DriverStatus
    zone_id: str | None
    rating: Decimal
    pickups: int
    deliveries: int
    completed_pickups: int
    completed_deliveries: int
    avg_pickup_minutes: Decimal
    avg_delivery_minutes: Decimal
    on_time_rate: Decimal
    on_time_source: MetricSource


@dataclass(frozen=True)
class FleetSummary:
    total: int
    active: int
    pickups: int
    deliveries: int


def _round(value: Decimal) -> Decimal:
    return value.quantize(TENTH, rounding=ROUND_HALF_UP)


def _mean(values: Sequence[Decimal]) -> Decimal | None:
    if not values:
        return None
    return sum(values, Decimal("0")) / Decimal(len(values))


def sla_minutes(trip_type: TripType) -> int:
    if trip_type is TripType.PICKUP:
        return settings.pickup_sla_minutes
    return settings.delivery_sla_minutes


def summarize(driver: Driver, trips: Sequence[DriverTrip]) -> DriverStats:
    """Fold one driver's legs into dashboard figures."""
    pickups = [t for t in trips if t.trip_type is TripType.PICKUP]
    deliveries = [t for t in trips if t.trip_type is TripType.DELIVERY]

    durations: dict[TripType, list[Decimal]] = {TripType.PICKUP: [], TripType.DELIVERY: []}
    within_sla = 0
    completed = 0
    for trip in trips:
        minutes = trip_tracker.duration_minutes(trip)
        if minutes is None:
            continue
        completed += 1
        durations[trip.trip_type].append(minutes)
        if minutes <= sla_minutes(trip.trip_type):
            within_sla += 1

    if completed:
        on_time = _round(Decimal(within_sla) / Decimal(completed) * Decimal(100))
        source = MetricSource.TRIPS
    else:
        baseline = driver.on_time_rate
        on_time = Decimal(str(baseline)) if baseline is not None else settings.default_on_time_rate
        source = MetricSource.BASELINE

    avg_pickup = _mean(durations[TripType.PICKUP])
    if avg_pickup is None:
        avg_pickup = settings.default_avg_pickup_minutes
    avg_delivery = _mean(durations[TripType.DELIVERY])
    if avg_delivery is None:
        avg_delivery = avg_pickup * DELIVERY_ESTIMATE_FACTOR

    rating = driver.rating
    return DriverStats(
        driver_id=driver.id,
        name=driver.name,
        phone=driver.phone or "",
        status=driver.status or DriverStatus.OFFLINE,
        zone_id=driver.zone_id,
        rating=Decimal(str(rating)) if rating is not None else settings.default_driver_rating,
        pickups=len(pickups),
        deliveries=len(deliveries),
        completed_pickups=len(durations[TripType.PICKUP]),
        completed_deliveries=len(durations[TripType.DELIVERY]),
        avg_pickup_minutes=_round(avg_pickup),
        avg_delivery_minutes=_round(avg_delivery),
        on_time_rate=on_time,
        on_time_source=source,
    )


async def _trips(session: AsyncSession, driver_id: uuid.UUID, window: Window | None):
    return await trip_tracker.trips_for_driver(
        session,
        driver_id,
        started_from=window.start if window else None,
        started_to=window.end if window else None,
    )


async def performance_for_driver(
    session: AsyncSession, driver_id: uuid.UUID, window: Window | None = None
) -> DriverStats:
    driver = await driver_registry.get_driver(session, driver_id)
    stats = summarize(driver, await _trips(session, driver_id, window))
    logger.debug(
        "driver_performance_computed",
        driver_id=driver_id,
        on_time_rate=str(stats.on_time_rate),
        on_time_source=stats.on_time_source.value,
    )
    return stats


async def performance_for_all_drivers(
    session: AsyncSession, window: Window | None = None
) -> list[DriverStats]:
    drivers = await driver_registry.list_drivers(session)
    return [summarize(d, await _trips(session, d.id, window)) for d in drivers]


def fleet_summary(stats: Sequence[DriverStats]) -> FleetSummary:
    return FleetSummary(
        total=len(stats),
        active=sum(1 for s in stats if s.status is DriverStatus.ACTIVE),
        pickups=sum(s.pickups for s in stats),
        deliveries=sum(s.deliveries for s in stats),
    )
