"""Trip legs: explicit start/complete and the legs recorded by status moves."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from fulfillment.core.errors import DriverNotFound, OrderNotFound, ValidationError
from fulfillment.models import TripType
from fulfillment.services import order_service, trip_tracker
from fulfillment.services.periods import as_utc

T0 = datetime(2024, 5, 6, 9, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_start_and_complete_leg_reports_duration(session, make_order, make_driver):
    order = await make_order()
    driver = await make_driver()

    trip = await trip_tracker.start_trip(
        session, order_id=order.id, driver_id=driver.id, trip_type="pickup", started_at=T0
    )
    assert trip.completed_at is None
    assert trip_tracker.duration_minutes(trip) is None

    closed = await trip_tracker.complete_trip(
        session, order_id=order.id, trip_type="pickup", completed_at=T0 + timedelta(minutes=27)
    )
    assert closed.id == trip.id
    assert trip_tracker.duration_minutes(closed) == Decimal(27)


@pytest.mark.asyncio
async def test_completing_with_nothing_open_returns_none(session, make_order):
    order = await make_order()
    assert await trip_tracker.complete_trip(session, order_id=order.id, trip_type="delivery") is None


@pytest.mark.asyncio
async def test_completion_before_start_is_rejected(session, make_order, make_driver):
    order = await make_order()
    order_id = order.id
    driver = await make_driver()
    await trip_tracker.start_trip(
        session, order_id=order_id, driver_id=driver.id, trip_type="delivery", started_at=T0
    )

    with pytest.raises(ValidationError, match="cannot complete before it started"):
        await trip_tracker.complete_trip(
            session, order_id=order_id, trip_type="delivery", completed_at=T0 - timedelta(minutes=1)
        )


@pytest.mark.asyncio
async def test_restarting_a_leg_reuses_the_open_row(session, make_order, make_driver):
    order = await make_order()
    first = await make_driver("Ana")
    second = await make_driver("Ben")

    a = await trip_tracker.start_trip(
        session, order_id=order.id, driver_id=first.id, trip_type="pickup", started_at=T0
    )
    b = await trip_tracker.start_trip(
        session,
        order_id=order.id,
        driver_id=second.id,
        trip_type="pickup",
        started_at=T0 + timedelta(minutes=5),
    )

    assert a.id == b.id
    assert b.driver_id == second.id
    assert await trip_tracker.trips_for_driver(session, first.id) == []


@pytest.mark.asyncio
async def test_start_trip_validates_references(session, make_order, make_driver):
    order = await make_order()
    driver = await make_driver()

    with pytest.raises(OrderNotFound):
        await trip_tracker.start_trip(
            session, order_id=uuid.uuid4(), driver_id=driver.id, trip_type="pickup"
        )
    with pytest.raises(DriverNotFound):
        await trip_tracker.start_trip(
            session, order_id=order.id, driver_id=uuid.uuid4(), trip_type="pickup"
        )
    with pytest.raises(ValidationError, match="Unknown trip type"):
        await trip_tracker.start_trip(
            session, order_id=order.id, driver_id=driver.id, trip_type="return"
        )


@pytest.mark.asyncio
async def test_status_moves_open_and_close_legs(session, make_order, make_driver):
    order = await make_order()
    order_id = order.id
    driver = await make_driver()
    await order_service.assign_driver(session, order_id, driver.id, "staff-1")

    for status in ("confirmed", "picked_up", "at_facility", "ready", "out_for_delivery"):
        await order_service.transition(session, order_id, status, "staff-1")

    trips = await trip_tracker.trips_for_driver(session, driver.id)
    by_type = {t.trip_type: t for t in trips}
    assert by_type[TripType.PICKUP].completed_at is not None
    assert by_type[TripType.DELIVERY].completed_at is None

    await order_service.transition(session, order_id, "delivered", "staff-1")
    trips = await trip_tracker.trips_for_driver(session, driver.id)
    assert len(trips) == 2
    assert all(t.completed_at is not None for t in trips)


@pytest.mark.asyncio
async def test_pickup_without_driver_records_no_leg(session, make_order):
    order = await make_order()
    await order_service.transition(session, order.id, "picked_up", "staff-1")
    await order_service.transition(session, order.id, "at_facility", "staff-1")

    assert await trip_tracker._open_legs(session, order.id, TripType.PICKUP) == []


@pytest.mark.asyncio
async def test_trip_tracking_can_be_switched_off(session, make_order, make_driver):
    order = await make_order()
    driver = await make_driver()
    await order_service.assign_driver(session, order.id, driver.id, "staff-1")

    await order_service.transition(session, order.id, "picked_up", "staff-1", track_trips=False)
    assert await trip_tracker.trips_for_driver(session, driver.id) == []


@pytest.mark.asyncio
async def test_driver_report_lists_newest_first_with_order_numbers(session, make_order, make_driver):
    driver = await make_driver()
    older = await make_order()
    newer = await make_order()

    for order, offset in ((older, 0), (newer, 60)):
        await trip_tracker.start_trip(
            session,
            order_id=order.id,
            driver_id=driver.id,
            trip_type="pickup",
            started_at=T0 + timedelta(minutes=offset),
        )
    await trip_tracker.complete_trip(
        session, order_id=older.id, trip_type="pickup", completed_at=T0 + timedelta(minutes=12, seconds=20)
    )

    views = await trip_tracker.list_trips(session, driver.id)
    assert [v.order_number for v in views] == [newer.order_number, older.order_number]
    assert views[0].duration_minutes is None
    assert views[1].duration_minutes == Decimal("12.3")

    bounded = await trip_tracker.list_trips(
        session, driver.id, started_from=T0 + timedelta(minutes=30)
    )
    assert [v.order_id for v in bounded] == [newer.id]


@pytest.mark.asyncio
async def test_leg_cannot_start_in_the_future(session, make_order, make_driver):
    order = await make_order()
    driver = await make_driver()
    ahead = datetime.now(timezone.utc) + timedelta(hours=3)

    with pytest.raises(ValidationError, match="in the future"):
        await trip_tracker.start_trip(
            session, order_id=order.id, driver_id=driver.id, trip_type="pickup", started_at=ahead
        )
    assert await trip_tracker.trips_for_driver(session, driver.id) == []


@pytest.mark.asyncio
async def test_late_stamped_leg_does_not_block_status_move(session, make_order, make_driver):
    order = await make_order()
    order_id = order.id
    driver = await make_driver()
    driver_id = driver.id
    await order_service.assign_driver(session, order_id, driver_id, "staff-1")
    await order_service.transition(session, order_id, "picked_up", "staff-1")

    # A device clock ahead of ours stamped the leg after the facility scan
    (leg,) = await trip_tracker._open_legs(session, order_id, TripType.PICKUP)
    ahead = datetime.now(timezone.utc) + timedelta(hours=1)
    leg.started_at = ahead
    await session.commit()

    moved = await order_service.transition(session, order_id, "at_facility", "staff-1")
    assert moved.status.value == "at_facility"

    (trip,) = await trip_tracker.trips_for_driver(session, driver_id)
    assert as_utc(trip.completed_at) == as_utc(trip.started_at)
    assert trip_tracker.duration_minutes(trip) == Decimal(0)
