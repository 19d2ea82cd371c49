"""Driver records and availability."""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from decimal import Decimal

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fulfillment.core.errors import DriverNotFound, ValidationError
from fulfillment.models.driver import Driver, DriverStatus
from fulfillment.models.order import TERMINAL_STATUSES, Order
from fulfillment.services import order_store

logger = structlog.get_logger()

# Defaults applied when an operator adds a driver from the console
NEW_DRIVER_RATING = Decimal("5.0")
NEW_DRIVER_ON_TIME_RATE = Decimal("100")


def parse_driver_status(value: str | DriverStatus) -> DriverStatus:
    try:
        return DriverStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in DriverStatus)
        raise ValidationError(f"Unknown driver status '{value}'. Expected one of: {allowed}")


async def create_driver(
    session: AsyncSession,
    *,
    name: str,
    phone: str,
    email: str | None = None,
    zone_id: str | None = None,
    vehicle_info: str | None = None,
    max_orders: int = 10,
    created_by: str | None = None,
) -> Driver:
    """Register a new driver; they start offline with full baseline scores."""
    driver = Driver(
        id=uuid.uuid4(),
        name=name,
        phone=phone,
        email=email,
        zone_id=zone_id,
        vehicle_info=vehicle_info,
        status=DriverStatus.OFFLINE,
        rating=NEW_DRIVER_RATING,
        on_time_rate=NEW_DRIVER_ON_TIME_RATE,
        max_orders=max_orders,
        created_by=created_by,
    )
    async with order_store.unit_of_work(session):
        session.add(driver)

    logger.info("driver_created", driver_id=driver.id, created_by=created_by)
    return driver


async def get_driver(session: AsyncSession, driver_id: uuid.UUID) -> Driver:
    driver = await session.get(Driver, driver_id)
    if driver is None:
        raise DriverNotFound(driver_id)
    return driver


async def list_drivers(
    session: AsyncSession, *, status: DriverStatus | None = None
) -> Sequence[Driver]:
    stmt = select(Driver).order_by(Driver.name.asc())
    if status is not None:
        stmt = stmt.where(Driver.status == status)
    result = await session.execute(stmt)
    return result.scalars().all()


async def current_order_counts(session: AsyncSession) -> dict[uuid.UUID, int]:
    """Assigned, not-yet-terminal orders per driver (a capacity hint only)."""
    stmt = (
        select(Order.driver_id, func.count(Order.id))
        .where(Order.driver_id.is_not(None))
        .where(Order.status.not_in(list(TERMINAL_STATUSES)))
        .group_by(Order.driver_id)
    )
    result = await session.execute(stmt)
    return {driver_id: count for driver_id, count in result.all()}


async def set_driver_status(
    session: AsyncSession, driver_id: uuid.UUID, status: str | DriverStatus
) -> Driver:
    new_status = parse_driver_status(status)
    driver = await get_driver(session, driver_id)
    old_status = driver.status
    async with order_store.unit_of_work(session):
        driver.status = new_status

    logger.info(
        "driver_status_updated",
        driver_id=driver_id,
        old_status=old_status.value,
        new_status=new_status.value,
    )
    return driver
