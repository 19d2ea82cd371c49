"""Fulfillment Engine — order creation, status transitions and assignment.

Status changes are accepted in any direction so operators can correct
mistakes, with two exceptions enforced here and nowhere else:

* ``out_for_delivery`` needs an assigned driver (``DriverRequired``);
* ``delivered`` and ``cancelled`` are terminal (``AlreadyTerminal``).

An accepted transition updates the order, appends a history entry and
records any trip leg it implies, all in one transaction.
"""

from __future__ import annotations

import random
import uuid
from collections.abc import Sequence
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from fulfillment.core.config import settings
from fulfillment.core.errors import (
    AlreadyTerminal,
    ConflictError,
    DriverRequired,
    ValidationError,
)
from fulfillment.models.driver import TripType
from fulfillment.models.order import FORWARD_FLOW, Order, OrderStatus, OrderStatusHistory
from fulfillment.services import driver_registry, order_store, status_history, trip_tracker

logger = structlog.get_logger()

CENT = Decimal("0.01")
_ORDER_NUMBER_ATTEMPTS = 8


# ── Money ───────────────────────────────────────────────


def _to_money(value: Decimal | int | str, field: str) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a decimal amount, got {value!r}")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite amount")
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative")
    return amount.quantize(CENT)


def compute_total(
    subtotal: Decimal | int | str,
    delivery_fee: Decimal | int | str,
    discount: Decimal | int | str = Decimal("0"),
) -> Decimal:
    """``subtotal + delivery_fee - discount`` in cents; a negative result is rejected."""
    total = (
        _to_money(subtotal, "subtotal")
        + _to_money(delivery_fee, "delivery_fee")
        - _to_money(discount, "discount")
    )
    if total < 0:
        raise ValidationError("discount cannot exceed subtotal plus delivery fee")
    return total


# ── Status guard ────────────────────────────────────────


def parse_status(value: str | OrderStatus) -> OrderStatus:
    """Map a raw value onto the closed status enum."""
    try:
        return OrderStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in OrderStatus)
        raise ValidationError(f"Unknown order status '{value}'. Expected one of: {allowed}")


def check_transition(order: Order, target: OrderStatus) -> None:
    """Raise the guard violation that forbids ``order`` moving to ``target``, if any."""
    if target is OrderStatus.OUT_FOR_DELIVERY and order.driver_id is None:
        raise DriverRequired()
    if order.status.is_terminal:
        raise AlreadyTerminal(order.status.value)


def is_backward(current: OrderStatus, target: OrderStatus) -> bool:
    if current not in FORWARD_FLOW or target not in FORWARD_FLOW:
        return False
    return FORWARD_FLOW.index(target) < FORWARD_FLOW.index(current)


# ── Creation ────────────────────────────────────────────


async def _generate_order_number(session: AsyncSession, now: datetime) -> str:
    for _ in range(_ORDER_NUMBER_ATTEMPTS):
        candidate = f"{settings.order_number_prefix}-{now.year}-{random.randint(1000, 9999)}"
        if not await order_store.order_number_exists(session, candidate):
            return candidate
    # Four digits exhausted for the year; widen rather than fail the booking
    return f"{settings.order_number_prefix}-{now.year}-{uuid.uuid4().hex[:8].upper()}"


async def create_order(
    session: AsyncSession,
    *,
    customer_id: str,
    service_type: str,
    subtotal: Decimal | int | str,
    delivery_fee: Decimal | int | str,
    discount: Decimal | int | str = Decimal("0"),
    pickup_address: str,
    delivery_address: str,
    pickup_date: date | None = None,
    pickup_time_slot: str | None = None,
    delivery_date: date | None = None,
    delivery_time_slot: str | None = None,
    actor_id: str | None = None,
) -> Order:
    """Record a booking in ``pending`` with its first history entry."""
    total = compute_total(subtotal, delivery_fee, discount)
    now = datetime.now(timezone.utc)

    order = Order(
        id=uuid.uuid4(),
        order_number=await _generate_order_number(session, now),
        customer_id=customer_id,
        status=OrderStatus.PENDING,
        service_type=service_type,
        subtotal=_to_money(subtotal, "subtotal"),
        delivery_fee=_to_money(delivery_fee, "delivery_fee"),
        discount=_to_money(discount, "discount"),
        total=total,
        pickup_address=pickup_address,
        delivery_address=delivery_address,
        pickup_date=pickup_date,
        pickup_time_slot=pickup_time_slot,
        delivery_date=delivery_date,
        delivery_time_slot=delivery_time_slot,
        is_priority=False,
    )

    async with order_store.unit_of_work(session, order_id=order.id):
        session.add(order)
        status_history.append_entry(
            session,
            order_id=order.id,
            status=OrderStatus.PENDING,
            notes="Order placed",
            changed_by=actor_id or customer_id,
        )

    logger.info(
        "order_created",
        order_id=order.id,
        order_number=order.order_number,
        customer_id=customer_id,
        total=str(total),
    )
    return order


# ── Transitions ─────────────────────────────────────────


async def _record_trip_legs(session: AsyncSession, order: Order, target: OrderStatus) -> None:
    if target is OrderStatus.PICKED_UP and order.driver_id is not None:
        await trip_tracker.stage_start(
            session, order_id=order.id, driver_id=order.driver_id, trip_type=TripType.PICKUP
        )
    elif target is OrderStatus.AT_FACILITY:
        await trip_tracker.stage_complete(
            session, order_id=order.id, trip_type=TripType.PICKUP, strict=False
        )
    elif target is OrderStatus.OUT_FOR_DELIVERY:
        await trip_tracker.stage_start(
            session, order_id=order.id, driver_id=order.driver_id, trip_type=TripType.DELIVERY
        )
    elif target is OrderStatus.DELIVERED:
        await trip_tracker.stage_complete(
            session, order_id=order.id, trip_type=TripType.DELIVERY, strict=False
        )


async def transition(
    session: AsyncSession,
    order_id: uuid.UUID,
    target_status: str | OrderStatus,
    actor_id: str,
    note: str | None = None,
    *,
    track_trips: bool | None = None,
) -> Order:
    """Move an order to ``target_status``.

    Raises:
        ValidationError: unknown status or order.
        DriverRequired: ``out_for_delivery`` without an assigned driver.
        AlreadyTerminal: the order is already delivered or cancelled.
        ConflictError: a concurrent writer changed the order first.
        StorageError: the store is unreachable.
    """
    target = parse_status(target_status)
    if track_trips is None:
        track_trips = settings.track_trips_on_transition
    log = logger.bind(order_id=order_id, actor_id=actor_id, target_status=target.value)

    try:
        async with order_store.unit_of_work(session, order_id=order_id):
            order = await order_store.load_for_update(session, order_id)
            previous = order.status
            check_transition(order, target)

            if is_backward(previous, target):
                log.warning("order_status_backward", old_status=previous.value)

            if track_trips:
                await _record_trip_legs(session, order, target)

            status_history.append_entry(
                session,
                order_id=order.id,
                status=target,
                notes=note or f"Status updated to {target.value}",
                changed_by=actor_id,
            )
            order.status = target
    except (DriverRequired, AlreadyTerminal, ConflictError) as exc:
        log.info("order_transition_rejected", error=exc.code, detail=exc.message)
        raise

    log.info("order_transitioned", old_status=previous.value, new_status=target.value)
    return order


# ── Plain field updates ─────────────────────────────────


async def assign_driver(
    session: AsyncSession,
    order_id: uuid.UUID,
    driver_id: uuid.UUID | None,
    actor_id: str,
) -> Order:
    """Set or clear the order's driver. Load is not checked; no leg is started."""
    async with order_store.unit_of_work(session, order_id=order_id):
        order = await order_store.load_for_update(session, order_id)
        if driver_id is not None:
            await driver_registry.get_driver(session, driver_id)

        previous_driver = order.driver_id
        order.driver_id = driver_id
        order.assigned_at = datetime.now(timezone.utc) if driver_id else None
        order.assigned_by = actor_id if driver_id else None

    logger.info(
        "driver_assigned" if driver_id else "driver_unassigned",
        order_id=order_id,
        driver_id=driver_id,
        previous_driver_id=previous_driver,
        actor_id=actor_id,
    )
    return order


async def set_priority(session: AsyncSession, order_id: uuid.UUID, flag: bool) -> Order:
    async with order_store.unit_of_work(session, order_id=order_id):
        order = await order_store.load_for_update(session, order_id)
        order.is_priority = flag

    logger.info("order_priority_updated", order_id=order_id, is_priority=flag)
    return order


async def set_internal_notes(session: AsyncSession, order_id: uuid.UUID, text: str) -> Order:
    async with order_store.unit_of_work(session, order_id=order_id):
        order = await order_store.load_for_update(session, order_id)
        order.internal_notes = text or None

    logger.info("order_internal_notes_updated", order_id=order_id, length=len(text or ""))
    return order


# ── Reads ───────────────────────────────────────────────


async def get_order(session: AsyncSession, order_id: uuid.UUID) -> Order:
    return await order_store.get_order(session, order_id)


async def history(session: AsyncSession, order_id: uuid.UUID) -> Sequence[OrderStatusHistory]:
    """Transition trace of an order, oldest first."""
    await order_store.get_order(session, order_id)
    return await status_history.list_entries(session, order_id)
