"""Row loading, locking and commit with error translation.

Every order mutation re-reads the row with :func:`load_for_update` and
writes inside :func:`unit_of_work`. The mapper's ``version_id_col`` turns each UPDATE into a
compare-and-set on ``orders.version``; a writer that lost the race gets
``StaleDataError`` from SQLAlchemy, which surfaces here as ``ConflictError``.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from fulfillment.core.errors import (
    ConflictError,
    FulfillmentError,
    OrderNotFound,
    StorageError,
)
from fulfillment.models.order import Order, OrderStatus

logger = structlog.get_logger()


async def get_order(session: AsyncSession, order_id: uuid.UUID) -> Order:
    """Fetch a single order or raise ``OrderNotFound``."""
    try:
        order = await session.get(Order, order_id, populate_existing=True)
    except OperationalError as exc:
        raise StorageError(f"Order store unavailable: {exc.orig}") from exc
    if order is None:
        raise OrderNotFound(order_id)
    return order


async def load_for_update(session: AsyncSession, order_id: uuid.UUID) -> Order:
    """Re-read an order with a row lock, refreshing any stale identity-map copy."""
    stmt = (
        select(Order)
        .where(Order.id == order_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    try:
        result = await session.execute(stmt)
    except OperationalError as exc:
        await session.rollback()
        raise StorageError(f"Order store unavailable: {exc.orig}") from exc
    order = result.scalar_one_or_none()
    if order is None:
        raise OrderNotFound(order_id)
    return order


@asynccontextmanager
async def unit_of_work(
    session: AsyncSession, *, order_id: uuid.UUID | None = None
) -> AsyncIterator[None]:
    """Run the enclosed writes as one transaction.

    Commits on success. Any failure, including a typed rejection raised by the
    enclosed code, rolls the whole unit back so no partial state survives.
    """
    try:
        yield
        await session.commit()
    except FulfillmentError:
        await session.rollback()
        raise
    except StaleDataError as exc:
        await session.rollback()
        logger.warning("order_write_conflict", order_id=order_id)
        raise ConflictError(
            f"Order {order_id} was changed by another operator; reload and retry."
        ) from exc
    except IntegrityError as exc:
        await session.rollback()
        logger.warning("order_write_rejected", order_id=order_id, error=str(exc.orig))
        raise ConflictError(f"Write rejected by the order store: {exc.orig}") from exc
    except (OperationalError, DBAPIError) as exc:
        await session.rollback()
        logger.error("order_store_unavailable", order_id=order_id, error=str(exc.orig))
        raise StorageError(f"Order store unavailable: {exc.orig}") from exc


async def commit(session: AsyncSession, *, order_id: uuid.UUID | None = None) -> None:
    """Commit pending changes with the same error translation as ``unit_of_work``."""
    async with unit_of_work(session, order_id=order_id):
        pass


async def order_number_exists(session: AsyncSession, order_number: str) -> bool:
    result = await session.execute(
        select(func.count(Order.id)).where(Order.order_number == order_number)
    )
    return (result.scalar() or 0) > 0


async def list_orders(
    session: AsyncSession,
    *,
    customer_id: str | None = None,
    driver_id: uuid.UUID | None = None,
    status: OrderStatus | None = None,
    is_priority: bool | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[Sequence[Order], int]:
    """List orders with optional filters, returning (orders, total_count)."""
    conditions = []
    if customer_id:
        conditions.append(Order.customer_id == customer_id)
    if driver_id:
        conditions.append(Order.driver_id == driver_id)
    if status:
        conditions.append(Order.status == status)
    if is_priority is not None:
        conditions.append(Order.is_priority.is_(is_priority))

    base = select(Order).where(*conditions)
    count_base = select(func.count(Order.id)).where(*conditions)

    base = base.order_by(Order.created_at.desc()).limit(limit).offset(offset)

    result = await session.execute(base)
    orders = result.scalars().all()

    count_result = await session.execute(count_base)
    total = count_result.scalar() or 0

    return orders, total
