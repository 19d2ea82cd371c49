"""Append-only ledger of accepted transitions."""

from __future__ import annotations

import uuid
from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fulfillment.models.order import OrderStatus, OrderStatusHistory


def append_entry(
    session: AsyncSession,
    *,
    order_id: uuid.UUID,
    status: OrderStatus,
    notes: str | None = None,
    changed_by: str | None = None,
) -> OrderStatusHistory:
    """Stage a history entry in the caller's transaction.

    The entry is flushed and committed together with the order update; this
    function never commits on its own.
    """
    entry = OrderStatusHistory(
        order_id=order_id,
        status=status,
        notes=notes,
        changed_by=changed_by,
    )
    session.add(entry)
    return entry


async def list_entries(
    session: AsyncSession, order_id: uuid.UUID
) -> Sequence[OrderStatusHistory]:
    """Entries for one order, oldest first."""
    stmt = (
        select(OrderStatusHistory)
        .where(OrderStatusHistory.order_id == order_id)
        .order_by(OrderStatusHistory.created_at.asc(), OrderStatusHistory.id.asc())
    )
    result = await session.execute(stmt)
    return result.scalars().all()
