"""Period revenue statistics for the operations dashboard.

Revenue is attributed to the day service was rendered (``delivery_date``);
orders without a delivery date fall back to their booking time. Cancelled
orders never count. All sums are ``Decimal``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

import structlog
from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from fulfillment.core.config import settings
from fulfillment.models.customer import CustomerAccount
from fulfillment.models.order import Order, OrderStatus
from fulfillment.services.periods import Period, Window, as_utc, parse_period, resolve_window

logger = structlog.get_logger()

ZERO = Decimal("0")
CENT = Decimal("0.01")
TENTH = Decimal("0.1")

SERVICE_LABELS: dict[str, str] = {
    "laundry": "Laundry Services",
    "suit": "Suit Cleaning",
    "shoe": "Shoe Cleaning",
    "dryclean": "Dry Cleaning",
    "multiple": "Multiple Services",
    "other": "Other",
}

# Both spellings occur in booking data
_SERVICE_ALIASES = {"dry-clean": "dryclean", "dry_clean": "dryclean"}


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar-date bounds of a custom period."""

    start: date | None = None
    end: date | None = None


@dataclass(frozen=True)
class ServiceBucket:
    service: str
    label: str
    amount: Decimal
    orders: int


@dataclass(frozen=True)
class PeriodStats:
    period: Period
    start: datetime
    end: datetime
    total: Decimal
    orders: int
    avg_order: Decimal
    growth: Decimal
    previous_total: Decimal
    new_customers: int
    service_breakdown: list[ServiceBucket] = field(default_factory=list)


def normalize_service(raw: str | None) -> str:
    """Canonical breakdown bucket for a booked service label."""
    key = (raw or "").strip().lower()
    key = _SERVICE_ALIASES.get(key, key)
    return key if key in SERVICE_LABELS else "other"


def growth_percent(current: Decimal, previous: Decimal) -> Decimal:
    """Period-over-period growth, rounded to one decimal.

    Reported as 0 when the previous period earned nothing. That 0 means
    "no baseline", not "no change".
    """
    if previous == ZERO:
        return ZERO
    change = (current - previous) / previous * Decimal(100)
    return change.quantize(TENTH, rounding=ROUND_HALF_UP)


def average_order(total: Decimal, count: int) -> Decimal:
    if count == 0:
        return ZERO
    return (total / Decimal(count)).quantize(CENT, rounding=ROUND_HALF_UP)


def _in_window(window: Window):
    start_utc = as_utc(window.start)
    end_utc = as_utc(window.end)
    return or_(
        and_(
            Order.delivery_date >= window.start.date(),
            Order.delivery_date <= window.end.date(),
        ),
        and_(
            Order.delivery_date.is_(None),
            Order.created_at >= start_utc,
            Order.created_at <= end_utc,
        ),
    )


async def orders_in_window(session: AsyncSession, window: Window) -> Sequence[Order]:
    """Non-cancelled orders attributed to the window."""
    stmt = (
        select(Order)
        .where(_in_window(window))
        .where(Order.status != OrderStatus.CANCELLED)
        .order_by(Order.created_at.asc())
    )
    result = await session.execute(stmt)
    return result.scalars().all()


async def _window_total(session: AsyncSession, window: Window) -> Decimal:
    stmt = (
        select(Order.total)
        .where(_in_window(window))
        .where(Order.status != OrderStatus.CANCELLED)
    )
    result = await session.execute(stmt)
    return sum((Decimal(str(t)) for t in result.scalars().all()), ZERO)


async def _new_customers(session: AsyncSession, window: Window) -> int:
    stmt = (
        select(func.count(CustomerAccount.id))
        .where(CustomerAccount.created_at >= as_utc(window.start))
        .where(CustomerAccount.created_at <= as_utc(window.end))
    )
    result = await session.execute(stmt)
    return result.scalar() or 0


def service_breakdown(orders: Sequence[Order]) -> list[ServiceBucket]:
    amounts: dict[str, Decimal] = {}
    counts: dict[str, int] = {}
    for order in orders:
        key = normalize_service(order.service_type)
        amounts[key] = amounts.get(key, ZERO) + Decimal(str(order.total))
        counts[key] = counts.get(key, 0) + 1

    buckets = [
        ServiceBucket(
            service=key,
            label=SERVICE_LABELS[key],
            amount=amounts[key].quantize(CENT),
            orders=counts[key],
        )
        for key in amounts
    ]
    buckets.sort(key=lambda b: (-b.amount, b.service))
    return buckets


async def revenue_for_period(
    session: AsyncSession,
    period: str | Period,
    custom_range: DateRange | None = None,
    *,
    now: datetime | None = None,
) -> PeriodStats:
    """Revenue statistics for a named period or a custom date range.

    Raises:
        ValidationError: unknown period.
        InvalidRange: custom period with a missing bound or ``end < start``.
    """
    resolved = parse_period(period)
    bounds = custom_range or DateRange()
    window = resolve_window(
        resolved,
        start=bounds.start,
        end=bounds.end,
        now=now,
        tz_name=settings.business_timezone,
    )
    previous_window = window.preceding()

    orders = await orders_in_window(session, window)
    total = sum((Decimal(str(o.total)) for o in orders), ZERO).quantize(CENT)
    previous_total = (await _window_total(session, previous_window)).quantize(CENT)

    stats = PeriodStats(
        period=resolved,
        start=window.start,
        end=window.end,
        total=total,
        orders=len(orders),
        avg_order=average_order(total, len(orders)),
        growth=growth_percent(total, previous_total),
        previous_total=previous_total,
        new_customers=await _new_customers(session, window),
        service_breakdown=service_breakdown(orders),
    )

    logger.info(
        "revenue_aggregated",
        period=resolved.value,
        start=window.start.isoformat(),
        end=window.end.isoformat(),
        orders=stats.orders,
        total=str(stats.total),
    )
    return stats
