"""Revenue aggregation over named and custom periods."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from fulfillment.core.errors import InvalidRange
from fulfillment.models import CustomerAccount
from fulfillment.services import order_service, order_store, revenue
from fulfillment.services.revenue import DateRange

MARCH = DateRange(start=date(2024, 3, 1), end=date(2024, 3, 31))


def test_growth_is_zero_without_a_baseline():
    assert revenue.growth_percent(Decimal("250"), Decimal("0")) == Decimal("0")
    assert revenue.growth_percent(Decimal("150"), Decimal("100")) == Decimal("50.0")
    assert revenue.growth_percent(Decimal("100"), Decimal("300")) == Decimal("-66.7")


def test_average_order_handles_empty_periods():
    assert revenue.average_order(Decimal("0"), 0) == Decimal("0")
    assert revenue.average_order(Decimal("100"), 3) == Decimal("33.33")


@pytest.mark.parametrize(
    "raw,bucket",
    [
        ("dry-clean", "dryclean"),
        ("dry_clean", "dryclean"),
        ("DryClean", "dryclean"),
        (" Laundry ", "laundry"),
        ("multiple", "multiple"),
        ("carpet", "other"),
        (None, "other"),
    ],
)
def test_service_categories_are_normalized(raw, bucket):
    assert revenue.normalize_service(raw) == bucket


@pytest.mark.asyncio
async def test_custom_range_end_before_start(session):
    with pytest.raises(InvalidRange):
        await revenue.revenue_for_period(
            session, "custom", DateRange(start=date(2024, 1, 1), end=date(2023, 12, 31))
        )


@pytest.mark.asyncio
async def test_custom_range_missing_bound(session):
    with pytest.raises(InvalidRange):
        await revenue.revenue_for_period(session, "custom", DateRange(start=date(2024, 1, 1)))


@pytest.mark.asyncio
async def test_march_totals_breakdown_and_growth(session, make_order):
    await make_order(service_type="laundry", subtotal="40", delivery_fee="5", discount="10",
                     delivery_date=date(2024, 3, 4))
    await make_order(service_type="dry-clean", subtotal="20", delivery_fee="0", discount="0",
                     delivery_date=date(2024, 3, 31))
    await make_order(service_type="dry_clean", subtotal="10.50", delivery_fee="0", discount="0",
                     delivery_date=date(2024, 3, 1))
    # Previous window (same length, immediately before March 1)
    await make_order(service_type="suit", subtotal="50", delivery_fee="0", discount="0",
                     delivery_date=date(2024, 2, 15))
    # Outside both windows
    await make_order(service_type="laundry", subtotal="999", delivery_fee="0", discount="0",
                     delivery_date=date(2024, 4, 1))

    stats = await revenue.revenue_for_period(session, "custom", MARCH)

    assert stats.total == Decimal("65.50")
    assert stats.orders == 3
    assert stats.avg_order == Decimal("21.83")
    assert stats.previous_total == Decimal("50.00")
    assert stats.growth == Decimal("31.0")
    assert [(b.service, b.amount, b.orders) for b in stats.service_breakdown] == [
        ("laundry", Decimal("35.00"), 1),
        ("dryclean", Decimal("30.50"), 2),
    ]
    assert stats.service_breakdown[1].label == "Dry Cleaning"


@pytest.mark.asyncio
async def test_cancelled_orders_never_count(session, make_order):
    kept = await make_order(delivery_date=date(2024, 3, 10))
    dropped = await make_order(subtotal="500", delivery_date=date(2024, 3, 11))
    await order_service.transition(session, dropped.id, "cancelled", "staff-1")
    old = await make_order(subtotal="70", delivery_date=date(2024, 2, 10))
    await order_service.transition(session, old.id, "cancelled", "staff-1")

    stats = await revenue.revenue_for_period(session, "custom", MARCH)

    assert stats.orders == 1
    assert stats.total == kept.total
    assert stats.previous_total == Decimal("0.00")
    assert stats.growth == Decimal("0")


@pytest.mark.asyncio
async def test_orders_without_delivery_date_fall_back_to_booking_time(session, make_order):
    booked_in_march = await make_order(subtotal="25", delivery_fee="0", discount="0")
    booked_in_march.created_at = datetime(2024, 3, 15, 12, tzinfo=timezone.utc)
    booked_in_april = await make_order(subtotal="80", delivery_fee="0", discount="0")
    booked_in_april.created_at = datetime(2024, 4, 2, 9, tzinfo=timezone.utc)
    # Delivered in April although booked in March: attributed to April
    delivered_later = await make_order(subtotal="15", delivery_fee="0", discount="0",
                                       delivery_date=date(2024, 4, 3))
    delivered_later.created_at = datetime(2024, 3, 20, tzinfo=timezone.utc)
    await order_store.commit(session)

    stats = await revenue.revenue_for_period(session, "custom", MARCH)

    assert stats.orders == 1
    assert stats.total == Decimal("25.00")


@pytest.mark.asyncio
async def test_new_customers_counted_inside_window(session):
    session.add_all(
        [
            CustomerAccount(id="c1", created_at=datetime(2024, 3, 2, tzinfo=timezone.utc)),
            CustomerAccount(id="c2", created_at=datetime(2024, 3, 31, 22, tzinfo=timezone.utc)),
            CustomerAccount(id="c3", created_at=datetime(2024, 2, 28, tzinfo=timezone.utc)),
            CustomerAccount(id="c4", created_at=datetime(2024, 4, 1, tzinfo=timezone.utc)),
        ]
    )
    await session.commit()

    stats = await revenue.revenue_for_period(session, "custom", MARCH)
    assert stats.new_customers == 2
    assert stats.orders == 0
    assert stats.avg_order == Decimal("0")


@pytest.mark.asyncio
async def test_named_period_is_anchored_on_now(session, make_order):
    await make_order(delivery_date=date(2024, 3, 31))
    await make_order(delivery_date=date(2024, 3, 20))

    now = datetime(2024, 3, 31, 18, tzinfo=timezone.utc)
    today = await revenue.revenue_for_period(session, "today", now=now)
    week = await revenue.revenue_for_period(session, "week", now=now)

    assert today.orders == 1
    assert week.orders == 1
    assert week.start.date() == date(2024, 3, 24)
