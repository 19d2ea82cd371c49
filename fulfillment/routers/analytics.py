"""Dashboard aggregate routes: revenue and driver performance."""

from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fulfillment.core.auth import Actor, require_operator
from fulfillment.core.config import settings
from fulfillment.core.database import get_session
from fulfillment.schemas.analytics import (
    DriverStatsResponse,
    FleetPerformanceResponse,
    FleetSummaryResponse,
    PeriodStatsResponse,
)
from fulfillment.services import driver_performance, revenue
from fulfillment.services.periods import Window, resolve_window

router = APIRouter(prefix="/api/analytics", tags=["Analytics"])


def _optional_window(period: str | None, start: date | None, end: date | None) -> Window | None:
    """Driver figures are all-time unless a period is asked for."""
    if period is None:
        return None
    return resolve_window(period, start=start, end=end, tz_name=settings.business_timezone)


@router.get("/revenue", response_model=PeriodStatsResponse)
async def revenue_stats(
    period: str = Query("month"),
    start: date | None = Query(None),
    end: date | None = Query(None),
    actor: Actor = Depends(require_operator),
    session: AsyncSession = Depends(get_session),
) -> PeriodStatsResponse:
    stats = await revenue.revenue_for_period(
        session, period, revenue.DateRange(start=start, end=end)
    )
    return PeriodStatsResponse.model_validate(stats)


@router.get("/drivers", response_model=FleetPerformanceResponse)
async def fleet_performance(
    period: str | None = Query(None),
    start: date | None = Query(None),
    end: date | None = Query(None),
    actor: Actor = Depends(require_operator),
    session: AsyncSession = Depends(get_session),
) -> FleetPerformanceResponse:
    window = _optional_window(period, start, end)
    stats = await driver_performance.performance_for_all_drivers(session, window)
    return FleetPerformanceResponse(
        summary=FleetSummaryResponse.model_validate(driver_performance.fleet_summary(stats)),
        drivers=[DriverStatsResponse.model_validate(s) for s in stats],
    )


@router.get("/drivers/{driver_id}", response_model=DriverStatsResponse)
async def driver_stats(
    driver_id: uuid.UUID,
    period: str | None = Query(None),
    start: date | None = Query(None),
    end: date | None = Query(None),
    actor: Actor = Depends(require_operator),
    session: AsyncSession = Depends(get_session),
) -> DriverStatsResponse:
    window = _optional_window(period, start, end)
    stats = await driver_performance.performance_for_driver(session, driver_id, window)
    return DriverStatsResponse.model_validate(stats)
