"""Fulfillment Service — health-check endpoints with database readiness probe."""

from __future__ import annotations

from sqlalchemy import text

from cleanroute_shared.health import create_health_router
from fulfillment.core.database import engine


async def check_database() -> bool:
    """Return True if the order store answers a trivial query."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    return True


router = create_health_router(readiness_checks=[check_database])
