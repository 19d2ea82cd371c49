"""Fulfillment Service — application lifespan (startup / shutdown hooks)."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from fulfillment.core.config import settings
from fulfillment.core.database import engine
from fulfillment.services.notifications import close_publisher, init_publisher

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage startup and shutdown resources."""
    log.info(
        "fulfillment_service starting up",
        db_url=settings.database_url.split("@")[-1],
    )

    if settings.notifications_enabled:
        await init_publisher(
            settings.rabbitmq_url,
            exchange_name=settings.notification_exchange,
            connect_retries=settings.notification_connect_retries,
        )

    yield

    log.info("fulfillment_service shutting down")
    await close_publisher()
    await engine.dispose()
