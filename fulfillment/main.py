"""Fulfillment Service — FastAPI application factory.

Runs the order lifecycle, driver registry and dashboard aggregates backed by
PostgreSQL, and publishes customer-notification events via RabbitMQ.
"""

from __future__ import annotations

from fastapi import FastAPI

from cleanroute_shared.logging import setup_logging
from cleanroute_shared.middleware import RequestContextMiddleware
from fulfillment.core.config import settings
from fulfillment.core.errors import register_error_handlers
from fulfillment.core.events import lifespan
from fulfillment.routers import analytics, drivers, health, orders


def create_app() -> FastAPI:
    """Construct and return the FastAPI application."""
    setup_logging(
        log_level=settings.log_level,
        json_logs=settings.json_logs,
        service_name=settings.service_name,
    )

    application = FastAPI(
        title="CleanRoute Fulfillment Service",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    application.add_middleware(RequestContextMiddleware)
    register_error_handlers(application)
    application.include_router(health.router)
    application.include_router(orders.router)
    application.include_router(drivers.router)
    application.include_router(analytics.router)

    return application


app = create_app()
