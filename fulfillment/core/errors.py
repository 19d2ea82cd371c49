"""Typed errors raised by the fulfillment engine and aggregators.

Each error carries a stable ``code`` and the operator-facing ``message``;
the HTTP layer renders both verbatim.
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = structlog.get_logger()


class FulfillmentError(Exception):
    """Base class for every error the engine raises on purpose."""

    code = "fulfillment_error"
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(FulfillmentError):
    """Malformed input: unknown status, bad money values, missing bounds."""

    code = "validation_error"
    http_status = status.HTTP_400_BAD_REQUEST


class OrderNotFound(ValidationError):
    code = "order_not_found"
    http_status = status.HTTP_404_NOT_FOUND

    def __init__(self, order_id: object):
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class DriverNotFound(ValidationError):
    code = "driver_not_found"
    http_status = status.HTTP_404_NOT_FOUND

    def __init__(self, driver_id: object):
        super().__init__(f"Driver {driver_id} not found")
        self.driver_id = driver_id


class InvalidRange(ValidationError):
    code = "invalid_range"


class GuardViolation(FulfillmentError):
    """A business rule rejected the request. Never retried."""

    code = "guard_violation"
    http_status = 422


class DriverRequired(GuardViolation):
    code = "driver_required"

    def __init__(self, message: str = "Assign a driver before marking Out for Delivery."):
        super().__init__(message)


class AlreadyTerminal(GuardViolation):
    code = "already_terminal"

    def __init__(self, current_status: str):
        super().__init__(
            f"Order is already {current_status}; no further status changes are accepted."
        )
        self.current_status = current_status


class ConflictError(FulfillmentError):
    """Another writer changed the order first. Safe to retry against fresh state."""

    code = "conflict"
    http_status = status.HTTP_409_CONFLICT
    retryable = True


class StorageError(FulfillmentError):
    """The store could not be reached. The caller's transport retries with backoff."""

    code = "storage_unavailable"
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    retryable = True


async def _fulfillment_error_handler(request: Request, exc: FulfillmentError) -> JSONResponse:
    logger.info(
        "request_rejected",
        path=request.url.path,
        error=exc.code,
        detail=exc.message,
    )
    return JSONResponse(
        status_code=exc.http_status,
        content={"error": exc.code, "detail": exc.message, "retryable": exc.retryable},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FulfillmentError, _fulfillment_error_handler)
