"""Fulfillment Service — customer-notification events over RabbitMQ.

Publishing is fire-and-forget: a failed publish is logged and swallowed so
that it can never undo or fail a transition that has already committed.
"""

from __future__ import annotations

import uuid

import structlog

from cleanroute_shared.rabbitmq import RabbitMQClient
from fulfillment.models.order import Order

logger = structlog.get_logger()

STATUS_CHANGED_KEY = "notification.status_changed"

# Module-level client (initialised during lifespan)
mq_client: RabbitMQClient | None = None


async def init_publisher(
    url: str, *, exchange_name: str = "cleanroute.events", connect_retries: int = 5
) -> None:
    """Connect to RabbitMQ; the service keeps running without it."""
    global mq_client
    client = RabbitMQClient(
        url,
        service_name="fulfillment_service",
        exchange_name=exchange_name,
        connect_retries=connect_retries,
    )
    try:
        await client.connect()
    except Exception as exc:
        logger.error("notification_publisher_unavailable", error=str(exc))
        return
    mq_client = client


async def close_publisher() -> None:
    """Disconnect cleanly."""
    global mq_client
    if mq_client:
        await mq_client.close()
        mq_client = None


def status_changed_payload(order: Order, *, actor_id: str, note: str | None) -> dict:
    return {
        "event": STATUS_CHANGED_KEY,
        "order_id": str(order.id),
        "order_number": order.order_number,
        "customer_id": order.customer_id,
        "status": order.status.value,
        "status_label": order.status.label,
        "note": note,
        "changed_by": actor_id,
    }


async def notify_status_changed(
    order: Order,
    *,
    actor_id: str,
    note: str | None = None,
    correlation_id: str | None = None,
) -> bool:
    """Tell the notification dispatcher about a committed transition.

    Returns True when the event was handed to the broker.
    """
    order_id: uuid.UUID = order.id
    if mq_client is None or not mq_client.is_connected:
        logger.debug("notification_skipped", order_id=order_id, reason="publisher_not_connected")
        return False

    try:
        await mq_client.publish_event(
            routing_key=STATUS_CHANGED_KEY,
            body=status_changed_payload(order, actor_id=actor_id, note=note),
            correlation_id=correlation_id,
        )
    except Exception as exc:
        logger.warning(
            "notification_dispatch_failed",
            order_id=order_id,
            status=order.status.value,
            error=str(exc),
        )
        return False
    return True
