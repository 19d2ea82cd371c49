"""RabbitMQ event publisher.

The fulfillment engine only emits events (customer notifications are handled
by a separate dispatcher), so this client declares the topic exchange and
publishes JSON messages with tracing headers.
"""

from __future__ import annotations

import asyncio
import json
import uuid
from datetime import datetime, timezone
from typing import Any

import aio_pika
import structlog

logger = structlog.get_logger()

EVENT_VERSION = "1.0"
EXCHANGE_NAME = "cleanroute.events"


class RabbitMQClient:
    """Async RabbitMQ publisher bound to one topic exchange (``cleanroute.events`` by default)."""

    def __init__(
        self,
        url: str,
        service_name: str = "unknown",
        *,
        exchange_name: str = EXCHANGE_NAME,
        connect_retries: int = 30,
        retry_delay_seconds: float = 2.0,
    ):
        self._url = url
        self._service_name = service_name
        self._exchange_name = exchange_name
        self._connect_retries = connect_retries
        self._retry_delay_seconds = retry_delay_seconds
        self._connection: aio_pika.abc.AbstractRobustConnection | None = None
        self._channel: aio_pika.abc.AbstractChannel | None = None
        self._exchange: aio_pika.abc.AbstractExchange | None = None

    @property
    def is_connected(self) -> bool:
        return (
            self._exchange is not None
            and self._connection is not None
            and not self._connection.is_closed
        )

    async def connect(self) -> None:
        """Establish connection and declare the exchange, retrying on failure."""
        for attempt in range(1, self._connect_retries + 1):
            try:
                self._connection = await aio_pika.connect_robust(self._url)
                break
            except Exception as exc:
                logger.warning(
                    "rabbitmq_connect_retry",
                    service=self._service_name,
                    attempt=attempt,
                    retries=self._connect_retries,
                    delay_seconds=self._retry_delay_seconds,
                    error=str(exc),
                )
                if attempt == self._connect_retries:
                    raise
                await asyncio.sleep(self._retry_delay_seconds)

        self._channel = await self._connection.channel()
        self._exchange = await self._channel.declare_exchange(
            self._exchange_name,
            aio_pika.ExchangeType.TOPIC,
            durable=True,
        )
        logger.info("rabbitmq_connected", service=self._service_name, exchange=self._exchange_name)

    async def close(self) -> None:
        """Gracefully close connection."""
        if self._connection and not self._connection.is_closed:
            await self._connection.close()
            logger.info("rabbitmq_disconnected", service=self._service_name)
        self._exchange = None
        self._channel = None

    async def publish_event(
        self,
        routing_key: str,
        body: dict[str, Any],
        *,
        correlation_id: str | None = None,
        headers: dict[str, Any] | None = None,
    ) -> str:
        """
        Publish a JSON message with correlation / tracing headers.

        Returns the correlation_id used.
        """
        if not self._exchange:
            raise RuntimeError("RabbitMQ not connected — call connect() first")

        cid = correlation_id or str(uuid.uuid4())
        message_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc)

        message = aio_pika.Message(
            body=json.dumps(body, default=str).encode(),
            content_type="application/json",
            delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
            correlation_id=cid,
            message_id=message_id,
            timestamp=now,
            headers={
                "correlation_id": cid,
                "timestamp": now.isoformat(),
                "event_version": EVENT_VERSION,
                "source_service": self._service_name,
                **(headers or {}),
            },
        )
        await self._exchange.publish(message, routing_key=routing_key)
        logger.info(
            "rabbitmq_published",
            routing_key=routing_key,
            correlation_id=cid,
            message_id=message_id,
            service=self._service_name,
        )
        return cid
