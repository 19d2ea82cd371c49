"""CleanRoute shared utilities package."""

from cleanroute_shared.logging import setup_logging

# Lazy import: RabbitMQClient requires aio-pika at import time
def __getattr__(name: str):
    if name == "RabbitMQClient":
        from cleanroute_shared.rabbitmq import RabbitMQClient
        return RabbitMQClient
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

__all__ = ["setup_logging", "RabbitMQClient"]
