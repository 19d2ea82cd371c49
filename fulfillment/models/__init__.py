"""ORM models; importing this package registers every table on ``Base.metadata``."""

from fulfillment.models.customer import CustomerAccount
from fulfillment.models.driver import Driver, DriverStatus, DriverTrip, TripType
from fulfillment.models.order import (
    FORWARD_FLOW,
    TERMINAL_STATUSES,
    Order,
    OrderStatus,
    OrderStatusHistory,
)

__all__ = [
    "CustomerAccount",
    "Driver",
    "DriverStatus",
    "DriverTrip",
    "FORWARD_FLOW",
    "Order",
    "OrderStatus",
    "OrderStatusHistory",
    "TERMINAL_STATUSES",
    "TripType",
]
