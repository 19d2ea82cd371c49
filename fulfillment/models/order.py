"""Order and status-history SQLAlchemy models."""

from __future__ import annotations

import enum
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)

from fulfillment.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderStatus(str, enum.Enum):
    """Order lifecycle states, in canonical forward order."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    SCHEDULED = "scheduled"
    PICKED_UP = "picked_up"
    AT_FACILITY = "at_facility"
    CLEANING = "cleaning"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

# Forward flow used to detect backward corrections; cancelled sits outside it.
FORWARD_FLOW: tuple[OrderStatus, ...] = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.SCHEDULED,
    OrderStatus.PICKED_UP,
    OrderStatus.AT_FACILITY,
    OrderStatus.CLEANING,
    OrderStatus.READY,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
)


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class Order(Base):
    """A pickup-and-delivery cleaning order."""

    __tablename__ = "orders"

    id: uuid.UUID = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_number: str = Column(String(32), nullable=False, unique=True)
    customer_id: str = Column(String(100), nullable=False, index=True)
    status: OrderStatus = Column(
        Enum(OrderStatus, name="order_status", values_callable=_enum_values),
        nullable=False,
        default=OrderStatus.PENDING,
    )
    service_type: str = Column(String(50), nullable=False)

    # Money; total is always derived as subtotal + delivery_fee - discount
    subtotal: Decimal = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    delivery_fee: Decimal = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    discount: Decimal = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    total: Decimal = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))

    # Addresses and schedule
    pickup_address: str = Column(Text, nullable=False)
    delivery_address: str = Column(Text, nullable=False)
    pickup_date: date | None = Column(Date, nullable=True)
    pickup_time_slot: str | None = Column(String(50), nullable=True)
    delivery_date: date | None = Column(Date, nullable=True)
    delivery_time_slot: str | None = Column(String(50), nullable=True)

    # Assignment
    driver_id: uuid.UUID | None = Column(
        Uuid, ForeignKey("drivers.id"), nullable=True, index=True
    )
    assigned_at: datetime | None = Column(DateTime(timezone=True), nullable=True)
    assigned_by: str | None = Column(String(100), nullable=True)

    # Operations console fields (staff only)
    is_priority: bool = Column(Boolean, nullable=False, default=False)
    internal_notes: str | None = Column(Text, nullable=True)

    # Compare-and-set counter
    version: int = Column(Integer, nullable=False, default=1)

    created_at: datetime = Column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: datetime = Column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_orders_status", "status"),
        Index("ix_orders_created_at", "created_at"),
        Index("ix_orders_delivery_date", "delivery_date"),
    )


class OrderStatusHistory(Base):
    """Append-only ledger of accepted status transitions."""

    __tablename__ = "order_status_history"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    order_id: uuid.UUID = Column(
        Uuid, ForeignKey("orders.id"), nullable=False, index=True
    )
    status: OrderStatus = Column(
        Enum(OrderStatus, name="order_status", values_callable=_enum_values),
        nullable=False,
    )
    notes: str | None = Column(Text, nullable=True)
    changed_by: str | None = Column(String(100), nullable=True)
    created_at: datetime = Column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
