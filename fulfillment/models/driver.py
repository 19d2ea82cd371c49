"""Driver and driver-trip SQLAlchemy models."""

from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Column,
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


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class DriverStatus(str, enum.Enum):
    ACTIVE = "active"
    BREAK = "break"
    OFFLINE = "offline"


class TripType(str, enum.Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"


class Driver(Base):
    """A pickup/delivery driver."""

    __tablename__ = "drivers"

    id: uuid.UUID = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name: str = Column(String(100), nullable=False)
    phone: str = Column(String(30), nullable=False)
    email: str | None = Column(String(255), nullable=True)
    zone_id: str | None = Column(String(50), nullable=True)
    vehicle_info: str | None = Column(Text, nullable=True)
    status: DriverStatus = Column(
        Enum(DriverStatus, name="driver_status", values_callable=_enum_values),
        nullable=False,
        default=DriverStatus.OFFLINE,
    )
    # Operator-set baselines; the performance aggregator never overwrites them
    rating: Decimal | None = Column(Numeric(3, 2), nullable=True)
    on_time_rate: Decimal | None = Column(Numeric(5, 2), nullable=True)
    max_orders: int = Column(Integer, nullable=False, default=10)

    created_by: str | None = Column(String(100), nullable=True)
    created_at: datetime = Column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: datetime = Column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )


class DriverTrip(Base):
    """One pickup or delivery leg driven for an order."""

    __tablename__ = "driver_trips"

    id: uuid.UUID = Column(Uuid, primary_key=True, default=uuid.uuid4)
    driver_id: uuid.UUID = Column(Uuid, ForeignKey("drivers.id"), nullable=False)
    order_id: uuid.UUID = Column(Uuid, ForeignKey("orders.id"), nullable=False)
    trip_type: TripType = Column(
        Enum(TripType, name="trip_type", values_callable=_enum_values),
        nullable=False,
    )
    started_at: datetime = Column(DateTime(timezone=True), nullable=False)
    completed_at: datetime | None = Column(DateTime(timezone=True), nullable=True)
    distance_km: Decimal | None = Column(Numeric(8, 2), nullable=True)
    created_at: datetime = Column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (
        CheckConstraint(
            "completed_at IS NULL OR completed_at >= started_at",
            name="ck_driver_trips_completed_after_start",
        ),
        Index("ix_driver_trips_driver_started", "driver_id", "started_at"),
        Index("ix_driver_trips_order_type", "order_id", "trip_type"),
    )
