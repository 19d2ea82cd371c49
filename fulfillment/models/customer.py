"""Read model of customer accounts owned by the identity provider."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String

from fulfillment.core.database import Base


class CustomerAccount(Base):
    """Synced from the identity provider; only counted here, never edited."""

    __tablename__ = "customer_accounts"

    id: str = Column(String(100), primary_key=True)
    full_name: str | None = Column(String(200), nullable=True)
    email: str | None = Column(String(255), nullable=True)
    created_at: datetime = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
