"""Bearer-token actor resolution.

Tokens are issued by the external identity provider; this service only
verifies the signature and reads ``sub`` (the actor id) and ``role``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from fulfillment.core.config import settings

security = HTTPBearer()

OPERATOR_ROLES = frozenset({"admin", "staff"})


@dataclass(frozen=True)
class Actor:
    """The authenticated caller."""

    id: str
    role: str
    name: str = ""

    @property
    def is_operator(self) -> bool:
        return self.role in OPERATOR_ROLES


def create_access_token(data: dict[str, Any], expires_minutes: int = 60) -> str:
    """Create a JWT access token (local development and tests)."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict[str, Any]:
    """Verify and decode a JWT token."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {e}",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Actor:
    """FastAPI dependency — the actor behind the bearer token."""
    payload = verify_token(credentials.credentials)
    subject = payload.get("sub")
    if not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )
    return Actor(
        id=str(subject),
        role=payload.get("role", "customer"),
        name=payload.get("name", ""),
    )


async def require_operator(actor: Actor = Depends(get_current_actor)) -> Actor:
    """Only console operators may act on orders."""
    if not actor.is_operator:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Operator role required",
        )
    return actor
