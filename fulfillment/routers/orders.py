"""Order API routes for the operations console."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from fulfillment.core.auth import Actor, require_operator
from fulfillment.core.database import get_session
from fulfillment.models.order import OrderStatus
from fulfillment.schemas.driver import TripComplete, TripResponse
from fulfillment.schemas.order import (
    DriverAssignmentRequest,
    InternalNotesUpdate,
    OrderCreate,
    OrderHistoryResponse,
    OrderListResponse,
    OrderResponse,
    PriorityUpdate,
    StatusHistoryItem,
    StatusTransitionRequest,
)
from fulfillment.services import order_service as order_svc
from fulfillment.services import order_store, trip_tracker
from fulfillment.services.notifications import notify_status_changed

router = APIRouter(prefix="/api/orders", tags=["Orders"])


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreate,
    actor: Actor = Depends(require_operator),
    session: AsyncSession = Depends(get_session),
) -> OrderResponse:
    """Record a booking handed over by the customer site."""
    order = await order_svc.create_order(
        session,
        customer_id=payload.customer_id,
        service_type=payload.service_type,
        subtotal=payload.subtotal,
        delivery_fee=payload.delivery_fee,
        discount=payload.discount,
        pickup_address=payload.pickup_address,
        delivery_address=payload.delivery_address,
        pickup_date=payload.pickup_date,
        pickup_time_slot=payload.pickup_time_slot,
        delivery_date=payload.delivery_date,
        delivery_time_slot=payload.delivery_time_slot,
        actor_id=actor.id,
    )
    return OrderResponse.model_validate(order)


@router.get("", response_model=OrderListResponse)
async def list_orders(
    customer_id: str | None = Query(None),
    driver_id: uuid.UUID | None = Query(None),
    order_status: OrderStatus | None = Query(None, alias="status"),
    is_priority: bool | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    actor: Actor = Depends(require_operator),
    session: AsyncSession = Depends(get_session),
) -> OrderListResponse:
    """List orders, newest first, with optional filters."""
    orders, total = await order_store.list_orders(
        session,
        customer_id=customer_id,
        driver_id=driver_id,
        status=order_status,
        is_priority=is_priority,
        limit=limit,
        offset=offset,
    )
    return OrderListResponse(
        orders=[OrderResponse.model_validate(o) for o in orders],
        total=total,
    )


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: uuid.UUID,
    actor: Actor = Depends(require_operator),
    session: AsyncSession = Depends(get_session),
) -> OrderResponse:
    order = await order_svc.get_order(session, order_id)
    return OrderResponse.model_validate(order)


@router.post("/{order_id}/transitions", response_model=OrderResponse)
async def transition_order(
    order_id: uuid.UUID,
    payload: StatusTransitionRequest,
    request: Request,
    actor: Actor = Depends(require_operator),
    session: AsyncSession = Depends(get_session),
) -> OrderResponse:
    """Move an order through its lifecycle, then notify the customer."""
    order = await order_svc.transition(
        session, order_id, payload.status, actor.id, payload.note
    )

    # Published only after commit; a broker failure never undoes the move
    await notify_status_changed(
        order,
        actor_id=actor.id,
        note=payload.note,
        correlation_id=getattr(request.state, "correlation_id", None),
    )
    return OrderResponse.model_validate(order)


@router.put("/{order_id}/driver", response_model=OrderResponse)
async def assign_driver(
    order_id: uuid.UUID,
    payload: DriverAssignmentRequest,
    actor: Actor = Depends(require_operator),
    session: AsyncSession = Depends(get_session),
) -> OrderResponse:
    order = await order_svc.assign_driver(session, order_id, payload.driver_id, actor.id)
    return OrderResponse.model_validate(order)


@router.patch("/{order_id}/priority", response_model=OrderResponse)
async def set_priority(
    order_id: uuid.UUID,
    payload: PriorityUpdate,
    actor: Actor = Depends(require_operator),
    session: AsyncSession = Depends(get_session),
) -> OrderResponse:
    order = await order_svc.set_priority(session, order_id, payload.is_priority)
    return OrderResponse.model_validate(order)


@router.patch("/{order_id}/notes", response_model=OrderResponse)
async def set_internal_notes(
    order_id: uuid.UUID,
    payload: InternalNotesUpdate,
    actor: Actor = Depends(require_operator),
    session: AsyncSession = Depends(get_session),
) -> OrderResponse:
    order = await order_svc.set_internal_notes(session, order_id, payload.internal_notes)
    return OrderResponse.model_validate(order)


@router.get("/{order_id}/history", response_model=OrderHistoryResponse)
async def get_history(
    order_id: uuid.UUID,
    actor: Actor = Depends(require_operator),
    session: AsyncSession = Depends(get_session),
) -> OrderHistoryResponse:
    entries = await order_svc.history(session, order_id)
    return OrderHistoryResponse(
        order_id=order_id,
        entries=[StatusHistoryItem.model_validate(e) for e in entries],
    )


@router.post("/{order_id}/trips/{trip_type}/complete", response_model=TripResponse | None)
async def complete_trip(
    order_id: uuid.UUID,
    trip_type: str,
    payload: TripComplete | None = None,
    actor: Actor = Depends(require_operator),
    session: AsyncSession = Depends(get_session),
) -> TripResponse | None:
    """Close the open leg of this type; answers ``null`` when none was open."""
    trip = await trip_tracker.complete_trip(
        session,
        order_id=order_id,
        trip_type=trip_type,
        completed_at=payload.completed_at if payload else None,
    )
    if trip is None:
        return None
    return TripResponse.model_validate(trip)
