"""Order routes: intake, role-filtered queues and status changes.

Domain errors raised by ``OrderService`` are turned into JSON responses by
the application's ``CafePosError`` handler.
"""

from typing import Optional

from fastapi import APIRouter, Query, Request, status

from cafe_pos.api.deps import KitchenViewer, OrderCreator, OrderOperator, OrderViewer, Orders
from cafe_pos.core.rate_limit import limiter
from cafe_pos.core.responses import list_response, paginated_response
from cafe_pos.models.order import OrderStatus
from cafe_pos.schemas.order import (
    OrderCreate,
    OrderResponse,
    OrderStatusUpdate,
    TransitionOptions,
)
from cafe_pos.services.order_lifecycle import allowed_transitions, is_terminal

router = APIRouter()


def _serialize(orders) -> list:
    return [OrderResponse.model_validate(o).model_dump(mode="json") for o in orders]


@router.get("/")
@limiter.limit("60/minute")
def list_orders(
    request: Request,
    orders: Orders,
    current_user: OrderViewer,
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
):
    """Orders the caller's role works with.

    Cashiers see PENDING, CONFIRMED and PAID orders; chefs see PAID,
    PREPARING and READY. A ``status`` outside that set yields no rows.
    """
    items, total = orders.list_orders(current_user.role, status_filter, skip, limit)
    return paginated_response(_serialize(items), total, skip, limit)


@router.post("/", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_order(request: Request, orders: Orders, current_user: OrderCreator, data: OrderCreate):
    return orders.create_order(
        customer_id=data.customer_id,
        items=data.items,
        created_by_id=current_user.user_id,
        notes=data.notes,
    )


@router.get("/kitchen")
@limiter.limit("60/minute")
def kitchen_queue(request: Request, orders: Orders, current_user: KitchenViewer):
    """Paid, preparing and ready orders, oldest first."""
    return list_response(_serialize(orders.kitchen_queue()))


@router.get("/{order_id}", response_model=OrderResponse)
@limiter.limit("60/minute")
def get_order(request: Request, orders: Orders, current_user: OrderViewer, order_id: int):
    return orders.get_order(order_id)


@router.get("/{order_id}/transitions", response_model=TransitionOptions)
@limiter.limit("60/minute")
def get_transitions(request: Request, orders: Orders, current_user: OrderViewer, order_id: int):
    """Statuses the caller may move this order to next."""
    order = orders.get_order(order_id)
    allowed = allowed_transitions(order.status, current_user.role)
    return TransitionOptions(
        order_id=order.id,
        status=order.status,
        allowed=[s for s in OrderStatus if s in allowed],
        terminal=is_terminal(order.status),
    )


@router.put("/{order_id}/status", response_model=OrderResponse)
@limiter.limit("60/minute")
def update_order_status(
    request: Request, orders: Orders, current_user: OrderOperator, order_id: int, data: OrderStatusUpdate
):
    return orders.update_order_status(
        order_id, data.status, current_user.user_id, current_user.role
    )


@router.put("/{order_id}/accept", response_model=OrderResponse)
@limiter.limit("60/minute")
def accept_order(request: Request, orders: Orders, current_user: OrderOperator, order_id: int):
    """Confirm a pending order."""
    return orders.update_order_status(
        order_id, OrderStatus.CONFIRMED, current_user.user_id, current_user.role
    )


@router.put("/{order_id}/ready", response_model=OrderResponse)
@limiter.limit("60/minute")
def mark_order_ready(request: Request, orders: Orders, current_user: OrderOperator, order_id: int):
    """Mark a preparing order ready for pickup."""
    return orders.update_order_status(
        order_id, OrderStatus.READY, current_user.user_id, current_user.role
    )
