"""Payment routes."""

from typing import Optional

from fastapi import APIRouter, Query, Request, status

from cafe_pos.api.deps import PaymentProcessor, PaymentRefunder, Payments, PaymentViewer
from cafe_pos.core.rate_limit import limiter
from cafe_pos.core.responses import paginated_response
from cafe_pos.models.payment import PaymentMethod, PaymentStatus
from cafe_pos.schemas.order import OrderPaymentResult, OrderResponse
from cafe_pos.schemas.payment import PaymentCreate, PaymentResponse

router = APIRouter()


@router.post("/{order_id}", response_model=OrderPaymentResult, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def process_payment(
    request: Request, payments: Payments, current_user: PaymentProcessor, order_id: int, data: PaymentCreate
):
    """Take payment for a confirmed order. The amount is the order total."""
    payment, order = payments.process_payment(
        order_id,
        data.method,
        transaction_id=data.transaction_id,
        processed_by_id=current_user.user_id,
    )
    return OrderPaymentResult(
        payment=PaymentResponse.model_validate(payment),
        order=OrderResponse.model_validate(order),
    )


@router.get("/")
@limiter.limit("60/minute")
def list_payments(
    request: Request,
    payments: Payments,
    current_user: PaymentViewer,
    status_filter: Optional[PaymentStatus] = Query(None, alias="status"),
    method: Optional[PaymentMethod] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
):
    items, total = payments.list_payments(status_filter, method, skip, limit)
    return paginated_response(
        [PaymentResponse.model_validate(p).model_dump(mode="json") for p in items],
        total, skip, limit,
    )


@router.get("/{payment_id}", response_model=PaymentResponse)
@limiter.limit("60/minute")
def get_payment(request: Request, payments: Payments, current_user: PaymentViewer, payment_id: int):
    return payments.get_payment(payment_id)


@router.put("/{payment_id}/refund", response_model=PaymentResponse)
@limiter.limit("10/minute")
def refund_payment(request: Request, payments: Payments, current_user: PaymentRefunder, payment_id: int):
    """Refund a completed payment; its order is cancelled."""
    return payments.refund_payment(payment_id)
