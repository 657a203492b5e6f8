"""Payment Service - takes payment for confirmed orders and handles refunds.

MONEY-CRITICAL: a payment and the CONFIRMED -> PAID transition are
committed together. The unique ``payments.order_id`` constraint guarantees
at most one payment per order even when two cashiers submit at once.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cafe_pos.core.exceptions import (
    CafePosError,
    ConflictError,
    NotFoundError,
    PaymentExistsError,
    ValidationError,
)
from cafe_pos.core.metrics import metrics
from cafe_pos.core.money import quantize_money
from cafe_pos.models.order import Order, OrderStatus
from cafe_pos.models.payment import Payment, PaymentMethod, PaymentStatus
from cafe_pos.services.events import ORDER_UPDATED, EventBus
from cafe_pos.services.order_lifecycle import coerce_enum
from cafe_pos.services.order_service import OrderService

logger = logging.getLogger(__name__)


class PaymentService:
    """Service for processing and refunding order payments."""

    def __init__(self, db: Session, events: Optional[EventBus] = None):
        self.db = db
        self.events = events
        self.orders = OrderService(db, events)

    def process_payment(
        self,
        order_id: int,
        method,
        transaction_id: Optional[str] = None,
        processed_by_id: Optional[int] = None,
    ) -> Tuple[Payment, Order]:
        """Record the payment for a CONFIRMED order and mark it PAID.

        The amount is the order's total. Calling this again for the same
        order fails with PaymentExistsError and changes nothing.

        Raises:
            ValidationError: unknown payment method.
            NotFoundError: the order does not exist.
            PaymentExistsError: the order already has a payment.
            ConflictError: the order is not CONFIRMED.
        """
        payment_method = coerce_enum(PaymentMethod, method)
        if payment_method is None:
            raise ValidationError(f"Unknown payment method: {method!r}", field="method")

        order = self.db.get(Order, order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        if order.payment is not None:
            metrics.record_conflict("payment_exists")
            raise PaymentExistsError(order.id)
        if order.status != OrderStatus.CONFIRMED:
            metrics.record_conflict("not_confirmed")
            raise ConflictError(
                f"Order must be CONFIRMED before payment (current: {order.status.value})",
                field="status",
            )

        payment = Payment(
            order_id=order.id,
            amount=quantize_money(order.total_amount),
            method=payment_method,
            transaction_id=transaction_id,
            status=PaymentStatus.COMPLETED,
            processed_by_id=processed_by_id,
        )
        try:
            self.orders.apply_transition(order.id, OrderStatus.CONFIRMED, OrderStatus.PAID)
            self.db.add(payment)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            metrics.record_conflict("payment_exists")
            raise PaymentExistsError(order_id)
        except CafePosError:
            self.db.rollback()
            raise

        self.db.refresh(payment)
        self.db.refresh(order)
        metrics.record_payment(payment_method.value)
        metrics.record_transition(OrderStatus.CONFIRMED.value, OrderStatus.PAID.value)
        logger.info(
            f"Payment {payment.id} of {payment.amount} ({payment_method.value}) "
            f"taken for order {order.order_number}"
        )
        if self.events is not None:
            self.events.publish_order(ORDER_UPDATED, order)
        return payment, order

    def refund_payment(self, payment_id: int) -> Payment:
        """Refund a completed payment and cancel its order.

        The order is cancelled whatever its status; this bypasses the
        transition table.

        Raises:
            NotFoundError: the payment does not exist.
            ValidationError: the payment is not COMPLETED.
            ConflictError: another request refunded it first.
        """
        payment = self.db.get(Payment, payment_id)
        if payment is None:
            raise NotFoundError("Payment", payment_id)
        if payment.status != PaymentStatus.COMPLETED:
            raise ValidationError("Can only refund completed payments", field="status")

        order_id = payment.order_id
        try:
            result = self.db.execute(
                update(Payment)
                .where(Payment.id == payment.id, Payment.status == PaymentStatus.COMPLETED)
                .values(status=PaymentStatus.REFUNDED, refunded_at=func.now(), updated_at=func.now())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                metrics.record_conflict("already_refunded")
                raise ConflictError(f"Payment {payment_id} was already refunded", field="status")
            self.db.execute(
                update(Order)
                .where(Order.id == order_id)
                .values(status=OrderStatus.CANCELLED, updated_at=func.now())
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except CafePosError:
            self.db.rollback()
            raise

        self.db.refresh(payment)
        metrics.record_refund()
        logger.info(f"Payment {payment.id} refunded; order {order_id} cancelled")
        if self.events is not None:
            self.events.publish_order(ORDER_UPDATED, payment.order)
        return payment

    def get_payment(self, payment_id: int) -> Payment:
        payment = self.db.get(Payment, payment_id)
        if payment is None:
            raise NotFoundError("Payment", payment_id)
        return payment

    def list_payments(
        self,
        status: Optional[PaymentStatus] = None,
        method: Optional[PaymentMethod] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[Payment], int]:
        query = self.db.query(Payment)
        if status is not None:
            query = query.filter(Payment.status == status)
        if method is not None:
            query = query.filter(Payment.method == method)
        total = query.count()
        payments = (
            query.order_by(Payment.created_at.desc(), Payment.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return payments, total


def get_payment_service(db: Session, events: Optional[EventBus] = None) -> PaymentService:
    """Factory function to get payment service."""
    return PaymentService(db, events)
