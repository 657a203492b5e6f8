"""Order Service - creates orders and moves them through their lifecycle.

Writes follow two rules:

1. An order and all of its line items are committed together or not at all.
2. A status change is one conditional UPDATE that only matches while the
   order is still in the status the caller read. If another request moved
   the order first, no row matches and the caller gets a ConflictError.
"""

import logging
import secrets
import time
from typing import List, Optional, Sequence

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cafe_pos.core.config import settings
from cafe_pos.core.exceptions import (
    CafePosError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from cafe_pos.core.metrics import metrics
from cafe_pos.core.money import line_total, order_total, quantize_money
from cafe_pos.core.rbac import UserRole
from cafe_pos.models.customer import Customer
from cafe_pos.models.menu import MenuItem
from cafe_pos.models.order import Order, OrderItem, OrderStatus
from cafe_pos.models.payment import Payment, PaymentStatus
from cafe_pos.schemas.order import OrderItemCreate
from cafe_pos.services.events import ORDER_CREATED, ORDER_UPDATED, EventBus
from cafe_pos.services.order_lifecycle import (
    KITCHEN_STATUSES,
    coerce_enum,
    is_valid_transition,
    transition_side_effects,
    visible_statuses,
)

logger = logging.getLogger(__name__)


def generate_order_number(prefix: Optional[str] = None, now_ms: Optional[int] = None) -> str:
    """Human-readable order number, e.g. ``ORD-482913-057``.

    Last six digits of the millisecond clock plus three random digits.
    """
    if prefix is None:
        prefix = settings.order_number_prefix
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{prefix}-{now_ms % 1_000_000:06d}-{secrets.randbelow(1000):03d}"


class OrderService:
    """Service for order creation, status transitions and order queries."""

    def __init__(self, db: Session, events: Optional[EventBus] = None):
        self.db = db
        self.events = events

    # ===== CREATION =====

    def create_order(
        self,
        customer_id: int,
        items: Sequence[OrderItemCreate],
        created_by_id: int,
        notes: Optional[str] = None,
    ) -> Order:
        """Create a PENDING order with price snapshots of the requested menu items.

        Raises:
            ValidationError: no items, unknown customer, bad quantity, or a
                menu item that is missing or unavailable. Nothing is written.
            ConflictError: the order number collided at commit time.
        """
        if not items:
            raise ValidationError("An order needs at least one item", field="items")

        customer = self.db.get(Customer, customer_id)
        if customer is None:
            raise ValidationError(f"Customer {customer_id} not found", field="customer_id")

        requested_ids = {line.menu_item_id for line in items}
        menu_items = {
            m.id: m
            for m in self.db.query(MenuItem).filter(MenuItem.id.in_(requested_ids)).all()
        }
        missing = sorted(requested_ids - menu_items.keys())
        unavailable = sorted(i for i, m in menu_items.items() if not m.is_available)
        if missing or unavailable:
            problems = []
            if missing:
                problems.append(f"not found: {missing}")
            if unavailable:
                problems.append(f"unavailable: {unavailable}")
            raise ValidationError(
                "Some menu items cannot be ordered (" + "; ".join(problems) + ")",
                field="items",
            )

        # Price every line before anything is added to the session
        priced = []
        for line in items:
            unit_price = quantize_money(menu_items[line.menu_item_id].price)
            priced.append((line.menu_item_id, line.quantity, unit_price, line_total(line.quantity, unit_price)))

        order = Order(
            order_number=self._allocate_order_number(),
            status=OrderStatus.PENDING,
            customer_id=customer.id,
            created_by_id=created_by_id,
            notes=notes,
            total_amount=order_total((qty, price) for _, qty, price, _ in priced),
        )
        for menu_item_id, quantity, unit_price, total_price in priced:
            order.items.append(OrderItem(
                menu_item_id=menu_item_id,
                quantity=quantity,
                unit_price=unit_price,
                total_price=total_price,
            ))

        self.db.add(order)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Order creation rejected by constraint: {e.orig}")
            metrics.record_conflict("order_number")
            raise ConflictError("Order number already in use, please retry", field="order_number")

        self.db.refresh(order)
        metrics.record_order_created()
        logger.info(
            f"Order {order.order_number} created for customer {customer.id} "
            f"with {len(order.items)} item(s), total {order.total_amount}"
        )
        self._publish(ORDER_CREATED, order)
        return order

    def _allocate_order_number(self) -> str:
        """Draw order numbers until one is unused."""
        for _ in range(settings.order_number_attempts):
            candidate = generate_order_number()
            taken = self.db.query(Order.id).filter(Order.order_number == candidate).first()
            if taken is None:
                return candidate
            logger.debug(f"Order number {candidate} already taken, drawing again")
        raise ConflictError("Could not allocate a unique order number", field="order_number")

    # ===== TRANSITIONS =====

    def apply_transition(
        self,
        order_id: int,
        expected: OrderStatus,
        target: OrderStatus,
        **columns,
    ) -> None:
        """Move the order to ``target`` only if it is still ``expected``.

        Runs inside the caller's transaction; the caller commits or rolls back.

        Raises:
            ConflictError: the order is no longer in ``expected``.
        """
        result = self.db.execute(
            update(Order)
            .where(Order.id == order_id, Order.status == expected)
            .values(status=target, updated_at=func.now(), **columns)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            metrics.record_conflict("stale_status")
            raise ConflictError(
                f"Order {order_id} is no longer {expected.value}; reload and try again",
                field="status",
            )

    def update_order_status(
        self,
        order_id: int,
        target_status,
        acting_user_id: int,
        acting_role,
    ) -> Order:
        """Apply a role-gated status change.

        Moving to PAID is refused here; ``PaymentService.process_payment`` owns
        that transition because it must create the payment in the same commit.
        Cancelling an order that has a completed payment refunds the payment.

        Raises:
            ValidationError: unknown status or role, or a PAID target.
            NotFoundError: the order does not exist.
            InvalidTransitionError: the table does not allow this move for the role.
            ConflictError: another request changed the order first.
        """
        target = coerce_enum(OrderStatus, target_status)
        if target is None:
            raise ValidationError(f"Unknown order status: {target_status!r}", field="status")
        role = coerce_enum(UserRole, acting_role)
        if role is None:
            raise ValidationError(f"Unknown role: {acting_role!r}", field="role")

        order = self.db.get(Order, order_id)
        if order is None:
            raise NotFoundError("Order", order_id)

        if target == OrderStatus.PAID:
            raise ValidationError(
                "Orders become PAID by processing a payment", field="status"
            )

        current = order.status
        if not is_valid_transition(current, target, role):
            metrics.record_conflict("invalid_transition")
            logger.warning(
                f"Rejected transition of order {order.order_number}: "
                f"{current.value} -> {target.value} by {role.value}"
            )
            raise InvalidTransitionError(current.value, target.value, role.value)

        try:
            self.apply_transition(
                order.id,
                current,
                target,
                **transition_side_effects(current, target, role, acting_user_id),
            )
            if target == OrderStatus.CANCELLED:
                self._refund_completed_payment(order.id)
            self.db.commit()
        except CafePosError:
            self.db.rollback()
            raise

        self.db.refresh(order)
        metrics.record_transition(current.value, target.value)
        logger.info(
            f"Order {order.order_number}: {current.value} -> {target.value} "
            f"by user {acting_user_id} ({role.value})"
        )
        self._publish(ORDER_UPDATED, order)
        return order

    def _refund_completed_payment(self, order_id: int) -> bool:
        result = self.db.execute(
            update(Payment)
            .where(Payment.order_id == order_id, Payment.status == PaymentStatus.COMPLETED)
            .values(status=PaymentStatus.REFUNDED, refunded_at=func.now(), updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            metrics.record_refund()
            logger.info(f"Payment for cancelled order {order_id} refunded")
            return True
        return False

    # ===== QUERIES =====

    def get_order(self, order_id: int) -> Order:
        order = self.db.get(Order, order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    def list_orders(
        self,
        role,
        status: Optional[OrderStatus] = None,
        skip: int = 0,
        limit: int = 50,
    ):
        """Orders visible to ``role``, optionally narrowed to one status.

        Returns ``(orders, total)``. Reception works the queue oldest first,
        everyone else sees the newest orders first.
        """
        query = self.db.query(Order)
        allowed = visible_statuses(role)
        if allowed is not None:
            query = query.filter(Order.status.in_(allowed))
        if status is not None:
            query = query.filter(Order.status == status)

        total = query.count()
        if coerce_enum(UserRole, role) == UserRole.RECEPTION:
            query = query.order_by(Order.created_at.asc(), Order.id.asc())
        else:
            query = query.order_by(Order.created_at.desc(), Order.id.desc())
        return query.offset(skip).limit(limit).all(), total

    def kitchen_queue(self) -> List[Order]:
        """Paid, preparing and ready orders, oldest first."""
        return (
            self.db.query(Order)
            .filter(Order.status.in_(KITCHEN_STATUSES))
            .order_by(Order.created_at.asc(), Order.id.asc())
            .all()
        )

    def _publish(self, event: str, order: Order) -> None:
        if self.events is not None:
            self.events.publish_order(event, order)


def get_order_service(db: Session, events: Optional[EventBus] = None) -> OrderService:
    """Factory function to get order service."""
    return OrderService(db, events)
