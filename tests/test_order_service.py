"""Tests for order creation and status transitions in OrderService."""

from decimal import Decimal

import pytest

from cafe_pos.core.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from cafe_pos.core.rbac import UserRole
from cafe_pos.models.order import Order, OrderItem, OrderStatus
from cafe_pos.models.payment import Payment, PaymentStatus
from cafe_pos.schemas.order import OrderItemCreate
from cafe_pos.services.order_service import OrderService, generate_order_number


def _line(menu_item_id, quantity=1):
    return OrderItemCreate(menu_item_id=menu_item_id, quantity=quantity)


class TestGenerateOrderNumber:
    def test_format(self):
        assert generate_order_number("ORD", now_ms=1_700_000_482_913).startswith("ORD-482913-")

    def test_random_suffix_is_three_digits(self):
        suffix = generate_order_number("X", now_ms=0).split("-")[-1]
        assert len(suffix) == 3 and suffix.isdigit()


class TestCreateOrder:
    def test_prices_lines_from_menu(self, order_service, customer, espresso, latte, reception_user):
        order = order_service.create_order(
            customer_id=customer.id,
            items=[_line(espresso.id, 2), _line(latte.id, 1)],
            created_by_id=reception_user.id,
            notes="extra hot",
        )
        assert order.status == OrderStatus.PENDING
        assert order.total_amount == Decimal("9.00")
        assert order.created_by_id == reception_user.id
        assert order.confirmed_by_id is None
        assert order.notes == "extra hot"
        totals = sorted((i.quantity, i.unit_price, i.total_price) for i in order.items)
        assert totals == [(1, Decimal("4.00"), Decimal("4.00")), (2, Decimal("2.50"), Decimal("5.00"))]

    def test_repeated_item_stays_separate_lines(self, order_service, customer, espresso, reception_user):
        order = order_service.create_order(
            customer_id=customer.id,
            items=[_line(espresso.id, 1), _line(espresso.id, 1)],
            created_by_id=reception_user.id,
        )
        assert len(order.items) == 2
        assert order.total_amount == Decimal("5.00")

    def test_price_change_does_not_touch_existing_lines(
        self, db_session, order_service, customer, espresso, reception_user
    ):
        order = order_service.create_order(
            customer_id=customer.id, items=[_line(espresso.id, 2)], created_by_id=reception_user.id
        )
        espresso.price = Decimal("3.00")
        db_session.commit()
        db_session.refresh(order)
        assert order.items[0].unit_price == Decimal("2.50")
        assert order.total_amount == Decimal("5.00")

    def test_empty_items(self, order_service, customer, reception_user):
        with pytest.raises(ValidationError) as exc:
            order_service.create_order(customer.id, [], reception_user.id)
        assert exc.value.field == "items"

    def test_unknown_customer(self, db_session, order_service, espresso, reception_user):
        with pytest.raises(ValidationError) as exc:
            order_service.create_order(9999, [_line(espresso.id)], reception_user.id)
        assert exc.value.field == "customer_id"
        assert db_session.query(Order).count() == 0

    def test_unavailable_item_writes_nothing(
        self, db_session, order_service, customer, espresso, sold_out_item, reception_user
    ):
        with pytest.raises(ValidationError) as exc:
            order_service.create_order(
                customer.id,
                [_line(espresso.id, 1), _line(sold_out_item.id, 1)],
                reception_user.id,
            )
        assert "unavailable" in exc.value.message
        assert db_session.query(Order).count() == 0
        assert db_session.query(OrderItem).count() == 0

    def test_missing_item_writes_nothing(self, db_session, order_service, customer, espresso, reception_user):
        with pytest.raises(ValidationError) as exc:
            order_service.create_order(
                customer.id, [_line(espresso.id, 1), _line(4242, 1)], reception_user.id
            )
        assert "4242" in exc.value.message
        assert db_session.query(Order).count() == 0

    def test_publishes_order_created(self, order_service, event_log, customer, espresso, reception_user):
        order = order_service.create_order(customer.id, [_line(espresso.id)], reception_user.id)
        events = event_log.since(0)
        assert [e["event"] for e in events] == ["order-created"]
        payload = events[0]["payload"]
        assert payload["id"] == order.id
        assert payload["customer"]["name"] == "Jane Smith"
        assert payload["items"][0]["menu_item"]["category"]["name"] == "Beverages"
        assert payload["total_amount"] == "2.50"

    def test_order_number_exhaustion(self, order_service, customer, espresso, reception_user, monkeypatch):
        first = order_service.create_order(customer.id, [_line(espresso.id)], reception_user.id)
        monkeypatch.setattr(
            "cafe_pos.services.order_service.generate_order_number",
            lambda *args, **kwargs: first.order_number,
        )
        with pytest.raises(ConflictError) as exc:
            order_service.create_order(customer.id, [_line(espresso.id)], reception_user.id)
        assert exc.value.field == "order_number"


class TestUpdateOrderStatus:
    def test_cashier_confirms_and_is_recorded(self, order_service, pending_order, cashier_user):
        order = order_service.update_order_status(
            pending_order.id, OrderStatus.CONFIRMED, cashier_user.id, UserRole.CASHIER
        )
        assert order.status == OrderStatus.CONFIRMED
        assert order.confirmed_by_id == cashier_user.id
        assert order.prepared_by_id is None

    def test_chef_start_records_preparer(self, order_service, paid_order, chef_user):
        order = order_service.update_order_status(
            paid_order.id, "PREPARING", chef_user.id, "CHEF"
        )
        assert order.status == OrderStatus.PREPARING
        assert order.prepared_by_id == chef_user.id

    def test_full_kitchen_flow(self, order_service, paid_order, chef_user, reception_user):
        order_service.update_order_status(paid_order.id, "PREPARING", chef_user.id, "CHEF")
        order_service.update_order_status(paid_order.id, "READY", chef_user.id, "CHEF")
        order = order_service.update_order_status(
            paid_order.id, "COMPLETED", reception_user.id, "RECEPTION"
        )
        assert order.status == OrderStatus.COMPLETED

    def test_role_not_allowed(self, order_service, pending_order, chef_user):
        with pytest.raises(InvalidTransitionError) as exc:
            order_service.update_order_status(pending_order.id, "CONFIRMED", chef_user.id, "CHEF")
        assert exc.value.current == "PENDING"
        assert exc.value.target == "CONFIRMED"
        assert exc.value.status_code == 409

    def test_rejected_transition_changes_nothing(self, db_session, order_service, pending_order, reception_user):
        with pytest.raises(InvalidTransitionError):
            order_service.update_order_status(pending_order.id, "COMPLETED", reception_user.id, "RECEPTION")
        db_session.refresh(pending_order)
        assert pending_order.status == OrderStatus.PENDING

    def test_paid_is_owned_by_payments(self, order_service, confirmed_order, cashier_user):
        with pytest.raises(ValidationError):
            order_service.update_order_status(confirmed_order.id, "PAID", cashier_user.id, "CASHIER")

    def test_unknown_status(self, order_service, pending_order, cashier_user):
        with pytest.raises(ValidationError) as exc:
            order_service.update_order_status(pending_order.id, "SHIPPED", cashier_user.id, "CASHIER")
        assert exc.value.field == "status"

    def test_unknown_role(self, order_service, pending_order, cashier_user):
        with pytest.raises(ValidationError) as exc:
            order_service.update_order_status(pending_order.id, "CONFIRMED", cashier_user.id, "OWNER")
        assert exc.value.field == "role"

    def test_missing_order(self, order_service, cashier_user):
        with pytest.raises(NotFoundError):
            order_service.update_order_status(12345, "CONFIRMED", cashier_user.id, "CASHIER")

    def test_terminal_order_cannot_move(self, order_service, pending_order, cashier_user):
        order_service.update_order_status(pending_order.id, "CANCELLED", cashier_user.id, "CASHIER")
        with pytest.raises(InvalidTransitionError):
            order_service.update_order_status(pending_order.id, "CONFIRMED", cashier_user.id, "CASHIER")

    def test_cancel_refunds_completed_payment(self, db_session, order_service, paid_order, cashier_user):
        order = order_service.update_order_status(paid_order.id, "CANCELLED", cashier_user.id, "CASHIER")
        assert order.status == OrderStatus.CANCELLED
        payment = db_session.query(Payment).filter(Payment.order_id == order.id).one()
        assert payment.status == PaymentStatus.REFUNDED
        assert payment.refunded_at is not None

    def test_publishes_order_updated(self, order_service, event_log, pending_order, cashier_user):
        order_service.update_order_status(pending_order.id, "CONFIRMED", cashier_user.id, "CASHIER")
        last = event_log.since(0)[-1]
        assert last["event"] == "order-updated"
        assert last["payload"]["status"] == "CONFIRMED"
        assert last["payload"]["confirmed_by"]["id"] == cashier_user.id


class TestApplyTransition:
    def test_stale_expected_status(self, db_session, order_service, pending_order):
        with pytest.raises(ConflictError):
            order_service.apply_transition(pending_order.id, OrderStatus.CONFIRMED, OrderStatus.PAID)
        db_session.rollback()


class TestConcurrentTransitions:
    """Two sessions race to move the same order out of PENDING."""

    def test_second_writer_gets_conflict(self, seeded):
        Session, ids = seeded
        first, second = Session(), Session()
        try:
            # Both sessions read the order while it is still PENDING
            assert first.get(Order, ids["order"]).status == OrderStatus.PENDING
            assert second.get(Order, ids["order"]).status == OrderStatus.PENDING

            OrderService(first).update_order_status(ids["order"], "CONFIRMED", ids["cashier"], "CASHIER")

            with pytest.raises(ConflictError) as exc:
                OrderService(second).update_order_status(
                    ids["order"], "CANCELLED", ids["reception"], "RECEPTION"
                )
            assert not isinstance(exc.value, InvalidTransitionError)

            check = Session()
            assert check.get(Order, ids["order"]).status == OrderStatus.CONFIRMED
            check.close()
        finally:
            first.close()
            second.close()


    def test_double_confirm_applies_once(self, seeded):
        Session, ids = seeded
        first, second = Session(), Session()
        try:
            first.get(Order, ids["order"])
            second.get(Order, ids["order"])

            OrderService(first).update_order_status(ids["order"], "CONFIRMED", ids["cashier"], "CASHIER")
            with pytest.raises(ConflictError):
                OrderService(second).update_order_status(ids["order"], "CONFIRMED", ids["cashier"], "CASHIER")

            check = Session()
            order = check.get(Order, ids["order"])
            assert order.status == OrderStatus.CONFIRMED
            assert order.confirmed_by_id == ids["cashier"]
            check.close()
        finally:
            first.close()
            second.close()


class TestQueries:
    def test_get_order_missing(self, order_service):
        with pytest.raises(NotFoundError):
            order_service.get_order(1)

    def test_list_orders_filters_by_role(self, order_service, paid_order, customer, espresso, reception_user):
        order_service.create_order(customer.id, [_line(espresso.id)], reception_user.id)
        orders, total = order_service.list_orders(UserRole.CHEF)
        assert total == 1
        assert orders[0].status == OrderStatus.PAID
        _, cashier_total = order_service.list_orders(UserRole.CASHIER)
        assert cashier_total == 2

    def test_list_orders_intersects_status_filter(self, order_service, paid_order):
        orders, total = order_service.list_orders(UserRole.CHEF, OrderStatus.PENDING)
        assert (orders, total) == ([], 0)

    def test_reception_sees_oldest_first(self, order_service, customer, espresso, reception_user):
        first = order_service.create_order(customer.id, [_line(espresso.id)], reception_user.id)
        second = order_service.create_order(customer.id, [_line(espresso.id)], reception_user.id)
        orders, total = order_service.list_orders(UserRole.RECEPTION)
        assert total == 2
        assert [o.id for o in orders] == [first.id, second.id]

    def test_kitchen_queue(self, order_service, paid_order, customer, espresso, reception_user):
        order_service.create_order(customer.id, [_line(espresso.id)], reception_user.id)
        queue = order_service.kitchen_queue()
        assert [o.id for o in queue] == [paid_order.id]
