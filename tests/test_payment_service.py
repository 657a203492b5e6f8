"""Tests for payment processing and refunds."""

import threading
from decimal import Decimal

import pytest

from cafe_pos.core.exceptions import (
    ConflictError,
    NotFoundError,
    PaymentExistsError,
    ValidationError,
)
from cafe_pos.models.order import Order, OrderStatus
from cafe_pos.models.payment import Payment, PaymentMethod, PaymentStatus
from cafe_pos.services.order_service import OrderService
from cafe_pos.services.payment_service import PaymentService


class TestProcessPayment:
    def test_pays_order_total(self, payment_service, confirmed_order, cashier_user):
        payment, order = payment_service.process_payment(
            confirmed_order.id, PaymentMethod.CARD, transaction_id="txn-1", processed_by_id=cashier_user.id
        )
        assert payment.amount == Decimal("5.00")
        assert payment.method == PaymentMethod.CARD
        assert payment.status == PaymentStatus.COMPLETED
        assert payment.transaction_id == "txn-1"
        assert payment.processed_by_id == cashier_user.id
        assert order.status == OrderStatus.PAID
        assert order.payment.id == payment.id

    def test_second_payment_is_rejected(self, db_session, payment_service, paid_order):
        with pytest.raises(PaymentExistsError) as exc:
            payment_service.process_payment(paid_order.id, "cash")
        assert exc.value.order_id == paid_order.id
        assert exc.value.status_code == 409
        assert db_session.query(Payment).count() == 1
        db_session.refresh(paid_order)
        assert paid_order.status == OrderStatus.PAID

    def test_pending_order_cannot_be_paid(self, db_session, payment_service, pending_order):
        with pytest.raises(ConflictError) as exc:
            payment_service.process_payment(pending_order.id, "cash")
        assert not isinstance(exc.value, PaymentExistsError)
        assert db_session.query(Payment).count() == 0

    def test_unknown_method(self, payment_service, confirmed_order):
        with pytest.raises(ValidationError) as exc:
            payment_service.process_payment(confirmed_order.id, "cheque")
        assert exc.value.field == "method"

    def test_missing_order(self, payment_service):
        with pytest.raises(NotFoundError):
            payment_service.process_payment(99, "cash")

    def test_publishes_paid_order(self, payment_service, event_log, confirmed_order):
        payment_service.process_payment(confirmed_order.id, "digital")
        last = event_log.since(0)[-1]
        assert last["event"] == "order-updated"
        assert last["payload"]["status"] == "PAID"
        assert last["payload"]["payment"]["method"] == "digital"


class TestRefundPayment:
    def test_refund_cancels_order(self, db_session, payment_service, paid_order):
        payment = paid_order.payment
        refunded = payment_service.refund_payment(payment.id)
        assert refunded.status == PaymentStatus.REFUNDED
        assert refunded.refunded_at is not None
        db_session.refresh(paid_order)
        assert paid_order.status == OrderStatus.CANCELLED

    def test_refund_after_completion_still_cancels(
        self, db_session, order_service, payment_service, paid_order, chef_user
    ):
        for target in ("PREPARING", "READY", "COMPLETED"):
            order_service.update_order_status(paid_order.id, target, chef_user.id, "CHEF")
        payment_service.refund_payment(paid_order.payment.id)
        db_session.refresh(paid_order)
        assert paid_order.status == OrderStatus.CANCELLED

    def test_double_refund(self, payment_service, paid_order):
        payment_id = paid_order.payment.id
        payment_service.refund_payment(payment_id)
        with pytest.raises(ValidationError):
            payment_service.refund_payment(payment_id)

    def test_missing_payment(self, payment_service):
        with pytest.raises(NotFoundError):
            payment_service.refund_payment(404)

    def test_refund_event_carries_cancelled_order(self, payment_service, event_log, paid_order):
        payment_service.refund_payment(paid_order.payment.id)
        last = event_log.since(0)[-1]
        assert last["payload"]["status"] == "CANCELLED"
        assert last["payload"]["payment"]["status"] == "REFUNDED"


class TestListPayments:
    def test_filters(self, payment_service, paid_order):
        payments, total = payment_service.list_payments(status=PaymentStatus.COMPLETED)
        assert total == 1
        assert payments[0].order_id == paid_order.id
        _, refunded = payment_service.list_payments(status=PaymentStatus.REFUNDED)
        assert refunded == 0
        _, by_card = payment_service.list_payments(method=PaymentMethod.CARD)
        assert by_card == 0


class TestConcurrentPayments:
    """Several cashiers take payment for the same CONFIRMED order at once."""

    @pytest.fixture
    def confirmed(self, seeded):
        Session, ids = seeded
        db = Session()
        OrderService(db).update_order_status(ids["order"], "CONFIRMED", ids["cashier"], "CASHIER")
        db.close()
        return Session, ids

    def test_stale_reader_cannot_pay_twice(self, confirmed):
        Session, ids = confirmed
        first, second = Session(), Session()
        try:
            for db in (first, second):
                order = db.get(Order, ids["order"])
                assert order.status == OrderStatus.CONFIRMED
                assert order.payment is None

            PaymentService(first).process_payment(ids["order"], "cash", processed_by_id=ids["cashier"])
            with pytest.raises(ConflictError):
                PaymentService(second).process_payment(ids["order"], "card", processed_by_id=ids["cashier"])

            check = Session()
            assert check.query(Payment).filter(Payment.order_id == ids["order"]).count() == 1
            assert check.get(Order, ids["order"]).status == OrderStatus.PAID
            check.close()
        finally:
            first.close()
            second.close()

    def test_unique_payment_row_rolls_back_the_transition(self, confirmed):
        Session, ids = confirmed
        stale = Session()
        try:
            order = stale.get(Order, ids["order"])
            assert order.payment is None

            other = Session()
            other.add(Payment(
                order_id=ids["order"],
                amount=Decimal("3.50"),
                method=PaymentMethod.CARD,
                status=PaymentStatus.COMPLETED,
            ))
            other.commit()
            other.close()

            with pytest.raises(PaymentExistsError):
                PaymentService(stale).process_payment(ids["order"], "cash")

            check = Session()
            assert check.query(Payment).filter(Payment.order_id == ids["order"]).count() == 1
            assert check.get(Order, ids["order"]).status == OrderStatus.CONFIRMED
            check.close()
        finally:
            stale.close()

    def test_parallel_cashiers_create_one_payment(self, confirmed):
        Session, ids = confirmed
        workers = 4
        barrier = threading.Barrier(workers)
        outcomes = []
        lock = threading.Lock()

        def pay():
            db = Session()
            try:
                db.get(Order, ids["order"])
                barrier.wait()
                PaymentService(db).process_payment(ids["order"], "cash", processed_by_id=ids["cashier"])
                result = "ok"
            except ConflictError as e:
                result = e
            finally:
                db.close()
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=pay) for _ in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        assert outcomes.count("ok") == 1
        assert len(outcomes) == workers
        assert all(isinstance(o, ConflictError) for o in outcomes if o != "ok")

        check = Session()
        assert check.query(Payment).filter(Payment.order_id == ids["order"]).count() == 1
        assert check.get(Order, ids["order"]).status == OrderStatus.PAID
        check.close()
