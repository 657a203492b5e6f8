"""Tests for dashboard analytics."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from cafe_pos.core.exceptions import ValidationError
from cafe_pos.models.customer import Customer
from cafe_pos.schemas.order import OrderItemCreate
from cafe_pos.services.analytics_service import AnalyticsService

API = "/api/v1/analytics"


def _paid_order(order_service, payment_service, customer, lines, reception_user, cashier_user):
    order = order_service.create_order(
        customer.id, [OrderItemCreate(menu_item_id=i, quantity=q) for i, q in lines], reception_user.id
    )
    order_service.update_order_status(order.id, "CONFIRMED", cashier_user.id, "CASHIER")
    payment_service.process_payment(order.id, "card", processed_by_id=cashier_user.id)
    return order


class TestAnalyticsService:
    def test_orders_by_status_lists_every_status(self, db_session, pending_order):
        counts = AnalyticsService(db_session).orders_by_status()
        assert counts["PENDING"] == 1
        assert counts["COMPLETED"] == 0
        assert len(counts) == 7

    def test_revenue_ignores_refunds(self, db_session, payment_service, paid_order):
        analytics = AnalyticsService(db_session)
        assert analytics.overview()["total_revenue"] == Decimal("5.00")
        payment_service.refund_payment(paid_order.payment.id)
        overview = analytics.overview()
        assert overview["total_revenue"] == Decimal("0.00")
        assert overview["orders_by_status"]["CANCELLED"] == 1

    def test_cashier_overview(self, db_session, paid_order, customer, espresso, reception_user, order_service):
        order_service.create_order(customer.id, [OrderItemCreate(menu_item_id=espresso.id, quantity=1)], reception_user.id)
        data = AnalyticsService(db_session).cashier_overview()
        assert data["awaiting_confirmation"] == 1
        assert data["awaiting_payment"] == 0
        assert data["today_payments"] == 1
        assert data["today_revenue"] == Decimal("5.00")
        assert data["today_refunds"] == 0

    def test_chef_overview(self, db_session, paid_order):
        data = AnalyticsService(db_session).chef_overview()
        assert data["paid_orders"] == 1
        assert data["active_orders"] == 1
        assert data["ready_orders"] == 0


class TestRevenueReport:
    def test_daily_breakdown_is_zero_filled(self, db_session, paid_order):
        data = AnalyticsService(db_session).revenue("7d")
        chart = data["chart_data"]
        assert len(chart) == 8
        assert chart[-1] == {"day": datetime.now(timezone.utc).date(), "revenue": Decimal("5.00"), "orders": 1}
        assert all(d["revenue"] == Decimal("0.00") and d["orders"] == 0 for d in chart[:-1])

    def test_totals_and_average(
        self, db_session, order_service, payment_service, paid_order, customer, latte, reception_user, cashier_user
    ):
        _paid_order(order_service, payment_service, customer, [(latte.id, 1)], reception_user, cashier_user)
        data = AnalyticsService(db_session).revenue("24h")
        assert len(data["chart_data"]) == 2
        assert data["total_revenue"] == Decimal("9.00")
        assert data["total_orders"] == 2
        assert data["average_order_value"] == Decimal("4.50")

    def test_refunds_are_excluded(self, db_session, payment_service, paid_order):
        payment_service.refund_payment(paid_order.payment.id)
        data = AnalyticsService(db_session).revenue("30d")
        assert data["total_revenue"] == Decimal("0.00")
        assert data["total_orders"] == 0
        assert data["average_order_value"] == Decimal("0.00")
        assert len(data["chart_data"]) == 31

    def test_unknown_period(self, db_session):
        with pytest.raises(ValidationError) as exc:
            AnalyticsService(db_session).revenue("1y")
        assert exc.value.field == "period"


class TestMenuPerformance:
    def test_ranks_items_sold_on_paid_orders(
        self, db_session, order_service, payment_service, paid_order,
        customer, espresso, latte, reception_user, cashier_user,
    ):
        _paid_order(
            order_service, payment_service, customer, [(latte.id, 1), (espresso.id, 1)], reception_user, cashier_user
        )
        # Unpaid lines are not sales
        order_service.create_order(customer.id, [OrderItemCreate(menu_item_id=latte.id, quantity=3)], reception_user.id)

        data = AnalyticsService(db_session).menu_performance()
        assert [i["name"] for i in data["top_items"]] == ["Espresso", "Latte"]
        espresso_row = data["top_items"][0]
        assert espresso_row["total_quantity"] == 3
        assert espresso_row["total_revenue"] == Decimal("7.50")
        assert espresso_row["order_count"] == 2
        assert espresso_row["category"] == "Beverages"
        assert data["category_performance"] == [{
            "category": "Beverages",
            "total_revenue": Decimal("11.50"),
            "total_quantity": 4,
            "item_count": 2,
        }]

    def test_empty(self, db_session, pending_order):
        assert AnalyticsService(db_session).menu_performance() == {"top_items": [], "category_performance": []}


class TestCustomerInsights:
    def test_segments_and_spend(self, db_session, paid_order, customer):
        db_session.add(Customer(name="Sam Lee", phone="+1555000111"))
        db_session.commit()

        data = AnalyticsService(db_session).customer_insights()
        assert data["customer_segments"] == {"new": 1, "returning": 0, "loyal": 0}
        assert data["total_customers"] == 2
        assert data["new_customers_this_month"] == 2
        assert data["customer_retention"] == 1
        top, other = data["top_customers"]
        assert (top["id"], top["order_count"], top["total_spent"]) == (customer.id, 1, Decimal("5.00"))
        assert (other["name"], other["order_count"], other["total_spent"]) == ("Sam Lee", 0, Decimal("0.00"))

    def test_unpaid_orders_count_but_do_not_spend(
        self, db_session, order_service, paid_order, customer, espresso, reception_user
    ):
        order_service.create_order(customer.id, [OrderItemCreate(menu_item_id=espresso.id, quantity=1)], reception_user.id)
        data = AnalyticsService(db_session).customer_insights()
        assert data["customer_segments"]["returning"] == 1
        assert data["top_customers"][0]["order_count"] == 2
        assert data["top_customers"][0]["total_spent"] == Decimal("5.00")


class TestAnalyticsRoutes:
    def test_admin_overview(self, client, paid_order, admin_headers):
        r = client.get(f"{API}/overview", headers=admin_headers)
        assert r.status_code == 200, r.text
        body = r.json()
        assert body["total_orders"] == 1
        assert body["total_revenue"] == "5.00"
        assert body["recent_orders"][0]["total_display"] == "$5.00"
        assert body["users_by_role"]["CASHIER"] == 1

    def test_role_dashboards(self, client, pending_order, reception_headers, cashier_headers, chef_headers):
        assert client.get(f"{API}/reception-overview", headers=reception_headers).json()["pending_orders"] == 1
        assert client.get(f"{API}/cashier-overview", headers=cashier_headers).json()["awaiting_confirmation"] == 1
        assert client.get(f"{API}/chef-overview", headers=chef_headers).json()["paid_orders"] == 0

    def test_dashboards_are_role_scoped(self, client, reception_headers, chef_headers, admin_headers):
        assert client.get(f"{API}/overview", headers=reception_headers).status_code == 403
        assert client.get(f"{API}/cashier-overview", headers=chef_headers).status_code == 403
        assert client.get(f"{API}/chef-overview", headers=admin_headers).status_code == 200

    def test_admin_reports(self, client, paid_order, admin_headers, cashier_headers):
        r = client.get(f"{API}/revenue", params={"period": "24h"}, headers=admin_headers)
        assert r.status_code == 200, r.text
        assert r.json()["total_revenue"] == "5.00"
        assert r.json()["chart_data"][-1]["orders"] == 1

        assert client.get(f"{API}/revenue", params={"period": "1y"}, headers=admin_headers).status_code == 422

        r = client.get(f"{API}/menu-performance", headers=admin_headers)
        assert r.json()["top_items"][0]["total_revenue"] == "5.00"

        r = client.get(f"{API}/customer-insights", headers=admin_headers)
        assert r.json()["top_customers"][0]["total_spent"] == "5.00"

        for path in ("revenue", "menu-performance", "customer-insights"):
            assert client.get(f"{API}/{path}", headers=cashier_headers).status_code == 403

    def test_metrics_endpoint(self, client, paid_order, admin_headers, cashier_headers):
        r = client.get("/metrics", headers=admin_headers)
        assert r.status_code == 200
        assert "pos_orders_created_total" in r.text
        assert client.get("/metrics", headers=cashier_headers).status_code == 403


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json()["status"] == "healthy"

    def test_ready(self, client):
        body = client.get("/health/ready").json()
        assert body["checks"]["redis"] == "not configured"
