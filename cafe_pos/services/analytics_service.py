"""Analytics Service - aggregate counters for the role dashboards."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List

from sqlalchemy import func
from sqlalchemy.orm import Session

from cafe_pos.core.exceptions import ValidationError
from cafe_pos.core.money import ZERO, quantize_money
from cafe_pos.models.customer import Customer
from cafe_pos.models.menu import Category, MenuItem
from cafe_pos.models.order import Order, OrderItem, OrderStatus
from cafe_pos.models.payment import Payment, PaymentStatus
from cafe_pos.models.user import User
from cafe_pos.services.order_lifecycle import KITCHEN_STATUSES

REVENUE_PERIODS = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
}

TOP_N = 10


def utcnow() -> datetime:
    """Naive UTC, comparable with the database's ``now()`` timestamps."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def start_of_today() -> datetime:
    return utcnow().replace(hour=0, minute=0, second=0, microsecond=0)


def _as_date(value) -> date:
    # SQLite returns DATE() as text, PostgreSQL as a date
    return value if isinstance(value, date) else date.fromisoformat(str(value)[:10])


class AnalyticsService:
    """Read-only aggregates. Reads need not be linearizable with writes."""

    def __init__(self, db: Session):
        self.db = db

    def _count(self, model, *criteria) -> int:
        return self.db.query(func.count(model.id)).filter(*criteria).scalar() or 0

    def _revenue(self, *criteria) -> Decimal:
        total = (
            self.db.query(func.sum(Payment.amount))
            .filter(Payment.status == PaymentStatus.COMPLETED, *criteria)
            .scalar()
        )
        return quantize_money(total or 0)

    def orders_by_status(self) -> Dict[str, int]:
        rows = self.db.query(Order.status, func.count(Order.id)).group_by(Order.status).all()
        counts = {status.value: 0 for status in OrderStatus}
        for status, count in rows:
            counts[status.value] = count
        return counts

    def users_by_role(self) -> Dict[str, int]:
        rows = self.db.query(User.role, func.count(User.id)).group_by(User.role).all()
        return {role.value: count for role, count in rows}

    def overview(self) -> dict:
        today = start_of_today()
        recent = (
            self.db.query(Order)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(10)
            .all()
        )
        return {
            "total_users": self._count(User),
            "total_customers": self._count(Customer),
            "total_menu_items": self._count(MenuItem),
            "total_orders": self._count(Order),
            "total_revenue": self._revenue(),
            "today_orders": self._count(Order, Order.created_at >= today),
            "today_revenue": self._revenue(Payment.created_at >= today),
            "users_by_role": self.users_by_role(),
            "orders_by_status": self.orders_by_status(),
            "recent_orders": recent,
        }

    def reception_overview(self) -> dict:
        return {
            "total_customers": self._count(Customer),
            "total_orders": self._count(Order),
            "today_orders": self._count(Order, Order.created_at >= start_of_today()),
            "pending_orders": self._count(Order, Order.status == OrderStatus.PENDING),
            "orders_by_status": self.orders_by_status(),
        }

    def cashier_overview(self) -> dict:
        today = start_of_today()
        return {
            "awaiting_confirmation": self._count(Order, Order.status == OrderStatus.PENDING),
            "awaiting_payment": self._count(Order, Order.status == OrderStatus.CONFIRMED),
            "today_payments": self._count(
                Payment, Payment.status == PaymentStatus.COMPLETED, Payment.created_at >= today
            ),
            "today_revenue": self._revenue(Payment.created_at >= today),
            "today_refunds": self._count(
                Payment, Payment.status == PaymentStatus.REFUNDED, Payment.refunded_at >= today
            ),
        }

    def chef_overview(self) -> dict:
        return {
            "paid_orders": self._count(Order, Order.status == OrderStatus.PAID),
            "preparing_orders": self._count(Order, Order.status == OrderStatus.PREPARING),
            "ready_orders": self._count(Order, Order.status == OrderStatus.READY),
            "completed_today": self._count(
                Order,
                Order.status == OrderStatus.COMPLETED,
                Order.updated_at >= start_of_today(),
            ),
            "active_orders": self._count(Order, Order.status.in_(KITCHEN_STATUSES)),
            "orders_by_status": self.orders_by_status(),
        }

    # ===== SUPER ADMIN REPORTS =====

    def revenue(self, period: str = "7d") -> dict:
        """Completed-payment revenue per UTC day over ``period``.

        Days without payments are reported with zero revenue so charts get a
        continuous axis. Refunded payments are excluded.
        """
        window = REVENUE_PERIODS.get(period)
        if window is None:
            raise ValidationError(
                f"Unknown period {period!r}; expected one of {', '.join(REVENUE_PERIODS)}",
                field="period",
            )
        end = utcnow()
        start = end - window

        day = func.date(Payment.created_at)
        rows = (
            self.db.query(day, func.sum(Payment.amount), func.count(Payment.id))
            .filter(Payment.status == PaymentStatus.COMPLETED, Payment.created_at >= start)
            .group_by(day)
            .all()
        )
        daily = {_as_date(d): (quantize_money(amount or 0), count) for d, amount, count in rows}

        chart: List[dict] = []
        current = start.date()
        while current <= end.date():
            amount, count = daily.get(current, (ZERO, 0))
            chart.append({"day": current, "revenue": amount, "orders": count})
            current += timedelta(days=1)

        total_revenue = quantize_money(sum((amount for amount, _ in daily.values()), Decimal("0")))
        total_orders = sum(count for _, count in daily.values())
        return {
            "period": period,
            "start_date": start,
            "end_date": end,
            "chart_data": chart,
            "total_revenue": total_revenue,
            "total_orders": total_orders,
            "average_order_value": quantize_money(total_revenue / total_orders) if total_orders else ZERO,
        }

    def menu_performance(self) -> dict:
        """Items sold on orders with a completed payment, best sellers first."""
        rows = (
            self.db.query(
                MenuItem.id,
                MenuItem.name,
                Category.name.label("category_name"),
                func.sum(OrderItem.quantity),
                func.sum(OrderItem.total_price),
                func.count(OrderItem.id),
            )
            .select_from(OrderItem)
            .join(MenuItem, OrderItem.menu_item_id == MenuItem.id)
            .join(Category, MenuItem.category_id == Category.id)
            .join(Payment, Payment.order_id == OrderItem.order_id)
            .filter(Payment.status == PaymentStatus.COMPLETED)
            .group_by(MenuItem.id, MenuItem.name, Category.name)
            .all()
        )
        items = [
            {
                "id": item_id,
                "name": name,
                "category": category,
                "total_quantity": int(quantity or 0),
                "total_revenue": quantize_money(revenue or 0),
                "order_count": lines,
            }
            for item_id, name, category, quantity, revenue, lines in rows
        ]
        items.sort(key=lambda i: (-i["total_revenue"], i["name"]))

        categories: Dict[str, dict] = {}
        for item in items:
            entry = categories.setdefault(item["category"], {
                "category": item["category"],
                "total_revenue": ZERO,
                "total_quantity": 0,
                "item_count": 0,
            })
            entry["total_revenue"] += item["total_revenue"]
            entry["total_quantity"] += item["total_quantity"]
            entry["item_count"] += 1

        return {
            "top_items": items[:TOP_N],
            "category_performance": sorted(
                categories.values(), key=lambda c: (-c["total_revenue"], c["category"])
            ),
        }

    def customer_insights(self) -> dict:
        """Customer segments by order count, retention and biggest spenders.

        Segments: one order is ``new``, two to five ``returning``, more than
        five ``loyal``. Customers without orders fall in no segment.
        """
        now = utcnow()
        order_counts = (
            self.db.query(Order.customer_id, func.count(Order.id).label("order_count"))
            .group_by(Order.customer_id)
            .subquery()
        )
        spent = (
            self.db.query(Order.customer_id, func.sum(Payment.amount).label("spent"))
            .join(Payment, Payment.order_id == Order.id)
            .filter(Payment.status == PaymentStatus.COMPLETED)
            .group_by(Order.customer_id)
            .subquery()
        )
        rows = (
            self.db.query(Customer, order_counts.c.order_count, spent.c.spent)
            .outerjoin(order_counts, order_counts.c.customer_id == Customer.id)
            .outerjoin(spent, spent.c.customer_id == Customer.id)
            .all()
        )

        segments = {"new": 0, "returning": 0, "loyal": 0}
        customers = []
        for customer, order_count, total_spent in rows:
            order_count = order_count or 0
            if order_count == 1:
                segments["new"] += 1
            elif 2 <= order_count <= 5:
                segments["returning"] += 1
            elif order_count > 5:
                segments["loyal"] += 1
            customers.append({
                "id": customer.id,
                "name": customer.name,
                "email": customer.email,
                "phone": customer.phone,
                "order_count": order_count,
                "total_spent": quantize_money(total_spent or 0),
            })
        customers.sort(key=lambda c: (-c["total_spent"], c["id"]))

        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        retained = (
            self.db.query(func.count(func.distinct(Order.customer_id)))
            .filter(Order.created_at >= now - timedelta(days=30))
            .scalar()
        )
        return {
            "customer_segments": segments,
            "new_customers_this_month": self._count(Customer, Customer.created_at >= month_start),
            "customer_retention": retained or 0,
            "top_customers": customers[:TOP_N],
            "total_customers": len(rows),
        }


def get_analytics_service(db: Session) -> AnalyticsService:
    """Factory function to get analytics service."""
    return AnalyticsService(db)
