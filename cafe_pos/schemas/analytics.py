"""Dashboard analytics schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel

from cafe_pos.schemas.order import OrderSummary


class OverviewResponse(BaseModel):
    """Super admin overview. Revenue counts COMPLETED payments only."""

    total_users: int
    total_customers: int
    total_menu_items: int
    total_orders: int
    total_revenue: Decimal
    today_orders: int
    today_revenue: Decimal
    users_by_role: Dict[str, int]
    orders_by_status: Dict[str, int]
    recent_orders: List[OrderSummary]


class ReceptionOverviewResponse(BaseModel):
    total_customers: int
    total_orders: int
    today_orders: int
    pending_orders: int
    orders_by_status: Dict[str, int]


class CashierOverviewResponse(BaseModel):
    awaiting_confirmation: int
    awaiting_payment: int
    today_payments: int
    today_revenue: Decimal
    today_refunds: int


class ChefOverviewResponse(BaseModel):
    paid_orders: int
    preparing_orders: int
    ready_orders: int
    completed_today: int
    active_orders: int
    orders_by_status: Dict[str, int]


class DailyRevenue(BaseModel):
    day: date
    revenue: Decimal
    orders: int


class RevenueResponse(BaseModel):
    """Completed-payment revenue over a trailing period, one row per UTC day."""

    period: str
    start_date: datetime
    end_date: datetime
    chart_data: List[DailyRevenue]
    total_revenue: Decimal
    total_orders: int
    average_order_value: Decimal


class MenuItemPerformance(BaseModel):
    id: int
    name: str
    category: str
    total_quantity: int
    total_revenue: Decimal
    order_count: int


class CategoryPerformance(BaseModel):
    category: str
    total_revenue: Decimal
    total_quantity: int
    item_count: int


class MenuPerformanceResponse(BaseModel):
    top_items: List[MenuItemPerformance]
    category_performance: List[CategoryPerformance]


class CustomerSegments(BaseModel):
    new: int
    returning: int
    loyal: int


class TopCustomer(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    order_count: int
    total_spent: Decimal


class CustomerInsightsResponse(BaseModel):
    customer_segments: CustomerSegments
    new_customers_this_month: int
    customer_retention: int
    top_customers: List[TopCustomer]
    total_customers: int
