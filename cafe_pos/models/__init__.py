"""SQLAlchemy models."""

from cafe_pos.models.user import User
from cafe_pos.models.customer import Customer
from cafe_pos.models.menu import Category, MenuItem
from cafe_pos.models.order import Order, OrderItem, OrderStatus
from cafe_pos.models.payment import Payment, PaymentMethod, PaymentStatus

__all__ = [
    "User",
    "Customer",
    "Category",
    "MenuItem",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Payment",
    "PaymentMethod",
    "PaymentStatus",
]
