"""Order schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, computed_field, field_validator

from cafe_pos.core.money import format_currency
from cafe_pos.core.sanitize import sanitize_text
from cafe_pos.models.order import OrderStatus
from cafe_pos.schemas.customer import CustomerResponse
from cafe_pos.schemas.menu import MenuItemResponse
from cafe_pos.schemas.payment import PaymentResponse
from cafe_pos.schemas.user import UserBrief


class OrderItemCreate(BaseModel):
    """One requested line of a new order."""

    menu_item_id: int
    quantity: int = Field(..., gt=0)


class OrderCreate(BaseModel):
    """Order creation schema."""

    customer_id: int
    items: List[OrderItemCreate] = Field(..., min_length=1)
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("notes", mode="before")
    @classmethod
    def _sanitize(cls, v):
        return sanitize_text(v) if isinstance(v, str) else v


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderItemResponse(BaseModel):
    id: int
    menu_item_id: int
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    menu_item: MenuItemResponse

    model_config = {"from_attributes": True}


class OrderSummary(BaseModel):
    """Compact order row for dashboards."""

    id: int
    order_number: str
    status: OrderStatus
    total_amount: Decimal
    customer: CustomerResponse
    payment: Optional[PaymentResponse] = None
    created_at: datetime

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def total_display(self) -> str:
        return format_currency(self.total_amount)


class OrderResponse(OrderSummary):
    """The full denormalized order, as returned by the API and carried by events."""

    notes: Optional[str] = None
    customer_id: int
    created_by: UserBrief
    confirmed_by: Optional[UserBrief] = None
    prepared_by: Optional[UserBrief] = None
    items: List[OrderItemResponse]
    updated_at: datetime


class OrderPaymentResult(BaseModel):
    """Result of processing a payment: the new payment and the paid order."""

    payment: PaymentResponse
    order: OrderResponse


class TransitionOptions(BaseModel):
    """Statuses the caller may move an order to next."""

    order_id: int
    status: OrderStatus
    allowed: List[OrderStatus]
    terminal: bool
