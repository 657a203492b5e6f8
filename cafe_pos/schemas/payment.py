"""Payment schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from cafe_pos.models.payment import PaymentMethod, PaymentStatus


class PaymentCreate(BaseModel):
    """Body of ``POST /payments/{order_id}``. The amount is always the order total."""

    method: PaymentMethod
    transaction_id: Optional[str] = Field(default=None, max_length=255)


class PaymentResponse(BaseModel):
    id: int
    order_id: int
    amount: Decimal
    method: PaymentMethod
    transaction_id: Optional[str] = None
    status: PaymentStatus
    processed_by_id: Optional[int] = None
    refunded_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}
