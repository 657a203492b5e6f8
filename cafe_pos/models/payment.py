"""Payment model."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, Enum as SQLEnum, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from cafe_pos.db.base import Base, TimestampMixin
from cafe_pos.models.validators import non_negative

if TYPE_CHECKING:
    from cafe_pos.models.order import Order
    from cafe_pos.models.user import User


class PaymentMethod(str, Enum):
    """How the customer paid."""

    CASH = "cash"
    CARD = "card"
    DIGITAL = "digital"


class PaymentStatus(str, Enum):
    """Payment status."""

    COMPLETED = "COMPLETED"
    REFUNDED = "REFUNDED"


class Payment(Base, TimestampMixin):
    """The single payment taken for an order.

    The unique constraint on ``order_id`` is what makes payment processing
    idempotent under concurrency: a second insert for the same order fails.
    """

    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="RESTRICT"), unique=True, nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    method: Mapped[PaymentMethod] = mapped_column(SQLEnum(PaymentMethod), nullable=False)
    transaction_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(PaymentStatus), default=PaymentStatus.COMPLETED, nullable=False, index=True
    )
    processed_by_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    refunded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    order: Mapped["Order"] = relationship("Order", back_populates="payment")
    processed_by: Mapped[Optional["User"]] = relationship("User")

    @validates("amount")
    def _validate_amount(self, key, value):
        return non_negative(key, value)
