"""Customer model."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cafe_pos.db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from cafe_pos.models.order import Order


class Customer(Base, TimestampMixin):
    """A walk-in or regular customer that orders are placed for.

    Phone and email are optional, but unique among customers when given.
    """

    __tablename__ = "customers"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), unique=True, nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)

    orders: Mapped[List["Order"]] = relationship(
        "Order", back_populates="customer", passive_deletes="all"
    )
