"""Menu catalog models: categories and menu items."""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from sqlalchemy import Boolean, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from cafe_pos.db.base import Base, TimestampMixin
from cafe_pos.models.validators import non_negative


class Category(Base, TimestampMixin):
    """A menu section such as Beverages or Desserts."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    menu_items: Mapped[List["MenuItem"]] = relationship(
        "MenuItem", back_populates="category", order_by="MenuItem.name"
    )


class MenuItem(Base, TimestampMixin):
    """A sellable item. Its price is copied onto order lines when ordered."""

    __tablename__ = "menu_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    category_id: Mapped[int] = mapped_column(
        ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    category: Mapped["Category"] = relationship("Category", back_populates="menu_items")

    @validates("price")
    def _validate_price(self, key, value):
        return non_negative(key, value)
