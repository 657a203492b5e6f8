"""Menu catalog schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from cafe_pos.core.sanitize import sanitize_text


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None

    @field_validator("name", "description", mode="before")
    @classmethod
    def _sanitize(cls, v):
        return sanitize_text(v) if isinstance(v, str) else v


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("name", "description", mode="before")
    @classmethod
    def _sanitize(cls, v):
        return sanitize_text(v) if isinstance(v, str) else v


class CategoryBrief(BaseModel):
    id: int
    name: str

    model_config = {"from_attributes": True}


class CategoryResponse(CategoryBrief):
    description: Optional[str] = None
    is_active: bool
    created_at: datetime


class MenuItemCreate(BaseModel):
    """Menu item creation schema. Prices are exact two-decimal amounts."""

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    category_id: int
    is_available: bool = True

    @field_validator("name", "description", mode="before")
    @classmethod
    def _sanitize(cls, v):
        return sanitize_text(v) if isinstance(v, str) else v


class MenuItemUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    category_id: Optional[int] = None
    is_available: Optional[bool] = None

    @field_validator("name", "description", mode="before")
    @classmethod
    def _sanitize(cls, v):
        return sanitize_text(v) if isinstance(v, str) else v


class MenuItemResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: Decimal
    is_available: bool
    category_id: int
    category: CategoryBrief

    model_config = {"from_attributes": True}


class CategoryDetailResponse(CategoryResponse):
    menu_items: List[MenuItemResponse] = []
