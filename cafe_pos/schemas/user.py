"""User schemas."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from cafe_pos.core.rbac import UserRole
from cafe_pos.core.sanitize import sanitize_text


class UserCreate(BaseModel):
    """Staff account creation, performed by a super admin."""

    email: EmailStr
    name: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=8, max_length=128)
    role: UserRole

    @field_validator("name", mode="before")
    @classmethod
    def _sanitize(cls, v):
        return sanitize_text(v) if isinstance(v, str) else v


class UserRoleUpdate(BaseModel):
    role: UserRole


class UserActiveUpdate(BaseModel):
    is_active: bool


class UserBrief(BaseModel):
    """User reference embedded in order payloads."""

    id: int
    name: str
    email: str
    role: UserRole

    model_config = {"from_attributes": True}


class UserResponse(UserBrief):
    is_active: bool
    created_at: datetime
