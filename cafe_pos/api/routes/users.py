"""Staff account management, restricted to super admins."""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request, status

from cafe_pos.api.deps import UserManager
from cafe_pos.core.rate_limit import limiter
from cafe_pos.core.rbac import UserRole
from cafe_pos.core.responses import paginated_response
from cafe_pos.core.security import get_password_hash
from cafe_pos.db.session import DbSession
from cafe_pos.models.user import User
from cafe_pos.schemas.user import UserActiveUpdate, UserCreate, UserResponse, UserRoleUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_user_or_404(db, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/")
@limiter.limit("60/minute")
def list_users(
    request: Request,
    db: DbSession,
    current_user: UserManager,
    role: Optional[UserRole] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
):
    """List staff accounts, optionally by role."""
    query = db.query(User)
    if role is not None:
        query = query.filter(User.role == role)
    total = query.count()
    users = query.order_by(User.created_at.desc(), User.id.desc()).offset(skip).limit(limit).all()
    return paginated_response(
        [UserResponse.model_validate(u).model_dump(mode="json") for u in users],
        total, skip, limit,
    )


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_user(request: Request, db: DbSession, current_user: UserManager, data: UserCreate):
    """Create a staff account."""
    if db.query(User).filter(User.email == data.email).first():
        raise HTTPException(status_code=409, detail="User with this email already exists")

    user = User(
        email=data.email,
        name=data.name,
        password_hash=get_password_hash(data.password),
        role=data.role,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} ({user.role.value}) created by {current_user.user_id}")
    return user


@router.put("/{user_id}/role", response_model=UserResponse)
@limiter.limit("30/minute")
def update_user_role(
    request: Request, db: DbSession, current_user: UserManager, user_id: int, data: UserRoleUpdate
):
    """Change a staff member's role."""
    user = _get_user_or_404(db, user_id)
    if user.id == current_user.user_id and data.role != UserRole.SUPER_ADMIN:
        raise HTTPException(status_code=400, detail="You cannot remove your own admin role")
    previous = user.role
    user.role = data.role
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} role changed {previous.value} -> {user.role.value}")
    return user


@router.put("/{user_id}/active", response_model=UserResponse)
@limiter.limit("30/minute")
def set_user_active(
    request: Request, db: DbSession, current_user: UserManager, user_id: int, data: UserActiveUpdate
):
    """Enable or disable a staff account. Disabled accounts cannot use existing tokens."""
    user = _get_user_or_404(db, user_id)
    if user.id == current_user.user_id and not data.is_active:
        raise HTTPException(status_code=400, detail="You cannot disable your own account")
    user.is_active = data.is_active
    db.commit()
    db.refresh(user)
    return user
