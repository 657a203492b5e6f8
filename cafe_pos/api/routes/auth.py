"""Authentication routes."""

import logging

from fastapi import APIRouter, HTTPException, Request, status

from cafe_pos.core.rate_limit import limiter
from cafe_pos.core.rbac import CurrentUser
from cafe_pos.core.security import create_access_token, verify_password
from cafe_pos.db.session import DbSession
from cafe_pos.models.user import User
from cafe_pos.schemas.auth import LoginRequest, Token
from cafe_pos.schemas.user import UserResponse

logger = logging.getLogger("auth")

router = APIRouter()


@router.post("/login", response_model=Token)
@limiter.limit("5/minute")
def login(request: Request, login_request: LoginRequest, db: DbSession):
    """Authenticate a staff member and return a JWT."""
    client_ip = request.client.host if request.client else "unknown"
    user = db.query(User).filter(User.email == login_request.email).first()

    if not user or not verify_password(login_request.password, user.password_hash):
        logger.warning(f"Failed login attempt for email: {login_request.email} from IP: {client_ip}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    if not user.is_active:
        logger.warning(f"Login attempt for inactive user {user.id} from IP: {client_ip}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User account is inactive",
        )

    token = create_access_token(
        data={"sub": str(user.id), "email": user.email, "role": user.role.value}
    )
    logger.info(f"User {user.id} ({user.role.value}) logged in from {client_ip}")
    return Token(access_token=token, user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserResponse)
def me(db: DbSession, current_user: CurrentUser):
    """The authenticated user's own account."""
    return db.get(User, current_user.user_id)
