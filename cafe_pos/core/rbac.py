"""Role-Based Access Control (RBAC).

Endpoint authorization lives here as a permission table, kept apart from
the order transition table in
``cafe_pos.services.order_lifecycle``: a role may be allowed to call the
status endpoint and still be refused a particular transition.

Roles:
- RECEPTION: customers and order intake
- CASHIER: confirms orders, takes and refunds payments
- CHEF: menu upkeep and kitchen progress
- SUPER_ADMIN: user management and analytics, never moves orders
"""

from enum import Enum
from typing import Annotated, Dict, FrozenSet, Union

from fastapi import Depends, HTTPException, Request, status

from cafe_pos.core.security import decode_access_token
from cafe_pos.db.session import DbSession


class UserRole(str, Enum):
    """User roles for RBAC."""

    RECEPTION = "RECEPTION"
    CASHIER = "CASHIER"
    CHEF = "CHEF"
    SUPER_ADMIN = "SUPER_ADMIN"


class Permission(str, Enum):
    """Available permissions in the system."""

    # Customers
    CUSTOMER_VIEW = "customer:view"
    CUSTOMER_EDIT = "customer:edit"

    # Menu
    MENU_EDIT = "menu:edit"

    # Orders
    ORDER_CREATE = "order:create"
    ORDER_VIEW = "order:view"
    ORDER_STATUS = "order:status"
    KITCHEN_VIEW = "kitchen:view"

    # Payments
    PAYMENT_VIEW = "payment:view"
    PAYMENT_PROCESS = "payment:process"
    PAYMENT_REFUND = "payment:refund"

    # Administration
    USER_MANAGE = "user:manage"
    ANALYTICS_OVERVIEW = "analytics:overview"
    ANALYTICS_RECEPTION = "analytics:reception"
    ANALYTICS_CASHIER = "analytics:cashier"
    ANALYTICS_CHEF = "analytics:chef"
    EVENTS_VIEW = "events:view"


ROLE_PERMISSIONS: Dict[UserRole, FrozenSet[Permission]] = {
    UserRole.RECEPTION: frozenset({
        Permission.CUSTOMER_VIEW, Permission.CUSTOMER_EDIT,
        Permission.ORDER_CREATE, Permission.ORDER_VIEW, Permission.ORDER_STATUS,
        Permission.PAYMENT_VIEW,
        Permission.ANALYTICS_RECEPTION,
        Permission.EVENTS_VIEW,
    }),
    UserRole.CASHIER: frozenset({
        Permission.CUSTOMER_VIEW, Permission.CUSTOMER_EDIT,
        Permission.ORDER_VIEW, Permission.ORDER_STATUS,
        Permission.PAYMENT_VIEW, Permission.PAYMENT_PROCESS, Permission.PAYMENT_REFUND,
        Permission.ANALYTICS_CASHIER,
        Permission.EVENTS_VIEW,
    }),
    UserRole.CHEF: frozenset({
        Permission.MENU_EDIT,
        Permission.ORDER_VIEW, Permission.ORDER_STATUS, Permission.KITCHEN_VIEW,
        Permission.ANALYTICS_CHEF,
        Permission.EVENTS_VIEW,
    }),
    UserRole.SUPER_ADMIN: frozenset({
        Permission.CUSTOMER_VIEW,
        Permission.ORDER_VIEW, Permission.KITCHEN_VIEW,
        Permission.PAYMENT_VIEW,
        Permission.USER_MANAGE,
        Permission.ANALYTICS_OVERVIEW, Permission.ANALYTICS_RECEPTION,
        Permission.ANALYTICS_CASHIER, Permission.ANALYTICS_CHEF,
        Permission.EVENTS_VIEW,
    }),
}


def has_permission(role: Union[UserRole, str], permission: Permission) -> bool:
    """Check if a role holds a permission. Unknown roles hold nothing."""
    try:
        role = UserRole(role)
    except ValueError:
        return False
    return permission in ROLE_PERMISSIONS.get(role, frozenset())


class TokenData:
    """Decoded token data.

    Attributes:
        user_id: The user's database ID.
        email: The user's email address.
        role: The user's role.
        id: Alias for user_id.
    """

    def __init__(self, user_id: int, email: str, role: UserRole, name: str = ""):
        self.user_id = user_id
        self.id = user_id
        self.email = email
        self.role = role
        self.name = name or email.split("@")[0]


def get_current_user(request: Request, db: DbSession) -> TokenData:
    """Get the current authenticated user from the Bearer token.

    The user must still exist and be active; a token minted before an
    account was disabled stops working immediately.
    """
    from cafe_pos.models.user import User

    payload = None
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1]
        if token:
            payload = decode_access_token(token)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    email = payload.get("email")
    role = payload.get("role")

    if user_id is None or email is None or role is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    try:
        UserRole(role)
        user_pk = int(user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    user = db.get(User, user_pk)
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User account is disabled",
        )

    # The stored role wins over the token so a role change applies at once
    return TokenData(user_id=user.id, email=user.email, role=user.role, name=user.name or "")


CurrentUser = Annotated[TokenData, Depends(get_current_user)]


def require_permission(permission: Permission):
    """Dependency factory that rejects callers whose role lacks ``permission``."""

    def permission_checker(current_user: CurrentUser) -> TokenData:
        if not has_permission(current_user.role, permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role {current_user.role.value} lacks permission {permission.value}",
            )
        return current_user

    return permission_checker
