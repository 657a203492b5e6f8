"""Order status state machine.

The transition table says which role may move an order from which status to
which other status. Lookups are pure and fail closed: an unknown status, an
unknown role or a missing entry all mean "not allowed".

    current    | RECEPTION  | CASHIER             | CHEF
    -----------+------------+---------------------+------------------
    PENDING    | CANCELLED  | CONFIRMED,CANCELLED |
    CONFIRMED  |            | PAID, CANCELLED     |
    PAID       |            | CANCELLED           | PREPARING
    PREPARING  |            |                     | READY, CANCELLED
    READY      | COMPLETED  | COMPLETED           | COMPLETED
    COMPLETED  |            |                     |
    CANCELLED  |            |                     |

SUPER_ADMIN observes only and has no entries.
"""

from typing import Any, Dict, FrozenSet, Optional, Type, TypeVar, Union

from cafe_pos.core.rbac import UserRole
from cafe_pos.models.order import OrderStatus

E = TypeVar("E", OrderStatus, UserRole)

S = OrderStatus
R = UserRole

ORDER_TRANSITIONS: Dict[OrderStatus, Dict[UserRole, FrozenSet[OrderStatus]]] = {
    S.PENDING: {
        R.RECEPTION: frozenset({S.CANCELLED}),
        R.CASHIER: frozenset({S.CONFIRMED, S.CANCELLED}),
    },
    S.CONFIRMED: {
        R.CASHIER: frozenset({S.PAID, S.CANCELLED}),
    },
    S.PAID: {
        R.CASHIER: frozenset({S.CANCELLED}),
        R.CHEF: frozenset({S.PREPARING}),
    },
    S.PREPARING: {
        R.CHEF: frozenset({S.READY, S.CANCELLED}),
    },
    S.READY: {
        R.RECEPTION: frozenset({S.COMPLETED}),
        R.CASHIER: frozenset({S.COMPLETED}),
        R.CHEF: frozenset({S.COMPLETED}),
    },
    S.COMPLETED: {},
    S.CANCELLED: {},
}

TERMINAL_STATUSES: FrozenSet[OrderStatus] = frozenset({S.COMPLETED, S.CANCELLED})

# Statuses each role works from on its order list
ROLE_VISIBLE_STATUSES: Dict[UserRole, Optional[FrozenSet[OrderStatus]]] = {
    R.RECEPTION: None,
    R.SUPER_ADMIN: None,
    R.CASHIER: frozenset({S.PENDING, S.CONFIRMED, S.PAID}),
    R.CHEF: frozenset({S.PAID, S.PREPARING, S.READY}),
}

KITCHEN_STATUSES: FrozenSet[OrderStatus] = frozenset({S.PAID, S.PREPARING, S.READY})


def coerce_enum(enum_cls: Type[E], value: Union[E, str, None]) -> Optional[E]:
    """Return the enum member for ``value`` or None if it is not one."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


def allowed_transitions(
    current: Union[OrderStatus, str], role: Union[UserRole, str]
) -> FrozenSet[OrderStatus]:
    """Statuses ``role`` may move an order to from ``current``."""
    status = coerce_enum(OrderStatus, current)
    user_role = coerce_enum(UserRole, role)
    if status is None or user_role is None:
        return frozenset()
    return ORDER_TRANSITIONS.get(status, {}).get(user_role, frozenset())


def is_valid_transition(
    current: Union[OrderStatus, str],
    target: Union[OrderStatus, str],
    role: Union[UserRole, str],
) -> bool:
    """Whether ``role`` may move an order from ``current`` to ``target``."""
    target_status = coerce_enum(OrderStatus, target)
    if target_status is None:
        return False
    return target_status in allowed_transitions(current, role)


validate_transition = is_valid_transition


def is_terminal(status: Union[OrderStatus, str]) -> bool:
    return coerce_enum(OrderStatus, status) in TERMINAL_STATUSES


def transition_side_effects(
    current: OrderStatus, target: OrderStatus, role: UserRole, user_id: int
) -> Dict[str, Any]:
    """Columns written alongside the status for role-specific transitions.

    PENDING -> CONFIRMED by a cashier records the confirming user and
    PAID -> PREPARING by a chef records the preparing user. Both happen at
    most once per order because neither source status is ever re-entered.
    """
    if (current, target, role) == (S.PENDING, S.CONFIRMED, R.CASHIER):
        return {"confirmed_by_id": user_id}
    if (current, target, role) == (S.PAID, S.PREPARING, R.CHEF):
        return {"prepared_by_id": user_id}
    return {}


def visible_statuses(role: Union[UserRole, str]) -> Optional[FrozenSet[OrderStatus]]:
    """Statuses shown on ``role``'s order list; None means every status."""
    user_role = coerce_enum(UserRole, role)
    if user_role is None:
        return frozenset()
    return ROLE_VISIBLE_STATUSES.get(user_role, frozenset())
