"""Domain errors raised by the service layer.

Services raise these instead of HTTPException so they stay usable outside a
request. ``cafe_pos.main`` registers a handler that turns them into JSON
responses of the form ``{"detail": ..., "error": ..., "field": ...}``.
"""

from typing import Any, Dict, Optional


class CafePosError(Exception):
    """Base class for every expected, typed failure of a domain operation."""

    status_code = 400
    code = "error"

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "error": self.code, "field": self.field}


class ValidationError(CafePosError):
    """Malformed input: bad quantity, missing customer, unavailable item, unknown enum value."""

    status_code = 422
    code = "validation_error"


class NotFoundError(CafePosError):
    """A referenced id does not exist."""

    status_code = 404
    code = "not_found"

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class ConflictError(CafePosError):
    """The entity's current state no longer matches what the caller assumed."""

    status_code = 409
    code = "conflict"


class InvalidTransitionError(ConflictError):
    """The order status change is not permitted for the acting role."""

    code = "invalid_transition"

    def __init__(self, current: str, target: str, role: str):
        self.current = current
        self.target = target
        self.role = role
        super().__init__(
            f"Cannot change order from {current} to {target} as {role}",
            field="status",
        )


class PaymentExistsError(ConflictError):
    """A payment was already recorded for the order."""

    code = "payment_exists"

    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"Payment already exists for order {order_id}", field="order_id")
