from enum import Enum

from .errors import InvalidStatusTransition


class OrderStatus(str, Enum):
    """Lifecycle of an order; values match what the storefront UI displays."""
    PENDING = "Pending"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}


def is_terminal(status: OrderStatus) -> bool:
    return not ALLOWED_TRANSITIONS[status]


def check_transition(current: OrderStatus, requested: OrderStatus) -> None:
    """Raise InvalidStatusTransition unless ``current -> requested`` moves forward."""
    current = OrderStatus(current)
    requested = OrderStatus(requested)
    if requested not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStatusTransition(current.value, requested.value)
