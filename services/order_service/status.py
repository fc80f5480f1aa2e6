"""Order state machine.

Statuses only move along the edges in ``TRANSITIONS`` and only for the actors
listed on each edge. Confirmation and refunds are system-driven: the former
follows the payment provider, the latter the refund processor.
"""
import enum

from shared.errors import InvalidTransitionError, ValidationError
from shared.utils import utcnow


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class Actor(str, enum.Enum):
    CUSTOMER = "customer"
    SELLER = "seller"
    ADMIN = "admin"
    SYSTEM = "system"


TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REFUNDED})

CUSTOMER_STATUS_LABELS = {
    OrderStatus.PENDING: "Awaiting payment",
    OrderStatus.CONFIRMED: "Processing",
    OrderStatus.PROCESSING: "Preparing for shipment",
    OrderStatus.SHIPPED: "Shipped",
    OrderStatus.DELIVERED: "Delivered",
    OrderStatus.CANCELLED: "Cancelled",
    OrderStatus.REFUNDED: "Refunded",
}

_S = OrderStatus
_ANYONE = frozenset({Actor.CUSTOMER, Actor.ADMIN, Actor.SYSTEM})
_ADMIN = frozenset({Actor.ADMIN})
# Store owners push their own orders through fulfilment
_STAFF = frozenset({Actor.SELLER, Actor.ADMIN})
_SYSTEM = frozenset({Actor.SYSTEM})

TRANSITIONS: dict[tuple[OrderStatus, OrderStatus], frozenset[Actor]] = {
    (_S.PENDING, _S.CONFIRMED): _SYSTEM,
    (_S.PENDING, _S.CANCELLED): _ANYONE,
    (_S.CONFIRMED, _S.PROCESSING): _STAFF,
    (_S.CONFIRMED, _S.CANCELLED): _ADMIN,
    (_S.PROCESSING, _S.SHIPPED): _STAFF,
    (_S.PROCESSING, _S.CANCELLED): _ADMIN,
    (_S.SHIPPED, _S.DELIVERED): _STAFF,
    # Refund processor only; also the one way out of delivered/cancelled
    (_S.CONFIRMED, _S.REFUNDED): _SYSTEM,
    (_S.PROCESSING, _S.REFUNDED): _SYSTEM,
    (_S.SHIPPED, _S.REFUNDED): _SYSTEM,
    (_S.DELIVERED, _S.REFUNDED): _SYSTEM,
    (_S.CANCELLED, _S.REFUNDED): _SYSTEM,
}


def parse_status(value) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        valid = ", ".join(s.value for s in OrderStatus)
        raise ValidationError(f"Invalid status '{value}'. Expected one of: {valid}") from None


def allowed_targets(current, actor: Actor) -> list[OrderStatus]:
    current = OrderStatus(current)
    return [target for (source, target), actors in TRANSITIONS.items() if source == current and actor in actors]


def can_transition(current, target, actor: Actor) -> bool:
    return actor in TRANSITIONS.get((OrderStatus(current), OrderStatus(target)), frozenset())


def check_transition(current, target, actor: Actor) -> None:
    current, target = OrderStatus(current), OrderStatus(target)
    if can_transition(current, target, actor):
        return
    if target == OrderStatus.REFUNDED and actor != Actor.SYSTEM:
        raise InvalidTransitionError("Orders are refunded through the refund endpoint, not a status update")
    if target == OrderStatus.CONFIRMED and actor != Actor.SYSTEM:
        raise InvalidTransitionError("Orders are confirmed by the payment provider, not a status update")
    if current in TERMINAL_STATUSES:
        raise InvalidTransitionError(f"Order is already {current.value} and can no longer change status")
    if (current, target) in TRANSITIONS:
        raise InvalidTransitionError(f"A {actor.value} cannot move an order from {current.value} to {target.value}")
    raise InvalidTransitionError(f"Cannot move an order from {current.value} to {target.value}")


def apply_transition(order, target, actor: Actor) -> str | None:
    """Move `order` to `target`, stamping lifecycle timestamps.

    Returns the previous status, or None when the order already had `target`
    (a no-op that must not notify anyone).
    """
    target = OrderStatus(target)
    previous = order.status
    if previous == target.value:
        return None

    check_transition(previous, target, actor)
    now = utcnow()
    order.status = target.value
    order.updated_at = now
    if target == OrderStatus.SHIPPED:
        order.fulfilled_at = now
    elif target == OrderStatus.CANCELLED:
        order.cancelled_at = now
    return previous
