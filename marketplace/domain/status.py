# marketplace/domain/status.py
from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    CUSTOMER = "customer"
    SELLER = "seller"
    SYSTEM = "system"


class Availability(str, Enum):
    AVAILABLE = "Available"
    OUT_OF_STOCK = "OutOfStock"


class OrderStatus(str, Enum):
    PENDING = "Pending"
    PLACED = "Placed"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELED = "Canceled"


class PaymentStatus(str, Enum):
    UNPAID = "Unpaid"
    PENDING = "Pending"
    PAID = "Paid"


TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELED})
ACTIVE_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.PLACED, OrderStatus.SHIPPED})

PAYMENT_METHODS = ("Cash on Delivery", "Cash on Pickup", "GCash")
DEFAULT_PAYMENT_METHOD = "Cash on Delivery"


@dataclass(frozen=True)
class Transition:
    event: str
    sources: frozenset
    target: OrderStatus
    actors: frozenset


#jedyne krawedzie maszyny stanow, wszystko inne -> InvalidTransition
TRANSITIONS = {
    "place": Transition(
        "place",
        frozenset({OrderStatus.PENDING}),
        OrderStatus.PLACED,
        frozenset({Role.CUSTOMER}),
    ),
    "cancel": Transition(
        "cancel",
        frozenset({OrderStatus.PENDING, OrderStatus.PLACED}),
        OrderStatus.CANCELED,
        frozenset({Role.CUSTOMER, Role.SELLER}),
    ),
    "ship": Transition(
        "ship",
        frozenset({OrderStatus.PLACED}),
        OrderStatus.SHIPPED,
        frozenset({Role.SELLER}),
    ),
    "deliver": Transition(
        "deliver",
        frozenset({OrderStatus.SHIPPED}),
        OrderStatus.DELIVERED,
        frozenset({Role.SELLER}),
    ),
}

#paymentStatus idzie tylko do przodu
PAYMENT_TRANSITIONS = {
    PaymentStatus.UNPAID: frozenset({PaymentStatus.PENDING, PaymentStatus.PAID}),
    PaymentStatus.PENDING: frozenset({PaymentStatus.PAID}),
    PaymentStatus.PAID: frozenset(),
}
