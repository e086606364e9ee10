"""Domain objects and errors shared by the order management layers."""

from dataclasses import dataclass, field
from enum import Enum


class OrderStatus(str, Enum):
    """Lifecycle state of an order."""

    NEW = "new"
    AWAITING_PAYMENT = "awaiting payment"
    FAILED = "failed"
    PAYED = "payed"
    CANCELLED = "cancelled"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Item:
    """A quantity of one stock-keeping unit."""

    sku: int
    count: int


@dataclass
class Order:
    """An order as seen by the business logic."""

    order_id: int = 0
    status: OrderStatus = OrderStatus.NEW
    user: int = 0
    items: list[Item] = field(default_factory=list)


class LomsError(Exception):
    """Base class for order management errors."""

    default_message = "order management error"

    def __init__(self, message: "str | None" = None) -> None:
        super().__init__(message if message is not None else self.default_message)


class ReserveFailedError(LomsError):
    default_message = "failed to reserve stocks"


class OrderNotFoundError(LomsError):
    default_message = "order not found"


class OrderCancelledError(LomsError):
    default_message = "order is cancelled"


class OrderNotAwaitingPaymentError(LomsError):
    default_message = "order is not awaiting payment"


class CannotCancelOrderError(LomsError):
    default_message = "cannot cancel order"