"""Request-level API over the order use cases, reporting RPC status codes."""

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterable, Optional, Protocol

from .dto import (
    CannotCancelOrderError,
    Item,
    Order,
    OrderCancelledError,
    OrderNotAwaitingPaymentError,
    OrderNotFoundError,
)

_log = logging.getLogger(__name__)


class StatusCode(IntEnum):
    """RPC status codes."""

    OK = 0
    CANCELLED = 1
    UNKNOWN = 2
    INVALID_ARGUMENT = 3
    DEADLINE_EXCEEDED = 4
    NOT_FOUND = 5
    ALREADY_EXISTS = 6
    PERMISSION_DENIED = 7
    RESOURCE_EXHAUSTED = 8
    FAILED_PRECONDITION = 9
    ABORTED = 10
    OUT_OF_RANGE = 11
    UNIMPLEMENTED = 12
    INTERNAL = 13
    UNAVAILABLE = 14
    DATA_LOSS = 15
    UNAUTHENTICATED = 16


class StatusError(Exception):
    """An error carrying an RPC status code."""

    def __init__(self, code: StatusCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return f"rpc error: code = {self.code.name} desc = {self.message}"


@dataclass
class OrderInfoResponse:
    status: str
    user: int
    items: list[Item] = field(default_factory=list)


class LomsUsecase(Protocol):
    def order_create(self, user_id: int, items: Iterable[Item]) -> int: ...

    def order_info(self, order_id: int) -> Order: ...

    def order_pay(self, order_id: int) -> None: ...

    def order_cancel(self, order_id: int) -> None: ...

    def stocks_info(self, sku: int) -> int: ...


class Service:
    """Maps use-case outcomes onto responses and status errors."""

    def __init__(self, usecase: LomsUsecase) -> None:
        self._usecase = usecase

    def order_info(self, order_id: int) -> OrderInfoResponse:
        try:
            order = self._usecase.order_info(order_id)
        except Exception as exc:
            raise StatusError(StatusCode.NOT_FOUND, str(exc)) from exc
        return OrderInfoResponse(
            status=str(order.status),
            user=order.user,
            items=list(order.items or ()),
        )

    def order_create(self, user: int, items: Optional[Iterable[Item]]) -> int:
        try:
            return self._usecase.order_create(user, list(items or ()))
        except Exception as exc:
            _log.warning("usecase error : order create : %s, userID = %s", exc, user)
            raise StatusError(StatusCode.FAILED_PRECONDITION, str(exc)) from exc

    def order_pay(self, order_id: int) -> None:
        try:
            self._usecase.order_pay(order_id)
        except Exception as exc:
            _log.warning("usecase error : order pay : %s for orderId = %s", exc, order_id)
            if isinstance(exc, OrderNotFoundError):
                code = StatusCode.NOT_FOUND
            elif isinstance(exc, (OrderCancelledError, OrderNotAwaitingPaymentError)):
                code = StatusCode.FAILED_PRECONDITION
            else:
                code = StatusCode.INTERNAL
            raise StatusError(code, str(exc)) from exc

    def order_cancel(self, order_id: int) -> None:
        try:
            self._usecase.order_cancel(order_id)
        except Exception as exc:
            if isinstance(exc, OrderNotFoundError):
                code = StatusCode.NOT_FOUND
            elif isinstance(exc, CannotCancelOrderError):
                code = StatusCode.FAILED_PRECONDITION
            else:
                code = StatusCode.INTERNAL
            raise StatusError(code, str(exc)) from exc

    def stocks_info(self, sku: int) -> int:
        try:
            return self._usecase.stocks_info(sku)
        except Exception as exc:
            _log.warning("usecase : stocksInfo : %s", exc)
            raise StatusError(StatusCode.INTERNAL, str(exc)) from exc