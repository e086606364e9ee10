"""Order lifecycle: creation, payment, cancellation and stock queries."""

import logging
from typing import Iterable, Protocol, Union

from .dto import (
    CannotCancelOrderError,
    Item,
    LomsError,
    Order,
    OrderCancelledError,
    OrderNotAwaitingPaymentError,
    OrderNotFoundError,
    OrderStatus,
    ReserveFailedError,
)
from .producer import ProducerMessage

_log = logging.getLogger(__name__)


class OrderRepository(Protocol):
    def create_order(self, user_id: int, items: Iterable[Item]) -> int: ...

    def update_order_status(self, order_id: int, status: Union[OrderStatus, str]) -> None: ...

    def get_order_by_id(self, order_id: int) -> Order: ...


class StockRepository(Protocol):
    def reserve_stocks(self, items: Iterable[Item]) -> None: ...

    def remove_reservation(self, sku: int, count: int) -> None: ...

    def cancel_reservation(self, sku: int, count: int) -> None: ...

    def get_available_stock(self, sku: int) -> int: ...


class OrderEventProducer(Protocol):
    def send_message(self, message: ProducerMessage) -> tuple[int, int]: ...


class Usecase:
    """Business rules of orders and stock reservations."""

    def __init__(
        self,
        order_repo: OrderRepository,
        stock_repo: StockRepository,
        order_event_producer: OrderEventProducer,
        topic: str,
    ) -> None:
        self._orders = order_repo
        self._stocks = stock_repo
        self._producer = order_event_producer
        self._topic = topic

    def _produce_order_event(self, order_id: int, message: str) -> None:
        # Event delivery is best effort and never fails the operation.
        event = ProducerMessage(topic=self._topic, key=str(order_id), value=message)
        try:
            self._producer.send_message(event)
        except Exception as exc:  # noqa: BLE001
            _log.warning("order event for %s not sent: %s", order_id, exc)

    def order_create(self, user_id: int, items: Iterable[Item]) -> int:
        """Create an order and reserve its stock; return the order id."""
        items = list(items)
        order_id = self._orders.create_order(user_id, items)
        self._produce_order_event(order_id, "create new order")

        try:
            self._stocks.reserve_stocks(items)
        except Exception as exc:
            _log.warning("failed to reserve stocks: %s", exc)
            try:
                self._orders.update_order_status(order_id, OrderStatus.FAILED)
            except Exception as update_exc:  # noqa: BLE001
                _log.warning("failed to mark order %s failed: %s", order_id, update_exc)
            self._produce_order_event(order_id, "reserve stocks for order failed")
            raise ReserveFailedError() from exc

        try:
            self._orders.update_order_status(order_id, OrderStatus.AWAITING_PAYMENT)
        except Exception as exc:
            raise LomsError(f"update order status {exc}") from exc

        self._produce_order_event(order_id, "awaiting payment")
        return order_id

    def order_info(self, order_id: int) -> Order:
        try:
            return self._orders.get_order_by_id(order_id)
        except Exception as exc:
            raise OrderNotFoundError() from exc

    def order_pay(self, order_id: int) -> None:
        """Pay an order awaiting payment; paying a paid order does nothing."""
        order = self._orders.get_order_by_id(order_id)

        if order.status == OrderStatus.PAYED:
            return
        if order.status == OrderStatus.CANCELLED:
            raise OrderCancelledError()
        if order.status != OrderStatus.AWAITING_PAYMENT:
            raise OrderNotAwaitingPaymentError()

        for item in order.items:
            self._stocks.remove_reservation(item.sku, item.count)

        self._orders.update_order_status(order_id, OrderStatus.PAYED)
        self._produce_order_event(order_id, "order payed")

    def order_cancel(self, order_id: int) -> None:
        """Cancel an unpaid order and release its reservations."""
        try:
            order = self._orders.get_order_by_id(order_id)
        except Exception as exc:
            raise OrderNotFoundError() from exc

        if order.status == OrderStatus.CANCELLED:
            return
        if order.status == OrderStatus.PAYED:
            raise CannotCancelOrderError()

        for item in order.items:
            self._stocks.cancel_reservation(item.sku, item.count)

        self._orders.update_order_status(order_id, OrderStatus.CANCELLED)
        self._produce_order_event(order_id, "order canceled")

    def stocks_info(self, sku: int) -> int:
        return self._stocks.get_available_stock(sku)