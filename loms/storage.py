"""In-memory order and stock storages."""

import json
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Iterable, Optional, Union

from .dto import Item, LomsError, Order, OrderNotFoundError, OrderStatus


class NotEnoughStockError(LomsError):
    default_message = "not enough stock available"


class ReservationNotFoundError(LomsError):
    default_message = "reservation not found"


class SkuNotFoundError(LomsError):
    default_message = "sku not found"


@dataclass
class StoredOrder:
    """An order record held by :class:`OrderStorage`."""

    id: int
    user_id: int
    status: OrderStatus
    items: list[Item]
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)


class OrderStorage:
    """Thread-safe in-memory order repository with sequential ids from 1."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._orders: dict[int, StoredOrder] = {}
        self._next_id = 1

    def create_order(self, user_id: int, items: Iterable[Item]) -> int:
        with self._lock:
            now = datetime.now()
            order = StoredOrder(
                id=self._next_id,
                user_id=user_id,
                status=OrderStatus.NEW,
                items=list(items),
                created_at=now,
                updated_at=now,
            )
            self._orders[order.id] = order
            self._next_id += 1
            return order.id

    def update_order_status(self, order_id: int, status: Union[OrderStatus, str]) -> None:
        with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                raise OrderNotFoundError()
            order.status = OrderStatus(status)
            order.updated_at = datetime.now()

    def get_order_by_id(self, order_id: int) -> Order:
        with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                raise OrderNotFoundError()
            return Order(user=order.user_id, status=order.status, items=list(order.items))


@dataclass
class Stock:
    """Stock level of one SKU: total units on hand and units reserved."""

    sku: int
    total_count: int = 0
    reserved: int = 0


class StocksStorage:
    """Thread-safe in-memory stock levels with reservations."""

    def __init__(self, stocks: Optional[Iterable[Stock]] = None) -> None:
        self._lock = threading.Lock()
        self._stocks: dict[int, Stock] = {s.sku: replace(s) for s in stocks or ()}

    def add_stock(self, stock: Stock) -> None:
        with self._lock:
            self._stocks[stock.sku] = replace(stock)

    def reserve_stocks(self, items: Iterable[Item]) -> None:
        """Reserve all items, or none if any SKU lacks free units."""
        items = list(items)
        with self._lock:
            for item in items:
                stock = self._stocks.get(item.sku)
                if stock is None or stock.total_count - stock.reserved < item.count:
                    raise NotEnoughStockError()
            for item in items:
                self._stocks[item.sku].reserved += item.count

    def remove_reservation(self, sku: int, count: int) -> None:
        """Ship reserved units: drop them from both reserve and total."""
        with self._lock:
            stock = self._stocks.get(sku)
            if stock is None or stock.reserved < count or stock.total_count < count:
                raise ReservationNotFoundError()
            stock.reserved -= count
            stock.total_count -= count

    def cancel_reservation(self, sku: int, count: int) -> None:
        """Release reserved units back to the free pool."""
        with self._lock:
            stock = self._stocks.get(sku)
            if stock is None or stock.reserved < count:
                raise ReservationNotFoundError()
            stock.reserved -= count

    def get_available_stock(self, sku: int) -> int:
        with self._lock:
            stock = self._stocks.get(sku)
            if stock is None:
                raise SkuNotFoundError()
            available = stock.total_count - stock.reserved
            if available < 0:
                raise NotEnoughStockError()
            return available


def load_stocks(data: Union[str, bytes]) -> list[Stock]:
    """Parse a JSON array of ``{"sku", "total_count", "reserved"}`` objects."""
    parsed = json.loads(data)
    if not isinstance(parsed, list):
        raise ValueError("stock data must be a JSON array")
    stocks = []
    for entry in parsed:
        if not isinstance(entry, dict):
            raise ValueError("stock entry must be a JSON object")
        stocks.append(
            Stock(
                sku=int(entry.get("sku", 0)),
                total_count=int(entry.get("total_count", 0)),
                reserved=int(entry.get("reserved", 0)),
            )
        )
    return stocks