"""Order repository backed by an SQL database (DB-API, sqlite3 dialect)."""

import sqlite3
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from .dto import Item, Order, OrderNotFoundError, OrderStatus

_SCHEMA = """
CREATE TABLE IF NOT EXISTS orders (
    id      INTEGER PRIMARY KEY AUTOINCREMENT,
    status  TEXT    NOT NULL,
    user_id INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS order_items (
    order_id    INTEGER NOT NULL REFERENCES orders (id),
    sku_id      INTEGER NOT NULL,
    items_count INTEGER NOT NULL,
    PRIMARY KEY (order_id, sku_id)
);
"""

_CREATE_ORDER = "INSERT INTO orders (status, user_id) VALUES (?, ?)"

_GET_ORDER_INFO = "SELECT id, status, user_id FROM orders WHERE id = ?"

_GET_ORDER_ITEMS = "SELECT sku_id, items_count FROM order_items WHERE order_id = ?"

_INSERT_ORDER_ITEM = """
INSERT INTO order_items (order_id, sku_id, items_count)
VALUES (?, ?, ?)
ON CONFLICT (order_id, sku_id) DO UPDATE
    SET items_count = order_items.items_count + excluded.items_count
"""

_UPDATE_ORDER_STATUS = "UPDATE orders SET status = ? WHERE id = ?"


def create_schema(connection: sqlite3.Connection) -> None:
    """Create the orders and order_items tables if they are missing."""
    connection.executescript(_SCHEMA)
    connection.commit()


@dataclass(frozen=True)
class OrderRow:
    id: int
    status: str
    user_id: int


@dataclass(frozen=True)
class OrderItemRow:
    sku_id: int
    items_count: int


class Queries:
    """Plain statements over a connection; transactions are the caller's."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._db = connection

    def create_order(self, status: Union[OrderStatus, str], user_id: int) -> int:
        cursor = self._db.execute(_CREATE_ORDER, (str(status), user_id))
        return cursor.lastrowid

    def get_order_info(self, order_id: int) -> Optional[OrderRow]:
        """Return the order row, or None when there is no such order."""
        row = self._db.execute(_GET_ORDER_INFO, (order_id,)).fetchone()
        if row is None:
            return None
        return OrderRow(id=row[0], status=row[1], user_id=row[2])

    def get_order_items(self, order_id: int) -> list[OrderItemRow]:
        rows = self._db.execute(_GET_ORDER_ITEMS, (order_id,)).fetchall()
        return [OrderItemRow(sku_id=sku, items_count=count) for sku, count in rows]

    def insert_order_item(self, order_id: int, sku_id: int, items_count: int) -> None:
        """Add an item; an existing SKU in the order has its count increased."""
        self._db.execute(_INSERT_ORDER_ITEM, (order_id, sku_id, items_count))

    def update_order_status(self, order_id: int, status: Union[OrderStatus, str]) -> None:
        self._db.execute(_UPDATE_ORDER_STATUS, (str(status), order_id))


class RepositoryDB:
    """Order repository that runs each operation in its own transaction."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._read = connection
        self._write = connection

    def create_order(self, user_id: int, items: Iterable[Item]) -> int:
        with self._write:
            queries = Queries(self._write)
            order_id = queries.create_order(OrderStatus.NEW, user_id)
            for item in items:
                queries.insert_order_item(order_id, item.sku, item.count)
        return order_id

    def update_order_status(self, order_id: int, status: Union[OrderStatus, str]) -> None:
        with self._write:
            Queries(self._write).update_order_status(order_id, status)

    def get_order_by_id(self, order_id: int) -> Order:
        """Load an order with its items sorted by SKU."""
        with self._write:
            queries = Queries(self._write)
            info = queries.get_order_info(order_id)
            if info is None:
                raise OrderNotFoundError()
            rows = queries.get_order_items(order_id)
        items = sorted(
            (Item(sku=row.sku_id, count=row.items_count) for row in rows),
            key=lambda item: item.sku,
        )
        return Order(
            order_id=order_id,
            status=OrderStatus(info.status),
            user=info.user_id,
            items=items,
        )