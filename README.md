# loms

`loms` manages orders and the stock behind them. It follows an order from creation until it
is paid for or cancelled. Along the way it reserves, releases and writes off stock. Each time
an order changes state, it hands an event message to a producer that you supply.

## Modules

- `loms.dto`: the shared domain types.
  - `Item` pairs a SKU with a count.
  - `Order` holds an order's id, status, user and items.
  - `OrderStatus` lists the states an order can be in: `new`, `awaiting payment`, `failed`,
    `payed` and `cancelled`.
  - The domain errors all derive from `LomsError`: `ReserveFailedError`,
    `OrderNotFoundError`, `OrderCancelledError`, `OrderNotAwaitingPaymentError` and
    `CannotCancelOrderError`.
- `loms.storage`: in-memory, thread-safe storage.
  - `OrderStorage` hands out order ids starting at 1 and keeps each order as a
    `StoredOrder`.
  - `StocksStorage` keeps one `Stock` per SKU, with `total_count` and `reserved`.
  - `reserve_stocks` is all or nothing. If any SKU is missing or short of free units,
    `NotEnoughStockError` is raised and nothing is reserved.
  - `remove_reservation` writes units off both the reserve and the total.
  - `cancel_reservation` returns reserved units to the free pool. Both of these raise
    `ReservationNotFoundError` when the reserve is too small.
  - `get_available_stock` raises `SkuNotFoundError` for an unknown SKU.
  - `load_stocks` parses a JSON array of `{"sku", "total_count", "reserved"}` objects.
- `loms.repository`: order persistence through a `sqlite3` connection.
  - `create_schema` creates the `orders` and `order_items` tables.
  - `Queries` runs the individual statements. Inserting a SKU that the order already has
    adds to its count.
  - `RepositoryDB` runs each operation in a transaction.
  - `RepositoryDB.get_order_by_id` returns items sorted by SKU and raises
    `OrderNotFoundError` for an unknown id.
- `loms.usecase`: `Usecase` combines an order repository, a stock repository, an event
  producer and a topic name.
  - `order_create` creates the order and reserves its stock. If the reservation fails, the
    order is marked `failed` and `ReserveFailedError` is raised. Otherwise the order moves
    to `awaiting payment`.
  - `order_pay` writes off the reserved stock and marks the order `payed`.
  - `order_cancel` releases the reserved stock and marks the order `cancelled`.
  - `order_info` returns the order and raises `OrderNotFoundError` when it cannot be
    loaded.
  - `stocks_info` returns the number of free units.
  - Events are sent as `ProducerMessage` objects, keyed by order id, through the producer's
    `send_message`. A failure to send is logged and does not fail the operation.
- `loms.service`: `Service` is the request-facing layer. It turns use-case errors into
  `StatusError` exceptions that carry a `StatusCode`:
  - not found → `NOT_FOUND`;
  - a cancelled order, an order not awaiting payment, an order that cannot be cancelled,
    or any failure in `order_create` → `FAILED_PRECONDITION`;
  - anything else → `INTERNAL`.

  `order_info` returns an `OrderInfoResponse`.
- `loms.producer`: producer settings and the event message type.
  - `prepare_config(*options)` starts from these defaults: `Partitioner.HASH`,
    `RequiredAcks.WAIT_FOR_ALL`, not idempotent, 100 retries 0.005 s apart, one open
    request, `Compression.GZIP`, and successes and errors both returned.
  - Options are applied in order: `with_producer_partitioner`, `with_required_acks`,
    `with_idempotent`, `with_max_retries`, `with_retry_backoff`,
    `with_max_open_requests`, `with_producer_flush_messages` and
    `with_producer_flush_frequency`.
  - `BrokerConfig` holds broker addresses.
- `loms.config`: `parse_config(text)` and `read_config(path)` load the YAML
  configuration.
  - Called without a path, `read_config` uses the `CONFIG_FILE` environment variable.
  - Problems are reported as `ConfigError`.
- `loms.logger`: a process-wide logger that writes one JSON object per line to stdout.
  - It logs at warning level by default.
  - `bind_logger` overrides it inside a `with` block.
  - `info`, `warn` and `error` take keyword fields.
- `loms.metrics`: `Counter` and `Histogram` with labels.
  - The service metrics are updated by `request_counter_inc`, `request_handler_duration`
    and `analyze_file_content_duration`.
  - `render()` returns all of them in the text exposition format.
- `loms.middlewares`: unary call middlewares that take a request, a `CallInfo` and the
  next handler.
  - `logging_middleware` logs the call.
  - `validate_middleware` calls the request's `validate_all` and raises
    `INVALID_ARGUMENT` if it fails.
  - `metrics_middleware` counts calls by method and status code and records their
    duration.
  - `tracing_middleware` puts the `x-trace-id` metadata value into `CURRENT_TRACE_ID`
    while the call runs. `trace_id_from_metadata` checks that the value is valid.
  - `chain(*middlewares)` composes them, with the first one given running outermost.

## Order lifecycle

```
new ──reserve ok──▶ awaiting payment ──pay──▶ payed
 │                        │
 └─reserve failed─▶ failed └──cancel──▶ cancelled
```

- Paying an order that is already `payed` does nothing.
- Paying a `cancelled` order raises `OrderCancelledError`.
- Paying an order in any other state raises `OrderNotAwaitingPaymentError`.
- Cancelling an order that is already `cancelled` does nothing.
- Cancelling a `payed` order raises `CannotCancelOrderError`.

## Example

```python
from loms.dto import Item
from loms.storage import OrderStorage, Stock, StocksStorage
from loms.usecase import Usecase


class PrintingProducer:
    def send_message(self, message):
        print(message.topic, message.key, message.value)
        return 0, 0


stocks = StocksStorage([Stock(sku=123, total_count=10)])
usecase = Usecase(OrderStorage(), stocks, PrintingProducer(), "loms.order-events")

order_id = usecase.order_create(1, [Item(sku=123, count=2)])
print(usecase.stocks_info(123))              # 8
usecase.order_pay(order_id)
print(usecase.order_info(order_id).status)   # payed
```

To store orders in a database instead of in memory:

```python
import sqlite3

from loms.repository import RepositoryDB, create_schema

connection = sqlite3.connect(":memory:")
create_schema(connection)
orders = RepositoryDB(connection)
```

## Configuration

The YAML file has this shape:

```yaml
service:
  host: localhost
  http_port: 8080
  grpc_port: 50051
  workers: 4
jaeger:
  host: localhost
  port: 6831
db_master:
  host: localhost
  port: 5432
  user: user
  password: password
  db_name: loms
db_replica:
  host: localhost
  port: 5433
  user: user
  password: password
  db_name: loms
kafka:
  host: localhost
  port: 9092
  order_topic: loms.order-events
  brokers: localhost:9092
```

Missing keys keep their defaults: empty strings and zeros. `Config.master_dsn()` builds a
`postgresql://` connection string from the `db_master` section, with `sslmode=disable`.

## What the package does not do

- It has no command and starts no server. There is no RPC or HTTP endpoint; `Service` and
  the middlewares are plain Python callables for you to mount.
- It does not talk to a message broker. `loms.producer` only describes producer settings
  and messages. You pass `Usecase` any object with a `send_message(message)` method.
- It does not export traces. Trace ids only travel through `CURRENT_TRACE_ID`.
- `RepositoryDB` works with `sqlite3` connections. Building a connection from
  `master_dsn()` is left to you.

## Running the tests

Install the `test` extra and run `pytest` from the project root.