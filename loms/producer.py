"""Message producer configuration built from functional options."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Callable

COMPRESSION_LEVEL_DEFAULT = -1000


@dataclass
class BrokerConfig:
    """Addresses of the message brokers."""

    brokers: list[str] = field(default_factory=list)


class Partitioner(Enum):
    """How a message's partition is chosen."""

    MANUAL = "manual"
    RANDOM = "random"
    ROUND_ROBIN = "round_robin"
    HASH = "hash"


class RequiredAcks(IntEnum):
    """Acknowledgement the producer waits for."""

    NO_RESPONSE = 0
    WAIT_FOR_LOCAL = 1
    WAIT_FOR_ALL = -1


class Compression(Enum):
    NONE = "none"
    GZIP = "gzip"
    SNAPPY = "snappy"
    LZ4 = "lz4"
    ZSTD = "zstd"


@dataclass
class ProducerConfig:
    """Producer settings; durations are in seconds."""

    partitioner: Partitioner = Partitioner.HASH
    required_acks: RequiredAcks = RequiredAcks.WAIT_FOR_ALL
    idempotent: bool = False
    retry_max: int = 100
    retry_backoff: float = 0.005
    max_open_requests: int = 1
    compression: Compression = Compression.GZIP
    compression_level: int = COMPRESSION_LEVEL_DEFAULT
    return_successes: bool = True
    return_errors: bool = True
    flush_messages: int = 0
    flush_frequency: float = 0.0


@dataclass
class ProducerMessage:
    """A keyed message bound for a topic."""

    topic: str
    key: str
    value: str
    timestamp: datetime = field(default_factory=datetime.now)


Option = Callable[[ProducerConfig], None]


def prepare_config(*opts: Option) -> ProducerConfig:
    """Start from the defaults and apply options in order."""
    config = ProducerConfig()
    for opt in opts:
        opt(config)
    return config


def with_producer_partitioner(partitioner: Partitioner) -> Option:
    def apply(config: ProducerConfig) -> None:
        config.partitioner = partitioner

    return apply


def with_required_acks(acks: RequiredAcks) -> Option:
    def apply(config: ProducerConfig) -> None:
        config.required_acks = acks

    return apply


def with_idempotent() -> Option:
    def apply(config: ProducerConfig) -> None:
        config.idempotent = True

    return apply


def with_max_retries(n: int) -> Option:
    def apply(config: ProducerConfig) -> None:
        config.retry_max = n

    return apply


def with_retry_backoff(seconds: float) -> Option:
    def apply(config: ProducerConfig) -> None:
        config.retry_backoff = seconds

    return apply


def with_max_open_requests(n: int) -> Option:
    def apply(config: ProducerConfig) -> None:
        config.max_open_requests = n

    return apply


def with_producer_flush_messages(n: int) -> Option:
    def apply(config: ProducerConfig) -> None:
        config.flush_messages = n

    return apply


def with_producer_flush_frequency(seconds: float) -> Option:
    def apply(config: ProducerConfig) -> None:
        config.flush_frequency = seconds

    return apply