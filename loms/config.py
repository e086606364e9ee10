"""Service configuration read from a YAML file."""

import logging
import os
from dataclasses import dataclass, field, fields, is_dataclass
from typing import Any, Optional

import yaml

_log = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when configuration cannot be located or parsed."""


@dataclass
class ServiceConfig:
    host: str = field(default_factory=str)
    http_port: int = 0
    grpc_port: int = 0
    workers: int = 0


@dataclass
class JaegerConfig:
    host: str = field(default_factory=str)
    port: int = 0


@dataclass
class DatabaseConfig:
    host: str = field(default_factory=str)
    port: int = 0
    user: str = field(default_factory=str)
    password: str = field(default_factory=str)
    db_name: str = field(default_factory=str)


@dataclass
class KafkaConfig:
    host: str = field(default_factory=str)
    port: int = 0
    order_topic: str = field(default_factory=str)
    brokers: str = field(default_factory=str)


@dataclass
class Config:
    service: ServiceConfig = field(default_factory=ServiceConfig)
    jaeger: JaegerConfig = field(default_factory=JaegerConfig)
    db_master: DatabaseConfig = field(default_factory=DatabaseConfig)
    db_replica: DatabaseConfig = field(default_factory=DatabaseConfig)
    kafka: KafkaConfig = field(default_factory=KafkaConfig)

    def master_dsn(self) -> str:
        """Connection string for the master database."""
        db = self.db_master
        return (
            f"postgresql://{db.user}:{db.password}@{db.host}:{db.port}/{db.db_name}"
            "?sslmode=disable"
        )


def _convert(value: Any, target: type, where: str) -> Any:
    if target is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"{where}: expected an integer, got {value!r}")
        return value
    if target is str:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (str, int, float)):
            return str(value)
        raise ConfigError(f"{where}: expected a string, got {value!r}")
    raise ConfigError(f"{where}: unsupported field type")


def _build(cls: type, data: Any, where: str) -> Any:
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ConfigError(f"{where or 'config'}: expected a mapping")
    values = {}
    for f in fields(cls):
        if f.name not in data or data[f.name] is None:
            continue
        path = f"{where}.{f.name}" if where else f.name
        if is_dataclass(f.type):
            values[f.name] = _build(f.type, data[f.name], path)
        else:
            values[f.name] = _convert(data[f.name], f.type, path)
    return cls(**values)


def parse_config(text: str) -> Config:
    """Build a :class:`Config` from YAML text; missing keys keep defaults."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(str(exc)) from exc
    return _build(Config, data, "")


def read_config(path: Optional[str] = None) -> Config:
    """Read config from ``path`` or from the file named by ``CONFIG_FILE``."""
    config_file = path if path is not None else os.environ.get("CONFIG_FILE", "")
    if not config_file:
        raise ConfigError("cannot find configFile path")
    config_file = os.path.normpath(config_file)
    _log.info("loading config file %s", config_file)
    with open(config_file, encoding="utf-8") as fh:
        return parse_config(fh.read())