"""Process-wide structured logger with per-context overrides."""

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Iterator, Optional, Union

_LEVEL_NAMES = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

_SHORT_LEVELS = {logging.WARNING: "warn"}

_bound: ContextVar[Optional[logging.Logger]] = ContextVar("loms_bound_logger", default=None)
_state: dict[str, logging.Logger] = {}


class _JsonFormatter(logging.Formatter):
    """One JSON object per line: level, ts, caller, msg and the extra fields."""

    def format(self, record: logging.LogRecord) -> str:
        level = _SHORT_LEVELS.get(record.levelno, record.levelname.lower())
        entry: dict[str, Any] = {
            "level": level,
            "ts": record.created,
            "caller": f"{record.filename}:{record.lineno}",
            "msg": record.getMessage(),
        }
        entry.update(getattr(record, "fields", {}))
        return json.dumps(entry, default=str)


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, str):
        try:
            return _LEVEL_NAMES[level.lower()]
        except KeyError:
            raise ValueError(f"unknown log level {level!r}") from None
    return level


def new_logger(name: str, level: Union[int, str]) -> logging.Logger:
    """Create (or reconfigure) a logger writing JSON lines to stdout."""
    logger = logging.getLogger(name)
    logger.setLevel(_resolve_level(level))
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter())
    logger.addHandler(handler)
    return logger


def set_logger(logger: logging.Logger) -> None:
    """Replace the process-wide logger."""
    if not isinstance(logger, logging.Logger):
        raise TypeError(f"expected a logging.Logger, got {type(logger).__name__}")
    _state["global"] = logger


def get_logger() -> logging.Logger:
    """Return the process-wide logger."""
    try:
        return _state["global"]
    except KeyError:
        raise RuntimeError("no process-wide logger has been set") from None


@contextmanager
def bind_logger(logger: logging.Logger) -> Iterator[logging.Logger]:
    """Use ``logger`` instead of the global one inside the block."""
    token = _bound.set(logger)
    try:
        yield logger
    finally:
        _bound.reset(token)


def _emit(level: int, msg: str, fields: dict[str, Any]) -> None:
    logger = _bound.get() or get_logger()
    logger.log(level, msg, extra={"fields": fields}, stacklevel=3)


def info(msg: str, **kwargs: Any) -> None:
    _emit(logging.INFO, msg, kwargs)


def warn(msg: str, **kwargs: Any) -> None:
    _emit(logging.WARNING, msg, kwargs)


def error(msg: str, **kwargs: Any) -> None:
    _emit(logging.ERROR, msg, kwargs)


set_logger(new_logger("loms", logging.WARNING))