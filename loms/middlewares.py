"""Unary call middlewares: logging, validation, metrics and tracing."""

import json
import logging
import time
from contextvars import ContextVar
from dataclasses import asdict, dataclass, field, is_dataclass
from typing import Any, Callable, Mapping, Optional, Sequence

from . import metrics
from .service import StatusCode, StatusError

_log = logging.getLogger(__name__)

Handler = Callable[[Any], Any]
Middleware = Callable[[Any, "CallInfo", Handler], Any]

CURRENT_TRACE_ID: ContextVar[Optional[str]] = ContextVar("loms_trace_id", default=None)

_HEX_DIGITS = frozenset("0123456789abcdef")


@dataclass
class CallInfo:
    """The method being called and its incoming metadata."""

    full_method: str
    metadata: Optional[Mapping[str, Sequence[str]]] = field(default=None)


def _dump(message: Any) -> str:
    if is_dataclass(message) and not isinstance(message, type):
        return json.dumps(asdict(message), default=str)
    if isinstance(message, (dict, list)):
        return json.dumps(message, default=str)
    return repr(message)


def logging_middleware(request: Any, info: CallInfo, handler: Handler) -> Any:
    """Log the request, its metadata, and the response or error."""
    _log.info("request: method: %s, req: %s", info.full_method, _dump(request))
    _log.info("Incoming headers: %s", dict(info.metadata or {}))
    try:
        response = handler(request)
    except Exception as exc:
        _log.info("request: method: %s, err: %s", info.full_method, exc)
        raise
    if response is not None:
        _log.info("response: method: %s, resp: %s", info.full_method, _dump(response))
    return response


def validate_middleware(request: Any, info: CallInfo, handler: Handler) -> Any:
    """Run the request's ``validate_all`` if it has one; reject invalid input."""
    validate = getattr(request, "validate_all", None)
    if callable(validate):
        try:
            validate()
        except Exception as exc:
            raise StatusError(StatusCode.INVALID_ARGUMENT, str(exc)) from exc
    return handler(request)


def metrics_middleware(request: Any, info: CallInfo, handler: Handler) -> Any:
    """Count calls by method and status code and time them."""
    start = time.perf_counter()
    code = StatusCode.OK
    try:
        return handler(request)
    except StatusError as exc:
        code = exc.code
        raise
    except Exception:
        code = StatusCode.UNKNOWN
        raise
    finally:
        elapsed = time.perf_counter() - start
        metrics.request_counter_inc(info.full_method, str(int(code)))
        metrics.request_handler_duration(info.full_method, elapsed)


def trace_id_from_metadata(metadata: Optional[Mapping[str, Sequence[str]]]) -> str:
    """Return the ``x-trace-id`` value: 32 lowercase hex digits, not all zero."""
    if metadata is None:
        raise ValueError("no metadata")
    values = metadata.get("x-trace-id") or ()
    if not values:
        raise ValueError("no trace ID")
    trace_id = values[0]
    if (
        len(trace_id) != 32
        or not set(trace_id) <= _HEX_DIGITS
        or set(trace_id) == {"0"}
    ):
        raise ValueError("invalid trace ID")
    return trace_id


def tracing_middleware(request: Any, info: CallInfo, handler: Handler) -> Any:
    """Expose the caller's trace id through ``CURRENT_TRACE_ID`` during the call."""
    try:
        trace_id = trace_id_from_metadata(info.metadata)
    except ValueError as exc:
        _log.info("enrichContextWithTraceID: %s", exc)
        return handler(request)
    _log.info("find traceID: %s", trace_id)
    token = CURRENT_TRACE_ID.set(trace_id)
    try:
        return handler(request)
    finally:
        CURRENT_TRACE_ID.reset(token)


def _bind(middleware: Middleware, info: CallInfo, next_handler: Handler) -> Handler:
    return lambda request: middleware(request, info, next_handler)


def chain(*args: Middleware) -> Middleware:
    """Compose middlewares; the first given runs outermost."""

    def chained(request: Any, info: CallInfo, handler: Handler) -> Any:
        wrapped = handler
        for middleware in reversed(args):
            wrapped = _bind(middleware, info, wrapped)
        return wrapped(request)

    return chained