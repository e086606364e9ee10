import logging
from dataclasses import dataclass

import pytest

from loms import metrics, middlewares
from loms.middlewares import CallInfo
from loms.service import StatusCode, StatusError

VALID_TRACE_ID = "4bf92f3577b34da6a3ce929d0e0e4736"


@dataclass
class Request:
    order_id: int
    valid: bool = True

    def validate_all(self):
        if not self.valid:
            raise ValueError("order_id must be positive")


def echo(request):
    return {"echo": request.order_id}


def test_validate_passes_valid_request():
    result = middlewares.validate_middleware(Request(3), CallInfo("/m"), echo)
    assert result == {"echo": 3}


def test_validate_rejects_invalid_request():
    calls = []
    with pytest.raises(StatusError) as caught:
        middlewares.validate_middleware(
            Request(3, valid=False), CallInfo("/m"), lambda r: calls.append(r)
        )
    assert caught.value.code == StatusCode.INVALID_ARGUMENT
    assert caught.value.message == "order_id must be positive"
    assert calls == []


def test_validate_ignores_requests_without_validator():
    assert middlewares.validate_middleware("plain", CallInfo("/m"), str.upper) == "PLAIN"


def test_logging_middleware_logs_request_and_response(caplog):
    caplog.set_level(logging.INFO, logger="loms.middlewares")
    result = middlewares.logging_middleware(Request(5), CallInfo("/svc/Info"), echo)
    assert result == {"echo": 5}
    text = caplog.text
    assert "request: method: /svc/Info" in text
    assert '"order_id": 5' in text
    assert "response: method: /svc/Info" in text


def test_logging_middleware_reraises(caplog):
    caplog.set_level(logging.INFO, logger="loms.middlewares")

    def failing(_):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        middlewares.logging_middleware(Request(1), CallInfo("/svc/Fail"), failing)
    assert "err: boom" in caplog.text


def test_metrics_middleware_counts_success():
    method = "/test.Metrics/Success"
    before = metrics.REQUEST_COUNTER.value(method, "0")
    assert middlewares.metrics_middleware(Request(2), CallInfo(method), echo) == {"echo": 2}
    assert metrics.REQUEST_COUNTER.value(method, "0") == before + 1
    assert metrics.HANDLER_HISTOGRAM.count(method) >= 1


def test_metrics_middleware_counts_status_error():
    method = "/test.Metrics/NotFound"

    def not_found(_):
        raise StatusError(StatusCode.NOT_FOUND, "order not found")

    code = str(int(StatusCode.NOT_FOUND))
    before = metrics.REQUEST_COUNTER.value(method, code)
    with pytest.raises(StatusError):
        middlewares.metrics_middleware(Request(2), CallInfo(method), not_found)
    assert metrics.REQUEST_COUNTER.value(method, code) == before + 1


def test_metrics_middleware_plain_error_is_unknown():
    method = "/test.Metrics/Unknown"

    def failing(_):
        raise RuntimeError("boom")

    code = str(int(StatusCode.UNKNOWN))
    before = metrics.REQUEST_COUNTER.value(method, code)
    with pytest.raises(RuntimeError):
        middlewares.metrics_middleware(Request(2), CallInfo(method), failing)
    assert metrics.REQUEST_COUNTER.value(method, code) == before + 1


def test_trace_id_from_metadata_valid():
    assert middlewares.trace_id_from_metadata({"x-trace-id": [VALID_TRACE_ID]}) == VALID_TRACE_ID


@pytest.mark.parametrize(
    "metadata, message",
    [
        (None, "no metadata"),
        ({"x-trace-id": [VALID_TRACE_ID.upper()]}, "invalid trace ID"),
        ({"x-trace-id": ["abc"]}, "invalid trace ID"),
        ({"x-trace-id": ["0" * 32]}, "invalid trace ID"),
        ({}, "no trace ID"),
    ],
)
def test_trace_id_from_metadata_errors(metadata, message):
    with pytest.raises(ValueError, match=message):
        middlewares.trace_id_from_metadata(metadata)


def test_tracing_middleware_exposes_trace_id():
    seen = []
    info = CallInfo("/m", {"x-trace-id": [VALID_TRACE_ID]})
    result = middlewares.tracing_middleware(
        Request(1), info, lambda r: seen.append(middlewares.CURRENT_TRACE_ID.get()) or "ok"
    )
    assert result == "ok"
    assert seen == [VALID_TRACE_ID]
    assert middlewares.CURRENT_TRACE_ID.get() is None


def test_tracing_middleware_without_metadata_still_calls_handler():
    seen = []
    result = middlewares.tracing_middleware(
        Request(4), CallInfo("/m"), lambda r: seen.append(middlewares.CURRENT_TRACE_ID.get()) or r.order_id
    )
    assert result == 4
    assert seen == [None]


def test_chain_runs_first_outermost():
    order = []

    def make(name):
        def middleware(request, info, handler):
            order.append(f"{name}-in")
            response = handler(request)
            order.append(f"{name}-out")
            return response

        return middleware

    chained = middlewares.chain(make("a"), make("b"))
    result = chained(Request(9), CallInfo("/m"), echo)
    assert result == {"echo": 9}
    assert order == ["a-in", "b-in", "b-out", "a-out"]


def test_chain_validation_short_circuits():
    chained = middlewares.chain(middlewares.metrics_middleware, middlewares.validate_middleware)
    with pytest.raises(StatusError) as caught:
        chained(Request(1, valid=False), CallInfo("/test.Chain/Invalid"), echo)
    assert caught.value.code == StatusCode.INVALID_ARGUMENT
    assert metrics.REQUEST_COUNTER.value(
        "/test.Chain/Invalid", str(int(StatusCode.INVALID_ARGUMENT))
    ) == 1