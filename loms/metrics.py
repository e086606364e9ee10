"""Labelled counters and histograms with text exposition."""

import math
import threading
from typing import Iterable, Mapping, Optional, Sequence

DEFAULT_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)


def _format_number(value: float) -> str:
    if value == math.inf:
        return "+Inf"
    if value == -math.inf:
        return "-Inf"
    return format(value, "g")


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def _format_labels(labels: Mapping[str, str]) -> str:
    if not labels:
        return ""
    body = ",".join(f'{k}="{_escape(labels[k])}"' for k in sorted(labels))
    return "{" + body + "}"


class _Metric:
    kind = "untyped"

    def __init__(
        self,
        name: str,
        help: str,
        label_names: Sequence[str] = (),
        *,
        namespace: str = "",
        const_labels: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.name = f"{namespace}_{name}" if namespace else name
        self.help = help
        self.label_names = tuple(label_names)
        self.const_labels = dict(const_labels or {})
        self._lock = threading.Lock()

    def _key(self, label_values: Sequence[str]) -> tuple[str, ...]:
        if len(label_values) != len(self.label_names):
            raise ValueError(
                f"{self.name}: expected {len(self.label_names)} label values, "
                f"got {len(label_values)}"
            )
        return tuple(str(v) for v in label_values)

    def _labels(self, key: tuple[str, ...], **extra: str) -> dict[str, str]:
        labels = dict(self.const_labels)
        labels.update(zip(self.label_names, key))
        labels.update(extra)
        return labels

    def _header(self) -> list[str]:
        return [f"# HELP {self.name} {self.help}", f"# TYPE {self.name} {self.kind}"]

    def _render(self) -> list[str]:
        raise NotImplementedError


class Counter(_Metric):
    """A monotonically increasing count per label combination."""

    kind = "counter"

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._values: dict[tuple[str, ...], float] = {}

    def inc(self, *args: str) -> None:
        key = self._key(args)
        with self._lock:
            self._values[key] = self._values.get(key, 0) + 1

    def value(self, *args: str) -> float:
        key = self._key(args)
        with self._lock:
            return self._values.get(key, 0)

    def _render(self) -> list[str]:
        lines = self._header()
        with self._lock:
            for key, value in self._values.items():
                lines.append(f"{self.name}{_format_labels(self._labels(key))} {_format_number(value)}")
        return lines


class _Series:
    __slots__ = ("buckets", "count", "sum")

    def __init__(self, size: int) -> None:
        self.buckets = [0] * size
        self.count = 0
        self.sum = 0.0


class Histogram(_Metric):
    """Observations counted into cumulative upper-bound buckets."""

    kind = "histogram"

    def __init__(
        self,
        name: str,
        help: str,
        label_names: Sequence[str] = (),
        *,
        buckets: Iterable[float] = DEFAULT_BUCKETS,
        namespace: str = "",
        const_labels: Optional[Mapping[str, str]] = None,
    ) -> None:
        super().__init__(
            name, help, label_names, namespace=namespace, const_labels=const_labels
        )
        bounds = [float(b) for b in buckets]
        if any(a >= b for a, b in zip(bounds, bounds[1:])):
            raise ValueError(f"{self.name}: buckets must be strictly increasing")
        if not bounds or bounds[-1] != math.inf:
            bounds.append(math.inf)
        self.buckets = tuple(bounds)
        self._series: dict[tuple[str, ...], _Series] = {}

    def observe(self, value: float, *args: str) -> None:
        key = self._key(args)
        with self._lock:
            series = self._series.setdefault(key, _Series(len(self.buckets)))
            for position, bound in enumerate(self.buckets):
                if value <= bound:
                    series.buckets[position] += 1
            series.count += 1
            series.sum += value

    def count(self, *args: str) -> int:
        key = self._key(args)
        with self._lock:
            series = self._series.get(key)
            return series.count if series else 0

    def bucket_counts(self, *args: str) -> dict[float, int]:
        """Cumulative count per upper bound, the last bound being infinity."""
        key = self._key(args)
        with self._lock:
            series = self._series.get(key)
            counts = series.buckets if series else [0] * len(self.buckets)
            return dict(zip(self.buckets, counts))

    def _render(self) -> list[str]:
        lines = self._header()
        with self._lock:
            for key, series in self._series.items():
                for bound, count in zip(self.buckets, series.buckets):
                    labels = self._labels(key, le=_format_number(bound))
                    lines.append(f"{self.name}_bucket{_format_labels(labels)} {count}")
                plain = _format_labels(self._labels(key))
                lines.append(f"{self.name}_sum{plain} {_format_number(series.sum)}")
                lines.append(f"{self.name}_count{plain} {series.count}")
        return lines


_SERVICE_LABELS = {"service": "loms"}

REQUEST_COUNTER = Counter(
    "handler_request_total_counter",
    "Total amount of request by handler",
    ["handler", "code"],
    namespace="app",
    const_labels=_SERVICE_LABELS,
)

HANDLER_HISTOGRAM = Histogram(
    "handler_request_duration_histogram",
    "Total duration of processing request",
    ["handler"],
    namespace="app",
    const_labels=_SERVICE_LABELS,
)

ANALYZE_FILE_CONTENT_HISTOGRAM = Histogram(
    "analyzer_filecontent_histogram",
    "Total duration of processing text",
    buckets=(0.5, 1, 5, 10, 30, 60),
    namespace="app",
    const_labels=_SERVICE_LABELS,
)

_REGISTRY: tuple[_Metric, ...] = (
    REQUEST_COUNTER,
    HANDLER_HISTOGRAM,
    ANALYZE_FILE_CONTENT_HISTOGRAM,
)


def request_counter_inc(handler: str, code: str) -> None:
    REQUEST_COUNTER.inc(handler, code)


def request_handler_duration(handler: str, seconds: float) -> None:
    HANDLER_HISTOGRAM.observe(seconds, handler)


def analyze_file_content_duration(seconds: float) -> None:
    ANALYZE_FILE_CONTENT_HISTOGRAM.observe(seconds)


def render() -> str:
    """All service metrics in the text exposition format."""
    lines: list[str] = []
    for metric in _REGISTRY:
        lines.extend(metric._render())
    return "\n".join(lines) + "\n"