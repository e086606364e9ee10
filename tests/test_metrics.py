import math

import pytest

from loms import metrics


def test_counter_counts_per_label_combination():
    counter = metrics.Counter("c", "help", ["handler", "code"])
    counter.inc("a", "0")
    counter.inc("a", "0")
    counter.inc("b", "0")
    assert counter.value("a", "0") == 2
    assert counter.value("b", "0") == 1
    assert counter.value("a", "5") == 0


def test_counter_rejects_wrong_label_count():
    counter = metrics.Counter("c", "help", ["handler", "code"])
    with pytest.raises(ValueError):
        counter.inc("only-one")


def test_histogram_buckets_are_cumulative():
    histogram = metrics.Histogram("h", "help", ["handler"], buckets=(0.5, 1, 5))
    for value in (0.1, 0.7, 3, 100):
        histogram.observe(value, "x")
    counts = histogram.bucket_counts("x")
    assert list(counts) == [0.5, 1.0, 5.0, math.inf]
    values = list(counts.values())
    assert values == sorted(values)
    assert values[-1] == histogram.count("x") == 4


def test_histogram_bound_is_inclusive():
    histogram = metrics.Histogram("h", "help", buckets=(1, 2))
    histogram.observe(1)
    assert histogram.bucket_counts()[1.0] == 1


def test_histogram_rejects_unsorted_buckets():
    with pytest.raises(ValueError):
        metrics.Histogram("h", "help", buckets=(5, 1))


def test_unobserved_series_is_empty():
    histogram = metrics.Histogram("h", "help", ["handler"])
    assert histogram.count("none") == 0
    assert set(histogram.bucket_counts("none").values()) == {0}


def test_request_counter_inc_and_render():
    handler = "/test.Render/Counter"
    before = metrics.REQUEST_COUNTER.value(handler, "0")
    metrics.request_counter_inc(handler, "0")
    assert metrics.REQUEST_COUNTER.value(handler, "0") == before + 1
    text = metrics.render()
    assert "# TYPE app_handler_request_total_counter counter" in text
    assert (
        f'app_handler_request_total_counter{{code="0",handler="{handler}",service="loms"}} 1'
        in text.splitlines()
    )


def test_request_handler_duration_render():
    handler = "/test.Render/Histogram"
    metrics.request_handler_duration(handler, 0.2)
    assert metrics.HANDLER_HISTOGRAM.count(handler) == 1
    lines = metrics.render().splitlines()
    assert "# TYPE app_handler_request_duration_histogram histogram" in lines
    assert (
        f'app_handler_request_duration_histogram_bucket{{handler="{handler}",le="+Inf",service="loms"}} 1'
        in lines
    )
    assert (
        f'app_handler_request_duration_histogram_count{{handler="{handler}",service="loms"}} 1'
        in lines
    )


def test_analyze_file_content_duration():
    before = metrics.ANALYZE_FILE_CONTENT_HISTOGRAM.count()
    metrics.analyze_file_content_duration(2)
    assert metrics.ANALYZE_FILE_CONTENT_HISTOGRAM.count() == before + 1
    assert list(metrics.ANALYZE_FILE_CONTENT_HISTOGRAM.bucket_counts()) == [
        0.5, 1.0, 5.0, 10.0, 30.0, 60.0, math.inf,
    ]