import json
import logging

import pytest

from loms import logger


@pytest.fixture(autouse=True)
def restore_global_logger():
    saved = logger.get_logger()
    yield
    logger.set_logger(saved)


def _lines(text):
    return [json.loads(line) for line in text.splitlines() if line.strip()]


def test_set_and_get_logger():
    custom = logger.new_logger("test.logger.setget", logging.INFO)
    logger.set_logger(custom)
    assert logger.get_logger() is custom


def test_warn_writes_json_with_fields(capsys):
    logger.set_logger(logger.new_logger("test.logger.warn", logging.WARNING))
    logger.warn("hello", order_id=7, user="someone")
    entries = _lines(capsys.readouterr().out)
    assert len(entries) == 1
    entry = entries[0]
    assert entry["level"] == "warn"
    assert entry["msg"] == "hello"
    assert entry["order_id"] == 7
    assert entry["user"] == "someone"


def test_info_below_level_is_dropped(capsys):
    logger.set_logger(logger.new_logger("test.logger.drop", logging.WARNING))
    logger.info("quiet")
    logger.error("loud")
    entries = _lines(capsys.readouterr().out)
    assert [e["msg"] for e in entries] == ["loud"]
    assert entries[0]["level"] == "error"


def test_bound_logger_takes_precedence(capsys):
    logger.set_logger(logger.new_logger("test.logger.global", logging.WARNING))
    verbose = logger.new_logger("test.logger.bound", "info")
    with logger.bind_logger(verbose) as bound:
        assert bound is verbose
        logger.info("inside")
    logger.info("outside")
    entries = _lines(capsys.readouterr().out)
    assert [e["msg"] for e in entries] == ["inside"]
    assert entries[0]["level"] == "info"


def test_caller_points_at_call_site(capsys):
    logger.set_logger(logger.new_logger("test.logger.caller", logging.WARNING))
    logger.warn("where")
    entry = _lines(capsys.readouterr().out)[0]
    assert entry["caller"].startswith("test_logger.py:")


def test_unknown_level_name_rejected():
    with pytest.raises(ValueError):
        logger.new_logger("test.logger.bad", "verbose")