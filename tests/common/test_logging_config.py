# -*- coding: utf-8 -*-
import json
import logging

import pytest

from gtfs_loader.common.logging_config import JSONFormatter, setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def test_json_formatter_structure():
    record = logging.LogRecord(
        "gtfs_loader.test", logging.WARNING, __file__, 10, "Feed %s rolled back", ("f",), None
    )
    record.feed_name = "f"
    entry = json.loads(JSONFormatter("svc").format(record))
    assert entry["level"] == "WARNING"
    assert entry["service"] == "svc"
    assert entry["message"] == "Feed f rolled back"
    assert entry["timestamp"].endswith("Z")
    assert entry["extra"] == {"feed_name": "f"}


def test_setup_logging_console_and_file(tmp_path):
    log_file = tmp_path / "load.log"
    setup_logging(log_level="debug", log_file_path=log_file)

    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert len(root.handlers) == 2

    logging.getLogger("gtfs_loader.test").info("hello")
    for handler in root.handlers:
        handler.flush()
    lines = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    assert any(line["message"] == "hello" for line in lines)


def test_setup_logging_unknown_level_falls_back_to_info():
    setup_logging(log_level="chatty", enable_console=False)
    root = logging.getLogger()
    assert root.level == logging.INFO
    assert root.handlers == []
