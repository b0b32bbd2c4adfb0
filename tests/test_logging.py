import json
import logging
import sys
from tunevault.core.logging import JSONFormatter


def make_record(**extra):
    record = logging.LogRecord("tunevault.test", logging.WARNING, __file__, 12, "Saved %s", ("song",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_fields():
    data = json.loads(JSONFormatter().format(make_record()))

    assert data["level"] == "WARNING"
    assert data["logger"] == "tunevault.test"
    assert data["message"] == "Saved song"
    assert data["line"] == 12
    assert "exception" not in data


def test_json_formatter_includes_extra_fields():
    data = json.loads(JSONFormatter().format(make_record(song_id="abc")))
    assert data["song_id"] == "abc"


def test_json_formatter_exception():
    try:
        raise ValueError("boom")
    except ValueError:
        record = logging.LogRecord("tunevault.test", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())

    data = json.loads(JSONFormatter().format(record))

    assert data["exception"]["type"] == "ValueError"
    assert data["exception"]["message"] == "boom"
