"""Log formatters: JSON lines for production, readable lines for development."""

import json
import logging
import sys

from projecthub.middleware.logging_config import JSONFormatter, ReadableFormatter


def _record(msg="Note restored", level=logging.INFO, **extra):
    record = logging.LogRecord("projecthub.notes", level, __file__, 42, msg, (), None)
    for key, val in extra.items():
        setattr(record, key, val)
    return record


class TestJSONFormatter:
    def test_base_fields(self):
        entry = json.loads(JSONFormatter().format(_record()))
        assert entry["level"] == "INFO"
        assert entry["logger"] == "projecthub.notes"
        assert entry["message"] == "Note restored"
        assert entry["line"] == 42

    def test_context_fields_are_copied(self):
        entry = json.loads(JSONFormatter().format(
            _record(request_id="abc123", actor_id=7, project_id=3, ignored="x")
        ))
        assert entry["request_id"] == "abc123"
        assert entry["actor_id"] == 7
        assert entry["project_id"] == 3
        assert "ignored" not in entry

    def test_exception_is_included(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
        entry = json.loads(JSONFormatter().format(record))
        assert "RuntimeError: boom" in entry["exception"]


class TestReadableFormatter:
    def test_context_suffix(self):
        line = ReadableFormatter().format(_record(request_id="abc123", actor_id=7))
        assert "projecthub.notes: Note restored" in line
        assert line.endswith("[request_id=abc123 actor_id=7]")

    def test_no_context_no_suffix(self):
        line = ReadableFormatter().format(_record(level=logging.WARNING))
        assert "WARNING" in line
        assert not line.endswith("]")
