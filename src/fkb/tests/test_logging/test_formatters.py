import json
import logging
import sys
import uuid

from fkb.core.logging.formatters import ColorFormatter, JsonFormatter


def make_record():
    return logging.LogRecord("fkb.repositories", logging.INFO, __file__, 10, "hello %s", ("tester",), None)


class TestJsonFormatter:

    def test_basic_fields(self):
        rec = make_record()
        rec.model = "Friend"
        rec.correlation_id = "tx-1"

        data = json.loads(JsonFormatter(env="testing", service="svc").format(rec))

        assert data["message"] == "hello tester"
        assert data["level"] == "INFO"
        assert data["logger"] == "fkb.repositories"
        assert data["service"] == "svc"
        assert data["env"] == "testing"
        assert data["correlation_id"] == "tx-1"
        assert data["model"] == "Friend"
        assert "timestamp" in data
        assert "version" in data

    def test_non_serializable_extras_are_stringified(self):
        rec = make_record()
        friend_id = uuid.uuid4()
        rec.friend_id = friend_id

        data = json.loads(JsonFormatter(env="dev").format(rec))

        assert data["friend_id"] == str(friend_id)

    def test_missing_correlation_id(self):
        data = json.loads(JsonFormatter().format(make_record()))
        assert data["correlation_id"] == "-"
        assert data["service"] == "friend-knowledgebase"

    def test_exception_info(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            rec = logging.LogRecord("fkb", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())

        data = json.loads(JsonFormatter().format(rec))
        assert "RuntimeError: boom" in data["exc_info"]


class TestColorFormatter:

    def test_appends_extras(self):
        rec = make_record()
        rec.correlation_id = "tx-1"
        rec.operation = "create"

        line = ColorFormatter().format(rec)

        assert "hello tester" in line
        assert "tx-1" in line
        assert "operation=create" in line
        assert "correlation_id=" not in line
