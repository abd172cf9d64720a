"""Tests for JSON logging."""

import json
import logging
import sys

import pytest

from polyglot.logging_config import JSONFormatter, get_logger, setup_logging


def _record(msg="Translated %s", args=("m1",), exc_info=None, **extra):
    record = logging.LogRecord(
        name="polyglot.pipeline.fanout",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=args,
        exc_info=exc_info,
        func="run",
    )
    record.__dict__.update(extra)
    return record


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_basic_fields(self):
        entry = json.loads(JSONFormatter().format(_record()))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "polyglot.pipeline.fanout"
        assert entry["message"] == "Translated m1"
        assert entry["where"].endswith("run:10")
        assert "context" not in entry

    def test_pipeline_identifiers_collected(self):
        record = _record(message_id="m1", target_language="es", unrelated="x")

        entry = json.loads(JSONFormatter().format(record))

        assert entry["context"] == {"message_id": "m1", "target_language": "es"}

    def test_exception_included(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _record(exc_info=sys.exc_info())

        entry = json.loads(JSONFormatter().format(record))

        assert "RuntimeError: boom" in entry["exception"]


class TestSetupLogging:
    """Tests for setup_logging()."""

    @pytest.fixture(autouse=True)
    def restore_root(self):
        root = logging.getLogger()
        level = root.level
        yield
        for handler in root.handlers[:]:
            if isinstance(handler.formatter, JSONFormatter):
                root.removeHandler(handler)
                handler.close()
        root.setLevel(level)

    def test_writes_json_lines_to_file(self, tmp_path):
        log_file = tmp_path / "logs" / "app.log"
        setup_logging("debug", str(log_file))

        get_logger("polyglot.tasks").info(
            "Task %s done", "t1", extra={"task_id": "t1", "task_type": "translate_message"}
        )
        for handler in logging.getLogger().handlers:
            handler.flush()

        [line] = log_file.read_text(encoding="utf-8").splitlines()
        entry = json.loads(line)
        assert entry["message"] == "Task t1 done"
        assert entry["context"] == {"task_id": "t1", "task_type": "translate_message"}
        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("aiosqlite").level == logging.WARNING

    def test_empty_log_file_means_console_only(self, monkeypatch):
        monkeypatch.setenv("LOG_FILE", "")
        setup_logging("INFO")

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)
        assert not isinstance(handlers[0], logging.FileHandler)
