"""Tests for logging configuration, formatters and lazy logging."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime

import pytest

from listquery.core.settings import LoggingSettings
from listquery.infra.logging import (
    JSONFormatter,
    LazyString,
    configure_logging,
    get_lazy_logger,
    lazy,
    setup_logging,
)
from listquery.infra.logging import config as logging_config


def _record(msg: str = "Cursor page fetched", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="listquery.core.pagination.executor",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    # Drop only the handlers dictConfig installed, not pytest's capture handlers
    for handler in root.handlers[:]:
        if handler not in handlers and type(handler).__module__.startswith("logging"):
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers and type(handler).__module__.startswith("logging"):
            root.addHandler(handler)
    root.setLevel(level)


@pytest.mark.unit
class TestJSONFormatter:
    def test_basic_fields(self):
        payload = json.loads(JSONFormatter(static={"service": "listquery"}).format(_record()))

        assert payload["level"] == "INFO"
        assert payload["logger"] == "listquery.core.pagination.executor"
        assert payload["message"] == "Cursor page fetched"
        assert payload["service"] == "listquery"
        assert payload["timestamp"].endswith("Z")
        assert "trace_id" not in payload

    def test_extras_are_included(self):
        payload = json.loads(JSONFormatter().format(_record(shape="items", rows=10)))

        assert payload["shape"] == "items"
        assert payload["rows"] == 10

    def test_non_json_extras_use_str(self):
        payload = json.loads(JSONFormatter().format(_record(at=datetime(2025, 1, 1))))

        assert payload["at"] == "2025-01-01 00:00:00"

    def test_exception_on_one_line(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()

        output = JSONFormatter().format(record)

        assert "\n" not in output
        assert "ValueError: boom" in json.loads(output)["exception"]


@pytest.mark.unit
class TestLazyLogging:
    def test_callable_skipped_when_disabled(self, caplog: pytest.LogCaptureFixture):
        calls = []
        logger = get_lazy_logger("listquery.tests.lazy")

        with caplog.at_level(logging.INFO, logger="listquery.tests.lazy"):
            logger.debug(lambda: calls.append("msg") or "expensive")

        assert calls == []
        assert caplog.records == []

    def test_callable_evaluated_when_enabled(self, caplog: pytest.LogCaptureFixture):
        logger = get_lazy_logger("listquery.tests.lazy", component="parser")

        with caplog.at_level(logging.DEBUG, logger="listquery.tests.lazy"):
            logger.debug(lambda: "parsed 2 filters")
            logger.info("mode: %s", lambda: "cursor", extra={"shape": "items"})

        assert [r.getMessage() for r in caplog.records] == ["parsed 2 filters", "mode: cursor"]
        assert caplog.records[1].component == "parser"
        assert caplog.records[1].shape == "items"

    def test_lazy_string(self):
        value = lazy(lambda: 1 + 1)

        assert isinstance(value, LazyString)
        assert str(value) == "2"


@pytest.mark.unit
class TestConfigureLogging:
    def test_text_console(self, restore_root_logger: logging.Logger):
        configure_logging("debug", json_logs=False)

        assert restore_root_logger.level == logging.DEBUG
        assert len(restore_root_logger.handlers) == 1
        assert not isinstance(restore_root_logger.handlers[0].formatter, JSONFormatter)

    def test_json_file(self, restore_root_logger: logging.Logger, tmp_path):
        log_file = tmp_path / "logs" / "listquery.log"

        configure_logging(console_enabled=False, file_path=log_file, service_name="svc")
        logging.getLogger("listquery.tests").info("hello", extra={"shape": "items"})
        for handler in restore_root_logger.handlers:
            handler.flush()

        line = json.loads(log_file.read_text().splitlines()[-1])
        assert line["message"] == "hello"
        assert line["service"] == "svc"
        assert line["shape"] == "items"

    def test_setup_logging_runs_once(
        self, restore_root_logger: logging.Logger, monkeypatch: pytest.MonkeyPatch
    ):
        calls = []
        monkeypatch.setattr(logging_config, "_LOGGING_INITIALIZED", False)
        monkeypatch.setattr(logging_config, "configure_logging", lambda **kw: calls.append(kw))

        settings = LoggingSettings(level="WARNING", _env_file=None)
        setup_logging(settings)
        setup_logging(settings)
        setup_logging(settings, force=True, json_logs=False)

        assert len(calls) == 2
        assert calls[0]["log_level"] == "WARNING"
        assert calls[1]["json_logs"] is False
