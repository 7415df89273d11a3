"""Tests for umbrella_mime.logging."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from umbrella_mime.config import LoggingConfig
from umbrella_mime.logging import HANDLER_NAME, build_formatter, setup_logging


def _ours(root: logging.Logger) -> list[logging.Handler]:
    return [h for h in root.handlers if h.get_name() == HANDLER_NAME]


class TestSetupLogging:
    @pytest.mark.parametrize(
        ("level", "expected"),
        [("DEBUG", logging.DEBUG), ("warning", logging.WARNING), ("Error", logging.ERROR)],
    )
    def test_level_names(self, level, expected):
        setup_logging(level=level)
        assert logging.getLogger().level == expected

    def test_level_from_config(self):
        setup_logging(LoggingConfig(json_output=False, level="ERROR"))
        assert logging.getLogger().level == logging.ERROR

    def test_level_from_environment(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "critical")
        setup_logging()
        assert logging.getLogger().level == logging.CRITICAL

    def test_repeated_setup_keeps_one_handler(self):
        root = logging.getLogger()
        first = setup_logging(json=True)
        second = setup_logging(json=False)
        assert _ours(root) == [second]
        assert first not in root.handlers

    def test_foreign_handlers_untouched(self):
        root = logging.getLogger()
        foreign = logging.NullHandler()
        root.addHandler(foreign)
        try:
            setup_logging()
            assert foreign in root.handlers
        finally:
            root.removeHandler(foreign)


class TestOutput:
    def test_json_lines_on_stderr(self, capsys):
        setup_logging(json=True, level="DEBUG")
        structlog.get_logger("umbrella_mime.test").info("part_decoded", part_index=2)
        captured = capsys.readouterr()
        assert captured.out == ""
        record = json.loads(captured.err.strip().splitlines()[-1])
        assert record["event"] == "part_decoded"
        assert record["part_index"] == 2
        assert record["level"] == "info"
        assert record["logger"] == "umbrella_mime.test"
        assert "timestamp" in record

    def test_exception_rendered_into_json(self, capsys):
        setup_logging(json=True, level="INFO")
        try:
            raise ValueError("bad boundary")
        except ValueError:
            structlog.get_logger("umbrella_mime.test").exception("split_failed")
        record = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert record["event"] == "split_failed"
        assert "ValueError: bad boundary" in record["exception"]

    def test_console_formatter(self):
        formatter = build_formatter(use_json=False)
        assert isinstance(formatter, structlog.stdlib.ProcessorFormatter)
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "hello", None, None)
        assert "hello" in formatter.format(record)
