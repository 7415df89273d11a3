"""Tests for umbrella_mime.config."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from umbrella_mime.config import LoggingConfig, ParserConfig


class TestParserConfig:
    def test_defaults(self):
        cfg = ParserConfig()
        assert cfg.max_depth == 10
        assert cfg.auto_base64_min_length == 100
        assert cfg.clean_html is True
        assert cfg.detect_pec is True

    def test_override(self):
        cfg = ParserConfig(max_depth=3, auto_base64_min_length=500, clean_html=False)
        assert cfg.max_depth == 3
        assert cfg.auto_base64_min_length == 500
        assert cfg.clean_html is False

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("MIME_MAX_DEPTH", "4")
        monkeypatch.setenv("MIME_AUTO_BASE64_MIN_LENGTH", "250")
        monkeypatch.setenv("MIME_DETECT_PEC", "false")
        cfg = ParserConfig()
        assert cfg.max_depth == 4
        assert cfg.auto_base64_min_length == 250
        assert cfg.detect_pec is False

    def test_depth_must_be_positive(self):
        with pytest.raises(ValidationError):
            ParserConfig(max_depth=0)


class TestLoggingConfig:
    def test_defaults(self):
        cfg = LoggingConfig()
        assert cfg.json_output is True
        assert cfg.level == "INFO"

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("LOG_JSON_OUTPUT", "false")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        cfg = LoggingConfig()
        assert cfg.json_output is False
        assert cfg.level == "DEBUG"
