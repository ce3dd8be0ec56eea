"""Tests for log formatters and logging setup"""

import json
import logging
import sys
import pytest
from unittest.mock import patch

from cmd2mqtt.core.log import TEXT_FORMAT, build_formatter, configure_logging


def make_record(message, level=logging.INFO):
    return logging.LogRecord("cmd2mqtt.test", level, __file__, 1, message, None, None)


class TestFormatters:
    """Test structured output formats"""

    def test_json(self):
        """Test one JSON object per record"""
        entry = json.loads(build_formatter("json").format(make_record("Published result for Disk: 42")))

        assert entry["level"] == "info"
        assert entry["logger"] == "cmd2mqtt.test"
        assert entry["msg"] == "Published result for Disk: 42"
        assert "time" in entry
        assert "event" not in entry

    def test_json_includes_exception(self):
        """Test tracebacks are rendered into the entry"""
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = make_record("Publish failed", logging.ERROR)
            record.exc_info = sys.exc_info()

        entry = json.loads(build_formatter("json").format(record))

        assert entry["level"] == "error"
        assert "RuntimeError: boom" in entry["exception"]

    def test_logfmt_field_order(self):
        """Test fields come out as time, level, logger, msg"""
        line = build_formatter("logfmt").format(make_record("ready"))

        assert line.startswith("time=")
        assert line.index("level=info") < line.index("logger=cmd2mqtt.test") < line.index("msg=ready")

    def test_logfmt_quotes_values_with_spaces(self):
        """Test messages with spaces are quoted"""
        line = build_formatter("logfmt").format(make_record('Connected to "nas"', logging.WARNING))

        assert "level=warning" in line
        assert 'msg="Connected to \\"nas\\""' in line

    def test_text(self):
        """Test the plain text layout"""
        line = build_formatter("text").format(make_record("ready"))
        assert line.endswith(" - cmd2mqtt.test - INFO - ready")

    def test_unknown_format(self):
        """Test an unknown format name is rejected"""
        with pytest.raises(ValueError, match="xml"):
            build_formatter("xml")


class TestConfigureLogging:
    """Test root logger setup"""

    def test_level_and_format(self):
        """Test the level is applied and the handler uses the chosen format"""
        with patch("cmd2mqtt.core.log.logging.basicConfig") as mock_basic:
            configure_logging("warn", "json")

        kwargs = mock_basic.call_args[1]
        assert kwargs["level"] == logging.WARNING
        assert kwargs["force"] is True
        record = make_record("hello")
        assert json.loads(kwargs["handlers"][0].format(record))["msg"] == "hello"

    def test_unknown_values_fall_back(self):
        """Test unknown level and format fall back to info and text"""
        with patch("cmd2mqtt.core.log.logging.basicConfig") as mock_basic:
            configure_logging("panic", "xml")

        kwargs = mock_basic.call_args[1]
        assert kwargs["level"] == logging.INFO
        assert kwargs["handlers"][0].formatter._fmt == TEXT_FORMAT
