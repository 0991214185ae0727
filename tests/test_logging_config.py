"""Tests for logging configuration module."""

from __future__ import annotations

import json
import logging
import os
from io import StringIO
from unittest.mock import patch

from dronesim.logging_config import (
    JSONFormatter,
    TextFormatter,
    configure_logging,
    get_log_format,
    get_log_level,
    get_logger,
)


def make_record(
    name: str = "dronesim.test",
    level: int = logging.INFO,
    msg: str = "Test message",
    args: tuple = (),
    sim_time: float | None = None,
    **extra: object,
) -> logging.LogRecord:
    """Create a LogRecord, optionally carrying sim_time and extra fields."""
    record = logging.LogRecord(
        name=name,
        level=level,
        pathname="/path/to/network.py",
        lineno=42,
        msg=msg,
        args=args,
        exc_info=None,
    )
    record.filename = "network.py"
    if sim_time is not None:
        record.sim_time = sim_time
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestGetLogLevel:
    """Tests for get_log_level function."""

    def test_default_is_info(self) -> None:
        """Default log level should be INFO."""
        with patch.dict(os.environ, {}, clear=True):
            assert get_log_level() == logging.INFO

    def test_debug_level(self) -> None:
        """LOG_LEVEL=DEBUG should return logging.DEBUG."""
        with patch.dict(os.environ, {"LOG_LEVEL": "DEBUG"}):
            assert get_log_level() == logging.DEBUG

    def test_warn_alias(self) -> None:
        """LOG_LEVEL=WARN should work as alias for WARNING."""
        with patch.dict(os.environ, {"LOG_LEVEL": "WARN"}):
            assert get_log_level() == logging.WARNING

    def test_case_insensitive(self) -> None:
        """Log level should be case insensitive."""
        with patch.dict(os.environ, {"LOG_LEVEL": "error"}):
            assert get_log_level() == logging.ERROR

    def test_invalid_level_defaults_to_info(self) -> None:
        """Invalid log level should default to INFO."""
        with patch.dict(os.environ, {"LOG_LEVEL": "LOUD"}):
            assert get_log_level() == logging.INFO


class TestGetLogFormat:
    """Tests for get_log_format function."""

    def test_default_is_text(self) -> None:
        """Default log format should be text."""
        with patch.dict(os.environ, {}, clear=True):
            assert get_log_format() == "text"

    def test_json_format_case_insensitive(self) -> None:
        """LOG_FORMAT=JSON should return json."""
        with patch.dict(os.environ, {"LOG_FORMAT": "JSON"}):
            assert get_log_format() == "json"

    def test_invalid_format_defaults_to_text(self) -> None:
        """Invalid log format should default to text."""
        with patch.dict(os.environ, {"LOG_FORMAT": "xml"}):
            assert get_log_format() == "text"


class TestJSONFormatter:
    """Tests for JSON log formatter."""

    def test_formats_as_valid_json(self) -> None:
        """Output should be valid JSON with the fixed fields."""
        data = json.loads(JSONFormatter().format(make_record()))
        assert data["message"] == "Test message"
        assert data["level"] == "INFO"
        assert data["logger"] == "dronesim.test"
        assert "timestamp" in data

    def test_includes_sim_time(self) -> None:
        """sim_time extra should become a top-level field."""
        data = json.loads(JSONFormatter().format(make_record(sim_time=1.5)))
        assert data["sim_time"] == 1.5
        assert "extra" not in data

    def test_omits_sim_time_when_absent(self) -> None:
        """Records without a simulation clock should have no sim_time field."""
        data = json.loads(JSONFormatter().format(make_record()))
        assert "sim_time" not in data

    def test_collects_other_extras(self) -> None:
        """Unknown attributes should be grouped under extra."""
        data = json.loads(JSONFormatter().format(make_record(drone_id=3)))
        assert data["extra"] == {"drone_id": 3}

    def test_includes_source_for_debug(self) -> None:
        """Debug logs should include source location."""
        data = json.loads(JSONFormatter().format(make_record(level=logging.DEBUG)))
        assert data["source"]["line"] == 42
        assert data["source"]["file"] == "/path/to/network.py"

    def test_no_source_for_info(self) -> None:
        """Info logs should not include source location."""
        data = json.loads(JSONFormatter().format(make_record()))
        assert "source" not in data

    def test_formats_message_with_args(self) -> None:
        """Message arguments should be formatted."""
        record = make_record(msg="msgId=%d to %s", args=(7, "HQ"))
        data = json.loads(JSONFormatter().format(record))
        assert data["message"] == "msgId=7 to HQ"


class TestTextFormatter:
    """Tests for text log formatter."""

    def test_formats_basic_message(self) -> None:
        """Basic message should be formatted correctly."""
        output = TextFormatter(use_colors=False).format(make_record())
        assert "Test message" in output
        assert "INFO" in output

    def test_shortens_logger_name(self) -> None:
        """Logger names under dronesim should be shortened."""
        record = make_record(name="dronesim.engine.network")
        output = TextFormatter(use_colors=False).format(record)
        assert "[engine.network]" in output
        assert "dronesim.engine.network" not in output

    def test_renders_sim_time(self) -> None:
        """sim_time should render as [t=...] with three decimals."""
        output = TextFormatter(use_colors=False).format(make_record(sim_time=0.5))
        assert "[t=0.500] Test message" in output

    def test_no_clock_without_sim_time(self) -> None:
        """Records without sim_time should not show a clock."""
        output = TextFormatter(use_colors=False).format(make_record())
        assert "[t=" not in output

    def test_includes_source_for_debug(self) -> None:
        """Debug logs should include file:line."""
        output = TextFormatter(use_colors=False).format(make_record(level=logging.DEBUG))
        assert "network.py:42" in output


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def test_configures_dronesim_logger(self) -> None:
        """Should configure the dronesim logger with one handler."""
        configure_logging(level=logging.DEBUG, format_type="text")
        logger = logging.getLogger("dronesim")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert logger.propagate is False

    def test_repeated_calls_do_not_duplicate_handlers(self) -> None:
        """Calling twice should still leave exactly one handler."""
        configure_logging(level=logging.INFO, format_type="text")
        configure_logging(level=logging.INFO, format_type="text")
        assert len(logging.getLogger("dronesim").handlers) == 1

    def test_uses_json_formatter(self) -> None:
        """Should use JSON formatter when format_type is json."""
        configure_logging(level=logging.INFO, format_type="json")
        logger = logging.getLogger("dronesim")
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)

    def test_reads_from_environment(self) -> None:
        """Should read level and format from environment."""
        with patch.dict(os.environ, {"LOG_LEVEL": "WARNING", "LOG_FORMAT": "json"}):
            configure_logging()
            logger = logging.getLogger("dronesim")
            assert logger.level == logging.WARNING
            assert isinstance(logger.handlers[0].formatter, JSONFormatter)


class TestGetLogger:
    """Tests for get_logger convenience function."""

    def test_prefixes_dronesim(self) -> None:
        """Should prefix non-dronesim names with dronesim."""
        assert get_logger("my_module").name == "dronesim.my_module"

    def test_preserves_dronesim_prefix(self) -> None:
        """Should not double-prefix dronesim names."""
        assert get_logger("dronesim.engine").name == "dronesim.engine"


class TestIntegration:
    """Integration tests for logging."""

    def test_sim_time_extra_reaches_stream(self) -> None:
        """A logger call with extra sim_time should show the clock in output."""
        buffer = StringIO()
        handler = logging.StreamHandler(buffer)
        handler.setFormatter(TextFormatter(use_colors=False))

        logger = logging.getLogger("dronesim.test_integration")
        logger.handlers.clear()
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG)
        logger.propagate = False

        logger.info("[SEND] Drone0 -> HQ", extra={"sim_time": 2.25})

        output = buffer.getvalue()
        assert "[t=2.250] [SEND] Drone0 -> HQ" in output
