"""Tests for logging configuration and correlation tracking."""

import json
import logging
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from optionsengine.observability import (
    JsonFormatter,
    LoggingConfig,
    ObservabilityConfig,
    configure_logging,
    correlation_context,
    get_config,
    get_logger,
    load_config,
    set_config,
)
from optionsengine.observability.logging import correlation_id


def _flush_root_handlers():
    for handler in logging.getLogger().handlers:
        handler.flush()


class TestLoggingConfig:
    """Test LoggingConfig validation."""

    def test_defaults(self):
        config = LoggingConfig()

        assert config.level == "WARNING"
        assert config.format == "text"
        assert config.output == "stderr"
        assert config.enable_correlation is True

    def test_values_normalized(self):
        config = LoggingConfig(level="debug", format="JSON", output="Stdout")

        assert (config.level, config.format, config.output) == ("DEBUG", "json", "stdout")

    @pytest.mark.parametrize(
        "field,value", [("level", "LOUD"), ("format", "xml"), ("output", "syslog")]
    )
    def test_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            LoggingConfig(**{field: value})


class TestObservabilityConfig:
    """Test configuration sources."""

    @patch.dict(
        "os.environ",
        {
            "OPTIONSENGINE_LOG_LEVEL": "INFO",
            "OPTIONSENGINE_LOG_FORMAT": "json",
            "OPTIONSENGINE_LOG_CORRELATION": "false",
        },
    )
    def test_from_env(self):
        config = ObservabilityConfig.from_env()

        assert config.logging.level == "INFO"
        assert config.logging.format == "json"
        assert config.logging.enable_correlation is False

    def test_from_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("observability:\n  logging:\n    level: error\n    output: stdout\n")

        config = ObservabilityConfig.from_file(path)

        assert config.logging.level == "ERROR"
        assert config.to_dict()["logging"]["output"] == "stdout"

    def test_from_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ObservabilityConfig.from_file(tmp_path / "missing.yaml")

    def test_global_config(self, tmp_path):
        custom = ObservabilityConfig(logging=LoggingConfig(level="DEBUG"))
        set_config(custom)
        assert get_config() is custom

        path = tmp_path / "config.yaml"
        path.write_text("observability:\n  logging:\n    format: json\n")
        loaded = load_config(path)

        assert get_config() is loaded
        assert loaded.logging.format == "json"


class TestCorrelationContext:
    """Test correlation id propagation."""

    def test_generated_and_reset(self):
        with correlation_context() as corr_id:
            assert corr_id
            assert correlation_id.get() == corr_id

        assert correlation_id.get() == ""

    def test_explicit_and_nested(self):
        with correlation_context("outer"):
            with correlation_context("inner"):
                assert correlation_id.get() == "inner"
            assert correlation_id.get() == "outer"


class TestJsonFormatter:
    """Test JSON log rendering."""

    def test_extra_fields_included(self):
        record = logging.LogRecord(
            "optionsengine.test", logging.INFO, __file__, 10, "stored %s", ("app",), None
        )
        record.option_key = "retries"

        with correlation_context("abc"):
            data = json.loads(JsonFormatter().format(record))

        assert data["message"] == "stored app"
        assert data["level"] == "INFO"
        assert data["option_key"] == "retries"
        assert data["correlation_id"] == "abc"


class TestConfigureLogging:
    """Test end-to-end logging setup."""

    def test_json_file_output(self, tmp_path):
        path = tmp_path / "engine.log"
        configure_logging(
            LoggingConfig(level="DEBUG", format="json", output="file", file_path=str(path))
        )

        with correlation_context("req-1"):
            logging.getLogger("optionsengine.test").info("stdlib record", extra={"option_key": "a"})
            get_logger("optionsengine.test").info("structlog_event", record="app")
        _flush_root_handlers()

        lines = [json.loads(line) for line in path.read_text().splitlines()]
        assert lines[0]["message"] == "stdlib record"
        assert lines[0]["option_key"] == "a"
        assert lines[1]["message"] == "structlog_event"
        assert lines[1]["record"] == "app"
        assert all(line["correlation_id"] == "req-1" for line in lines)

    def test_text_output_carries_correlation_id(self, tmp_path):
        path = tmp_path / "engine.log"
        configure_logging(LoggingConfig(level="INFO", output="file", file_path=str(path)))

        with correlation_context("req-2"):
            logging.getLogger("optionsengine.test").info("hello")
            logging.getLogger("optionsengine.test").debug("hidden")
        _flush_root_handlers()

        text = path.read_text()
        assert "[req-2] hello" in text
        assert "hidden" not in text

    def test_file_output_requires_path(self):
        with pytest.raises(ValueError, match="requires file_path"):
            configure_logging(LoggingConfig(output="file"))
