"""
Unit tests for logging configuration

Tests verify:
- JSON formatter output structure
- Console formatter context rendering
- Root logger setup and teardown
- Environment-driven configuration
- Context logger
"""

import io
import json
import logging
import logging.handlers
import sys

import pytest

from utils.logging import (
    ConsoleFormatter,
    ContextLogger,
    JSONFormatter,
    configure_from_env,
    get_logger,
    setup_logging,
    shutdown_logging,
)
from utils.logging.formatters import extract_context


def make_record(msg="Test message", level=logging.INFO, exc_info=None, **extra):
    record = logging.LogRecord(
        name="test.logger",
        level=level,
        pathname="/src/transformation/pipeline.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=exc_info,
        func="run_mapping",
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    level = root.level
    yield
    shutdown_logging()
    root.setLevel(level)


class TestJSONFormatter:
    """Test JSON formatter"""

    def test_basic_fields(self):
        """Test JSON formatter creates valid JSON with the standard fields"""
        output = json.loads(JSONFormatter().format(make_record()))

        assert output["level"] == "INFO"
        assert output["logger"] == "test.logger"
        assert output["message"] == "Test message"
        assert output["app"] == "field-transform-engine"
        assert output["timestamp"].endswith("+00:00")
        assert "hostname" in output
        assert output["source"] == {
            "file": "/src/transformation/pipeline.py",
            "line": 42,
            "function": "run_mapping",
        }

    def test_optional_fields_disabled(self):
        formatter = JSONFormatter(include_timestamp=False, include_hostname=False)
        output = json.loads(formatter.format(make_record()))

        assert "timestamp" not in output
        assert "hostname" not in output

    def test_custom_app_name(self):
        output = json.loads(JSONFormatter(app_name="fieldmap").format(make_record()))
        assert output["app"] == "fieldmap"

    def test_extra_context(self):
        """Test caller-supplied extras are grouped under context"""
        record = make_record(endpoint="employees", source_field="email")
        output = json.loads(JSONFormatter().format(record))

        assert output["context"] == {"endpoint": "employees", "source_field": "email"}

    def test_exception_info(self):
        try:
            raise ValueError("bad value")
        except ValueError:
            record = make_record(level=logging.ERROR, exc_info=sys.exc_info())

        output = json.loads(JSONFormatter().format(record))

        assert output["exception"]["type"] == "ValueError"
        assert output["exception"]["message"] == "bad value"
        assert output["exception"]["traceback"]

    def test_non_serializable_context(self):
        output = json.loads(JSONFormatter().format(make_record(obj=object())))
        assert output["context"]["obj"].startswith("<object object")


class TestConsoleFormatter:
    """Test console formatter"""

    def test_plain_line(self):
        line = ConsoleFormatter(use_colors=False).format(make_record())
        assert "[INFO] test.logger: Test message" in line

    def test_context_appended(self):
        line = ConsoleFormatter(use_colors=False).format(
            make_record(endpoint="employees", step_id="s1")
        )
        assert line.endswith("[endpoint=employees, step_id=s1]")

    def test_colors_only_on_tty(self, monkeypatch):
        monkeypatch.setattr("sys.stderr", io.StringIO())
        assert ConsoleFormatter(use_colors=True).use_colors is False

    def test_levelname_restored_after_coloring(self):
        formatter = ConsoleFormatter(use_colors=False)
        formatter.use_colors = True
        record = make_record()

        line = formatter.format(record)

        assert "\033[32mINFO\033[0m" in line
        assert record.levelname == "INFO"


class TestExtractContext:
    def test_standard_and_private_attributes_skipped(self):
        record = make_record(_hidden=1, table="x")
        assert extract_context(record) == {"table": "x"}


class TestSetupLogging:
    """Test root logger setup"""

    def test_console_handler(self):
        setup_logging(level="DEBUG")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, ConsoleFormatter)

    def test_json_console(self):
        setup_logging(json_format=True)
        assert isinstance(logging.getLogger().handlers[0].formatter, JSONFormatter)

    def test_replaces_existing_handlers(self):
        setup_logging()
        setup_logging()
        assert len(logging.getLogger().handlers) == 1

    def test_rotating_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "fieldmap.log"
        setup_logging(log_file=str(log_file), console_output=False)

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.handlers.RotatingFileHandler)
        assert not isinstance(handlers[0].formatter, ConsoleFormatter)

        get_logger("test.file").info("written to file")
        handlers[0].flush()
        assert "written to file" in log_file.read_text()

    def test_invalid_level_defaults_to_info(self):
        setup_logging(level="LOUD")
        assert logging.getLogger().level == logging.INFO

    def test_noisy_loggers_quieted(self):
        setup_logging(level="DEBUG")
        assert logging.getLogger("urllib3").level == logging.WARNING

    def test_shutdown_removes_handlers(self):
        setup_logging()
        shutdown_logging()
        assert logging.getLogger().handlers == []


class TestConfigureFromEnv:
    """Test environment-driven configuration"""

    def test_env_values(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        monkeypatch.setenv("LOG_JSON", "true")

        configure_from_env()

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_arguments_override_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        monkeypatch.setenv("LOG_JSON", "true")

        configure_from_env(level="DEBUG", json_format=False)

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[0].formatter, ConsoleFormatter)

    def test_console_disabled(self, monkeypatch):
        monkeypatch.setenv("LOG_CONSOLE", "false")
        configure_from_env()
        assert logging.getLogger().handlers == []


class TestContextLogger:
    """Test context logger"""

    def test_context_attached(self, caplog):
        logger = ContextLogger("test.context", endpoint="employees")

        with caplog.at_level(logging.INFO, logger="test.context"):
            logger.info("Mapped email", source_field="email")

        record = caplog.records[0]
        assert record.getMessage() == "Mapped email"
        assert record.endpoint == "employees"
        assert record.source_field == "email"

    def test_call_extras_override_context(self, caplog):
        logger = ContextLogger("test.context", step_id="a")

        with caplog.at_level(logging.WARNING, logger="test.context"):
            logger.warning("failed", step_id="b")

        assert caplog.records[0].step_id == "b"

    def test_disabled_level_skipped(self, caplog):
        logger = ContextLogger("test.context")

        with caplog.at_level(logging.WARNING, logger="test.context"):
            logger.debug("hidden")

        assert caplog.records == []

