"""
Tests for the httpkit logging setup.
"""

import json
import logging
import sys

import pytest

from httpkit.logger import (
    COLOR_CODES,
    PACKAGE_LOGGER,
    EnvironmentLoggerAdapter,
    JSONFormatter,
    TextFormatter,
    configure_logging,
)


def make_record(level=logging.WARNING, msg="something happened", **extra) -> logging.LogRecord:
    record = logging.LogRecord("httpkit.test", level, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestFormatters:
    """Test the JSON and text formatters."""

    def test_json_formatter(self):
        formatter = JSONFormatter(default_context={"service": "api"}, show_environment=True)
        record = make_record(session_id="abc123", environment="testing")

        line = json.loads(formatter.format(record))

        assert line["logger"] == "httpkit.test"
        assert line["level"] == "WARNING"
        assert line["message"] == "something happened"
        assert line["timestamp"].endswith("Z")
        assert line["context"] == {"service": "api", "session_id": "abc123", "environment": "testing"}

    def test_json_formatter_exception(self):
        formatter = JSONFormatter()
        try:
            raise ValueError("bad")
        except ValueError:
            record = logging.LogRecord("httpkit.test", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())

        line = json.loads(formatter.format(record))

        assert "ValueError: bad" in line["exception"]
        assert "context" not in line

    def test_text_formatter_plain(self):
        formatter = TextFormatter(colored=False)
        record = make_record(request_id="r-1", client_ip="10.0.0.1")

        line = formatter.format(record)

        assert "WARNING [httpkit.test] something happened" in line
        assert line.endswith("request_id=r-1 client_ip=10.0.0.1")

    def test_text_formatter_colored(self):
        formatter = TextFormatter(colored=True)
        record = make_record()

        line = formatter.format(record)

        assert COLOR_CODES["WARNING"] in line
        assert record.levelname == "WARNING"


@pytest.fixture
def restore_loggers():
    """Put back the level and handlers of every logger a test configures."""
    saved = {}

    def track(*names):
        for name in names:
            logger = logging.getLogger(name)
            saved.setdefault(name, (logger.level, list(logger.handlers)))
        return names

    yield track

    for name, (level, handlers) in saved.items():
        logger = logging.getLogger(name)
        for handler in logger.handlers:
            if handler not in handlers:
                handler.close()
        logger.handlers[:] = handlers
        logger.setLevel(level)


class TestConfigureLogging:
    """Test configure_logging."""

    def test_returns_environment_adapter(self, restore_loggers):
        (name,) = restore_loggers("httpkit-test-adapter")

        log = configure_logging(environment="staging", loggers=(name,))

        assert isinstance(log, EnvironmentLoggerAdapter)
        assert log.logger is logging.getLogger(name)
        assert log.extra == {"environment": "staging"}
        assert len(log.logger.handlers) == 1
        assert log.logger.level == logging.INFO

    def test_adapter_keeps_caller_extra(self):
        log = EnvironmentLoggerAdapter(logging.getLogger("httpkit-test-extra"), "testing")

        _, kwargs = log.process("hello", {"extra": {"session_id": "abc"}})

        assert kwargs["extra"] == {"session_id": "abc", "environment": "testing"}

    def test_default_logger_is_the_package_logger(self, restore_loggers):
        restore_loggers(PACKAGE_LOGGER)

        log = configure_logging("warning", to_console=False)

        assert log.logger is logging.getLogger("httpkit")
        assert log.logger.level == logging.WARNING

    def test_reconfiguring_does_not_duplicate_handlers(self, restore_loggers):
        (name,) = restore_loggers("httpkit-test-dupes")

        configure_logging(loggers=(name,))
        log = configure_logging(loggers=(name,))

        assert len(log.logger.handlers) == 1

    def test_loggers_share_handlers(self, restore_loggers):
        first, second = restore_loggers("httpkit-test-first", "httpkit-test-second")

        configure_logging(loggers=(first, second))

        assert logging.getLogger(first).handlers == logging.getLogger(second).handlers

    def test_module_records_reach_package_handlers(self, tmp_path, restore_loggers):
        restore_loggers(PACKAGE_LOGGER)
        log_file = tmp_path / "httpkit.log"

        configure_logging(log_file=str(log_file), json_logs=True, to_console=False)
        logging.getLogger("httpkit.session.session").warning("session expired")
        for handler in logging.getLogger(PACKAGE_LOGGER).handlers:
            handler.flush()

        entry = json.loads(log_file.read_text().splitlines()[0])
        assert entry["logger"] == "httpkit.session.session"
        assert entry["message"] == "session expired"

    def test_json_file_logging(self, tmp_path, restore_loggers):
        (name,) = restore_loggers("httpkit-test-file")
        log_file = tmp_path / "logs" / "app.log"

        log = configure_logging(
            log_file=str(log_file),
            json_logs=True,
            to_console=False,
            environment="testing",
            show_environment=True,
            default_context={"service": "api"},
            loggers=(name,),
        )
        log.info("session started", extra={"session_id": "abc"})
        log.debug("not written")
        for handler in log.logger.handlers:
            handler.flush()

        lines = log_file.read_text().splitlines()
        assert len(lines) == 1
        entry = json.loads(lines[0])
        assert entry["message"] == "session started"
        assert entry["context"] == {"service": "api", "session_id": "abc", "environment": "testing"}

    def test_text_file_logging_has_no_colors(self, tmp_path, restore_loggers):
        (name,) = restore_loggers("httpkit-test-text")
        log_file = tmp_path / "app.log"

        log = configure_logging(log_file=str(log_file), to_console=False, loggers=(name,))
        log.warning("careful")
        for handler in log.logger.handlers:
            handler.flush()

        content = log_file.read_text()
        assert "WARNING [httpkit-test-text] careful" in content
        assert "\033[" not in content
