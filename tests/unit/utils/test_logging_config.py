"""Tests for logging setup, correlation IDs and logging helpers."""

from __future__ import annotations

import json
import logging
import logging.handlers
import sys
from unittest.mock import MagicMock

import pytest

pytestmark = [pytest.mark.unit, pytest.mark.observability]

from btlite.models import LogLevel, ObservabilityConfig
from btlite.utils.exceptions import TrackerUnreachableError
from btlite.utils.logging_config import (
    CorrelationFilter,
    LoggingContext,
    StructuredFormatter,
    get_correlation_id,
    get_logger,
    log_exception,
    set_correlation_id,
    setup_logging,
)
from btlite.utils.rich_logging import CorrelationRichHandler, create_rich_handler


def _record(msg="hello", **extra):
    record = logging.LogRecord(
        name="btlite.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestGetLogger:
    """Logger naming."""

    def test_prefixes_foreign_names(self):
        """Names outside the package are nested under it."""
        assert get_logger("tools").name == "btlite.tools"

    def test_keeps_package_names(self):
        """Package loggers are returned unchanged."""
        assert get_logger("btlite").name == "btlite"
        assert get_logger("btlite.core.torrent").name == "btlite.core.torrent"


class TestCorrelationId:
    """Correlation ID context."""

    def test_set_and_get(self):
        """An explicit ID is stored as given."""
        assert set_correlation_id("abc-123") == "abc-123"
        assert get_correlation_id() == "abc-123"

    def test_generated(self):
        """Without an argument a UUID is generated."""
        corr = set_correlation_id()
        assert len(corr) == 36
        assert get_correlation_id() == corr

    def test_filter_adds_id(self):
        """CorrelationFilter stamps every record."""
        set_correlation_id("filter-id")
        record = _record()

        assert CorrelationFilter().filter(record) is True
        assert record.correlation_id == "filter-id"


class TestStructuredFormatter:
    """JSON log lines."""

    def test_format(self):
        """Standard and extra fields end up in the JSON object."""
        record = _record("peer %s", correlation_id="c1", peer="1.2.3.4:6881")
        record.args = ("ok",)

        entry = json.loads(StructuredFormatter().format(record))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "btlite.test"
        assert entry["message"] == "peer ok"
        assert entry["correlation_id"] == "c1"
        assert entry["peer"] == "1.2.3.4:6881"
        assert "msg" not in entry

    def test_format_exception(self):
        """Exception text is included."""
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()

        entry = json.loads(StructuredFormatter().format(record))
        assert "ValueError: boom" in entry["exception"]


class TestRichHandler:
    """Rich console handler."""

    def test_correlation_prefix(self):
        """The first eight characters of the ID prefix the message."""
        handler = create_rich_handler()
        text = handler.render_message(_record(correlation_id="12345678abcdef"), "hello")
        assert text.plain == "[12345678] hello"

    def test_prefix_disabled(self):
        """The prefix can be switched off."""
        handler = create_rich_handler(show_correlation_id=False)
        text = handler.render_message(_record(correlation_id="12345678abcdef"), "hello")
        assert text.plain == "hello"

    def test_no_prefix_without_id(self):
        """Records without an ID are left alone."""
        handler = create_rich_handler()
        text = handler.render_message(_record(correlation_id="no-correlation-id"), "hello")
        assert text.plain == "hello"


class TestSetupLogging:
    """dictConfig-based setup."""

    def test_rich_console(self):
        """The default setup uses the rich handler at the configured level."""
        setup_logging(ObservabilityConfig(log_level=LogLevel.DEBUG))

        logger = logging.getLogger("btlite")
        assert logger.level == logging.DEBUG
        assert logger.propagate is False
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], CorrelationRichHandler)
        assert get_correlation_id() is not None

    def test_structured_console(self):
        """Structured logging switches to JSON lines."""
        setup_logging(ObservabilityConfig(structured_logging=True))

        handler = logging.getLogger("btlite").handlers[0]
        assert isinstance(handler.formatter, StructuredFormatter)

    def test_log_file(self, tmp_path):
        """A log file is created, including missing directories."""
        log_file = tmp_path / "logs" / "btlite.log"
        setup_logging(ObservabilityConfig(log_file=str(log_file)))

        logger = logging.getLogger("btlite")
        assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in logger.handlers)

        get_logger("test").warning("written to file")

        assert "written to file" in log_file.read_text(encoding="utf-8")


class TestLoggingContext:
    """Operation timing context."""

    def test_success(self):
        """Start and completion are logged."""
        logger = MagicMock()

        with LoggingContext("announce", logger, tracker="t") as ctx:
            assert ctx.operation == "announce"

        messages = [call.args[0] for call in logger.debug.call_args_list]
        assert messages == ["Starting %s", "Completed %s in %.3fs"]
        assert logger.debug.call_args.kwargs["extra"] == {"tracker": "t"}

    def test_failure_is_not_suppressed(self):
        """Exceptions propagate after the failure is logged."""
        logger = MagicMock()

        with pytest.raises(ValueError, match="boom"):
            with LoggingContext("handshake", logger):
                raise ValueError("boom")

        assert logger.debug.call_args.args[0] == "Failed %s in %.3fs: %s"

    def test_sets_correlation_id(self):
        """Each operation gets a fresh correlation ID."""
        set_correlation_id("before")
        with LoggingContext("op", MagicMock()):
            assert get_correlation_id() != "before"


class TestLogException:
    """log_exception helper."""

    def test_btlite_error(self):
        """Package errors log their message and details."""
        logger = MagicMock()
        logger.isEnabledFor.return_value = False
        error = TrackerUnreachableError("down", {"url": "http://t"})

        log_exception(logger, error, "announce")

        logger.error.assert_called_once_with(
            "%s: %s",
            "announce",
            "down",
            extra={"details": {"url": "http://t"}},
            exc_info=False,
        )

    def test_other_error(self):
        """Foreign errors always include the traceback."""
        logger = MagicMock()
        error = RuntimeError("oops")

        log_exception(logger, error, "cli")

        logger.error.assert_called_once_with("%s: %s", "cli", error, exc_info=True)
