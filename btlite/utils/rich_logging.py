"""Rich logging integration for btlite.

Provides the rich console handler used by :func:`btlite.utils.logging_config.setup_logging`.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

from rich.console import Console
from rich.logging import RichHandler


class CorrelationRichHandler(RichHandler):
    """RichHandler that prefixes messages with the record's correlation ID."""

    def __init__(self, *args: Any, show_correlation_id: bool = True, **kwargs: Any) -> None:
        """Initialize handler.

        Args:
            *args: Positional arguments for RichHandler
            show_correlation_id: Prefix each line with the first 8 chars of the correlation ID
            **kwargs: Keyword arguments for RichHandler

        """
        super().__init__(*args, **kwargs)
        self.show_correlation_id = show_correlation_id

    def render_message(self, record: logging.LogRecord, message: str) -> Any:
        """Render message, prepending the correlation ID when one is set."""
        corr = getattr(record, "correlation_id", None)
        if self.show_correlation_id and corr and corr != "no-correlation-id":
            message = f"[{corr[:8]}] {message}"
        return super().render_message(record, message)


def create_rich_handler(
    console: Console | None = None,
    level: int = logging.INFO,
    show_path: bool = False,
    rich_tracebacks: bool = True,
    show_correlation_id: bool = True,
) -> logging.Handler:
    """Create a RichHandler with correlation ID support.

    Args:
        console: Optional Rich Console instance (defaults to stderr)
        level: Log level
        show_path: Whether to show file paths in log output
        rich_tracebacks: Whether to use rich tracebacks
        show_correlation_id: Whether to prefix lines with the correlation ID

    Returns:
        Configured RichHandler instance

    """
    if console is None:
        # stdout is reserved for command output
        console = Console(file=sys.stderr)

    # markup stays off: messages carry raw reprs with square brackets
    return CorrelationRichHandler(
        console=console,
        level=level,
        show_path=show_path,
        rich_tracebacks=rich_tracebacks,
        markup=False,
        show_correlation_id=show_correlation_id,
    )
