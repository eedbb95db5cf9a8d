"""Shared utilities and infrastructure.

This module contains common utilities used throughout the application.
"""

from __future__ import annotations

from btlite.utils.exceptions import (
    BencodeError,
    BTLiteError,
    ConfigurationError,
    HandshakeError,
    NetworkError,
    PeerConnectionError,
    ProtocolError,
    TorrentError,
    TrackerError,
    ValidationError,
)
from btlite.utils.logging_config import (
    LoggingContext,
    get_logger,
    log_exception,
    setup_logging,
)

__all__ = [
    # Exceptions
    "BTLiteError",
    "BencodeError",
    "ConfigurationError",
    "HandshakeError",
    "LoggingContext",
    "NetworkError",
    "PeerConnectionError",
    "ProtocolError",
    "TorrentError",
    "TrackerError",
    "ValidationError",
    # Logging
    "get_logger",
    "log_exception",
    "setup_logging",
]
