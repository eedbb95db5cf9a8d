"""Exception hierarchy for btlite.

Every failure raised by the codec, the metainfo model, the tracker client
and the peer handshake is a subclass of :class:`BTLiteError`, so callers can
catch a whole component's failures by its intermediate base class.
"""

from __future__ import annotations

from typing import Any


class BTLiteError(Exception):
    """Base exception for all btlite errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize btlite error."""
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class ValidationError(BTLiteError):
    """Data validation errors."""


class ConfigurationError(ValidationError):
    """Configuration validation errors."""


class BencodeError(ValidationError):
    """Bencode encoding/decoding errors."""


class BencodeDecodeError(BencodeError):
    """Input is not well-formed bencode."""


class MalformedLengthError(BencodeDecodeError):
    """Byte-string length prefix is not a decimal number."""


class MalformedIntegerError(BencodeDecodeError):
    """Integer body is not a signed 64-bit decimal number."""


class TruncatedInputError(BencodeDecodeError):
    """Input ended before the current value was complete."""


class InvalidKeyTypeError(BencodeDecodeError):
    """Dictionary key is not a byte-string."""


class UnknownTagError(BencodeDecodeError):
    """Value starts with a byte that is not a bencode type tag."""


class NestingTooDeepError(BencodeDecodeError):
    """Lists/dictionaries are nested deeper than the decoder allows."""


class TrailingDataError(BencodeDecodeError):
    """Bytes remain after a complete top-level value."""


class BencodeEncodeError(BencodeError):
    """Value cannot be represented in bencode."""


class TorrentError(ValidationError):
    """Torrent file validation errors."""


class NotADictionaryError(TorrentError):
    """Metainfo root is not a dictionary."""


class _FieldError(TorrentError):
    def __init__(
        self,
        field: str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.field = field


class MissingFieldError(_FieldError):
    """A required metainfo field is absent."""

    def __init__(self, field: str):
        """Initialize with the dotted name of the missing field."""
        super().__init__(field, f"Missing required field: {field}")


class WrongFieldTypeError(_FieldError):
    """A metainfo field has the wrong type or an out-of-range value."""

    def __init__(self, field: str, expected: str, actual: Any = None):
        """Initialize with the field name and a description of the expected type."""
        super().__init__(
            field,
            f"Field {field} must be {expected}",
            {"actual_type": type(actual).__name__},
        )


class InvalidPieceTableError(TorrentError):
    """The pieces byte-string length is not a multiple of 20."""


class NetworkError(BTLiteError):
    """Network-related errors."""


class TrackerError(NetworkError):
    """Tracker communication errors."""


class TrackerUnreachableError(TrackerError):
    """The tracker could not be reached (connection error or timeout)."""


class TrackerProtocolError(TrackerError):
    """The tracker answered, but not with a usable announce response."""


class InvalidPeerTableError(TrackerProtocolError):
    """Compact peers byte-string length is not a multiple of 6."""


class UnsupportedTrackerModeError(TrackerProtocolError):
    """Tracker ignored compact=1 and sent a dictionary peer list."""


class PeerConnectionError(NetworkError):
    """Peer connection errors."""


class ConnectionFailedError(PeerConnectionError):
    """TCP connect, write or read to a peer failed or timed out."""


class ProtocolError(BTLiteError):
    """BitTorrent protocol errors."""


class HandshakeError(ProtocolError):
    """Handshake protocol errors."""


class MalformedHandshakeError(HandshakeError):
    """Handshake length prefix does not match the bytes received."""


class InvalidProtocolNameError(HandshakeError):
    """Handshake protocol name is not valid UTF-8."""


class PeerInfoHashMismatchError(HandshakeError):
    """Remote peer answered for a different torrent."""
