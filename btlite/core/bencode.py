"""Bencode encoding and decoding for the BitTorrent protocol.

Values map onto Python types as follows:

    integer       -> int (signed 64-bit range)
    byte-string   -> bytes (never implicitly decoded as text)
    list          -> list
    dictionary    -> dict[bytes, value]

The decoder is a recursive-descent parser over a cursor. It is lenient on
read (dictionary key order is not checked, leading zeros are accepted) while
the encoder is canonical: minimal decimal forms and dictionary keys sorted by
raw byte value, so re-encoding a decoded value is hash-stable.
"""

from __future__ import annotations

import re
from typing import Any, Iterator, Union

from btlite.utils.exceptions import (
    BencodeDecodeError,
    BencodeEncodeError,
    InvalidKeyTypeError,
    MalformedIntegerError,
    MalformedLengthError,
    NestingTooDeepError,
    TrailingDataError,
    TruncatedInputError,
    UnknownTagError,
)

BencodeValue = Union[int, bytes, list["BencodeValue"], dict[bytes, "BencodeValue"]]

DEFAULT_MAX_DEPTH = 256

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

_INTEGER_RE = re.compile(rb"-?[0-9]+")

_TAG_INT = ord("i")
_TAG_LIST = ord("l")
_TAG_DICT = ord("d")
_TAG_END = ord("e")
_COLON = ord(":")
_DIGITS = frozenset(b"0123456789")


class BencodeDecoder:
    """Decode bencoded values from a byte buffer.

    The decoder keeps a cursor (:attr:`position`). Each call to
    :meth:`decode` consumes exactly one value and leaves the cursor
    immediately after it, so a buffer holding several consecutive
    top-level values can be read one value at a time.
    """

    def __init__(self, data: bytes | bytearray | memoryview, max_depth: int = DEFAULT_MAX_DEPTH):
        """Initialize decoder.

        Args:
            data: Bencoded input
            max_depth: Maximum nesting of lists/dictionaries

        """
        if not isinstance(data, (bytes, bytearray, memoryview)):
            msg = f"BencodeDecoder expects bytes-like input, got {type(data).__name__}"
            raise TypeError(msg)
        self.data = bytes(data)
        self.position = 0
        self.max_depth = max_depth

    @property
    def at_end(self) -> bool:
        """True when every input byte has been consumed."""
        return self.position >= len(self.data)

    def decode(self) -> BencodeValue:
        """Decode one value starting at the cursor.

        Raises:
            BencodeDecodeError: If the input is malformed or ends early

        """
        return self._decode_value(0)

    def decode_next(self) -> BencodeValue | None:
        """Decode one value, or return None if the input is exhausted.

        ``None`` is never a bencode value, so it marks the clean end of a
        stream of top-level values. A value that starts but does not finish
        still raises :class:`TruncatedInputError`.
        """
        if self.at_end:
            return None
        return self._decode_value(0)

    def __iter__(self) -> Iterator[BencodeValue]:
        """Yield consecutive top-level values until the input is exhausted."""
        while True:
            value = self.decode_next()
            if value is None:
                return
            yield value

    def _decode_value(self, depth: int) -> BencodeValue:
        if self.at_end:
            self._fail(TruncatedInputError, "Unexpected end of data while parsing value")

        tag = self.data[self.position]
        if tag in _DIGITS:
            return self._decode_bytes()
        if tag == _TAG_INT:
            return self._decode_int()
        if tag == _TAG_LIST:
            return self._decode_list(depth + 1)
        if tag == _TAG_DICT:
            return self._decode_dict(depth + 1)
        return self._fail(UnknownTagError, f"Invalid bencode prefix byte {bytes([tag])!r}")

    def _decode_bytes(self) -> bytes:
        """Decode ``<length>:<payload>``."""
        data = self.data
        start = self.position
        i = start
        while i < len(data) and data[i] in _DIGITS:
            i += 1

        if i >= len(data):
            self._fail(TruncatedInputError, "Missing ':' in byte-string length")
        if data[i] != _COLON:
            self._fail(
                MalformedLengthError,
                f"Non-digit in byte-string length: {data[start:i + 1]!r}",
            )

        try:
            length = int(data[start:i])
        except ValueError:
            # digit run longer than int() will convert
            self._fail(MalformedLengthError, f"Byte-string length has {i - start} digits")
        payload_start = i + 1
        payload_end = payload_start + length
        if payload_end > len(data):
            self._fail(
                TruncatedInputError,
                f"Byte-string claims {length} bytes, only "
                f"{len(data) - payload_start} available",
            )

        self.position = payload_end
        return data[payload_start:payload_end]

    def _decode_int(self) -> int:
        """Decode ``i<digits>e``."""
        body_start = self.position + 1
        end = self.data.find(b"e", body_start)
        if end == -1:
            self._fail(TruncatedInputError, "Missing 'e' terminator for integer")

        body = self.data[body_start:end]
        if not _INTEGER_RE.fullmatch(body):
            self._fail(MalformedIntegerError, f"Invalid integer digits: {body!r}")

        try:
            value = int(body)
        except ValueError:
            self._fail(MalformedIntegerError, f"Integer has {len(body)} digits, out of 64-bit range")
        if not INT64_MIN <= value <= INT64_MAX:
            self._fail(MalformedIntegerError, f"Integer out of 64-bit range: {body!r}")

        self.position = end + 1
        return value

    def _decode_list(self, depth: int) -> list[BencodeValue]:
        """Decode ``l<value>...e``."""
        self._check_depth(depth)
        self.position += 1  # skip 'l'

        result: list[BencodeValue] = []
        while True:
            if self.at_end:
                self._fail(TruncatedInputError, "Unexpected end of data inside list")
            if self.data[self.position] == _TAG_END:
                self.position += 1
                return result
            result.append(self._decode_value(depth))

    def _decode_dict(self, depth: int) -> dict[bytes, BencodeValue]:
        """Decode ``d<key><value>...e``."""
        self._check_depth(depth)
        self.position += 1  # skip 'd'

        result: dict[bytes, BencodeValue] = {}
        while True:
            if self.at_end:
                self._fail(TruncatedInputError, "Unexpected end of data inside dictionary")
            if self.data[self.position] == _TAG_END:
                self.position += 1
                return result

            key_position = self.position
            key = self._decode_value(depth)
            if not isinstance(key, bytes):
                self.position = key_position
                self._fail(
                    InvalidKeyTypeError,
                    f"Dictionary key must be a byte-string, got {type(key).__name__}",
                )
            result[key] = self._decode_value(depth)

    def _check_depth(self, depth: int) -> None:
        if depth > self.max_depth:
            self._fail(
                NestingTooDeepError,
                f"Nesting deeper than {self.max_depth} levels",
            )

    def _fail(self, error: type[BencodeDecodeError], message: str) -> Any:
        raise error(message, {"position": self.position})


class BencodeEncoder:
    """Encode Python values into canonical bencode."""

    def encode(self, obj: Any) -> bytes:
        """Encode a value.

        Accepts int, bytes-like, str (UTF-8), list/tuple and dict with
        bytes or str keys.

        Raises:
            BencodeEncodeError: If the value cannot be represented

        """
        parts: list[bytes] = []
        self._encode_into(obj, parts)
        return b"".join(parts)

    def _encode_into(self, obj: Any, parts: list[bytes]) -> None:
        # bool is an int subclass; reject it before the int branch
        if isinstance(obj, bool):
            msg = "Cannot bencode bool"
            raise BencodeEncodeError(msg)

        if isinstance(obj, int):
            if not INT64_MIN <= obj <= INT64_MAX:
                msg = f"Integer out of 64-bit range: {obj}"
                raise BencodeEncodeError(msg)
            parts.append(b"i%de" % obj)
        elif isinstance(obj, (bytes, bytearray, memoryview)):
            raw = bytes(obj)
            parts.append(b"%d:" % len(raw))
            parts.append(raw)
        elif isinstance(obj, str):
            self._encode_into(obj.encode("utf-8"), parts)
        elif isinstance(obj, (list, tuple)):
            parts.append(b"l")
            for item in obj:
                self._encode_into(item, parts)
            parts.append(b"e")
        elif isinstance(obj, dict):
            parts.append(b"d")
            for key, value in self._sorted_items(obj):
                self._encode_into(key, parts)
                self._encode_into(value, parts)
            parts.append(b"e")
        else:
            msg = f"Cannot bencode object of type {type(obj).__name__}"
            raise BencodeEncodeError(msg)

    def _sorted_items(self, obj: dict[Any, Any]) -> list[tuple[bytes, Any]]:
        items: dict[bytes, Any] = {}
        for key, value in obj.items():
            if isinstance(key, str):
                raw_key = key.encode("utf-8")
            elif isinstance(key, (bytes, bytearray, memoryview)):
                raw_key = bytes(key)
            else:
                msg = f"Dictionary keys must be bytes or str, got {type(key).__name__}"
                raise BencodeEncodeError(msg)
            if raw_key in items:
                msg = f"Duplicate dictionary key after encoding: {raw_key!r}"
                raise BencodeEncodeError(msg)
            items[raw_key] = value
        return sorted(items.items(), key=lambda item: item[0])


def decode(data: bytes | bytearray | memoryview, max_depth: int = DEFAULT_MAX_DEPTH) -> BencodeValue:
    """Decode a buffer holding exactly one bencoded value.

    Raises:
        TrailingDataError: If bytes remain after the value
        BencodeDecodeError: If the input is malformed

    """
    decoder = BencodeDecoder(data, max_depth=max_depth)
    value = decoder.decode()
    if not decoder.at_end:
        msg = f"Extra data after valid bencode: {len(decoder.data) - decoder.position} bytes"
        raise TrailingDataError(msg, {"position": decoder.position})
    return value


def iter_decode(
    data: bytes | bytearray | memoryview,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Iterator[BencodeValue]:
    """Yield each top-level value of a buffer of concatenated bencoded values."""
    yield from BencodeDecoder(data, max_depth=max_depth)


def encode(obj: Any) -> bytes:
    """Encode a value into canonical bencode."""
    return BencodeEncoder().encode(obj)
