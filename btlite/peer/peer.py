"""Peer wire protocol messages.

Only the handshake is implemented; :class:`~btlite.models.MessageType`
declares the remaining message kinds without any behavior.
"""

from __future__ import annotations

import struct

from btlite.models import INFO_HASH_LENGTH, PEER_ID_LENGTH
from btlite.utils.exceptions import (
    HandshakeError,
    InvalidProtocolNameError,
    MalformedHandshakeError,
    PeerInfoHashMismatchError,
)

PROTOCOL_NAME = "BitTorrent protocol"
RESERVED_LENGTH = 8
RESERVED_BYTES = b"\x00" * RESERVED_LENGTH

# Bytes after the protocol name: reserved + info hash + peer id
_FIXED_TAIL_LENGTH = RESERVED_LENGTH + INFO_HASH_LENGTH + PEER_ID_LENGTH


class Handshake:
    """BitTorrent handshake message.

    Wire format: ``<N><protocol name><reserved><info_hash><peer_id>`` where
    ``N`` is the single-byte length of the UTF-8 protocol name.
    """

    def __init__(
        self,
        info_hash: bytes,
        peer_id: bytes,
        protocol: str = PROTOCOL_NAME,
        reserved: bytes = RESERVED_BYTES,
    ) -> None:
        """Initialize handshake.

        Args:
            info_hash: 20-byte SHA-1 hash of info dictionary
            peer_id: 20-byte peer ID
            protocol: Protocol name, at most 255 bytes as UTF-8
            reserved: 8 reserved (extension) bytes, sent as given

        """
        if len(info_hash) != INFO_HASH_LENGTH:
            msg = f"Info hash must be {INFO_HASH_LENGTH} bytes, got {len(info_hash)}"
            raise HandshakeError(msg)
        if len(peer_id) != PEER_ID_LENGTH:
            msg = f"Peer ID must be {PEER_ID_LENGTH} bytes, got {len(peer_id)}"
            raise HandshakeError(msg)
        if len(reserved) != RESERVED_LENGTH:
            msg = f"Reserved must be {RESERVED_LENGTH} bytes, got {len(reserved)}"
            raise HandshakeError(msg)
        if len(protocol.encode("utf-8")) > 255:
            msg = "Protocol name must encode to at most 255 bytes"
            raise HandshakeError(msg)

        self.info_hash: bytes = bytes(info_hash)
        self.peer_id: bytes = bytes(peer_id)
        self.protocol: str = protocol
        self.reserved: bytes = bytes(reserved)

    @property
    def wire_length(self) -> int:
        """Size of the encoded message in bytes."""
        return 1 + len(self.protocol.encode("utf-8")) + _FIXED_TAIL_LENGTH

    @property
    def peer_id_hex(self) -> str:
        """Peer ID as lowercase hex."""
        return self.peer_id.hex()

    def encode(self) -> bytes:
        """Encode handshake to bytes."""
        protocol = self.protocol.encode("utf-8")
        return (
            struct.pack("B", len(protocol))
            + protocol
            + self.reserved
            + self.info_hash
            + self.peer_id
        )

    @classmethod
    def decode(cls, data: bytes) -> Handshake:
        """Decode handshake from bytes.

        The first byte must account for exactly the bytes given: ``data[0]``
        plus 49 must equal ``len(data)``. Reserved bytes are kept as received.

        Raises:
            MalformedHandshakeError: If the length prefix does not match
            InvalidProtocolNameError: If the protocol name is not UTF-8

        """
        if not data:
            msg = "Handshake is empty"
            raise MalformedHandshakeError(msg)

        protocol_len = data[0]
        expected = 1 + protocol_len + _FIXED_TAIL_LENGTH
        if len(data) != expected:
            msg = f"Handshake length mismatch: prefix implies {expected} bytes, got {len(data)}"
            raise MalformedHandshakeError(
                msg, {"protocol_length": protocol_len, "received": len(data)}
            )

        offset = 1 + protocol_len
        try:
            protocol = data[1:offset].decode("utf-8")
        except UnicodeDecodeError as e:
            msg = f"Protocol name is not valid UTF-8: {data[1:offset]!r}"
            raise InvalidProtocolNameError(msg) from e

        reserved = data[offset : offset + RESERVED_LENGTH]
        offset += RESERVED_LENGTH
        info_hash = data[offset : offset + INFO_HASH_LENGTH]
        offset += INFO_HASH_LENGTH
        peer_id = data[offset : offset + PEER_ID_LENGTH]

        return cls(info_hash, peer_id, protocol=protocol, reserved=reserved)

    def verify_info_hash(self, expected: bytes) -> None:
        """Check that this handshake is for the torrent we asked about.

        Raises:
            PeerInfoHashMismatchError: If the info hashes differ

        """
        if self.info_hash != expected:
            msg = f"Info hash mismatch: expected {expected.hex()}, got {self.info_hash.hex()}"
            raise PeerInfoHashMismatchError(
                msg,
                {"expected": expected.hex(), "received": self.info_hash.hex()},
            )

    def __eq__(self, other) -> bool:
        """Field-wise equality."""
        if not isinstance(other, Handshake):
            return NotImplemented
        return (
            self.protocol == other.protocol
            and self.reserved == other.reserved
            and self.info_hash == other.info_hash
            and self.peer_id == other.peer_id
        )

    def __repr__(self) -> str:
        """Return a debug representation."""
        return (
            f"Handshake(protocol={self.protocol!r}, reserved={self.reserved.hex()}, "
            f"info_hash={self.info_hash.hex()}, peer_id={self.peer_id_hex})"
        )
