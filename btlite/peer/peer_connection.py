"""Async peer connection: TCP connect and handshake exchange.

This module opens a TCP stream to a single peer, sends our handshake and
reads the peer's reply using asyncio streams.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum

from btlite.config.config import get_config
from btlite.models import Config, PeerInfo
from btlite.peer.peer import PROTOCOL_NAME, RESERVED_BYTES, Handshake
from btlite.utils.exceptions import ConnectionFailedError, HandshakeError

logger = logging.getLogger(__name__)


class HandshakeState(Enum):
    """States of a peer handshake."""

    UNCONNECTED = "unconnected"
    HANDSHAKE_SENT = "handshake_sent"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


async def perform_handshake(
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
    info_hash: bytes,
    peer_id: bytes,
    *,
    protocol: str = PROTOCOL_NAME,
    reserved: bytes = RESERVED_BYTES,
    timeout: float | None = None,
) -> Handshake:
    """Send our handshake and read the peer's reply.

    The reply is expected to have the same length as the message we sent.
    Partial reads accumulate until that many bytes arrived. The remote info
    hash is returned unchecked; see :meth:`Handshake.verify_info_hash`.

    Args:
        reader: Stream to read the reply from
        writer: Stream to send our handshake on
        info_hash: Torrent info hash
        peer_id: Our peer ID
        protocol: Protocol name to send
        reserved: Reserved bytes to send
        timeout: Seconds allowed for write and read together, None for no limit

    Raises:
        ConnectionFailedError: If the stream fails, closes early or times out
        MalformedHandshakeError: If the reply's length prefix is inconsistent
        InvalidProtocolNameError: If the reply's protocol name is not UTF-8

    """
    message = Handshake(info_hash, peer_id, protocol=protocol, reserved=reserved).encode()

    async def _exchange() -> bytes:
        writer.write(message)
        await writer.drain()
        return await reader.readexactly(len(message))

    try:
        data = await asyncio.wait_for(_exchange(), timeout=timeout)
    except asyncio.IncompleteReadError as e:
        msg = (
            f"Peer closed the connection after {len(e.partial)} of "
            f"{len(message)} handshake bytes"
        )
        raise ConnectionFailedError(msg, {"received": len(e.partial)}) from e
    except asyncio.TimeoutError as e:
        msg = f"Handshake timed out after {timeout}s"
        raise ConnectionFailedError(msg) from e
    except OSError as e:
        msg = f"Handshake I/O failed: {e}"
        raise ConnectionFailedError(msg) from e

    return Handshake.decode(data)


@dataclass
class PeerConnection:
    """Represents an async connection to a single peer."""

    peer_info: PeerInfo
    config: Config | None = None
    reader: asyncio.StreamReader | None = None
    writer: asyncio.StreamWriter | None = None
    state: HandshakeState = HandshakeState.UNCONNECTED
    remote_handshake: Handshake | None = None
    error_message: str | None = None

    def __post_init__(self) -> None:
        """Resolve the configuration."""
        if self.config is None:
            self.config = get_config()

    def __str__(self) -> str:
        """Return string representation of peer connection."""
        return f"PeerConnection({self.peer_info}, state={self.state.value})"

    @property
    def is_connected(self) -> bool:
        """Check if the TCP stream is open."""
        return self.writer is not None and not self.writer.is_closing()

    async def connect(self) -> None:
        """Open the TCP stream to the peer.

        Raises:
            ConnectionFailedError: If the connection fails or times out

        """
        timeout = self.config.network.connection_timeout
        logger.debug("Connecting to peer %s", self.peer_info)
        try:
            self.reader, self.writer = await asyncio.wait_for(
                asyncio.open_connection(self.peer_info.ip, self.peer_info.port),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            self.error_message = f"Connection to {self.peer_info} timed out after {timeout}s"
            raise ConnectionFailedError(self.error_message) from e
        except OSError as e:
            self.error_message = f"Connection to {self.peer_info} failed: {e}"
            raise ConnectionFailedError(self.error_message) from e

    async def handshake(self, info_hash: bytes, peer_id: bytes) -> Handshake:
        """Exchange handshakes and confirm the peer serves ``info_hash``.

        Connects first when the stream is not open yet.

        Raises:
            ConnectionFailedError: If the stream fails
            HandshakeError: If the reply is malformed or for another torrent

        """
        if self.state is not HandshakeState.UNCONNECTED:
            msg = f"Handshake already attempted with {self.peer_info} ({self.state.value})"
            raise HandshakeError(msg)

        if self.reader is None or self.writer is None:
            await self.connect()

        self.state = HandshakeState.HANDSHAKE_SENT
        try:
            remote = await perform_handshake(
                self.reader,
                self.writer,
                info_hash,
                peer_id,
                protocol=self.config.protocol.protocol_name,
                timeout=self.config.network.handshake_timeout,
            )
            remote.verify_info_hash(info_hash)
        except (ConnectionFailedError, HandshakeError) as e:
            self.state = HandshakeState.REJECTED
            self.error_message = str(e)
            logger.debug("Handshake with %s rejected: %s", self.peer_info, e)
            raise

        self.remote_handshake = remote
        self.peer_info = PeerInfo(
            ip=self.peer_info.ip,
            port=self.peer_info.port,
            peer_id=remote.peer_id,
        )
        self.state = HandshakeState.CONFIRMED
        logger.debug(
            "Handshake with %s confirmed (peer id %s)",
            self.peer_info,
            remote.peer_id_hex,
        )
        return remote

    async def close(self) -> None:
        """Close the TCP stream."""
        writer = self.writer
        self.reader = None
        self.writer = None
        if writer is None:
            return
        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            logger.debug("Error closing connection to %s: %s", self.peer_info, e)

    async def __aenter__(self) -> PeerConnection:
        """Connect on context entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Close on context exit."""
        await self.close()
