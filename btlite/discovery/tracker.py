"""Async HTTP tracker communication.

This module announces the client to a tracker and turns the tracker's
compact peer list into :class:`~btlite.models.PeerInfo` entries. One
announce is one HTTP GET; nothing is retried or cached between calls.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import urllib.parse
from typing import Any

import aiohttp
from yarl import URL

from btlite.config.config import get_config
from btlite.core.bencode import DEFAULT_MAX_DEPTH, decode
from btlite.models import (
    PEER_ID_LENGTH,
    Config,
    PeerInfo,
    TrackerRequest,
    TrackerResponse,
)
from btlite.utils.exceptions import (
    BencodeDecodeError,
    InvalidPeerTableError,
    TrackerProtocolError,
    TrackerUnreachableError,
    UnsupportedTrackerModeError,
)

COMPACT_PEER_LENGTH = 6

logger = logging.getLogger(__name__)


def generate_peer_id(prefix: str | bytes = "-BL0100-") -> bytes:
    """Generate a peer ID: ``prefix`` followed by random bytes up to 20."""
    raw_prefix = prefix.encode("utf-8") if isinstance(prefix, str) else prefix
    if len(raw_prefix) >= PEER_ID_LENGTH:
        msg = f"Peer ID prefix must be shorter than {PEER_ID_LENGTH} bytes"
        raise ValueError(msg)
    return raw_prefix + secrets.token_bytes(PEER_ID_LENGTH - len(raw_prefix))


def local_peer_id(config: Config | None = None) -> bytes:
    """Peer ID for this process: the configured one, or a fresh random one."""
    network = (config or get_config()).network
    if network.peer_id:
        return network.peer_id.encode("utf-8")
    return generate_peer_id(network.peer_id_prefix)


def build_tracker_url(announce_url: str, request: TrackerRequest) -> str:
    """Build the complete announce URL.

    ``info_hash`` and ``peer_id`` are percent-encoded byte by byte from
    their raw values. The result is already fully encoded and must not be
    quoted again.
    """
    query_parts = [
        f"info_hash={urllib.parse.quote_from_bytes(request.info_hash, safe='')}",
        f"peer_id={urllib.parse.quote_from_bytes(request.peer_id, safe='')}",
        f"port={request.port}",
        f"uploaded={request.uploaded}",
        f"downloaded={request.downloaded}",
        f"left={request.left}",
        f"compact={1 if request.compact else 0}",
    ]

    if request.event is not None:
        query_parts.append(f"event={request.event.value}")

    separator = "&" if "?" in announce_url else "?"
    return f"{announce_url}{separator}{'&'.join(query_parts)}"


def parse_compact_peers(peers_data: bytes) -> list[PeerInfo]:
    """Parse compact peer format.

    Each peer is 6 bytes: a 4-byte IPv4 address followed by a 2-byte
    port, both in network byte order.

    Raises:
        InvalidPeerTableError: If the length is not a multiple of 6

    """
    if len(peers_data) % COMPACT_PEER_LENGTH != 0:
        msg = f"Invalid compact peer data length: {len(peers_data)} bytes"
        raise InvalidPeerTableError(msg, {"length": len(peers_data)})

    peers = []
    for start in range(0, len(peers_data), COMPACT_PEER_LENGTH):
        chunk = peers_data[start : start + COMPACT_PEER_LENGTH]
        ip = ".".join(str(b) for b in chunk[:4])
        port = int.from_bytes(chunk[4:6], byteorder="big")
        peers.append(PeerInfo(ip=ip, port=port))
    return peers


def _optional_count(decoded: dict[bytes, Any], key: bytes) -> int | None:
    value = decoded.get(key)
    if isinstance(value, int) and value >= 0:
        return value
    return None


def _optional_text(decoded: dict[bytes, Any], key: bytes) -> str | None:
    value = decoded.get(key)
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return None


def parse_tracker_response(
    response_data: bytes,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> TrackerResponse:
    """Parse the bencoded body of an announce response.

    Raises:
        TrackerProtocolError: If the body is not a usable announce response
        UnsupportedTrackerModeError: If peers come as a dictionary list
        InvalidPeerTableError: If the compact peer string is malformed

    """
    try:
        decoded = decode(response_data, max_depth=max_depth)
    except BencodeDecodeError as e:
        msg = f"Tracker response is not valid bencode: {e.message}"
        raise TrackerProtocolError(msg, e.details) from e

    if not isinstance(decoded, dict):
        msg = f"Tracker response must be a dictionary, got {type(decoded).__name__}"
        raise TrackerProtocolError(msg)

    if b"failure reason" in decoded:
        reason = decoded[b"failure reason"]
        if isinstance(reason, bytes):
            reason = reason.decode("utf-8", errors="replace")
        msg = f"Tracker failure: {reason}"
        raise TrackerProtocolError(msg, {"failure_reason": reason})

    if b"peers" not in decoded:
        msg = "Missing peers in tracker response"
        raise TrackerProtocolError(msg)

    peers_data = decoded[b"peers"]
    if isinstance(peers_data, list):
        msg = "Tracker returned a dictionary peer list; only compact peers are supported"
        raise UnsupportedTrackerModeError(msg)
    if not isinstance(peers_data, bytes):
        msg = f"Tracker peers must be a byte-string, got {type(peers_data).__name__}"
        raise TrackerProtocolError(msg)

    return TrackerResponse(
        peers=parse_compact_peers(peers_data),
        interval=_optional_count(decoded, b"interval"),
        min_interval=_optional_count(decoded, b"min interval"),
        complete=_optional_count(decoded, b"complete"),
        incomplete=_optional_count(decoded, b"incomplete"),
        tracker_id=_optional_text(decoded, b"tracker id"),
        warning_message=_optional_text(decoded, b"warning message"),
    )


class AsyncTrackerClient:
    """Async client for announcing to HTTP trackers."""

    def __init__(self, config: Config | None = None):
        """Initialize the async tracker client.

        Args:
            config: Configuration to use. If None, uses the global config.

        """
        self.config = config or get_config()
        self.session: aiohttp.ClientSession | None = None
        self.logger = logging.getLogger(__name__)

    async def start(self) -> None:
        """Open the HTTP session."""
        if self.session is not None:
            return

        timeout = aiohttp.ClientTimeout(
            total=self.config.network.tracker_timeout,
            connect=self.config.network.connection_timeout,
        )
        self.session = aiohttp.ClientSession(
            timeout=timeout,
            headers={"User-Agent": self.config.network.user_agent},
        )
        self.logger.debug("Async tracker client started")

    async def stop(self) -> None:
        """Close the HTTP session."""
        if self.session is None:
            return
        try:
            if not self.session.closed:
                await self.session.close()
        finally:
            self.session = None
        self.logger.debug("Async tracker client stopped")

    async def __aenter__(self) -> AsyncTrackerClient:
        """Start the client on context entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Stop the client on context exit."""
        await self.stop()

    async def announce(
        self,
        announce_url: str,
        request: TrackerRequest,
    ) -> TrackerResponse:
        """Announce to a tracker and return its peer list.

        Args:
            announce_url: Tracker announce URL from the metainfo
            request: Announce parameters

        Raises:
            TrackerUnreachableError: If the tracker cannot be reached
            TrackerProtocolError: If the tracker's answer is unusable

        """
        url = build_tracker_url(announce_url, request)
        self.logger.debug("Announcing to %s (event=%s)", announce_url, request.event)

        response_data = await self._make_request_async(url)
        response = parse_tracker_response(
            response_data,
            max_depth=self.config.protocol.max_bencode_depth,
        )

        self.logger.debug(
            "Tracker %s returned %d peers (interval=%s)",
            announce_url,
            len(response.peers),
            response.interval,
        )
        if response.warning_message:
            self.logger.warning(
                "Tracker %s warning: %s", announce_url, response.warning_message
            )
        return response

    async def _make_request_async(self, url: str) -> bytes:
        """Make an HTTP GET request and return the body.

        Raises:
            RuntimeError: If the client has not been started

        """
        if self.session is None:
            msg = "HTTP session not initialized"
            raise RuntimeError(msg)

        try:
            # The query is pre-encoded; stop yarl from re-quoting '%'
            async with self.session.get(URL(url, encoded=True)) as response:
                if not 200 <= response.status < 300:
                    msg = f"HTTP {response.status}: {response.reason}"
                    raise TrackerProtocolError(msg, {"status": response.status})
                return await response.read()
        except asyncio.TimeoutError as e:
            msg = f"HTTP tracker request timeout: {url}"
            raise TrackerUnreachableError(msg) from e
        except aiohttp.ClientError as e:
            msg = f"HTTP tracker connection failed ({type(e).__name__}): {e}"
            raise TrackerUnreachableError(msg) from e


async def announce(
    announce_url: str,
    request: TrackerRequest,
    config: Config | None = None,
) -> TrackerResponse:
    """Announce once using a client that lives only for this call."""
    async with AsyncTrackerClient(config) as client:
        return await client.announce(announce_url, request)
