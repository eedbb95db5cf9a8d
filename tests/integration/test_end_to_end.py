"""End-to-end flow against a local HTTP tracker and a local peer.

Parses a torrent, announces to an aiohttp tracker running on localhost and
handshakes with the peer the tracker hands out.
"""

from __future__ import annotations

import asyncio
import contextlib
import hashlib
import socket
import struct
from urllib.parse import quote_from_bytes

import pytest
from aiohttp import web

pytestmark = [pytest.mark.integration]

from btlite.core.bencode import encode
from btlite.core.torrent import parse
from btlite.discovery.tracker import AsyncTrackerClient, announce
from btlite.models import Config, NetworkConfig, TrackerRequest
from btlite.peer.peer import Handshake
from btlite.peer.peer_connection import HandshakeState, PeerConnection
from btlite.utils.exceptions import TrackerProtocolError, TrackerUnreachableError

LOCAL_ID = b"-BL0100-integration0"
REMOTE_ID = b"-XX0001-seedingpeer0"


@contextlib.asynccontextmanager
async def _tracker(body_for):
    """Run an announce endpoint; ``body_for(request)`` returns (status, body)."""
    seen: list[str] = []

    async def handle(request):
        seen.append(request.rel_url.raw_query_string)
        status, body = body_for(request)
        return web.Response(status=status, body=body)

    app = web.Application()
    app.router.add_get("/announce", handle)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    port = runner.addresses[0][1]
    try:
        yield f"http://127.0.0.1:{port}/announce", seen
    finally:
        await runner.cleanup()


@contextlib.asynccontextmanager
async def _seeding_peer(info_hash):
    async def handle(reader, writer):
        await reader.readexactly(68)
        writer.write(Handshake(info_hash, REMOTE_ID).encode())
        await writer.drain()
        writer.close()
        with contextlib.suppress(OSError):
            await writer.wait_closed()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    try:
        yield server.sockets[0].getsockname()[1]
    finally:
        server.close()
        await server.wait_closed()


def _torrent_bytes(announce_url):
    content = b"0123456789" * 3
    piece_length = 16
    pieces = b"".join(
        hashlib.sha1(content[i : i + piece_length]).digest()
        for i in range(0, len(content), piece_length)
    )
    return encode(
        {
            b"announce": announce_url.encode(),
            b"info": {
                b"length": len(content),
                b"name": b"sample.txt",
                b"piece length": piece_length,
                b"pieces": pieces,
            },
        }
    )


def _compact(port):
    return socket.inet_aton("127.0.0.1") + struct.pack(">H", port)


@pytest.fixture
def config():
    """Config with short timeouts."""
    return Config(
        network=NetworkConfig(
            tracker_timeout=5.0,
            connection_timeout=2.0,
            handshake_timeout=2.0,
        ),
    )


class TestEndToEnd:
    """Torrent to tracker to peer."""

    @pytest.mark.asyncio
    async def test_parse_announce_handshake(self, config):
        """A peer found through the tracker confirms the handshake."""
        peer_port = None

        def tracker_body(_request):
            return 200, encode({b"interval": 900, b"peers": _compact(peer_port)})

        async with _tracker(tracker_body) as (announce_url, seen):
            metainfo = parse(_torrent_bytes(announce_url))
            assert metainfo.info.num_pieces == 2
            assert [metainfo.info.piece_size(i) for i in range(2)] == [16, 14]

            async with _seeding_peer(metainfo.info_hash) as peer_port:
                request = TrackerRequest.for_torrent(metainfo, peer_id=LOCAL_ID, port=6881)
                response = await announce(announce_url, request, config)

                assert response.interval == 900
                assert [str(p) for p in response.peers] == [f"127.0.0.1:{peer_port}"]

                async with PeerConnection(response.peers[0], config) as connection:
                    remote = await connection.handshake(metainfo.info_hash, LOCAL_ID)

        assert connection.state is HandshakeState.CONFIRMED
        assert remote.peer_id == REMOTE_ID
        assert remote.info_hash == metainfo.info_hash

        query = seen[0]
        assert f"info_hash={quote_from_bytes(metainfo.info_hash, safe='')}&" in query
        assert f"peer_id={LOCAL_ID.decode()}" in query
        assert "left=30" in query
        assert "compact=1" in query

    @pytest.mark.asyncio
    async def test_tracker_failure_reason(self, config):
        """A failure reason from a real tracker surfaces as a protocol error."""
        async with _tracker(lambda _r: (200, encode({b"failure reason": b"unregistered"}))) as (
            url,
            _seen,
        ):
            metainfo = parse(_torrent_bytes(url))
            request = TrackerRequest.for_torrent(metainfo, peer_id=LOCAL_ID, port=6881)

            with pytest.raises(TrackerProtocolError, match="unregistered"):
                await announce(url, request, config)

    @pytest.mark.asyncio
    async def test_tracker_http_error(self, config):
        """Non-2xx statuses are protocol errors."""
        async with _tracker(lambda _r: (500, b"oops")) as (url, _seen):
            metainfo = parse(_torrent_bytes(url))
            request = TrackerRequest.for_torrent(metainfo, peer_id=LOCAL_ID, port=6881)

            async with AsyncTrackerClient(config) as client:
                with pytest.raises(TrackerProtocolError, match="HTTP 500"):
                    await client.announce(url, request)

    @pytest.mark.asyncio
    async def test_tracker_unreachable(self, config):
        """Nothing listening on the announce port is unreachable."""
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind(("127.0.0.1", 0))
            port = sock.getsockname()[1]
        url = f"http://127.0.0.1:{port}/announce"
        metainfo = parse(_torrent_bytes(url))
        request = TrackerRequest.for_torrent(metainfo, peer_id=LOCAL_ID, port=6881)

        with pytest.raises(TrackerUnreachableError):
            await announce(url, request, config)
