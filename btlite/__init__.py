"""btlite - a minimal BitTorrent metainfo, tracker and handshake stack."""

from __future__ import annotations

__version__ = "0.1.0"

from btlite.core.bencode import decode, encode
from btlite.core.torrent import info_hash, load_torrent, parse
from btlite.discovery.tracker import AsyncTrackerClient, announce
from btlite.models import PeerInfo, TorrentMetainfo, TrackerRequest, TrackerResponse
from btlite.peer.peer import Handshake
from btlite.peer.peer_connection import PeerConnection, perform_handshake

__all__ = [
    "AsyncTrackerClient",
    "Handshake",
    "PeerConnection",
    "PeerInfo",
    "TorrentMetainfo",
    "TrackerRequest",
    "TrackerResponse",
    "__version__",
    "announce",
    "decode",
    "encode",
    "info_hash",
    "load_torrent",
    "parse",
    "perform_handshake",
]
