"""Core BitTorrent protocol implementation.

This module contains the fundamental BitTorrent protocol components:
- Bencoding (encoding/decoding)
- Torrent file parsing and info hash calculation
"""

from __future__ import annotations

from btlite.core.bencode import (
    BencodeDecoder,
    BencodeEncoder,
    decode,
    encode,
    iter_decode,
)
from btlite.core.torrent import TorrentParser, info_hash, load_torrent, parse

__all__ = [
    # Bencoding
    "BencodeDecoder",
    "BencodeEncoder",
    # Torrent
    "TorrentParser",
    "decode",
    "encode",
    "info_hash",
    "iter_decode",
    "load_torrent",
    "parse",
]
