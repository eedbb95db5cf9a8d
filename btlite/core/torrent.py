"""Torrent file parsing for single-file torrents.

This module turns a decoded metainfo dictionary into typed models and
computes the info hash that identifies the torrent on trackers and peers.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Any

from btlite.core.bencode import DEFAULT_MAX_DEPTH, decode, encode
from btlite.models import InfoDict, TorrentMetainfo
from btlite.utils.exceptions import (
    InvalidPieceTableError,
    MissingFieldError,
    NotADictionaryError,
    TorrentError,
    WrongFieldTypeError,
)

PIECE_HASH_LENGTH = 20

logger = logging.getLogger(__name__)


def _require(data: dict[bytes, Any], key: bytes, field: str) -> Any:
    if key not in data:
        raise MissingFieldError(field)
    return data[key]


def _require_int(data: dict[bytes, Any], key: bytes, field: str) -> int:
    value = _require(data, key, field)
    if not isinstance(value, int):
        raise WrongFieldTypeError(field, "an integer", value)
    return value


def _require_text(data: dict[bytes, Any], key: bytes, field: str) -> str:
    value = _require(data, key, field)
    if not isinstance(value, bytes):
        raise WrongFieldTypeError(field, "a byte-string", value)
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError as e:
        raise WrongFieldTypeError(field, "valid UTF-8", value) from e


def _optional_text(data: dict[bytes, Any], key: bytes) -> str | None:
    value = data.get(key)
    if not isinstance(value, bytes):
        return None
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError:
        logger.debug("Ignoring non-UTF-8 %r field", key)
        return None


def _optional_announce_list(data: dict[bytes, Any]) -> list[list[str]] | None:
    tiers = data.get(b"announce-list")
    if not isinstance(tiers, list):
        return None

    result: list[list[str]] = []
    for tier in tiers:
        if not isinstance(tier, list):
            continue
        urls = []
        for url in tier:
            if isinstance(url, bytes):
                try:
                    urls.append(url.decode("utf-8"))
                except UnicodeDecodeError:
                    continue
        if urls:
            result.append(urls)
    return result or None


def split_piece_hashes(pieces: bytes) -> list[bytes]:
    """Split the concatenated ``pieces`` string into 20-byte digests.

    Raises:
        InvalidPieceTableError: If the length is not a multiple of 20

    """
    if len(pieces) % PIECE_HASH_LENGTH != 0:
        msg = (
            f"Invalid pieces data length: {len(pieces)} bytes "
            f"(should be multiple of {PIECE_HASH_LENGTH})"
        )
        raise InvalidPieceTableError(msg, {"length": len(pieces)})

    return [
        pieces[i : i + PIECE_HASH_LENGTH]
        for i in range(0, len(pieces), PIECE_HASH_LENGTH)
    ]


def info_hash(source: TorrentMetainfo | InfoDict | dict[bytes, Any]) -> bytes:
    """SHA-1 of the canonical bencoding of the ``info`` dictionary.

    Every key of the decoded dictionary takes part, including ones the
    typed model ignores, so the result matches what other clients compute
    regardless of key order in the source file.
    """
    if isinstance(source, TorrentMetainfo):
        raw = source.info.raw
    elif isinstance(source, InfoDict):
        raw = source.raw
    else:
        raw = source
    return hashlib.sha1(encode(raw)).digest()  # nosec B324 - SHA-1 required by BitTorrent protocol (BEP 3)


class TorrentParser:
    """Parser for single-file BitTorrent metainfo."""

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        """Initialize the torrent parser.

        Args:
            max_depth: Nesting limit handed to the bencode decoder

        """
        self.max_depth = max_depth

    def parse(self, torrent_path: str | Path) -> TorrentMetainfo:
        """Parse a torrent file from a local path.

        Raises:
            TorrentError: If the file cannot be read or is not valid metainfo
            BencodeDecodeError: If the file is not valid bencode

        """
        return self.parse_bytes(self._read_from_file(torrent_path))

    def parse_bytes(self, data: bytes) -> TorrentMetainfo:
        """Parse metainfo from the raw bytes of a torrent file."""
        decoded = decode(data, max_depth=self.max_depth)
        if not isinstance(decoded, dict):
            msg = f"Torrent root must be a dictionary, got {type(decoded).__name__}"
            raise NotADictionaryError(msg)

        metainfo = self._extract_torrent_data(decoded)
        logger.debug(
            "Parsed torrent %r: %d bytes in %d pieces, info hash %s",
            metainfo.info.name,
            metainfo.info.total_length,
            metainfo.info.num_pieces,
            metainfo.info_hash_hex,
        )
        return metainfo

    def _read_from_file(self, file_path: str | Path) -> bytes:
        """Read torrent data from a local file."""
        path = Path(file_path)
        if not path.exists():
            msg = f"Torrent file not found: {path}"
            raise TorrentError(msg)

        try:
            with open(path, "rb") as f:
                return f.read()
        except OSError as e:
            msg = f"Failed to read torrent file {path}: {e}"
            raise TorrentError(msg) from e

    def _extract_info(self, info: dict[bytes, Any]) -> InfoDict:
        total_length = _require_int(info, b"length", "info.length")
        if total_length < 0:
            raise WrongFieldTypeError("info.length", "a non-negative integer", total_length)

        name = _require_text(info, b"name", "info.name")

        piece_length = _require_int(info, b"piece length", "info.piece length")
        if piece_length <= 0:
            raise WrongFieldTypeError(
                "info.piece length", "a positive integer", piece_length
            )

        pieces = _require(info, b"pieces", "info.pieces")
        if not isinstance(pieces, bytes):
            raise WrongFieldTypeError("info.pieces", "a byte-string", pieces)

        return InfoDict(
            total_length=total_length,
            name=name,
            piece_length=piece_length,
            piece_hashes=split_piece_hashes(pieces),
            raw=info,
        )

    def _extract_torrent_data(self, data: dict[bytes, Any]) -> TorrentMetainfo:
        announce = _require_text(data, b"announce", "announce")

        info = _require(data, b"info", "info")
        if not isinstance(info, dict):
            raise WrongFieldTypeError("info", "a dictionary", info)

        info_dict = self._extract_info(info)

        creation_date = data.get(b"creation date")
        if not isinstance(creation_date, int):
            creation_date = None

        # BEP 27: private flag lives inside info so it is covered by the hash
        private_value = info.get(b"private", 0)
        is_private = isinstance(private_value, int) and private_value == 1

        return TorrentMetainfo(
            announce_url=announce,
            info=info_dict,
            info_hash=info_hash(info),
            announce_list=_optional_announce_list(data),
            comment=_optional_text(data, b"comment"),
            created_by=_optional_text(data, b"created by"),
            creation_date=creation_date,
            is_private=is_private,
        )


def parse(data: bytes, max_depth: int = DEFAULT_MAX_DEPTH) -> TorrentMetainfo:
    """Parse the raw bytes of a single-file torrent."""
    return TorrentParser(max_depth=max_depth).parse_bytes(data)


def load_torrent(path: str | Path, max_depth: int = DEFAULT_MAX_DEPTH) -> TorrentMetainfo:
    """Read and parse a torrent file."""
    return TorrentParser(max_depth=max_depth).parse(path)
