"""Pydantic models for btlite.

Provides validated data models for type safety and runtime validation.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

INFO_HASH_LENGTH = 20
PEER_ID_LENGTH = 20


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class MessageType(int, Enum):
    """BitTorrent peer message types.

    Only declared; no message other than the handshake is exchanged yet.
    """

    CHOKE = 0
    UNCHOKE = 1
    INTERESTED = 2
    NOT_INTERESTED = 3
    HAVE = 4
    BITFIELD = 5
    REQUEST = 6
    PIECE = 7
    CANCEL = 8


class TrackerEvent(str, Enum):
    """Announce event types."""

    STARTED = "started"
    COMPLETED = "completed"
    STOPPED = "stopped"


class PeerInfo(BaseModel):
    """Peer information."""

    ip: str = Field(..., description="Peer IP address or host name")
    port: int = Field(..., ge=0, le=65535, description="Peer port number")
    peer_id: bytes | None = Field(None, description="Peer ID")

    @field_validator("ip")
    @classmethod
    def validate_ip(cls, v):
        """Validate IP address format."""
        if not v:
            msg = "IP address cannot be empty"
            raise ValueError(msg)
        return v

    @classmethod
    def from_address(cls, address: str) -> PeerInfo:
        """Build peer info from a ``host:port`` string.

        IPv6 literals must be bracketed: ``[::1]:6881``.
        """
        host, sep, port_text = address.strip().rpartition(":")
        if not sep or not host or not port_text.isdigit():
            msg = f"Invalid peer address: {address!r} (expected host:port)"
            raise ValueError(msg)
        if host.startswith("[") and host.endswith("]"):
            host = host[1:-1]
        return cls(ip=host, port=int(port_text))

    def __str__(self) -> str:
        """String representation of peer info."""
        return f"{self.ip}:{self.port}"

    def __hash__(self) -> int:
        """Hash peer info for use as dictionary key."""
        return hash((self.ip, self.port))

    def __eq__(self, other) -> bool:
        """Equality comparison for peer info."""
        if not isinstance(other, PeerInfo):
            return False
        return self.ip == other.ip and self.port == other.port


class InfoDict(BaseModel):
    """Typed view of a single-file torrent's ``info`` dictionary."""

    total_length: int = Field(..., ge=0, description="Total length in bytes")
    name: str = Field(..., description="Suggested file name (display only)")
    piece_length: int = Field(..., gt=0, description="Piece length in bytes")
    piece_hashes: list[bytes] = Field(
        default_factory=list,
        description="SHA-1 digest of each piece, in order",
    )
    raw: dict[bytes, Any] = Field(
        default_factory=dict,
        description="Decoded info dictionary, all keys included",
    )

    model_config = ConfigDict(frozen=True)

    @field_validator("piece_hashes")
    @classmethod
    def validate_piece_hashes(cls, v: list[bytes]) -> list[bytes]:
        """Every piece hash is a 20-byte SHA-1 digest."""
        for index, digest in enumerate(v):
            if len(digest) != 20:
                msg = f"Piece hash {index} must be 20 bytes, got {len(digest)}"
                raise ValueError(msg)
        return v

    @property
    def num_pieces(self) -> int:
        """Number of pieces."""
        return len(self.piece_hashes)

    def piece_size(self, index: int) -> int:
        """Length of piece ``index``; the last piece may be shorter."""
        if not 0 <= index < self.num_pieces:
            msg = f"Piece index {index} out of range (0..{self.num_pieces - 1})"
            raise IndexError(msg)
        start = index * self.piece_length
        return max(0, min(self.piece_length, self.total_length - start))


class TorrentMetainfo(BaseModel):
    """Torrent information."""

    announce_url: str = Field(..., description="Announce URL")
    info: InfoDict = Field(..., description="Info dictionary")
    info_hash: bytes = Field(
        ...,
        min_length=INFO_HASH_LENGTH,
        max_length=INFO_HASH_LENGTH,
        description="SHA-1 of the canonical bencoding of info",
    )
    announce_list: list[list[str]] | None = Field(None, description="Announce list")
    comment: str | None = Field(None, description="Torrent comment")
    created_by: str | None = Field(None, description="Created by")
    creation_date: int | None = Field(None, description="Creation date")
    is_private: bool = Field(
        default=False,
        description="Whether torrent is marked as private (BEP 27)",
    )

    model_config = ConfigDict(frozen=True)

    @property
    def info_hash_hex(self) -> str:
        """Info hash as lowercase hex."""
        return self.info_hash.hex()


class TrackerRequest(BaseModel):
    """Parameters of one announce request."""

    info_hash: bytes = Field(
        ...,
        min_length=INFO_HASH_LENGTH,
        max_length=INFO_HASH_LENGTH,
        description="Raw 20-byte info hash",
    )
    peer_id: bytes = Field(
        ...,
        min_length=PEER_ID_LENGTH,
        max_length=PEER_ID_LENGTH,
        description="Raw 20-byte client identifier",
    )
    port: int = Field(..., ge=0, le=65535, description="Port we listen on")
    uploaded: int = Field(default=0, ge=0, description="Bytes uploaded")
    downloaded: int = Field(default=0, ge=0, description="Bytes downloaded")
    left: int = Field(..., ge=0, description="Bytes left to download")
    compact: bool = Field(default=True, description="Ask for compact peer list")
    event: TrackerEvent | None = Field(None, description="Announce event")

    @classmethod
    def for_torrent(
        cls,
        metainfo: TorrentMetainfo,
        peer_id: bytes,
        port: int,
        event: TrackerEvent | None = None,
    ) -> TrackerRequest:
        """Initial announce for a torrent nothing has been downloaded of yet."""
        return cls(
            info_hash=metainfo.info_hash,
            peer_id=peer_id,
            port=port,
            left=metainfo.info.total_length,
            event=event,
        )


class TrackerResponse(BaseModel):
    """Tracker response data."""

    peers: list[PeerInfo] = Field(default_factory=list, description="List of peers")
    interval: int | None = Field(None, ge=0, description="Announce interval in seconds")
    min_interval: int | None = Field(None, ge=0, description="Minimum announce interval")
    complete: int | None = Field(None, ge=0, description="Number of seeders")
    incomplete: int | None = Field(None, ge=0, description="Number of leechers")
    tracker_id: str | None = Field(None, description="Tracker ID")
    warning_message: str | None = Field(None, description="Warning message")


class NetworkConfig(BaseModel):
    """Network configuration."""

    listen_port: int = Field(
        default=6881,
        ge=1,
        le=65535,
        description="Port announced to trackers",
    )
    peer_id: str | None = Field(
        default=None,
        description="Fixed 20-character peer id (generated per run when unset)",
    )
    peer_id_prefix: str = Field(
        default="-BL0100-",
        description="Prefix for generated peer ids",
    )
    tracker_timeout: float = Field(
        default=15.0,
        gt=0.0,
        le=300.0,
        description="Tracker HTTP request timeout in seconds",
    )
    connection_timeout: float = Field(
        default=10.0,
        gt=0.0,
        le=300.0,
        description="Peer TCP connect timeout in seconds",
    )
    handshake_timeout: float = Field(
        default=10.0,
        gt=0.0,
        le=300.0,
        description="Peer handshake write+read timeout in seconds",
    )
    user_agent: str = Field(
        default="btlite/0.1.0",
        description="User-Agent header sent to trackers",
    )

    @field_validator("peer_id")
    @classmethod
    def validate_peer_id(cls, v):
        """A fixed peer id must encode to exactly 20 bytes."""
        if v is not None and len(v.encode("utf-8")) != PEER_ID_LENGTH:
            msg = f"peer_id must be {PEER_ID_LENGTH} bytes"
            raise ValueError(msg)
        return v

    @field_validator("peer_id_prefix")
    @classmethod
    def validate_peer_id_prefix(cls, v):
        """Prefix leaves room for at least one random byte."""
        if len(v.encode("utf-8")) >= PEER_ID_LENGTH:
            msg = f"peer_id_prefix must be shorter than {PEER_ID_LENGTH} bytes"
            raise ValueError(msg)
        return v


class ProtocolConfig(BaseModel):
    """Wire protocol configuration."""

    protocol_name: str = Field(
        default="BitTorrent protocol",
        min_length=1,
        description="Protocol name sent in the peer handshake",
    )
    max_bencode_depth: int = Field(
        default=256,
        ge=1,
        le=400,
        description="Maximum list/dictionary nesting accepted by the decoder",
    )

    @field_validator("protocol_name")
    @classmethod
    def validate_protocol_name(cls, v):
        """Handshake length prefix is a single byte."""
        if len(v.encode("utf-8")) > 255:
            msg = "protocol_name must encode to at most 255 bytes"
            raise ValueError(msg)
        return v


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: LogLevel = Field(default=LogLevel.INFO, description="Log level")
    log_file: str | None = Field(None, description="Log file path")
    structured_logging: bool = Field(
        default=False,
        description="Emit JSON log lines instead of rich console output",
    )
    log_correlation_id: bool = Field(
        default=True,
        description="Include correlation IDs",
    )


class Config(BaseModel):
    """Main configuration model."""

    network: NetworkConfig = Field(
        default_factory=NetworkConfig,
        description="Network configuration",
    )
    protocol: ProtocolConfig = Field(
        default_factory=ProtocolConfig,
        description="Wire protocol configuration",
    )
    observability: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig,
        description="Observability configuration",
    )
