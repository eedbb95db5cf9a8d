"""Network discovery components.

This module handles HTTP tracker communication.
"""

from __future__ import annotations

from btlite.discovery.tracker import (
    AsyncTrackerClient,
    announce,
    build_tracker_url,
    generate_peer_id,
    local_peer_id,
    parse_compact_peers,
    parse_tracker_response,
)

__all__ = [
    "AsyncTrackerClient",
    "announce",
    "build_tracker_url",
    "generate_peer_id",
    "local_peer_id",
    "parse_compact_peers",
    "parse_tracker_response",
]
