"""Peer wire protocol.

This module handles the handshake exchanged with a single peer.
"""

from __future__ import annotations

from btlite.peer.peer import PROTOCOL_NAME, Handshake
from btlite.peer.peer_connection import (
    HandshakeState,
    PeerConnection,
    perform_handshake,
)

__all__ = [
    "PROTOCOL_NAME",
    "Handshake",
    "HandshakeState",
    "PeerConnection",
    "perform_handshake",
]
