"""Command-line interface for btlite.

Provides the commands:
- decode: print a bencoded value as JSON
- info: show torrent metainfo
- peers: announce to the tracker and list peers
- handshake: exchange handshakes with one peer
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from typing import Any

import click
from rich.console import Console

from btlite.config.config import init_config
from btlite.core.bencode import decode as bdecode
from btlite.core.torrent import load_torrent
from btlite.discovery.tracker import announce, local_peer_id
from btlite.models import Config, LogLevel, PeerInfo, TorrentMetainfo, TrackerRequest
from btlite.peer.peer_connection import PeerConnection
from btlite.utils.exceptions import BTLiteError
from btlite.utils.logging_config import LoggingContext, log_exception, setup_logging

logger = logging.getLogger(__name__)

console = Console(highlight=False, markup=False, emoji=False, soft_wrap=True)


def _raise_cli_error(message: str) -> None:
    """Raise a ClickException with the given message."""
    raise click.ClickException(message) from None


def _to_json_value(value: Any) -> Any:
    """Convert a decoded bencode value into something JSON can render.

    Byte-strings become text when they are valid UTF-8 and a list of byte
    values otherwise.
    """
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError:
            return list(value)
    if isinstance(value, list):
        return [_to_json_value(item) for item in value]
    if isinstance(value, dict):
        return {
            key.decode("utf-8", errors="replace"): _to_json_value(item)
            for key, item in value.items()
        }
    return value


def _get_config(ctx: click.Context) -> Config:
    return ctx.obj["config_manager"].config


def _load(ctx: click.Context, torrent_file: str) -> TorrentMetainfo:
    config = _get_config(ctx)
    try:
        return load_torrent(torrent_file, max_depth=config.protocol.max_bencode_depth)
    except BTLiteError as e:
        log_exception(logger, e, f"Failed to load {torrent_file}")
        _raise_cli_error(f"Failed to load torrent {torrent_file}: {e}")


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False),
    help="Configuration file path",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (-v: info, -vv: debug)",
)
@click.pass_context
def cli(ctx, config, verbose):
    """btlite - minimal BitTorrent metainfo, tracker and handshake tool."""
    ctx.ensure_object(dict)
    ctx.obj["verbosity"] = verbose

    try:
        config_manager = init_config(config)
    except BTLiteError as e:
        _raise_cli_error(f"Invalid configuration: {e}")

    ctx.obj["config_manager"] = config_manager

    # Verbosity only raises the console level; the configured level is the floor
    if verbose:
        observability = config_manager.config.observability.model_copy(
            update={"log_level": LogLevel.DEBUG if verbose > 1 else LogLevel.INFO}
        )
        setup_logging(observability)


@cli.command("decode")
@click.argument("value")
@click.pass_context
def decode_cmd(ctx, value):
    """Decode a bencoded VALUE and print it as JSON."""
    config = _get_config(ctx)
    try:
        decoded = bdecode(
            os.fsencode(value),
            max_depth=config.protocol.max_bencode_depth,
        )
    except BTLiteError as e:
        _raise_cli_error(f"Invalid bencode: {e}")

    console.print(json.dumps(_to_json_value(decoded)))


@cli.command("info")
@click.argument("torrent_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def info_cmd(ctx, torrent_file):
    """Show tracker, length, info hash and piece hashes of TORRENT_FILE."""
    metainfo = _load(ctx, torrent_file)

    console.print(f"Tracker URL: {metainfo.announce_url}")
    console.print(f"Length: {metainfo.info.total_length}")
    console.print(f"Info Hash: {metainfo.info_hash_hex}")
    console.print(f"Piece Length: {metainfo.info.piece_length}")
    console.print("Piece Hashes:")
    for piece_hash in metainfo.info.piece_hashes:
        console.print(piece_hash.hex())


@cli.command("peers")
@click.argument("torrent_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def peers_cmd(ctx, torrent_file):
    """Announce TORRENT_FILE to its tracker and list the peers returned."""
    config = _get_config(ctx)
    metainfo = _load(ctx, torrent_file)
    request = TrackerRequest.for_torrent(
        metainfo,
        peer_id=local_peer_id(config),
        port=config.network.listen_port,
    )

    try:
        with LoggingContext("announce", logger, tracker=metainfo.announce_url):
            response = asyncio.run(announce(metainfo.announce_url, request, config))
    except BTLiteError as e:
        log_exception(logger, e, f"Announce to {metainfo.announce_url}")
        _raise_cli_error(f"Tracker announce failed: {e}")

    for peer in response.peers:
        console.print(str(peer))


async def _handshake(
    peer: PeerInfo,
    metainfo: TorrentMetainfo,
    peer_id: bytes,
    config: Config,
) -> bytes:
    async with PeerConnection(peer, config) as connection:
        remote = await connection.handshake(metainfo.info_hash, peer_id)
    return remote.peer_id


@cli.command("handshake")
@click.argument("torrent_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("peer_address")
@click.pass_context
def handshake_cmd(ctx, torrent_file, peer_address):
    """Exchange handshakes with PEER_ADDRESS (host:port) for TORRENT_FILE."""
    config = _get_config(ctx)
    try:
        peer = PeerInfo.from_address(peer_address)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="PEER_ADDRESS") from None

    metainfo = _load(ctx, torrent_file)

    try:
        with LoggingContext("handshake", logger, peer=str(peer)):
            remote_peer_id = asyncio.run(
                _handshake(peer, metainfo, local_peer_id(config), config)
            )
    except BTLiteError as e:
        log_exception(logger, e, f"Handshake with {peer}")
        _raise_cli_error(f"Handshake with {peer} failed: {e}")

    console.print(f"Peer ID: {remote_peer_id.hex()}")


def main():
    """Main CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
