"""Pytest configuration and shared fixtures for btlite tests."""

from __future__ import annotations

import hashlib
import logging
import os

import pytest

from btlite.config.config import reset_config
from btlite.core.bencode import encode
from btlite.models import Config


def pytest_configure(config):
    """Register all project markers to avoid warnings when ini isn't loaded."""
    markers = [
        ("asyncio", "marks tests as async (deselect with '-m \"not asyncio\"')"),
        ("integration", "marks tests as integration tests"),
        ("unit", "marks tests as unit tests"),
        ("core", "marks tests as core functionality tests"),
        ("peer", "marks tests as peer protocol tests"),
        ("tracker", "marks tests as tracker tests"),
        ("config", "marks tests as configuration tests"),
        ("cli", "marks tests as CLI tests"),
        ("observability", "marks tests as logging tests"),
    ]
    for name, desc in markers:
        config.addinivalue_line("markers", f"{name}: {desc}")


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch, tmp_path):
    """Keep user config files and BTLITE_* variables out of every test.

    Runs each test from an empty directory with HOME pointing at it, so
    the config search never finds a real ``btlite.toml``.
    """
    for name in list(os.environ):
        if name.startswith("BTLITE_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.chdir(tmp_path)

    reset_config()
    yield
    reset_config()


@pytest.fixture(autouse=True)
def cleanup_logging():
    """Clean up logging handlers after each test to prevent closed file errors."""
    yield
    for logger_name in list(logging.Logger.manager.loggerDict.keys()):
        logger = logging.getLogger(logger_name)
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)


@pytest.fixture
def test_config():
    """Default configuration, independent of the environment."""
    return Config()


@pytest.fixture
def piece_hash():
    """A single 20-byte piece digest."""
    return hashlib.sha1(b"piece zero").digest()


@pytest.fixture
def sample_info(piece_hash):
    """Decoded info dictionary of a one-piece, 10-byte file."""
    return {
        b"length": 10,
        b"name": b"test",
        b"piece length": 10,
        b"pieces": piece_hash,
    }


@pytest.fixture
def sample_torrent_bytes(sample_info):
    """Raw bytes of a minimal single-file torrent."""
    return encode(
        {
            b"announce": b"http://tracker.example.com:6969/announce",
            b"info": sample_info,
        }
    )


@pytest.fixture
def sample_torrent_file(tmp_path, sample_torrent_bytes):
    """Minimal torrent written to disk."""
    path = tmp_path / "sample.torrent"
    path.write_bytes(sample_torrent_bytes)
    return path
