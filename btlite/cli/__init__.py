"""Command-line interface for btlite."""

from __future__ import annotations

from btlite.cli.main import cli, main

__all__ = [
    "cli",
    "main",
]
