"""Run the btlite CLI with ``python -m btlite``."""

from __future__ import annotations

from btlite.cli.main import main

if __name__ == "__main__":
    main()
