"""ZigBee ZNP serial bridge: the coprocessor's port as byte streams."""

from __future__ import annotations

__all__ = ["main"]


def main() -> int:
    """Run the ``znpbridge`` command-line tool."""

    from .cli import main as _cli_main

    return _cli_main()
