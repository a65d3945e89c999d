"""Command-line interface for the ZNP serial bridge.

Opens the configured coprocessor port the same way the coordinator does,
then hex-dumps whatever the firmware sends until interrupted. Useful for
checking wiring and the magic number without the protocol stack.
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
import time
from typing import Optional, Sequence, TextIO

from .config import PortConfig, load_config
from .settings import CONFIG_FILE, LOG_LEVEL, configure_logging
from .transport import SerialTransportAdapter, list_ports


def _parse_int(value: str) -> int:
    try:
        return int(value, 0)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}") from exc


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="znpbridge", description="ZigBee ZNP serial port bridge"
    )
    parser.add_argument(
        "-c",
        "--config",
        metavar="PATH",
        default=CONFIG_FILE,
        help=f"Path to the JSON configuration file (default: ./{CONFIG_FILE})",
    )
    parser.add_argument("-p", "--port", help="Serial port or pyserial URL to open")
    parser.add_argument(
        "-m",
        "--magic-number",
        type=_parse_int,
        help="Handshake byte written after opening (default: 0xEF)",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Stop after this many seconds instead of running until interrupted",
    )
    parser.add_argument(
        "--list-ports", action="store_true", help="List serial ports and exit"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def _apply_overrides(config: PortConfig, args: argparse.Namespace) -> PortConfig:
    changes = {}
    if args.port:
        changes["port"] = args.port
    if args.magic_number is not None:
        changes["magic_number"] = args.magic_number
    return dataclasses.replace(config, **changes) if changes else config


def dump_stream(
    adapter: SerialTransportAdapter,
    out: TextIO,
    *,
    duration: Optional[float] = None,
    chunk_size: int = 64,
) -> int:
    """Write received bytes to *out* as hex lines; return the byte count."""

    stream = adapter.get_input_stream()
    total = 0
    deadline = None if duration is None else time.monotonic() + duration
    while stream is not None and not stream.closed:
        if deadline is not None and time.monotonic() >= deadline:
            break
        data = stream.read(chunk_size)
        if not data:
            continue
        total += len(data)
        out.write(data.hex(" ") + "\n")
        out.flush()
    return total


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point used by the ``znpbridge`` script."""

    parser = _build_arg_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    configure_logging(level=logging.DEBUG if args.debug else LOG_LEVEL, force=args.debug)

    if args.list_ports:
        for device in list_ports():
            print(device)
        return 0

    try:
        config = _apply_overrides(load_config(args.config), args)
    except ValueError as exc:
        parser.error(str(exc))
    if not config.port:
        parser.error("no serial port configured; pass --port or set 'port' in the config")

    adapter = SerialTransportAdapter(config)
    if not adapter.open():
        print(f"znpbridge: {adapter.last_error}", file=sys.stderr)
        return 1
    try:
        dump_stream(adapter, sys.stdout, duration=args.duration)
    except KeyboardInterrupt:
        pass
    finally:
        adapter.close()
    return 0
