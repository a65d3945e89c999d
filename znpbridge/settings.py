"""Configuration defaults and shared constants for the ZNP serial bridge."""

from __future__ import annotations

import logging

CONFIG_FILE = "znpbridge.json"
LOG_LEVEL = logging.INFO
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

DEFAULT_BAUDRATE = 230400
DEFAULT_MAGIC_NUMBER = 0xEF
DEFAULT_PAN_ID = 0xFFFF
DEFAULT_CHANNEL_ID = 11

# Seconds.
ACQUIRE_TIMEOUT = 2.0
RECEIVE_TIMEOUT = 2.0
WRITE_TIMEOUT = 2.0
CLOSE_RECEIVE_TIMEOUT = 0.001
EVENT_IDLE = 1.0

RECEIVE_THRESHOLD = 1


def configure_logging(
    *, level: int = LOG_LEVEL, fmt: str = LOG_FORMAT, force: bool = False
) -> None:
    """Initialize the root logger used across the bridge."""

    if force:
        logging.basicConfig(level=level, format=fmt, force=True)
        return

    if logging.getLogger().handlers:
        return
    logging.basicConfig(level=level, format=fmt)
