"""Configuration helpers for the ZNP serial bridge."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Optional

from . import settings
from .settings import CONFIG_FILE

logger = logging.getLogger(__name__)


def _ensure_parent(path: Path) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError:
        # Directory creation failures will surface during write; keep silent here.
        pass


def _coerce_int(value: Any, default: int) -> int:
    """Accept ints, floats and strings with an optional base prefix ("0xEF")."""

    if isinstance(value, bool):
        return default
    if isinstance(value, str):
        try:
            return int(value.strip(), 0)
        except ValueError:
            return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _coerce_timeout(value: Any, default: float) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    return result if result > 0 else default


@dataclass(frozen=True)
class PortConfig:
    """Settings read once by the transport adapter before the port is opened."""

    port: str = ""
    magic_number: int = settings.DEFAULT_MAGIC_NUMBER
    baud_rate: int = settings.DEFAULT_BAUDRATE
    pan_id: int = settings.DEFAULT_PAN_ID
    channel_id: int = settings.DEFAULT_CHANNEL_ID
    acquire_timeout: float = settings.ACQUIRE_TIMEOUT
    receive_timeout: float = settings.RECEIVE_TIMEOUT
    write_timeout: float = settings.WRITE_TIMEOUT
    notify_data_available: bool = True
    event_idle: Optional[float] = settings.EVENT_IDLE

    def __post_init__(self) -> None:
        if not 0 <= self.magic_number <= 0xFF:
            raise ValueError(f"magic_number must fit in one byte, got {self.magic_number!r}")
        if self.baud_rate <= 0:
            raise ValueError(f"baud_rate must be positive, got {self.baud_rate!r}")


def load_config(path: str | Path = CONFIG_FILE) -> PortConfig:
    """Load configuration data from *path* or return defaults on failure."""

    defaults = PortConfig()
    cfg_path = Path(path)
    if not cfg_path.exists():
        return defaults

    try:
        raw = json.loads(cfg_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        logger.error("Config file %s contains invalid JSON: %s", cfg_path, exc)
        return defaults
    except OSError as exc:
        logger.error("Could not read config file %s: %s", cfg_path, exc)
        return defaults

    if not isinstance(raw, dict):
        logger.error("Config file %s did not contain an object", cfg_path)
        return defaults

    data = asdict(defaults)
    data["port"] = str(raw.get("port", data["port"]) or "").strip()

    magic = _coerce_int(raw.get("magic_number"), defaults.magic_number)
    if not 0 <= magic <= 0xFF:
        logger.error(
            "Config file %s has out-of-range magic_number %r; using 0x%02X",
            cfg_path,
            raw.get("magic_number"),
            defaults.magic_number,
        )
        magic = defaults.magic_number
    data["magic_number"] = magic

    baud = _coerce_int(raw.get("baud_rate"), defaults.baud_rate)
    data["baud_rate"] = baud if baud > 0 else defaults.baud_rate
    data["pan_id"] = _coerce_int(raw.get("pan_id"), defaults.pan_id)
    data["channel_id"] = _coerce_int(raw.get("channel_id"), defaults.channel_id)
    data["acquire_timeout"] = _coerce_timeout(raw.get("acquire_timeout"), defaults.acquire_timeout)
    data["receive_timeout"] = _coerce_timeout(raw.get("receive_timeout"), defaults.receive_timeout)
    data["write_timeout"] = _coerce_timeout(raw.get("write_timeout"), defaults.write_timeout)
    data["notify_data_available"] = bool(
        raw.get("notify_data_available", data["notify_data_available"])
    )
    if "event_idle" in raw and raw["event_idle"] is None:
        data["event_idle"] = None
    else:
        data["event_idle"] = _coerce_timeout(raw.get("event_idle"), settings.EVENT_IDLE)

    return PortConfig(**data)


def save_config(config: PortConfig, path: str | Path = CONFIG_FILE) -> None:
    """Persist *config* to *path*, logging errors without raising."""

    cfg_path = Path(path)
    _ensure_parent(cfg_path)
    try:
        cfg_path.write_text(json.dumps(asdict(config), indent=4), encoding="utf-8")
    except OSError as exc:
        logger.error("Could not write config file %s: %s", cfg_path, exc)
