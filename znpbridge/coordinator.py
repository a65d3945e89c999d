"""Coordinator lifecycle built around a ZigBee byte-stream port."""
from __future__ import annotations

import enum
import logging
from typing import Any, Callable, Optional

from .config import PortConfig
from .transport import SerialTransportAdapter, ZigBeePort

StackStarter = Callable[[ZigBeePort], Any]
PortFactory = Callable[[PortConfig], ZigBeePort]

_LOGGER = logging.getLogger(__name__)


class CoordinatorStatus(enum.Enum):
    UNINITIALIZED = "uninitialized"
    ONLINE = "online"
    OFFLINE = "offline"


def _default_port_factory(config: PortConfig) -> ZigBeePort:
    return SerialTransportAdapter(config)


class CoordinatorHandler:
    """Brings the coordinator online by opening its port for the upstream stack.

    The port is composed in rather than inherited: anything satisfying
    :class:`ZigBeePort` works. ``stack_starter`` receives the open port and
    is where the protocol stack takes over the streams.
    """

    def __init__(
        self,
        config: PortConfig,
        *,
        stack_starter: Optional[StackStarter] = None,
        port_factory: PortFactory = _default_port_factory,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config
        self._stack_starter = stack_starter
        self._port_factory = port_factory
        self._logger = logger or _LOGGER
        self.port: ZigBeePort = port_factory(config)
        self.stack: Any = None
        self.status = CoordinatorStatus.UNINITIALIZED
        self.status_detail = ""

    def initialize(self) -> bool:
        cfg = self.config
        self._logger.debug(
            "ZigBee Coordinator ZNP opening Port:'%s' PAN:%x, Channel:%d",
            cfg.port,
            cfg.pan_id,
            cfg.channel_id,
        )
        if not self.port.open():
            error = getattr(self.port, "last_error", None)
            self._set_offline(f"Coordinator unavailable: {error or 'port could not be opened'}")
            return False

        if self._stack_starter is not None:
            try:
                self.stack = self._stack_starter(self.port)
            except Exception as exc:
                self._logger.error("ZigBee stack failed to start on %s: %s", cfg.port, exc)
                self.port.close()
                self._set_offline(f"Stack startup failed: {exc}")
                return False

        self.status = CoordinatorStatus.ONLINE
        self.status_detail = ""
        return True

    def dispose(self) -> None:
        self.port.close()
        self.stack = None
        self.status = CoordinatorStatus.OFFLINE
        self.status_detail = "Disposed"

    def update_config(self, config: PortConfig) -> bool:
        """Restart the coordinator on a new configuration."""

        self.dispose()
        self.config = config
        self.port = self._port_factory(config)
        return self.initialize()

    def handle_command(self, channel: str, command: Any) -> None:
        self._logger.debug("Ignoring command %r for channel %s", command, channel)

    def _set_offline(self, detail: str) -> None:
        self.status = CoordinatorStatus.OFFLINE
        self.status_detail = detail
        self._logger.warning("Coordinator on %s offline: %s", self.config.port, detail)
