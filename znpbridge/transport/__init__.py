"""Transport layer for the ZNP serial bridge."""

from .errors import (
    HandshakeWriteError,
    ListenerRegistrationError,
    PortAlreadyOpenError,
    PortBusyError,
    PortNotFoundError,
    StreamAcquisitionError,
    TeardownError,
    TransportError,
    UnsupportedConfigurationError,
)
from .notifier import DataAvailableNotifier
from .serial_adapter import (
    AdapterState,
    SerialTransportAdapter,
    ZigBeePort,
    list_ports,
    resolve_port,
)
from .streams import PortInputStream, PortOutputStream

__all__ = [
    "AdapterState",
    "DataAvailableNotifier",
    "HandshakeWriteError",
    "ListenerRegistrationError",
    "PortAlreadyOpenError",
    "PortBusyError",
    "PortInputStream",
    "PortNotFoundError",
    "PortOutputStream",
    "SerialTransportAdapter",
    "StreamAcquisitionError",
    "TeardownError",
    "TransportError",
    "UnsupportedConfigurationError",
    "ZigBeePort",
    "list_ports",
    "resolve_port",
]
