"""Failure kinds reported by the serial transport adapter."""

from __future__ import annotations

from typing import Optional


class TransportError(Exception):
    """Base exception for transport errors."""

    def __init__(self, message: str, port: Optional[str] = None) -> None:
        super().__init__(message)
        self.port = port


class PortNotFoundError(TransportError):
    """The configured port identifier does not name an existing device."""


class PortBusyError(TransportError):
    """Another process held the port for the whole acquisition window."""


class UnsupportedConfigurationError(TransportError):
    """The driver rejected the requested link parameters."""


class ListenerRegistrationError(TransportError):
    """A data-available listener could not be registered."""


class StreamAcquisitionError(TransportError):
    """The input or output stream could not be obtained from the port."""


class HandshakeWriteError(TransportError):
    """The magic byte could not be written after the link was configured."""


class TeardownError(TransportError):
    """A release step failed while closing the port."""


class PortAlreadyOpenError(TransportError):
    """``open()`` was called while a port handle is still live."""
