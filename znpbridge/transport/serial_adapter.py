"""Serial transport adapter for the ZigBee network coprocessor link."""

from __future__ import annotations

import enum
import errno
import logging
import os
import threading
import time
from typing import Callable, List, Optional, Protocol, runtime_checkable

import serial
import serial.tools.list_ports

from .. import settings
from ..config import PortConfig
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
from .streams import PortInputStream, PortOutputStream

_LOGGER = logging.getLogger(__name__)
_ACQUIRE_RETRY_INTERVAL = 0.1
_NOT_FOUND_ERRNOS = {errno.ENOENT, errno.ENODEV, errno.ENXIO}
_BUSY_ERRNOS = {errno.EBUSY, errno.EAGAIN, errno.EWOULDBLOCK}
_BUSY_MARKERS = ("exclusively lock", "access is denied", "resource busy")
_NOT_FOUND_MARKERS = ("cannot find the file", "no such file")


@runtime_checkable
class ZigBeePort(Protocol):
    """Byte-stream lifecycle consumed by the coordinator and upstream stack."""

    def open(self) -> bool:
        ...

    def close(self) -> None:
        ...

    def get_input_stream(self) -> Optional[PortInputStream]:
        ...

    def get_output_stream(self) -> Optional[PortOutputStream]:
        ...


class AdapterState(enum.Enum):
    CLOSED = "closed"
    OPENING = "opening"
    OPEN = "open"


def list_ports() -> List[str]:
    """Return the device names of the serial ports visible to pyserial."""

    return [port.device for port in serial.tools.list_ports.comports()]


def resolve_port(port_id: str) -> serial.SerialBase:
    """Return an unopened handle for *port_id* or raise ``PortNotFoundError``.

    Device paths, names reported by the OS and pyserial URLs such as
    ``loop://`` or ``socket://host:port`` are accepted.
    """

    if not port_id:
        raise PortNotFoundError("No serial port configured", port_id)
    if "://" not in port_id and not os.path.exists(port_id):
        if port_id not in list_ports():
            raise PortNotFoundError(f"Port {port_id} does not exist", port_id)
    try:
        return serial.serial_for_url(port_id, do_not_open=True)
    except (ValueError, serial.SerialException) as exc:
        raise PortNotFoundError(f"Port {port_id} cannot be resolved: {exc}", port_id) from exc


def _classify_open_failure(exc: serial.SerialException) -> Optional[type]:
    code = getattr(exc, "errno", None)
    text = str(exc).lower()
    if code in _NOT_FOUND_ERRNOS or any(marker in text for marker in _NOT_FOUND_MARKERS):
        return PortNotFoundError
    if code in _BUSY_ERRNOS or any(marker in text for marker in _BUSY_MARKERS):
        return PortBusyError
    return None


def acquire_port(ser: serial.SerialBase, port_id: str, timeout: float) -> None:
    """Open *ser* for exclusive use, retrying while it is busy.

    Raises ``PortBusyError`` once *timeout* seconds have passed without
    gaining access and ``PortNotFoundError`` when the device vanished.
    """

    ser.exclusive = True
    deadline = time.monotonic() + timeout
    while True:
        try:
            ser.open()
            return
        except serial.SerialException as exc:
            kind = _classify_open_failure(exc)
            if kind is PortNotFoundError:
                raise PortNotFoundError(f"Port {port_id} does not exist", port_id) from exc
            if kind is None:
                raise TransportError(f"Could not open port {port_id}: {exc}", port_id) from exc
            if time.monotonic() >= deadline:
                raise PortBusyError(f"Port {port_id} in use", port_id) from exc
            _LOGGER.debug("Port %s busy, retrying: %s", port_id, exc)
        time.sleep(_ACQUIRE_RETRY_INTERVAL)


def configure_link(ser: serial.SerialBase, port_id: str, baud_rate: int) -> None:
    """Apply 8N1 at *baud_rate* to an open handle."""

    try:
        ser.baudrate = baud_rate
        ser.bytesize = serial.EIGHTBITS
        ser.stopbits = serial.STOPBITS_ONE
        ser.parity = serial.PARITY_NONE
    except (ValueError, serial.SerialException) as exc:
        raise UnsupportedConfigurationError(
            f"Unsupported comm operation on port {port_id}: {exc}", port_id
        ) from exc


class SerialTransportAdapter:
    """Owns the coprocessor's serial port: open, handshake, streams, close.

    ``open`` and ``close`` never raise. A failed ``open`` leaves the adapter
    closed and stores the failure in ``last_error``; ``close`` records every
    release step that went wrong in ``teardown_errors`` but always drops its
    references. Lifecycle calls are expected from one thread at a time; the
    streams may be read from another thread, and the data-available listener
    runs on the notifier's own thread.
    """

    def __init__(
        self,
        config: PortConfig,
        *,
        logger: Optional[logging.Logger] = None,
        port_factory: Callable[[str], serial.SerialBase] = resolve_port,
    ) -> None:
        self.config = config
        self._logger = logger or _LOGGER
        self._port_factory = port_factory
        self._state = AdapterState.CLOSED
        self._lifecycle_lock = threading.RLock()
        self._shutdown = threading.Event()
        self._idle_signal = threading.Event()
        self._serial: Optional[serial.SerialBase] = None
        self._notifier: Optional[DataAvailableNotifier] = None
        self._input: Optional[PortInputStream] = None
        self._output: Optional[PortOutputStream] = None
        self.last_error: Optional[TransportError] = None
        self.teardown_errors: List[TeardownError] = []

    @property
    def port_id(self) -> str:
        return self.config.port

    @property
    def state(self) -> AdapterState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is AdapterState.OPEN

    @property
    def data_available(self) -> threading.Event:
        """Level signal that is set while received bytes are waiting."""

        notifier = self._notifier
        if notifier is None:
            return self._idle_signal
        return notifier.data_available

    def wait_for_data(self, timeout: Optional[float] = None) -> bool:
        return self.data_available.wait(timeout)

    def get_input_stream(self) -> Optional[PortInputStream]:
        return self._input

    def get_output_stream(self) -> Optional[PortOutputStream]:
        return self._output

    def open(self) -> bool:
        port_id = self.port_id
        self._logger.debug("Opening ZigBee serial port %s", port_id)
        with self._lifecycle_lock:
            if self._serial is not None:
                self.last_error = PortAlreadyOpenError(f"Port {port_id} is already open", port_id)
                self._logger.error("Serial error: %s", self.last_error)
                return False

            self._state = AdapterState.OPENING
            self.last_error = None
            self._shutdown.clear()
            try:
                self._open_serial_port()
            except TransportError as exc:
                failure = exc
            except Exception as exc:
                failure = TransportError(f"Serial open error on port {port_id}: {exc}", port_id)
                failure.__cause__ = exc
            else:
                self._state = AdapterState.OPEN
                self._logger.info("Serial port [%s] is initialized.", port_id)
                return True

            self._logger.error(
                "Serial error (%s): %s", type(failure).__name__, failure
            )
            self.last_error = failure
            self._release()
            self._state = AdapterState.CLOSED
            return False

    def close(self) -> None:
        port_id = self.port_id
        self._logger.debug("Closing ZigBee serial port %s", port_id)
        with self._lifecycle_lock:
            if self._serial is None:
                self._state = AdapterState.CLOSED
                self.teardown_errors = []
                return
            self._release()
            self._state = AdapterState.CLOSED
            if not self.teardown_errors:
                self._logger.info("Serial port [%s] is closed.", port_id)

    def on_data_available(self, waiting: int) -> None:
        """Listener invoked on the notifier's dispatch thread when bytes arrive.

        The stack polls the input stream itself, so this only slows the
        notifier down to keep it from spinning. ``config.event_idle`` sets
        how long; ``close`` cuts the wait short.
        """

        self._logger.debug("%d byte(s) waiting on %s", waiting, self.port_id)
        idle = self.config.event_idle
        if idle:
            self._shutdown.wait(idle)

    def _open_serial_port(self) -> None:
        cfg = self.config
        port_id = cfg.port
        self._logger.debug("Connecting to serial port [%s]", port_id)

        ser = self._port_factory(port_id)
        ser.timeout = cfg.receive_timeout
        ser.write_timeout = cfg.write_timeout
        acquire_port(ser, port_id, cfg.acquire_timeout)
        self._serial = ser

        configure_link(ser, port_id, cfg.baud_rate)
        try:
            ser.timeout = cfg.receive_timeout
        except (ValueError, serial.SerialException) as exc:
            raise UnsupportedConfigurationError(
                f"Receive timeout rejected on port {port_id}: {exc}", port_id
            ) from exc

        if cfg.notify_data_available:
            notifier = DataAvailableNotifier(ser, logger=self._logger)
            notifier.add_listener(self.on_data_available)
            self._notifier = notifier
            try:
                notifier.start()
            except RuntimeError as exc:
                raise ListenerRegistrationError(
                    f"Could not start data-available notifications on {port_id}: {exc}",
                    port_id,
                ) from exc

        if not ser.is_open:
            raise StreamAcquisitionError(f"Port {port_id} closed before streams were acquired", port_id)
        self._input = PortInputStream(ser, threshold=settings.RECEIVE_THRESHOLD)
        self._output = PortOutputStream(ser)

        # Vendor wake-up byte; the firmware expects it right after configuration.
        try:
            self._output.write(bytes([cfg.magic_number]))
            self._output.flush()
        except (serial.SerialException, OSError, ValueError) as exc:
            raise HandshakeWriteError(
                f"Could not write magic number 0x{cfg.magic_number:02X} to {port_id}: {exc}",
                port_id,
            ) from exc

    def _release(self) -> None:
        """Drop every resource held, attempting each step even if one fails."""

        errors: List[TeardownError] = []
        ser = self._serial
        notifier = self._notifier
        input_stream = self._input
        output_stream = self._output

        self._shutdown.set()
        if ser is not None:
            self._teardown_step(errors, "shrink receive timeout", lambda: self._unblock_readers(ser))
        if notifier is not None:
            notifier.remove_listener()
            self._teardown_step(errors, "stop notifier", notifier.stop)
        if input_stream is not None:
            self._teardown_step(errors, "close input stream", input_stream.close)
        if output_stream is not None:
            # IOBase.close flushes before marking the stream closed.
            self._teardown_step(errors, "flush and close output stream", output_stream.close)
        if ser is not None:
            self._teardown_step(errors, "close port", ser.close)

        self._serial = None
        self._notifier = None
        self._input = None
        self._output = None
        self.teardown_errors = errors

    @staticmethod
    def _unblock_readers(ser: serial.SerialBase) -> None:
        ser.timeout = settings.CLOSE_RECEIVE_TIMEOUT
        cancel_read = getattr(ser, "cancel_read", None)
        if cancel_read is not None and ser.is_open:
            cancel_read()

    def _teardown_step(
        self, errors: List[TeardownError], description: str, step: Callable[[], None]
    ) -> None:
        try:
            step()
        except Exception as exc:
            failure = TeardownError(f"{description} failed on {self.port_id}: {exc}", self.port_id)
            failure.__cause__ = exc
            errors.append(failure)
            self._logger.warning("Error closing serial port: %s", failure)
