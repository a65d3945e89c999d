"""Byte-stream views over a live pyserial port handle."""

from __future__ import annotations

import io

import serial

from ..settings import RECEIVE_THRESHOLD


class PortInputStream(io.RawIOBase):
    """Readable stream honouring a receive threshold and the port timeout.

    A read blocks until at least ``threshold`` bytes are available or the
    port's current ``timeout`` expires, then returns whatever is buffered up
    to the requested size. An empty result means the timeout elapsed.
    Closing the stream does not close the port.
    """

    def __init__(self, ser: serial.SerialBase, *, threshold: int = RECEIVE_THRESHOLD) -> None:
        super().__init__()
        self._serial = ser
        self.threshold = max(1, threshold)

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        if self.closed:
            raise ValueError("I/O operation on closed stream")
        view = memoryview(buffer).cast("B")
        size = len(view)
        if size == 0:
            return 0
        data = self._serial.read(min(self.threshold, size))
        if not data:
            return 0
        remaining = size - len(data)
        if remaining > 0:
            waiting = self._serial.in_waiting
            if waiting:
                data += self._serial.read(min(waiting, remaining))
        view[: len(data)] = data
        return len(data)

    def available(self) -> int:
        """Number of bytes that can be read without blocking."""

        if self.closed:
            return 0
        return self._serial.in_waiting


class PortOutputStream(io.RawIOBase):
    """Writable stream; ``flush`` drains the port's transmit buffer."""

    def __init__(self, ser: serial.SerialBase) -> None:
        super().__init__()
        self._serial = ser

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        if self.closed:
            raise ValueError("I/O operation on closed stream")
        written = self._serial.write(bytes(data))
        return len(data) if written is None else written

    def flush(self) -> None:
        if self.closed:
            return
        self._serial.flush()
