"""Data-available notifications delivered from a background thread."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

import serial

from .errors import ListenerRegistrationError

DataListener = Callable[[int], None]

_POLL_INTERVAL = 0.01
_LOGGER = logging.getLogger(__name__)


class DataAvailableNotifier:
    """Watches a port's receive buffer and signals when bytes are waiting.

    pyserial has no driver callback, so a daemon thread polls ``in_waiting``
    and plays that role. The signal is level-triggered: ``data_available``
    stays set while the buffer is non-empty and is cleared once it drains.
    At most one listener may be registered. It runs on a separate dispatch
    thread, which the adapter does not control, so a slow listener never
    holds up the signal.
    """

    def __init__(
        self,
        ser: serial.SerialBase,
        *,
        poll_interval: float = _POLL_INTERVAL,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._serial = ser
        self.poll_interval = poll_interval
        self._logger = logger or _LOGGER
        self._listener: Optional[DataListener] = None
        self._listener_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._dispatch_thread: Optional[threading.Thread] = None
        self._waiting = 0
        self.data_available = threading.Event()

    @property
    def is_running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def add_listener(self, listener: DataListener) -> None:
        with self._listener_lock:
            if self._listener is not None:
                raise ListenerRegistrationError(
                    "A data-available listener is already registered",
                    getattr(self._serial, "port", None),
                )
            self._listener = listener

    def remove_listener(self) -> None:
        with self._listener_lock:
            self._listener = None

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        name = getattr(self._serial, "port", "?")
        self._thread = threading.Thread(
            target=self._watch_loop,
            name=f"DataAvailableNotifier[{name}]",
            daemon=True,
        )
        self._dispatch_thread = threading.Thread(
            target=self._dispatch_loop,
            name=f"DataAvailableDispatch[{name}]",
            daemon=True,
        )
        self._thread.start()
        self._dispatch_thread.start()

    def stop(self, timeout: float = 1.0) -> None:
        self._stop.set()
        current = threading.current_thread()
        for thread in (self._thread, self._dispatch_thread):
            if thread and thread.is_alive() and thread is not current:
                thread.join(timeout=timeout)
        self._thread = None
        self._dispatch_thread = None
        self.data_available.clear()

    def _watch_loop(self) -> None:
        while not self._stop.wait(self.poll_interval):
            try:
                waiting = self._serial.in_waiting
            except (serial.SerialException, OSError, ValueError, TypeError):
                # Port went away underneath us; closing is the adapter's job.
                break
            self._waiting = waiting
            if waiting:
                self.data_available.set()
            else:
                self.data_available.clear()
        self.data_available.clear()
        self._stop.set()

    def _dispatch_loop(self) -> None:
        while not self._stop.is_set():
            if not self.data_available.wait(self.poll_interval):
                continue
            with self._listener_lock:
                listener = self._listener
            if listener is not None and not self._stop.is_set():
                try:
                    listener(self._waiting)
                except Exception:
                    self._logger.debug("Data-available listener failed", exc_info=True)
            # One listener call per poll at most while the level stays high.
            self._stop.wait(self.poll_interval)
