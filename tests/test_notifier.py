import threading
import time
import unittest
from unittest import mock

from znpbridge.transport.errors import ListenerRegistrationError
from znpbridge.transport.notifier import DataAvailableNotifier


def _wait_until(predicate, timeout: float = 1.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


class DataAvailableNotifierTests(unittest.TestCase):
    def setUp(self) -> None:
        self.ser = mock.Mock()
        self.ser.port = "/dev/ttyFAKE"
        self.ser.in_waiting = 0
        self.notifier = DataAvailableNotifier(self.ser, poll_interval=0.005)
        self.addCleanup(self.notifier.stop)

    def test_second_listener_is_rejected(self) -> None:
        self.notifier.add_listener(lambda _count: None)
        with self.assertRaises(ListenerRegistrationError):
            self.notifier.add_listener(lambda _count: None)

    def test_listener_runs_on_notifier_thread_with_byte_count(self) -> None:
        calls = []
        main_thread = threading.current_thread()

        def listener(count: int) -> None:
            calls.append((count, threading.current_thread() is main_thread))
            self.ser.in_waiting = 0

        self.notifier.add_listener(listener)
        self.notifier.start()
        self.ser.in_waiting = 3

        self.assertTrue(_wait_until(lambda: bool(calls)))
        self.assertEqual(calls[0], (3, False))

    def test_signal_is_level_triggered(self) -> None:
        self.notifier.start()
        self.assertFalse(self.notifier.data_available.is_set())

        self.ser.in_waiting = 1
        self.assertTrue(self.notifier.data_available.wait(1.0))

        self.ser.in_waiting = 0
        self.assertTrue(_wait_until(lambda: not self.notifier.data_available.is_set()))

    def test_slow_listener_does_not_hold_signal(self) -> None:
        release = threading.Event()
        entered = threading.Event()
        self.addCleanup(release.set)

        def listener(_count: int) -> None:
            entered.set()
            release.wait(5.0)

        self.notifier.add_listener(listener)
        self.ser.in_waiting = 1
        self.notifier.start()
        self.assertTrue(entered.wait(1.0))

        self.ser.in_waiting = 0
        self.assertTrue(
            _wait_until(lambda: not self.notifier.data_available.is_set(), timeout=0.1)
        )

    def test_failing_listener_does_not_stop_notifications(self) -> None:
        calls = []

        def listener(count: int) -> None:
            calls.append(count)
            raise RuntimeError("listener blew up")

        self.notifier.add_listener(listener)
        self.ser.in_waiting = 1
        self.notifier.start()

        self.assertTrue(_wait_until(lambda: len(calls) >= 2))
        self.assertTrue(self.notifier.is_running)

    def test_port_error_ends_watch_loop(self) -> None:
        type(self.ser).in_waiting = mock.PropertyMock(side_effect=OSError(9, "Bad file descriptor"))
        self.notifier.start()

        self.assertTrue(_wait_until(lambda: not self.notifier.is_running))
        self.assertFalse(self.notifier.data_available.is_set())

    def test_stop_clears_signal_and_joins(self) -> None:
        self.ser.in_waiting = 5
        self.notifier.start()
        self.assertTrue(self.notifier.data_available.wait(1.0))

        self.notifier.stop()

        self.assertFalse(self.notifier.is_running)
        self.assertFalse(self.notifier.data_available.is_set())


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
