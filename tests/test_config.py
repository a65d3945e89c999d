import dataclasses
import json
import tempfile
import unittest
from pathlib import Path

from znpbridge.config import PortConfig, load_config, save_config


class ConfigTests(unittest.TestCase):
    def test_load_returns_defaults_when_missing(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "znpbridge.json"
            cfg = load_config(path)
        self.assertEqual(cfg, PortConfig())
        self.assertEqual(cfg.magic_number, 0xEF)
        self.assertEqual(cfg.baud_rate, 230400)

    def test_load_merges_and_coerces_values(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "znpbridge.json"
            payload = {
                "port": " /dev/ttyACM0 ",
                "magic_number": "0x01",
                "pan_id": "0x1A62",
                "channel_id": 15.0,
                "receive_timeout": "0.5",
                "notify_data_available": False,
            }
            path.write_text(json.dumps(payload), encoding="utf-8")
            cfg = load_config(path)
        self.assertEqual(cfg.port, "/dev/ttyACM0")
        self.assertEqual(cfg.magic_number, 0x01)
        self.assertEqual(cfg.pan_id, 0x1A62)
        self.assertEqual(cfg.channel_id, 15)
        self.assertEqual(cfg.receive_timeout, 0.5)
        self.assertFalse(cfg.notify_data_available)
        # Unspecified fields fall back to defaults
        self.assertEqual(cfg.acquire_timeout, PortConfig().acquire_timeout)

    def test_out_of_range_magic_number_falls_back(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "znpbridge.json"
            path.write_text(json.dumps({"magic_number": 300}), encoding="utf-8")
            with self.assertLogs("znpbridge.config", level="ERROR"):
                cfg = load_config(path)
        self.assertEqual(cfg.magic_number, 0xEF)

    def test_invalid_json_returns_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "znpbridge.json"
            path.write_text("{not json", encoding="utf-8")
            with self.assertLogs("znpbridge.config", level="ERROR"):
                cfg = load_config(path)
        self.assertEqual(cfg, PortConfig())

    def test_non_positive_timeouts_fall_back(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "znpbridge.json"
            path.write_text(
                json.dumps({"acquire_timeout": 0, "write_timeout": "soon", "event_idle": None}),
                encoding="utf-8",
            )
            cfg = load_config(path)
        self.assertEqual(cfg.acquire_timeout, 2.0)
        self.assertEqual(cfg.write_timeout, 2.0)
        self.assertIsNone(cfg.event_idle)

    def test_save_and_reload_roundtrip(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "nested" / "znpbridge.json"
            cfg = PortConfig(
                port="/dev/ttyUSB1",
                magic_number=0x07,
                pan_id=0x2B2B,
                channel_id=20,
                receive_timeout=1.5,
                event_idle=None,
            )
            save_config(cfg, path)
            loaded = load_config(path)
        self.assertEqual(loaded, cfg)

    def test_config_is_immutable_and_validated(self) -> None:
        cfg = PortConfig(port="/dev/ttyUSB0")
        with self.assertRaises(dataclasses.FrozenInstanceError):
            cfg.port = "/dev/ttyUSB1"  # type: ignore[misc]
        with self.assertRaises(ValueError):
            PortConfig(magic_number=0x100)
        with self.assertRaises(ValueError):
            PortConfig(baud_rate=0)


if __name__ == "__main__":
    unittest.main()
