import json
import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest import mock

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "core"))
sys.path.insert(0, str(ROOT / "packages" / "display_protocol"))

from naspanel_core.config import AppConfig, config_path, load_config, save_config


class ConfigTests(unittest.TestCase):
    def test_load_default_when_missing(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "missing.json"
            cfg = load_config(path)
            self.assertIsInstance(cfg, AppConfig)
            self.assertEqual(cfg.device.port, "/dev/ttyS1")
            self.assertEqual(cfg.device.variant, "auto")
            self.assertEqual(cfg.timing.write_attempts, 10)

    def test_save_and_reload(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            cfg = load_config(path)
            cfg.device.variant = "qnap"
            cfg.timing.ack_timeout_ms = 80
            save_config(cfg, path)
            reloaded = load_config(path)
            self.assertEqual(reloaded.device.variant, "qnap")
            self.assertEqual(reloaded.timing.ack_timeout_ms, 80)

    def test_values_are_normalized(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            raw = {
                "device": {"variant": "Synology", "unknown": 1},
                "timing": {"write_attempts": 0, "queue_size": 5, "probe_timeout_ms": 10},
            }
            path.write_text(json.dumps(raw), encoding="utf-8")
            cfg = load_config(path)
            self.assertEqual(cfg.device.variant, "auto")
            self.assertEqual(cfg.timing.write_attempts, 1)
            self.assertEqual(cfg.timing.queue_size, 20)
            self.assertEqual(cfg.timing.probe_timeout_ms, 50)

    def test_corrupt_file_falls_back_to_defaults(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.json"
            path.write_text("{not json", encoding="utf-8")
            self.assertEqual(load_config(path), AppConfig())

    def test_session_timing_conversion(self):
        timing = AppConfig().timing.to_session_timing()
        self.assertEqual(timing.probe_timeout_ms, 300)
        self.assertEqual(timing.ack_timeout_ms, 40)
        self.assertEqual(timing.write_spacing_ms, 10)

    def test_config_path_honours_xdg(self):
        with mock.patch.dict(os.environ, {"XDG_CONFIG_HOME": "/tmp/xdg"}):
            self.assertEqual(config_path(), Path("/tmp/xdg/naspanel/config.json"))


if __name__ == "__main__":
    unittest.main()
