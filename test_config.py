import json
import logging
import os
import unittest
from unittest import mock

import config


class TestConfig(unittest.TestCase):

    def setUp(self):
        # Create a dummy config for testing
        self.test_config_name = "test_config.json"
        self.config_data = {"terrain": {"downsample_factor": 8}, "source": {"kind": "recording"}}
        with open(self.test_config_name, "w") as f:
            json.dump(self.config_data, f)

    def tearDown(self):
        if os.path.exists(self.test_config_name):
            os.remove(self.test_config_name)

    def test_load_config_merges_over_defaults(self):
        cfg = config.load_config(self.test_config_name)
        self.assertEqual(cfg["terrain"]["downsample_factor"], 8)
        self.assertEqual(cfg["terrain"]["debounce_interval_s"], 0.2)
        self.assertEqual(cfg["source"]["kind"], "recording")
        self.assertEqual(cfg["display"]["slider_steps"], 1000)

    def test_load_config_missing(self):
        """A missing file gives the defaults."""
        cfg = config.load_config("non_existent_file.json")
        self.assertEqual(cfg, config.DEFAULTS)

    def test_load_config_missing_warns(self):
        with self.assertLogs("config", level="WARNING"):
            config.load_config("non_existent_file.json")

    def test_load_config_none_is_quiet(self):
        with mock.patch.object(logging.getLogger("config"), "warning") as warning:
            cfg = config.load_config(None)
        warning.assert_not_called()
        self.assertEqual(cfg, config.DEFAULTS)

    def test_defaults_not_mutated(self):
        cfg = config.load_config("non_existent_file.json")
        cfg["terrain"]["downsample_factor"] = 1
        self.assertEqual(config.DEFAULTS["terrain"]["downsample_factor"], 4)

    def test_default_constants(self):
        t_cfg = config.DEFAULTS["terrain"]
        self.assertEqual(t_cfg["downsample_factor"], 4)
        self.assertEqual(t_cfg["calibration_window_s"], 2.0)
        self.assertEqual(t_cfg["debounce_interval_s"], 0.2)
        self.assertEqual((t_cfg["mountain_fraction"], t_cfg["grass_fraction"], t_cfg["peak_fraction"]),
                         (0.2, 0.6, 0.05))

    def test_invalid_factor_rejected(self):
        with open(self.test_config_name, "w") as f:
            json.dump({"terrain": {"downsample_factor": 0}}, f)
        with self.assertRaises(ValueError):
            config.load_config(self.test_config_name)

    def test_negative_interval_rejected(self):
        with open(self.test_config_name, "w") as f:
            json.dump({"terrain": {"debounce_interval_s": -1}}, f)
        with self.assertRaises(ValueError):
            config.load_config(self.test_config_name)


if __name__ == "__main__":
    unittest.main()
