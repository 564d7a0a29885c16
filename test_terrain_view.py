import os
import tempfile
import unittest

import cv2

import config
import terrain_view


class TestTerrainView(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.tmp.cleanup()

    def test_overrides(self):
        args = terrain_view.parse_args(["--recording", "walk.npy", "--factor", "2", "--window", "0.5"])
        cfg = terrain_view.apply_overrides(config.load_config(None), args)
        self.assertEqual(cfg["source"]["kind"], "recording")
        self.assertEqual(cfg["source"]["recording_path"], "walk.npy")
        self.assertEqual(cfg["terrain"]["downsample_factor"], 2)
        self.assertEqual(cfg["terrain"]["calibration_window_s"], 0.5)

    def test_bad_factor_exit_code(self):
        self.assertEqual(terrain_view.main(["--config", "missing.json", "--factor", "0", "--headless"]), 2)

    def test_headless_synthetic_run(self):
        out = os.path.join(self.tmp.name, "terrain.png")
        plot = os.path.join(self.tmp.name, "hist.png")
        code = terrain_view.main(["--config", "missing.json", "--headless", "--frames", "5",
                                  "--window", "0.1", "--output", out, "--plot", plot])
        self.assertEqual(code, 0)
        image = cv2.imread(out, cv2.IMREAD_UNCHANGED)
        # synthetic source is 256x192, downsampled by 4
        self.assertEqual(image.shape, (48, 64, 4))
        self.assertTrue(os.path.exists(plot))

    def test_missing_recording_exit_code(self):
        code = terrain_view.main(["--config", "missing.json", "--headless",
                                  "--recording", os.path.join(self.tmp.name, "none.npy")])
        self.assertEqual(code, 1)


if __name__ == "__main__":
    unittest.main()
