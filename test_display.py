import unittest

import numpy as np

from calibration import SliderRange, calibrate
from display import TerrainWindow, slider_to_value, to_bgr, value_to_slider
from pipeline import Control


class TestSliderMapping(unittest.TestCase):

    def test_ends_and_middle(self):
        rng = SliderRange(1.0, 3.0, 2.0)
        self.assertEqual(slider_to_value(0, rng, 1000), 1.0)
        self.assertEqual(slider_to_value(1000, rng, 1000), 3.0)
        self.assertEqual(slider_to_value(500, rng, 1000), 2.0)
        self.assertEqual(value_to_slider(2.0, rng, 1000), 500)

    def test_value_clamped_to_track(self):
        rng = SliderRange(0.0, 1.0, 0.5)
        self.assertEqual(value_to_slider(-4.0, rng, 100), 0)
        self.assertEqual(value_to_slider(9.0, rng, 100), 100)

    def test_degenerate_ranges(self):
        flat = SliderRange(2.0, 2.0, 2.0)
        self.assertEqual(slider_to_value(700, flat, 1000), 2.0)
        self.assertEqual(value_to_slider(2.0, flat, 1000), 0)
        broken = SliderRange(1.0, float("nan"), float("nan"))
        self.assertEqual(slider_to_value(10, broken, 1000), 1.0)
        self.assertEqual(value_to_slider(float("nan"), broken, 1000), 0)


class TestToBgr(unittest.TestCase):

    def test_letterboxed_and_channel_order(self):
        image = np.zeros((2, 4, 4), dtype=np.uint8)
        image[..., 2] = 255  # blue in RGBA
        image[..., 3] = 255
        canvas = to_bgr(image, 40, 40)
        self.assertEqual(canvas.shape, (40, 40, 3))
        self.assertEqual(tuple(canvas[20, 20]), (255, 0, 0))
        self.assertEqual(tuple(canvas[0, 0]), (0, 0, 0))

    def test_empty_image(self):
        canvas = to_bgr(np.zeros((0, 5, 4), dtype=np.uint8), 10, 8)
        self.assertEqual(canvas.shape, (8, 10, 3))
        self.assertEqual(canvas.sum(), 0)


class TestTerrainWindowHandoff(unittest.TestCase):
    """Only the thread-safe side; nothing here opens a window."""

    def setUp(self):
        self.moves = []
        self.window = TerrainWindow({"slider_steps": 100}, on_slider=lambda w, v: self.moves.append((w, v)))

    def test_labels_and_image_parked(self):
        self.window.update_label("below", "Water Depth: 1.00m")
        self.window.update_image(np.zeros((1, 1, 4), dtype=np.uint8))
        self.assertEqual(self.window.labels[Control.BELOW], "Water Depth: 1.00m")
        self.assertIsNotNone(self.window.image)

    def test_slider_ignored_until_ranges_applied(self):
        callback = self.window._make_callback(Control.GROUND)
        callback(50)
        self.assertEqual(self.moves, [])

        self.window.ranges = calibrate(np.arange(1, 11)).ranges
        callback(100)
        self.assertEqual(self.moves, [(Control.GROUND, 10.0)])

    def test_programmatic_moves_suppressed(self):
        self.window.ranges = calibrate(np.arange(1, 11)).ranges
        self.window._suppress = True
        self.window._make_callback(Control.ABOVE)(10)
        self.assertEqual(self.moves, [])


if __name__ == "__main__":
    unittest.main()
