import logging
import math
import threading

import cv2
import numpy as np

from pipeline import Control, LABELS

logger = logging.getLogger(__name__)

CONTROL_ORDER = [Control.GROUND, Control.ABOVE, Control.BELOW]


def overlay_fps(img, fps):
    cv2.putText(img, f"FPS: {fps:.1f}", (10, 30),
                cv2.FONT_HERSHEY_SIMPLEX, 0.7, (255, 255, 255), 2)


def overlay_labels(img, labels):
    h = img.shape[0]
    for i, text in enumerate(labels):
        y = h - 15 - 28 * (len(labels) - 1 - i)
        cv2.putText(img, text, (10, y), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (0, 0, 0), 4, cv2.LINE_AA)
        cv2.putText(img, text, (10, y), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (255, 255, 255), 1, cv2.LINE_AA)


def to_bgr(image, width, height):
    """RGBA terrain image -> BGR canvas of the window size, nearest neighbour, aspect kept."""
    canvas = np.zeros((height, width, 3), dtype=np.uint8)
    if image is None or image.shape[0] == 0 or image.shape[1] == 0:
        return canvas
    bgr = cv2.cvtColor(image, cv2.COLOR_RGBA2BGR)
    ih, iw = bgr.shape[:2]
    scale = min(width / iw, height / ih)
    sw, sh = max(1, int(iw * scale)), max(1, int(ih * scale))
    scaled = cv2.resize(bgr, (sw, sh), interpolation=cv2.INTER_NEAREST)
    x0, y0 = (width - sw) // 2, (height - sh) // 2
    canvas[y0:y0 + sh, x0:x0 + sw] = scaled
    return canvas


# ============================================================================
# SLIDER MAPPING
# ============================================================================

def slider_to_value(pos, rng, steps):
    span = rng.maximum - rng.minimum
    if not math.isfinite(span) or span <= 0:
        return rng.minimum
    return rng.minimum + span * pos / steps


def value_to_slider(value, rng, steps):
    span = rng.maximum - rng.minimum
    if not math.isfinite(span) or span <= 0 or not math.isfinite(value):
        return 0
    pos = int(round((value - rng.minimum) / span * steps))
    return max(0, min(steps, pos))


# ============================================================================
# WINDOW
# ============================================================================

class TerrainWindow:
    """
    OpenCV window with three trackbars standing in for the range sliders.

    Images, labels and slider ranges may arrive from timer threads; they are
    parked under a lock and only touched by cv2 inside render(), which the
    main loop calls.
    """

    def __init__(self, d_cfg, on_slider):
        self.name = d_cfg.get("window_name", "Terrain View")
        self.width = d_cfg.get("width", 768)
        self.height = d_cfg.get("height", 576)
        self.steps = int(d_cfg.get("slider_steps", 1000))
        self.show_fps = d_cfg.get("show_fps", True)
        self.on_slider = on_slider
        self.lock = threading.Lock()
        self.image = None
        self.labels = {c: f"{LABELS[c]}: --" for c in CONTROL_ORDER}
        self.ranges = None
        self._pending_ranges = None
        self._suppress = False

    def open(self):
        cv2.namedWindow(self.name, cv2.WINDOW_NORMAL)
        cv2.resizeWindow(self.name, self.width, self.height)
        for control in CONTROL_ORDER:
            cv2.createTrackbar(LABELS[control], self.name, 0, self.steps, self._make_callback(control))

    def _make_callback(self, control):
        def on_trackbar(pos):
            if self._suppress or self.ranges is None:
                return
            rng = getattr(self.ranges, control.value)
            self.on_slider(control, slider_to_value(pos, rng, self.steps))
        return on_trackbar

    # Thread-safe handoff -------------------------------------------------

    def update_image(self, image):
        with self.lock:
            self.image = image

    def update_label(self, which, text):
        with self.lock:
            self.labels[Control(which)] = text

    def configure_sliders(self, ranges):
        with self.lock:
            self._pending_ranges = ranges

    # UI thread -----------------------------------------------------------

    def _apply_ranges(self, ranges):
        # Moving a trackbar from code would call back into the pipeline
        self._suppress = True
        try:
            for control in CONTROL_ORDER:
                rng = getattr(ranges, control.value)
                cv2.setTrackbarPos(LABELS[control], self.name, value_to_slider(rng.initial, rng, self.steps))
        finally:
            self._suppress = False
        self.ranges = ranges
        logger.info("Sliders configured from calibration")

    def render(self, fps=None):
        with self.lock:
            image = self.image
            labels = [self.labels[c] for c in CONTROL_ORDER]
            ranges, self._pending_ranges = self._pending_ranges, None
        if ranges is not None:
            self._apply_ranges(ranges)

        canvas = to_bgr(image, self.width, self.height)
        overlay_labels(canvas, labels)
        if self.show_fps and fps is not None:
            overlay_fps(canvas, fps)
        cv2.imshow(self.name, canvas)
        return cv2.waitKey(1) & 0xFF

    def close(self):
        cv2.destroyWindow(self.name)
