"""
Terrain pipeline: the seam between a depth sensor, the core and a display.

    on_frame(buffer, w, h) -> collector (while calibrating)
                          `-> downsample -> colorize -> on_image_ready
    set_threshold(which, v) -> store -> debounce -> recolor current frame
                            `-> on_label_update (immediate)
"""
import enum
import logging
import threading

import numpy as np

import terrain
from calibration import Calibrator, DepthSampleCollector
from config import DEFAULTS
from debounce import DebounceScheduler
from thresholds import ThresholdStore

logger = logging.getLogger(__name__)


class Control(str, enum.Enum):
    GROUND = "ground"
    ABOVE = "above"
    BELOW = "below"


LABELS = {
    Control.GROUND: "Ground Distance",
    Control.ABOVE: "Mountain Height",
    Control.BELOW: "Water Depth",
}


def format_label(which, value):
    return "%s: %.2fm" % (LABELS[Control(which)], value)


def _ignore(*args):
    pass


class TerrainPipeline:
    def __init__(self, terrain_cfg=None, on_image_ready=None, on_calibrated=None,
                 on_label_update=None, timer_factory=threading.Timer):
        cfg = dict(DEFAULTS["terrain"])
        cfg.update(terrain_cfg or {})
        self.factor = int(cfg["downsample_factor"])
        if self.factor < 1:
            raise ValueError(f"downsample_factor must be >= 1, got {self.factor}")

        self.on_image_ready = on_image_ready or _ignore
        self.on_calibrated = on_calibrated or _ignore
        self.on_label_update = on_label_update or _ignore

        self.scheduler = DebounceScheduler(self.recolor, interval=cfg["debounce_interval_s"],
                                           timer_factory=timer_factory)
        self.store = ThresholdStore(on_change=self.scheduler.notify)
        self.collector = DepthSampleCollector(factor=self.factor)
        self.calibrator = Calibrator(
            self.collector, self._apply_calibration,
            window=cfg["calibration_window_s"],
            fractions={
                "mountain_fraction": cfg["mountain_fraction"],
                "grass_fraction": cfg["grass_fraction"],
                "peak_fraction": cfg["peak_fraction"],
            },
            timer_factory=timer_factory,
        )
        self.last_calibration = None
        self._frame = None
        self._frame_lock = threading.Lock()

    @property
    def thresholds(self):
        return self.store.current

    # ------------------------------------------------------------------
    # Inputs

    def start_calibration(self):
        self.calibrator.start()

    recalibrate = start_calibration

    def on_frame(self, buffer, width, height):
        """Takes one sensor frame: samples it while calibrating, then recolors it."""
        frame = (np.asarray(buffer, dtype=np.float32), int(width), int(height))
        with self._frame_lock:
            self._frame = frame
        self.collector.ingest(*frame)
        self._render(frame)

    def set_threshold(self, which, value):
        which = Control(which)
        logger.debug(f"{which.value} threshold set to {value}")
        if which is Control.GROUND:
            self.store.set_ground(value)
        elif which is Control.ABOVE:
            self.store.set_above(value)
        else:
            self.store.set_below(value)
        self.on_label_update(which, format_label(which, value))

    # ------------------------------------------------------------------
    # Recoloring

    def recolor(self):
        """Recolors the latest frame with the thresholds current right now."""
        with self._frame_lock:
            frame = self._frame
        if frame is None:
            logger.debug("Recolor requested before any frame arrived")
            return None
        return self._render(frame)

    def _render(self, frame):
        buffer, width, height = frame
        grid = terrain.downsample(buffer, width, height, self.factor)
        image = terrain.colorize(grid, self.store.current)
        self.on_image_ready(image)
        return image

    def _apply_calibration(self, result):
        self.last_calibration = result
        self.store.replace(result.thresholds)
        self.on_calibrated(result.ranges)
        t = result.thresholds
        self.on_label_update(Control.GROUND, format_label(Control.GROUND, t.ground_level))
        self.on_label_update(Control.ABOVE, format_label(Control.ABOVE, t.range_above))
        self.on_label_update(Control.BELOW, format_label(Control.BELOW, t.range_below))

    def shutdown(self):
        self.calibrator.cancel()
        self.scheduler.cancel()
