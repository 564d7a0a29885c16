import logging
import threading
from dataclasses import dataclass

import numpy as np

from thresholds import ThresholdSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SliderRange:
    minimum: float
    maximum: float
    initial: float


@dataclass(frozen=True)
class ControlRanges:
    ground: SliderRange
    above: SliderRange
    below: SliderRange


@dataclass(frozen=True)
class CalibrationResult:
    min_depth: float
    max_depth: float
    median_depth: float
    sample_count: int
    thresholds: ThresholdSet
    ranges: ControlRanges


# ============================================================================
# SAMPLE COLLECTION
# ============================================================================

class DepthSampleCollector:
    """Accumulates strided depth samples while a calibration window is open."""

    def __init__(self, factor=4):
        self.factor = factor
        self.active = False
        self._chunks = []
        self._lock = threading.Lock()

    def reset(self):
        with self._lock:
            self._chunks = []
            self.active = True

    def ingest(self, buffer, width, height):
        """Appends every Nth column of every Nth row. Ignored once the window is closed."""
        if not self.active:
            return
        flat = np.asarray(buffer, dtype=np.float32).reshape(-1)
        rows = np.arange(0, height, self.factor)
        cols = np.arange(0, width, self.factor)
        idx = (rows[:, None] * width + cols[None, :]).reshape(-1)
        chunk = flat[idx[idx < flat.size]]
        with self._lock:
            if self.active:
                self._chunks.append(chunk)

    def __len__(self):
        with self._lock:
            return sum(len(c) for c in self._chunks)

    def drain(self):
        """Closes the window and hands back everything collected, leaving nothing behind."""
        with self._lock:
            self.active = False
            chunks, self._chunks = self._chunks, []
        if not chunks:
            return np.zeros(0, dtype=np.float32)
        return np.concatenate(chunks)


# ============================================================================
# THRESHOLD DERIVATION
# ============================================================================

def calibrate(samples, mountain_fraction=0.2, grass_fraction=0.6, peak_fraction=0.05):
    """
    Derives the initial thresholds and slider ranges from a window of samples.

    Samples are ordered with np.sort (-inf < finite < +inf < NaN), so min and
    max are the ends of that order and the median is the lower median
    sorted[n // 2]. A NaN anywhere makes max, and so every threshold, NaN.

    Returns None for an empty window.
    """
    ordered = np.sort(np.asarray(samples, dtype=np.float64).reshape(-1))
    if ordered.size == 0:
        return None

    min_depth = float(ordered[0])
    max_depth = float(ordered[-1])
    median_depth = float(ordered[ordered.size // 2])

    with np.errstate(invalid='ignore'):
        depth_range = max_depth - min_depth
        mountain_range = depth_range * mountain_fraction
        grass_range = depth_range * grass_fraction
        peak_range = depth_range * peak_fraction
        ground_level = max_depth - grass_range

    thresholds = ThresholdSet(
        ground_level=ground_level,
        range_above=mountain_range,
        range_below=grass_range,
    )
    ranges = ControlRanges(
        ground=SliderRange(min_depth, max_depth, ground_level),
        above=SliderRange(0.0, mountain_range + peak_range, mountain_range / 2.0),
        below=SliderRange(0.0, grass_range, grass_range / 2.0),
    )
    return CalibrationResult(min_depth, max_depth, median_depth, int(ordered.size),
                             thresholds, ranges)


class Calibrator:
    """
    Runs one calibration per start(): opens the collector window, waits
    `window` seconds on a timer, then derives thresholds from what arrived.
    """

    def __init__(self, collector, on_result, window=2.0, fractions=None,
                 timer_factory=threading.Timer):
        self.collector = collector
        self.on_result = on_result
        self.window = window
        self.fractions = fractions or {}
        self.timer_factory = timer_factory
        self._timer = None
        self._generation = 0
        self._lock = threading.RLock()

    @property
    def running(self):
        with self._lock:
            return self._timer is not None

    def start(self):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self.collector.reset()
            timer = self.timer_factory(self.window, self._finish, args=(self._generation,))
            timer.daemon = True
            self._timer = timer
            timer.start()
        logger.info(f"Calibration window opened ({self.window:.1f}s)")

    def cancel(self):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
                self.collector.drain()
            self._generation += 1

    def _finish(self, generation):
        with self._lock:
            if generation != self._generation:
                return
            self._timer = None
            samples = self.collector.drain()
        result = calibrate(samples, **self.fractions)
        # start() or cancel() may have landed while the samples were crunched
        with self._lock:
            if generation != self._generation:
                logger.debug("Calibration window superseded; result dropped")
                return
            if result is None:
                logger.warning("Calibration window closed with no depth samples; thresholds unchanged")
                return
            logger.info(f"Calibrated on {result.sample_count} samples: "
                        f"min={result.min_depth:.3f}m max={result.max_depth:.3f}m "
                        f"median={result.median_depth:.3f}m")
            self.on_result(result)
