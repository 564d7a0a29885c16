import dataclasses
import logging
import threading
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ThresholdSet:
    ground_level: float = 0.0
    range_above: float = 0.0
    range_below: float = 0.0


class ThresholdStore:
    """
    Owns the current ThresholdSet.

    Each setter swaps in a new immutable value and then calls `on_change`, so
    a reader never sees a half-written set, only possibly a stale one.
    """

    def __init__(self, thresholds=None, on_change=None):
        self._thresholds = thresholds if thresholds is not None else ThresholdSet()
        self._lock = threading.Lock()
        self.on_change = on_change

    @property
    def current(self):
        return self._thresholds

    def set_ground(self, value):
        self._update(ground_level=float(value))

    def set_above(self, value):
        self._update(range_above=float(value))

    def set_below(self, value):
        self._update(range_below=float(value))

    def replace(self, thresholds):
        with self._lock:
            self._thresholds = thresholds
        logger.debug(f"Thresholds replaced: {thresholds}")
        self._notify()

    def _update(self, **fields):
        with self._lock:
            self._thresholds = dataclasses.replace(self._thresholds, **fields)
        self._notify()

    def _notify(self):
        if self.on_change is not None:
            self.on_change()
