import logging
import threading

logger = logging.getLogger(__name__)


class DebounceScheduler:
    """
    Coalesces bursts of notify() calls into one callback after `interval`
    seconds of quiet.

    Only one timer is pending at a time. A timer that fires after it was
    replaced (it lost the race with cancel) sees a stale generation and
    does nothing.
    """

    def __init__(self, callback, interval=0.2, timer_factory=threading.Timer):
        self.callback = callback
        self.interval = interval
        self.timer_factory = timer_factory
        self._timer = None
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def pending(self):
        with self._lock:
            return self._timer is not None

    def notify(self):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            timer = self.timer_factory(self.interval, self._fire, args=(self._generation,))
            timer.daemon = True
            self._timer = timer
            timer.start()

    def cancel(self):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._generation += 1

    def _fire(self, generation):
        with self._lock:
            if generation != self._generation:
                return
            self._timer = None
        logger.debug("Debounce interval elapsed, firing")
        self.callback()
