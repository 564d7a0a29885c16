import threading
import time
import unittest

from debounce import DebounceScheduler
from manual_timer import ManualTimer


class TestDebounceScheduler(unittest.TestCase):

    def setUp(self):
        ManualTimer.reset()
        self.fired = []
        self.scheduler = DebounceScheduler(lambda: self.fired.append(1), interval=0.2,
                                           timer_factory=ManualTimer)

    def tearDown(self):
        ManualTimer.reset()

    def test_single_notify_fires_once(self):
        self.scheduler.notify()
        self.assertTrue(self.scheduler.pending)
        ManualTimer.created[-1].fire()
        self.assertEqual(self.fired, [1])
        self.assertFalse(self.scheduler.pending)

    def test_burst_coalesces(self):
        for _ in range(10):
            self.scheduler.notify()
        timers = ManualTimer.created
        self.assertEqual(len(timers), 10)
        self.assertTrue(all(t.cancelled for t in timers[:-1]))
        self.assertFalse(timers[-1].cancelled)
        for t in timers:
            t.fire()
        self.assertEqual(self.fired, [1])

    def test_superseded_timer_that_already_started_firing(self):
        self.scheduler.notify()
        stale = ManualTimer.created[-1]
        self.scheduler.notify()
        # the stale timer got past cancel() before it took effect
        stale.function(*stale.args)
        self.assertEqual(self.fired, [])
        ManualTimer.created[-1].fire()
        self.assertEqual(self.fired, [1])

    def test_cancel(self):
        self.scheduler.notify()
        timer = ManualTimer.created[-1]
        self.scheduler.cancel()
        timer.function(*timer.args)
        self.assertEqual(self.fired, [])
        self.assertFalse(self.scheduler.pending)

    def test_interval_passed_to_timer(self):
        self.scheduler.notify()
        self.assertEqual(ManualTimer.created[-1].interval, 0.2)


class TestDebounceRealTime(unittest.TestCase):

    def test_burst_fires_once_after_quiet_interval(self):
        fired = []
        done = threading.Event()

        def on_fire():
            fired.append(time.monotonic())
            done.set()

        scheduler = DebounceScheduler(on_fire, interval=0.1)
        for _ in range(5):
            scheduler.notify()
            last_notify = time.monotonic()
            time.sleep(0.02)
        self.assertTrue(done.wait(2.0))
        time.sleep(0.2)
        self.assertEqual(len(fired), 1)
        self.assertGreaterEqual(fired[0] - last_notify, 0.09)


if __name__ == "__main__":
    unittest.main()
