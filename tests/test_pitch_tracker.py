import threading
import time
import unittest

import numpy as np

from chromatic_tuner.audio.pitch_estimator import PitchEstimator
from chromatic_tuner.audio.pitch_tracker import AsyncPitchTracker
from chromatic_tuner.core.errors import AnalysisError
from chromatic_tuner.core.interfaces import IPitchEstimator
from chromatic_tuner.note_types import Result

SAMPLE_RATE = 44100


def sine(frequency, num_samples, sample_rate=SAMPLE_RATE):
    t = np.arange(num_samples) / sample_rate
    return (0.5 * np.sin(2 * np.pi * frequency * t)).astype(np.float32)


def wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


class BlockingEstimator(IPitchEstimator):
    """Estimator whose analysis blocks until released."""

    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()
        self.fed = []

    def feed(self, samples, sample_rate):
        self.fed.append((np.array(samples), sample_rate))

    def analyze(self):
        self.entered.set()
        self.release.wait(10)
        return Result(estimated_frequency=440.0, nearest_note_name="A4", cents_offset=0)


class FlakyEstimator(IPitchEstimator):
    """Fails on the first analysis, succeeds afterwards."""

    def __init__(self):
        self.calls = 0

    def feed(self, samples, sample_rate):
        pass

    def analyze(self):
        self.calls += 1
        if self.calls == 1:
            raise AnalysisError("boom")
        return Result(estimated_frequency=110.0, nearest_note_name="A2", cents_offset=1)


class TestAsyncPitchTracker(unittest.TestCase):
    def test_placeholder_before_first_analysis(self):
        tracker = AsyncPitchTracker(PitchEstimator(capacity=1024))
        result = tracker.latest()
        self.assertEqual(result.nearest_note_name, "Unknown")
        self.assertEqual(result.estimated_frequency, 0.0)
        self.assertEqual(result.cents_offset, 0)

    def test_idempotent_polling(self):
        tracker = AsyncPitchTracker(PitchEstimator(capacity=1024))
        self.assertIs(tracker.latest(), tracker.latest())

    def test_feed_before_start_is_dropped(self):
        tracker = AsyncPitchTracker(PitchEstimator(capacity=1024))
        self.assertFalse(tracker.feed(np.zeros(256, dtype=np.float32), SAMPLE_RATE))
        self.assertEqual(tracker.blocks_dropped, 1)

    def test_drops_counted_across_producers(self):
        tracker = AsyncPitchTracker(PitchEstimator(capacity=1024))
        block = np.zeros(64, dtype=np.float32)

        def produce():
            for _ in range(2000):
                tracker.feed(block, SAMPLE_RATE)

        producers = [threading.Thread(target=produce) for _ in range(4)]
        for t in producers:
            t.start()
        for t in producers:
            t.join()

        self.assertEqual(tracker.blocks_dropped, 8000)

    def test_detects_tone(self):
        estimator = PitchEstimator(capacity=8192)
        with AsyncPitchTracker(estimator) as tracker:
            self.assertTrue(tracker.feed(sine(440.0, 8192), SAMPLE_RATE))
            self.assertTrue(wait_for(lambda: tracker.analyses_completed >= 1))

            result = tracker.latest()
            self.assertEqual(result.nearest_note_name, "A4")
            self.assertLess(abs(result.cents_offset), 5)
            self.assertIs(tracker.latest(), result)

    def test_publishes_every_analysis(self):
        estimator = PitchEstimator(capacity=8192)
        published = []
        with AsyncPitchTracker(estimator) as tracker:
            tracker.add_listener(published.append)
            for _ in range(3):
                self.assertTrue(wait_for(lambda: tracker.feed(sine(440.0, 8192), SAMPLE_RATE)))
                count = len(published)
                self.assertTrue(wait_for(lambda: len(published) > count))

        # Same note each time, still published every time
        self.assertEqual(len(published), 3)
        self.assertEqual({r.nearest_note_name for r in published}, {"A4"})

    def test_feed_never_blocks_while_analysis_runs(self):
        estimator = BlockingEstimator()
        tracker = AsyncPitchTracker(estimator)
        tracker.start()
        try:
            self.assertTrue(tracker.feed(np.ones(512, dtype=np.float32), SAMPLE_RATE))
            self.assertTrue(estimator.entered.wait(2))

            block = np.zeros(512, dtype=np.float32)
            start = time.monotonic()
            accepted = [tracker.feed(block, SAMPLE_RATE) for _ in range(1000)]
            elapsed = time.monotonic() - start

            self.assertFalse(any(accepted))
            self.assertLess(elapsed, 1.0)
            self.assertGreaterEqual(tracker.blocks_dropped, 1000)
        finally:
            estimator.release.set()
            self.assertTrue(tracker.shutdown())

        self.assertEqual(len(estimator.fed), 1)
        np.testing.assert_array_equal(estimator.fed[0][0], np.ones(512))

    def test_worker_survives_analysis_error(self):
        estimator = FlakyEstimator()
        with AsyncPitchTracker(estimator) as tracker:
            block = np.zeros(128, dtype=np.float32)
            self.assertTrue(tracker.feed(block, SAMPLE_RATE))
            self.assertTrue(wait_for(lambda: tracker.analysis_failures == 1))
            self.assertEqual(tracker.latest().nearest_note_name, "Unknown")

            self.assertTrue(wait_for(lambda: tracker.feed(block, SAMPLE_RATE)))
            self.assertTrue(wait_for(lambda: tracker.analyses_completed == 1))
            self.assertEqual(tracker.latest().nearest_note_name, "A2")
            self.assertTrue(tracker.is_running())

    def test_listener_errors_do_not_stop_worker(self):
        def bad_listener(result):
            raise RuntimeError("listener failure")

        with AsyncPitchTracker(PitchEstimator(capacity=2048)) as tracker:
            tracker.add_listener(bad_listener)
            self.assertTrue(tracker.feed(sine(440.0, 2048), SAMPLE_RATE))
            self.assertTrue(wait_for(lambda: tracker.analyses_completed == 1))
            self.assertTrue(tracker.is_running())

    def test_shutdown_is_bounded_and_idempotent(self):
        tracker = AsyncPitchTracker(PitchEstimator(capacity=1024))
        tracker.start()
        start = time.monotonic()
        self.assertTrue(tracker.shutdown())
        self.assertLess(time.monotonic() - start, 2.0)
        self.assertFalse(tracker.is_running())
        self.assertTrue(tracker.shutdown())
        self.assertFalse(tracker.feed(np.zeros(16, dtype=np.float32), SAMPLE_RATE))

    def test_shutdown_waits_for_running_analysis(self):
        estimator = BlockingEstimator()
        tracker = AsyncPitchTracker(estimator)
        tracker.start()
        tracker.feed(np.ones(64, dtype=np.float32), SAMPLE_RATE)
        self.assertTrue(estimator.entered.wait(2))

        # Analysis still in progress: the bounded wait gives up
        self.assertFalse(tracker.shutdown(timeout=0.1))

        estimator.release.set()
        self.assertTrue(tracker.shutdown(timeout=2))
        self.assertEqual(tracker.latest().nearest_note_name, "A4")

    def test_shutdown_without_start(self):
        tracker = AsyncPitchTracker(PitchEstimator(capacity=1024))
        self.assertTrue(tracker.shutdown())

    def test_cannot_restart(self):
        tracker = AsyncPitchTracker(PitchEstimator(capacity=1024))
        tracker.start()
        tracker.shutdown()
        with self.assertRaises(RuntimeError):
            tracker.start()

    def test_copy_buffer_returns_last_block(self):
        estimator = BlockingEstimator()
        tracker = AsyncPitchTracker(estimator, initial_block_size=4)
        self.assertEqual(len(tracker.copy_buffer()), 0)
        tracker.start()
        try:
            block = np.arange(10, dtype=np.float32)
            self.assertTrue(tracker.feed(block, SAMPLE_RATE))
            np.testing.assert_array_equal(tracker.copy_buffer(), block)

            reused = np.zeros(32)
            out = tracker.copy_buffer(reused)
            np.testing.assert_array_equal(out, block)
        finally:
            estimator.release.set()
            tracker.shutdown()


if __name__ == "__main__":
    unittest.main()
