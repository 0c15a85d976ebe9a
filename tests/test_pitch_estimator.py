import math
import threading
import unittest

import numpy as np

from chromatic_tuner.audio.pitch_estimator import PitchEstimator, _cents_to_int8
from chromatic_tuner.audio.spectral import SpectralTransform
from chromatic_tuner.core.errors import AnalysisError, ConfigurationError, SizeMismatch
from chromatic_tuner.note_types import Note, Result
from chromatic_tuner.note_utils import build_note_table

SAMPLE_RATE = 44100


def sine(frequency, num_samples, sample_rate=SAMPLE_RATE, amplitude=0.5):
    t = np.arange(num_samples) / sample_rate
    return (amplitude * np.sin(2 * np.pi * frequency * t)).astype(np.float32)


class FailingTransform(SpectralTransform):
    def forward(self, real_in, complex_out):
        raise SizeMismatch("forced failure", expected=1, actual=2)


class TestPitchEstimator(unittest.TestCase):
    def test_pure_tone_a4_full_window(self):
        estimator = PitchEstimator(capacity=96000, sample_rate=SAMPLE_RATE)
        estimator.feed(sine(440.0, 96000), SAMPLE_RATE)

        result = estimator.analyze()

        self.assertEqual(result.nearest_note_name, "A4")
        self.assertLess(abs(result.cents_offset), 5)
        self.assertAlmostEqual(result.estimated_frequency, 440.0, delta=1.0)

    def test_pure_tones_across_range(self):
        estimator = PitchEstimator(capacity=16384)
        for frequency, expected in [
            (82.41, "E2"),
            (110.0, "A2"),
            (196.0, "G3"),
            (261.63, "C4"),
            (659.26, "E5"),
        ]:
            estimator.feed(sine(frequency, 16384), SAMPLE_RATE)
            result = estimator.analyze()
            self.assertEqual(result.nearest_note_name, expected, f"{frequency}Hz")
            self.assertLess(abs(result.cents_offset), 5, f"{frequency}Hz")

    def test_detuned_tone_reports_cents(self):
        estimator = PitchEstimator(capacity=16384)
        # 20 cents sharp of A4
        frequency = 440.0 * 2 ** (20 / 1200)
        estimator.feed(sine(frequency, 16384), SAMPLE_RATE)

        result = estimator.analyze()

        self.assertEqual(result.nearest_note_name, "A4")
        self.assertTrue(15 <= result.cents_offset <= 25, result.cents_offset)

    def test_harmonic_rich_tone_finds_fundamental(self):
        num_samples = 8192
        t = np.arange(num_samples) / SAMPLE_RATE
        signal = sum(np.sin(2 * np.pi * 110.0 * k * t) / k for k in range(1, 6))
        estimator = PitchEstimator(capacity=num_samples)
        estimator.feed(signal, SAMPLE_RATE)

        self.assertEqual(estimator.analyze().nearest_note_name, "A2")

    def test_other_sample_rate(self):
        estimator = PitchEstimator(capacity=8192)
        estimator.feed(sine(440.0, 8192, sample_rate=48000), 48000)

        result = estimator.analyze()

        self.assertEqual(estimator.sample_rate, 48000)
        self.assertEqual(result.nearest_note_name, "A4")

    def test_silence_is_unknown(self):
        estimator = PitchEstimator(capacity=4096)
        estimator.feed(np.zeros(4096, dtype=np.float32), SAMPLE_RATE)

        result = estimator.analyze()

        self.assertEqual(result.nearest_note_name, "Unknown")
        self.assertEqual(result.cents_offset, 0)
        self.assertEqual(result.estimated_frequency, 0.0)
        self.assertTrue(math.isfinite(result.estimated_frequency))

    def test_analyze_before_feed_is_unknown(self):
        estimator = PitchEstimator(capacity=1024)
        self.assertEqual(estimator.analyze().nearest_note_name, "Unknown")

    def test_degenerate_note_frequency(self):
        notes = (Note("X0", 0.0),)
        estimator = PitchEstimator(notes=notes, capacity=2048)
        estimator.feed(sine(440.0, 2048), SAMPLE_RATE)

        result = estimator.analyze()

        self.assertEqual(result.nearest_note_name, "Unknown")
        self.assertEqual(result.cents_offset, 0)
        self.assertEqual(len(result.deviations), 1)

    def test_cents_offset_clamped_to_int8(self):
        # The zero-frequency note widens the lag window to the whole correlation
        notes = (Note("X0", 0.0), Note("A4", 440.0))
        estimator = PitchEstimator(notes=notes, capacity=4096)
        estimator.feed(sine(50.0, 4096), SAMPLE_RATE)

        result = estimator.analyze()

        self.assertEqual(result.nearest_note_name, "A4")
        self.assertLess(result.estimated_frequency, 440.0 * 2 ** (-128 / 1200))
        self.assertEqual(result.cents_offset, -128)

    def test_cents_offset_truncates_toward_zero(self):
        self.assertEqual(_cents_to_int8(20.9), 20)
        self.assertEqual(_cents_to_int8(-20.9), -20)
        self.assertEqual(_cents_to_int8(0.99), 0)
        self.assertEqual(_cents_to_int8(3765.0), 127)
        self.assertEqual(_cents_to_int8(-3765.0), -128)

        estimator = PitchEstimator(capacity=16384)
        estimator.feed(sine(440.0 * 2 ** (20.9 / 1200), 16384), SAMPLE_RATE)
        result = estimator.analyze()

        exact = 1200.0 * math.log2(result.estimated_frequency / 440.0)
        self.assertEqual(result.nearest_note_name, "A4")
        self.assertEqual(result.cents_offset, math.trunc(exact))

    def test_deviation_for_every_note(self):
        notes = build_note_table("A3", "A5")
        estimator = PitchEstimator(notes=notes, capacity=8192)
        estimator.feed(sine(440.0, 8192), SAMPLE_RATE)

        result = estimator.analyze()

        self.assertEqual([d.note for d in result.deviations], list(notes))
        by_name = {d.note.name: d.cents_from_estimate for d in result.deviations}
        self.assertLess(by_name["A4"], 5)
        self.assertAlmostEqual(by_name["A3"], 1200, delta=5)
        self.assertAlmostEqual(by_name["A5"], 1200, delta=5)
        self.assertTrue(all(d.cents_from_estimate >= 0 for d in result.deviations))

    def test_autocorrelation_window_covers_search_range(self):
        notes = build_note_table("A3", "A5")
        estimator = PitchEstimator(notes=notes, capacity=4096)
        estimator.feed(sine(440.0, 4096), SAMPLE_RATE)

        result = estimator.analyze()

        low = round(SAMPLE_RATE / notes[-1].frequency)
        high = round(SAMPLE_RATE / notes[0].frequency)
        self.assertEqual(len(result.autocorrelation_window), high - low + 1)
        self.assertFalse(result.autocorrelation_window.flags.writeable)

    def test_results_do_not_alias_scratch(self):
        estimator = PitchEstimator(capacity=4096)
        estimator.feed(sine(440.0, 4096), SAMPLE_RATE)
        first = estimator.analyze()
        snapshot = first.autocorrelation_window.copy()

        estimator.feed(sine(220.0, 4096), SAMPLE_RATE)
        second = estimator.analyze()

        np.testing.assert_array_equal(first.autocorrelation_window, snapshot)
        self.assertEqual(first.nearest_note_name, "A4")
        self.assertEqual(second.nearest_note_name, "A3")

    def test_transform_failure_raises_analysis_error(self):
        estimator = PitchEstimator(capacity=1024, transform=FailingTransform())
        with self.assertRaises(AnalysisError) as ctx:
            estimator.analyze()
        self.assertIsInstance(ctx.exception.__cause__, SizeMismatch)

    def test_empty_note_table_rejected(self):
        with self.assertRaises(ConfigurationError):
            PitchEstimator(notes=())

    def test_zero_capacity_rejected(self):
        with self.assertRaises(ConfigurationError):
            PitchEstimator(capacity=0)

    def test_feed_rejects_bad_sample_rate(self):
        estimator = PitchEstimator(capacity=1024)
        with self.assertRaises(ValueError):
            estimator.feed(np.zeros(16), 0)

    def test_concurrent_analyses_serialize(self):
        estimator = PitchEstimator(capacity=4096)
        estimator.feed(sine(440.0, 4096), SAMPLE_RATE)
        results = []

        def worker():
            results.append(estimator.analyze())

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(len(results), 4)
        self.assertTrue(all(isinstance(r, Result) for r in results))
        self.assertEqual({r.nearest_note_name for r in results}, {"A4"})


if __name__ == "__main__":
    unittest.main()
