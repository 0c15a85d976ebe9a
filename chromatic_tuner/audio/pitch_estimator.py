"""Autocorrelation-based fundamental frequency estimation."""

from __future__ import annotations

import math
import threading
from typing import ClassVar, Optional, Sequence, Tuple

import numpy as np

from ..core.errors import AnalysisError, ConfigurationError, TunerError
from ..core.interfaces import IPitchEstimator
from ..logger import get_logger
from ..note_types import UNKNOWN_NOTE, Note, NoteDeviation, Result
from ..note_utils import DEFAULT_NOTES
from .ring_buffer import RingBuffer
from .spectral import SpectralTransform, next_power_of_two

logger = get_logger(__name__)


def _lag_for(sample_rate: float, frequency: float) -> Optional[int]:
    """Autocorrelation lag (in samples) of a period, or None if undefined."""
    if frequency <= 0:
        return None
    lag = sample_rate / frequency
    if not math.isfinite(lag):
        return None
    return int(lag + 0.5)


def _cents_to_int8(cents: float) -> int:
    return max(-128, min(127, int(cents)))


class PitchEstimator(IPitchEstimator):
    """Chromatic pitch estimator.

    Samples are accumulated in a ring buffer holding the capture window. Each
    call to analyze() computes the autocorrelation of the window through the
    Wiener-Khinchin identity (inverse FFT of the power spectrum), picks the
    strongest lag within the period range of the note table, refines it with
    parabolic interpolation and reports the nearest note.
    """

    DEFAULT_CAPACITY: ClassVar[int] = 96000  # ~2s at 48kHz
    DEFAULT_SAMPLE_RATE: ClassVar[int] = 44100  # Hz

    def __init__(
        self,
        notes: Sequence[Note] = DEFAULT_NOTES,
        capacity: int = DEFAULT_CAPACITY,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        transform: Optional[SpectralTransform] = None,
    ) -> None:
        """Initialize the estimator.

        Args:
            notes: Note table sorted by ascending frequency
            capacity: Capture window size in samples
            sample_rate: Expected sample rate in Hz, used until the first feed()
            transform: FFT implementation, or None for the default one

        Raises:
            ConfigurationError: If the note table is empty or capacity < 1
        """
        self._notes: Tuple[Note, ...] = tuple(notes)
        if not self._notes:
            raise ConfigurationError("Note table must contain at least one note")
        if sample_rate <= 0:
            raise ConfigurationError(f"Sample rate must be positive, got {sample_rate}")

        self._ring = RingBuffer(capacity, dtype=np.float64)
        self._sample_rate = int(sample_rate)
        self._transform = transform or SpectralTransform()

        # Guards the ring buffer together with the sample rate it was fed at
        self._buffer_lock = threading.Lock()
        # At most one analysis in flight
        self._analyze_lock = threading.Lock()

        # Scratch buffers, sized lazily on first analysis
        self._correlation = np.zeros(0, dtype=np.float64)
        self._spectrum = np.zeros(0, dtype=np.complex128)

        logger.info(
            f"Pitch estimator initialized: capacity={capacity}, sample_rate={sample_rate}, "
            f"notes={self._notes[0].name}-{self._notes[-1].name}"
        )

    @property
    def notes(self) -> Tuple[Note, ...]:
        return self._notes

    @property
    def capacity(self) -> int:
        return self._ring.capacity

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    def feed(self, samples: Sequence[float], sample_rate: int) -> None:
        """Append samples to the capture window.

        Args:
            samples: Mono samples (any float dtype, converted to float64)
            sample_rate: Sample rate of the block in Hz
        """
        if sample_rate <= 0:
            raise ValueError("Sample rate must be positive")

        with self._buffer_lock:
            self._ring.enqueue(samples)
            self._sample_rate = int(sample_rate)

    def _ensure_scratch(self, fft_size: int) -> None:
        if len(self._correlation) != fft_size:
            self._correlation = np.zeros(fft_size, dtype=np.float64)
        if len(self._spectrum) != fft_size:
            self._spectrum = np.zeros(fft_size, dtype=np.complex128)

    def _search_range(self, sample_rate: int, fft_size: int) -> Tuple[int, int]:
        # Highest note -> shortest period -> lowest lag
        low = _lag_for(sample_rate, self._notes[-1].frequency)
        if low is None or low < 0 or low >= fft_size:
            low = 0

        high = _lag_for(sample_rate, self._notes[0].frequency)
        if high is None or high < 0 or high >= fft_size:
            high = fft_size - 1

        return low, high

    def analyze(self) -> Result:
        """Estimate the fundamental frequency of the current capture window.

        Returns:
            A new Result. Degenerate input (silence, flat correlation) yields
            the note name 'Unknown' with a cents offset of 0.

        Raises:
            AnalysisError: If the spectral transform fails
        """
        with self._analyze_lock:
            n = self._ring.capacity
            fft_size = next_power_of_two(2 * n)
            self._ensure_scratch(fft_size)
            correlation = self._correlation
            spectrum = self._spectrum

            with self._buffer_lock:
                sample_rate = self._sample_rate
                self._ring.retrieve(correlation[:n])

            # Zero padding prevents circular wrap-around in the correlation
            correlation[n:] = 0.0

            try:
                self._transform.forward(correlation, spectrum)
                # Power spectrum: X * conj(X), phase discarded
                np.multiply(spectrum, np.conj(spectrum), out=spectrum)
                self._transform.inverse(spectrum, correlation)
            except TunerError as e:
                raise AnalysisError(f"Failed to compute autocorrelation: {e}") from e

            low, high = self._search_range(sample_rate, fft_size)
            window = correlation[low:high + 1]
            frequency = self._estimate_frequency(correlation, window, low, sample_rate)

            deviations, nearest, cents = self._match_note(frequency)

            if nearest == UNKNOWN_NOTE:
                frequency = 0.0
                cents = 0

            window_copy = window.copy()
            window_copy.setflags(write=False)
            result = Result(
                estimated_frequency=frequency,
                nearest_note_name=nearest,
                cents_offset=cents,
                deviations=deviations,
                autocorrelation_window=window_copy,
            )

        logger.debug(f"Analysis: {result} (lags {low}-{high})")
        return result

    def _estimate_frequency(
        self, correlation: np.ndarray, window: np.ndarray, low: int, sample_rate: int
    ) -> float:
        """Peak lag of the correlation window refined to sub-sample precision."""
        # Zero-lag energy; silence has no periodicity to measure
        energy = correlation[0]
        if len(window) == 0 or not energy > 0.0:
            return math.nan

        peak = low + int(np.argmax(window))
        peak_value = correlation[peak]
        last = len(correlation) - 1
        value_left = correlation[max(peak - 1, 0)]
        value_right = correlation[min(peak + 1, last)]

        # Parabola through the three samples around the peak
        denominator = 2.0 * peak_value - value_left - value_right
        with np.errstate(divide="ignore", invalid="ignore"):
            shift = np.float64(0.5 * (value_right - value_left)) / np.float64(denominator)
        if not math.isfinite(shift):
            return math.nan
        shift = min(0.5, max(-0.5, float(shift)))

        period = peak + shift
        if period <= 0.0:
            return math.nan
        return sample_rate / period

    def _match_note(self, frequency: float) -> Tuple[Tuple[NoteDeviation, ...], str, int]:
        """Deviation from every table note and the closest one."""
        deviations = []
        best_name = UNKNOWN_NOTE
        best_cents = math.inf
        best_abs = math.inf

        for note in self._notes:
            if note.frequency > 0 and math.isfinite(frequency) and frequency > 0:
                cents = 1200.0 * math.log2(frequency / note.frequency)
            else:
                cents = math.inf
            cents_abs = abs(cents)
            deviations.append(NoteDeviation(note=note, cents_from_estimate=cents_abs))

            if cents_abs < best_abs:
                best_name = note.name
                best_cents = cents
                best_abs = cents_abs

        if not math.isfinite(best_cents):
            return tuple(deviations), UNKNOWN_NOTE, 0
        return tuple(deviations), best_name, _cents_to_int8(best_cents)
