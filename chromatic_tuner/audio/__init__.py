"""Pitch analysis pipeline: sample buffering, FFT, estimation and tracking."""

from .ring_buffer import RingBuffer
from .spectral import SpectralTransform, next_power_of_two
from .pitch_estimator import PitchEstimator
from .pitch_tracker import AsyncPitchTracker

__all__ = [
    "RingBuffer",
    "SpectralTransform",
    "next_power_of_two",
    "PitchEstimator",
    "AsyncPitchTracker",
]
