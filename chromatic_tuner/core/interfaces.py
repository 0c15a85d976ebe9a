"""Defines the core interfaces for the Chromatic Tuner application."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Callable, Optional, Sequence

import numpy as np

from ..note_types import Result


class IAudioInput(ABC):
    """Interface for audio input handlers."""

    @abstractmethod
    def start(self, callback: Callable[[np.ndarray, int], None]) -> bool:
        """Start capturing audio, passing mono float32 blocks and the sample rate."""
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop capturing audio."""
        pass

    @abstractmethod
    def is_running(self) -> bool:
        """Check if audio is running."""
        pass

    @property
    @abstractmethod
    def sample_rate(self) -> int:
        """The sample rate of the audio stream."""
        pass


class IPitchEstimator(ABC):
    """Interface for pitch estimation algorithms."""

    @abstractmethod
    def feed(self, samples: Sequence[float], sample_rate: int) -> None:
        """Append samples to the analysis window."""
        pass

    @abstractmethod
    def analyze(self) -> Result:
        """Estimate the fundamental frequency of the current window."""
        pass


class IPitchTracker(ABC):
    """Interface for asynchronous pitch trackers."""

    @abstractmethod
    def feed(self, samples: Sequence[float], sample_rate: int) -> bool:
        """Hand a block of samples to the tracker without blocking."""
        pass

    @abstractmethod
    def latest(self) -> Result:
        """Most recently published analysis result."""
        pass

    @abstractmethod
    def shutdown(self, timeout: Optional[float] = None) -> bool:
        """Stop the tracker and wait for its worker to exit."""
        pass
