"""Core components for the Chromatic Tuner application."""

# Import interfaces for easier access
from .interfaces import (
    IAudioInput,
    IPitchEstimator,
    IPitchTracker,
)
from .errors import (
    AnalysisError,
    ConfigurationError,
    SizeMismatch,
    TunerError,
)

__all__ = [
    "IAudioInput",
    "IPitchEstimator",
    "IPitchTracker",
    "AnalysisError",
    "ConfigurationError",
    "SizeMismatch",
    "TunerError",
]
