"""Exception types raised by the tuner core."""

from typing import Optional


class TunerError(Exception):
    """Base class for all errors raised by Chromatic Tuner."""


class SizeMismatch(TunerError, ValueError):
    """A caller-supplied buffer does not have the required length."""

    def __init__(self, message: str, expected: Optional[int] = None, actual: Optional[int] = None):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class AnalysisError(TunerError):
    """A pitch analysis pass could not be completed."""


class ConfigurationError(TunerError, ValueError):
    """A component was constructed with invalid parameters."""
