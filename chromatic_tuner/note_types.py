"""Type definitions for the Chromatic Tuner project."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

import numpy as np

UNKNOWN_NOTE = "Unknown"


@dataclass(frozen=True)
class Note:
    """A note of the equal-tempered chromatic scale."""

    name: str  # Note name in scientific pitch notation (e.g., 'A4', 'C#3')
    frequency: float  # Frequency in Hz

    def __str__(self):
        return f"{self.name} ({self.frequency:.2f}Hz)"


@dataclass(frozen=True)
class NoteDeviation:
    """Distance between an estimated frequency and a single table note."""

    note: Note
    cents_from_estimate: float  # Absolute deviation in cents


@dataclass(frozen=True)
class Result:
    """Outcome of a single pitch analysis pass."""

    estimated_frequency: float  # Hz
    nearest_note_name: str  # e.g. 'A4', or 'Unknown'
    cents_offset: int  # Signed deviation from the nearest note, int8 range
    deviations: Tuple[NoteDeviation, ...] = ()
    autocorrelation_window: np.ndarray = field(
        default_factory=lambda: np.zeros(0, dtype=np.float64), compare=False
    )

    @classmethod
    def placeholder(cls) -> "Result":
        """Result reported before any analysis has completed."""
        return cls(estimated_frequency=0.0, nearest_note_name=UNKNOWN_NOTE, cents_offset=0)

    @property
    def is_known(self) -> bool:
        return self.nearest_note_name != UNKNOWN_NOTE

    def __str__(self):
        return (
            f"{self.nearest_note_name} ({self.estimated_frequency:.2f}Hz, "
            f"{self.cents_offset:+d} cents)"
        )
