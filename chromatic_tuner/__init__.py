"""Chromatic Tuner - real-time musical pitch estimation."""

from .note_types import Note, NoteDeviation, Result
from .note_utils import build_note_table
from .audio import AsyncPitchTracker, PitchEstimator, RingBuffer, SpectralTransform

__all__ = [
    "Note",
    "NoteDeviation",
    "Result",
    "build_note_table",
    "AsyncPitchTracker",
    "PitchEstimator",
    "RingBuffer",
    "SpectralTransform",
]
