"""Utility functions for working with musical notes and frequencies."""

import re
from typing import Tuple, Union

import numpy as np

from .core.errors import ConfigurationError
from .logger import get_logger
from .note_types import Note

logger = get_logger(__name__)

# Standard reference: A4 = 440Hz, MIDI note 69
A4_FREQUENCY = 440.0
A4_MIDI = 69

NOTE_NAMES_SHARPS = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]
NOTE_NAMES_FLATS = ["C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B"]

_NOTE_PATTERN = re.compile(r"^([A-Ga-g])([#b]?)(-?\d+)$")

NoteLike = Union[str, float, int]


def midi_to_name(midi_number: int, use_flats: bool = False) -> str:
    """Name a MIDI note number in Scientific Pitch Notation (C4 is middle C)."""
    octave = (midi_number // 12) - 1
    names = NOTE_NAMES_FLATS if use_flats else NOTE_NAMES_SHARPS
    return f"{names[midi_number % 12]}{octave}"


def midi_to_frequency(midi_number: int, reference: float = A4_FREQUENCY) -> float:
    """Equal-tempered frequency of a MIDI note.

    f(n) = reference * 2^((n - 69) / 12)
    """
    return reference * 2.0 ** ((midi_number - A4_MIDI) / 12.0)


def frequency_to_midi(freq: float, reference: float = A4_FREQUENCY) -> int:
    """Nearest MIDI note number for a positive frequency."""
    return A4_MIDI + int(round(12 * np.log2(freq / reference)))


def name_to_midi(note_name: str) -> int:
    """Parse a note name such as 'A4', 'C#3' or 'Bb2' into a MIDI number.

    Raises:
        ConfigurationError: If the name is not valid scientific pitch notation
    """
    match = _NOTE_PATTERN.match(note_name.strip()) if note_name else None
    if match is None:
        raise ConfigurationError(f"Invalid note name: {note_name!r}")

    letter, accidental, octave = match.groups()
    semitone = NOTE_NAMES_SHARPS.index(letter.upper())
    if accidental == "#":
        semitone += 1
    elif accidental == "b":
        semitone -= 1
    return (int(octave) + 1) * 12 + semitone


def get_note_name(freq: float, use_flats: bool = False, reference: float = A4_FREQUENCY) -> str:
    """Convert frequency to note name using Scientific Pitch Notation (SPN).

    Args:
        freq: Frequency in Hz
        use_flats: If True, use flat notes (e.g., 'Bb') instead of sharps (e.g., 'A#')
        reference: Frequency of A4 in Hz

    Returns:
        Note name with octave in SPN (e.g., 'A4', 'C#4', 'Bb3'), or '---' if the
        frequency is not a positive finite number

    Note:
        - Middle C is C4 (261.63 Hz)
        - Octave numbers change between B and C (e.g., B3 -> C4)
    """
    if not np.isfinite(freq) or freq <= 0:
        return "---"
    return midi_to_name(frequency_to_midi(freq, reference), use_flats)


def cents_between(freq: float, reference_freq: float) -> float:
    """Signed interval from reference_freq to freq in cents.

    Returns NaN or +/-inf for degenerate inputs instead of raising.
    """
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(1200.0 * np.log2(np.float64(freq) / np.float64(reference_freq)))


def _resolve_midi(note: NoteLike, reference: float) -> int:
    if isinstance(note, str):
        return name_to_midi(note)
    if not np.isfinite(note) or note <= 0:
        raise ConfigurationError(f"Invalid note frequency: {note!r}")
    return frequency_to_midi(float(note), reference)


def build_note_table(
    lowest: NoteLike = "B1",
    highest: NoteLike = "B6",
    reference: float = A4_FREQUENCY,
) -> Tuple[Note, ...]:
    """Build the ordered 12-TET note table spanning lowest..highest inclusive.

    Args:
        lowest: Lowest note, as a name ('B1') or a frequency in Hz
        highest: Highest note, as a name ('B6') or a frequency in Hz
        reference: Frequency of A4 in Hz

    Returns:
        Tuple of Notes sorted by ascending frequency

    Raises:
        ConfigurationError: If the range is empty or a bound is invalid
    """
    if not np.isfinite(reference) or reference <= 0:
        raise ConfigurationError(f"Invalid reference frequency: {reference!r}")

    low_midi = _resolve_midi(lowest, reference)
    high_midi = _resolve_midi(highest, reference)
    if high_midi < low_midi:
        raise ConfigurationError(
            f"Note range is empty: lowest={lowest!r} is above highest={highest!r}"
        )

    notes = tuple(
        Note(name=midi_to_name(midi), frequency=midi_to_frequency(midi, reference))
        for midi in range(low_midi, high_midi + 1)
    )
    logger.debug(
        f"Built note table: {len(notes)} notes "
        f"({notes[0].name} {notes[0].frequency:.2f}Hz - {notes[-1].name} {notes[-1].frequency:.2f}Hz)"
    )
    return notes


# Default guitar/bass range used by the tuner: B1 (61.74 Hz) to B6 (1975.53 Hz)
DEFAULT_NOTES: Tuple[Note, ...] = build_note_table()
