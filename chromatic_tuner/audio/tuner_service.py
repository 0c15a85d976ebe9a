"""Tuner service that integrates audio input and asynchronous pitch tracking."""

from __future__ import annotations
import time
from typing import Callable, Optional

import numpy as np

from ..logger import get_logger
from ..note_types import Result
from ..core.events import TunerEvents
from ..core.interfaces import IAudioInput, IPitchTracker
from .pitch_tracker import AsyncPitchTracker

logger = get_logger(__name__)


class TunerService:
    """Service that integrates audio input and pitch tracking.

    This class acts as a facade for the audio input and tracker components,
    providing a simple interface for clients to use.
    """

    def __init__(
        self,
        audio_input: IAudioInput,
        tracker: IPitchTracker,
        events: Optional[TunerEvents] = None,
    ) -> None:
        """Initialize the tuner service.

        Args:
            audio_input: Source of audio blocks
            tracker: Tracker receiving the blocks
            events: Event hub for result and note-change listeners
        """
        self._audio_input = audio_input
        self._tracker = tracker
        self._events = events or TunerEvents()
        self._running = False
        self._start_time = 0.0

        if isinstance(tracker, AsyncPitchTracker):
            tracker.add_listener(self._events.emit_result)

    @property
    def tracker(self) -> IPitchTracker:
        return self._tracker

    @property
    def audio_input(self) -> IAudioInput:
        return self._audio_input

    def on_result(self, callback: Callable[[Result], None]) -> None:
        """Register a callback for every published result (called on the worker thread)."""
        self._events.on_result(callback)

    def on_note_changed(self, callback: Callable[[Result], None]) -> None:
        """Register a callback for note changes (called on the worker thread)."""
        self._events.on_note_changed(callback)

    def start(self) -> bool:
        """Start the tracker and the audio input.

        A service is single-use: once stopped, its tracker has been shut down
        and start() returns False.

        Returns:
            True if the audio input started
        """
        if self._running:
            logger.warning("Tuner already running")
            return True

        if isinstance(self._tracker, AsyncPitchTracker) and not self._tracker.is_running():
            try:
                self._tracker.start()
            except RuntimeError as e:
                logger.error(f"Cannot start tuner: {e}")
                return False

        if not self._audio_input.start(self._process_audio):
            logger.error("Audio input failed to start")
            self._tracker.shutdown()
            return False

        self._running = True
        self._start_time = time.time()
        logger.info("Tuner started")
        return True

    def stop(self) -> None:
        """Stop the audio input, then the tracker."""
        if not self._running:
            return

        self._audio_input.stop()
        self._tracker.shutdown()
        self._running = False
        logger.info(f"Tuner stopped after {time.time() - self._start_time:.1f}s")

    def _process_audio(self, audio_data: np.ndarray, sample_rate: int) -> None:
        """Forward an audio block to the tracker; runs on the audio thread."""
        self._tracker.feed(audio_data, sample_rate)

    def latest(self) -> Result:
        """Most recent analysis result."""
        return self._tracker.latest()

    def is_running(self) -> bool:
        return self._running
