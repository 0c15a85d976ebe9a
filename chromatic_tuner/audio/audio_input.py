"""Audio input handling for pitch tracking."""

from __future__ import annotations
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, ClassVar, Optional

import numpy as np

from ..logger import get_logger
from ..core.interfaces import IAudioInput

logger = get_logger(__name__)

AudioCallback = Callable[[np.ndarray, int], None]


class AudioInputHandler(IAudioInput, ABC):
    """Abstract base class for audio input handlers."""

    _running: bool = False
    _sample_rate: int = 44100

    def is_running(self) -> bool:
        """Check if audio input is running.

        Returns:
            True if audio input is running, False otherwise
        """
        return self._running

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @abstractmethod
    def start(self, callback: AudioCallback) -> bool:
        """Start capturing audio and pass it to the callback.

        Args:
            callback: Function to call with a mono float32 block and the sample rate

        Returns:
            True if started successfully, False otherwise
        """
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop capturing audio."""
        pass


class SyntheticToneInput(AudioInputHandler):
    """Generates a sine tone on a background thread.

    Stands in for a microphone when no audio hardware is available.
    """

    SAMPLE_RATE: ClassVar[int] = 44100  # Hz
    FRAMES_PER_BUFFER: ClassVar[int] = 1024

    def __init__(
        self,
        frequency: float = 440.0,
        sample_rate: Optional[int] = None,
        frames_per_buffer: Optional[int] = None,
        amplitude: float = 0.5,
        realtime: bool = True,
        max_blocks: Optional[int] = None,
    ) -> None:
        """Initialize the tone generator.

        Args:
            frequency: Tone frequency in Hz (0 produces silence)
            sample_rate: Sample rate in Hz, or None for default (44100)
            frames_per_buffer: Block size in frames, or None for default (1024)
            amplitude: Peak amplitude of the sine
            realtime: If True, pace blocks at the rate a sound card would deliver them
            max_blocks: Stop after this many blocks, or None to run until stop()
        """
        self.frequency = frequency
        self._sample_rate = sample_rate or self.SAMPLE_RATE
        self._frames_per_buffer = frames_per_buffer or self.FRAMES_PER_BUFFER
        self._amplitude = amplitude
        self._realtime = realtime
        self._max_blocks = max_blocks

        self._callback: Optional[AudioCallback] = None
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self.blocks_generated = 0

    def start(self, callback: AudioCallback) -> bool:
        if self._running:
            logger.warning("Audio input already running")
            return False

        self._callback = callback
        self._running = True
        self._thread = threading.Thread(target=self._stream_data, name="tone-input", daemon=True)
        self._thread.start()
        logger.info(
            f"Synthetic tone started: {self.frequency:.2f}Hz at {self._sample_rate}Hz"
        )
        return True

    def stop(self) -> None:
        if not self._running and self._thread is None:
            return

        self._running = False
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join()
        self._thread = None
        logger.info("Synthetic tone stopped")

    def _stream_data(self) -> None:
        block = np.empty(self._frames_per_buffer, dtype=np.float32)
        phase_step = 2.0 * np.pi * self.frequency / self._sample_rate
        offsets = np.arange(self._frames_per_buffer)
        position = 0
        block_seconds = self._frames_per_buffer / self._sample_rate

        while self._running:
            block[:] = self._amplitude * np.sin(phase_step * (position + offsets))
            position += self._frames_per_buffer

            if self._callback:
                self._callback(block, self._sample_rate)
            self.blocks_generated += 1

            if self._max_blocks is not None and self.blocks_generated >= self._max_blocks:
                break

            # Simulate real-time capture speed
            if self._realtime:
                time.sleep(block_seconds)

        self._running = False
