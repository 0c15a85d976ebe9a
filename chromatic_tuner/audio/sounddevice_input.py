"""Live audio capture from the default input device."""

from __future__ import annotations
import numpy as np
import sounddevice as sd
from typing import ClassVar, Optional

from ..logger import get_logger
from .audio_input import AudioCallback, AudioInputHandler

logger = get_logger(__name__)


class SoundDeviceInput(AudioInputHandler):
    """Audio input handler using the sounddevice library."""

    # Audio configuration
    SAMPLE_RATE: ClassVar[int] = 44100  # Hz
    FRAMES_PER_BUFFER: ClassVar[int] = 1024
    CHANNELS: ClassVar[int] = 1  # Mono audio

    # Rates tried, in order, after the requested one
    FALLBACK_SAMPLE_RATES: ClassVar[list] = [48000, 44100, 22050, 16000, 8000]

    def __init__(
        self,
        sample_rate: Optional[int] = None,
        frames_per_buffer: Optional[int] = None,
        channels: Optional[int] = None,
    ) -> None:
        """Initialize the audio input handler.

        Args:
            sample_rate: Sample rate in Hz, or None for default (44100)
            frames_per_buffer: Buffer size in frames, or None for default (1024)
            channels: Number of audio channels, or None for default (1)
        """
        self._sample_rate = sample_rate or self.SAMPLE_RATE
        self._frames_per_buffer = frames_per_buffer or self.FRAMES_PER_BUFFER
        self._channels = channels or self.CHANNELS

        self._stream: Optional[sd.InputStream] = None
        self._callback: Optional[AudioCallback] = None
        self._running = False

    def _audio_callback(
        self,
        indata: np.ndarray,
        _frames: int,
        _time_info,
        status: sd.CallbackFlags,
    ) -> None:
        """Callback for processing audio data from the input stream.

        Note:
            This is called from the audio thread, so it should be fast
            and avoid any blocking operations to prevent audio glitches.
        """
        if status:
            logger.warning(f"Audio callback status: {status}")

        if self._callback:
            # Extract mono audio data (take first channel if multi-channel)
            audio_data = indata[:, 0] if indata.ndim > 1 else indata
            self._callback(audio_data, self._sample_rate)

    def start(self, callback: AudioCallback) -> bool:
        """Start capturing audio and pass it to the callback.

        Args:
            callback: Function to call with a mono block and the sample rate

        Returns:
            True if the stream was opened at any supported sample rate
        """
        if self._running:
            logger.warning("Audio input already running")
            return False

        self._callback = callback

        sample_rates_to_try = [r for r in self.FALLBACK_SAMPLE_RATES if r != self._sample_rate]
        sample_rates_to_try.insert(0, self._sample_rate)

        for rate in sample_rates_to_try:
            try:
                logger.info(f"Trying to start audio input with sample rate: {rate} Hz")
                self._stream = sd.InputStream(
                    samplerate=rate,
                    blocksize=self._frames_per_buffer,
                    channels=self._channels,
                    dtype="float32",
                    callback=self._audio_callback,
                )
                self._sample_rate = rate
                self._stream.start()
                self._running = True
                logger.info(f"Audio input started with sample rate {rate} Hz")
                return True
            except (sd.PortAudioError, ValueError) as e:
                logger.warning(
                    f"Failed to start audio input with sample rate {rate} Hz: {e}"
                )
                if self._stream:
                    self._stream.close()
                    self._stream = None

        logger.error("Could not start audio input with any sample rate")
        return False

    def stop(self) -> None:
        """Stop capturing audio."""
        if not self._running:
            return

        try:
            if self._stream:
                self._stream.stop()
                self._stream.close()
                self._stream = None
            self._running = False
            logger.info("Audio input stopped")
        except sd.PortAudioError as e:
            logger.error(f"Error stopping audio input: {e}")
