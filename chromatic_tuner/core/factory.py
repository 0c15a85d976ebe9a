"""Factory for creating Chromatic Tuner components."""

from typing import Optional, Dict, Type

from ..logger import get_logger
from ..note_utils import build_note_table
from ..audio.audio_input import SyntheticToneInput
from ..audio.pitch_estimator import PitchEstimator
from ..audio.pitch_tracker import AsyncPitchTracker
from ..audio.tuner_service import TunerService
from .config import ConfigManager
from .interfaces import IAudioInput, IPitchEstimator

logger = get_logger(__name__)


class ComponentFactory:
    """Factory for creating Chromatic Tuner components."""

    def __init__(self, config_manager: Optional[ConfigManager] = None):
        """Initialize the component factory.

        Args:
            config_manager: Configuration manager, or None to create a default one
        """
        self.config_manager = config_manager or ConfigManager()

        self.pitch_estimator_classes: Dict[str, Type[IPitchEstimator]] = {
            "default": PitchEstimator,
        }

        # sounddevice needs PortAudio, so the live input is resolved on first use
        self.audio_input_classes: Dict[str, Optional[Type[IAudioInput]]] = {
            "default": None,
            "synthetic": SyntheticToneInput,
        }

    def _audio_input_class(self, implementation: str) -> Type[IAudioInput]:
        cls = self.audio_input_classes[implementation]
        if cls is None:
            from ..audio.sounddevice_input import SoundDeviceInput

            cls = SoundDeviceInput
            self.audio_input_classes[implementation] = cls
        return cls

    def create_pitch_estimator(
        self, implementation: str = "default", **kwargs
    ) -> IPitchEstimator:
        """Create a pitch estimator.

        Args:
            implementation: Name of the implementation to use
            **kwargs: Overrides for the 'pitch_estimator' configuration

        Returns:
            Pitch estimator instance

        Raises:
            ValueError: If the implementation is not registered
            ConfigurationError: If the configured note range or window is invalid
        """
        if implementation not in self.pitch_estimator_classes:
            raise ValueError(f"Unknown pitch estimator implementation: {implementation}")

        config = self.config_manager.get_config("pitch_estimator")
        config.update(kwargs)

        notes = build_note_table(
            config.pop("lowest_note"),
            config.pop("highest_note"),
            config.pop("reference_frequency"),
        )

        cls = self.pitch_estimator_classes[implementation]
        instance = cls(notes=notes, **config)

        logger.info(f"Created pitch estimator: {implementation}")
        return instance

    def create_tracker(
        self, estimator: Optional[IPitchEstimator] = None, **kwargs
    ) -> AsyncPitchTracker:
        """Create an asynchronous pitch tracker.

        Args:
            estimator: Estimator to wrap, or None to create one from configuration
            **kwargs: Overrides for the 'tracker' configuration

        Returns:
            Pitch tracker instance (not started)
        """
        config = self.config_manager.get_config("tracker")
        config.update(kwargs)

        instance = AsyncPitchTracker(estimator or self.create_pitch_estimator(), **config)
        logger.info("Created pitch tracker")
        return instance

    def create_audio_input(
        self, implementation: str = "default", **kwargs
    ) -> IAudioInput:
        """Create an audio input.

        Args:
            implementation: 'default' for the live input device, 'synthetic' for a tone
            **kwargs: Additional parameters to pass to the constructor

        Returns:
            Audio input instance

        Raises:
            ValueError: If the implementation is not registered
        """
        if implementation not in self.audio_input_classes:
            raise ValueError(f"Unknown audio input implementation: {implementation}")

        config = self.config_manager.get_config("audio_input")
        if implementation == "synthetic":
            config.pop("channels", None)
        config.update(kwargs)

        cls = self._audio_input_class(implementation)
        instance = cls(**config)

        logger.info(f"Created audio input: {implementation}")
        return instance

    def create_tuner_service(self, **kwargs) -> TunerService:
        """Create a tuner service.

        Args:
            **kwargs: 'audio_input', 'tracker' or 'events' to use instead of defaults

        Returns:
            Tuner service instance
        """
        if "audio_input" not in kwargs:
            kwargs["audio_input"] = self.create_audio_input()

        if "tracker" not in kwargs:
            kwargs["tracker"] = self.create_tracker()

        instance = TunerService(**kwargs)

        logger.info("Created tuner service")
        return instance
