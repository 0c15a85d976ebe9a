"""Configuration management for Chromatic Tuner components."""

from typing import Dict, Any, Optional
import copy
import json
import os
from pathlib import Path

from ..logger import get_logger

logger = get_logger(__name__)

# Default configurations
DEFAULT_CONFIGS: Dict[str, Dict[str, Any]] = {
    "pitch_estimator": {
        "capacity": 96000,
        "sample_rate": 44100,
        "lowest_note": "B1",
        "highest_note": "B6",
        "reference_frequency": 440.0,
    },
    "audio_input": {
        "sample_rate": 44100,
        "frames_per_buffer": 1024,
        "channels": 1,
    },
    "tracker": {
        "join_timeout": 5.0,
    },
}


class ConfigManager:
    """Configuration manager for Chromatic Tuner components."""

    def __init__(self, config_dir: Optional[str] = None, persist: bool = True):
        """Initialize the configuration manager.

        Args:
            config_dir: Directory to store configuration files, or None to use default
            persist: If False, nothing is read from or written to disk
        """
        if config_dir is None:
            # Use ~/.config/chromatic_tuner by default
            home = os.path.expanduser("~")
            config_dir = os.path.join(home, ".config", "chromatic_tuner")

        self.config_dir = Path(config_dir)
        self.persist = persist
        if self.persist:
            self.config_dir.mkdir(parents=True, exist_ok=True)

        self.default_configs = copy.deepcopy(DEFAULT_CONFIGS)

        # Load existing configurations or create default ones
        self.configs = {}
        for config_name, default_config in self.default_configs.items():
            self.configs[config_name] = self.load_config(config_name, default_config)

    def load_config(self, name: str, default_config: Dict[str, Any]) -> Dict[str, Any]:
        """Load configuration from file or create default.

        Args:
            name: Configuration name
            default_config: Default configuration to use if file doesn't exist

        Returns:
            Configuration dictionary
        """
        if not self.persist:
            return default_config.copy()

        config_file = self.config_dir / f"{name}.json"

        if config_file.exists():
            try:
                with open(config_file, "r") as f:
                    config = json.load(f)
                if not isinstance(config, dict):
                    raise TypeError(f"expected a JSON object, got {type(config).__name__}")
                logger.info(f"Loaded configuration from {config_file}")

                # Ensure all default keys are present
                for key, value in default_config.items():
                    if key not in config:
                        config[key] = value

                return config
            except (OSError, ValueError, TypeError) as e:
                logger.error(f"Error loading configuration from {config_file}: {e}")
                return default_config.copy()
        else:
            config = default_config.copy()
            self.save_config(name, config)
            return config

    def save_config(self, name: str, config: Dict[str, Any]) -> bool:
        """Save configuration to file.

        Args:
            name: Configuration name
            config: Configuration dictionary

        Returns:
            True if saved successfully, False otherwise
        """
        if not self.persist:
            return True

        config_file = self.config_dir / f"{name}.json"

        try:
            with open(config_file, "w") as f:
                json.dump(config, f, indent=2)
            logger.info(f"Saved configuration to {config_file}")
            return True
        except (OSError, TypeError) as e:
            logger.error(f"Error saving configuration to {config_file}: {e}")
            return False

    def get_config(self, name: str) -> Dict[str, Any]:
        """Get configuration by name.

        Args:
            name: Configuration name

        Returns:
            Copy of the configuration dictionary (empty if unknown)
        """
        return self.configs.get(name, {}).copy()

    def update_config(self, name: str, updates: Dict[str, Any]) -> bool:
        """Update configuration and save to file.

        Args:
            name: Configuration name
            updates: Dictionary of updates to apply

        Returns:
            True if updated and saved successfully, False otherwise
        """
        if name not in self.configs:
            logger.error(f"Unknown configuration: {name}")
            return False

        self.configs[name].update(updates)
        return self.save_config(name, self.configs[name])

    def reset_config(self, name: str) -> bool:
        """Reset configuration to default.

        Args:
            name: Configuration name

        Returns:
            True if reset successfully, False otherwise
        """
        if name not in self.default_configs:
            logger.error(f"Unknown configuration: {name}")
            return False

        self.configs[name] = self.default_configs[name].copy()
        return self.save_config(name, self.configs[name])
