"""Centralized logging configuration for Chromatic Tuner.

This module provides a consistent way to configure logging across the application.
"""

import logging
import sys
from typing import Optional, Dict

# Log levels for different modules
MODULE_LOG_LEVELS = {
    # Core modules
    "chromatic_tuner": logging.INFO,
    "chromatic_tuner.core": logging.INFO,
    "chromatic_tuner.core.config": logging.INFO,
    "chromatic_tuner.core.factory": logging.INFO,
    "chromatic_tuner.core.events": logging.INFO,
    # Analysis pipeline
    "chromatic_tuner.audio": logging.INFO,
    "chromatic_tuner.audio.pitch_estimator": logging.INFO,  # Set to DEBUG for per-analysis details
    "chromatic_tuner.audio.pitch_tracker": logging.INFO,
    "chromatic_tuner.audio.audio_input": logging.INFO,
    "chromatic_tuner.audio.sounddevice_input": logging.INFO,
    "chromatic_tuner.audio.tuner_service": logging.INFO,
    "chromatic_tuner.cli": logging.INFO,
    "chromatic_tuner.cli.main": logging.INFO,
    "chromatic_tuner.note_utils": logging.INFO,
    "chromatic_tuner.logger": logging.WARNING,  # Logger module itself should be quiet
    # Libraries/third-party
    "sounddevice": logging.ERROR,
    # Root logger
    "": logging.ERROR,
}

# Shared console handler
_console_handler: Optional[logging.Handler] = None

# Cache for loggers to avoid duplicate setup
_logger_cache: Dict[str, logging.Logger] = {}


def setup_logging(level: Optional[str] = None) -> None:
    """Set up logging configuration for the application.

    Args:
        level: If provided, override all 'chromatic_tuner' log levels with this level (e.g., "DEBUG").
    """
    global _console_handler

    # Create a single, shared console handler if it doesn't exist
    if _console_handler is None:
        _console_handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        _console_handler.setFormatter(formatter)

    log_levels = MODULE_LOG_LEVELS.copy()
    if level:
        numeric_level = logging.getLevelName(level.upper())
        if isinstance(numeric_level, int):
            for module_name in log_levels:
                if module_name.startswith("chromatic_tuner"):
                    log_levels[module_name] = numeric_level
        else:
            logging.getLogger(__name__).error(f"Invalid log level: {level}")

    # Only the top-level loggers get the handler; children propagate to them
    for module_name, module_level in log_levels.items():
        logger = logging.getLogger(module_name if module_name else "")
        logger.setLevel(module_level)

        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
        if module_name in ("chromatic_tuner", "sounddevice", ""):
            logger.addHandler(_console_handler)
            logger.propagate = False
        else:
            logger.propagate = True

    logging.getLogger("chromatic_tuner").info("Logging configuration complete")


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name.

    The logger name must be explicitly listed in MODULE_LOG_LEVELS.

    Args:
        name: The full module name (e.g., 'chromatic_tuner.audio.pitch_tracker')

    Returns:
        A configured logger instance

    Raises:
        ValueError: If the module name is not in MODULE_LOG_LEVELS
    """
    if name in _logger_cache:
        return _logger_cache[name]

    if name not in MODULE_LOG_LEVELS:
        raise ValueError(
            f"Logger '{name}' not found in MODULE_LOG_LEVELS. "
            "Please add it to the configuration."
        )

    logger = logging.getLogger(name)
    logger.setLevel(MODULE_LOG_LEVELS[name])
    _logger_cache[name] = logger
    return logger
