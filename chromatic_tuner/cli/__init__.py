"""Command-line interface for Chromatic Tuner."""

from .main import main

__all__ = ["main"]
