"""
Storage Layer.

This package holds the in-memory audio cache and the INI configuration file
handling.
"""

from .audio_cache import AudioCache, CachedTrack
from .config_manager import ConfigManager

__all__ = ["AudioCache", "CachedTrack", "ConfigManager"]
