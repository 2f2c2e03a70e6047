"""
Data Models Layer.

This package contains the Pydantic models and dataclasses that define the
core data structures used throughout the client, such as configuration,
authentication state, stream locations and cache statistics.
"""

from .auth import BundleTokens, UserSession
from .config import ClientConfig
from .quality import Quality
from .stats import CacheStats
from .stream import StreamRestriction, StreamUrl

__all__ = [
    "BundleTokens",
    "CacheStats",
    "ClientConfig",
    "Quality",
    "StreamRestriction",
    "StreamUrl",
    "UserSession",
]
