"""
Media Layer.

This package is responsible for downloading audio payloads and prefetching
upcoming tracks into the in-memory audio cache.
"""

from .downloader import AudioDownloader
from .prefetcher import PrefetchRequest, Prefetcher

__all__ = ["AudioDownloader", "PrefetchRequest", "Prefetcher"]
