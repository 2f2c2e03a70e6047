"""
In-memory audio cache with LRU eviction bounded by total payload size.

Entries, access order, size counter and the fetching set are each guarded by
their own lock. Operations take the locks they need in the fixed order
entries -> order -> size -> fetching, one operation at a time, so concurrent
callers only get per-operation atomicity.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from threading import Lock
from typing import Optional, Union

from qbz.models.stats import CacheStats

log = logging.getLogger(__name__)

DEFAULT_MAX_SIZE_BYTES = 500 * 1024 * 1024  # 500 MB


@dataclass(frozen=True)
class CachedTrack:
    """Downloaded audio for one track."""

    track_id: int
    data: bytes
    size_bytes: int


class AudioCache:
    """
    Thread-safe, size-bounded audio cache.

    Features:
    - LRU eviction (oldest first) when a new payload does not fit
    - Replacement of existing entries with delta size accounting
    - A "fetching" set for single-flight download deduplication
    """

    def __init__(self, max_size_bytes: int = DEFAULT_MAX_SIZE_BYTES):
        if max_size_bytes <= 0:
            raise ValueError("Cache size must be positive.")
        self.max_size_bytes = max_size_bytes

        self._entries: dict[int, CachedTrack] = {}
        self._entries_lock = Lock()
        # Keys only; oldest at the front, most recently used at the back
        self._order: OrderedDict[int, None] = OrderedDict()
        self._order_lock = Lock()
        self._current_size = 0
        self._size_lock = Lock()
        self._fetching: set[int] = set()
        self._fetching_lock = Lock()

    def __len__(self) -> int:
        with self._entries_lock:
            return len(self._entries)

    def __contains__(self, track_id: int) -> bool:
        return self.contains(track_id)

    @property
    def current_size_bytes(self) -> int:
        with self._size_lock:
            return self._current_size

    def get(self, track_id: int) -> Optional[CachedTrack]:
        """Returns the cached track and marks it most recently used."""
        with self._entries_lock:
            track = self._entries.get(track_id)
            if track is None:
                log.debug(f"Cache miss for track {track_id}")
                return None
            with self._order_lock:
                self._touch(track_id)
        log.debug(f"Cache hit for track {track_id}")
        return track

    def contains(self, track_id: int) -> bool:
        """Membership check that does not affect eviction order."""
        with self._entries_lock:
            return track_id in self._entries

    def insert(self, track_id: int, data: Union[bytes, bytearray, memoryview]) -> None:
        """
        Caches a payload, evicting least recently used tracks to make room.
        Payloads larger than the whole cache are rejected.
        """
        data = bytes(data)
        size = len(data)

        if size > self.max_size_bytes:
            log.warning(
                f"Track {track_id} ({size} bytes) too large for cache "
                f"(max {self.max_size_bytes} bytes)"
            )
            return

        self.evict_to_fit(size)

        with self._entries_lock:
            previous = self._entries.get(track_id)
            self._entries[track_id] = CachedTrack(
                track_id=track_id, data=data, size_bytes=size
            )
            with self._order_lock:
                self._touch(track_id)
            with self._size_lock:
                delta = size - (previous.size_bytes if previous else 0)
                self._current_size = max(0, self._current_size + delta)
                current = self._current_size

        log.info(
            f"Cached track {track_id} ({size} bytes). "
            f"Cache size: {current}/{self.max_size_bytes} bytes"
        )

    def evict_to_fit(self, new_size: int) -> None:
        """Evicts oldest entries until ``new_size`` more bytes would fit."""
        with self._entries_lock, self._order_lock, self._size_lock:
            while self._current_size + new_size > self.max_size_bytes and self._order:
                oldest_id, _ = self._order.popitem(last=False)
                track = self._entries.pop(oldest_id, None)
                if track is not None:
                    self._current_size = max(0, self._current_size - track.size_bytes)
                    log.debug(
                        f"Evicted track {oldest_id} ({track.size_bytes} bytes) from cache"
                    )

    def _touch(self, track_id: int) -> None:
        # Caller holds _order_lock
        self._order[track_id] = None
        self._order.move_to_end(track_id)

    def is_fetching(self, track_id: int) -> bool:
        with self._fetching_lock:
            return track_id in self._fetching

    def mark_fetching(self, track_id: int) -> None:
        with self._fetching_lock:
            self._fetching.add(track_id)

    def unmark_fetching(self, track_id: int) -> None:
        with self._fetching_lock:
            self._fetching.discard(track_id)

    def reserve(self, track_id: int) -> bool:
        """
        Atomically claims the right to fetch a track.

        Returns True, with the track marked as fetching, only if it is neither
        cached nor already being fetched. The caller must ``unmark_fetching``
        once done.
        """
        with self._entries_lock, self._fetching_lock:
            if track_id in self._entries or track_id in self._fetching:
                return False
            self._fetching.add(track_id)
            return True

    def clear(self) -> None:
        """Removes all cached data and forgets in-flight fetches."""
        with self._entries_lock:
            self._entries.clear()
        with self._order_lock:
            self._order.clear()
        with self._size_lock:
            self._current_size = 0
        with self._fetching_lock:
            self._fetching.clear()
        log.info("Cache cleared")

    def stats(self) -> CacheStats:
        with self._entries_lock:
            cached_tracks = len(self._entries)
        with self._size_lock:
            current_size = self._current_size
        with self._fetching_lock:
            fetching_count = len(self._fetching)
        return CacheStats(
            cached_tracks=cached_tracks,
            current_size_bytes=current_size,
            max_size_bytes=self.max_size_bytes,
            fetching_count=fetching_count,
        )
