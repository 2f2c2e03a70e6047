"""
Dataclass for reporting audio cache statistics.
"""

from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class CacheStats:
    """A point-in-time snapshot of the audio cache, suitable for monitoring."""

    cached_tracks: int = 0
    current_size_bytes: int = 0
    max_size_bytes: int = 0
    fetching_count: int = 0

    @property
    def usage_ratio(self) -> float:
        if not self.max_size_bytes:
            return 0.0
        return self.current_size_bytes / self.max_size_bytes

    def to_dict(self) -> dict[str, int]:
        return asdict(self)
