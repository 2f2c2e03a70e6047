"""
Helper functions for formatting API data into human-readable strings.
"""

from typing import Any


def format_size(bytes_size: float) -> str:
    """Formats bytes into a human-readable size string (e.g., '145.3 MB')."""
    if bytes_size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    while bytes_size >= 1024 and i < len(units) - 1:
        bytes_size /= 1024
        i += 1
    return f"{bytes_size:.1f} {units[i]}"


def format_duration(seconds: float) -> str:
    """Formats a track length in seconds as 'm:ss' (or 'h:mm:ss')."""
    s = max(0, int(seconds))
    hours, remainder = divmod(s, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def get_track_title(track_meta: dict[str, Any]) -> str:
    """Constructs a full title including its version, if available."""
    title = track_meta.get("title") or track_meta.get("name") or "Unknown Title"
    if (version := track_meta.get("version")) and version.lower() not in title.lower():
        title = f"{title} ({version})"
    return title


def get_artist_name(item: dict[str, Any]) -> str:
    """
    Finds the artist credited on a search result of any kind (album, track,
    artist or playlist).
    """
    for key in ("performer", "artist", "owner"):
        if (person := item.get(key)) and (name := person.get("name")):
            return name
    if item.get("albums_count") is not None and (name := item.get("name")):
        return name
    return "Unknown Artist"


def mask_secret(secret: str, visible: int = 8) -> str:
    """Shows only the first few characters of a secret."""
    if len(secret) <= visible:
        return "*" * len(secret)
    return secret[:visible] + "*" * (len(secret) - visible)
