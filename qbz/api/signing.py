"""
Request signing for the protected Qobuz endpoints.

The backend expects a timestamp and an MD5 signature over endpoint-specific
parameters and the active app secret. The scheme has changed before, so the
client takes any object implementing ``RequestSigner``.
"""

import hashlib
import time
from typing import Protocol


def get_timestamp() -> int:
    """Current unix time in seconds, as sent in ``request_ts``."""
    return int(time.time())


class RequestSigner(Protocol):
    """Computes ``request_sig`` values for signed endpoints."""

    def sign_get_file_url(
        self, track_id: int, format_id: int, timestamp: int, secret: str
    ) -> str: ...

    def sign_get_favorites(self, timestamp: int, secret: str) -> str: ...


class Md5RequestSigner:
    """The signature scheme currently honored by the web player backend."""

    def sign_get_file_url(
        self, track_id: int, format_id: int, timestamp: int, secret: str
    ) -> str:
        sig_str = (
            f"trackgetFileUrlformat_id{format_id}intentstreamtrack_id{track_id}"
            f"{timestamp}{secret}"
        )
        return hashlib.md5(sig_str.encode("utf-8")).hexdigest()  # noqa: S324

    def sign_get_favorites(self, timestamp: int, secret: str) -> str:
        sig_str = f"favoritegetUserFavorites{timestamp}{secret}"
        return hashlib.md5(sig_str.encode("utf-8")).hexdigest()  # noqa: S324
