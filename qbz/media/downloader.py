"""
Downloads complete audio payloads into memory over HTTP.
"""

import logging
from typing import Optional

import aiohttp

from qbz.exceptions import DownloadError

log = logging.getLogger(__name__)

_USER_AGENT = "Mozilla/5.0"


class AudioDownloader:
    """Fetches whole audio files with a connect timeout and an overall timeout."""

    def __init__(
        self,
        total_timeout: float = 120.0,
        connect_timeout: float = 10.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.total_timeout = total_timeout
        self.connect_timeout = connect_timeout
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=4,
                keepalive_timeout=30,
                enable_cleanup_closed=True,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                headers={"User-Agent": _USER_AGENT},
                timeout=aiohttp.ClientTimeout(
                    total=self.total_timeout, connect=self.connect_timeout
                ),
            )
            self._owns_session = True
            log.debug(
                f"Created download session (total={self.total_timeout}s, "
                f"connect={self.connect_timeout}s)"
            )
        return self._session

    async def download(self, url: str) -> bytes:
        """
        Downloads the full body at ``url``.

        Raises:
            DownloadError: On a non-2xx response.
            aiohttp.ClientError, asyncio.TimeoutError: On transport failures.
        """
        session = await self._get_session()
        async with session.get(url, allow_redirects=True) as response:
            if not 200 <= response.status < 300:
                raise DownloadError("Failed to fetch audio", status=response.status)
            data = await response.read()
        log.debug(f"Downloaded {len(data)} bytes")
        return data

    async def close(self) -> None:
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
            log.debug("Download session closed.")
