"""
Background prefetching of upcoming tracks into the audio cache.
"""

import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass
from typing import Optional

import aiohttp

from qbz.exceptions import DownloadError
from qbz.storage.audio_cache import AudioCache

from .downloader import AudioDownloader

log = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 10


@dataclass(frozen=True)
class PrefetchRequest:
    """Request to prefetch a track."""

    track_id: int
    url: str


class Prefetcher:
    """
    A single worker that drains a bounded queue of prefetch requests and fills
    the audio cache without blocking callers.
    """

    def __init__(
        self,
        cache: AudioCache,
        downloader: Optional[AudioDownloader] = None,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ):
        """
        Initializes the prefetcher.

        Args:
            cache: The cache completed downloads are inserted into.
            downloader: The HTTP downloader; one with default timeouts is
                created when omitted.
            queue_size: Maximum number of queued requests.
        """
        self.cache = cache
        self._downloader = downloader or AudioDownloader()
        self._queue: asyncio.Queue[Optional[PrefetchRequest]] = asyncio.Queue(
            maxsize=queue_size
        )
        self._worker: Optional[asyncio.Task] = None
        self._pending: set[asyncio.Task] = set()
        self._closed = False

    async def __aenter__(self) -> "Prefetcher":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self) -> None:
        """Starts the background worker if it is not already running."""
        if self._closed:
            raise RuntimeError("Prefetcher has been closed.")
        if not self.is_running:
            self._worker = asyncio.create_task(self._run())
            log.debug("Started prefetch worker.")

    def prefetch(self, track_id: int, url: str) -> None:
        """
        Requests a background download of a track. Returns immediately; when the
        queue is full only the scheduled enqueue waits.
        """
        if self._closed:
            log.debug(f"Prefetcher closed, ignoring request for track {track_id}")
            return
        self.start()
        task = asyncio.create_task(self._queue.put(PrefetchRequest(track_id, url)))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def fetch(self, track_id: int, url: str) -> bytes:
        """
        Returns a track's audio, from the cache when possible, otherwise by
        downloading it now and caching the result. Errors propagate.
        """
        cached = self.cache.get(track_id)
        if cached is not None:
            return cached.data

        owns_fetch = self.cache.reserve(track_id)
        try:
            data = await self._downloader.download(url)
        finally:
            if owns_fetch:
                self.cache.unmark_fetching(track_id)
        self.cache.insert(track_id, data)
        return data

    async def _run(self) -> None:
        while True:
            request = await self._queue.get()
            try:
                if request is None:
                    break
                await self._process(request)
            except Exception as e:
                log.warning(f"Error in prefetch worker: {e}", exc_info=True)
            finally:
                self._queue.task_done()
        log.debug("Prefetch worker stopped.")

    async def _process(self, request: PrefetchRequest) -> None:
        if not self.cache.reserve(request.track_id):
            log.debug(f"Track {request.track_id} already cached or being fetched")
            return

        log.info(f"Prefetching track {request.track_id}...")
        try:
            data = await self._downloader.download(request.url)
        except (aiohttp.ClientError, asyncio.TimeoutError, DownloadError) as e:
            log.warning(f"Prefetch failed for track {request.track_id}: {e}")
        else:
            self.cache.insert(request.track_id, data)
            log.info(f"Prefetch complete for track {request.track_id}")
        finally:
            self.cache.unmark_fetching(request.track_id)

    async def join(self) -> None:
        """Waits until every request enqueued so far has been processed."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
        await self._queue.join()

    async def close(self) -> None:
        """Drains outstanding requests, stops the worker and closes the downloader."""
        if self._closed:
            return
        self._closed = True

        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
        if self.is_running:
            await self._queue.put(None)
            with suppress(asyncio.CancelledError):
                await self._worker
        await self._downloader.close()
        log.debug("Prefetcher closed.")
