# Copyright (c) 2025 Luc Vincent. All Rights Reserved.
"""
Background album refresher.
Keeps a ShuffleCache loaded: retries the first load until it works, then
reloads the album on a fixed interval.
"""

import logging
import threading
from typing import Optional

from .shuffle_cache import RefreshResult, ShuffleCache

logger = logging.getLogger(__name__)


class AlbumRefresher:
    """Drives ShuffleCache.refresh() from a timer thread."""

    def __init__(self, cache: ShuffleCache,
                 interval_minutes: float = 5,
                 initial_retry_seconds: float = 5,
                 shutdown_event: Optional[threading.Event] = None):
        """
        Initialize the refresher.

        Args:
            cache: Cache to keep loaded.
            interval_minutes: Time between periodic refreshes.
            initial_retry_seconds: Delay between attempts of the first load.
            shutdown_event: Event that stops all waiting when set.
        """
        self.cache = cache
        self.interval = interval_minutes * 60
        self.initial_retry = initial_retry_seconds
        self._shutdown_event = shutdown_event or threading.Event()
        self._refresh_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    def refresh_now(self) -> Optional[RefreshResult]:
        """
        Refresh immediately unless a refresh is already running.

        Returns:
            RefreshResult, or None if skipped because one was in progress.
        """
        if not self._refresh_lock.acquire(blocking=False):
            logger.info("Album refresh already in progress, skipping")
            return None
        try:
            return self.cache.refresh()
        finally:
            self._refresh_lock.release()

    def load_initial(self) -> bool:
        """
        Block until the album has loaded once.

        Returns:
            True once loaded, False if shutdown was requested first.
        """
        attempt = 0
        while not self._shutdown_event.is_set():
            attempt += 1
            result = self.refresh_now()
            if result is not None and result.ok:
                return True
            logger.warning(
                f"Initial album load failed (attempt {attempt}), "
                f"retrying in {self.initial_retry:g}s"
            )
            if self._shutdown_event.wait(self.initial_retry):
                break
        return False

    def _loop(self) -> None:
        while not self._shutdown_event.wait(self.interval):
            logger.info("Starting scheduled album refresh...")
            try:
                result = self.refresh_now()
            except Exception as e:
                logger.error(f"Album refresh error: {e}")
                continue
            if result is not None and not result.ok:
                logger.warning(f"Keeping previous album contents: {result.reason}")

    def start(self) -> None:
        """Start the periodic refresh thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self._loop, name="album-refresh", daemon=True)
        self._thread.start()
        logger.info(f"Album refresh thread started (interval: {self.interval / 60:g} min)")

    def stop(self, timeout: Optional[float] = None) -> None:
        self._shutdown_event.set()
        if self._thread is not None:
            self._thread.join(timeout)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
