# Copyright (c) 2025 Luc Vincent. All Rights Reserved.
"""
Random sampling caches for libraries too large to enumerate.

Each call to next() hands out one photo that hasn't been shown in the
current cycle. Candidates are drawn one at a time from the Immich server
and the ids already shown are remembered until the cycle is over.
"""

import logging
import random
import threading
from collections import deque
from datetime import datetime
from typing import Any, Deque, Dict, Optional, Set

from .immich_client import ImmichClient
from .models import PhotoCache, PhotoRecord

logger = logging.getLogger(__name__)


class SamplingCache(PhotoCache):
    """
    Serves photos from random pages of the Immich metadata search.

    Holds a small prefetch queue and the set of ids shown in the current
    cycle. The library size is unknown, so a cycle ends once
    ``pages_in_library * records_per_page`` photos have been shown.

    Records leave this cache with an unresolved location; the web layer
    looks it up once per dispatched record.
    """

    name = "random_page"
    MAX_ATTEMPTS = 10

    def __init__(self, client: ImmichClient, pages_in_library: int,
                 records_per_page: int = 10):
        """
        Initialize the cache.

        Args:
            client: Immich API client.
            pages_in_library: Highest page number to sample from.
            records_per_page: Assumed photos per page, for the cycle size.
        """
        if pages_in_library < 1:
            raise ValueError("pages_in_library must be at least 1")

        self.client = client
        self.pages_in_library = pages_in_library
        self.records_per_page = records_per_page

        # Queue and shown set are only touched while holding the lock
        self._lock = threading.Lock()
        self._queue: Deque[PhotoRecord] = deque()
        self._shown: Set[str] = set()

        self._cycles_completed = 0
        self._dispatched = 0
        self._last_dispatch: Optional[str] = None

    @property
    def cycle_size(self) -> int:
        return self.pages_in_library * self.records_per_page

    def _fetch_candidate(self) -> Optional[PhotoRecord]:
        """Fetch one candidate from a random page, or None."""
        page = random.randint(1, self.pages_in_library)
        result = self.client.search_page(page, 1)
        if not result.records:
            logger.debug(f"Page {page} yielded no usable photo")
            return None
        return result.records[0]

    def _replenish(self) -> None:
        """Try to add one unseen photo to the queue."""
        for attempt in range(1, self.MAX_ATTEMPTS + 1):
            candidate = self._fetch_candidate()
            if candidate is None:
                continue
            if candidate.id in self._shown:
                logger.debug(f"Attempt {attempt}: {candidate.id} already shown")
                continue
            self._queue.append(candidate)
            logger.info(f"Fetched photo {candidate.id} (shown: {len(self._shown)})")
            return

        logger.warning(f"No unseen photo found after {self.MAX_ATTEMPTS} attempts")

    def next(self) -> Optional[PhotoRecord]:
        """
        Get the next photo to show.

        Returns:
            PhotoRecord, or None if no unseen photo could be fetched right now.
        """
        with self._lock:
            if not self._queue:
                self._replenish()

            if not self._queue:
                return None

            record = self._queue.popleft()
            self._shown.add(record.id)
            self._dispatched += 1
            self._last_dispatch = datetime.now().isoformat()

            if len(self._shown) >= self.cycle_size:
                logger.info(f"All {len(self._shown)} photos shown, resetting cycle")
                self._shown = set()
                self._cycles_completed += 1

            return record

    def get_status(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "strategy": self.name,
                "queued": len(self._queue),
                "shown": len(self._shown),
                "cycle_size": self.cycle_size,
                "cycles_completed": self._cycles_completed,
                "dispatched": self._dispatched,
                "last_dispatch": self._last_dispatch,
            }


class RandomAssetCache(SamplingCache):
    """
    Serves photos from the Immich random-asset endpoint.

    Same cycle bookkeeping as SamplingCache; candidates come with their
    location already filled in from the asset's EXIF info.
    """

    name = "random_asset"
    MAX_ATTEMPTS = 5

    def _fetch_candidate(self) -> Optional[PhotoRecord]:
        asset = self.client.random_asset()
        if asset is None:
            return None
        if not asset.is_image:
            logger.debug(f"Random asset {asset.id} is a {asset.type}, skipping")
            return None
        return asset.to_record()
