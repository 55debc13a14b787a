# Copyright (c) 2025 Luc Vincent. All Rights Reserved.
"""
Album shuffle cache.
Loads a whole Immich album, shuffles it locally and plays it through
before reshuffling.
"""

import logging
import random
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from .immich_client import ImmichClient, ImmichError
from .models import PhotoCache, PhotoRecord

logger = logging.getLogger(__name__)


@dataclass
class RefreshResult:
    """Outcome of a ShuffleCache refresh."""
    ok: bool
    count: int = 0
    reason: str = ""


class ShuffleCache(PhotoCache):
    """
    Serves every photo of one album once per pass, in shuffled order.

    refresh() replaces the sequence and resets the cursor in one step,
    so readers never see a cursor from one album load against the
    sequence of another. A failed refresh keeps the previous sequence.
    """

    name = "album"

    def __init__(self, client: ImmichClient, album_id: str):
        """
        Initialize the cache. It stays empty until the first refresh().

        Args:
            client: Immich API client.
            album_id: Immich album to show.
        """
        self.client = client
        self.album_id = album_id

        self._lock = threading.Lock()
        self._sequence: List[PhotoRecord] = []
        self._cursor: int = 0
        self._passes: int = 0

        self._last_refresh: Optional[str] = None
        self._last_error: Optional[str] = None

    def refresh(self) -> RefreshResult:
        """
        Reload the album from Immich.

        The network fetch runs without the lock; only the final swap is
        done under it.

        Returns:
            RefreshResult with the number of photos loaded or the failure reason.
        """
        try:
            assets = self.client.fetch_album(self.album_id)
        except ImmichError as e:
            return self._refresh_failed(str(e))

        try:
            images = [a for a in assets if a.is_image and not a.is_screenshot]
            total = len(images)
            sequence = [
                asset.to_record(index=i, total=total)
                for i, asset in enumerate(images, start=1)
            ]
        except (TypeError, ValueError, AttributeError) as e:
            return self._refresh_failed(f"Album {self.album_id} has a malformed asset: {e}")

        if not sequence:
            return self._refresh_failed(f"Album {self.album_id} contains no images")
        random.shuffle(sequence)

        with self._lock:
            self._sequence = sequence
            self._cursor = 0
            self._last_refresh = datetime.now().isoformat()
            self._last_error = None

        logger.info(f"Album {self.album_id} loaded: {total} photos")
        return RefreshResult(ok=True, count=total)

    def _refresh_failed(self, reason: str) -> RefreshResult:
        logger.error(f"Album refresh failed: {reason}")
        with self._lock:
            self._last_error = reason
        return RefreshResult(ok=False, reason=reason)

    def next(self) -> Optional[PhotoRecord]:
        """
        Get the next photo of the current pass.

        Returns:
            PhotoRecord, or None if no album has been loaded yet.
        """
        with self._lock:
            if not self._sequence:
                return None

            # Reshuffle when the pass is over
            if self._cursor >= len(self._sequence):
                random.shuffle(self._sequence)
                self._cursor = 0
                self._passes += 1
                logger.info(f"Album pass complete, reshuffled {len(self._sequence)} photos")

            record = self._sequence[self._cursor]
            self._cursor += 1
            return record

    def __len__(self) -> int:
        with self._lock:
            return len(self._sequence)

    def get_status(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "strategy": self.name,
                "album_id": self.album_id,
                "size": len(self._sequence),
                "cursor": self._cursor,
                "passes": self._passes,
                "last_refresh": self._last_refresh,
                "last_error": self._last_error,
            }
