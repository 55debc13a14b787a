# Copyright (c) 2025-2026 Luc Vincent. All Rights Reserved.
"""
Pytest configuration and shared fixtures for PhotoFrame tests.
"""

import tempfile
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

from photoframe.immich_client import ImmichError, SearchPage
from photoframe.models import Asset, PhotoRecord


class FakeImmichClient:
    """In-memory stand-in for ImmichClient.

    ``page_source`` maps a page number to the record on that page (or None).
    """

    def __init__(self, page_source: Optional[Callable[[int], Optional[PhotoRecord]]] = None,
                 album: Optional[List[Asset]] = None,
                 random_assets: Optional[List[Optional[Asset]]] = None,
                 locations: Optional[Dict[str, str]] = None):
        self.page_source = page_source or (lambda page: PhotoRecord(id=f"asset-{page}"))
        self.album = album
        self.album_error: Optional[str] = None
        self.random_assets = list(random_assets or [])
        self.locations = locations or {}

        self.search_calls: List[int] = []
        self.location_calls: List[str] = []
        self.random_calls = 0
        self.album_calls = 0
        self._lock = threading.Lock()

    def search_page(self, page: int, size: int) -> SearchPage:
        with self._lock:
            self.search_calls.append(page)
        record = self.page_source(page)
        if record is None:
            return SearchPage()
        return SearchPage(records=[record], has_more=True)

    def random_asset(self) -> Optional[Asset]:
        self.random_calls += 1
        if not self.random_assets:
            return None
        return self.random_assets.pop(0)

    def fetch_album(self, album_id: str) -> List[Asset]:
        self.album_calls += 1
        if self.album_error:
            raise ImmichError(self.album_error)
        return list(self.album or [])

    def fetch_location(self, asset_id: str) -> str:
        self.location_calls.append(asset_id)
        return self.locations.get(asset_id, "")


def make_asset(asset_id: str, asset_type: str = "IMAGE", city: str = "",
               country: str = "", file_name: str = "IMG_0001.jpg",
               created: str = "2023-05-04T10:00:00.000Z") -> Asset:
    """Build an Asset for tests."""
    return Asset(
        id=asset_id,
        type=asset_type,
        file_created_at=created,
        original_file_name=file_name,
        city=city,
        country=country,
    )


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fake_client():
    """Fake Immich client serving one distinct asset per page."""
    return FakeImmichClient()


@pytest.fixture
def album_assets():
    """Small album with a video and a screenshot mixed in."""
    return [
        make_asset("img-1", city="Paris", country="France"),
        make_asset("img-2", created="2021-12-31T23:59:59Z"),
        make_asset("vid-1", asset_type="VIDEO"),
        make_asset("img-3", city="Istanbul", country="Türkiye"),
        make_asset("shot-1", file_name="Screenshot 2024-01-01.png"),
        make_asset("img-4"),
    ]


@pytest.fixture
def sample_config_dict():
    """Return a minimal valid config dictionary."""
    return {
        "immich": {
            "url": "http://immich.local:2283",
            "api_key": "test-key",
            "device_model": "iPhone 14 Pro",
            "timeout_seconds": 120
        },
        "cache": {
            "mode": "random_page",
            "pages_in_library": 85000,
            "records_per_page": 10,
            "album_id": "",
            "refresh_interval_minutes": 5,
            "initial_retry_seconds": 5
        },
        "slideshow": {
            "interval_seconds": 15
        },
        "web": {
            "port": 3000,
            "host": "127.0.0.1"
        }
    }


@pytest.fixture
def sample_config_yaml(temp_dir, sample_config_dict):
    """Create a temporary config.yaml file."""
    import yaml
    config_path = temp_dir / "config.yaml"
    with open(config_path, 'w') as f:
        yaml.dump(sample_config_dict, f)
    return config_path
