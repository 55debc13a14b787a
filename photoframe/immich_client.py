# Copyright (c) 2025 Luc Vincent. All Rights Reserved.
"""
Immich API client.
Wraps the few Immich endpoints the photo caches need: metadata search,
random assets, album contents, asset details and thumbnails.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from .formatting import build_location_from_exif
from .models import Asset, PhotoRecord

logger = logging.getLogger(__name__)


class ImmichError(Exception):
    """Raised when an Immich request fails or returns something unusable."""


@dataclass
class SearchPage:
    """One page of metadata search results."""
    records: List[PhotoRecord] = field(default_factory=list)
    has_more: bool = False


class ImmichClient:
    """
    Thin client for the Immich REST API.

    Every call is a single HTTP round trip with a bounded timeout and the
    API key header attached. Failures never propagate as raw requests
    exceptions: lookups return an empty result, and the album fetch raises
    ImmichError so callers can report the cause.
    """

    SEARCH_ENDPOINT = "/api/search/metadata"
    RANDOM_ENDPOINT = "/api/assets/random"
    ALBUM_ENDPOINT = "/api/albums/{album_id}"
    ASSET_ENDPOINT = "/api/assets/{asset_id}"
    THUMBNAIL_ENDPOINT = "/api/assets/{asset_id}/thumbnail"

    def __init__(self, base_url: str, api_key: str,
                 device_model: Optional[str] = None,
                 timeout: float = 120,
                 session: Optional[requests.Session] = None):
        """
        Initialize the client.

        Args:
            base_url: Immich server URL, e.g. "http://immich.local:2283".
            api_key: Immich API key.
            device_model: Camera model to restrict searches to (optional).
            timeout: Per-request timeout in seconds.
            session: Pre-built session (mostly for tests).
        """
        self.base_url = base_url.rstrip("/")
        self.device_model = device_model
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({
            "x-api-key": api_key,
            "Accept": "application/json",
        })

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        """Perform one request, raising ImmichError on any failure."""
        kwargs.setdefault("timeout", self.timeout)
        try:
            response = self._session.request(method, self._url(path), **kwargs)
        except requests.RequestException as e:
            raise ImmichError(f"{method} {path} failed: {e}") from e

        if not response.ok:
            body = ""
            if not kwargs.get("stream"):
                body = response.text[:200]
            response.close()
            raise ImmichError(f"{method} {path} returned {response.status_code}: {body}")

        return response

    def _request_json(self, method: str, path: str, **kwargs) -> Any:
        response = self._request(method, path, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise ImmichError(f"{method} {path} returned invalid JSON: {e}") from e

    def search_page(self, page: int, size: int) -> SearchPage:
        """
        Fetch one page of image metadata, screenshots removed.

        Args:
            page: 1-based page number.
            size: Page size.

        Returns:
            SearchPage; empty if the request failed.
        """
        body: Dict[str, Any] = {"type": "IMAGE", "page": page, "size": size}
        if self.device_model:
            body["model"] = self.device_model

        try:
            data = self._request_json("POST", self.SEARCH_ENDPOINT, json=body)
            assets = data.get("assets") or {}
            items = assets.get("items") or []
            next_page = assets.get("nextPage")
        except (ImmichError, AttributeError) as e:
            logger.warning(f"Search page {page} failed: {e}")
            return SearchPage()

        if not isinstance(items, list):
            logger.warning(f"Search page {page} returned malformed items: {items!r}")
            return SearchPage()

        records = []
        for item in items:
            try:
                asset = Asset.from_dict(item)
            except ValueError as e:
                logger.debug(f"Skipping search result: {e}")
                continue
            if asset.is_screenshot:
                continue
            records.append(asset.to_record(with_location=False))

        has_more = bool(next_page) and len(items) >= size
        return SearchPage(records=records, has_more=has_more)

    def random_asset(self) -> Optional[Asset]:
        """
        Fetch one random asset.

        Returns:
            Asset, or None if the request failed, nothing came back,
            or the asset is a screenshot.
        """
        try:
            data = self._request_json("GET", self.RANDOM_ENDPOINT, params={"count": 1})
            if not isinstance(data, list) or not data:
                return None
            asset = Asset.from_dict(data[0])
        except (ImmichError, ValueError) as e:
            logger.warning(f"Random asset fetch failed: {e}")
            return None

        if asset.is_screenshot:
            logger.debug(f"Random asset {asset.id} is a screenshot, skipping")
            return None
        return asset

    def fetch_album(self, album_id: str) -> List[Asset]:
        """
        Fetch every asset of an album, screenshots removed.

        Raises:
            ImmichError: On network, status or decode failure.
        """
        path = self.ALBUM_ENDPOINT.format(album_id=album_id)
        data = self._request_json("GET", path)
        if not isinstance(data, dict) or not isinstance(data.get("assets"), list):
            raise ImmichError(f"Album {album_id} response has no asset list")

        assets = []
        for item in data["assets"]:
            try:
                asset = Asset.from_dict(item)
            except ValueError as e:
                logger.debug(f"Skipping album entry: {e}")
                continue
            if not asset.is_screenshot:
                assets.append(asset)

        logger.info(f"Fetched album {album_id}: {len(assets)} assets")
        return assets

    def fetch_location(self, asset_id: str) -> str:
        """Look up the display location of an asset; "" on failure."""
        path = self.ASSET_ENDPOINT.format(asset_id=asset_id)
        try:
            data = self._request_json("GET", path)
        except ImmichError as e:
            logger.warning(f"Location fetch failed for {asset_id}: {e}")
            return ""
        if not isinstance(data, dict):
            return ""
        return build_location_from_exif(data.get("exifInfo"))

    def fetch_thumbnail(self, asset_id: str, size: str = "preview") -> requests.Response:
        """
        Open a streaming response for an asset's thumbnail.

        The caller must close the response.

        Raises:
            ImmichError: On network or status failure.
        """
        path = self.THUMBNAIL_ENDPOINT.format(asset_id=asset_id)
        return self._request("GET", path, params={"size": size}, stream=True)

    def close(self) -> None:
        self._session.close()
