# Copyright (c) 2025 Luc Vincent. All Rights Reserved.
"""
Data types shared by the Immich client, the photo caches and the web layer.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional

from .formatting import build_location, format_date


@dataclass(frozen=True)
class PhotoRecord:
    """A photo ready to be shown on a frame.

    ``location`` is None until it has been looked up; an empty string means
    the lookup happened and found nothing.
    """
    id: str
    date: str = ""
    location: Optional[str] = None
    index: Optional[int] = None   # 1-based position within the current cycle
    total: Optional[int] = None   # Number of items in the current cycle

    @property
    def location_resolved(self) -> bool:
        return self.location is not None

    def with_location(self, location: str) -> "PhotoRecord":
        """Return a copy with the location resolved."""
        return replace(self, location=location or "")

    def to_dict(self) -> dict:
        data: Dict[str, Any] = {
            "id": self.id,
            "date": self.date,
            "city": self.location or "",
        }
        if self.index is not None:
            data["index"] = self.index
        if self.total is not None:
            data["total"] = self.total
        return data


@dataclass
class Asset:
    """An asset as returned by the Immich API."""
    id: str
    type: str = "IMAGE"
    file_created_at: str = ""
    original_file_name: str = ""
    city: str = ""
    state: str = ""
    country: str = ""

    @property
    def is_image(self) -> bool:
        return (self.type or "IMAGE").upper() == "IMAGE"

    @property
    def is_screenshot(self) -> bool:
        return "screenshot" in (self.original_file_name or "").lower()

    @property
    def location(self) -> str:
        return build_location(self.city, self.state, self.country)

    def to_record(self, index: Optional[int] = None,
                  total: Optional[int] = None,
                  with_location: bool = True) -> PhotoRecord:
        """Build a display record, optionally leaving the location unresolved."""
        return PhotoRecord(
            id=self.id,
            date=format_date(self.file_created_at),
            location=self.location if with_location else None,
            index=index,
            total=total,
        )

    @classmethod
    def from_dict(cls, data: dict) -> "Asset":
        """Build an Asset from an Immich JSON object.

        Raises:
            ValueError: If the id is missing or a text field has another type.
        """
        if not isinstance(data, dict) or not data.get("id"):
            raise ValueError(f"Asset without id: {data!r}")
        if not isinstance(data["id"], (str, int)) or isinstance(data["id"], bool):
            raise ValueError(f"Asset id is not a string: {data['id']!r}")
        exif = data.get("exifInfo")
        if not isinstance(exif, dict):
            exif = {}
        return cls(
            id=str(data["id"]),
            type=_text_field(data, "type") or "IMAGE",
            file_created_at=_text_field(data, "fileCreatedAt"),
            original_file_name=_text_field(data, "originalFileName"),
            city=_text_field(exif, "city"),
            state=_text_field(exif, "state"),
            country=_text_field(exif, "country"),
        )


def _text_field(data: dict, key: str) -> str:
    """Return a string field, treating null as empty."""
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"Field {key} is not a string: {value!r}")
    return value


class PhotoCache(ABC):
    """Common contract of the photo caches.

    Deliver the next unseen photo; start over once everything has been shown.
    """

    name: str = "base"

    @abstractmethod
    def next(self) -> Optional[PhotoRecord]:
        """Return the next photo, or None if none is available right now."""

    @abstractmethod
    def get_status(self) -> Dict[str, Any]:
        """Return a status dict for the web interface."""

    def next_batch(self, count: int) -> List[PhotoRecord]:
        """Return up to ``count`` photos in dispatch order."""
        records = []
        for _ in range(max(count, 0)):
            record = self.next()
            if record is None:
                break
            records.append(record)
        return records
