# Copyright (c) 2025 Luc Vincent. All Rights Reserved.
"""
Display formatting for photo metadata.
Turns upstream timestamps and EXIF place names into caption strings.
"""

import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

TURKISH_MONTHS = [
    "Ocak", "Şubat", "Mart", "Nisan", "Mayıs", "Haziran",
    "Temmuz", "Ağustos", "Eylül", "Ekim", "Kasım", "Aralık",
]

# Formats tried in order; %z accepts both "Z" and "+03:00"
TIMESTAMP_FORMATS = [
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S",
]

# strptime's %f only takes up to 6 digits, Immich sometimes sends more
_LONG_FRACTION = re.compile(r"(\.\d{6})\d+")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an RFC 3339 timestamp from the Immich API.

    Args:
        value: Timestamp string such as "2023-05-04T10:00:00.000Z".

    Returns:
        datetime (timezone-aware when the input carries an offset),
        or None if the value can't be parsed.
    """
    if not value or not isinstance(value, str):
        return None

    text = _LONG_FRACTION.sub(r"\1", value.strip())
    for fmt in TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    logger.debug(f"Unparsable timestamp: {value!r}")
    return None


def format_date(value: Optional[str], months: List[str] = TURKISH_MONTHS) -> str:
    """
    Format an upstream timestamp for display, e.g. "4 Mayıs 2023".

    The day is taken in the timestamp's own offset, not converted to local time.

    Args:
        value: Timestamp string from the API.
        months: Twelve month names, January first.

    Returns:
        Formatted date string, or empty string if the timestamp is invalid.
    """
    date = parse_timestamp(value)
    if date is None:
        return ""
    return f"{date.day} {months[date.month - 1]} {date.year}"


def build_location(city: Optional[str] = None,
                   state: Optional[str] = None,
                   country: Optional[str] = None) -> str:
    """
    Join the non-empty place fields into one caption string.

    Returns:
        Location like "Paris, France", or "" when nothing is known.
    """
    parts = [
        p.strip() for p in (city, state, country)
        if isinstance(p, str) and p.strip()
    ]
    return ", ".join(parts)


def build_location_from_exif(exif_info: Optional[Dict[str, Any]]) -> str:
    """Build a location string from an Immich ``exifInfo`` object."""
    if not isinstance(exif_info, dict):
        return ""
    return build_location(
        exif_info.get("city"),
        exif_info.get("state"),
        exif_info.get("country"),
    )
