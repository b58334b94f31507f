"""
Date normalization for project snapshot records.

Snapshot dates arrive as strings in whatever shape the dashboard stored them.
Detectors call normalize_date() per record and skip the record when it fails.
"""

from datetime import datetime, timezone
from typing import Any


class NormalizationError(Exception):
    """Raised when a snapshot value cannot be normalized."""
    pass


def normalize_date(value: Any) -> datetime:
    """
    Normalize a date or timestamp string to a UTC datetime.

    Supports common formats:
    - Date only: 2025-12-24 (midnight UTC), also 2025-12 and 2025
    - ISO 8601: 2025-12-24T10:30:45Z, with or without fraction or offset
    - Date-time: 2025-12-24 10:30:45
    - Epoch seconds or millis (nine digits or more)

    Args:
        value: Raw date value

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        NormalizationError: If the value is empty or not recognized
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise NormalizationError("Empty date")

    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        dt = _parse_epoch(text) or _parse_text(text)

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _parse_epoch(text: str):
    # Shorter digit runs are years (2025), not seconds since 1970
    digits = text.lstrip("-").split(".", 1)[0]
    if not digits.isdigit() or len(digits) < 9:
        return None
    try:
        number = float(text)
    except ValueError:
        return None

    # Timestamps before year 3000 are seconds
    if number >= 32503680000:
        number = number / 1000
    try:
        return datetime.fromtimestamp(number, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise NormalizationError(f"Epoch out of range: {text}") from e


def _parse_text(text: str) -> datetime:
    formats = [
        "%Y-%m-%d",
        "%Y-%m",
        "%Y",
        "%Y-%m-%dT%H:%M:%SZ",
        "%Y-%m-%dT%H:%M:%S",
        "%Y-%m-%d %H:%M:%S",
        "%Y-%m-%dT%H:%M:%S.%fZ",
        "%Y-%m-%dT%H:%M:%S.%f",
    ]

    for fmt in formats:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    # Offsets such as +05:45
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass

    raise NormalizationError(f"Could not parse date: {text}")
