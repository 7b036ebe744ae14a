"""Small date, time and filesystem helpers."""

import time
from datetime import date, datetime
from pathlib import Path
from typing import Any


def ensure_dir(path: Path) -> Path:
    """Create a directory if needed and return it."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def now_ms() -> int:
    return int(time.time() * 1000)


def today_day(now: datetime | None = None) -> str:
    """Local calendar day as YYYY-MM-DD; this string seeds the daily deck."""
    return (now or datetime.now()).strftime("%Y-%m-%d")


def diff_days(from_day: str, to_day: str) -> int:
    """Whole calendar days from ``from_day`` to ``to_day`` (negative if reversed)."""
    return (date.fromisoformat(to_day) - date.fromisoformat(from_day)).days


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an RFC 3339 string or epoch milliseconds; None if unusable."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    return None


def to_time_ms(value: datetime | None, fallback_ms: int = 0) -> int:
    """Epoch milliseconds for a datetime, ``fallback_ms`` when absent."""
    if value is None:
        return fallback_ms
    return int(value.timestamp() * 1000)
