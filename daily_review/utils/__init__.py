"""Utility functions for daily_review."""

from daily_review.utils.helpers import (
    diff_days,
    ensure_dir,
    now_ms,
    parse_timestamp,
    to_time_ms,
    today_day,
)
from daily_review.utils.seeded import mulberry32, seeded_random, seeded_shuffle, string_to_seed

__all__ = [
    "diff_days",
    "ensure_dir",
    "now_ms",
    "parse_timestamp",
    "to_time_ms",
    "today_day",
    "mulberry32",
    "seeded_random",
    "seeded_shuffle",
    "string_to_seed",
]
