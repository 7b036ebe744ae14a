"""Configuration for daily_review."""

from daily_review.config.loader import get_config_path, load_config, save_config
from daily_review.config.schema import COUNT_OPTIONS, TIME_RANGES, ReviewConfig

__all__ = [
    "COUNT_OPTIONS",
    "TIME_RANGES",
    "ReviewConfig",
    "get_config_path",
    "load_config",
    "save_config",
]
