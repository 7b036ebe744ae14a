"""Configuration schema using Pydantic."""

from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Days covered by each time range; None means no lower bound.
TIME_RANGES: dict[str, int | None] = {
    "all": None,
    "1year": 365,
    "6months": 180,
    "3months": 90,
    "1month": 30,
}

COUNT_OPTIONS = [4, 8, 12, 16, 20, 24]


class SourceConfig(BaseModel):
    """Memos server connection."""
    base_url: str = "http://localhost:5230"
    access_token: str = ""
    page_size: int = Field(default=1000, ge=1, le=1000)
    request_timeout: float = Field(default=8.0, gt=0)  # per page request, seconds
    max_attempts: int = Field(default=3, ge=1, le=10)
    initial_delay: float = Field(default=1.0, ge=0)
    max_delay: float = Field(default=5.0, ge=0)
    backoff_factor: float = Field(default=2.0, ge=1.0)


class PoolConfig(BaseModel):
    """Candidate pool fetching and caching."""
    ttl_hours: float = Field(default=6, gt=0)
    fetch_budget_seconds: float = Field(default=4.0, gt=0)
    min_size: int = Field(default=200, ge=1)
    per_card: int = Field(default=40, ge=1)
    all_time_factor: int = Field(default=2, ge=1)

    @property
    def ttl_ms(self) -> int:
        return int(self.ttl_hours * 60 * 60 * 1000)


class DeckConfig(BaseModel):
    """Deck generation and history limits."""
    default_time_range: str = "6months"
    default_count: int = Field(default=8, ge=1)
    no_repeat_days: int = Field(default=3, ge=0)
    cache_size: int = Field(default=10, ge=1)
    history_max_items: int = Field(default=5000, ge=1)
    quota_history_items: int = Field(default=1000, ge=0)
    quota_keep_decks: int = Field(default=3, ge=0)


class StorageConfig(BaseModel):
    """Where persisted state lives."""
    data_dir: str = "~/.daily_review"
    quota_bytes: int | None = Field(default=None, ge=1)  # None = unlimited

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir).expanduser()


class ReviewConfig(BaseSettings):
    """Root configuration for daily_review."""
    model_config = SettingsConfigDict(
        env_prefix="DAILY_REVIEW_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    source: SourceConfig = Field(default_factory=SourceConfig)
    pool: PoolConfig = Field(default_factory=PoolConfig)
    deck: DeckConfig = Field(default_factory=DeckConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
