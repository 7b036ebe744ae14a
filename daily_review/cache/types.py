"""Persisted state types (Pydantic models with camelCase JSON aliases)."""

import math
from datetime import date
from typing import Any

from pydantic import BaseModel, Field

from daily_review.source.types import Memo
from daily_review.utils.helpers import diff_days

SCHEMA_VERSION = 3


class Deck(BaseModel):
    """A sealed daily deck, keyed by (day, time range, count, batch)."""

    key: str
    day: str
    time_range: str = Field(alias="timeRange")
    count: int = Field(ge=0)
    batch: int = Field(0, ge=0)
    memos: list[Memo] = Field(default_factory=list)
    created_at: int = Field(0, alias="createdAt")

    model_config = {"populate_by_name": True}

    @staticmethod
    def make_key(day: str, time_range: str, count: int, batch: int) -> str:
        return f"{day}-{time_range}-{count}-{batch}"

    @property
    def memo_ids(self) -> list[str]:
        return [m.id for m in self.memos]


class PoolRecord(BaseModel):
    """Cached candidate pool for one time range."""

    schema_version: int = Field(SCHEMA_VERSION, alias="schemaVersion")
    time_range: str = Field(alias="timeRange")
    memos: list[Memo] = Field(default_factory=list)
    fetched_at: int = Field(alias="fetchedAt")

    model_config = {"populate_by_name": True}


class DeckStore(BaseModel):
    """All cached decks plus the most recently written key."""

    schema_version: int = Field(SCHEMA_VERSION, alias="schemaVersion")
    decks: dict[str, Deck] = Field(default_factory=dict)
    last_key: str = Field("", alias="lastKey")

    model_config = {"populate_by_name": True}


class HistoryEntry(BaseModel):
    """Review history for one memo."""

    last_shown_day: str | None = Field(None, alias="lastShownDay")
    shown_count: int = Field(0, ge=0, alias="shownCount")

    model_config = {"populate_by_name": True}


class History(BaseModel):
    """Review history of every memo ever shown."""

    schema_version: int = Field(SCHEMA_VERSION, alias="schemaVersion")
    items: dict[str, HistoryEntry] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}

    def entry(self, memo_id: str) -> HistoryEntry | None:
        return self.items.get(memo_id)

    def days_since_shown(self, memo_id: str, today: str) -> float:
        """Calendar days since the memo was last shown; ``inf`` if never."""
        entry = self.items.get(memo_id)
        if entry is None or not entry.last_shown_day:
            return math.inf
        try:
            return diff_days(entry.last_shown_day, today)
        except ValueError:
            return math.inf

    def record_view(self, memo_id: str, day: str) -> HistoryEntry:
        """Count one more view; the last-shown day never moves backwards."""
        entry = self.items.get(memo_id) or HistoryEntry()
        last = entry.last_shown_day
        if not last or _day_ordinal(day) >= _day_ordinal(last):
            last = day
        entry = HistoryEntry(last_shown_day=last, shown_count=entry.shown_count + 1)
        self.items[memo_id] = entry
        return entry

    def prune(self, max_items: int) -> int:
        """Drop entries with the oldest last-shown day until at most ``max_items`` remain."""
        excess = len(self.items) - max_items
        if excess <= 0:
            return 0
        ranked = sorted(self.items, key=lambda mid: _day_ordinal(self.items[mid].last_shown_day))
        for memo_id in ranked[:excess]:
            del self.items[memo_id]
        return excess


class Settings(BaseModel):
    """User-chosen deck parameters."""

    schema_version: int = Field(SCHEMA_VERSION, alias="schemaVersion")
    time_range: str = Field(alias="timeRange")
    count: int = Field(ge=1)

    model_config = {"populate_by_name": True}


class BatchState(BaseModel):
    """Shuffle counter, only meaningful on the day it was written."""

    schema_version: int = Field(SCHEMA_VERSION, alias="schemaVersion")
    day: str
    batch: int = Field(0, ge=0)

    model_config = {"populate_by_name": True}


def _day_ordinal(day: Any) -> int:
    """Sort key for a YYYY-MM-DD string; missing or bad days sort first."""
    if not isinstance(day, str) or not day:
        return 0
    try:
        return date.fromisoformat(day).toordinal()
    except ValueError:
        return 0


def dump(model: BaseModel) -> dict[str, Any]:
    """JSON-ready dict with camelCase keys."""
    return model.model_dump(mode="json", by_alias=True)
