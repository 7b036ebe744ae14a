"""Shared fixtures for daily_review tests."""

from datetime import datetime, timedelta

import pytest

from daily_review.cache import MemoryStorage, ReviewCache
from daily_review.source.base import MemoSource
from daily_review.source.types import Attachment, Memo, MemoPage

TODAY = "2026-02-23"
NOW = datetime(2026, 2, 23, 12, 0, 0)


class FakeClock:
    """Manually advanced clock returning epoch milliseconds."""

    def __init__(self, start_ms: int = int(NOW.timestamp() * 1000)):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def build_memo(
    memo_id: str,
    days_ago: float = 1,
    content: str | None = None,
    tags: tuple[str, ...] = (),
    attachments: tuple[Attachment, ...] = (),
) -> Memo:
    return Memo(
        id=memo_id,
        name=memo_id,
        create_time=NOW - timedelta(days=days_ago),
        content=f"memo {memo_id}" if content is None else content,
        tags=tags,
        attachments=attachments,
    )


def raw_memo(i: int) -> dict:
    """Raw API record with a distinct creation day per index below 84."""
    return {
        "name": f"memos/{i}",
        "content": f"note {i}",
        "createTime": f"2025-{1 + i % 12:02d}-{1 + i % 28:02d}T08:00:00Z",
    }


class FakeSource(MemoSource):
    """In-memory single-page source with edit and delete support."""

    def __init__(self, records: list[dict] | None = None, error: Exception | None = None):
        self.records = records if records is not None else [raw_memo(i) for i in range(40)]
        self.error = error
        self.fetches = 0
        self.deleted: list[str] = []

    async def fetch_page(self, time_range, page_token=None):
        self.fetches += 1
        if self.error is not None:
            raise self.error
        return MemoPage(memos=[dict(r) for r in self.records], next_page_token="")

    async def update_memo(self, name, content):
        for record in self.records:
            if record["name"] == name:
                record["content"] = content
                return dict(record)
        raise AssertionError(f"unknown memo {name}")

    async def delete_memo(self, name):
        self.deleted.append(name)
        self.records = [r for r in self.records if r["name"] != name]


@pytest.fixture
def make_memo():
    """Factory for memos created ``days_ago`` before the fixed test day."""
    return build_memo


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def cache(storage, clock):
    return ReviewCache(storage, clock=clock)
