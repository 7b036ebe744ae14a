"""Tests for budgeted pool acquisition."""

import pytest

from daily_review.config.schema import PoolConfig
from daily_review.deck.acquisition import PoolAcquirer, desired_pool_size
from daily_review.errors import SourceUnavailable
from daily_review.source.base import MemoSource
from daily_review.source.types import MemoPage


def raw_memo(i: int) -> dict:
    return {"name": f"memos/{i}", "content": f"note {i}", "createTime": "2025-06-01T00:00:00Z"}


class PagedSource(MemoSource):
    """Serves ``pages`` pages of ``per_page`` raw memos, ticking a clock per fetch."""

    def __init__(self, pages: int, per_page: int, ticker=None, step: float = 0.0):
        self.pages = pages
        self.per_page = per_page
        self.ticker = ticker
        self.step = step
        self.calls: list[str | None] = []

    async def fetch_page(self, time_range, page_token=None):
        self.calls.append(page_token)
        if self.ticker is not None:
            self.ticker.now += self.step
        index = int(page_token or 0)
        memos = [raw_memo(index * self.per_page + i) for i in range(self.per_page)]
        next_token = str(index + 1) if index + 1 < self.pages else ""
        return MemoPage(memos=memos, next_page_token=next_token)


class ScriptedSource(MemoSource):
    """Returns the given pages in order."""

    def __init__(self, *pages: MemoPage):
        self.pages = list(pages)
        self.calls = 0

    async def fetch_page(self, time_range, page_token=None):
        self.calls += 1
        return self.pages.pop(0)


class FailingSource(MemoSource):
    async def fetch_page(self, time_range, page_token=None):
        raise SourceUnavailable(503)


class Ticker:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


# ============================================================================
# desired_pool_size
# ============================================================================


def test_desired_pool_size():
    assert desired_pool_size("1month", 4) == 200
    assert desired_pool_size("6months", 8) == 320
    assert desired_pool_size("all", 4) == 400
    assert desired_pool_size("all", 8) == 640
    assert desired_pool_size("3months", 2, PoolConfig(min_size=10, per_card=3)) == 10


# ============================================================================
# acquire_pool
# ============================================================================


@pytest.mark.asyncio
async def test_stops_once_desired_size_reached(cache):
    source = PagedSource(pages=5, per_page=60)
    memos = await PoolAcquirer(source, cache).acquire_pool("all", 150)
    assert len(source.calls) == 3
    assert len(memos) == 180


@pytest.mark.asyncio
async def test_stops_when_source_runs_out(cache):
    source = PagedSource(pages=2, per_page=10)
    memos = await PoolAcquirer(source, cache).acquire_pool("all", 500)
    assert source.calls == [None, "1"]
    assert len(memos) == 20


@pytest.mark.asyncio
async def test_stops_when_budget_spent(cache):
    ticker = Ticker()
    source = PagedSource(pages=10, per_page=60, ticker=ticker, step=2.5)
    acquirer = PoolAcquirer(source, cache, fetch_budget_seconds=4.0, clock=ticker)
    memos = await acquirer.acquire_pool("all", 240)
    assert len(source.calls) == 2
    assert len(memos) == 120
    assert len(cache.get_pool("all").memos) == 120


@pytest.mark.asyncio
async def test_repeated_page_token_stops(cache):
    source = ScriptedSource(
        MemoPage(memos=[raw_memo(1)], next_page_token="again"),
        MemoPage(memos=[raw_memo(2)], next_page_token="again"),
    )
    memos = await PoolAcquirer(source, cache).acquire_pool("all", 100)
    assert source.calls == 2
    assert [m.id for m in memos] == ["memos/1", "memos/2"]


@pytest.mark.asyncio
async def test_dedupes_and_drops_records_without_id(cache):
    source = ScriptedSource(
        MemoPage(memos=[raw_memo(1), raw_memo(2), {"content": "no id"}], next_page_token="p2"),
        MemoPage(memos=[raw_memo(2), raw_memo(3)], next_page_token=""),
    )
    memos = await PoolAcquirer(source, cache).acquire_pool("all", 100)
    assert [m.id for m in memos] == ["memos/1", "memos/2", "memos/3"]


@pytest.mark.asyncio
async def test_cached_pool_skips_source(cache):
    source = PagedSource(pages=1, per_page=5)
    acquirer = PoolAcquirer(source, cache)
    first = await acquirer.acquire_pool("all", 100)
    second = await acquirer.acquire_pool("all", 100)
    assert len(source.calls) == 1
    assert [m.id for m in first] == [m.id for m in second]


@pytest.mark.asyncio
async def test_other_time_range_refetches(cache):
    source = PagedSource(pages=1, per_page=5)
    acquirer = PoolAcquirer(source, cache)
    await acquirer.acquire_pool("all", 100)
    await acquirer.acquire_pool("1month", 100)
    assert len(source.calls) == 2


@pytest.mark.asyncio
async def test_source_failure_propagates_and_caches_nothing(cache):
    with pytest.raises(SourceUnavailable):
        await PoolAcquirer(FailingSource(), cache).acquire_pool("all", 100)
    assert cache.get_pool("all") is None
