"""Budgeted, paginated pool acquisition."""

import time
from typing import Callable

from loguru import logger

from daily_review.cache.store import ReviewCache
from daily_review.config.schema import PoolConfig
from daily_review.source.base import MemoSource
from daily_review.source.normalize import normalize_memo
from daily_review.source.types import Memo


def desired_pool_size(time_range: str, count: int, config: PoolConfig | None = None) -> int:
    """How many memos to aim for when filling the pool for a deck of ``count``."""
    config = config or PoolConfig()
    size = max(config.min_size, count * config.per_card)
    if time_range == "all":
        size *= config.all_time_factor
    return size


class PoolAcquirer:
    """
    Fills the pool cache from a memo source.

    Pages are fetched until the source runs out, the pool is big enough,
    or the fetch budget is spent. Running out of budget is not an error:
    whatever arrived so far becomes the pool. A failing page fails the
    whole acquisition and nothing is cached.
    """

    def __init__(
        self,
        source: MemoSource,
        cache: ReviewCache,
        fetch_budget_seconds: float = 4.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.source = source
        self.cache = cache
        self.fetch_budget_seconds = fetch_budget_seconds
        self._clock = clock

    async def acquire_pool(self, time_range: str, desired_size: int) -> list[Memo]:
        cached = self.cache.get_pool(time_range)
        if cached is not None and cached.memos:
            logger.debug(f"Pool cache hit for {time_range} ({len(cached.memos)} memos)")
            return cached.memos

        started = self._clock()
        memos: list[Memo] = []
        seen: set[str] = set()
        page_token: str | None = None
        pages = 0

        while True:
            page = await self.source.fetch_page(time_range, page_token)
            pages += 1
            for raw in page.memos:
                memo = normalize_memo(raw)
                if memo is None or memo.id in seen:
                    continue
                seen.add(memo.id)
                memos.append(memo)

            next_token = page.next_page_token
            if not next_token or next_token == page_token:
                break
            if len(memos) >= desired_size:
                break
            elapsed = self._clock() - started
            if elapsed > self.fetch_budget_seconds:
                logger.warning(
                    f"Pool fetch budget spent after {pages} pages ({elapsed:.1f}s), "
                    f"keeping {len(memos)} memos"
                )
                break
            page_token = next_token

        logger.info(f"Fetched pool for {time_range}: {len(memos)} memos in {pages} pages")
        self.cache.put_pool(time_range, memos)
        return memos
