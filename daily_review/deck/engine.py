"""Review deck engine: cache-first deck retrieval over a memo source."""

from typing import Callable

from loguru import logger

from daily_review.cache.store import ReviewCache
from daily_review.cache.types import Deck
from daily_review.config.schema import ReviewConfig
from daily_review.deck.acquisition import PoolAcquirer, desired_pool_size
from daily_review.deck.builder import DeckBuilder
from daily_review.deck.types import DeckResult, DeckState
from daily_review.errors import DailyReviewError, InvalidSourceResponse, error_category, user_message
from daily_review.source.base import MemoSource
from daily_review.source.normalize import normalize_memo
from daily_review.source.types import Memo
from daily_review.utils.helpers import now_ms

StateCallback = Callable[[DeckState], None]


class ReviewEngine:
    """
    Produces the deck for (day, time range, count, batch).

    A cached deck is returned as-is. Otherwise the pool is acquired
    (itself cache-first), sampled against the review history, sealed
    into a Deck and cached. Requests for the same key must not overlap.
    """

    def __init__(
        self,
        cache: ReviewCache,
        source: MemoSource,
        config: ReviewConfig | None = None,
        builder: DeckBuilder | None = None,
        acquirer: PoolAcquirer | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.config = config or ReviewConfig()
        self.cache = cache
        self.source = source
        self.builder = builder or DeckBuilder(self.config.deck.no_repeat_days)
        self.acquirer = acquirer or PoolAcquirer(
            source, cache, fetch_budget_seconds=self.config.pool.fetch_budget_seconds
        )
        self._clock = clock

    async def get_deck(
        self, day: str, time_range: str, count: int, batch: int = 0, force: bool = False
    ) -> Deck:
        """
        Return the deck for the given key, building it on a cache miss.

        Args:
            day: Day seed, YYYY-MM-DD.
            time_range: Time range key.
            count: Requested deck size.
            batch: Shuffle counter for the day.
            force: Skip the deck cache and rebuild.

        Returns:
            The deck; its memo list is empty when nothing is eligible.
            Source and storage failures propagate, no partial deck is returned.
        """
        key = Deck.make_key(day, time_range, count, batch)
        if not force:
            cached = self.cache.get_deck(key)
            if cached is not None:
                logger.debug(f"Deck cache hit for {key}")
                return cached
        return await self._build(key, day, time_range, count, batch)

    async def load_deck(
        self,
        day: str,
        time_range: str,
        count: int,
        batch: int = 0,
        force: bool = False,
        on_state: StateCallback | None = None,
    ) -> DeckResult:
        """Like get_deck, but reports the outcome as a DeckResult instead of raising."""
        key = Deck.make_key(day, time_range, count, batch)
        if not force:
            cached = self.cache.get_deck(key)
            if cached is not None:
                logger.debug(f"Deck cache hit for {key}")
                return DeckResult(DeckState.READY, deck=cached, cached=True)

        if on_state is not None:
            on_state(DeckState.LOADING)
        try:
            deck = await self._build(key, day, time_range, count, batch)
        except (DailyReviewError, OSError) as e:
            category = error_category(e)
            logger.error(f"Failed to load deck {key}: {e}")
            return DeckResult(DeckState.ERROR, category=category, message=user_message(category))

        if not deck.memos:
            return DeckResult(DeckState.EMPTY, deck=deck, message="No memos match the current settings.")
        return DeckResult(DeckState.READY, deck=deck)

    def mark_viewed(self, memo_id: str, day: str) -> None:
        self.cache.mark_viewed(memo_id, day)

    async def edit_memo(self, memo_id: str, content: str) -> Memo:
        """Update a memo at the source and swap the new version into cached pool and decks."""
        current = self.cache.find_memo(memo_id)
        name = (current.name if current else None) or memo_id
        raw = await self.source.update_memo(name, content)
        updated = normalize_memo(raw)
        if updated is None:
            raise InvalidSourceResponse("update response has no memo id")

        self.cache.replace_pool_memo(updated)
        touched = self.cache.replace_deck_memo(updated)
        logger.info(f"Updated memo {updated.id} ({touched} cached decks)")
        return updated

    async def delete_memo(self, memo_id: str) -> None:
        """Delete a memo at the source, drop it from the pool and forget cached decks."""
        current = self.cache.find_memo(memo_id)
        name = (current.name if current else None) or memo_id
        await self.source.delete_memo(name)
        self.cache.remove_pool_memo(memo_id)
        self.cache.clear_decks()
        logger.info(f"Deleted memo {memo_id}")

    async def _build(self, key: str, day: str, time_range: str, count: int, batch: int) -> Deck:
        desired = desired_pool_size(time_range, count, self.config.pool)
        pool = await self.acquirer.acquire_pool(time_range, desired)
        history = self.cache.get_history()
        memos = self.builder.build_deck(pool, time_range, count, day, batch, history)

        deck = Deck(
            key=key,
            day=day,
            time_range=time_range,
            count=count,
            batch=batch,
            memos=memos,
            created_at=self._clock(),
        )
        if memos:
            self.cache.put_deck(deck)
            logger.info(f"Built deck {key} with {len(memos)} memos from a pool of {len(pool)}")
        else:
            logger.info(f"No eligible memos for deck {key}")
        return deck

