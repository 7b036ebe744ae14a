"""Review session: the deck a user is currently stepping through."""

from typing import Callable

from loguru import logger

from daily_review.cache.types import Settings
from daily_review.deck.engine import ReviewEngine
from daily_review.deck.types import DeckResult, DeckState
from daily_review.source.types import Memo
from daily_review.utils.helpers import today_day


class ReviewSession:
    """
    Drives one user's review on top of a ReviewEngine.

    Keeps the current deck and position, persists the shuffle batch and
    settings, and records each card in history the first time it is
    viewed within the session.
    """

    def __init__(self, engine: ReviewEngine, today: Callable[[], str] = today_day):
        self.engine = engine
        self.cache = engine.cache
        self._today = today
        self.state = DeckState.MISS
        self.result: DeckResult | None = None
        self.index = 0
        self._viewed: set[str] = set()

    @property
    def settings(self) -> Settings:
        defaults = self.engine.config.deck
        return self.cache.get_settings(defaults.default_time_range, defaults.default_count)

    @property
    def memos(self) -> list[Memo]:
        return self.result.memos if self.result else []

    @property
    def current(self) -> Memo | None:
        memos = self.memos
        return memos[self.index] if 0 <= self.index < len(memos) else None

    @property
    def batch(self) -> int:
        return self.cache.get_batch(self._today())

    async def open(self) -> DeckResult:
        """Show today's deck for the saved settings and batch."""
        return await self._load(force=False)

    async def shuffle(self) -> DeckResult:
        """Move to the next batch of today and build its deck."""
        day = self._today()
        self.cache.put_batch(day, self.cache.get_batch(day) + 1)
        return await self._load(force=True)

    async def on_settings_changed(self, time_range: str | None = None, count: int | None = None) -> DeckResult:
        """Save new settings, reset the batch to 0 and rebuild."""
        current = self.settings
        self.cache.put_settings(
            Settings(
                time_range=time_range or current.time_range,
                count=count or current.count,
            )
        )
        self.cache.put_batch(self._today(), 0)
        return await self._load(force=True)

    def next(self) -> Memo | None:
        if self.index < len(self.memos) - 1:
            self.index += 1
            self.mark_viewed_current()
        return self.current

    def prev(self) -> Memo | None:
        if self.index > 0:
            self.index -= 1
            self.mark_viewed_current()
        return self.current

    def mark_viewed_current(self) -> None:
        """Record the current card once per session."""
        memo = self.current
        if memo is None or memo.id in self._viewed:
            return
        self._viewed.add(memo.id)
        self.engine.mark_viewed(memo.id, self._today())

    def remove_current(self) -> None:
        """Drop the current card after it was deleted at the source."""
        memo = self.current
        if memo is None or self.result is None or self.result.deck is None:
            return
        remaining = [m for m in self.result.deck.memos if m.id != memo.id]
        self.result.deck = self.result.deck.model_copy(update={"memos": remaining})
        if self.index >= len(remaining):
            self.index = max(len(remaining) - 1, 0)

    def replace_current(self, memo: Memo) -> None:
        if self.result is None or self.result.deck is None:
            return
        memos = [memo if m.id == memo.id else m for m in self.result.deck.memos]
        self.result.deck = self.result.deck.model_copy(update={"memos": memos})

    def _set_state(self, state: DeckState) -> None:
        logger.debug(f"Deck state {self.state.value} -> {state.value}")
        self.state = state

    async def _load(self, force: bool) -> DeckResult:
        day = self._today()
        settings = self.settings
        self.index = 0
        self._viewed = set()
        self.result = None
        self._set_state(DeckState.MISS)

        result = await self.engine.load_deck(
            day,
            settings.time_range,
            settings.count,
            self.cache.get_batch(day),
            force=force,
            on_state=self._set_state,
        )
        self._set_state(result.state)
        self.result = result
        if result.state == DeckState.READY:
            self.mark_viewed_current()
        return result
