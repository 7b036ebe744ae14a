"""Types for deck generation."""

from dataclasses import dataclass
from enum import Enum

from daily_review.cache.types import Deck
from daily_review.errors import ErrorCategory
from daily_review.source.types import Memo


class DeckState(str, Enum):
    """Where a deck request is in its lifecycle."""
    MISS = "miss"
    LOADING = "loading"
    READY = "ready"
    EMPTY = "empty"
    ERROR = "error"


@dataclass(frozen=True)
class ScoredMemo:
    """A candidate with its review-priority components."""

    memo: Memo
    never_shown: bool
    days_since_shown: float  # math.inf when never shown
    shown_count: int
    tie_break: int

    @property
    def rank_key(self) -> tuple[bool, float, int, int]:
        """Never shown first, then longest unseen, least shown, smallest tie-break."""
        return (not self.never_shown, -self.days_since_shown, self.shown_count, self.tie_break)


@dataclass
class DeckResult:
    """Outcome of a deck request, ready for display."""

    state: DeckState
    deck: Deck | None = None
    category: ErrorCategory | None = None
    message: str = ""
    cached: bool = False

    @property
    def memos(self) -> list[Memo]:
        return self.deck.memos if self.deck else []
