"""Deck assembly from a pool snapshot."""

import math
from collections.abc import Iterable, Sequence

from daily_review.cache.types import History
from daily_review.deck import sampler
from daily_review.deck.spark import find_spark_pair
from daily_review.source.types import Memo


def dedupe(memos: Iterable[Memo]) -> list[Memo]:
    """Drop repeated ids, first occurrence wins."""
    seen: set[str] = set()
    result = []
    for memo in memos:
        if memo.id in seen:
            continue
        seen.add(memo.id)
        result.append(memo)
    return result


class DeckBuilder:
    """
    Turns a pool and a history snapshot into an ordered deck.

    Each step is a method so callers and tests can swap one out.
    Nothing here touches the cache; the same inputs always give the
    same deck.
    """

    def __init__(self, no_repeat_days: int = sampler.NO_REPEAT_DAYS):
        self.no_repeat_days = no_repeat_days
        self.ladder = sampler.relaxation_ladder(no_repeat_days)

    def eligible(self, pool: Iterable[Memo]) -> list[Memo]:
        return [m for m in pool if m.is_eligible]

    def partition(self, pool: Sequence[Memo]) -> tuple[list[Memo], list[Memo], list[Memo]]:
        return sampler.partition(pool)

    def allocate_targets(self, count: int) -> list[int]:
        return sampler.allocate_targets(count)

    def pick_from_bucket(
        self, bucket: Sequence[Memo], target: int, history: History, today: str, seed_prefix: str
    ) -> list[Memo]:
        return sampler.pick_from_bucket(bucket, target, history, today, seed_prefix, self.ladder)

    def interleave(self, selected: Sequence[Sequence[Memo]]) -> list[Memo]:
        return sampler.interleave(selected)

    def find_spark_pair(
        self, pool: Sequence[Memo], history: History, today: str, seed_prefix: str
    ) -> tuple[Memo, Memo] | None:
        return find_spark_pair(pool, history, today, seed_prefix, self.no_repeat_days)

    @staticmethod
    def insert_spark_pair(deck: list[Memo], pair: tuple[Memo, Memo]) -> list[Memo]:
        """Place the pair at fixed slots unless either memo is already in the deck."""
        result = list(deck)
        positions = (2, 5) if len(result) >= 8 else (1, max(2, len(result) - 1))
        for position, memo in zip(positions, pair):
            if any(m.id == memo.id for m in result):
                continue
            result.insert(min(position, len(result)), memo)
        return dedupe(result)

    def top_up(
        self,
        deck: list[Memo],
        eligible: Sequence[Memo],
        count: int,
        history: History,
        today: str,
        seed_prefix: str,
    ) -> list[Memo]:
        """Fill a short deck from the whole eligible pool by the same priority law."""
        missing = count - len(deck)
        if missing <= 0:
            return deck
        present = {m.id for m in deck}
        rest = [m for m in eligible if m.id not in present]
        # Last rung admits clock-skewed history entries dated after today.
        ladder = [*self.ladder, -math.inf]
        return deck + sampler.pick_from_bucket(rest, missing, history, today, f"{seed_prefix}-topup", ladder)

    def build_deck(
        self,
        pool: Sequence[Memo],
        time_range: str,
        count: int,
        today: str,
        batch: int,
        history: History,
    ) -> list[Memo]:
        """Assemble up to ``count`` memos with unique ids."""
        eligible = dedupe(self.eligible(pool))
        if not eligible or count <= 0:
            return []

        seed_prefix = f"{today}-{time_range}-{count}-{batch}"
        oldest, middle, newest = self.partition(eligible)
        targets = self.allocate_targets(count)
        selected = [
            self.pick_from_bucket(oldest, targets[0], history, today, f"{seed_prefix}-oldest"),
            self.pick_from_bucket(middle, targets[1], history, today, f"{seed_prefix}-middle"),
            self.pick_from_bucket(newest, targets[2], history, today, f"{seed_prefix}-newest"),
        ]
        deck = self.interleave(selected)

        spark = self.find_spark_pair(eligible, history, today, seed_prefix)
        if spark is not None:
            deck = self.insert_spark_pair(deck, spark)

        deck = self.top_up(dedupe(deck), eligible, count, history, today, seed_prefix)
        return deck[:count]
