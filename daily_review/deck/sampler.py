"""
Bucket and priority sampling.

The pool is split into three equal-population, time-ordered buckets and
each bucket is ranked by one priority law: never shown first, then the
longest time since last shown, then the fewest views, then a seeded
tie-break. Picks sweep a relaxation ladder of no-repeat thresholds so a
small pool degrades to recent repeats instead of a short deck.
"""

import math
from collections.abc import Iterable, Sequence

from daily_review.cache.types import History
from daily_review.deck.types import ScoredMemo
from daily_review.source.types import Memo
from daily_review.utils.seeded import string_to_seed

NO_REPEAT_DAYS = 3


def relaxation_ladder(no_repeat_days: int = NO_REPEAT_DAYS) -> list[int]:
    """Minimum days-since-shown thresholds, strictest first, ending at 0."""
    return list(range(max(no_repeat_days, 0), -1, -1))


def partition(pool: Sequence[Memo]) -> tuple[list[Memo], list[Memo], list[Memo]]:
    """Split by creation time into (oldest, middle, newest) thirds of equal count."""
    ordered = sorted(pool, key=lambda m: m.created_ms)
    if not ordered:
        return [], [], []
    third = math.ceil(len(ordered) / 3)
    return ordered[:third], ordered[third:third * 2], ordered[third * 2:]


def allocate_targets(count: int) -> list[int]:
    """Split ``count`` over three buckets, remainder going to the oldest first."""
    count = max(count, 0)
    base, rem = divmod(count, 3)
    return [base + (1 if i < rem else 0) for i in range(3)]


def score(memo: Memo, history: History, today: str, seed_prefix: str) -> ScoredMemo:
    entry = history.entry(memo.id)
    return ScoredMemo(
        memo=memo,
        never_shown=entry is None or not entry.last_shown_day,
        days_since_shown=history.days_since_shown(memo.id, today),
        shown_count=entry.shown_count if entry else 0,
        tie_break=string_to_seed(f"{seed_prefix}-{memo.id}"),
    )


def rank(scored: Iterable[ScoredMemo]) -> list[ScoredMemo]:
    return sorted(scored, key=lambda s: s.rank_key)


def score_candidates(
    candidates: Iterable[Memo], history: History, today: str, seed_prefix: str
) -> list[ScoredMemo]:
    """Score and rank candidates in one pass."""
    return rank(score(m, history, today, seed_prefix) for m in candidates)


def pick_from_bucket(
    bucket: Sequence[Memo],
    target: int,
    history: History,
    today: str,
    seed_prefix: str,
    ladder: Sequence[float] | None = None,
) -> list[Memo]:
    """
    Pick up to ``target`` memos from a bucket.

    The bucket is ranked once; each threshold of the ladder then admits
    unpicked candidates shown at least that many days ago, moving to the
    next looser threshold only while still short.
    """
    if target <= 0:
        return []
    ranked = score_candidates(bucket, history, today, seed_prefix)
    picked: list[Memo] = []
    picked_ids: set[str] = set()
    for min_days in ladder if ladder is not None else relaxation_ladder():
        if len(picked) >= target:
            break
        for item in ranked:
            if len(picked) >= target:
                break
            if item.days_since_shown < min_days or item.memo.id in picked_ids:
                continue
            picked_ids.add(item.memo.id)
            picked.append(item.memo)
    return picked


def interleave(selected: Sequence[Sequence[Memo]]) -> list[Memo]:
    """Round-robin over the bucket picks, skipping exhausted buckets."""
    result: list[Memo] = []
    longest = max((len(b) for b in selected), default=0)
    for i in range(longest):
        for bucket in selected:
            if i < len(bucket):
                result.append(bucket[i])
    return result
