"""Spark pair: two memos sharing a tag, written as far apart as possible."""

from collections.abc import Sequence

from daily_review.cache.types import History
from daily_review.deck.sampler import NO_REPEAT_DAYS
from daily_review.source.types import Memo
from daily_review.utils.seeded import string_to_seed


def find_spark_pair(
    pool: Sequence[Memo],
    history: History,
    today: str,
    seed_prefix: str,
    no_repeat_days: int = NO_REPEAT_DAYS,
) -> tuple[Memo, Memo] | None:
    """
    Return (earliest, latest) members of one shared tag, or None.

    Memos shown within the no-repeat window are ignored. When several
    tags qualify, the one with the smallest seeded hash wins, so the
    choice is stable for a seed and varies across days and batches.
    """
    by_tag: dict[str, list[Memo]] = {}
    for memo in pool:
        if history.days_since_shown(memo.id, today) < no_repeat_days:
            continue
        for tag in memo.tags:
            if tag:
                by_tag.setdefault(tag, []).append(memo)

    best: tuple[int, Memo, Memo] | None = None
    for tag, members in by_tag.items():
        if len(members) < 2:
            continue
        oldest = newest = members[0]
        for memo in members[1:]:
            if memo.created_ms < oldest.created_ms:
                oldest = memo
            if memo.created_ms > newest.created_ms:
                newest = memo
        if oldest.id == newest.id:
            continue
        tie = string_to_seed(f"{seed_prefix}-tag-{tag}")
        if best is None or tie < best[0]:
            best = (tie, oldest, newest)

    if best is None:
        return None
    return best[1], best[2]
