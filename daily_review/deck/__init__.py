"""Deck generation: pool acquisition, sampling, spark pairs and assembly."""

from daily_review.deck.acquisition import PoolAcquirer, desired_pool_size
from daily_review.deck.builder import DeckBuilder, dedupe
from daily_review.deck.engine import ReviewEngine
from daily_review.deck.sampler import (
    allocate_targets,
    interleave,
    partition,
    pick_from_bucket,
    rank,
    relaxation_ladder,
    score,
)
from daily_review.deck.session import ReviewSession
from daily_review.deck.spark import find_spark_pair
from daily_review.deck.types import DeckResult, DeckState, ScoredMemo

__all__ = [
    "DeckBuilder",
    "DeckResult",
    "DeckState",
    "PoolAcquirer",
    "ReviewEngine",
    "ReviewSession",
    "ScoredMemo",
    "allocate_targets",
    "dedupe",
    "desired_pool_size",
    "find_spark_pair",
    "interleave",
    "partition",
    "pick_from_bucket",
    "rank",
    "relaxation_ladder",
    "score",
]
