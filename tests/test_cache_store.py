"""Tests for the layered review cache."""

import json
from datetime import date, timedelta

from conftest import TODAY

from daily_review.cache import MemoryStorage, ReviewCache
from daily_review.cache.store import DECKS_KEY, HISTORY_KEY, POOL_KEY
from daily_review.cache.types import SCHEMA_VERSION, Deck, History
from daily_review.errors import StorageQuotaExceeded

HOUR_MS = 60 * 60 * 1000


def _deck(make_memo, key_batch: int, created_at: int, n: int = 3) -> Deck:
    return Deck(
        key=Deck.make_key(TODAY, "all", n, key_batch),
        day=TODAY,
        time_range="all",
        count=n,
        batch=key_batch,
        memos=[make_memo(f"memos/{key_batch}-{i}") for i in range(n)],
        created_at=created_at,
    )


# ============================================================================
# Pool
# ============================================================================


class TestPool:
    def test_round_trip(self, cache, make_memo):
        memos = [make_memo("a", tags=("x",)), make_memo("b")]
        assert cache.put_pool("6months", memos) is True
        pool = cache.get_pool("6months")
        assert pool.memos == memos
        assert pool.schema_version == SCHEMA_VERSION

    def test_other_time_range_is_a_miss(self, cache, make_memo):
        cache.put_pool("6months", [make_memo("a")])
        assert cache.get_pool("all") is None

    def test_expires_after_ttl(self, cache, clock, make_memo):
        cache.put_pool("all", [make_memo("a")])
        clock.advance(6 * HOUR_MS)
        assert cache.get_pool("all") is not None
        clock.advance(1)
        assert cache.get_pool("all") is None

    def test_legacy_timestamp_field(self, cache, storage, clock):
        storage.set_item(POOL_KEY, json.dumps({
            "timeRange": "all",
            "memos": [{"id": "memos/1", "content": "hi"}],
            "timestamp": clock(),
        }))
        pool = cache.get_pool("all")
        assert [m.id for m in pool.memos] == ["memos/1"]

    def test_corrupt_blob_is_a_miss(self, cache, storage):
        storage.set_item(POOL_KEY, "{not json")
        assert cache.get_pool("all") is None
        storage.set_item(POOL_KEY, json.dumps(["a", "list"]))
        assert cache.get_pool("all") is None
        storage.set_item(POOL_KEY, json.dumps({"timeRange": "all", "memos": "nope", "fetchedAt": 1}))
        assert cache.get_pool("all") is None

    def test_newer_schema_is_ignored(self, cache, storage, clock):
        storage.set_item(POOL_KEY, json.dumps({
            "schemaVersion": SCHEMA_VERSION + 1,
            "timeRange": "all",
            "memos": [],
            "fetchedAt": clock(),
        }))
        assert cache.get_pool("all") is None

    def test_replace_and_remove_memo(self, cache, make_memo):
        cache.put_pool("all", [make_memo("a"), make_memo("b")])
        assert cache.replace_pool_memo(make_memo("b", content="edited")) is True
        assert [m.content for m in cache.get_pool("all").memos] == ["memo a", "edited"]
        assert cache.replace_pool_memo(make_memo("zzz")) is False

        assert cache.remove_pool_memo("a") is True
        assert [m.id for m in cache.get_pool("all").memos] == ["b"]
        assert cache.remove_pool_memo("a") is False

    def test_invalidate(self, cache, make_memo):
        cache.put_pool("all", [make_memo("a")])
        cache.invalidate_pool()
        assert cache.get_pool("all") is None


# ============================================================================
# Decks
# ============================================================================


class TestDecks:
    def test_round_trip_keeps_order(self, cache, make_memo):
        deck = _deck(make_memo, 0, created_at=1)
        cache.put_deck(deck)
        loaded = cache.get_deck(deck.key)
        assert loaded.memo_ids == deck.memo_ids
        assert loaded == deck

    def test_miss(self, cache):
        assert cache.get_deck("2026-02-23-all-8-0") is None

    def test_keeps_most_recent_decks(self, cache, make_memo):
        decks = [_deck(make_memo, b, created_at=100 + b) for b in range(11)]
        for deck in decks:
            cache.put_deck(deck)
        assert cache.get_deck(decks[0].key) is None
        assert all(cache.get_deck(d.key) is not None for d in decks[1:])

    def test_newly_written_deck_survives_trim(self, make_memo):
        cache = ReviewCache(MemoryStorage(), deck_cache_size=2)
        cache.put_deck(_deck(make_memo, 0, created_at=500))
        cache.put_deck(_deck(make_memo, 1, created_at=400))
        late = _deck(make_memo, 2, created_at=1)
        cache.put_deck(late)
        assert cache.get_deck(late.key) is not None
        assert cache.get_deck(_deck(make_memo, 1, created_at=0).key) is None

    def test_legacy_single_deck_layout(self, cache, storage):
        key = "2026-02-20-6months-8-2"
        storage.set_item(DECKS_KEY, json.dumps({
            "key": key,
            "memos": [{"id": "memos/1", "content": "x"}, {"id": "memos/2", "content": "y"}],
            "timestamp": 1234,
        }))
        deck = cache.get_deck(key)
        assert deck.memo_ids == ["memos/1", "memos/2"]
        assert (deck.day, deck.time_range, deck.count, deck.batch) == ("2026-02-20", "6months", 8, 2)
        assert deck.created_at == 1234

    def test_bad_entries_are_skipped(self, cache, storage, make_memo):
        good = _deck(make_memo, 0, created_at=1)
        storage.set_item(DECKS_KEY, json.dumps({
            "decks": {
                good.key: good.model_dump(mode="json", by_alias=True),
                "broken": {"key": "broken"},
                "junk": 7,
            },
        }))
        assert cache.get_deck(good.key) is not None
        assert cache.get_deck("broken") is None

    def test_replace_deck_memo(self, cache, make_memo):
        deck = _deck(make_memo, 0, created_at=1)
        cache.put_deck(deck)
        edited = make_memo(deck.memos[1].id, content="edited")
        assert cache.replace_deck_memo(edited) == 1
        loaded = cache.get_deck(deck.key)
        assert loaded.memo_ids == deck.memo_ids
        assert loaded.memos[1].content == "edited"
        assert cache.replace_deck_memo(make_memo("unknown")) == 0

    def test_find_memo(self, cache, make_memo):
        cache.put_pool("all", [make_memo("in-pool")])
        cache.put_deck(_deck(make_memo, 0, created_at=1))
        assert cache.find_memo("in-pool").id == "in-pool"
        assert cache.find_memo("memos/0-2").id == "memos/0-2"
        assert cache.find_memo("missing") is None


# ============================================================================
# History
# ============================================================================


class TestHistory:
    def test_mark_viewed_counts_views(self, cache):
        cache.mark_viewed("memos/1", "2026-02-20")
        entry = cache.mark_viewed("memos/1", TODAY)
        assert entry.shown_count == 2
        assert entry.last_shown_day == TODAY
        assert cache.get_history().days_since_shown("memos/1", TODAY) == 0

    def test_last_shown_day_never_moves_back(self, cache):
        cache.mark_viewed("memos/1", TODAY)
        entry = cache.mark_viewed("memos/1", "2026-01-01")
        assert entry.last_shown_day == TODAY
        assert entry.shown_count == 2

    def test_empty_id_is_ignored(self, cache):
        assert cache.mark_viewed("", TODAY) is None
        assert cache.get_history().items == {}

    def test_prunes_oldest_days_first(self, storage):
        cache = ReviewCache(storage, history_max_items=3)
        for memo_id, day in [("a", "2026-01-01"), ("b", "2026-02-01"), ("c", "2026-01-15"), ("d", "2026-02-10")]:
            cache.mark_viewed(memo_id, day)
        assert set(cache.get_history().items) == {"b", "c", "d"}

    def test_invalid_entries_are_skipped(self, cache, storage):
        storage.set_item(HISTORY_KEY, json.dumps({
            "items": {
                "ok": {"lastShownDay": "2026-02-01", "shownCount": 2},
                "negative": {"lastShownDay": "2026-02-01", "shownCount": -1},
                "junk": "x",
            },
        }))
        assert set(cache.get_history().items) == {"ok"}

    def test_history_without_items_map(self, cache, storage):
        storage.set_item(HISTORY_KEY, json.dumps({"items": []}))
        assert cache.get_history().items == {}

    def test_unparseable_day_counts_as_never_shown(self):
        history = History.model_validate({"items": {"m": {"lastShownDay": "someday", "shownCount": 1}}})
        assert history.days_since_shown("m", TODAY) == float("inf")


# ============================================================================
# Settings, batch and clear
# ============================================================================


def test_settings_default_and_persist(cache):
    settings = cache.get_settings("6months", 8)
    assert (settings.time_range, settings.count) == ("6months", 8)
    cache.put_settings(settings.model_copy(update={"time_range": "all", "count": 12}))
    settings = cache.get_settings("6months", 8)
    assert (settings.time_range, settings.count) == ("all", 12)


def test_batch_resets_on_new_day(cache):
    assert cache.get_batch(TODAY) == 0
    cache.put_batch(TODAY, 3)
    assert cache.get_batch(TODAY) == 3
    assert cache.get_batch("2026-02-24") == 0


def test_clear_keeps_settings_and_history(cache, make_memo):
    cache.put_pool("all", [make_memo("a")])
    cache.put_deck(_deck(make_memo, 0, created_at=1))
    cache.put_batch(TODAY, 2)
    cache.put_settings(cache.get_settings("all", 4))
    cache.mark_viewed("a", TODAY)

    cache.clear()
    assert cache.get_pool("all") is None
    assert cache.get_deck(_deck(make_memo, 0, created_at=1).key) is None
    assert cache.get_batch(TODAY) == 0
    assert cache.get_settings("6months", 8).count == 4
    assert "a" in cache.get_history().items


# ============================================================================
# Quota degradation
# ============================================================================


class PoolBlockedStorage(MemoryStorage):
    """Refuses writes to ``blocked_key`` while a pool blob exists."""

    def __init__(self, blocked_key: str):
        super().__init__()
        self.blocked_key = blocked_key
        self.armed = False

    def set_item(self, key, value):
        if self.armed and key == self.blocked_key and POOL_KEY in self._items:
            raise StorageQuotaExceeded("full")
        super().set_item(key, value)


class FullStorage(MemoryStorage):
    def __init__(self):
        super().__init__()
        self.full = False

    def set_item(self, key, value):
        if self.full:
            raise StorageQuotaExceeded("full")
        super().set_item(key, value)


class TestQuotaDegradation:
    def test_frees_space_in_order_then_writes(self, clock, make_memo):
        storage = PoolBlockedStorage(HISTORY_KEY)
        cache = ReviewCache(storage, clock=clock)
        cache.put_pool("all", [make_memo("a")])
        for b in range(5):
            cache.put_deck(_deck(make_memo, b, created_at=b))
        storage.armed = True

        assert cache.mark_viewed("a", TODAY) is not None
        assert cache.get_history().items["a"].shown_count == 1
        assert storage.get_item(POOL_KEY) is None
        kept = [b for b in range(5) if cache.get_deck(_deck(make_memo, b, created_at=0).key) is not None]
        assert kept == [2, 3, 4]

    def test_prunes_history_when_nothing_else_helps(self, make_memo):
        storage = MemoryStorage()
        cache = ReviewCache(storage, quota_history_items=2)
        for i in range(40):
            cache.mark_viewed(f"m{i}", (date(2026, 1, 1) + timedelta(days=i)).isoformat())
        current = len(storage.get_item(HISTORY_KEY).encode("utf-8"))
        storage.quota_bytes = current + 10

        assert cache.put_deck(_deck(make_memo, 0, created_at=1, n=2)) is True
        assert set(cache.get_history().items) == {"m38", "m39"}

    def test_drops_write_without_raising(self, make_memo):
        storage = FullStorage()
        cache = ReviewCache(storage)
        storage.full = True
        assert cache.put_pool("all", [make_memo("a")]) is False
        assert cache.put_deck(_deck(make_memo, 0, created_at=1)) is False
        assert cache.get_pool("all") is None
