"""Layered review cache: pool, decks, history, settings and batch."""

import json
from typing import Any, Callable

from loguru import logger
from pydantic import ValidationError

from daily_review.cache.storage import StorageBackend
from daily_review.cache.types import (
    SCHEMA_VERSION,
    BatchState,
    Deck,
    DeckStore,
    History,
    HistoryEntry,
    PoolRecord,
    Settings,
    dump,
)
from daily_review.config.schema import ReviewConfig
from daily_review.errors import MalformedStoredState, StorageQuotaExceeded
from daily_review.source.types import Memo
from daily_review.utils.helpers import now_ms

SETTINGS_KEY = "settings"
POOL_KEY = "pool"
DECKS_KEY = "decks"
HISTORY_KEY = "history"
BATCH_KEY = "batch"


class ReviewCache:
    """
    Owns all persisted review state.

    Reads never raise: absent, corrupt, expired or future-versioned blobs
    read as a miss. Writes are best-effort; when the medium runs out of
    space the cache frees room step by step (older decks, then the pool,
    then old history) and retries, dropping the write if nothing helps.

    Mutation is read-modify-write without locking, so one cache must only
    be driven from a single task at a time.
    """

    def __init__(
        self,
        storage: StorageBackend,
        pool_ttl_ms: int = 6 * 60 * 60 * 1000,
        deck_cache_size: int = 10,
        history_max_items: int = 5000,
        quota_keep_decks: int = 3,
        quota_history_items: int = 1000,
        clock: Callable[[], int] = now_ms,
    ):
        self.storage = storage
        self.pool_ttl_ms = pool_ttl_ms
        self.deck_cache_size = deck_cache_size
        self.history_max_items = history_max_items
        self.quota_keep_decks = quota_keep_decks
        self.quota_history_items = quota_history_items
        self._clock = clock

    @classmethod
    def from_config(cls, config: ReviewConfig, storage: StorageBackend, **kwargs: Any) -> "ReviewCache":
        return cls(
            storage,
            pool_ttl_ms=config.pool.ttl_ms,
            deck_cache_size=config.deck.cache_size,
            history_max_items=config.deck.history_max_items,
            quota_keep_decks=config.deck.quota_keep_decks,
            quota_history_items=config.deck.quota_history_items,
            **kwargs,
        )

    # ── Pool ──────────────────────────────────────────────────────────

    def get_pool(self, time_range: str) -> PoolRecord | None:
        """Cached pool for ``time_range`` if present and younger than the TTL."""
        data = self._read(POOL_KEY)
        if data is None:
            return None
        if "fetchedAt" not in data and isinstance(data.get("timestamp"), (int, float)):
            data["fetchedAt"] = int(data["timestamp"])
        pool = self._parse(PoolRecord, data, POOL_KEY)
        if pool is None or pool.time_range != time_range:
            return None
        if self._clock() - pool.fetched_at > self.pool_ttl_ms:
            logger.debug(f"Pool cache for {time_range} expired")
            return None
        return pool

    def put_pool(self, time_range: str, memos: list[Memo]) -> bool:
        record = PoolRecord(time_range=time_range, memos=list(memos), fetched_at=self._clock())
        return self._write(POOL_KEY, dump(record))

    def invalidate_pool(self) -> None:
        self.storage.remove_item(POOL_KEY)

    def replace_pool_memo(self, memo: Memo) -> bool:
        """Swap an edited memo into the cached pool, keeping its position and age."""
        record = self._load_any_pool()
        if record is None:
            return False
        memos = [memo if m.id == memo.id else m for m in record.memos]
        if memos == record.memos:
            return False
        return self._write(POOL_KEY, dump(record.model_copy(update={"memos": memos})))

    def remove_pool_memo(self, memo_id: str) -> bool:
        record = self._load_any_pool()
        if record is None:
            return False
        memos = [m for m in record.memos if m.id != memo_id]
        if len(memos) == len(record.memos):
            return False
        return self._write(POOL_KEY, dump(record.model_copy(update={"memos": memos})))

    def _load_any_pool(self) -> PoolRecord | None:
        data = self._read(POOL_KEY)
        return self._parse(PoolRecord, data, POOL_KEY) if data is not None else None

    # ── Decks ─────────────────────────────────────────────────────────

    def get_deck(self, key: str) -> Deck | None:
        deck = self._load_deck_store().decks.get(key)
        if deck is None or deck.key != key:
            return None
        return deck

    def put_deck(self, deck: Deck) -> bool:
        """Store a deck, keeping only the most recently created ones."""
        store = self._load_deck_store()
        store.decks[deck.key] = deck
        store.last_key = deck.key
        self._trim_decks(store, self.deck_cache_size, keep=deck.key)
        return self._write(DECKS_KEY, dump(store))

    def replace_deck_memo(self, memo: Memo) -> int:
        """Swap an edited memo into every cached deck holding it; returns decks touched."""
        store = self._load_deck_store()
        touched = 0
        for key, deck in store.decks.items():
            if memo.id not in deck.memo_ids:
                continue
            memos = [memo if m.id == memo.id else m for m in deck.memos]
            store.decks[key] = deck.model_copy(update={"memos": memos})
            touched += 1
        if touched:
            self._write(DECKS_KEY, dump(store))
        return touched

    def clear_decks(self) -> None:
        self.storage.remove_item(DECKS_KEY)

    def _load_deck_store(self) -> DeckStore:
        data = self._read(DECKS_KEY)
        if data is None:
            return DeckStore()

        # Single-deck layout from older releases: {key, memos, timestamp}
        if isinstance(data.get("key"), str) and isinstance(data.get("memos"), list):
            legacy_key = data["key"]
            day, time_range, count, batch = _split_deck_key(legacy_key)
            data = {
                "decks": {
                    legacy_key: {
                        "key": legacy_key,
                        "day": day,
                        "timeRange": time_range,
                        "count": count,
                        "batch": batch,
                        "memos": data["memos"],
                        "createdAt": data.get("timestamp") or self._clock(),
                    }
                },
                "lastKey": legacy_key,
            }

        decks: dict[str, Deck] = {}
        raw_decks = data.get("decks")
        if isinstance(raw_decks, dict):
            for key, raw in raw_decks.items():
                if not isinstance(raw, dict):
                    continue
                if "createdAt" not in raw and isinstance(raw.get("timestamp"), (int, float)):
                    raw = {**raw, "createdAt": int(raw["timestamp"])}
                deck = self._parse(Deck, raw, f"{DECKS_KEY}[{key}]")
                if deck is not None:
                    decks[key] = deck
        last_key = data.get("lastKey")
        return DeckStore(decks=decks, last_key=last_key if isinstance(last_key, str) else "")

    @staticmethod
    def _trim_decks(store: DeckStore, limit: int, keep: str | None = None) -> int:
        ranked = sorted(
            store.decks.values(),
            key=lambda d: (d.key == keep, d.created_at),
            reverse=True,
        )
        dropped = [d.key for d in ranked[limit:]]
        for key in dropped:
            del store.decks[key]
        return len(dropped)

    # ── History ───────────────────────────────────────────────────────

    def get_history(self) -> History:
        """A fresh snapshot of review history; empty when absent or unreadable."""
        data = self._read(HISTORY_KEY)
        if data is None:
            return History()
        raw_items = data.get("items")
        if not isinstance(raw_items, dict):
            logger.warning("Discarding review history without an items map")
            return History()

        items: dict[str, HistoryEntry] = {}
        for memo_id, raw in raw_items.items():
            if not isinstance(raw, dict):
                continue
            try:
                items[memo_id] = HistoryEntry.model_validate(raw)
            except ValidationError:
                logger.debug(f"Skipping invalid history entry for {memo_id}")
        return History(items=items)

    def put_history(self, history: History) -> bool:
        history.prune(self.history_max_items)
        return self._write(HISTORY_KEY, dump(history))

    def mark_viewed(self, memo_id: str, day: str) -> HistoryEntry | None:
        """Record one view of ``memo_id`` on ``day``."""
        if not memo_id:
            return None
        history = self.get_history()
        entry = history.record_view(memo_id, day)
        self.put_history(history)
        return entry

    # ── Settings & batch ──────────────────────────────────────────────

    def get_settings(self, default_time_range: str, default_count: int) -> Settings:
        data = self._read(SETTINGS_KEY)
        settings = self._parse(Settings, data, SETTINGS_KEY) if data is not None else None
        return settings or Settings(time_range=default_time_range, count=default_count)

    def put_settings(self, settings: Settings) -> bool:
        return self._write(SETTINGS_KEY, dump(settings))

    def get_batch(self, day: str) -> int:
        """Shuffle batch for ``day``; any other day's batch reads as 0."""
        data = self._read(BATCH_KEY)
        state = self._parse(BatchState, data, BATCH_KEY) if data is not None else None
        if state is None or state.day != day:
            return 0
        return state.batch

    def put_batch(self, day: str, batch: int) -> bool:
        return self._write(BATCH_KEY, dump(BatchState(day=day, batch=batch)))

    def find_memo(self, memo_id: str) -> Memo | None:
        """Look a memo up in the cached pool, then in cached decks."""
        pool = self._load_any_pool()
        for memo in pool.memos if pool else []:
            if memo.id == memo_id:
                return memo
        for deck in self._load_deck_store().decks.values():
            for memo in deck.memos:
                if memo.id == memo_id:
                    return memo
        return None

    def clear(self) -> None:
        """Forget pool, decks and batch; settings and history stay."""
        self.invalidate_pool()
        self.clear_decks()
        self.storage.remove_item(BATCH_KEY)

    # ── Internal helpers ──────────────────────────────────────────────

    def _read(self, key: str) -> dict[str, Any] | None:
        raw = self.storage.get_item(key)
        if raw is None:
            return None
        try:
            data = self._decode(key, raw)
        except MalformedStoredState as e:
            logger.warning(f"Ignoring stored {key}: {e}")
            return None
        version = data.get("schemaVersion")
        if isinstance(version, int) and version > SCHEMA_VERSION:
            logger.warning(f"Ignoring stored {key} with newer schema version {version}")
            return None
        return data

    @staticmethod
    def _decode(key: str, raw: str) -> dict[str, Any]:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise MalformedStoredState(f"{key} is not valid JSON") from e
        if not isinstance(data, dict):
            raise MalformedStoredState(f"{key} is not a JSON object")
        return data

    @staticmethod
    def _parse(model: type, data: dict[str, Any], label: str) -> Any:
        payload = {k: v for k, v in data.items() if k != "schemaVersion"}
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"Ignoring malformed {label}: {e.error_count()} validation errors")
            return None

    def _try_set(self, key: str, value: str) -> bool:
        try:
            self.storage.set_item(key, value)
            return True
        except StorageQuotaExceeded:
            return False

    def _write(self, key: str, payload: dict[str, Any]) -> bool:
        value = json.dumps(payload, ensure_ascii=False)
        if self._try_set(key, value):
            return True

        logger.warning(f"Storage quota exceeded writing {key}, freeing space")
        for name, step in self._degradation_steps():
            if not step():
                continue
            if self._try_set(key, value):
                logger.info(f"Wrote {key} after {name}")
                return True

        logger.error(f"Dropped write of {key}: storage quota exhausted")
        return False

    def _degradation_steps(self) -> list[tuple[str, Callable[[], bool]]]:
        """Space-freeing steps in the order they are tried."""
        return [
            ("trimming decks", self._keep_recent_decks),
            ("dropping pool", self._drop_pool),
            ("pruning history", self._prune_history_hard),
        ]

    def _keep_recent_decks(self) -> bool:
        store = self._load_deck_store()
        if not self._trim_decks(store, self.quota_keep_decks):
            return False
        self._try_set(DECKS_KEY, json.dumps(dump(store), ensure_ascii=False))
        return True

    def _drop_pool(self) -> bool:
        if self.storage.get_item(POOL_KEY) is None:
            return False
        self.storage.remove_item(POOL_KEY)
        return True

    def _prune_history_hard(self) -> bool:
        history = self.get_history()
        if not history.prune(self.quota_history_items):
            return False
        self._try_set(HISTORY_KEY, json.dumps(dump(history), ensure_ascii=False))
        return True


def _split_deck_key(key: str) -> tuple[str, str, int, int]:
    """Recover (day, time range, count, batch) from a deck key."""
    try:
        day, rest = key[:10], key[11:]
        time_range, count, batch = rest.rsplit("-", 2)
        return day, time_range, int(count), int(batch)
    except ValueError:
        return key[:10], "", 0, 0
