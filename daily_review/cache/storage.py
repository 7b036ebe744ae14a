"""Key/value storage media for persisted review state."""

import errno
import os
from abc import ABC, abstractmethod
from pathlib import Path

from loguru import logger

from daily_review.errors import StorageQuotaExceeded
from daily_review.utils.helpers import ensure_dir

_QUOTA_ERRNOS = {errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)}


class StorageBackend(ABC):
    """
    String blobs addressed by logical key.

    ``set_item`` raises StorageQuotaExceeded when the medium is out of
    capacity; every other method is best-effort.
    """

    @abstractmethod
    def get_item(self, key: str) -> str | None:
        ...

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def remove_item(self, key: str) -> None:
        ...


class MemoryStorage(StorageBackend):
    """In-process storage with an optional byte quota."""

    def __init__(self, quota_bytes: int | None = None):
        self.quota_bytes = quota_bytes
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self.quota_bytes is not None:
            used = sum(len(v.encode("utf-8")) for k, v in self._items.items() if k != key)
            if used + len(value.encode("utf-8")) > self.quota_bytes:
                raise StorageQuotaExceeded(f"writing {key!r} would exceed {self.quota_bytes} bytes")
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class FileStorage(StorageBackend):
    """
    One JSON file per key under a data directory.

    Writes go through a temp file and an atomic rename. A byte quota, when
    set, caps the total size of all stored files.
    """

    SUFFIX = ".json"

    def __init__(self, data_dir: Path | None = None, quota_bytes: int | None = None):
        if data_dir is None:
            data_dir = Path.home() / ".daily_review"
        self.data_dir = ensure_dir(data_dir)
        self.quota_bytes = quota_bytes

    def _path(self, key: str) -> Path:
        return self.data_dir / f"{key}{self.SUFFIX}"

    def get_item(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to read {path}: {e}")
            return None

    def set_item(self, key: str, value: str) -> None:
        data = value.encode("utf-8")
        if self.quota_bytes is not None:
            used = sum(
                p.stat().st_size for p in self.data_dir.glob(f"*{self.SUFFIX}") if p.stem != key
            )
            if used + len(data) > self.quota_bytes:
                raise StorageQuotaExceeded(f"writing {key!r} would exceed {self.quota_bytes} bytes")

        path = self._path(key)
        tmp = path.with_suffix(path.suffix + ".tmp")
        try:
            tmp.write_bytes(data)
            os.replace(tmp, path)
        except OSError as e:
            tmp.unlink(missing_ok=True)
            if e.errno in _QUOTA_ERRNOS:
                raise StorageQuotaExceeded(f"no space left writing {key!r}") from e
            raise

    def remove_item(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to remove {key}: {e}")
