"""TTL-bounded artifact cache and mutation-driven invalidation."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from llmready.errors import RateLimitedError
from llmready.items import INDEX_KINDS, ArtifactKind, CacheEntry, MutationKind

if TYPE_CHECKING:
    from collections.abc import Callable

    from llmready.items import ContentMutationEvent

logger = logging.getLogger(__name__)

CacheKey = tuple[ArtifactKind, int | None]


@dataclass(frozen=True)
class CacheStats:
    entries: int
    item_entries: int
    total_bytes: int


class CacheStore(Protocol):
    """Keyed artifact storage with per-entry expiry."""

    def get(self, kind: ArtifactKind, item_id: int | None = None) -> str | None:
        ...

    def set(self, kind: ArtifactKind, item_id: int | None, value: str, ttl: int) -> None:
        ...

    def delete(self, kind: ArtifactKind, item_id: int | None = None) -> None:
        ...

    def invalidate_item(self, item_id: int) -> None:
        ...

    def invalidate_all(self) -> None:
        ...

    def stats(self) -> CacheStats:
        ...


class InMemoryCacheStore:
    """Thread-safe in-process cache.

    Entries are whole strings swapped under a lock, so a reader sees either
    a complete artifact or a miss.  ``ttl <= 0`` makes :meth:`set` a no-op.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[CacheKey, CacheEntry] = {}

    def get(self, kind: ArtifactKind, item_id: int | None = None) -> str | None:
        key = (kind, item_id)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                logger.debug("Cache expired: %s/%s", kind.value, item_id)
                return None
            return entry.value

    def set(self, kind: ArtifactKind, item_id: int | None, value: str, ttl: int) -> None:
        if ttl <= 0:
            return
        key = (kind, item_id)
        entry = CacheEntry(key=key, value=value, expires_at=self._clock() + ttl)
        with self._lock:
            self._entries[key] = entry

    def delete(self, kind: ArtifactKind, item_id: int | None = None) -> None:
        with self._lock:
            self._entries.pop((kind, item_id), None)

    def invalidate_item(self, item_id: int) -> None:
        """Drop the item's artifact and every index that may list it."""
        with self._lock:
            self._entries.pop((ArtifactKind.ITEM, item_id), None)
            for kind in INDEX_KINDS:
                self._entries.pop((kind, None), None)
        logger.debug("Cache invalidated for item %d", item_id)

    def invalidate_all(self) -> None:
        with self._lock:
            self._entries = {}
        logger.info("Cache flushed")

    def stats(self) -> CacheStats:
        now = self._clock()
        with self._lock:
            live = [e for e in self._entries.values() if e.expires_at > now]
        items = [e for e in live if e.key[0] is ArtifactKind.ITEM]
        return CacheStats(
            entries=len(live),
            item_entries=len(items),
            total_bytes=sum(len(e.value.encode("utf-8")) for e in items),
        )


# ---------------------------------------------------------------------------
# Event-driven invalidation
# ---------------------------------------------------------------------------

class CacheInvalidator:
    """Translate host content-mutation events into cache invalidation."""

    def __init__(self, store: CacheStore) -> None:
        self.store = store

    def handle(self, event: ContentMutationEvent) -> bool:
        """Apply *event*; return True when something was invalidated."""
        if event.is_revision and event.kind is not MutationKind.DELETED:
            return False

        if event.kind is MutationKind.SAVED and event.is_autosave:
            return False

        if event.kind is MutationKind.STATUS_CHANGED and event.old_status == event.new_status:
            return False

        logger.debug("Invalidating item %d on %s", event.item_id, event.kind.value)
        self.store.invalidate_item(event.item_id)
        return True


class FlushGuard:
    """Reject manual full flushes repeated within *cooldown* seconds."""

    def __init__(self, cooldown: float = 10.0, clock: Callable[[], float] = time.monotonic) -> None:
        self._cooldown = cooldown
        self._clock = clock
        self._lock = threading.Lock()
        self._last_flush: float | None = None

    def flush(self, store: CacheStore) -> None:
        with self._lock:
            now = self._clock()
            if self._last_flush is not None:
                elapsed = now - self._last_flush
                if elapsed < self._cooldown:
                    raise RateLimitedError(
                        "Cache was flushed recently; try again shortly.",
                        retry_after=self._cooldown - elapsed,
                    )
            self._last_flush = now
        store.invalidate_all()


# ---------------------------------------------------------------------------
# File-backed store
# ---------------------------------------------------------------------------

class FileCacheStore:
    """One JSON file per artifact under *directory*.

    Writes go to a temp file that is renamed into place, so a concurrent
    reader sees the previous entry, the new one, or a miss.  Unreadable
    files count as misses.
    """

    def __init__(self, directory: str | Path, clock: Callable[[], float] = time.time) -> None:
        self.directory = Path(directory)
        self._clock = clock
        self._lock = threading.Lock()

    def _path(self, kind: ArtifactKind, item_id: int | None) -> Path:
        name = kind.value if item_id is None else f"{kind.value}-{item_id}"
        return self.directory / f"{name}.json"

    def _read(self, path: Path) -> dict[str, Any] | None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            logger.debug("Unreadable cache file %s: %s", path, exc)
            return None
        if not isinstance(data, dict) or not isinstance(data.get("value"), str):
            return None
        return data

    def get(self, kind: ArtifactKind, item_id: int | None = None) -> str | None:
        path = self._path(kind, item_id)
        data = self._read(path)
        if data is None:
            return None
        if float(data.get("expires_at", 0)) <= self._clock():
            path.unlink(missing_ok=True)
            logger.debug("Cache expired: %s/%s", kind.value, item_id)
            return None
        return data["value"]

    def set(self, kind: ArtifactKind, item_id: int | None, value: str, ttl: int) -> None:
        if ttl <= 0:
            return
        path = self._path(kind, item_id)
        payload = json.dumps({"value": value, "expires_at": self._clock() + ttl}, ensure_ascii=False)
        with self._lock:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(payload)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise

    def delete(self, kind: ArtifactKind, item_id: int | None = None) -> None:
        self._path(kind, item_id).unlink(missing_ok=True)

    def invalidate_item(self, item_id: int) -> None:
        self.delete(ArtifactKind.ITEM, item_id)
        for kind in INDEX_KINDS:
            self.delete(kind)
        logger.debug("Cache invalidated for item %d", item_id)

    def invalidate_all(self) -> None:
        with self._lock:
            if self.directory.exists():
                for path in self.directory.glob("*.json"):
                    path.unlink(missing_ok=True)
        logger.info("Cache flushed (%s)", self.directory)

    def stats(self) -> CacheStats:
        entries = 0
        item_entries = 0
        total_bytes = 0
        now = self._clock()
        if not self.directory.exists():
            return CacheStats(0, 0, 0)
        for path in self.directory.glob("*.json"):
            data = self._read(path)
            if data is None or float(data.get("expires_at", 0)) <= now:
                continue
            entries += 1
            if path.stem.startswith(f"{ArtifactKind.ITEM.value}-"):
                item_entries += 1
                total_bytes += len(data["value"].encode("utf-8"))
        return CacheStats(entries, item_entries, total_bytes)
