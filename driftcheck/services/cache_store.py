"""Content-addressed, TTL-based memoization for remote generation calls.

Every remote call (query planning, analysis, fix generation) goes through
``CacheStore.get_or_compute``. Entries are keyed by a fingerprint over the
semantically relevant inputs plus the prompt version, so a prompt change
invalidates old results. Concurrent requests for the same fingerprint share
the first caller's in-flight call instead of issuing a second one.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import os
import tempfile
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from loguru import logger

STATS_FILENAME = "_stats.json"


def fingerprint(kind: str, prompt_version: str, *parts: Any) -> str:
    """Deterministic hash over a call kind, its prompt version and its inputs."""
    material = json.dumps(
        [kind, prompt_version, list(parts)],
        sort_keys=True,
        ensure_ascii=False,
        separators=(",", ":"),
        default=str,
    )
    return hashlib.sha256(material.encode("utf-8")).hexdigest()[:32]


@dataclass
class CacheEntry:
    key: str
    payload: Any
    created_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.created_at > self.ttl


@dataclass
class CacheStats:
    entries: int
    size_bytes: int
    hits: int
    misses: int
    path: Path | None = None

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


class CacheBackend(ABC):
    """Keyed storage for cache entries and hit/miss counters."""

    @abstractmethod
    def read(self, key: str) -> CacheEntry | None: ...

    @abstractmethod
    def write(self, entry: CacheEntry) -> None: ...

    @abstractmethod
    def delete(self, key: str) -> None: ...

    @abstractmethod
    def clear(self) -> None: ...

    @abstractmethod
    def usage(self) -> tuple[int, int]:
        """Return (entry count, total size in bytes)."""

    @abstractmethod
    def read_counters(self) -> tuple[int, int]: ...

    @abstractmethod
    def write_counters(self, hits: int, misses: int) -> None: ...

    @property
    def location(self) -> Path | None:
        return None


class MemoryCacheBackend(CacheBackend):
    """Process-local backend, used by tests and when no directory is available."""

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._counters = (0, 0)

    def read(self, key: str) -> CacheEntry | None:
        return self._entries.get(key)

    def write(self, entry: CacheEntry) -> None:
        self._entries[entry.key] = entry

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()
        self._counters = (0, 0)

    def usage(self) -> tuple[int, int]:
        size = sum(len(json.dumps(asdict(e), default=str)) for e in self._entries.values())
        return len(self._entries), size

    def read_counters(self) -> tuple[int, int]:
        return self._counters

    def write_counters(self, hits: int, misses: int) -> None:
        self._counters = (hits, misses)


class FileCacheBackend(CacheBackend):
    """One JSON file per entry under a cache directory."""

    def __init__(self, directory: Path) -> None:
        self._dir = directory

    @property
    def location(self) -> Path | None:
        return self._dir

    def _path(self, key: str) -> Path:
        return self._dir / f"{key}.json"

    def _write_json(self, path: Path, data: dict[str, Any]) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self._dir, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False)
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def read(self, key: str) -> CacheEntry | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return CacheEntry(
                key=data["key"],
                payload=data["payload"],
                created_at=float(data["created_at"]),
                ttl=float(data["ttl"]),
            )
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.debug(f"Discarding unreadable cache entry {path.name}: {e}")
            path.unlink(missing_ok=True)
            return None

    def write(self, entry: CacheEntry) -> None:
        self._write_json(self._path(entry.key), asdict(entry))

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def clear(self) -> None:
        if not self._dir.exists():
            return
        for item in self._dir.iterdir():
            if item.is_file():
                item.unlink(missing_ok=True)

    def usage(self) -> tuple[int, int]:
        if not self._dir.exists():
            return 0, 0
        entries = 0
        size_bytes = 0
        for item in self._dir.glob("*.json"):
            if item.name == STATS_FILENAME or not item.is_file():
                continue
            entries += 1
            size_bytes += item.stat().st_size
        return entries, size_bytes

    def read_counters(self) -> tuple[int, int]:
        path = self._dir / STATS_FILENAME
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return int(data.get("hits", 0)), int(data.get("misses", 0))
        except (OSError, ValueError, TypeError):
            return 0, 0

    def write_counters(self, hits: int, misses: int) -> None:
        try:
            self._write_json(self._dir / STATS_FILENAME, {"hits": hits, "misses": misses})
        except OSError as e:
            logger.debug(f"Failed to persist cache counters: {e}")


class CacheStore:
    """TTL cache with at-most-one-in-flight computation per key."""

    def __init__(
        self,
        backend: CacheBackend,
        ttl: float = 3600,
        enabled: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._backend = backend
        self._ttl = ttl
        self._enabled = enabled
        self._clock = clock
        self._inflight: dict[str, asyncio.Future[Any]] = {}
        self._hits, self._misses = backend.read_counters()

    @classmethod
    def for_directory(
        cls, directory: Path, ttl: float = 3600, enabled: bool = True
    ) -> CacheStore:
        return cls(FileCacheBackend(directory), ttl=ttl, enabled=enabled)

    @property
    def enabled(self) -> bool:
        return self._enabled

    def _record(self, hit: bool) -> None:
        if hit:
            self._hits += 1
        else:
            self._misses += 1
        self._backend.write_counters(self._hits, self._misses)

    def get(self, key: str) -> Any | None:
        """Return the cached payload for key, or None on a miss or expiry."""
        if not self._enabled:
            return None
        entry = self._backend.read(key)
        if entry is not None and entry.is_expired(self._clock()):
            logger.debug(f"Cache entry {key} expired")
            self._backend.delete(key)
            entry = None
        self._record(entry is not None)
        return entry.payload if entry is not None else None

    def put(self, key: str, payload: Any) -> None:
        if not self._enabled:
            return
        try:
            self._backend.write(
                CacheEntry(key=key, payload=payload, created_at=self._clock(), ttl=self._ttl)
            )
        except (OSError, TypeError, ValueError) as e:
            # A failed cache write never fails the run
            logger.debug(f"Failed to cache {key}: {e}")

    async def get_or_compute(
        self, key: str, compute: Callable[[], Awaitable[Any]]
    ) -> Any:
        """Return the cached payload or compute, store and return it.

        Callers racing on the same key await the first caller's result.
        If that caller is cancelled, one of the waiters takes over.
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        while (pending := self._inflight.get(key)) is not None:
            try:
                return await asyncio.shield(pending)
            except asyncio.CancelledError:
                task = asyncio.current_task()
                if not pending.cancelled() or (task is not None and task.cancelling()):
                    raise
                logger.debug(f"In-flight computation for {key} was cancelled; retrying")

        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            payload = await compute()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Mark retrieved so lone failures do not log "never retrieved"
            future.exception()
            raise
        else:
            self.put(key, payload)
            future.set_result(payload)
            return payload
        finally:
            self._inflight.pop(key, None)

    def clear(self) -> None:
        self._backend.clear()
        self._hits = 0
        self._misses = 0

    def stats(self) -> CacheStats:
        entries, size_bytes = self._backend.usage()
        return CacheStats(
            entries=entries,
            size_bytes=size_bytes,
            hits=self._hits,
            misses=self._misses,
            path=self._backend.location,
        )
