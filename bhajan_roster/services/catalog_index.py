from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Generic, Sequence, TypeVar

from bhajan_roster.logging_utils import log_event
from bhajan_roster.models import CatalogTitle

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5 * 60
DEFAULT_SEARCH_LIMIT = 25
MISSING_TOKEN_POSITION = 9999

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

T = TypeVar("T")


def normalize_title(text: str | None) -> str:
    return _NON_ALNUM.sub(" ", (text or "").lower()).strip()


@dataclass(frozen=True)
class CacheSnapshot(Generic[T]):
    built_at: float
    entries: tuple[T, ...]


class TTLCache(Generic[T]):
    """Holds one wholesale-loaded list and reloads it once it is older than ``ttl_seconds``.

    Two callers may both find the snapshot expired and reload at the same
    time. Each gets a complete snapshot and the last one stored wins.
    """

    def __init__(
        self,
        loader: Callable[[], Sequence[T]],
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._loader = loader
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._snapshot: CacheSnapshot[T] | None = None
        self._lock = Lock()

    def get(self) -> CacheSnapshot[T]:
        now = self._clock()
        with self._lock:
            snapshot = self._snapshot
        if snapshot is not None and now - snapshot.built_at < self._ttl_seconds:
            return snapshot

        entries = tuple(self._loader())
        rebuilt = CacheSnapshot(built_at=now, entries=entries)
        with self._lock:
            self._snapshot = rebuilt
        log_event(logger, "catalog_cache_rebuilt", entries=len(entries), ttl_seconds=self._ttl_seconds)
        return rebuilt

    def invalidate(self) -> None:
        with self._lock:
            self._snapshot = None


@dataclass(frozen=True)
class _Candidate:
    score: int
    title: str
    item: CatalogTitle


class CatalogIndex:
    def __init__(
        self,
        loader: Callable[[], Sequence[CatalogTitle]],
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        limit: int = DEFAULT_SEARCH_LIMIT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.cache: TTLCache[CatalogTitle] = TTLCache(loader, ttl_seconds=ttl_seconds, clock=clock)
        self.limit = limit

    def search(self, query: str | None) -> list[CatalogTitle]:
        normalized_query = normalize_title(query)
        if not normalized_query:
            return []

        tokens = normalized_query.split()
        candidates: list[_Candidate] = []
        for item in self.cache.get().entries:
            title = normalize_title(item.title)
            if not all(token in title for token in tokens):
                continue
            position = title.find(tokens[0])
            if position == -1:
                position = MISSING_TOKEN_POSITION
            score = position + max(0, len(title) - len(normalized_query))
            candidates.append(_Candidate(score=score, title=item.title, item=item))

        candidates.sort(key=lambda candidate: (candidate.score, candidate.title))
        return [candidate.item for candidate in candidates[: self.limit]]

    def invalidate(self) -> None:
        self.cache.invalidate()
