"""TTL caches for repository indexes and registry tag lists."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class _Entry(Generic[T]):
    fetched_at: float
    value: T


class CatalogCache:
    """Two independent read-mostly maps keyed by normalized URL.

    `index` holds parsed Helm repository index entries
    ({chart_name: [entry, ...]}), `tags` holds OCI tag lists per chart
    reference. Entries older than `ttl` seconds are treated as absent.
    Writes only happen on a miss and overwrite with an immutable value, so a
    racing duplicate fetch is harmless.
    """

    def __init__(self, ttl: float = 3600.0, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._index: Dict[str, _Entry[dict[str, list[dict[str, Any]]]]] = {}
        self._tags: Dict[str, _Entry[tuple[str, ...]]] = {}

    def _fresh(self, entry: _Entry | None) -> bool:
        return entry is not None and (self._clock() - entry.fetched_at) < self.ttl

    def get_index(self, url: str) -> dict[str, list[dict[str, Any]]] | None:
        entry = self._index.get(url)
        if not self._fresh(entry):
            self._index.pop(url, None)
            return None
        return entry.value

    def put_index(self, url: str, entries: dict[str, list[dict[str, Any]]]) -> None:
        self._index[url] = _Entry(self._clock(), entries)

    def get_tags(self, ref: str) -> tuple[str, ...] | None:
        entry = self._tags.get(ref)
        if not self._fresh(entry):
            self._tags.pop(ref, None)
            return None
        return entry.value

    def put_tags(self, ref: str, tags: list[str] | tuple[str, ...]) -> None:
        self._tags[ref] = _Entry(self._clock(), tuple(tags))

    def clear(self) -> None:
        self._index.clear()
        self._tags.clear()

    def stats(self) -> dict[str, int]:
        return {"index_entries": len(self._index), "tag_entries": len(self._tags)}
