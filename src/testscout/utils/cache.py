"""Bounded in-memory memoization shared by the detection layers."""

from __future__ import annotations

import hashlib
import logging
from collections import OrderedDict
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

logger = logging.getLogger(__name__)

_V = TypeVar("_V")


class MemoryCache(Generic[_V]):
    """String-keyed LRU map.

    ``None`` is a valid cached value (a file that resolves to no framework),
    so callers test membership with ``in`` before reading.

    Args:
        max_size: Entry count after which the least recently read entry is dropped.
    """

    def __init__(self, max_size: int = 256) -> None:
        self.max_size = max_size
        self.hits = 0
        self.misses = 0
        self._entries: OrderedDict[str, _V] = OrderedDict()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> _V | None:
        """Read *key*, marking it most recently used; ``None`` on a miss."""
        if key not in self._entries:
            self.misses += 1
            return None
        self.hits += 1
        self._entries.move_to_end(key)
        return self._entries[key]

    def put(self, key: str, value: _V) -> None:
        self._entries[key] = value
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Evicted %s", evicted)

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def invalidate_where(self, predicate: Callable[[str], bool]) -> int:
        """Drop every key matching *predicate*; returns how many were dropped."""
        matching = [key for key in self._entries if predicate(key)]
        for key in matching:
            del self._entries[key]
        return len(matching)

    def clear(self) -> None:
        self._entries.clear()
        self.hits = self.misses = 0

    def keys(self) -> Iterator[str]:
        """Snapshot of the keys, least recently used first."""
        return iter(list(self._entries))

    def items(self) -> list[tuple[str, _V]]:
        """Snapshot of the entries, least recently used first; reads are not counted."""
        return list(self._entries.items())

    @property
    def size(self) -> int:
        return len(self._entries)


def content_hash(text: str | bytes) -> str:
    """16 hex characters identifying *text*; used to key parsed syntax trees."""
    data = text.encode("utf-8") if isinstance(text, str) else text
    return hashlib.blake2b(data, digest_size=8).hexdigest()
