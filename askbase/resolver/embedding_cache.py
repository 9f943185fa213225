"""
Embedding Cache

Bounded LRU memo of normalized query text -> embedding vector.

Lookups and inserts take a short lock; the embedding call itself runs
outside it, so two requests missing on the same key may both compute and
the later write wins. Embeddings are deterministic, so that only costs a
duplicate call.
"""

import logging
import threading
from collections import OrderedDict
from typing import Awaitable, Callable, List, Optional

logger = logging.getLogger("askbase.resolver.embedding_cache")

Vector = List[float]


class EmbeddingCache:
    """LRU cache keyed by exact normalized query string."""

    def __init__(self, max_size: int = 1024):
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self._max_size = max_size
        self._data: "OrderedDict[str, Vector]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @property
    def max_size(self) -> int:
        return self._max_size

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def get(self, key: str) -> Optional[Vector]:
        with self._lock:
            vector = self._data.get(key)
            if vector is not None:
                self._data.move_to_end(key)
            return vector

    def put(self, key: str, vector: Vector) -> None:
        """Store a vector; empty vectors are never cached."""
        if not vector:
            return
        with self._lock:
            self._data[key] = vector
            self._data.move_to_end(key)
            while len(self._data) > self._max_size:
                evicted, _ = self._data.popitem(last=False)
                logger.debug("Evicted embedding for %r", evicted)

    async def get_or_compute(
        self,
        key: str,
        compute: Callable[[str], Awaitable[Vector]],
    ) -> Vector:
        """
        Return the cached vector for ``key`` or compute and store it.

        Args:
            key: Normalized query text (exact-match key)
            compute: Coroutine function producing the vector on a miss

        Returns:
            The vector, or [] when the key is empty or compute produced nothing
        """
        if not key:
            return []

        vector = self.get(key)
        if vector is not None:
            self.hits += 1
            return vector

        self.misses += 1
        vector = list(await compute(key) or [])
        self.put(key, vector)
        return vector

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
        self.hits = 0
        self.misses = 0

    def stats(self) -> dict:
        return {
            "size": len(self._data),
            "max_size": self._max_size,
            "hits": self.hits,
            "misses": self.misses,
        }
