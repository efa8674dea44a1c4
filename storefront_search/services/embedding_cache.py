"""Bounded in-process cache for query embeddings.

Popular storefront queries ("shoes", "red dress") repeat constantly, and each
miss costs a round trip to the embedding provider. The cache is bounded twice:
by entry count and by resident bytes (key text plus the JSON-serialized vector).
Entries also expire after a TTL; expiry is checked lazily on lookup.
"""

import json
import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass

from storefront_search.services.embedding_service import EmbeddingProvider, normalize_text

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CachedEmbedding:
    """A cached vector with its accounted size and insertion time."""

    vector: list[float]
    size: int
    inserted_at: float


def embedding_size(key: str, vector: list[float]) -> int:
    """Bytes charged against the cache for one entry."""
    return len(key.encode("utf-8")) + len(json.dumps(vector).encode("utf-8"))


class EmbeddingCache:
    """LRU cache of text -> embedding with count, byte and TTL bounds.

    Safe to share across threads; every read, write and eviction runs under
    one lock. The provider call in ``get_or_compute`` happens outside the lock,
    so concurrent misses for the same text may each call the provider.
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        *,
        max_entries: int,
        max_bytes: int,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1 or max_bytes < 1 or ttl_seconds <= 0:
            raise ValueError("Cache bounds must be positive")

        self.provider = provider
        self.max_entries = max_entries
        self.max_bytes = max_bytes
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, CachedEmbedding] = OrderedDict()
        self._total_bytes = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def total_bytes(self) -> int:
        """Aggregate accounted size of resident entries."""
        with self._lock:
            return self._total_bytes

    def get(self, text: str) -> list[float] | None:
        """Return the cached vector for ``text``, or None if absent or expired."""
        key = normalize_text(text)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.inserted_at >= self.ttl_seconds:
                self._remove(key)
                return None
            self._entries.move_to_end(key)
            return entry.vector

    def set(self, text: str, vector: list[float]) -> None:
        """Insert or overwrite an entry, evicting least-recently-used ones."""
        key = normalize_text(text)
        size = embedding_size(key, vector)

        with self._lock:
            if key in self._entries:
                self._remove(key)

            if size > self.max_bytes:
                logger.debug("Embedding for %r exceeds cache size limit, not cached", key[:50])
                return

            self._entries[key] = CachedEmbedding(
                vector=vector,
                size=size,
                inserted_at=self._clock(),
            )
            self._total_bytes += size

            while len(self._entries) > self.max_entries or self._total_bytes > self.max_bytes:
                evicted_key, evicted = self._entries.popitem(last=False)
                self._total_bytes -= evicted.size
                logger.debug("Evicted cached embedding for %r", evicted_key[:50])

    async def get_or_compute(self, text: str) -> list[float]:
        """Return the cached vector, calling the provider on a miss.

        Provider errors propagate to the caller and nothing is cached.
        """
        cached = self.get(text)
        if cached is not None:
            return cached

        key = normalize_text(text)
        vector = await self.provider.generate_embedding(key)
        self.set(key, vector)
        return vector

    def _remove(self, key: str) -> None:
        # Caller holds the lock
        entry = self._entries.pop(key)
        self._total_bytes -= entry.size
