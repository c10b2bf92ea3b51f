"""
Folder path -> node ID cache.

Teambition pan is ID-based, not path-based. Every lookup of "/a/b/c" needs
the ID of "/a/b" first, which in turn needs "/a". This cache remembers the
IDs of folders that have already been resolved so that a warm lookup costs
a single listing no matter how deep the path is.

Only folder paths are stored. Hits are returned as-is, without checking that
the ID is still current.
"""

import logging
import threading

from cachetools import Cache, LRUCache

from .paths import is_within

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 256


class PathCache:
    """
    Thread-safe, fixed-capacity LRU map of normalized folder path to node ID.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        """
        Args:
            capacity: Maximum number of folder entries kept before the least
                recently used one is evicted.
        """
        if capacity < 1:
            raise ValueError(f"Cache capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self._lock = threading.Lock()
        self._cache = LRUCache(maxsize=capacity)

    def get(self, path: str) -> tuple[str | None, bool]:
        """
        Look up a folder path, promoting it to most recently used on a hit.

        Returns:
            (node_id, True) on a hit, (None, False) on a miss.
        """
        with self._lock:
            node_id = self._cache.get(path)
        if node_id is None:
            return None, False
        return node_id, True

    def put(self, path: str, node_id: str) -> None:
        """Insert or update an entry, evicting the LRU entry if full."""
        with self._lock:
            self._cache[path] = node_id

    def invalidate_tree(self, path: str) -> int:
        """Drop ``path`` and every cached path underneath it.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            stale = [k for k in self._cache if is_within(k, path)]
            for k in stale:
                del self._cache[k]
        if stale:
            logger.debug("Invalidated %d cached path(s) under %s", len(stale), path)
        return len(stale)

    def invalidate_node(self, node_id: str) -> int:
        """Drop every path cached for ``node_id``, along with their subtrees."""
        with self._lock:
            # Cache.__getitem__ reads without touching LRU order.
            roots = [k for k in list(self._cache) if Cache.__getitem__(self._cache, k) == node_id]
        return sum(self.invalidate_tree(root) for root in roots)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def __contains__(self, path: str) -> bool:
        # Membership test does not touch recency.
        with self._lock:
            return path in self._cache
