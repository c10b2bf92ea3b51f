"""
Unit tests for panfs.path_cache module.

Tests cover:
- get/put hit and miss behavior
- LRU eviction at capacity and promotion on get
- Subtree and node invalidation
- Capacity validation
- Thread safety with concurrent access
"""

from concurrent.futures import ThreadPoolExecutor, as_completed

import pytest

from panfs.path_cache import DEFAULT_CAPACITY, PathCache


class TestGetPut:
    """Tests for get and put."""

    def test_get_missing_returns_not_found(self):
        cache = PathCache()
        assert cache.get("/nope") == (None, False)

    def test_put_then_get(self):
        cache = PathCache()
        cache.put("/a", "1")
        assert cache.get("/a") == ("1", True)

    def test_put_overwrites(self):
        cache = PathCache()
        cache.put("/a", "1")
        cache.put("/a", "2")
        assert cache.get("/a") == ("2", True)
        assert len(cache) == 1

    def test_default_capacity(self):
        assert PathCache().capacity == DEFAULT_CAPACITY == 256


class TestEviction:
    """Tests for LRU eviction."""

    def test_oldest_entry_evicted(self):
        """With capacity 2, putting a, b, c evicts a."""
        cache = PathCache(capacity=2)
        cache.put("a", "1")
        assert cache.get("a") == ("1", True)
        cache.put("b", "1")
        cache.put("c", "1")

        assert cache.get("a") == (None, False)
        assert cache.get("b") == ("1", True)
        assert cache.get("c") == ("1", True)

    def test_get_promotes_entry(self):
        """A hit makes the entry most recently used."""
        cache = PathCache(capacity=2)
        cache.put("a", "1")
        cache.put("b", "2")
        cache.get("a")
        cache.put("c", "3")

        assert "a" in cache
        assert "b" not in cache

    def test_contains_does_not_promote(self):
        cache = PathCache(capacity=2)
        cache.put("a", "1")
        cache.put("b", "2")
        assert "a" in cache
        cache.put("c", "3")

        assert "a" not in cache

    @pytest.mark.parametrize("capacity", [0, -1])
    def test_invalid_capacity_raises(self, capacity):
        with pytest.raises(ValueError, match="at least 1"):
            PathCache(capacity=capacity)


class TestInvalidation:
    """Tests for invalidate_tree, invalidate_node and clear."""

    def test_invalidate_tree_removes_subtree(self):
        cache = PathCache()
        cache.put("/a", "1")
        cache.put("/a/b", "2")
        cache.put("/a/b/c", "3")
        cache.put("/ab", "4")

        removed = cache.invalidate_tree("/a")

        assert removed == 3
        assert "/a" not in cache
        assert "/a/b/c" not in cache
        # Sibling sharing a prefix is untouched
        assert cache.get("/ab") == ("4", True)

    def test_invalidate_node_removes_paths_for_id(self):
        cache = PathCache()
        cache.put("/old", "folder-1")
        cache.put("/old/child", "folder-2")
        cache.put("/other", "folder-3")

        removed = cache.invalidate_node("folder-1")

        assert removed == 2
        assert len(cache) == 1
        assert cache.get("/other") == ("folder-3", True)

    def test_invalidate_node_keeps_lru_order(self):
        """Scanning for a node ID must not promote entries."""
        cache = PathCache(capacity=2)
        cache.put("/a", "1")
        cache.put("/b", "2")
        cache.invalidate_node("missing")
        cache.put("/c", "3")

        assert "/a" not in cache
        assert "/b" in cache

    def test_clear(self):
        cache = PathCache()
        cache.put("/a", "1")
        cache.clear()
        assert len(cache) == 0


class TestThreadSafety:
    """Tests for concurrent access."""

    def test_concurrent_put_and_get(self):
        cache = PathCache(capacity=50)
        num_threads = 10
        num_operations = 200

        def worker(thread_id: int):
            for i in range(num_operations):
                path = f"/thread{thread_id}/folder{i}"
                cache.put(path, f"{thread_id}-{i}")
                value, found = cache.get(path)
                if found:
                    assert value == f"{thread_id}-{i}"

        with ThreadPoolExecutor(max_workers=num_threads) as executor:
            futures = [executor.submit(worker, i) for i in range(num_threads)]
            for future in as_completed(futures):
                future.result()  # Raise any exceptions

        assert len(cache) == 50
