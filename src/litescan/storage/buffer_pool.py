"""
Buffer Pool Module - In-memory cache of decoded pages
Read-through LRU cache; the database file is static for the session so
cached pages never go stale.
"""

import threading
from collections import OrderedDict
from .page import Page
from ..constants import DEFAULT_CACHE_CAPACITY


class BufferPool:
    """LRU cache for decoded b-tree pages"""

    def __init__(self, file_manager, capacity: int = DEFAULT_CACHE_CAPACITY):
        """
        Initialize buffer pool

        Args:
            file_manager: FileManager used to read pages on a miss
            capacity: Maximum number of pages to cache (0 disables caching)
        """
        if capacity < 0:
            raise ValueError("Buffer pool capacity must not be negative")
        self.file_manager = file_manager
        self.capacity = capacity
        self.pool: OrderedDict[int, Page] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get_page(self, page_number: int) -> Page:
        """
        Get a decoded page, reading it from disk on a miss

        Args:
            page_number: 1-based page number

        Returns:
            Page object (from cache or disk)
        """
        with self._lock:
            page = self.pool.get(page_number)
            if page is not None:
                self.pool.move_to_end(page_number)
                self.hits += 1
                return page
            self.misses += 1

        # Decode outside the lock; a concurrent miss on the same page just
        # decodes it twice
        page = self.file_manager.read_page(page_number)

        if self.capacity:
            with self._lock:
                self.pool[page_number] = page
                self.pool.move_to_end(page_number)
                self._evict_if_needed()
        return page

    def _evict_if_needed(self) -> None:
        """Evict least recently used pages while over capacity"""
        while len(self.pool) > self.capacity:
            self.pool.popitem(last=False)
            self.evictions += 1

    def clear(self) -> None:
        """Drop every cached page"""
        with self._lock:
            self.pool.clear()

    def get_stats(self) -> dict:
        """Get buffer pool statistics"""
        total_accesses = self.hits + self.misses
        hit_ratio = self.hits / total_accesses if total_accesses > 0 else 0

        return {
            "capacity": self.capacity,
            "current_size": len(self.pool),
            "hits": self.hits,
            "misses": self.misses,
            "hit_ratio": f"{hit_ratio:.2%}",
            "evictions": self.evictions,
        }

    def __repr__(self) -> str:
        """String representation of buffer pool"""
        stats = self.get_stats()
        return (f"BufferPool(capacity={stats['capacity']}, "
                f"size={stats['current_size']}, "
                f"hit_ratio={stats['hit_ratio']})")
