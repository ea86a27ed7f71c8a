"""In-memory caches."""

from ratecache.cache.lru import LRUCache

__all__ = ["LRUCache"]
