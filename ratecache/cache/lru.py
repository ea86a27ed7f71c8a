"""Fixed-capacity least-recently-used cache.

Entries live in a doubly-linked list bounded by two sentinel nodes, most
recently used first. A dict maps each key straight to its node, so
touching, inserting and evicting an entry never scans the list.

The cache is not thread-safe. Callers that share one instance across
threads or tasks must serialize get/put themselves.
"""

from typing import Any, Callable, Generic, Hashable, Iterator, Optional, TypeVar

from ratecache.core.config import Settings, get_settings
from ratecache.core.logging import get_log_context, get_logger
from ratecache.exceptions import ConfigurationError

logger = get_logger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

_MISSING = object()


class _Node:
    """Recency list node. Sentinels carry no key or value."""

    __slots__ = ("key", "value", "prev", "next")

    def __init__(self, key: Any = None, value: Any = None):
        self.key = key
        self.value = value
        self.prev: Optional["_Node"] = None
        self.next: Optional["_Node"] = None


class LRUCache(Generic[K, V]):
    """Key/value cache that evicts the least recently used entry when full.

    Both get() and put() count as a use. Every operation is O(1).

    Example:
        >>> cache = LRUCache(2)
        >>> cache.put(1, "a")
        >>> cache.put(2, "b")
        >>> cache.get(1)
        'a'
        >>> cache.put(3, "c")  # evicts 2
        >>> cache.get(2) is None
        True
    """

    def __init__(
        self,
        capacity: int,
        on_evict: Optional[Callable[[K, V], None]] = None,
        name: Optional[str] = None,
    ) -> None:
        """Initialize the cache.

        Args:
            capacity: Maximum number of entries, at least 1.
            on_evict: Called with (key, value) after an entry is evicted to
                make room. Not called for pop() or clear().
            name: Label used in log records.

        Raises:
            ConfigurationError: If capacity is not an integer >= 1.
        """
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            raise ConfigurationError(
                "capacity", capacity, f"LRU cache capacity must be an integer >= 1, got {capacity!r}"
            )
        self._capacity = capacity
        self._on_evict = on_evict
        self._name = name
        self._index: dict[K, _Node] = {}

        self._head = _Node()
        self._tail = _Node()
        self._head.next = self._tail
        self._tail.prev = self._head

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **kwargs) -> "LRUCache":
        """Create a cache sized by RATECACHE_CACHE_CAPACITY."""
        settings = settings or get_settings()
        return cls(settings.cache_capacity, **kwargs)

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._index)

    def __contains__(self, key: object) -> bool:
        # Membership checks do not count as a use.
        return key in self._index

    def __repr__(self) -> str:
        return f"{type(self).__name__}(capacity={self._capacity}, size={len(self._index)})"

    def get(self, key: K, default: Any = None) -> Any:
        """Return the value for key and mark it most recently used.

        Args:
            key: The cache key to look up.
            default: Returned when the key is absent.

        Returns:
            The cached value, or default on a miss.
        """
        node = self._index.get(key)
        if node is None:
            return default
        self._unlink(node)
        self._link_front(node)
        return node.value

    def put(self, key: K, value: V) -> None:
        """Insert or update key and mark it most recently used.

        Updating an existing key never evicts. Inserting a new key into a
        full cache first evicts the least recently used entry.
        """
        node = self._index.get(key)
        if node is not None:
            node.value = value
            self._unlink(node)
            self._link_front(node)
            return

        evicted = None
        if len(self._index) >= self._capacity:
            evicted = self._evict_lru()

        node = _Node(key, value)
        self._index[key] = node
        self._link_front(node)

        if evicted is not None and self._on_evict is not None:
            self._on_evict(evicted.key, evicted.value)

    def peek(self, key: K, default: Any = None) -> Any:
        """Return the value for key without changing recency order."""
        node = self._index.get(key)
        return default if node is None else node.value

    def pop(self, key: K, default: Any = _MISSING) -> Any:
        """Remove key and return its value.

        Raises:
            KeyError: If key is absent and no default is given.
        """
        node = self._index.pop(key, None)
        if node is None:
            if default is _MISSING:
                raise KeyError(key)
            return default
        self._unlink(node)
        return node.value

    def clear(self) -> None:
        """Remove all entries."""
        self._index.clear()
        self._head.next = self._tail
        self._tail.prev = self._head

    def keys(self) -> Iterator[K]:
        """Iterate keys from most to least recently used."""
        for key, _ in self.items():
            yield key

    def items(self) -> Iterator[tuple[K, V]]:
        """Iterate (key, value) pairs from most to least recently used.

        The cache must not be mutated while iterating.
        """
        node = self._head.next
        while node is not self._tail:
            yield node.key, node.value
            node = node.next

    def _evict_lru(self) -> _Node:
        node = self._tail.prev
        self._unlink(node)
        del self._index[node.key]
        logger.debug(
            "Evicted least recently used entry",
            extra=get_log_context(cache_name=self._name, evicted_key=node.key),
        )
        return node

    def _unlink(self, node: _Node) -> None:
        node.prev.next = node.next
        node.next.prev = node.prev
        node.prev = node.next = None

    def _link_front(self, node: _Node) -> None:
        first = self._head.next
        node.prev = self._head
        node.next = first
        first.prev = node
        self._head.next = node
