"""Schema cache collaborator.

The cache is process-wide and read-mostly. Invalidation (``remove``) may race
with in-flight reads; readers that already hold a snapshot keep using it.
"""
from __future__ import annotations

import logging
import time
from typing import Awaitable, Callable, Dict, Generic, Optional, Protocol, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')

__all__ = ['SchemaCache', 'KeyValueCache']


class SchemaCache(Protocol[T]):
    async def get_or_create(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        ...

    async def remove(self, key: str) -> None:
        ...


class KeyValueCache(Generic[T]):
    """In-memory read-through cache with optional expiry."""

    def __init__(self, ttl_seconds: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._items: Dict[str, Tuple[float, T]] = {}

    def _fresh(self, key: str) -> Optional[Tuple[float, T]]:
        item = self._items.get(key)
        if item is None:
            return None
        if self.ttl_seconds is not None and self._clock() - item[0] > self.ttl_seconds:
            self._items.pop(key, None)
            return None
        return item

    async def get_or_create(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        item = self._fresh(key)
        if item is not None:
            return item[1]
        value = await factory()
        self._items[key] = (self._clock(), value)
        logger.debug("schema cache filled key=%r", key)
        return value

    async def remove(self, key: str) -> None:
        if self._items.pop(key, None) is not None:
            logger.debug("schema cache invalidated key=%r", key)

    def __contains__(self, key: str) -> bool:
        return self._fresh(key) is not None
