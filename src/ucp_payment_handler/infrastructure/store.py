"""Key-value store capability used for token persistence.

The handler only ever talks to the store through this narrow interface:
TTL-scoped get/set/delete/exists plus two conditional writes. The
compare-and-set primitive is what makes single-use redemption safe under
concurrent access, so every backend must implement it as one atomic
operation.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional


class StoreError(Exception):
    """Store backend failure (connection lost, timeout, write collision)."""

    pass


class KeyValueStore(ABC):
    """Async key-value store with TTL support."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the value for ``key`` or None if absent or expired."""
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Write ``value`` with an expiry of ``ttl_seconds``."""
        pass

    @abstractmethod
    async def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        """Write ``value`` only if ``key`` does not exist.

        Returns:
            True if the value was written, False if the key already existed
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete ``key``. Returns True if it existed."""
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        pass

    @abstractmethod
    async def compare_and_set(self, key: str, expected: str, new_value: str) -> bool:
        """Atomically replace ``expected`` with ``new_value``.

        The remaining TTL of the key is preserved. Must be a single atomic
        operation against the backend.

        Returns:
            True if the key held ``expected`` and was updated, False otherwise
        """
        pass

    async def close(self) -> None:
        """Release backend resources."""
        pass


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store for tests and single-process development.

    Each operation yields to the event loop once before touching state so
    concurrent callers interleave the way they would against a remote
    store, while every individual operation remains atomic.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or time.monotonic
        self._data: dict[str, tuple[str, Optional[float]]] = {}

    async def _io(self) -> None:
        await asyncio.sleep(0)

    def _live(self, key: str) -> Optional[str]:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    def _expiry(self, ttl_seconds: int) -> float:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        return self._clock() + ttl_seconds

    async def get(self, key: str) -> Optional[str]:
        await self._io()
        return self._live(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._io()
        self._data[key] = (value, self._expiry(ttl_seconds))

    async def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        await self._io()
        if self._live(key) is not None:
            return False
        self._data[key] = (value, self._expiry(ttl_seconds))
        return True

    async def delete(self, key: str) -> bool:
        await self._io()
        existed = self._live(key) is not None
        self._data.pop(key, None)
        return existed

    async def exists(self, key: str) -> bool:
        await self._io()
        return self._live(key) is not None

    async def compare_and_set(self, key: str, expected: str, new_value: str) -> bool:
        await self._io()
        if self._live(key) != expected:
            return False
        _, expires_at = self._data[key]
        self._data[key] = (new_value, expires_at)
        return True

    async def close(self) -> None:
        self._data.clear()
