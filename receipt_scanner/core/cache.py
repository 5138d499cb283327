"""Cache that coalesces concurrent loads of the same key."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

import structlog

T = TypeVar("T")

logger = structlog.get_logger(__name__)


class CoalescingCache(Generic[T]):
    """
    Async cache where each key is loaded at most once.

    Concurrent callers asking for a key whose load is still in flight await
    the same future instead of starting a second load. Failed loads are not
    cached, so a later call retries.

    Thread-safe for single async context.
    """

    def __init__(self) -> None:
        self._values: dict[str, T] = {}
        self._pending: dict[str, asyncio.Future[T]] = {}

    async def get_or_load(self, key: str, loader: Callable[[], Awaitable[T]]) -> T:
        """
        Return the cached value for key, loading it if needed.

        Args:
            key: Cache key.
            loader: Coroutine factory producing the value. Called at most once
                per key while a load is pending or after it succeeded.

        Returns:
            Cached or freshly loaded value.

        Raises:
            Exception: Whatever the loader raised, delivered to every waiter.
        """
        if key in self._values:
            logger.debug("Cache hit", key=key)
            return self._values[key]

        pending = self._pending.get(key)
        if pending is not None:
            logger.debug("Joining in-flight load", key=key)
            return await asyncio.shield(pending)

        future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        self._pending[key] = future
        try:
            value = await loader()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Mark retrieved so an unawaited failure is not reported by asyncio
            future.exception()
            raise
        else:
            self._values[key] = value
            future.set_result(value)
            return value
        finally:
            self._pending.pop(key, None)

    def get(self, key: str) -> T | None:
        """Get a loaded value without triggering a load."""
        return self._values.get(key)

    def clear(self) -> None:
        """Clear all loaded values. Pending loads are unaffected."""
        self._values.clear()

    def __len__(self) -> int:
        """Return number of loaded values."""
        return len(self._values)

    def __contains__(self, key: str) -> bool:
        """Check if key has a loaded value."""
        return key in self._values
