"""Short-lived cache of GET responses."""

from __future__ import annotations

import json
import logging
import time
import typing as t
from dataclasses import dataclass

from aiohttp_client_cache.backends.base import CacheBackend

from .config import CACHE_TTL_MS

if t.TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from yarl import URL

    from .types import ResponseSnapshot

_logger = logging.getLogger("simfetch")


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


@dataclass(frozen=True)
class CacheEntry:
    """A cached snapshot and the clock reading at which it was stored."""

    snapshot: ResponseSnapshot
    stored_at_ms: float


class ResponseCache:
    """Stores GET snapshots keyed by URL and per-call options.

    Entries expire ``ttl_ms`` after they are stored. Staleness is checked on
    lookup only; an expired entry stays in the backend until the next store
    for its key or a ``clear()``.
    """

    def __init__(
        self,
        backend: CacheBackend | None = None,
        *,
        ttl_ms: float = CACHE_TTL_MS,
        clock: Callable[[], float] = _monotonic_ms,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the cache.

        Args:
            backend: Backend whose ``responses`` store holds the entries.
                Defaults to an in-memory backend.
            ttl_ms: Time-to-live of an entry in milliseconds.
            clock: Monotonic clock returning milliseconds.
            logger: Logger instance. If None, uses module logger.

        """
        self._backend = backend or CacheBackend()
        self._ttl_ms = ttl_ms
        self._clock = clock
        self._logger = logger or _logger

    @staticmethod
    def make_key(url: str | URL, options: Mapping[str, t.Any] | None) -> str | None:
        """Build the cache key for a request.

        Options are serialized in insertion order, so the same fields given
        in a different order map to a different key.

        Args:
            url: Absolute request URL.
            options: Per-call request options as given by the caller.

        Returns:
            str | None: The key, or None when the options hold values JSON
                cannot encode. Such requests are not cacheable.

        """
        try:
            return f"{url}:{json.dumps(options)}"
        except (TypeError, ValueError):
            return None

    async def lookup(self, key: str) -> ResponseSnapshot | None:
        """Return a fresh copy of the snapshot for ``key``, or None.

        Missing and expired entries are both reported as None.
        """
        entry: CacheEntry | None = await self._backend.responses.read(key)
        if entry is None:
            self._logger.debug("Cache miss: %s", key)
            return None
        if self._clock() - entry.stored_at_ms >= self._ttl_ms:
            self._logger.debug("Cache entry expired: %s", key)
            return None
        self._logger.debug("Cache hit: %s", key)
        return entry.snapshot.copy()

    async def store(self, key: str, snapshot: ResponseSnapshot) -> None:
        """Store ``snapshot`` under ``key``, replacing any entry and restarting its TTL."""
        await self._backend.responses.write(key, CacheEntry(snapshot, self._clock()))
        self._logger.debug("Cache store: %s", key)

    async def clear(self) -> None:
        """Remove every entry."""
        await self._backend.responses.clear()
        self._logger.debug("Cache cleared")
