"""Short-lived memoization of URL → resource resolutions.

This module keeps repeat ``/resolve`` calls for the same link off the upstream
API. Features:
    - Injectable storage backend (in-memory by default, shareable across
      instances by supplying another ``CacheBackend``)
    - Lazy expiry: stale entries are reported absent on read but never evicted
    - Single-flight: concurrent first-time lookups of one key share one
      upstream call
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

from .cancellation import CancelToken, guarded
from .models import CacheEntry, Credential

logger = logging.getLogger(__name__)

DEFAULT_TTL = 300.0

_HOST_PREFIXES = ("www.", "m.")


def normalize_url(url: str) -> str:
    """Normalize a SoundCloud link into a cache key.

    Args:
        url: Link as typed or pasted by a user

    Returns:
        ``https://<host>/<path>`` with a lowercase host, no ``www.``/``m.``
        prefix, no query, no fragment and no trailing slash

    Raises:
        ValueError: If the link is empty, too long or not a SoundCloud host

    Examples:
        >>> normalize_url(" https://www.SoundCloud.com/artist/track/?si=abc ")
        'https://soundcloud.com/artist/track'
        >>> normalize_url("m.soundcloud.com/artist")
        'https://soundcloud.com/artist'
    """
    text = (url or "").strip()
    if not text:
        raise ValueError("URL is required")
    if len(text) > 2048:
        raise ValueError("URL must be at most 2048 characters")

    if not text.lower().startswith(("http://", "https://")):
        text = f"https://{text}"

    parts = urlsplit(text)
    host = (parts.hostname or "").lower()
    for prefix in _HOST_PREFIXES:
        if host.startswith(prefix):
            host = host[len(prefix):]

    if host != "soundcloud.com" and not host.endswith(".soundcloud.com"):
        raise ValueError(f"URL must be a SoundCloud domain: {host or text}")

    path = parts.path.rstrip("/")
    return urlunsplit(("https", host, path, "", ""))


class CacheBackend(ABC):
    """Storage for resolved entries."""

    @abstractmethod
    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for ``key`` if present and not expired."""

    @abstractmethod
    def put(self, key: str, value: Any, ttl: float) -> CacheEntry:
        """Store or overwrite ``key`` unconditionally."""


class InMemoryCacheBackend(CacheBackend):
    """Process-local dictionary backend with lazy expiry.

    Attributes:
        entries: Stored entries, including expired ones
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """Initialize the backend.

        Args:
            clock: Monotonic time source (injectable for tests)
        """
        self.entries: Dict[str, CacheEntry] = {}
        self._clock = clock

    def get(self, key: str) -> Optional[CacheEntry]:
        entry = self.entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            # Expired entries stay stored until overwritten
            return None
        return entry

    def put(self, key: str, value: Any, ttl: float) -> CacheEntry:
        entry = CacheEntry(key=key, value=value, expires_at=self._clock() + ttl)
        self.entries[key] = entry
        return entry

    def __len__(self) -> int:
        return len(self.entries)


class ResolveCache:
    """Resolve SoundCloud links through the client with memoization.

    Example:
        >>> cache = ResolveCache(client, ttl=300)
        >>> track = await cache.resolve("https://soundcloud.com/a/b", credential)
    """

    def __init__(
        self,
        client: Any,
        backend: Optional[CacheBackend] = None,
        ttl: float = DEFAULT_TTL,
    ):
        """Initialize the cache.

        Args:
            client: Object with an async ``resolve(url, credential, cancel=None)``
            backend: Storage backend (default: a new InMemoryCacheBackend)
            ttl: Seconds a resolution stays fresh
        """
        if ttl < 0:
            raise ValueError("ttl must be >= 0")
        self.client = client
        self.backend = backend if backend is not None else InMemoryCacheBackend()
        self.ttl = ttl
        self._in_flight: Dict[str, asyncio.Task] = {}
        self.hits = 0
        self.misses = 0

    async def resolve(
        self, url: str, credential: Credential, cancel: Optional[CancelToken] = None
    ) -> Any:
        """Resolve ``url``, serving a fresh cached value when available.

        Concurrent callers for the same normalized key share one upstream
        call. That call runs in its own task, detached from every caller's
        cancel token: a caller whose token fires stops waiting, the others
        still get the result. Failures are not cached; every waiter sees the
        same exception.

        Raises:
            ValueError: If the URL is not a valid SoundCloud link
            OperationCancelledError: If this caller's token fired first
        """
        key = normalize_url(url)

        entry = self.backend.get(key)
        if entry is not None:
            self.hits += 1
            logger.debug(f"Resolve cache hit for {key}")
            return entry.value

        if cancel is not None:
            cancel.raise_if_cancelled()

        task = self._in_flight.get(key)
        if task is None:
            self.misses += 1
            task = asyncio.ensure_future(self._fetch(key, credential))
            task.add_done_callback(_mark_retrieved)
            self._in_flight[key] = task
        else:
            logger.debug(f"Awaiting in-flight resolution of {key}")

        return await guarded(asyncio.shield(task), cancel)

    async def _fetch(self, key: str, credential: Credential) -> Any:
        try:
            value = await self.client.resolve(key, credential)
        finally:
            self._in_flight.pop(key, None)
        self.backend.put(key, value, self.ttl)
        logger.debug(f"Resolved and cached {key}")
        return value

    def stats(self) -> Dict[str, int]:
        """Cache statistics for monitoring."""
        return {"hits": self.hits, "misses": self.misses, "in_flight": len(self._in_flight)}


def _mark_retrieved(task: asyncio.Future) -> None:
    # Every waiter may have given up; keep asyncio from reporting the failure
    if not task.cancelled():
        task.exception()
