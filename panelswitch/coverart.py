"""Album art retrieval for the now-playing strip.

MPRIS players publish `mpris:artUrl` as either a local `file://` URL or a
remote `http(s)://` URL. Both are resolved to raw image bytes here and kept in
a small time-limited cache.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import mimetypes
import time
from pathlib import Path
from urllib.parse import unquote, urlparse

import aiohttp

_LOGGER = logging.getLogger(__name__)

COVER_ART_TIMEOUT = 5
COVER_ART_CACHE_MAX_SIZE = 10
COVER_ART_CACHE_TTL = 3600.0
DEFAULT_CONTENT_TYPE = "application/octet-stream"


class CoverArtFetcher:
    """Fetch and cache cover art by URL."""

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        max_size: int = COVER_ART_CACHE_MAX_SIZE,
        ttl: float = COVER_ART_CACHE_TTL,
    ) -> None:
        """Initialize the fetcher.

        Args:
            session: Optional aiohttp session. One is created per request if None.
            max_size: Maximum number of cached images.
            ttl: Seconds an image stays cached.
        """
        self._session = session
        self._cache: dict[str, tuple[bytes, str, float]] = {}
        self._max_size = max_size
        self._ttl = ttl

    @staticmethod
    def _cache_key(url: str) -> str:
        return hashlib.sha256(url.encode()).hexdigest()

    def _cached(self, key: str, now: float) -> tuple[bytes, str] | None:
        entry = self._cache.get(key)
        if entry is None:
            return None
        data, content_type, stored_at = entry
        if now - stored_at > self._ttl:
            del self._cache[key]
            return None
        return data, content_type

    def _store(self, key: str, data: bytes, content_type: str, now: float) -> None:
        # Drop expired entries first, then the oldest until there is room
        for stale in [k for k, (_, _, stored_at) in self._cache.items() if now - stored_at > self._ttl]:
            del self._cache[stale]
        while len(self._cache) >= self._max_size:
            oldest = min(self._cache, key=lambda k: self._cache[k][2])
            del self._cache[oldest]
        self._cache[key] = (data, content_type, now)

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)

    async def fetch(self, url: str) -> tuple[bytes, str] | None:
        """Return (image bytes, content type) for url, or None when it cannot be loaded."""
        if not url:
            return None

        now = time.time()
        key = self._cache_key(url)
        cached = self._cached(key, now)
        if cached is not None:
            return cached

        scheme = urlparse(url).scheme
        if scheme == "file":
            result = await self._fetch_file(url)
        elif scheme in ("http", "https"):
            result = await self._fetch_http(url)
        else:
            _LOGGER.debug("Unsupported cover art URL scheme: %s", url)
            return None

        if result is not None:
            self._store(key, result[0], result[1], now)
        return result

    async def _fetch_file(self, url: str) -> tuple[bytes, str] | None:
        path = Path(unquote(urlparse(url).path))
        try:
            data = await asyncio.get_running_loop().run_in_executor(None, path.read_bytes)
        except OSError as err:
            _LOGGER.debug("Failed to read cover art %s: %s", path, err)
            return None
        content_type = mimetypes.guess_type(path.name)[0] or DEFAULT_CONTENT_TYPE
        return data, content_type

    async def _fetch_http(self, url: str) -> tuple[bytes, str] | None:
        # Manage session lifecycle locally if not provided
        session = self._session
        local_session = session is None
        if session is None:
            session = aiohttp.ClientSession()

        try:
            async with session.get(url, timeout=aiohttp.ClientTimeout(total=COVER_ART_TIMEOUT)) as response:
                if response.status != 200:
                    _LOGGER.debug("Cover art request for %s returned %s", url, response.status)
                    return None
                data = await response.read()
                content_type = response.headers.get("Content-Type", DEFAULT_CONTENT_TYPE).split(";")[0].strip()
                return data, content_type or DEFAULT_CONTENT_TYPE
        except (aiohttp.ClientError, asyncio.TimeoutError) as err:
            _LOGGER.debug("Failed to fetch cover art %s: %s", url, err)
            return None
        finally:
            if local_session:
                await session.close()
