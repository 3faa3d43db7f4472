"""Cover resolution — Cover Art Archive first, then the local /api/cover route."""
import logging
from typing import Optional
from urllib.parse import quote

import httpx

from .cache import ExpiringCache
from .config import COVER_API_URL, COVER_ART_URL, COVER_TIMEOUT, COVER_TTL_MS, USER_AGENT

logger = logging.getLogger(__name__)


class CoverResolver:
    """Resolves a cover URL for a release through two providers.

    The first provider is a fixed-template archive URL keyed by release id.
    When it answers non-OK, times out or fails to connect, a single request
    goes to the fallback route, which wraps a third-party lookup. The first
    URL that works is cached for 24 hours.
    """

    def __init__(
        self,
        cache: Optional[ExpiringCache] = None,
        archive_url: str = COVER_ART_URL,
        fallback_url: str = COVER_API_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.cache = cache if cache is not None else ExpiringCache()
        self.archive_url = archive_url.rstrip("/")
        self.fallback_url = fallback_url.rstrip("/")
        self._transport = transport

    def archive_cover_url(self, release_id: str) -> str:
        return f"{self.archive_url}/release/{release_id}/front"

    async def resolve(self, release_id: str, artist: str, album: str) -> Optional[str]:
        cache_key = f"cover_{release_id}"
        cached = self.cache.get(cache_key)
        if cached:
            return cached

        url = await self._try_archive(release_id)
        if url is None:
            url = await self._try_fallback(artist, album)

        if url is None:
            logger.warning("No cover found for %s (%s — %s)", release_id, artist, album)
            return None

        self.cache.set(cache_key, url, COVER_TTL_MS)
        return url

    async def _try_archive(self, release_id: str) -> Optional[str]:
        url = self.archive_cover_url(release_id)
        try:
            async with httpx.AsyncClient(
                timeout=COVER_TIMEOUT,
                headers={"User-Agent": USER_AGENT},
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                r = await client.get(url)
        except httpx.HTTPError as e:
            logger.info("Cover archive failed for %s: %s", release_id, e)
            return None
        if r.is_success:
            return url
        logger.info("Cover archive returned HTTP %s for %s", r.status_code, release_id)
        return None

    async def _try_fallback(self, artist: str, album: str) -> Optional[str]:
        url = f"{self.fallback_url}/api/cover/{quote(artist, safe='')}/{quote(album, safe='')}"
        try:
            async with httpx.AsyncClient(timeout=COVER_TIMEOUT, transport=self._transport) as client:
                r = await client.get(url)
            if not r.is_success:
                logger.info("Cover fallback returned HTTP %s for %s — %s", r.status_code, artist, album)
                return None
            data = r.json()
            return (data.get("coverUrl") or None) if isinstance(data, dict) else None
        except httpx.HTTPError as e:
            logger.warning("Cover fallback failed for %s — %s: %s", artist, album, e)
        except ValueError as e:
            logger.warning("Cover fallback sent invalid JSON for %s — %s: %s", artist, album, e)
        return None
