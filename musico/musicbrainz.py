"""Release metadata loader — MusicBrainz ws/2 with cache-first short-circuit."""
import logging
from typing import Optional

import httpx

from .cache import ExpiringCache
from .config import MUSICBRAINZ_URL, RELEASE_TIMEOUT, RELEASE_TTL_MS, USER_AGENT
from .covers import CoverResolver
from .errors import format_error
from .models import Release

logger = logging.getLogger(__name__)

RELEASE_INCLUDES = "artist-credits+recordings+labels+tags+genres+ratings"
HEADERS = {"User-Agent": USER_AGENT}


class MusicBrainzClient:
    def __init__(
        self,
        cache: Optional[ExpiringCache] = None,
        base_url: str = MUSICBRAINZ_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.cache = cache if cache is not None else ExpiringCache()
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self._transport = transport

    async def load_release(self, release_id: str) -> Optional[Release]:
        """Return the release, from cache when fresh. None when it can't be loaded."""
        cache_key = f"release_{release_id}"
        data = self.cache.get(cache_key)
        if data:
            logger.debug("Release %s served from cache", release_id)
            return Release.from_json(data)

        url = f"{self.base_url}release/{release_id}"
        params = {"inc": RELEASE_INCLUDES, "fmt": "json"}
        try:
            async with httpx.AsyncClient(
                timeout=RELEASE_TIMEOUT, headers=HEADERS, transport=self._transport
            ) as client:
                r = await client.get(url, params=params)
                r.raise_for_status()
                data = r.json()
            release = Release.from_json(data)
        except httpx.TimeoutException:
            format_error("release_load", {"id": release_id}, f"timed out after {RELEASE_TIMEOUT}s")
            return None
        except httpx.HTTPError as e:
            format_error("release_load", {"id": release_id}, f"HTTP error: {e}")
            return None
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            format_error("release_load", {"id": release_id}, f"unexpected response format: {e}")
            return None

        self.cache.set(cache_key, data, RELEASE_TTL_MS)
        return release

    async def load_release_with_cover(
        self, release_id: str, covers: Optional[CoverResolver] = None
    ) -> tuple[Optional[Release], Optional[str]]:
        """Load a release and resolve its cover art. Cover is None when unavailable."""
        release = await self.load_release(release_id)
        if release is None:
            return None, None
        covers = covers or CoverResolver(cache=self.cache)
        cover_url = await covers.resolve(release.id, release.artist, release.title)
        return release, cover_url
