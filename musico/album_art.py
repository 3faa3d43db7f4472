"""Third-party album art lookup (iTunes Search API) backing the /api/cover route."""
from typing import Optional

import httpx

from .config import COVER_TIMEOUT, ITUNES_SEARCH_URL, USER_AGENT


def _pick_result(results: list[dict], artist: str, album: str) -> Optional[dict]:
    """Prefer a result whose artist and collection loosely match; else the first one."""
    a_low, t_low = artist.lower(), album.lower()
    for r in results:
        r_artist = (r.get("artistName") or "").lower()
        r_album = (r.get("collectionName") or "").lower()
        if (a_low in r_artist or r_artist in a_low) and (t_low in r_album or r_album in t_low):
            return r
    return results[0] if results else None


async def lookup_cover(
    artist: str,
    album: str,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Optional[str]:
    """Return a 600x600 artwork URL for artist/album, or None when nothing matches.

    Transport and HTTP errors propagate; the route turns them into a 500.
    """
    params = {
        "term": f"{artist} {album}",
        "media": "music",
        "entity": "album",
        "limit": 5,
    }
    async with httpx.AsyncClient(
        timeout=COVER_TIMEOUT, headers={"User-Agent": USER_AGENT}, transport=transport
    ) as client:
        r = await client.get(ITUNES_SEARCH_URL, params=params)
        r.raise_for_status()
        data = r.json()

    best = _pick_result(data.get("results") or [], artist, album)
    if not best:
        return None
    artwork = best.get("artworkUrl100") or ""
    if not artwork:
        return None
    # iTunes URLs end in .../100x100bb.jpg; the CDN serves other sizes on request
    return artwork.replace("100x100bb", "600x600bb")
