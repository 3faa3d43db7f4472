"""Stations/songs API client."""
import logging
from typing import Iterable, Optional
from urllib.parse import quote

import httpx

from .config import JANGO_API_URL, PROXY_API_URL, STATIONS_TIMEOUT
from .errors import StationsUnavailable, format_error
from .models import Song, Station

logger = logging.getLogger(__name__)


def dedupe_songs(songs: Iterable[Song]) -> list[Song]:
    """Drop repeated (title, artist) pairs, keeping the first occurrence in order."""
    seen: set[tuple[str, str]] = set()
    unique = []
    for song in songs:
        if song.key in seen:
            continue
        seen.add(song.key)
        unique.append(song)
    return unique


def filter_stations(stations: list[Station], query: str) -> list[Station]:
    q = query.strip().lower()
    if not q:
        return list(stations)
    return [s for s in stations if q in s.name.lower()]


def stream_url(song: Song, proxy_url: str = PROXY_API_URL) -> str:
    """Stream URL to hand to the player — routed through the proxy when one is set."""
    if proxy_url:
        return f"{proxy_url}{quote(song.url, safe='')}"
    return song.url


class JangoClient:
    def __init__(
        self,
        base_url: str = JANGO_API_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._transport = transport

    async def fetch_stations(self) -> list[Station]:
        """Raises StationsUnavailable when the service can't be reached or says no."""
        try:
            async with httpx.AsyncClient(timeout=STATIONS_TIMEOUT, transport=self._transport) as client:
                r = await client.get(f"{self.base_url}/stations")
                r.raise_for_status()
                data = r.json()
        except httpx.HTTPError as e:
            raise StationsUnavailable(f"stations request failed: {e}") from e
        except ValueError as e:
            raise StationsUnavailable(f"stations response is not JSON: {e}") from e

        if not isinstance(data, dict) or not data.get("success"):
            raise StationsUnavailable("stations API reported failure")
        stations = []
        for item in data.get("stations") or []:
            try:
                stations.append(Station.from_json(item))
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed station entry: %r", item)
        return stations

    async def fetch_songs(self, station_id: int, count: int = 10) -> list[Song]:
        """Fetch a de-duplicated queue for a station. Empty list on any failure."""
        url = f"{self.base_url}/stations/{station_id}/songs"
        try:
            async with httpx.AsyncClient(timeout=STATIONS_TIMEOUT, transport=self._transport) as client:
                r = await client.get(url, params={"count": count})
                r.raise_for_status()
                data = r.json()
        except httpx.TimeoutException:
            format_error("queue_fetch", {"station": station_id, "count": count}, "timed out")
            return []
        except httpx.HTTPError as e:
            format_error("queue_fetch", {"station": station_id, "count": count}, str(e))
            return []
        except ValueError as e:
            format_error("queue_fetch", {"station": station_id, "count": count}, f"invalid JSON: {e}")
            return []

        if not isinstance(data, dict) or not data.get("success"):
            logger.warning("Songs API reported failure for station %s", station_id)
            return []
        items = data.get("songs") or []
        if not isinstance(items, list):
            logger.warning("Songs API returned %s instead of a list for station %s", type(items).__name__, station_id)
            return []
        songs = []
        for item in items:
            try:
                songs.append(Song.from_json(item))
            except (AttributeError, TypeError):
                logger.warning("Skipping malformed song entry: %r", item)
        return dedupe_songs(songs)
