"""Station/queue controller — pure async state machine over a station's song queue.

Receives commands via methods, drives the Player, broadcasts state via PlayerState.
"""
import asyncio
import logging
import random
from enum import Enum
from typing import Optional

from .config import (
    BOOTSTRAP_QUEUE_SIZE,
    REFILL_AT_INDEX,
    REFILL_BELOW,
    REFILL_QUEUE_SIZE,
    STATION_QUEUE_SIZE,
)
from .errors import StationsUnavailable, format_error
from .jango import JangoClient, stream_url
from .models import Song, Station
from .player import Player

logger = logging.getLogger(__name__)


class PlaybackStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"


def next_index(index: int, length: int) -> int:
    return (index + 1) % length


def previous_index(index: int, length: int) -> int:
    return length - 1 if index <= 0 else index - 1


def random_index(length: int, rng: random.Random | None = None) -> int:
    return (rng or random).randrange(length)


class StationEngine:
    def __init__(
        self,
        state=None,
        client: Optional[JangoClient] = None,
        player: Optional[Player] = None,
        rng: Optional[random.Random] = None,
    ):
        """state: PlayerState instance for broadcasting to WebSocket clients (optional)."""
        self.state = state
        self.client = client or JangoClient()
        self.player = player or Player()
        self.player.on_ended = self._on_track_ended
        self.player.on_error = self._on_track_error
        self._rng = rng
        self._advance_lock = asyncio.Lock()

        self.stations: list[Station] = []
        self.selected_station: Optional[Station] = None
        self.queue: list[Song] = []
        self.index: int = 0
        self.current_song: Optional[Song] = None
        self.status: PlaybackStatus = PlaybackStatus.IDLE
        self.api_error: Optional[str] = None

    # ── Stations ──────────────────────────────────────────────────────────────

    async def load_stations(self) -> list[Station]:
        try:
            self.stations = await self.client.fetch_stations()
            self.api_error = None
        except StationsUnavailable as e:
            self.api_error = format_error("stations_fetch", raw=str(e))
        await self._broadcast("stations", {
            "stations": [s.to_json() for s in self.stations],
            "error": self.api_error,
        })
        return self.stations

    def find_station(self, query: str) -> Optional[Station]:
        """Look up a loaded station by id, exact name, or name substring."""
        q = query.strip().lower()
        if not q:
            return None
        for s in self.stations:
            if str(s.id) == q or s.name.lower() == q:
                return s
        return next((s for s in self.stations if q in s.name.lower()), None)

    async def select_station(self, station: Station):
        """Switch station: fetch a fresh queue and auto-play its first song."""
        self.selected_station = station
        self.status = PlaybackStatus.LOADING
        await self._broadcast_playback_state()

        songs = await self.client.fetch_songs(station.id, STATION_QUEUE_SIZE)
        if not songs:
            self.player.stop()
            self.queue = []
            self.index = 0
            self.current_song = None
            self.status = PlaybackStatus.IDLE
            await self._broadcast("toast", {"message": f"No songs available on {station.name}."})
            await self._broadcast_playback_state()
            return

        self.queue = songs
        self.index = 0
        await self._play(songs[0])

    def _station_offset(self, step: int) -> Optional[Station]:
        if not self.stations:
            return None
        if self.selected_station not in self.stations:
            return self.stations[0] if step > 0 else self.stations[-1]
        current = self.stations.index(self.selected_station)
        return self.stations[(current + step) % len(self.stations)]

    async def play_next_station(self):
        if not self.selected_station:
            return
        station = self._station_offset(1)
        if station:
            await self.select_station(station)

    async def play_previous_station(self):
        if not self.selected_station:
            return
        station = self._station_offset(-1)
        if station:
            await self.select_station(station)

    async def play_random_station(self):
        if not self.stations:
            return
        await self.select_station(self.stations[random_index(len(self.stations), self._rng)])

    # ── Queue navigation ──────────────────────────────────────────────────────

    async def toggle_play_pause(self):
        if not self.selected_station:
            return

        if self.status == PlaybackStatus.PLAYING and self.player.is_loaded():
            self.player.pause()
            self.status = PlaybackStatus.PAUSED
            await self._broadcast_playback_state()
        elif self.player.is_loaded():
            self.player.resume()
            self.status = PlaybackStatus.PLAYING
            await self._broadcast_playback_state()
        elif self.current_song:
            await self._play(self.current_song)
        else:
            songs = await self.client.fetch_songs(self.selected_station.id, BOOTSTRAP_QUEUE_SIZE)
            if songs:
                self.queue = songs
                self.index = 0
                await self._play(songs[0])

    async def play_next(self):
        # Key presses and track-end callbacks both land here; one advance at a time
        async with self._advance_lock:
            if not self.queue or not self.selected_station:
                return

            new_index = next_index(self.index, len(self.queue))

            # Short queue about to wrap around, try to top it up first
            if new_index <= REFILL_AT_INDEX and len(self.queue) < REFILL_BELOW:
                more = await self.client.fetch_songs(self.selected_station.id, REFILL_QUEUE_SIZE)
                if len(more) > len(self.queue):
                    logger.info("Queue refilled: %d -> %d songs", len(self.queue), len(more))
                    self.queue = more
                    new_index = next_index(self.index, len(self.queue))

            self.index = new_index
            await self._play(self.queue[new_index])

    async def play_previous(self):
        if not self.queue or not self.selected_station:
            return
        self.index = previous_index(self.index, len(self.queue))
        await self._play(self.queue[self.index])

    async def play_random_song(self):
        if not self.queue or not self.selected_station:
            return
        self.index = random_index(len(self.queue), self._rng)
        await self._play(self.queue[self.index])

    # ── Player controls ───────────────────────────────────────────────────────

    async def set_volume(self, level: float):
        self.player.set_volume(level)
        await self._broadcast_playback_state()

    async def seek(self, position: float):
        self.player.seek(position)
        await self._broadcast_playback_state()

    async def stop(self):
        """Graceful shutdown."""
        self.player.stop()
        self.status = PlaybackStatus.IDLE

    # ── Internals ─────────────────────────────────────────────────────────────

    async def _play(self, song: Song):
        self.current_song = song
        self.player.play(stream_url(song))
        self.status = PlaybackStatus.PLAYING
        await self._broadcast_playback_state()

    async def _on_track_ended(self):
        """Natural end of track — advance the queue."""
        self.status = PlaybackStatus.IDLE
        await self.play_next()

    async def _on_track_error(self, code=None):
        song = self.current_song
        msg = format_error(
            "playback",
            {"song": song.title if song else None, "url": song.url if song else None},
            f"player exited with {code}",
        )
        self.status = PlaybackStatus.IDLE
        await self._broadcast("toast", {"message": msg})
        await self._broadcast_playback_state()

    async def _broadcast(self, event: str, data):
        if self.state is not None:
            await self.state.broadcast(event, data)

    async def _broadcast_playback_state(self):
        await self._broadcast("playback", self.snapshot())

    def snapshot(self) -> dict:
        song = self.current_song
        return {
            "station": self.selected_station.to_json() if self.selected_station else None,
            "song": song.to_json() if song else None,
            "stream_url": stream_url(song) if song else None,
            "index": self.index,
            "queue_length": len(self.queue),
            "status": self.status.value,
            "volume": self.player.volume,
            "position": round(self.player.elapsed, 1),
            "duration": self.player.duration,
            "error": self.api_error,
        }
