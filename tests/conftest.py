# tests/conftest.py
import pytest

from musico.cache import ExpiringCache
from musico.models import Song, Station


@pytest.fixture(autouse=True)
def _errors_log_in_tmp(tmp_path, monkeypatch):
    """Keep structured error entries out of the real output/ directory."""
    monkeypatch.setattr("musico.errors.OUTPUT_DIR", tmp_path)
    monkeypatch.setattr("musico.errors.ERRORS_LOG", tmp_path / "errors.log")


class Clock:
    """Manually advanced epoch-ms clock."""

    def __init__(self, now: int = 1_700_000_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int):
        self.now += ms


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def cache(tmp_path, clock):
    return ExpiringCache(tmp_path / "cache.json", clock=clock)


def make_song(n: int, artist: str = "Artist", station: str = "Rock") -> Song:
    return Song(
        album=f"Album {n}",
        artist=artist,
        album_art=f"https://art.example/{n}.jpg",
        station=station,
        title=f"Song {n}",
        url=f"https://stream.example/{n}.mp3",
    )


class FakeClient:
    """Stands in for JangoClient; songs maps station id -> list of songs."""

    def __init__(self, stations=None, songs=None):
        self.stations = stations or []
        self.songs = songs or {}
        self.song_calls: list[tuple[int, int]] = []

    async def fetch_stations(self):
        return list(self.stations)

    async def fetch_songs(self, station_id, count=10):
        self.song_calls.append((station_id, count))
        return list(self.songs.get(station_id, []))[:count]


class FakePlayer:
    def __init__(self):
        self.on_ended = None
        self.on_error = None
        self.played: list[str] = []
        self.volume = 0.5
        self.elapsed = 0.0
        self.duration = None
        self._loaded = False
        self.paused = False

    def play(self, url):
        self.played.append(url)
        self._loaded = True
        self.paused = False

    def stop(self):
        self._loaded = False
        self.paused = False

    def pause(self):
        self.paused = True

    def resume(self):
        self.paused = False

    def is_loaded(self):
        return self._loaded

    def set_volume(self, level):
        self.volume = max(0.0, min(1.0, level))
        return self.volume

    def seek(self, position):
        self.elapsed = max(0.0, position)
        return self.elapsed


@pytest.fixture
def stations():
    return [Station(1, "Rock"), Station(2, "Jazz"), Station(3, "Classic Rock")]


@pytest.fixture
def fake_player():
    return FakePlayer()
