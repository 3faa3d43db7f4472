"""
Unit tests for StationEngine

Covers:
- index helpers: wraparound in both directions
- station select -> queue of 100 -> first song playing
- next/previous/random navigation, refill near the tail of short queues
- play/pause toggling and bootstrap
- auto-advance on natural track end
- station navigation and broadcasting
"""
import asyncio
import random
from unittest.mock import AsyncMock

import pytest

from conftest import FakeClient, make_song
from musico.engine import (
    PlaybackStatus,
    StationEngine,
    next_index,
    previous_index,
    random_index,
)
from musico.errors import StationsUnavailable
from musico.models import Station


def _engine(stations, fake_player, songs, state=None, rng=None):
    client = FakeClient(stations=stations, songs=songs)
    return StationEngine(state=state, client=client, player=fake_player, rng=rng)


# ── Index helpers ───────────────────────────────────────────────────────────

def test_next_index_wraps_at_end():
    assert next_index(4, 5) == 0
    assert next_index(0, 5) == 1


def test_previous_index_wraps_at_start():
    assert previous_index(0, 5) == 4
    assert previous_index(3, 5) == 2


def test_random_index_in_range():
    rng = random.Random(7)
    assert all(0 <= random_index(3, rng) < 3 for _ in range(50))


# ── Station selection ───────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_select_station_plays_first_song(stations, fake_player):
    queue = [make_song(i) for i in range(5)]
    engine = _engine(stations, fake_player, {1: queue})

    await engine.select_station(stations[0])

    assert engine.client.song_calls == [(1, 100)]
    assert engine.status == PlaybackStatus.PLAYING
    assert engine.current_song == queue[0]
    assert engine.index == 0
    assert fake_player.played == [queue[0].url]


@pytest.mark.asyncio
async def test_select_station_with_no_songs_goes_idle(stations, fake_player):
    engine = _engine(stations, fake_player, {})
    await engine.select_station(stations[1])

    assert engine.status == PlaybackStatus.IDLE
    assert engine.current_song is None
    assert fake_player.played == []


@pytest.mark.asyncio
async def test_load_stations_failure_sets_error(fake_player):
    client = FakeClient()
    client.fetch_stations = AsyncMock(side_effect=StationsUnavailable("down"))
    engine = StationEngine(client=client, player=fake_player)

    assert await engine.load_stations() == []
    assert engine.api_error


# ── Queue navigation ────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_next_at_last_index_wraps_to_zero(stations, fake_player):
    queue = [make_song(i) for i in range(40)]
    engine = _engine(stations, fake_player, {1: queue})
    await engine.select_station(stations[0])
    engine.index = 39

    await engine.play_next()

    assert engine.index == 0
    assert engine.current_song == queue[0]
    assert engine.client.song_calls == [(1, 100)]  # long queue: no refill


@pytest.mark.asyncio
async def test_previous_at_zero_wraps_to_last(stations, fake_player):
    queue = [make_song(i) for i in range(4)]
    engine = _engine(stations, fake_player, {1: queue})
    await engine.select_station(stations[0])

    await engine.play_previous()

    assert engine.index == 3
    assert fake_player.played[-1] == queue[3].url


@pytest.mark.asyncio
async def test_next_refills_short_queue_near_tail(stations, fake_player):
    engine = _engine(stations, fake_player, {1: [make_song(i) for i in range(3)]})
    await engine.select_station(stations[0])
    engine.index = 2
    longer = [make_song(i) for i in range(8)]
    engine.client.songs[1] = longer

    await engine.play_next()

    assert engine.client.song_calls[-1] == (1, 20)
    assert engine.queue == longer
    assert engine.index == 3
    assert engine.current_song == longer[3]


@pytest.mark.asyncio
async def test_failed_refill_keeps_old_queue(stations, fake_player):
    queue = [make_song(i) for i in range(3)]
    engine = _engine(stations, fake_player, {1: queue})
    await engine.select_station(stations[0])
    engine.index = 2
    engine.client.songs[1] = []

    await engine.play_next()

    assert engine.queue == queue
    assert engine.index == 0


@pytest.mark.asyncio
async def test_index_stays_in_range_over_many_moves(stations, fake_player):
    engine = _engine(stations, fake_player, {1: [make_song(i) for i in range(5)]}, rng=random.Random(3))
    await engine.select_station(stations[0])

    for step in range(30):
        if step % 3 == 0:
            await engine.play_previous()
        elif step % 3 == 1:
            await engine.play_random_song()
        else:
            await engine.play_next()
        assert 0 <= engine.index < len(engine.queue)


@pytest.mark.asyncio
async def test_navigation_without_station_is_noop(fake_player):
    engine = StationEngine(client=FakeClient(), player=fake_player)
    await engine.play_next()
    await engine.play_previous()
    await engine.play_random_song()
    await engine.toggle_play_pause()
    assert fake_player.played == []


@pytest.mark.asyncio
async def test_track_end_advances_queue(stations, fake_player):
    queue = [make_song(i) for i in range(40)]
    engine = _engine(stations, fake_player, {1: queue})
    await engine.select_station(stations[0])

    await fake_player.on_ended()

    assert engine.index == 1
    assert engine.status == PlaybackStatus.PLAYING
    assert fake_player.played[-1] == queue[1].url


@pytest.mark.asyncio
async def test_track_error_goes_idle_and_reports(stations, fake_player):
    state = AsyncMock()
    engine = _engine(stations, fake_player, {1: [make_song(0)]}, state=state)
    await engine.select_station(stations[0])
    fake_player.stop()

    await fake_player.on_error(1)

    assert engine.status == PlaybackStatus.IDLE
    events = [c.args[0] for c in state.broadcast.await_args_list]
    assert "toast" in events


@pytest.mark.asyncio
async def test_concurrent_next_calls_advance_one_at_a_time(stations, fake_player):
    class SlowClient(FakeClient):
        async def fetch_songs(self, station_id, count=10):
            await asyncio.sleep(0.01)
            return await super().fetch_songs(station_id, count)

    engine = StationEngine(client=SlowClient(stations=stations, songs={1: [make_song(i) for i in range(3)]}),
                           player=fake_player)
    await engine.select_station(stations[0])
    engine.index = 2
    longer = [make_song(i) for i in range(8)]
    engine.client.songs[1] = longer

    await asyncio.gather(engine.play_next(), engine._on_track_ended())

    assert engine.index == 4
    assert fake_player.played[-2:] == [longer[3].url, longer[4].url]
    assert engine.client.song_calls.count((1, 20)) == 1


# ── Play / pause ────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_toggle_pauses_and_resumes(stations, fake_player):
    engine = _engine(stations, fake_player, {1: [make_song(0)]})
    await engine.select_station(stations[0])

    await engine.toggle_play_pause()
    assert engine.status == PlaybackStatus.PAUSED
    assert fake_player.paused

    await engine.toggle_play_pause()
    assert engine.status == PlaybackStatus.PLAYING
    assert not fake_player.paused


@pytest.mark.asyncio
async def test_toggle_replays_current_song_when_nothing_loaded(stations, fake_player):
    song = make_song(0)
    engine = _engine(stations, fake_player, {1: [song]})
    await engine.select_station(stations[0])
    fake_player.stop()
    engine.status = PlaybackStatus.IDLE

    await engine.toggle_play_pause()

    assert fake_player.played == [song.url, song.url]
    assert engine.status == PlaybackStatus.PLAYING


@pytest.mark.asyncio
async def test_toggle_bootstraps_queue_of_ten(stations, fake_player):
    queue = [make_song(i) for i in range(12)]
    engine = _engine(stations, fake_player, {2: queue})
    engine.selected_station = stations[1]

    await engine.toggle_play_pause()

    assert engine.client.song_calls == [(2, 10)]
    assert len(engine.queue) == 10
    assert engine.current_song == queue[0]


# ── Stations ────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_station_navigation_wraps(stations, fake_player):
    songs = {s.id: [make_song(s.id)] for s in stations}
    engine = _engine(stations, fake_player, songs)
    await engine.load_stations()
    await engine.select_station(stations[2])

    await engine.play_next_station()
    assert engine.selected_station == stations[0]

    await engine.play_previous_station()
    assert engine.selected_station == stations[2]


@pytest.mark.asyncio
async def test_random_station_uses_loaded_list(stations, fake_player):
    songs = {s.id: [make_song(s.id)] for s in stations}
    engine = _engine(stations, fake_player, songs, rng=random.Random(1))
    await engine.load_stations()

    await engine.play_random_station()

    assert engine.selected_station in stations
    assert engine.status == PlaybackStatus.PLAYING


@pytest.mark.asyncio
async def test_find_station_by_id_name_and_substring(stations, fake_player):
    engine = _engine(stations, fake_player, {})
    await engine.load_stations()

    assert engine.find_station("2") == stations[1]
    assert engine.find_station("rock") == stations[0]
    assert engine.find_station("classic") == stations[2]
    assert engine.find_station("polka") is None


# ── Controls & snapshot ─────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_volume_and_seek_are_mirrored(stations, fake_player):
    engine = _engine(stations, fake_player, {1: [make_song(0)]})
    await engine.select_station(stations[0])

    await engine.set_volume(1.7)
    await engine.seek(42.0)
    snap = engine.snapshot()

    assert snap["volume"] == 1.0
    assert snap["position"] == 42.0
    assert snap["queue_length"] == 1
    assert snap["station"] == {"id": 1, "name": "Rock"}
    assert snap["song"]["song"] == "Song 0"


@pytest.mark.asyncio
async def test_state_changes_are_broadcast(stations, fake_player):
    state = AsyncMock()
    engine = _engine(stations, fake_player, {1: [make_song(0)]}, state=state)

    await engine.select_station(stations[0])

    statuses = [c.args[1]["status"] for c in state.broadcast.await_args_list if c.args[0] == "playback"]
    assert statuses == ["loading", "playing"]
