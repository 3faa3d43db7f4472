"""Starlette app — API routes, upstream proxy, player-control WebSocket."""
import asyncio
import contextlib
import logging
import uuid
from typing import Optional
from urllib.parse import unquote

import httpx
from starlette.applications import Starlette
from starlette.responses import JSONResponse, Response
from starlette.routing import Route, WebSocketRoute
from starlette.websockets import WebSocket, WebSocketDisconnect

from ..album_art import lookup_cover
from ..cache import ExpiringCache
from ..config import (
    APP_VERSION, HEALTH_TIMEOUT, JANGO_UPSTREAM_URL, MUSICBRAINZ_URL, STATIONS_TIMEOUT,
)
from ..covers import CoverResolver
from ..engine import StationEngine
from ..errors import format_error
from ..jango import JangoClient, filter_stations
from ..musicbrainz import MusicBrainzClient
from .state import PlayerState

logger = logging.getLogger(__name__)

# Shared state
_state = PlayerState()
_engine: StationEngine | None = None
_metadata: MusicBrainzClient | None = None
_covers: CoverResolver | None = None
_upstream_transport: Optional[httpx.AsyncBaseTransport] = None

# Response headers that must not be copied from the upstream response
_HOP_HEADERS = {"content-encoding", "content-length", "transfer-encoding", "connection"}


# ── Health ───────────────────────────────────────────────────────────────────

async def health(request):
    checks = {}
    targets = {
        "stations": f"{JANGO_UPSTREAM_URL}/stations",
        "musicbrainz": MUSICBRAINZ_URL,
    }
    for name, url in targets.items():
        try:
            async with httpx.AsyncClient(timeout=HEALTH_TIMEOUT, transport=_upstream_transport) as client:
                r = await client.get(url)
                checks[name] = {"ok": r.status_code < 500, "status": r.status_code}
        except httpx.HTTPError as e:
            checks[name] = {"ok": False, "error": str(e)}

    all_ok = all(c["ok"] for c in checks.values())
    return JSONResponse({
        "status": "ok" if all_ok else "degraded",
        "version": APP_VERSION,
        "clients": _state.client_count,
        "checks": checks,
    })


# ── Upstream proxy ───────────────────────────────────────────────────────────

async def jango_proxy(request):
    """Forward /api/jango/<path> to the stations/songs upstream."""
    path = request.path_params["path"]
    url = f"{JANGO_UPSTREAM_URL}/{path}"
    try:
        async with httpx.AsyncClient(timeout=STATIONS_TIMEOUT, transport=_upstream_transport) as client:
            r = await client.get(url, params=request.query_params)
    except httpx.HTTPError as e:
        format_error("proxy", {"path": path}, str(e))
        return JSONResponse({"error": "Upstream unavailable"}, status_code=502)

    headers = {k: v for k, v in r.headers.items() if k.lower() not in _HOP_HEADERS}
    return Response(r.content, status_code=r.status_code, headers=headers)


# ── Covers & releases ────────────────────────────────────────────────────────

def _cover_params(request) -> Optional[tuple[str, str]]:
    """Artist and album taken from the undecoded path, so an encoded '/' stays inside its segment."""
    raw = request.scope.get("raw_path")
    if raw:
        tail = raw.decode("latin-1").split("/api/cover/", 1)[-1]
        parts = [unquote(p) for p in tail.split("/")]
    else:
        parts = request.path_params["rest"].split("/")
    if len(parts) != 2 or not all(parts):
        return None
    return parts[0], parts[1]


async def cover(request):
    params = _cover_params(request)
    if params is None:
        return JSONResponse({"error": "No cover found"}, status_code=404)
    artist, album = params
    try:
        cover_url = await lookup_cover(artist, album)
    except (httpx.HTTPError, ValueError) as e:
        logger.error("Error fetching cover for %s — %s: %s", artist, album, e)
        return JSONResponse({"error": "Failed to fetch cover"}, status_code=500)

    if cover_url:
        return JSONResponse({"coverUrl": cover_url})
    return JSONResponse({"error": "No cover found"}, status_code=404)


async def release_detail(request):
    release_id = request.path_params["release_id"]
    release, cover_url = await _metadata.load_release_with_cover(release_id, _covers)
    if release is None:
        return JSONResponse({"error": "Release not found"}, status_code=404)
    body = release.summary()
    body["coverUrl"] = cover_url
    return JSONResponse(body)


# ── Stations ─────────────────────────────────────────────────────────────────

async def list_stations(request):
    if not _engine.stations:
        await _engine.load_stations()
    query = request.query_params.get("q", "")
    stations = filter_stations(_engine.stations, query)
    return JSONResponse({
        "stations": [s.to_json() for s in stations],
        "total": len(_engine.stations),
        "error": _engine.api_error,
    })


# ── WebSocket ────────────────────────────────────────────────────────────────

async def websocket_endpoint(websocket: WebSocket):
    await websocket.accept()
    client_id = str(uuid.uuid4())
    queue = _state.subscribe(client_id, sync=_engine.snapshot() if _engine else None)
    logger.info("WS connected: %s", client_id)

    # Two tasks: one reads from client, one writes from queue
    async def _reader():
        try:
            while True:
                data = await websocket.receive_json()
                await _handle_ws_message(data)
        except WebSocketDisconnect:
            pass
        except Exception:
            logger.exception("WS reader error")

    async def _writer():
        while True:
            event, data = await queue.get()
            await websocket.send_json({"type": event, "data": data})

    reader_task = asyncio.create_task(_reader())
    writer_task = asyncio.create_task(_writer())

    try:
        done, pending = await asyncio.wait(
            [reader_task, writer_task],
            return_when=asyncio.FIRST_COMPLETED,
        )
        for task in pending:
            task.cancel()
    finally:
        _state.unsubscribe(client_id)
        logger.info("WS disconnected: %s", client_id)


async def _handle_ws_message(data: dict):
    """Route incoming WebSocket messages to engine methods."""
    if not _engine:
        return

    msg_type = data.get("type", "")

    if msg_type == "select_station":
        station = _engine.find_station(str(data.get("id", data.get("name", ""))))
        if station:
            await _engine.select_station(station)
        else:
            await _state.broadcast("toast", {"message": "Unknown station."})

    elif msg_type == "toggle_pause":
        await _engine.toggle_play_pause()

    elif msg_type == "next":
        await _engine.play_next()

    elif msg_type == "previous":
        await _engine.play_previous()

    elif msg_type == "random_song":
        await _engine.play_random_song()

    elif msg_type == "random_station":
        await _engine.play_random_station()

    elif msg_type == "next_station":
        await _engine.play_next_station()

    elif msg_type == "previous_station":
        await _engine.play_previous_station()

    elif msg_type == "volume":
        await _engine.set_volume(float(data.get("level", 0.5)))

    elif msg_type == "seek":
        await _engine.seek(float(data.get("position", 0)))

    elif msg_type == "reload_stations":
        await _engine.load_stations()

    else:
        logger.warning("Unknown WS message type: %s", msg_type)


# ── App factory ──────────────────────────────────────────────────────────────

@contextlib.asynccontextmanager
async def _lifespan(app):
    if _engine:
        await _engine.load_stations()
        logger.info("Station list loaded (%d stations)", len(_engine.stations))
    yield
    if _engine:
        await _engine.stop()
        logger.info("Player stopped")


def create_app(
    engine: Optional[StationEngine] = None,
    cache: Optional[ExpiringCache] = None,
    upstream_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Starlette:
    global _engine, _metadata, _covers, _upstream_transport

    cache = cache if cache is not None else ExpiringCache()
    _engine = engine or StationEngine(_state, client=JangoClient(JANGO_UPSTREAM_URL))
    if _engine.state is None:
        _engine.state = _state
    _metadata = MusicBrainzClient(cache=cache)
    _covers = CoverResolver(cache=cache)
    _upstream_transport = upstream_transport

    routes = [
        Route("/api/health", health),
        Route("/api/stations", list_stations),
        Route("/api/release/{release_id}", release_detail),
        Route("/api/cover/{rest:path}", cover),
        Route("/api/jango/{path:path}", jango_proxy),
        WebSocketRoute("/ws", websocket_endpoint),
    ]

    return Starlette(routes=routes, lifespan=_lifespan)
