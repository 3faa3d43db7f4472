"""Musico — internet radio and release browser, entry point."""
import argparse
import asyncio
import logging
import shutil
import sys
from io import StringIO

from rich import print as rprint
from rich.console import Console

from musico.cache import ExpiringCache
from musico.config import OUTPUT_DIR, PLAYER_LOG, SEEK_STEP, VOLUME_STEP, WEB_HOST, WEB_PORT
from musico.covers import CoverResolver
from musico.engine import StationEngine
from musico.errors import StationsUnavailable
from musico.input import _read_key
from musico.jango import JangoClient, filter_stations
from musico.musicbrainz import MusicBrainzClient
from musico.preflight import run_preflight
from musico.ui import (
    console,
    now_playing_line,
    print_error_banner,
    print_header,
    print_help,
    print_now_playing,
    print_release,
    print_stations,
)

logger = logging.getLogger("musico")


def _render(markup: str) -> str:
    """Render rich markup to an ANSI string for in-place status updates."""
    width = shutil.get_terminal_size((80, 24)).columns
    buf = StringIO()
    Console(file=buf, width=width, force_terminal=True, highlight=False).print(markup, end="")
    return buf.getvalue()


# ── Commands ──────────────────────────────────────────────────────────────────

async def cmd_stations(query: str) -> int:
    try:
        stations = await JangoClient().fetch_stations()
    except StationsUnavailable as e:
        logger.error("Stations unavailable: %s", e)
        print_error_banner("Unable to connect to music service. Please check your API configuration.")
        return 1
    print_stations(filter_stations(stations, query), total=len(stations))
    return 0


async def cmd_release(release_id: str) -> int:
    cache = ExpiringCache()
    with console.status("  [yellow]Loading...[/yellow]", spinner="dots"):
        release, cover_url = await MusicBrainzClient(cache=cache).load_release_with_cover(
            release_id, CoverResolver(cache=cache)
        )
    if release is None:
        console.print("  [red]Release not found[/red]")
        return 1
    print_release(release, cover_url)
    return 0


async def _handle_key(engine: StationEngine, key: str) -> bool:
    """Apply one keypress. Returns False when the user asked to quit."""
    if key in ("q", "\x03", "esc"):
        return False
    if key == " ":
        await engine.toggle_play_pause()
    elif key == "n":
        await engine.play_next()
    elif key == "p":
        await engine.play_previous()
    elif key == "r":
        await engine.play_random_song()
    elif key == "R":
        await engine.play_random_station()
    elif key == "]":
        await engine.play_next_station()
    elif key == "[":
        await engine.play_previous_station()
    elif key in ("+", "=", "up"):
        await engine.set_volume(engine.player.volume + VOLUME_STEP)
    elif key in ("-", "down"):
        await engine.set_volume(engine.player.volume - VOLUME_STEP)
    elif key == "right":
        await engine.seek(engine.player.elapsed + SEEK_STEP)
    elif key == "left":
        await engine.seek(engine.player.elapsed - SEEK_STEP)
    return True


async def cmd_play(query: str) -> int:
    print_header()
    if not await run_preflight():
        return 1

    engine = StationEngine()
    await engine.load_stations()
    if engine.api_error:
        print_error_banner(engine.api_error)
        return 1

    if query:
        station = engine.find_station(query)
        if station is None:
            console.print(f"  [red]No station matches '{query}'.[/red]")
            return 1
        await engine.select_station(station)
    else:
        await engine.play_random_station()

    print_help()
    loop = asyncio.get_running_loop()
    shown = None
    try:
        while True:
            snap = engine.snapshot()
            if snap["song"] != shown:
                shown = snap["song"]
                sys.stdout.write("\r\033[K")
                print_now_playing(snap)
            sys.stdout.write("\r\033[K" + _render(now_playing_line(snap)))
            sys.stdout.flush()

            key = await loop.run_in_executor(None, _read_key)
            if key is None or key == "ignore":
                continue
            if not await _handle_key(engine, key):
                break
    finally:
        await engine.stop()
        sys.stdout.write("\r\033[K")
        console.print("  [bold cyan]♪[/bold cyan]  See you next time.\n")
    return 0


def cmd_serve() -> int:
    import uvicorn

    from musico.web.server import create_app

    uvicorn.run(create_app(), host=WEB_HOST, port=WEB_PORT, log_level="info")
    return 0


# ── Entry ─────────────────────────────────────────────────────────────────────

def _setup_logging(to_file: bool):
    fmt = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
    if to_file:
        # Terminal belongs to the player UI; keep log lines out of it
        OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
        logging.basicConfig(filename=PLAYER_LOG, level=logging.INFO, format=fmt)
    else:
        logging.basicConfig(level=logging.INFO, format=fmt)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="listen", description="Musico — stations, releases, playback")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("stations", help="list stations, optionally filtered")
    p.add_argument("query", nargs="?", default="")

    p = sub.add_parser("play", help="play a station (name or id; random if omitted)")
    p.add_argument("station", nargs="?", default="")

    p = sub.add_parser("release", help="show a MusicBrainz release with its cover")
    p.add_argument("release_id")

    sub.add_parser("serve", help="run the web API")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    _setup_logging(to_file=args.command in ("play", "stations", "release"))

    if args.command == "serve":
        return cmd_serve()
    if args.command == "stations":
        return asyncio.run(cmd_stations(args.query))
    if args.command == "release":
        return asyncio.run(cmd_release(args.release_id))
    return asyncio.run(cmd_play(args.station))


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        rprint("\n\n  [bold]Stopped.[/bold] Goodbye.\n")
        sys.exit(0)
