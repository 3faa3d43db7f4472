"""UI display helpers — stations table, now-playing line, release page."""
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import APP_VERSION
from .models import Release, Station

console = Console()


def fmt_time(seconds: Optional[float]) -> str:
    if not seconds:
        return "0:00"
    m, s = divmod(int(seconds), 60)
    return f"{m}:{s:02d}"


def print_header():
    console.print(
        f"\n  [bold cyan]♪  Musico[/bold cyan]"
        f"  [dim]v{APP_VERSION}[/dim]"
    )


def print_error_banner(message: str):
    console.print(Panel(
        f"[red]{message}[/red]",
        title="[bold red]Connection Error[/bold red]",
        border_style="red",
        expand=False,
    ))


def print_stations(stations: list[Station], total: Optional[int] = None):
    if not stations:
        console.print("  [dim]No stations match.[/dim]")
        return
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Station", style="white")
    for s in stations:
        table.add_row(str(s.id), s.name)
    console.print(table)
    if total is not None and total != len(stations):
        console.print(f"  [dim]{len(stations)} of {total} stations[/dim]")


def now_playing_line(snapshot: dict) -> str:
    """One-line status: icon, title — artist, position, queue slot, volume."""
    song = snapshot.get("song")
    status = snapshot.get("status", "idle")
    if status == "loading":
        return "  [yellow]…  Loading station...[/yellow]"
    if not song:
        return "  [dim]Nothing playing — pick a station[/dim]"
    icon = {"playing": "[green]▶[/green]", "paused": "[yellow]⏸[/yellow]"}.get(status, "[dim]■[/dim]")
    duration = snapshot.get("duration")
    pos = fmt_time(snapshot.get("position"))
    timing = f"{pos} / {fmt_time(duration)}" if duration else pos
    vol = round((snapshot.get("volume") or 0) * 100)
    return (
        f"  {icon} [bold]{song['song']}[/bold] — {song['artist']}"
        f"  [dim]{timing}  ·  {snapshot['index'] + 1}/{snapshot['queue_length']}  ·  vol {vol}%[/dim]"
    )


def print_now_playing(snapshot: dict):
    song = snapshot.get("song")
    station = snapshot.get("station") or {}
    if not song:
        return
    lines = [f"  [bold]{song['song']}[/bold]", f"  {song['artist']}"]
    if song.get("album"):
        lines.append(f"  [dim]{song['album']}[/dim]")
    if song.get("album_art"):
        lines.append(f"  [dim]art: {song['album_art']}[/dim]")
    console.print(Panel(
        "\n".join(lines),
        title=f"[bold cyan]♪[/bold cyan] {station.get('name', '')}",
        border_style="cyan",
        expand=False,
        padding=(0, 1),
    ))


def print_release(release: Release, cover_url: Optional[str]):
    """Render the release page: header facts, tags/genres, rating, track list."""
    info = release.summary()
    lines = [
        f"  [bold]{info['title']}[/bold]",
        f"  {info['artist']}",
        f"  [dim]{info['type']} · {info['date']} · {info['label']} · {info['country']}[/dim]",
    ]
    if info["disambiguation"]:
        lines.append(f"  [italic]{info['disambiguation']}[/italic]")
    if info["rating"] is not None:
        lines.append(f"  Rating: {info['rating']}/5 ({info['rating_votes']} votes)")
    if info["genres"]:
        lines.append(f"  Genres: {', '.join(info['genres'])}")
    if info["tags"]:
        lines.append(f"  Tags: {', '.join(info['tags'])}")
    lines.append(f"  Cover: {cover_url}" if cover_url else "  [dim]Cover: (no cover art)[/dim]")
    console.print(Panel("\n".join(lines), border_style="cyan", expand=False, padding=(0, 1)))

    if not info["tracks"]:
        return
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("#", style="dim", width=4)
    table.add_column("Title", style="white")
    table.add_column("Length", style="dim")
    for t in info["tracks"]:
        table.add_row(t["number"], t["title"], t["length"])
    console.print(table)


def print_help():
    console.print(
        "  [dim]space pause · n/p next/prev · r random song · R random station"
        " · ]/[ next/prev station · +/- volume · ←/→ seek · q quit[/dim]"
    )
