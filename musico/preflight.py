"""Startup preflight check — player binary and stations API."""
import shutil

import httpx
from rich.console import Console

from .config import APP_VERSION, FFPLAY_BIN, HEALTH_TIMEOUT, JANGO_API_URL

console = Console()


async def run_preflight() -> bool:
    """
    Run all startup checks. Print results. Return True only if ALL pass.
    """
    console.print(f"\n  [bold]♪  Musico v{APP_VERSION}[/bold] — preflight check\n")

    checks = [
        ("Audio player", _check_ffplay),
        ("Stations API", _check_stations_api),
    ]

    results = []
    for i, (label, fn) in enumerate(checks, 1):
        ok, msg, fix = await fn()
        results.append((ok, label, msg, fix))
        icon = "[green]✓[/green]" if ok else "[red]✗[/red]"
        dots = "." * max(30 - len(label), 3)
        status = f"[green]{msg}[/green]" if ok else f"[red]{msg}[/red]"
        console.print(f"  [{i}/{len(checks)}] {label} {dots} {icon} {status}")

    failures = [(label, fix) for ok, label, _, fix in results if not ok and fix]
    if failures:
        console.print("")
        for label, fix in failures:
            console.print(f"  [yellow]Fix for {label}:[/yellow]")
            for line in fix.strip().splitlines():
                console.print(f"    {line}")
            console.print("")
        return False

    console.print("")
    return True


async def _check_ffplay() -> tuple[bool, str, str]:
    path = shutil.which(FFPLAY_BIN)
    if path:
        return True, path, ""
    return False, f"{FFPLAY_BIN} not found", (
        "Install ffmpeg (it ships ffplay):\n"
        "  macOS:  brew install ffmpeg\n"
        "  Debian: sudo apt install ffmpeg\n"
        "Or point FFPLAY_BIN at an existing binary in .env"
    )


async def _check_stations_api() -> tuple[bool, str, str]:
    try:
        async with httpx.AsyncClient(timeout=HEALTH_TIMEOUT) as client:
            r = await client.get(f"{JANGO_API_URL}/stations")
            if r.status_code == 200:
                return True, f"reachable at {JANGO_API_URL}", ""
            return False, f"HTTP {r.status_code}", "Check JANGO_API_URL in .env"
    except httpx.HTTPError:
        pass
    return False, "not responding", (
        f"Nothing answered at {JANGO_API_URL}.\n"
        "Check your connection or point JANGO_API_URL in .env at a running /api/jango proxy"
    )
