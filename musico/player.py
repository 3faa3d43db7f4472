"""Audio playback via ffplay — one subprocess per track."""
import asyncio
import inspect
import logging
import os
import shutil
import signal
import subprocess
import time
from typing import Callable, Optional

from .config import DEFAULT_VOLUME, FFPLAY_BIN, FFPROBE_BIN

logger = logging.getLogger(__name__)


def probe_duration(url: str) -> float | None:
    """Get stream duration in seconds using ffprobe. Returns None on failure."""
    if not shutil.which(FFPROBE_BIN):
        return None
    try:
        result = subprocess.run(
            [FFPROBE_BIN, "-v", "error", "-show_entries", "format=duration",
             "-of", "default=noprint_wrappers=1:nokey=1", url],
            capture_output=True, text=True, timeout=5,
        )
        return float(result.stdout.strip())
    except (subprocess.SubprocessError, OSError, ValueError):
        return None


def build_command(url: str, volume: float, start: float = 0.0) -> list[str]:
    cmd = [FFPLAY_BIN, "-nodisp", "-autoexit", "-loglevel", "error",
           "-volume", str(round(volume * 100))]
    if start > 0:
        cmd += ["-ss", f"{start:.2f}"]
    cmd.append(url)
    return cmd


class Player:
    """Wraps a single live ffplay process, rebuilt on every track change.

    ``on_ended`` fires when a track finishes on its own; ``on_error`` fires
    when ffplay exits with a failure. Neither fires after ``stop()`` or when
    the process is replaced by a new track, seek or volume change.
    """

    def __init__(
        self,
        on_ended: Optional[Callable] = None,
        on_error: Optional[Callable] = None,
        volume: float = DEFAULT_VOLUME,
    ):
        self.on_ended = on_ended
        self.on_error = on_error
        self._proc: Optional[subprocess.Popen] = None
        self._url: Optional[str] = None
        self._paused: bool = False
        self._volume: float = max(0.0, min(1.0, volume))
        self._play_start: float = 0.0
        self._duration: Optional[float] = None
        self._paused_at: float = 0.0
        self._total_paused: float = 0.0
        self._seek_offset: float = 0.0
        self._watcher_task: Optional[asyncio.Task] = None
        self._probe_task: Optional[asyncio.Task] = None

    # ── Playback ───────────────────────────────────────────────────────────────

    def play(self, url: str):
        """Start ffplay for the given stream URL. Stops any current playback first."""
        self.stop()
        self._url = url
        self._spawn(0.0)
        self._probe_task = asyncio.create_task(self._probe(url))

    def _spawn(self, start: float):
        self._proc = subprocess.Popen(
            build_command(self._url, self._volume, start),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        self._paused = False
        self._play_start = time.monotonic()
        self._paused_at = 0.0
        self._total_paused = 0.0
        self._seek_offset = start
        logger.info("Playing %s from %.1fs", self._url, start)

        if self._watcher_task and not self._watcher_task.done():
            self._watcher_task.cancel()
        self._watcher_task = asyncio.create_task(self._watch(self._proc))

    async def _watch(self, proc: subprocess.Popen):
        """Wait for ffplay to exit; report natural completion or failure."""
        loop = asyncio.get_running_loop()
        code = await loop.run_in_executor(None, proc.wait)
        if proc is not self._proc:
            return  # replaced or stopped on purpose
        self._proc = None
        self._paused = False
        self._reset_clock()
        # Callbacks usually start the next track; stop() must not cancel this task
        self._watcher_task = None
        if code == 0:
            logger.info("Track finished: %s", self._url)
            await self._fire(self.on_ended)
        else:
            logger.warning("ffplay exited with %s for %s", code, self._url)
            await self._fire(self.on_error, code)

    @staticmethod
    async def _fire(callback: Optional[Callable], *args):
        if callback is None:
            return
        result = callback(*args)
        if inspect.isawaitable(result):
            await result

    async def _probe(self, url: str):
        loop = asyncio.get_running_loop()
        duration = await loop.run_in_executor(None, probe_duration, url)
        if url == self._url:
            self._duration = duration

    def _terminate(self, proc: subprocess.Popen):
        if proc.poll() is None:
            if self._paused:
                # Must resume before terminate — SIGSTOP blocks SIGTERM
                try:
                    os.kill(proc.pid, signal.SIGCONT)
                except ProcessLookupError:
                    pass
            proc.terminate()
            try:
                proc.wait(timeout=2)
            except subprocess.TimeoutExpired:
                proc.kill()

    def stop(self):
        """Terminate playback and detach from the current track."""
        proc, self._proc = self._proc, None
        if proc is not None:
            self._terminate(proc)
        for task in (self._watcher_task, self._probe_task):
            if task and not task.done():
                task.cancel()
        self._watcher_task = None
        self._probe_task = None
        self._url = None
        self._paused = False
        self._duration = None
        self._reset_clock()

    def _reset_clock(self):
        self._play_start = 0.0
        self._paused_at = 0.0
        self._total_paused = 0.0
        self._seek_offset = 0.0

    def _respawn(self, start: float):
        """Replace the live process with one starting at ``start``, keeping the track."""
        was_paused = self._paused
        old, self._proc = self._proc, None
        if old is not None:
            self._terminate(old)
        self._spawn(start)
        if was_paused:
            self.pause()

    def pause(self):
        """Suspend ffplay in place (SIGSTOP). Position is preserved."""
        if self._proc and self._proc.poll() is None and not self._paused:
            try:
                os.kill(self._proc.pid, signal.SIGSTOP)
                self._paused = True
                self._paused_at = time.monotonic()
            except ProcessLookupError:
                pass

    def resume(self):
        """Resume a paused track exactly where it left off (SIGCONT)."""
        if self._proc and self._paused:
            try:
                os.kill(self._proc.pid, signal.SIGCONT)
                if self._paused_at > 0:
                    self._total_paused += time.monotonic() - self._paused_at
                    self._paused_at = 0.0
                self._paused = False
            except ProcessLookupError:
                self._paused = False

    def is_loaded(self) -> bool:
        return self._proc is not None

    def seek(self, position: float) -> float:
        """Jump to an absolute position in seconds. Returns the new position."""
        if not self._url or self._proc is None:
            return 0.0
        new_pos = max(0.0, position)
        if self._duration:
            new_pos = min(new_pos, max(0.0, self._duration - 0.5))
        self._respawn(new_pos)
        return new_pos

    @property
    def elapsed(self) -> float:
        """Seconds elapsed in current playback, accounting for pauses and seeks."""
        if self._play_start == 0:
            return 0.0
        if self._paused and self._paused_at > 0:
            raw = self._paused_at - self._play_start - self._total_paused
        else:
            raw = time.monotonic() - self._play_start - self._total_paused
        return self._seek_offset + raw

    @property
    def duration(self) -> Optional[float]:
        return self._duration

    @property
    def current_url(self) -> Optional[str]:
        return self._url

    # ── Volume ─────────────────────────────────────────────────────────────────

    @property
    def volume(self) -> float:
        return self._volume

    def set_volume(self, level: float) -> float:
        """Set volume in [0, 1]. ffplay has no live volume control, so a playing track is respawned in place."""
        level = max(0.0, min(1.0, level))
        if level == self._volume:
            return level
        self._volume = level
        if self._proc is not None and self._url:
            self._respawn(self.elapsed)
        return level
