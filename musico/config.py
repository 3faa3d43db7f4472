"""Module 1 — Config & Constants"""
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root (one level up from musico/)
_ROOT = Path(__file__).parent.parent
load_dotenv(_ROOT / ".env")

# ─── Paths ────────────────────────────────────────────────────────────────────
ROOT_DIR = _ROOT
OUTPUT_DIR = ROOT_DIR / os.getenv("OUTPUT_DIR", "output")
ERRORS_LOG = OUTPUT_DIR / "errors.log"
PLAYER_LOG = OUTPUT_DIR / "player.log"
# JSON file standing in for browser local storage
CACHE_PATH = Path(os.getenv("CACHE_PATH", str(OUTPUT_DIR / "cache.json")))

# ─── External services ────────────────────────────────────────────────────────
# Where the /api/jango proxy route forwards to
JANGO_UPSTREAM_URL = os.getenv("JANGO_UPSTREAM_URL", "https://jango-psi.vercel.app").rstrip("/")
# Stations/songs API as seen by clients; may point at a running server's /api/jango
JANGO_API_URL = os.getenv("JANGO_API_URL", JANGO_UPSTREAM_URL).rstrip("/")
# Optional stream proxy; the encoded stream URL is appended to it
PROXY_API_URL = os.getenv("PROXY_API_URL", "")

MUSICBRAINZ_URL = os.getenv("MUSICBRAINZ_URL", "https://musicbrainz.org/ws/2/")
COVER_ART_URL = os.getenv("COVER_ART_URL", "https://coverartarchive.org").rstrip("/")
ITUNES_SEARCH_URL = os.getenv("ITUNES_SEARCH_URL", "https://itunes.apple.com/search")

APP_VERSION = "1.0.0"
USER_AGENT = os.getenv("USER_AGENT", f"Musico/{APP_VERSION} (musico@example.com)")

# ─── Timeouts (seconds) ───────────────────────────────────────────────────────
RELEASE_TIMEOUT = float(os.getenv("RELEASE_TIMEOUT", "10"))
COVER_TIMEOUT = float(os.getenv("COVER_TIMEOUT", "5"))
STATIONS_TIMEOUT = float(os.getenv("STATIONS_TIMEOUT", "10"))
HEALTH_TIMEOUT = float(os.getenv("HEALTH_TIMEOUT", "3"))

# ─── Cache TTLs (milliseconds, like the stored expiry stamps) ────────────────
RELEASE_TTL_MS = 60 * 60 * 1000        # 1 hour
COVER_TTL_MS = 24 * 60 * 60 * 1000     # 24 hours

# ─── Queue sizes ──────────────────────────────────────────────────────────────
STATION_QUEUE_SIZE = 100   # fetched on station select
BOOTSTRAP_QUEUE_SIZE = 10  # fetched by play/pause with nothing loaded
REFILL_QUEUE_SIZE = 20     # fetched near the tail of a short queue
REFILL_BELOW = 30          # only refill queues shorter than this
REFILL_AT_INDEX = 2        # ...when the next index wraps to <= this

# ─── Playback ─────────────────────────────────────────────────────────────────
FFPLAY_BIN = os.getenv("FFPLAY_BIN", "ffplay")
FFPROBE_BIN = os.getenv("FFPROBE_BIN", "ffprobe")
DEFAULT_VOLUME = float(os.getenv("DEFAULT_VOLUME", "0.5"))
SEEK_STEP = 10.0
VOLUME_STEP = 0.1

# ─── Web server ──────────────────────────────────────────────────────────────
WEB_HOST = os.getenv("WEB_HOST", "127.0.0.1")
WEB_PORT = int(os.getenv("WEB_PORT", "3000"))
# Base URL of the server hosting /api/cover (the cover fallback tier)
COVER_API_URL = os.getenv("COVER_API_URL", f"http://localhost:{WEB_PORT}").rstrip("/")

# ─── Dev mode ─────────────────────────────────────────────────────────────────
DEV_MODE = os.getenv("DEV_MODE", "0").strip() in ("1", "true", "yes")
