"""Expiring key-value cache persisted to a JSON file.

Entries are stored as ``{"data": ..., "expiry": <epoch ms>}``. Expiry is
enforced lazily on read; there is no background sweep and no size bound.
"""
import json
import logging
import time
from pathlib import Path
from typing import Any, Callable, Optional

from .config import CACHE_PATH, RELEASE_TTL_MS

logger = logging.getLogger(__name__)

DEFAULT_TTL_MS = RELEASE_TTL_MS


def _now_ms() -> int:
    return int(time.time() * 1000)


class ExpiringCache:
    def __init__(self, path: Optional[Path] = None, clock: Callable[[], int] = _now_ms):
        self.path = Path(path) if path is not None else CACHE_PATH
        self._clock = clock

    # ── Storage ────────────────────────────────────────────────────────────────

    def _load(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            store = json.loads(self.path.read_text())
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Cache store %s unreadable, starting empty: %s", self.path, e)
            return {}
        return store if isinstance(store, dict) else {}

    def _save(self, store: dict):
        """Atomic write — write to tmp then replace."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(json.dumps(store))
        tmp.replace(self.path)

    # ── Public API ─────────────────────────────────────────────────────────────

    def get(self, key: str) -> Any:
        """Return the stored value, or None if absent or expired (expired entries are evicted)."""
        store = self._load()
        item = store.get(key)
        if not isinstance(item, dict):
            return None
        expiry = item.get("expiry")
        if isinstance(expiry, bool) or not isinstance(expiry, (int, float)):
            del store[key]
            self._save(store)
            logger.debug("Cache entry %s has no usable expiry, evicted", key)
            return None
        if self._clock() > expiry:
            del store[key]
            self._save(store)
            logger.debug("Cache entry %s expired", key)
            return None
        return item.get("data")

    def set(self, key: str, value: Any, ttl: int = DEFAULT_TTL_MS):
        store = self._load()
        store[key] = {"data": value, "expiry": self._clock() + ttl}
        self._save(store)

    def remove(self, key: str):
        store = self._load()
        if store.pop(key, None) is not None:
            self._save(store)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
