"""Structured error logging — JSON to errors.log, friendly text for the UI."""
import json
import logging
import sys
from datetime import datetime
from typing import Optional

from .config import ERRORS_LOG, OUTPUT_DIR, DEV_MODE

logger = logging.getLogger(__name__)

_FRIENDLY_MESSAGES = {
    "release_load": "Release not found.",
    "cover_lookup": "No cover art available.",
    "stations_fetch": "Unable to connect to music service. Please check your API configuration.",
    "queue_fetch": "Couldn't load songs for this station.",
    "playback": "Playback failed. Pick another song or press play to retry.",
    "proxy": "Upstream music service is unreachable.",
}


class MusicoError(Exception):
    """Base class for errors raised by musico components."""


class StationsUnavailable(MusicoError):
    """The stations API could not be reached or answered unsuccessfully."""


def format_error(
    stage: str,
    context: Optional[dict] = None,
    raw: str = "",
) -> str:
    entry = {
        "timestamp": datetime.now().isoformat(),
        "stage": stage,
        "context": context,
        "error": raw,
        "python": sys.version.split()[0],
    }

    _append_to_log(entry)
    logger.error("Error at %s: %s", stage, raw)

    if DEV_MODE:
        return json.dumps(entry, indent=2)
    return _FRIENDLY_MESSAGES.get(stage, f"Something went wrong ({stage}).")


def _append_to_log(entry: dict):
    try:
        OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
        with open(ERRORS_LOG, "a") as f:
            f.write(json.dumps(entry) + "\n")
    except OSError:
        pass
