import os
from typing import List

import requests
import yaml

DEFAULT_TIMEOUT = 10

HEADERS = {
    "User-Agent": "booking-timeline/1.0",
    "Accept": "application/json, text/plain, */*",
}


def _as_event_list(payload) -> List[dict]:
    # Accept a bare list or an {"events": [...]} envelope
    if isinstance(payload, dict):
        payload = payload.get("events", [])
    if not isinstance(payload, list):
        raise ValueError("Decoded feed must be a list of events")
    return [e for e in payload if isinstance(e, dict)]


def fetch_calendar(source: str, timeout: int = DEFAULT_TIMEOUT) -> List[dict]:
    """
    Fetches a decoded calendar feed.
    - If 'source' is a URL (starts with http), download it as JSON.
    - If it's a file path, read it from disk (YAML or JSON).
    Returns a list of event dicts (uid, summary, description, start, end).
    """

    # Case 1: URL mode
    if source.startswith("http://") or source.startswith("https://"):
        response = requests.get(source, headers=HEADERS, timeout=timeout)
        response.raise_for_status()
        return _as_event_list(response.json())

    # Case 2: Local file mode
    if os.path.exists(source):
        with open(source, "r", encoding="utf-8") as f:
            return _as_event_list(yaml.safe_load(f) or [])

    raise FileNotFoundError(f"Could not fetch calendar from: {source}")
