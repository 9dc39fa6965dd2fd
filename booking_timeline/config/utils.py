import os
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

import yaml

from booking_timeline.records.model import canonical_unit_key

DEFAULT_COLOR = "#4F46E5"
DEFAULT_DAYS_BEFORE = 14
DEFAULT_DAYS_AFTER = 60


@dataclass(frozen=True)
class FeedSource:
    unit_key: str
    provider_key: str
    source: str
    color: str = DEFAULT_COLOR


def resolve_path(path: str) -> str:
    """
    Relative paths are resolved against the package directory,
    absolute paths are returned unchanged.
    """
    if os.path.isabs(path):
        return path

    base_dir = os.path.dirname(os.path.abspath(__file__))
    return os.path.abspath(os.path.join(base_dir, "..", path))


def load_config(path: str = "config.yaml") -> dict:
    """
    Loads YAML configuration file and returns a dictionary.
    """
    with open(resolve_path(path), "r") as f:
        return yaml.safe_load(f) or {}


def _units(config: dict) -> List[dict]:
    units = config.get("units")
    if not units:
        raise ValueError("Config has no 'units' section")
    return units


def unit_colors(config: dict) -> Dict[str, str]:
    """
    Returns { unit_key: colour } for every configured unit.
    """
    colors = {}
    for unit in _units(config):
        key = canonical_unit_key(unit.get("key") or unit.get("name"))
        colors[key] = unit.get("color", DEFAULT_COLOR)
    return colors


def iter_feeds(config: dict) -> List[FeedSource]:
    """
    Flattens the units section into one FeedSource per (unit, provider).
    """
    feeds = []

    for unit in _units(config):
        key = canonical_unit_key(unit.get("key") or unit.get("name"))
        color = unit.get("color", DEFAULT_COLOR)

        for provider, source in (unit.get("providers") or {}).items():
            if not source:
                continue
            feeds.append(FeedSource(key, str(provider).lower(), source, color))

    return feeds


def timeline_window(config: dict, today: Optional[date] = None) -> Tuple[datetime, datetime]:
    """
    Visible window around today: days_before in the past to days_after
    in the future (UTC midnights).
    """
    settings = config.get("timeline") or {}
    days_before = int(settings.get("days_before", DEFAULT_DAYS_BEFORE))
    days_after = int(settings.get("days_after", DEFAULT_DAYS_AFTER))

    if today is None:
        today = datetime.now(timezone.utc).date()

    midnight = datetime(today.year, today.month, today.day, tzinfo=timezone.utc)
    return midnight - timedelta(days=days_before), midnight + timedelta(days=days_after)
