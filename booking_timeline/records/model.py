import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional, Union

DEFAULT_UNIT_NAME = "Unit 1"

# Checked in order: the first rule that matches wins.
UNIT_KEY_RULES = (
    (("red",), "unit-red"),
    (("grey", "gray"), "unit-grey"),
    (("green",), "unit-green"),
)


class Origin(Enum):
    IMPORTED = "imported"
    MANUAL = "manual"


@dataclass(frozen=True)
class IntervalRecord:
    """
    One booking / unavailability block for a unit.

    start and end are timezone-aware UTC instants. stable_id is only True
    when id is the provider's own UID; synthetic ids must never be used
    as identity across fetches.
    """

    id: str
    title: str
    start: datetime
    end: datetime
    unit_key: str
    provider_key: Optional[str] = None
    origin: Origin = Origin.IMPORTED
    color: str = ""
    stable_id: bool = False
    description: str = ""

    @property
    def is_valid(self) -> bool:
        return self.start <= self.end


def slugify(value: str) -> str:
    value = value.strip().lower()
    value = re.sub(r"[^a-z0-9]+", "-", value)
    return value.strip("-")


def canonical_unit_key(value: Optional[str]) -> str:
    """
    Map any unit label ("Red", "Ap. 9 - Red", "unit red") to its slug.

    Total and idempotent: canonical_unit_key(canonical_unit_key(x)) == canonical_unit_key(x).
    """
    text = (value or "").strip().lower()
    if not text:
        text = DEFAULT_UNIT_NAME.lower()

    for needles, key in UNIT_KEY_RULES:
        if any(needle in text for needle in needles):
            return key

    if text.startswith("unit-"):
        return text

    return slugify(text)


def normalize_title(value: Optional[str]) -> str:
    return " ".join((value or "").split()).lower()


def as_utc(value: Union[str, date, datetime]) -> datetime:
    """
    Coerce a date, datetime or ISO string into an aware UTC datetime.

    - plain dates become midnight UTC (all-day feed entries)
    - naive datetimes are taken as UTC
    - aware datetimes are converted to UTC
    """
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text)

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    raise TypeError(f"Cannot convert {type(value).__name__} to a UTC instant")


def iso_instant(value: datetime) -> str:
    return as_utc(value).isoformat().replace("+00:00", "Z")


def record_to_dict(record: IntervalRecord) -> dict:
    """
    JSON-safe dict for a record (used when saving state).
    """
    return {
        "id": record.id,
        "title": record.title,
        "start": iso_instant(record.start),
        "end": iso_instant(record.end),
        "unit_key": record.unit_key,
        "provider_key": record.provider_key,
        "origin": record.origin.value,
        "color": record.color,
        "stable_id": record.stable_id,
        "description": record.description,
    }


def record_from_dict(data: dict) -> IntervalRecord:
    return IntervalRecord(
        id=str(data["id"]),
        title=str(data.get("title", "")),
        start=as_utc(data["start"]),
        end=as_utc(data["end"]),
        unit_key=canonical_unit_key(data.get("unit_key")),
        provider_key=data.get("provider_key") or None,
        origin=Origin(data.get("origin", Origin.IMPORTED.value)),
        color=str(data.get("color", "")),
        stable_id=bool(data.get("stable_id", False)),
        description=str(data.get("description", "")),
    )
