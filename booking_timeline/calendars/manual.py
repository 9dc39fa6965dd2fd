import os
import random
import string
import time
from datetime import date, datetime
from typing import List, Optional, Union

import yaml

from booking_timeline.records.model import (
    IntervalRecord,
    Origin,
    as_utc,
    canonical_unit_key,
)

MANUAL_COLOR = "#3B82F6"

_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_manual_id() -> str:
    """
    Example: "manual-1764547200000-k3j9x0a1b"
    """
    suffix = "".join(random.choice(_ID_ALPHABET) for _ in range(9))
    return f"manual-{int(time.time() * 1000)}-{suffix}"


def create_manual_record(
    title: str,
    start: Union[str, date, datetime],
    end: Union[str, date, datetime],
    unit: str,
    color: Optional[str] = None,
    description: str = "",
    record_id: Optional[str] = None,
) -> IntervalRecord:
    """
    Builds a manually entered booking.

    Manual ids are generated locally, so they identify the record for
    deletion but are not stable across sources (stable_id=False).
    """
    return IntervalRecord(
        id=record_id or new_manual_id(),
        title=title.strip(),
        start=as_utc(start),
        end=as_utc(end),
        unit_key=canonical_unit_key(unit),
        provider_key=None,
        origin=Origin.MANUAL,
        color=color or MANUAL_COLOR,
        stable_id=False,
        description=description,
    )


def load_manual_bookings(path: str) -> List[IntervalRecord]:
    """
    Reads manual bookings from a YAML list:

        - title: Owner stay
          unit: Ap. 9 - Red
          start: 2025-03-01
          end: 2025-03-04

    A missing file means no manual bookings.
    """
    if not os.path.exists(path):
        return []

    with open(path, "r", encoding="utf-8") as f:
        entries = yaml.safe_load(f) or []

    return [
        create_manual_record(
            title=str(entry.get("title", "")),
            start=entry["start"],
            end=entry["end"],
            unit=entry.get("unit", ""),
            color=entry.get("color"),
            description=str(entry.get("description", "")),
            record_id=entry.get("id"),
        )
        for entry in entries
    ]
