import logging
from typing import Iterable, List, Optional, Tuple

from booking_timeline.records.model import (
    IntervalRecord,
    Origin,
    as_utc,
    canonical_unit_key,
    iso_instant,
)

logger = logging.getLogger(__name__)

UNTITLED = "Untitled Event"


def tag_events(
    events: Iterable[dict],
    unit: str,
    provider: Optional[str],
    color: str = "",
) -> Tuple[List[IntervalRecord], List[dict]]:
    """
    Turns decoded feed events into IntervalRecords for one unit/provider.

    Returns (records, rejected). Events whose start/end cannot be read are
    rejected rather than raised; start > end is left to validate_records.
    """

    unit_key = canonical_unit_key(unit)
    records = []
    rejected = []

    for index, event in enumerate(events):
        try:
            start = as_utc(event["start"])
            end = as_utc(event["end"])
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Rejected event %s from %s/%s: %s", event.get("uid", index), unit_key, provider, e)
            rejected.append(event)
            continue

        uid = str(event.get("uid") or "").strip()
        if uid:
            record_id = uid
        else:
            # Unique per unit/provider fetch, never used as identity
            record_id = "imported-{}-{}-{}-{}-{}".format(
                unit_key, provider or "feed", iso_instant(start), iso_instant(end), index
            )

        records.append(IntervalRecord(
            id=record_id,
            title=str(event.get("summary") or "").strip() or UNTITLED,
            start=start,
            end=end,
            unit_key=unit_key,
            provider_key=provider or None,
            origin=Origin.IMPORTED,
            color=color,
            stable_id=bool(uid),
            description=str(event.get("description") or ""),
        ))

    return records, rejected


def validate_records(
    records: Iterable[IntervalRecord],
) -> Tuple[List[IntervalRecord], List[IntervalRecord]]:
    """
    Splits records into (valid, rejected); a record is rejected when it
    starts after it ends.
    """
    valid = []
    rejected = []

    for record in records:
        if record.is_valid:
            valid.append(record)
        else:
            logger.warning(
                "Rejected %s on %s: starts %s after it ends %s",
                record.id, record.unit_key, iso_instant(record.start), iso_instant(record.end),
            )
            rejected.append(record)

    return valid, rejected
