from typing import Tuple

from booking_timeline.records.model import (
    IntervalRecord,
    canonical_unit_key,
    iso_instant,
    normalize_title,
)


def signature(record: IntervalRecord) -> str:
    """
    Identity key used for dedupe.

    Provider UIDs are trusted as-is ("uid:<id>"). Anything else falls back
    to a composite of title, span and unit, so synthetic ids never leak
    into identity. Colour, origin and description are ignored.
    """
    if record.stable_id and record.id:
        return f"uid:{record.id}"

    return "sig:{}|{}|{}|{}".format(
        normalize_title(record.title),
        iso_instant(record.start),
        iso_instant(record.end),
        canonical_unit_key(record.unit_key),
    )


def group_key(record: IntervalRecord) -> Tuple[str, str]:
    return canonical_unit_key(record.unit_key), normalize_title(record.title)
