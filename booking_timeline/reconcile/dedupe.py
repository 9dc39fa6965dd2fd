from typing import Iterable, List

from booking_timeline.records.model import IntervalRecord
from booking_timeline.records.signature import signature


def dedupe_incoming(
    existing: Iterable[IntervalRecord], incoming: Iterable[IntervalRecord]
) -> List[IntervalRecord]:
    """
    Drops incoming records that are already known.

    A record is known when its signature matches one of the existing
    records, or one that appeared earlier in the same batch (first one
    wins). Input order is preserved and `existing` is left untouched.
    """

    seen = {signature(r) for r in existing}

    unique = []
    for record in incoming:
        key = signature(record)

        if key not in seen:
            seen.add(key)
            unique.append(record)

    return unique
