from typing import Iterable

from booking_timeline.records.model import IntervalRecord, normalize_title


def _comparable(record: IntervalRecord) -> tuple:
    return normalize_title(record.title), record.start, record.end, record.unit_key


def diff_records(old_records: Iterable[IntervalRecord], new_records: Iterable[IntervalRecord]) -> dict:
    """
    Compares two reconciled record sets by record id.
    Returns a dictionary describing added, removed, changed, and unchanged records.

    A record is "changed" when the same id now has a different title,
    span or unit (e.g. it absorbed a neighbour during a merge pass).
    """

    old = {r.id: r for r in old_records}
    new = {r.id: r for r in new_records}

    added = {}
    removed = {}
    changed = {}
    unchanged = {}

    # Check for added & changed
    for record_id, new_record in new.items():
        if record_id not in old:
            added[record_id] = new_record
        else:
            old_record = old[record_id]
            if _comparable(old_record) == _comparable(new_record):
                unchanged[record_id] = new_record
            else:
                changed[record_id] = {
                    "old": old_record,
                    "new": new_record
                }

    # Check for removed
    for record_id, old_record in old.items():
        if record_id not in new:
            removed[record_id] = old_record

    return {
        "added": added,
        "removed": removed,
        "changed": changed,
        "unchanged": unchanged
    }
