from datetime import datetime
from typing import Iterable, List, Sequence, Tuple

from booking_timeline.records.model import (
    IntervalRecord,
    canonical_unit_key,
    normalize_title,
)

Span = Tuple[datetime, datetime]


def merge_spans(spans: Iterable[Span]) -> List[Span]:
    """
    Collapses overlapping or touching (start, end) spans.

    Example:
        [(1, 3), (3, 5), (7, 8)] -> [(1, 5), (7, 8)]
    """
    ordered = sorted(spans, key=lambda s: s[0])
    if not ordered:
        return []

    merged = [ordered[0]]
    for start, end in ordered[1:]:
        run_start, run_end = merged[-1]
        if start > run_end:
            merged.append((start, end))
        else:
            merged[-1] = (run_start, max(run_end, end))

    return merged


def _comparable(candidate: IntervalRecord, record: IntervalRecord) -> bool:
    if canonical_unit_key(record.unit_key) != canonical_unit_key(candidate.unit_key):
        return False

    # Provider wins when both sides know it, otherwise compare titles.
    if candidate.provider_key and record.provider_key:
        return candidate.provider_key == record.provider_key

    return normalize_title(candidate.title) == normalize_title(record.title)


def is_subsumed(candidate: IntervalRecord, existing: Iterable[IntervalRecord]) -> bool:
    """
    True when the candidate's span is already covered by the union of the
    matching existing records (same unit, then same provider or title).

    Containment is closed and compared on instants.
    """
    spans = [(r.start, r.end) for r in existing if _comparable(candidate, r)]
    if not spans:
        return False

    for run_start, run_end in merge_spans(spans):
        if run_start <= candidate.start and run_end >= candidate.end:
            return True

    return False


def filter_subsumed(
    existing: Sequence[IntervalRecord], incoming: Iterable[IntervalRecord]
) -> Tuple[List[IntervalRecord], List[IntervalRecord]]:
    """
    Splits an incoming batch into (kept, subsumed), checked against
    `existing` only.
    """
    kept = []
    subsumed = []

    for record in incoming:
        if is_subsumed(record, existing):
            subsumed.append(record)
        else:
            kept.append(record)

    return kept, subsumed
