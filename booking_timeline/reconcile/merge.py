from collections import defaultdict
from dataclasses import replace
from typing import Dict, Iterable, List, Tuple

from booking_timeline.records.model import IntervalRecord
from booking_timeline.reconcile.subsume import merge_spans
from booking_timeline.records.signature import group_key


def _chronological(record: IntervalRecord):
    return record.start, record.end, record.id


def merge_by_unit_and_title(records: Iterable[IntervalRecord]) -> List[IntervalRecord]:
    """
    Takes records from any number of feeds and collapses every run of
    overlapping or back-to-back records sharing (unit, title) into one.

    Feeds often emit day-boundary blocks that touch (one ends the day the
    next starts), so touching counts as mergeable here.

    Each merged record keeps the id, colour, provider and origin of the
    first record of its run. Output is grouped by (unit, title) in sorted
    key order, chronological within a group.
    """

    groups: Dict[Tuple[str, str], List[IntervalRecord]] = defaultdict(list)
    for record in records:
        groups[group_key(record)].append(record)

    merged = []

    for key in sorted(groups):
        group = sorted(groups[key], key=_chronological)

        acc = group[0]
        for record in group[1:]:
            if record.start <= acc.end:
                if record.end > acc.end:
                    acc = replace(acc, end=record.end)
            else:
                merged.append(acc)
                acc = record

        merged.append(acc)

    return merged


def covered_by_group(candidate: IntervalRecord, records: Iterable[IntervalRecord]) -> bool:
    """
    True when merging the candidate into `records` would not change them:
    its span already sits inside one merged run of its (unit, title) group.
    """
    key = group_key(candidate)
    spans = [(r.start, r.end) for r in records if group_key(r) == key]

    return any(
        run_start <= candidate.start and run_end >= candidate.end
        for run_start, run_end in merge_spans(spans)
    )
