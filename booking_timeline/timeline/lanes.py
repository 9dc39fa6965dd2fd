from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List

from booking_timeline.records.model import IntervalRecord


@dataclass
class LaneAssignment:
    lanes: Dict[str, int] = field(default_factory=dict)
    lane_count: int = 0


def _lane_order(record: IntervalRecord):
    return record.start, record.end, record.id


def pack_lanes(unit_records: Iterable[IntervalRecord]) -> LaneAssignment:
    """
    Assigns each record of one unit to a display lane.

    Greedy first-fit over start-sorted records, which gives the minimum
    number of lanes. Records are treated as [start, end): a stay that
    starts on the day the previous one ends reuses the same lane.
    """

    lane_ends: List[datetime] = []
    assignment = LaneAssignment()

    for record in sorted(unit_records, key=_lane_order):
        for index, lane_end in enumerate(lane_ends):
            if lane_end <= record.start:
                lane_ends[index] = record.end
                assignment.lanes[record.id] = index
                break
        else:
            lane_ends.append(record.end)
            assignment.lanes[record.id] = len(lane_ends) - 1

    assignment.lane_count = len(lane_ends)
    return assignment


def max_concurrency(records: Iterable[IntervalRecord]) -> int:
    """
    Largest number of records open at the same instant, with [start, end)
    semantics. Ends are processed before starts at equal instants.

    A zero-length record at t counts as open at t, alongside every record
    that strictly contains t. It never clashes with records that start or
    end at t, matching how pack_lanes places it.
    """
    records = list(records)
    spans = [r for r in records if r.end > r.start]

    points = []
    for r in spans:
        points.append((r.start, 1))
        points.append((r.end, -1))

    # -1 sorts before +1 at the same instant
    points.sort()

    open_now = 0
    peak = 0
    for _, delta in points:
        open_now += delta
        peak = max(peak, open_now)

    for r in records:
        if r.end == r.start:
            around = sum(1 for s in spans if s.start < r.start < s.end)
            peak = max(peak, around + 1)

    return peak


def visible_records(
    records: Iterable[IntervalRecord], window_start: datetime, window_end: datetime
) -> List[IntervalRecord]:
    """
    Records intersecting [window_start, window_end], in timeline order.
    """
    visible = [r for r in records if r.start <= window_end and r.end >= window_start]
    visible.sort(key=_lane_order)
    return visible
