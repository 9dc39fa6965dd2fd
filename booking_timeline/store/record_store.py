import logging
import threading
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, NamedTuple, Tuple

from booking_timeline.calendars.ingest import validate_records
from booking_timeline.reconcile.dedupe import dedupe_incoming
from booking_timeline.reconcile.merge import covered_by_group, merge_by_unit_and_title
from booking_timeline.reconcile.subsume import filter_subsumed
from booking_timeline.records.model import IntervalRecord, Origin, canonical_unit_key
from booking_timeline.timeline.lanes import LaneAssignment, pack_lanes, visible_records

logger = logging.getLogger(__name__)


class Snapshot(NamedTuple):
    version: int
    records: Tuple[IntervalRecord, ...]


@dataclass
class IngestReport:
    accepted: List[IntervalRecord] = field(default_factory=list)
    subsumed: List[IntervalRecord] = field(default_factory=list)
    duplicates: List[IntervalRecord] = field(default_factory=list)
    rejected: List[IntervalRecord] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.accepted)

    def __str__(self) -> str:
        return (
            f"{len(self.accepted)} accepted, {len(self.subsumed)} subsumed, "
            f"{len(self.duplicates)} duplicates, {len(self.rejected)} rejected"
        )


class RecordStore:
    """
    Owns the reconciled record set.

    One writer at a time: every fold/delete/merge runs under a lock and
    publishes a new immutable tuple with a bumped version. Readers only
    ever see a published tuple.
    """

    def __init__(self, records: Iterable[IntervalRecord] = ()):
        valid, rejected = validate_records(records)
        if rejected:
            logger.warning("Dropped %d invalid records from initial state", len(rejected))

        self._lock = threading.Lock()
        self._snapshot = Snapshot(0, tuple(valid))

    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def version(self) -> int:
        return self._snapshot.version

    @property
    def records(self) -> Tuple[IntervalRecord, ...]:
        return self._snapshot.records

    def _publish(self, records: Iterable[IntervalRecord]) -> None:
        # Single assignment, so readers never see a half-built set
        self._snapshot = Snapshot(self._snapshot.version + 1, tuple(records))

    def _fold(self, batch: Iterable[IntervalRecord]) -> IngestReport:
        report = IngestReport()

        valid, report.rejected = validate_records(batch)
        kept, report.subsumed = filter_subsumed(self.records, valid)

        fresh = dedupe_incoming(self.records, kept)
        fresh_ids = {id(r) for r in fresh}
        report.duplicates = [r for r in kept if id(r) not in fresh_ids]

        # Records another provider's block already absorbed would only be
        # merged away again.
        for record in fresh:
            if covered_by_group(record, self.records):
                report.subsumed.append(record)
            else:
                report.accepted.append(record)

        if report.accepted:
            merged = merge_by_unit_and_title(self.records + tuple(report.accepted))
            if merged != list(self.records):
                self._publish(merged)

        return report

    def fold_batch(self, batch: Iterable[IntervalRecord]) -> IngestReport:
        """
        Folds one fetched batch into the set:
        validate -> drop subsumed -> drop duplicates -> append -> merge.
        """
        with self._lock:
            return self._fold(list(batch))

    def add_manual(self, record: IntervalRecord) -> IngestReport:
        if record.origin is not Origin.MANUAL:
            raise ValueError(f"{record.id} is not a manual booking")

        with self._lock:
            return self._fold([record])

    def delete(self, record_id: str) -> IntervalRecord:
        with self._lock:
            for record in self.records:
                if record.id == record_id:
                    self._publish(r for r in self.records if r.id != record_id)
                    return record

        raise KeyError(record_id)

    def merge_pass(self) -> int:
        """
        Runs the merger over the whole set. Returns how many records were
        absorbed into others.
        """
        with self._lock:
            merged = merge_by_unit_and_title(self.records)
            absorbed = len(self.records) - len(merged)
            if merged != list(self.records):
                self._publish(merged)
            return absorbed

    def units(self) -> List[str]:
        return sorted({canonical_unit_key(r.unit_key) for r in self.records})

    def records_for_unit(self, unit: str) -> List[IntervalRecord]:
        key = canonical_unit_key(unit)
        return [r for r in self.records if canonical_unit_key(r.unit_key) == key]

    def layout(
        self, unit: str, window_start: datetime, window_end: datetime
    ) -> Tuple[List[IntervalRecord], LaneAssignment]:
        """
        Visible records for a unit and their display lanes.
        """
        visible = visible_records(self.records_for_unit(unit), window_start, window_end)
        return visible, pack_lanes(visible)

    def summary(self) -> dict:
        origins = Counter(r.origin for r in self.records)
        return {
            "total": len(self.records),
            "manual": origins[Origin.MANUAL],
            "imported": origins[Origin.IMPORTED],
        }
