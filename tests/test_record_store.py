from __future__ import annotations

import threading

import pytest

from booking_timeline.calendars.ingest import tag_events
from booking_timeline.calendars.manual import create_manual_record
from booking_timeline.records.model import Origin, record_to_dict
from booking_timeline.store.record_store import RecordStore
from tests.conftest import march


def _batch(make_record):
    return [
        make_record("uid-1", 1, 3, stable_id=True),
        make_record("uid-2", 3, 5, stable_id=True),
        make_record("imported-x-0", 8, 10, provider_key="booking"),
        make_record("uid-3", 2, 6, unit_key="unit-red", stable_id=True),
        make_record("bad", 9, 7),
    ]


def test_importing_a_batch_twice_matches_a_single_import(make_record) -> None:
    once = RecordStore()
    once.fold_batch(_batch(make_record))

    twice = RecordStore()
    twice.fold_batch(_batch(make_record))
    report = twice.fold_batch(_batch(make_record))

    assert not report.changed
    assert [record_to_dict(r) for r in twice.records] == [record_to_dict(r) for r in once.records]
    assert twice.version == once.version


def test_fold_reports_every_outcome(make_record) -> None:
    store = RecordStore([make_record("uid-0", 1, 10, stable_id=True)])

    report = store.fold_batch([
        make_record("inside", 2, 4),
        make_record("uid-0", 12, 14, stable_id=True),
        make_record("new", 11, 12, unit_key="unit-red"),
        make_record("new-again", 11, 12, unit_key="unit-red"),
        make_record("reversed", 5, 3),
    ])

    assert [r.id for r in report.subsumed] == ["inside"]
    assert [r.id for r in report.duplicates] == ["uid-0", "new-again"]
    assert [r.id for r in report.accepted] == ["new"]
    assert [r.id for r in report.rejected] == ["reversed"]
    assert str(report) == "1 accepted, 1 subsumed, 2 duplicates, 1 rejected"


def test_fold_merges_touching_blocks(make_record) -> None:
    store = RecordStore()

    store.fold_batch([make_record("a", 1, 3), make_record("b", 3, 5)])

    (merged,) = store.records
    assert (merged.id, merged.start, merged.end) == ("a", march(1), march(5))


def test_broad_block_is_dropped_when_bookings_already_cover_it(make_record) -> None:
    store = RecordStore()
    store.fold_batch([make_record("a", 1, 4), make_record("b", 4, 9)])

    report = store.fold_batch([make_record("blocked", 2, 8, title="Not available")])

    assert [r.id for r in report.subsumed] == ["blocked"]
    assert len(store.records) == 1


def test_version_only_moves_when_the_set_changes(make_record) -> None:
    store = RecordStore()
    assert store.version == 0

    store.fold_batch([make_record("a", 1, 3)])
    assert store.version == 1

    store.fold_batch([make_record("a", 1, 3)])
    assert store.merge_pass() == 0
    assert store.version == 1


def test_snapshot_is_immutable_and_stays_put(make_record) -> None:
    store = RecordStore([make_record("a", 1, 3)])
    before = store.snapshot()

    store.fold_batch([make_record("b", 10, 12)])

    assert isinstance(before.records, tuple)
    assert [r.id for r in before.records] == ["a"]
    assert store.snapshot().version == before.version + 1


def test_manual_bookings_go_through_the_same_pipeline() -> None:
    store = RecordStore()
    stay = create_manual_record("Owner stay", march(1), march(4), "Red", record_id="manual-1-a")

    assert store.add_manual(stay).changed
    repeat = create_manual_record("Owner stay", march(1), march(4), "Red", record_id="manual-2-b")
    assert not store.add_manual(repeat).changed
    assert store.summary() == {"total": 1, "manual": 1, "imported": 0}


def test_add_manual_refuses_imported_records(make_record) -> None:
    with pytest.raises(ValueError):
        RecordStore().add_manual(make_record("x", 1, 2))


def test_delete_removes_by_id(make_record) -> None:
    store = RecordStore([make_record("a", 1, 3), make_record("b", 5, 6)])

    deleted = store.delete("a")

    assert deleted.id == "a"
    assert [r.id for r in store.records] == ["b"]
    with pytest.raises(KeyError):
        store.delete("a")


def test_merge_pass_collapses_loaded_state(make_record) -> None:
    store = RecordStore([make_record("a", 1, 3), make_record("b", 2, 6), make_record("c", 6, 7)])

    assert store.merge_pass() == 2
    assert [(r.id, r.end) for r in store.records] == [("a", march(7))]


def test_invalid_initial_records_are_dropped(make_record) -> None:
    store = RecordStore([make_record("ok", 1, 2), make_record("bad", 3, 2)])

    assert [r.id for r in store.records] == ["ok"]


def test_units_and_layout(make_record) -> None:
    store = RecordStore()
    store.fold_batch([
        make_record("A", 1, 5, title="Guest A"),
        make_record("B", 3, 7, title="Guest B"),
        make_record("C", 6, 9, title="Guest C"),
        make_record("R", 1, 2, unit_key="Ap. 9 - Red"),
    ])

    assert store.units() == ["unit-green", "unit-red"]

    visible, assignment = store.layout("Green", march(1), march(31))

    assert [r.id for r in visible] == ["A", "B", "C"]
    assert assignment.lanes == {"A": 0, "B": 1, "C": 0}
    assert assignment.lane_count == 2


def test_concurrent_folds_never_double_insert(make_record) -> None:
    store = RecordStore()
    batch = [make_record(f"imported-{i}", i + 1, i + 2, title=f"Guest {i}") for i in range(20)]
    barrier = threading.Barrier(8)

    def worker() -> None:
        barrier.wait()
        store.fold_batch(batch)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(store.records) == 20
    assert store.summary()["imported"] == 20
    assert store.records[0].origin is Origin.IMPORTED


def test_reimporting_a_record_absorbed_by_another_provider_changes_nothing(make_record) -> None:
    store = RecordStore()
    store.fold_batch([make_record("uid-a", 1, 4, provider_key="airbnb", stable_id=True)])
    store.fold_batch([make_record("uid-b", 3, 6, provider_key="booking", stable_id=True)])
    before = store.snapshot()

    report = store.fold_batch([make_record("uid-b", 3, 6, provider_key="booking", stable_id=True)])

    assert not report.changed
    assert [r.id for r in report.subsumed] == ["uid-b"]
    assert store.snapshot() == before
    (merged,) = store.records
    assert (merged.id, merged.start, merged.end) == ("uid-a", march(1), march(6))


def test_cross_provider_batch_imported_twice_matches_a_single_import(make_record) -> None:
    def batch():
        return [
            make_record("uid-a", 1, 4, provider_key="airbnb", stable_id=True),
            make_record("uid-b", 3, 6, provider_key="booking", stable_id=True),
            make_record("imported-c", 8, 9, provider_key="booking"),
        ]

    once = RecordStore()
    once.fold_batch(batch())

    twice = RecordStore()
    twice.fold_batch(batch())
    report = twice.fold_batch(batch())

    assert not report.changed
    assert twice.snapshot() == once.snapshot()


def test_uidless_blocks_from_two_providers_keep_their_own_lanes() -> None:
    events = [{"start": "2025-03-01", "end": "2025-03-05"}]
    airbnb, _ = tag_events([dict(events[0], summary="Reserved")], "Green", "airbnb")
    booking, _ = tag_events([dict(events[0], summary="Not available")], "Green", "booking")

    store = RecordStore()
    store.fold_batch(airbnb)
    store.fold_batch(booking)

    visible, assignment = store.layout("unit-green", march(1), march(31))

    assert len(visible) == 2
    assert sorted(assignment.lanes.values()) == [0, 1]
    assert assignment.lane_count == 2

    store.delete(visible[0].id)
    assert [r.id for r in store.records] == [visible[1].id]
