from __future__ import annotations

from datetime import timedelta

from booking_timeline.reconcile.subsume import filter_subsumed, is_subsumed, merge_spans
from tests.conftest import march


def test_merge_spans_joins_overlapping_and_touching() -> None:
    spans = [(march(7), march(8)), (march(1), march(3)), (march(3), march(5))]

    assert merge_spans(spans) == [(march(1), march(5)), (march(7), march(8))]


def test_merge_spans_of_nothing_is_empty() -> None:
    assert merge_spans([]) == []


def test_candidate_inside_existing_span_is_subsumed(make_record) -> None:
    existing = [make_record("e", 1, 10, provider_key=None)]

    assert is_subsumed(make_record("c", 3, 5, provider_key=None), existing)


def test_candidate_running_past_existing_span_is_not_subsumed(make_record) -> None:
    existing = [make_record("e", 1, 10, provider_key=None)]

    assert not is_subsumed(make_record("c", 9, 12, provider_key=None), existing)


def test_containment_is_closed_but_one_instant_too_far_fails(make_record) -> None:
    existing = [make_record("e", 1, 10)]

    assert is_subsumed(make_record("same", 1, 10), existing)
    assert not is_subsumed(make_record("late", march(1), march(10) + timedelta(seconds=1)), existing)
    assert not is_subsumed(make_record("early", march(1) - timedelta(seconds=1), march(10)), existing)


def test_union_of_tight_bookings_covers_a_broad_block(make_record) -> None:
    existing = [
        make_record("a", 1, 4),
        make_record("b", 4, 8),
        make_record("c", 6, 12),
    ]

    broad = make_record("blocked", 2, 11, title="Not available")

    assert is_subsumed(broad, existing)


def test_gap_between_bookings_breaks_coverage(make_record) -> None:
    existing = [make_record("a", 1, 4), make_record("b", 5, 8)]

    assert not is_subsumed(make_record("c", 2, 7), existing)


def test_other_units_never_count(make_record) -> None:
    existing = [make_record("e", 1, 10, unit_key="unit-red")]

    assert not is_subsumed(make_record("c", 3, 5, unit_key="unit-green"), existing)


def test_provider_must_match_when_both_sides_have_one(make_record) -> None:
    existing = [make_record("e", 1, 10, provider_key="booking")]

    assert not is_subsumed(make_record("c", 3, 5, provider_key="airbnb"), existing)
    assert is_subsumed(make_record("c", 3, 5, provider_key="booking", title="Other"), existing)


def test_title_decides_when_a_provider_is_missing(make_record) -> None:
    existing = [make_record("e", 1, 10, provider_key=None, title="Owner Stay")]

    assert is_subsumed(make_record("c", 3, 5, title="owner stay"), existing)
    assert not is_subsumed(make_record("c", 3, 5, title="Cleaning"), existing)


def test_empty_existing_set_never_subsumes(make_record) -> None:
    assert not is_subsumed(make_record("c", 3, 5), [])


def test_filter_subsumed_splits_a_batch(make_record) -> None:
    existing = [make_record("e", 1, 10)]
    inside = make_record("in", 2, 3)
    outside = make_record("out", 11, 12)

    kept, subsumed = filter_subsumed(existing, [inside, outside])

    assert kept == [outside]
    assert subsumed == [inside]
