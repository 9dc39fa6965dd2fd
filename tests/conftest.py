from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

import pytest

from booking_timeline.records.model import IntervalRecord, Origin


def march(day: int, hour: int = 0) -> datetime:
    return datetime(2025, 3, day, hour, tzinfo=timezone.utc)


@pytest.fixture
def make_record() -> Callable[..., IntervalRecord]:
    def _factory(
        record_id: str,
        start: int | datetime,
        end: int | datetime,
        *,
        title: str = "booking reservations",
        unit_key: str = "unit-green",
        provider_key: str | None = "airbnb",
        origin: Origin = Origin.IMPORTED,
        color: str = "#10B981",
        stable_id: bool = False,
    ) -> IntervalRecord:
        return IntervalRecord(
            id=record_id,
            title=title,
            start=march(start) if isinstance(start, int) else start,
            end=march(end) if isinstance(end, int) else end,
            unit_key=unit_key,
            provider_key=provider_key,
            origin=origin,
            color=color,
            stable_id=stable_id,
        )

    return _factory
