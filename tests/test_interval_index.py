"""Unit tests for the interval index and identity registry."""

from __future__ import annotations

import datetime as dt

import pytest

from epg_reconciler.epg_types import EventRecord
from epg_reconciler.errors import IntervalConflictError
from epg_reconciler.services.reconciliation_service import IdentityRegistry, IntervalIndex


def _at(hour: int, minute: int = 0) -> dt.datetime:
    return dt.datetime(2017, 7, 1, hour, minute, tzinfo=dt.timezone.utc)


@pytest.fixture
def index() -> IntervalIndex:
    """Index holding [09:00, 10:00) and [11:00, 12:00)."""
    idx = IntervalIndex()
    idx.accept(_at(11), _at(12), "late")
    idx.accept(_at(9), _at(10), "early")
    return idx


class TestIntervalIndex:
    """Tests for half-open overlap detection."""

    def test_empty_index_never_intersects(self) -> None:
        assert not IntervalIndex().intersects(_at(8), _at(9))

    @pytest.mark.parametrize(
        ("start", "end"),
        [
            (_at(8, 30), _at(9, 30)),
            (_at(9, 15), _at(9, 45)),
            (_at(9, 30), _at(11, 30)),
            (_at(8), _at(13)),
            (_at(11, 59), _at(12, 30)),
        ],
    )
    def test_detects_overlap(self, index: IntervalIndex, start: dt.datetime, end: dt.datetime) -> None:
        assert index.intersects(start, end)

    @pytest.mark.parametrize(
        ("start", "end"),
        [
            (_at(8), _at(9)),
            (_at(10), _at(11)),
            (_at(12), _at(13)),
            (_at(10, 15), _at(10, 45)),
        ],
    )
    def test_touching_or_disjoint_is_not_overlap(
        self, index: IntervalIndex, start: dt.datetime, end: dt.datetime
    ) -> None:
        assert not index.intersects(start, end)

    def test_find_overlap_returns_accepted_interval(self, index: IntervalIndex) -> None:
        conflict = index.find_overlap(_at(9, 30), _at(10, 30))

        assert conflict is not None
        assert (conflict.start, conflict.end, conflict.label) == (_at(9), _at(10), "early")

    def test_intervals_are_kept_sorted(self, index: IntervalIndex) -> None:
        index.accept(_at(10), _at(11), "middle")

        assert [interval.label for interval in index] == ["early", "middle", "late"]
        assert len(index) == 3

    def test_accepting_overlap_is_a_programming_error(self, index: IntervalIndex) -> None:
        with pytest.raises(IntervalConflictError):
            index.accept(_at(9, 30), _at(10, 30))
        assert len(index) == 2


class TestIdentityRegistry:
    """Tests for first-wins identity registration."""

    @staticmethod
    def _record(title: str) -> EventRecord:
        return EventRecord(identity=1, channel_key="Alfa", start=_at(8), end=_at(9), title=title)

    def test_new_identity_is_stored(self) -> None:
        registry = IdentityRegistry()
        record = self._record("first")

        stored, is_new = registry.register(1, record)

        assert is_new
        assert stored is record
        assert 1 in registry
        assert len(registry) == 1

    def test_known_identity_returns_first_record(self) -> None:
        registry = IdentityRegistry()
        first = self._record("first")
        registry.register(1, first)

        stored, is_new = registry.register(1, self._record("second"))

        assert not is_new
        assert stored is first
        assert len(registry) == 1
