"""
Unit tests for half-open time ranges and the availability window.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from pestbook.domain.scheduling import TimeRange, as_utc, local_day_window, overlaps, to_utc
from pestbook.errors import ValidationError

UTC = timezone.utc
PST = timezone(timedelta(hours=-8))


def at(hour, minute=0, day=10):
    return datetime(2025, 3, day, hour, minute, tzinfo=UTC)


class TestTimeRange:
    def test_normalizes_to_utc(self):
        local = datetime(2025, 3, 10, 6, 0, tzinfo=PST)
        rng = TimeRange(local, local + timedelta(hours=1))
        assert rng.start == at(14)
        assert rng.start.tzinfo == UTC
        assert rng.duration == timedelta(hours=1)

    @pytest.mark.parametrize("end_hour", [14, 13])
    def test_rejects_empty_or_inverted(self, end_hour):
        with pytest.raises(ValidationError):
            TimeRange(at(14), at(end_hour))

    def test_rejects_naive_timestamps(self):
        with pytest.raises(ValidationError):
            TimeRange(datetime(2025, 3, 10, 14), datetime(2025, 3, 10, 15))

    def test_from_duration(self):
        rng = TimeRange.from_duration(at(14), 60)
        assert rng.end == at(15)

    def test_from_duration_rejects_non_positive(self):
        with pytest.raises(ValidationError):
            TimeRange.from_duration(at(14), 0)

    def test_from_duration_past_calendar_limit(self):
        with pytest.raises(ValidationError, match="Date out of range"):
            TimeRange.from_duration(datetime(9999, 12, 31, 23, 30, tzinfo=UTC), 60)

    def test_offset_before_calendar_start(self):
        with pytest.raises(ValidationError, match="Date out of range"):
            to_utc(datetime(1, 1, 1, 0, 30, tzinfo=timezone(timedelta(hours=5))))


class TestOverlap:
    def test_back_to_back_ranges_do_not_overlap(self):
        assert not TimeRange(at(14), at(15)).overlaps(TimeRange(at(15), at(16)))

    def test_partial_overlap(self):
        assert TimeRange(at(14), at(15)).overlaps(TimeRange(at(14, 30), at(15, 30)))

    def test_containment_overlaps_both_ways(self):
        outer = TimeRange(at(9), at(17))
        inner = TimeRange(at(12), at(13))
        assert outer.overlaps(inner)
        assert inner.overlaps(outer)

    def test_predicate_is_symmetric(self):
        assert overlaps(at(14), at(15), at(13), at(14, 1))
        assert overlaps(at(13), at(14, 1), at(14), at(15))


class TestLocalDayWindow:
    def test_utc_day(self):
        window = local_day_window(date(2025, 3, 10), 0)
        assert window.start == at(0)
        assert window.end == at(0, day=11)

    def test_browser_offset_shifts_window(self):
        # UTC-8 reports +480
        window = local_day_window(date(2025, 3, 10), 480)
        assert window.start == at(8)
        assert window.end == at(8, day=11)

    def test_east_of_utc(self):
        window = local_day_window(date(2025, 3, 10), -120)
        assert window.start == datetime(2025, 3, 9, 22, 0, tzinfo=UTC)

    @pytest.mark.parametrize("offset", [841, -841, 10_000])
    def test_rejects_out_of_range_offsets(self, offset):
        with pytest.raises(ValidationError):
            local_day_window(date(2025, 3, 10), offset)


class TestUtcHelpers:
    def test_to_utc_converts(self):
        assert to_utc(datetime(2025, 3, 10, 6, tzinfo=PST)) == at(14)

    def test_as_utc_attaches_to_naive(self):
        assert as_utc(datetime(2025, 3, 10, 14)) == at(14)
