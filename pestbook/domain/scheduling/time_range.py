"""Half-open time intervals and the local-day window used by availability"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

from ...errors import ValidationError

# Browser offsets span UTC-14:00 .. UTC+12:00; allow the symmetric range
MAX_TZ_OFFSET_MINUTES = 14 * 60


def to_utc(value: datetime) -> datetime:
    """Normalize an aware datetime to UTC. Naive values are rejected."""
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValidationError("Timestamps must include a timezone offset")
    try:
        return value.astimezone(timezone.utc)
    except OverflowError as e:
        raise ValidationError("Date out of range") from e


def as_utc(value: datetime) -> datetime:
    """Attach UTC to a naive value read back from storage (SQLite drops offsets)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class TimeRange:
    """Interval ``[start, end)``: start included, end excluded."""

    start: datetime
    end: datetime

    def __post_init__(self):
        start = to_utc(self.start)
        end = to_utc(self.end)
        if end <= start:
            raise ValidationError("ends_at must be after starts_at")
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @classmethod
    def from_duration(cls, start: datetime, minutes: int) -> "TimeRange":
        if minutes <= 0:
            raise ValidationError("Duration must be positive")
        try:
            end = start + timedelta(minutes=minutes)
        except OverflowError as e:
            raise ValidationError("Date out of range") from e
        return cls(start, end)

    def overlaps(self, other: "TimeRange") -> bool:
        return overlaps(self.start, self.end, other.start, other.end)

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and a_end > b_start


def local_day_window(day: date, tz_offset_minutes: int) -> TimeRange:
    """
    UTC window covering one local calendar day.

    ``tz_offset_minutes`` follows ``Date.getTimezoneOffset()``: UTC minus local
    time, so UTC-8 is ``480`` and UTC+2 is ``-120``.
    """
    if abs(tz_offset_minutes) > MAX_TZ_OFFSET_MINUTES:
        raise ValidationError("tzOffsetMinutes out of range")

    try:
        start = datetime.combine(day, time.min, tzinfo=timezone.utc) + timedelta(
            minutes=tz_offset_minutes
        )
        end = start + timedelta(days=1)
    except OverflowError as e:
        raise ValidationError("Date out of range") from e
    return TimeRange(start, end)
