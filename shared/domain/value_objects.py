"""
Common Value Objects

Value objects used across the studio and inventory contexts:
- TimeWindow: a single-day [start, end) interval on a calendar date
- MonthRange: the first and last day of a calendar month
"""

import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from shared.domain.base import ValueObject


class InvalidTimeWindow(ValueError):
    """Raised when a window does not end after it starts on the same day."""


@dataclass(frozen=True)
class TimeWindow(ValueObject):
    """
    Time window value object

    Represents the half-open interval [start_time, end_time) on one date.
    Windows never cross midnight: end_time must be strictly after
    start_time on the same day.
    """
    date: date
    start_time: time
    end_time: time

    def __post_init__(self):
        if self.end_time <= self.start_time:
            raise InvalidTimeWindow(
                f"End time ({self.end_time:%H:%M}) must be after start time "
                f"({self.start_time:%H:%M}) on the same day"
            )

    def overlaps_with(self, other: 'TimeWindow') -> bool:
        """
        Check if this window overlaps with another

        Windows on different dates never overlap. The end is exclusive,
        so a window ending at 12:00 does not overlap one starting at 12:00.

        Examples:
            - 09:00-12:00 overlaps with 11:00-13:00 -> True
            - 09:00-12:00 overlaps with 12:00-14:00 -> False (adjacent)
        """
        if not isinstance(other, TimeWindow):
            raise TypeError("Can only check overlap with another TimeWindow")
        if self.date != other.date:
            return False
        return intervals_overlap(self.start_time, self.end_time, other.start_time, other.end_time)

    def contains(self, moment: datetime) -> bool:
        """Start is inclusive, end is exclusive"""
        return self.starts_at <= moment < self.ends_at

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.date, self.start_time)

    @property
    def ends_at(self) -> datetime:
        return datetime.combine(self.date, self.end_time)

    @property
    def duration(self) -> timedelta:
        return self.ends_at - self.starts_at

    def __str__(self):
        return f"{self.date.isoformat()} {self.start_time:%H:%M}-{self.end_time:%H:%M}"


def intervals_overlap(start_a, end_a, start_b, end_b) -> bool:
    """Half-open overlap test shared by bookings and equipment reservations."""
    return start_a < end_b and start_b < end_a


@dataclass(frozen=True)
class MonthRange(ValueObject):
    """First and last calendar day (both inclusive) of a month."""
    start: date
    end: date

    def __post_init__(self):
        if self.end < self.start:
            raise ValueError(f"Range end ({self.end}) is before its start ({self.start})")

    @classmethod
    def for_month(cls, year: int, month: int) -> 'MonthRange':
        last_day = calendar.monthrange(year, month)[1]
        return cls(date(year, month, 1), date(year, month, last_day))

    @classmethod
    def containing(cls, day: date) -> 'MonthRange':
        return cls.for_month(day.year, day.month)

    @classmethod
    def parse(cls, value: str) -> 'MonthRange':
        """Parse ``YYYY-MM``."""
        try:
            year, month = (int(part) for part in value.split("-", 1))
            return cls.for_month(year, month)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Expected a month in YYYY-MM format, got {value!r}") from exc

    def week_grid(self) -> 'MonthRange':
        """Expand to whole Monday-start weeks, as a month view renders them."""
        grid_start = self.start - timedelta(days=self.start.weekday())
        grid_end = self.end + timedelta(days=6 - self.end.weekday())
        return MonthRange(grid_start, grid_end)

    def days(self):
        current = self.start
        while current <= self.end:
            yield current
            current += timedelta(days=1)

    def __contains__(self, day: date) -> bool:
        return self.start <= day <= self.end
