"""Working-day arithmetic used by the allocator and the move validator.

Weekends never count as working days. A :class:`HolidayPolicy` additionally
excludes an explicit set of dates; there is no built-in regional calendar.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import AbstractSet, Iterable, List, Optional

SATURDAY = 5


class WorkingDayPolicy:
    """Strategy deciding which calendar days production may run on."""

    def is_working_day(self, day: date) -> bool:
        raise NotImplementedError

    def next_working_day(self, day: date, n: int = 1) -> date:
        """Return the ``n``-th working day strictly after ``day``."""

        if n < 1:
            raise ValueError("n must be at least 1")
        current = day
        added = 0
        while added < n:
            current += timedelta(days=1)
            if self.is_working_day(current):
                added += 1
        return current

    def working_days_between(self, start: date, end: date) -> List[date]:
        """Enumerate working days from ``start`` to ``end`` inclusive."""

        days: List[date] = []
        current = start
        while current <= end:
            if self.is_working_day(current):
                days.append(current)
            current += timedelta(days=1)
        return days


class WeekendPolicy(WorkingDayPolicy):
    """Monday to Friday are working days."""

    def is_working_day(self, day: date) -> bool:
        return day.weekday() < SATURDAY

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return "WeekendPolicy()"


class HolidayPolicy(WeekendPolicy):
    """Weekends plus a fixed set of non-working dates."""

    def __init__(self, non_working_days: Optional[Iterable[date]] = None) -> None:
        self._non_working_days = set(non_working_days or ())

    @property
    def non_working_days(self) -> AbstractSet[date]:
        return frozenset(self._non_working_days)

    def add_non_working_day(self, day: date) -> None:
        self._non_working_days.add(day)

    def is_working_day(self, day: date) -> bool:
        if day in self._non_working_days:
            return False
        return super().is_working_day(day)


DEFAULT_POLICY: WorkingDayPolicy = WeekendPolicy()


def is_working_day(day: date, policy: Optional[WorkingDayPolicy] = None) -> bool:
    return (policy or DEFAULT_POLICY).is_working_day(day)


def next_working_day(
    day: date, n: int = 1, policy: Optional[WorkingDayPolicy] = None
) -> date:
    return (policy or DEFAULT_POLICY).next_working_day(day, n)


def working_days_between(
    start: date, end: date, policy: Optional[WorkingDayPolicy] = None
) -> List[date]:
    return (policy or DEFAULT_POLICY).working_days_between(start, end)


def parse_date(value: str) -> date:
    """Parse an ISO ``YYYY-MM-DD`` string; malformed input raises ``ValueError``."""

    return datetime.strptime(value.strip(), "%Y-%m-%d").date()


__all__ = [
    "WorkingDayPolicy",
    "WeekendPolicy",
    "HolidayPolicy",
    "DEFAULT_POLICY",
    "is_working_day",
    "next_working_day",
    "working_days_between",
    "parse_date",
]
