"""Weekly time blocks and the overlap rule used for doctor schedules.

A block is a half-open range ``[start, end)`` on one weekday. Two blocks
conflict only when they share a weekday and ``a.start < b.end and
a.end > b.start``, so back-to-back shifts (``a.end == b.start``) are legal.
"""

import re
from dataclasses import dataclass, fields, replace
from datetime import time
from enum import Enum
from typing import Optional
from uuid import UUID

from clinic_cms.core.exceptions import ValidationError

TIME_OF_DAY_PATTERN = re.compile(r"^\d{2}:\d{2}$")


class Weekday(str, Enum):
    # Week starts on Saturday.
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"

    @property
    def order(self) -> int:
        return list(Weekday).index(self)


def parse_time_of_day(value: str) -> time:
    """Parse an ``HH:mm`` string into a ``time``.

    Raises ``ValueError`` for anything that is not two-digit hour, colon,
    two-digit minute, or that is not a real clock time (``24:00``, ``10:75``).
    """
    if not isinstance(value, str) or not TIME_OF_DAY_PATTERN.match(value):
        raise ValueError("Invalid time format (HH:mm)")
    hour, minute = (int(part) for part in value.split(":"))
    if hour > 23 or minute > 59:
        raise ValueError("Invalid time format (HH:mm)")
    return time(hour, minute)


def format_time_of_day(value: time) -> str:
    return value.strftime("%H:%M")


@dataclass(frozen=True)
class TimeInterval:
    weekday: Weekday
    start: time
    end: time

    def validate(self) -> "TimeInterval":
        if self.start >= self.end:
            raise ValidationError(
                f"Start time {format_time_of_day(self.start)} must be before "
                f"end time {format_time_of_day(self.end)}"
            )
        return self

    def __str__(self) -> str:
        return f"{self.weekday.value} {format_time_of_day(self.start)}–{format_time_of_day(self.end)}"


def overlaps(a: TimeInterval, b: TimeInterval) -> bool:
    if a.weekday != b.weekday:
        return False
    return a.start < b.end and a.end > b.start


@dataclass(frozen=True)
class EntryCandidate:
    """The full state a schedule entry would have after a write."""

    doctor_id: UUID
    day_of_week: Weekday
    start_time: time
    end_time: time
    notes: Optional[str] = None

    @classmethod
    def from_entry(cls, entry) -> "EntryCandidate":
        return cls(
            doctor_id=entry.doctor_id,
            day_of_week=Weekday(entry.day_of_week),
            start_time=entry.start_time,
            end_time=entry.end_time,
            notes=entry.notes,
        )

    def with_patch(self, patch: dict) -> "EntryCandidate":
        """Return the candidate with ``patch`` applied; omitted fields keep their value."""
        known = {f.name for f in fields(self)}
        unknown = set(patch) - known
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")
        return replace(self, **patch)

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(self.day_of_week, self.start_time, self.end_time)
