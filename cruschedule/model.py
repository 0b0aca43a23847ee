"""
Central data model definitions used across the project.

This module defines the canonical structure of a CRU timetable entry so that:
- the parser, the queries and the exporter share the same field names
- weekday and lesson-type codes are closed enumerations instead of raw strings
- every Slot is a validated, immutable value that can be hashed and deduplicated
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from cruschedule.exceptions import InvalidSlotError


class Day(Enum):
    """
    Working days, valued by their CRU code.
    """

    MON = "L"
    TUE = "MA"
    WED = "ME"
    THU = "J"
    FRI = "V"

    @property
    def index(self) -> int:
        # Same numbering as date.weekday(): Monday == 0
        return _DAY_ORDER.index(self)

    @property
    def ical(self) -> str:
        return _ICAL_DAYS[self]

    @classmethod
    def from_code(cls, code: str) -> "Day":
        """
        Map a raw CRU day code (L, MA, ME, J, V) to a Day.
        """
        try:
            return cls(code.strip().upper())
        except ValueError:
            raise ValueError(f"Unknown day code: {code!r}") from None

    @classmethod
    def ordered(cls) -> list["Day"]:
        return list(_DAY_ORDER)


_DAY_ORDER = (Day.MON, Day.TUE, Day.WED, Day.THU, Day.FRI)

_ICAL_DAYS = {
    Day.MON: "MO",
    Day.TUE: "TU",
    Day.WED: "WE",
    Day.THU: "TH",
    Day.FRI: "FR",
}


class LessonType(Enum):
    """
    Normalized lesson types, valued by their short French label.
    """

    LECTURE = "CM"
    TUTORIAL = "TD"
    LAB = "TP"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_raw(cls, raw: str) -> Union["LessonType", str]:
        """
        Map a raw CRU lesson code (C1, D2, T1, ...) by its first letter.

        Unknown letters are passed through unchanged.
        """
        if not raw:
            return raw
        return _RAW_LESSON_TYPES.get(raw[0].upper(), raw)


_RAW_LESSON_TYPES = {
    "C": LessonType.LECTURE,
    "D": LessonType.TUTORIAL,
    "T": LessonType.LAB,
}


def time_to_minutes(hhmm: str) -> int:
    """
    Convert 'H:MM' or 'HH:MM' to minutes since midnight.
    Raises ValueError for invalid formats.
    """
    parts = hhmm.strip().split(":")
    if len(parts) != 2 or not all(p.isdigit() for p in parts) or len(parts[1]) != 2:
        raise ValueError(f"Invalid time format: {hhmm!r}")
    h = int(parts[0])
    m = int(parts[1])
    if not (0 <= h <= 23 and 0 <= m <= 59):
        raise ValueError(f"Invalid time value: {hhmm!r}")
    return h * 60 + m


def minutes_to_time(minutes: int) -> str:
    """
    Convert minutes since midnight to 'HH:MM'.
    """
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


@dataclass(frozen=True)
class Slot:
    """
    Represents one weekly recurring booking of a room by a course.

    Each Slot corresponds to exactly one valid slot line of a CRU file.
    Two slots are equal only if every field matches (used for deduplication).

    Times are stored as zero-padded 24h "HH:MM": a CRU time written "8:00"
    becomes "08:00", so every Slot compares and sorts on one canonical form.
    """

    course_code: str
    lesson_type: Union[LessonType, str]
    capacity: int
    day: Day
    start_time: str
    end_time: str
    room: str
    subgroup: str = ""
    group_index: int = 0

    def __post_init__(self) -> None:
        if not self.course_code:
            raise InvalidSlotError("course_code must not be empty")
        if self.capacity < 0:
            raise InvalidSlotError(f"capacity must be >= 0, got {self.capacity}")
        if self.group_index < 0:
            raise InvalidSlotError(f"group_index must be >= 0, got {self.group_index}")

        # frozen dataclass: normalized values are written through object.__setattr__
        if not isinstance(self.day, Day):
            try:
                object.__setattr__(self, "day", Day.from_code(str(self.day)))
            except ValueError as exc:
                raise InvalidSlotError(str(exc)) from None

        if isinstance(self.lesson_type, str):
            known = {t.value: t for t in LessonType}
            if self.lesson_type in known:
                object.__setattr__(self, "lesson_type", known[self.lesson_type])

        try:
            start = time_to_minutes(self.start_time)
            end = time_to_minutes(self.end_time)
        except ValueError as exc:
            raise InvalidSlotError(str(exc)) from None
        if start >= end:
            raise InvalidSlotError(f"start_time {self.start_time} must be before end_time {self.end_time}")

        object.__setattr__(self, "start_time", minutes_to_time(start))
        object.__setattr__(self, "end_time", minutes_to_time(end))

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return time_to_minutes(self.end_time)

    @property
    def duration_minutes(self) -> int:
        return self.end_minutes - self.start_minutes

    @property
    def lesson_label(self) -> str:
        return str(self.lesson_type)

    def equals_slot(self, other: "Slot") -> bool:
        """
        Full-field equality.
        """
        return self == other

    def overlaps_slot(self, other: "Slot") -> bool:
        """
        True if both slots book the same room on the same day at intersecting times.

        Intervals are half-open: a slot ending at 10:00 does not overlap one starting at 10:00.
        """
        if self.room != other.room or self.day is not other.day:
            return False
        return self.start_minutes < other.end_minutes and other.start_minutes < self.end_minutes

    def sort_key(self) -> tuple[int, int]:
        return (self.day.index, self.start_minutes)
