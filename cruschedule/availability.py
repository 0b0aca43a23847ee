"""
Room availability.

Two questions are answered here:
- when is a given room free during the week? (free_intervals)
- which rooms are free for a given day and time window? (available_rooms)

Busy intervals that touch (end == next start) are merged: back-to-back
bookings leave no usable gap.
"""

from __future__ import annotations

import logging
from typing import Iterable, NamedTuple, Optional

from cruschedule import config
from cruschedule.exceptions import InvalidQueryError
from cruschedule.model import Day, Slot, minutes_to_time, time_to_minutes
from cruschedule.slotset import SlotSet

logger = logging.getLogger(__name__)


class Interval(NamedTuple):
    start: int
    end: int


def merge_intervals(intervals: Iterable[tuple[int, int]]) -> list[Interval]:
    """
    Merge overlapping or touching intervals into a sorted list of disjoint ones.
    """
    merged: list[Interval] = []
    for start, end in sorted(intervals):
        if merged and start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = Interval(last.start, max(last.end, end))
        else:
            merged.append(Interval(start, end))
    return merged


def complement(
    merged: list[Interval],
    open_minutes: int = config.OPEN_MINUTES,
    close_minutes: int = config.CLOSE_MINUTES,
) -> list[Interval]:
    """
    Free gaps of the window [open, close) not covered by the merged busy intervals.
    """
    free: list[Interval] = []
    current = open_minutes
    for busy in merged:
        if busy.end <= open_minutes or busy.start >= close_minutes:
            continue
        if busy.start > current:
            free.append(Interval(current, busy.start))
        current = max(current, busy.end)
    if current < close_minutes:
        free.append(Interval(current, close_minutes))
    return free


def free_intervals(
    slots: SlotSet,
    room: str,
    open_minutes: int = config.OPEN_MINUTES,
    close_minutes: int = config.CLOSE_MINUTES,
) -> dict[Day, list[Interval]]:
    """
    Free intervals of one room for every weekday (Mon..Fri, always all five keys).
    """
    wanted = room.strip().upper()
    in_room = slots.filter(lambda s: s.room.upper() == wanted)

    out: dict[Day, list[Interval]] = {}
    for day in Day.ordered():
        busy = [(s.start_minutes, s.end_minutes) for s in in_room if s.day is day]
        out[day] = complement(merge_intervals(busy), open_minutes, close_minutes)
        logger.debug("%s %s: %d busy, %d free", wanted, day.value, len(busy), len(out[day]))
    return out


def parse_window(window: str) -> Interval:
    """
    Parse 'HH:MM-HH:MM' into an Interval. Raises InvalidQueryError.
    """
    parts = window.split("-")
    if len(parts) != 2:
        raise InvalidQueryError(f"Invalid time window (expected HH:MM-HH:MM): {window!r}")
    try:
        start = time_to_minutes(parts[0])
        end = time_to_minutes(parts[1])
    except ValueError as exc:
        raise InvalidQueryError(str(exc)) from None
    if start >= end:
        raise InvalidQueryError(f"Window start must be before its end: {window!r}")
    return Interval(start, end)


def available_rooms(
    slots: SlotSet,
    day: Optional[Day],
    start: str,
    end: str,
) -> list[str]:
    """
    Rooms of the collection with no booking conflicting with [start, end) on day.

    day=None checks all five weekdays: the room must be free on each of them.
    """
    parse_window(f"{start}-{end}")
    days = Day.ordered() if day is None else [day]

    busy_rooms: set[str] = set()
    for room in slots.rooms():
        booked = slots.filter(lambda s, r=room: s.room == r)
        for d in days:
            candidate = Slot(
                course_code="?",
                lesson_type="?",
                capacity=0,
                day=d,
                start_time=start,
                end_time=end,
                room=room,
            )
            if any(s.overlaps_slot(candidate) for s in booked):
                busy_rooms.add(room)
                break

    return [r for r in slots.rooms() if r not in busy_rooms]


def format_minutes(minutes: int) -> str:
    return minutes_to_time(minutes)


def format_interval(interval: Interval) -> str:
    return f"{format_minutes(interval.start)}-{format_minutes(interval.end)}"
