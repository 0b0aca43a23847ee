"""
Conflict detection.

Given a SlotSet, detect double bookings of the same room.
Overlap rule (see Slot.overlaps_slot):
    same room AND same day AND start < other_end AND other_start < end
"""

from __future__ import annotations

from typing import Optional

from cruschedule.model import Day, Slot, time_to_minutes
from cruschedule.slotset import SlotSet
from cruschedule.exceptions import InvalidQueryError


def find_conflicts(slots: SlotSet) -> list[tuple[Slot, Slot]]:
    """
    Find overlapping slot pairs (A,B), each pair appears once (i<j).
    """
    conflicts: list[tuple[Slot, Slot]] = []
    items = slots.to_list()

    # O(n^2) is fine for typical timetable sizes
    for i in range(len(items)):
        for j in range(i + 1, len(items)):
            if items[i].overlaps_slot(items[j]):
                conflicts.append((items[i], items[j]))

    return conflicts


def conflicts_at(slots: SlotSet, at: str, day: Optional[Day] = None) -> list[tuple[Slot, Slot]]:
    """
    Conflicting pairs that are both running at time `at` (optionally on one day only).
    """
    try:
        minute = time_to_minutes(at)
    except ValueError as exc:
        raise InvalidQueryError(str(exc)) from None

    def running(s: Slot) -> bool:
        return (day is None or s.day is day) and s.start_minutes <= minute < s.end_minutes

    return find_conflicts(slots.filter(running))
