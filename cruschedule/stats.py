"""
Room statistics computed over a SlotSet.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Optional

from cruschedule import config
from cruschedule.slotset import SlotSet


def room_capacity(slots: SlotSet, room: str) -> Optional[int]:
    """
    Largest capacity ever announced for room, or None if the room is unknown.
    """
    wanted = room.strip().upper()
    capacities = [s.capacity for s in slots if s.room.upper() == wanted]
    if not capacities:
        return None
    return max(capacities)


def rooms_for_course(slots: SlotSet, course_code: str) -> list[tuple[str, int]]:
    out: list[tuple[str, int]] = []
    for s in slots.filter(lambda s: s.course_code == course_code):
        pair = (s.room, s.capacity)
        if pair not in out:
            out.append(pair)
    return out


def room_usage(slots: SlotSet, weekly_hours: float = config.WEEKLY_HOURS) -> dict[str, float]:
    """
    Occupancy rate (percent of weekly_hours) per room, rooms sorted by code.
    """
    minutes: dict[str, int] = defaultdict(int)
    for s in slots:
        minutes[s.room] += s.duration_minutes

    available = weekly_hours * 60
    return {room: minutes[room] / available * 100 for room in sorted(minutes)}


def rank_rooms_by_capacity(slots: SlotSet) -> list[tuple[int, list[str]]]:
    """
    Capacities in descending order, each with the rooms whose maximum capacity it is.
    """
    best: dict[str, int] = {}
    for s in slots:
        best[s.room] = max(best.get(s.room, 0), s.capacity)

    by_capacity: dict[int, list[str]] = defaultdict(list)
    for room, cap in best.items():
        by_capacity[cap].append(room)

    return [(cap, sorted(by_capacity[cap])) for cap in sorted(by_capacity, reverse=True)]
