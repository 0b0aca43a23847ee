"""
SlotSet: the collection every query and export works on.

- keeps insertion order
- silently drops duplicates (full-field equality)
- filter() and sort() return new, independent collections
"""

from __future__ import annotations

from typing import Callable, Iterable, Iterator, Optional

from cruschedule.model import Slot


class SlotSet:
    def __init__(self, slots: Optional[Iterable[Slot]] = None) -> None:
        # dict keys give O(1) membership and preserve insertion order
        self._slots: dict[Slot, None] = {}
        if slots is not None:
            self.update(slots)

    @classmethod
    def empty(cls) -> "SlotSet":
        return cls()

    def add(self, slot: Slot) -> "SlotSet":
        """
        Insert slot unless an equal one is already present. Returns self.
        """
        if slot not in self._slots:
            self._slots[slot] = None
        return self

    def update(self, slots: Iterable[Slot]) -> "SlotSet":
        for slot in slots:
            self.add(slot)
        return self

    def merge(self, other: "SlotSet") -> "SlotSet":
        """
        Return a new collection with the slots of self followed by the new ones of other.
        """
        return SlotSet(self).update(other)

    def filter(self, predicate: Callable[[Slot], bool]) -> "SlotSet":
        return SlotSet(s for s in self._slots if predicate(s))

    def sort(self) -> "SlotSet":
        """
        Chronological order: weekday first (Mon..Fri), then start time.
        """
        return SlotSet(sorted(self._slots, key=lambda s: s.sort_key()))

    def to_list(self) -> list[Slot]:
        return list(self._slots)

    def rooms(self) -> list[str]:
        return sorted({s.room for s in self._slots})

    def __iter__(self) -> Iterator[Slot]:
        return iter(list(self._slots))

    def __len__(self) -> int:
        return len(self._slots)

    def __contains__(self, slot: object) -> bool:
        return slot in self._slots

    def __bool__(self) -> bool:
        return bool(self._slots)

    def __repr__(self) -> str:
        return f"SlotSet({len(self._slots)} slots)"
