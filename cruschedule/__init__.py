"""
cruschedule: room occupancy queries and iCalendar export for CRU timetables.
"""

from cruschedule.model import Day, LessonType, Slot
from cruschedule.parse import CruParser, parse_cru
from cruschedule.slotset import SlotSet

__all__ = ["CruParser", "Day", "LessonType", "Slot", "SlotSet", "parse_cru"]
