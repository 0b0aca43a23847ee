"""
Project-wide constants.

All values can be overridden per call; these are only the defaults.
"""

from __future__ import annotations

# Rooms are open from 08:00 to 20:00 (minutes since midnight)
OPEN_MINUTES = 8 * 60
CLOSE_MINUTES = 20 * 60

# Reference week used for occupancy rates (8h * 5 days)
WEEKLY_HOURS = 40

# iCalendar export
DEFAULT_UID_DOMAIN = "example.com"
PRODID = "-//cruschedule//CRU Export//EN"
DEFAULT_ICS_PATH = "schedule.ics"
