"""
iCalendar (.ics) export.

We convert the weekly slots of a SlotSet into recurring events that can be imported into:
- Google Calendar
- Outlook
- Apple Calendar

Each slot becomes one VEVENT starting on its first occurrence inside the
export period and repeating weekly until the last day of the period.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from pathlib import Path
from typing import Iterable, Optional, Union

from cruschedule import config
from cruschedule.exceptions import InvalidQueryError
from cruschedule.model import Day, Slot
from cruschedule.slotset import SlotSet

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime]

END_OF_DAY = time(23, 59, 59)


def _ics_escape(text: str) -> str:
    """
    Escape TEXT values (RFC 5545): backslash, semicolon, comma, line breaks.
    """
    return (
        text.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\r", "\\n")
        .replace("\n", "\\n")
    )


def _dt_local(dt: datetime) -> str:
    """
    Floating local datetime 'YYYYMMDDTHHMMSS'.
    """
    return dt.strftime("%Y%m%dT%H%M%S")


def _dt_utc(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def _as_start(value: DateLike) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def _as_end(value: DateLike) -> datetime:
    # A plain date covers the whole day
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, END_OF_DAY)


def first_occurrence(period_start: DateLike, day: Day, hhmm: str) -> datetime:
    """
    First date >= period_start falling on `day`, combined with the time hhmm.
    """
    start = _as_start(period_start)
    delta = (day.index - start.weekday() + 7) % 7
    hours, minutes = (int(x) for x in hhmm.split(":"))
    return datetime.combine(start.date() + timedelta(days=delta), time(hours, minutes))


def _summary(slot: Slot) -> str:
    summary = f"{slot.course_code} {slot.lesson_label}"
    if slot.subgroup:
        summary += f" ({slot.subgroup})"
    return summary


def _slot_to_vevent(
    slot: Slot,
    index: int,
    uid_domain: str,
    dtstamp: str,
    period_start: DateLike,
    period_end: DateLike,
) -> list[str]:
    """
    Convert one Slot to a VEVENT block. Returns [] if the period holds no occurrence.
    """
    dtstart = first_occurrence(period_start, slot.day, slot.start_time)
    if dtstart > _as_end(period_end):
        logger.debug("no occurrence of %s %s %s in period", slot.course_code, slot.day.value, slot.start_time)
        return []

    end_h, end_m = (int(x) for x in slot.end_time.split(":"))
    dtend = datetime.combine(dtstart.date(), time(end_h, end_m))

    until = datetime.combine(_as_end(period_end).date(), END_OF_DAY)
    uid = f"cru-{slot.course_code}-{slot.day.value}-{slot.start_time.replace(':', '')}-{index}@{uid_domain}"

    return [
        "BEGIN:VEVENT",
        f"UID:{_ics_escape(uid)}",
        f"DTSTAMP:{dtstamp}",
        f"DTSTART:{_dt_local(dtstart)}",
        f"DTEND:{_dt_local(dtend)}",
        f"SUMMARY:{_ics_escape(_summary(slot))}",
        f"LOCATION:{_ics_escape(slot.room)}",
        f"RRULE:FREQ=WEEKLY;UNTIL={_dt_local(until)};BYDAY={slot.day.ical}",
        "END:VEVENT",
    ]


def slots_to_ics(
    slots: SlotSet,
    period_start: DateLike,
    period_end: DateLike,
    courses: Optional[Iterable[str]] = None,
    uid_domain: str = config.DEFAULT_UID_DOMAIN,
    now: Optional[datetime] = None,
) -> str:
    """
    Build the iCalendar text for the slots of `courses` (all slots if empty/None).
    """
    if _as_start(period_end) < _as_start(period_start):
        raise InvalidQueryError(f"Period end {period_end} is before period start {period_start}")

    wanted = set(courses) if courses else None
    items = slots.filter(lambda s: wanted is None or s.course_code in wanted).sort().to_list()

    lines: list[str] = []
    lines.append("BEGIN:VCALENDAR")
    lines.append("VERSION:2.0")
    lines.append(f"PRODID:{config.PRODID}")
    lines.append("CALSCALE:GREGORIAN")

    # One DTSTAMP shared by every event of this export
    dtstamp = _dt_utc(now if now is not None else datetime.now(timezone.utc))

    for index, slot in enumerate(items):
        lines.extend(_slot_to_vevent(slot, index, uid_domain, dtstamp, period_start, period_end))

    lines.append("END:VCALENDAR")

    # ICS standard uses CRLF
    return "\r\n".join(lines) + "\r\n"


def count_events(ics_text: str) -> int:
    return sum(1 for line in ics_text.split("\r\n") if line == "BEGIN:VEVENT")


def export_slots_to_ics(
    slots: SlotSet,
    out_path: str | Path,
    period_start: DateLike,
    period_end: DateLike,
    courses: Optional[Iterable[str]] = None,
    uid_domain: str = config.DEFAULT_UID_DOMAIN,
) -> int:
    """
    Export slots to an .ics file. Returns number of exported events.
    """
    text = slots_to_ics(slots, period_start, period_end, courses=courses, uid_domain=uid_domain)

    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    # newline="" keeps the CRLF line endings untouched on every platform
    out.write_text(text, encoding="utf-8", newline="")

    return count_events(text)
