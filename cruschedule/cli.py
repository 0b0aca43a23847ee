"""
CLI (Command Line Interface).

This module provides quick terminal commands over one or more CRU files, e.g.:

    cruschedule search-rooms ME01 data/*/edt.cru
    cruschedule room-capacity S101 edt.cru
    cruschedule free-slots S101 edt.cru
    cruschedule available-rooms L 10:00-12:00 edt.cru
    cruschedule conflicts edt.cru
    cruschedule room-usage edt.cru
    cruschedule rank-rooms edt.cru
    cruschedule export edt.cru --start 2025-01-06 --end 2025-06-27 -o out.ics

Note:
- All file reading happens here, the other modules work on in-memory text and SlotSets
- "Nothing found" is reported with exit code 0, bad input with exit code 1
"""

from __future__ import annotations

import argparse
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Optional

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from cruschedule import config
from cruschedule.availability import (
    available_rooms,
    format_interval,
    format_minutes,
    free_intervals,
    parse_window,
)
from cruschedule.conflicts import conflicts_at, find_conflicts
from cruschedule.exceptions import CruError, InvalidQueryError
from cruschedule.export_ics import export_slots_to_ics
from cruschedule.model import Day, Slot
from cruschedule.parse import parse_cru
from cruschedule.slotset import SlotSet
from cruschedule.stats import rank_rooms_by_capacity, room_capacity, room_usage, rooms_for_course

logger = logging.getLogger(__name__)

console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load_slots(paths: list[Path]) -> SlotSet:
    """
    Parse every CRU file and collect all slots into one SlotSet.
    """
    slots = SlotSet.empty()
    for path in paths:
        text = path.read_text(encoding="utf-8")
        result = parse_cru(text)
        logger.info("%s: %d slots, %d invalid lines", path, len(result.slots), len(result.invalid_lines))
        slots.update(result.slots)
    return slots


def _parse_day(value: str) -> Optional[Day]:
    if value.strip().lower() == "all":
        return None
    try:
        return Day.from_code(value)
    except ValueError as exc:
        raise InvalidQueryError(str(exc)) from None


def _parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise InvalidQueryError(f"Invalid date (expected YYYY-MM-DD): {value!r}") from None


def _slot_label(s: Slot) -> str:
    return f"{s.course_code} {s.lesson_label} {s.day.value} {s.start_time}-{s.end_time} {s.room}"


def _cmd_search_rooms(args: argparse.Namespace, slots: SlotSet) -> int:
    """
    List the rooms (with capacity) used by one course.
    """
    course = args.course.strip()
    found = rooms_for_course(slots, course)
    if not found:
        console.print(f"[red]Unknown course: {escape(course)}[/]")
        return 0

    console.print(f"Rooms for course {escape(course)}:")
    for room, cap in found:
        console.print(f"[green]{escape(room)} - {cap} places[/]")
    return 0


def _cmd_room_capacity(args: argparse.Namespace, slots: SlotSet) -> int:
    room = args.room.strip().upper()
    cap = room_capacity(slots, room)
    if cap is None:
        console.print(f"[red]Room {escape(room)} not found.[/]")
        return 0

    console.print(f"[green]Room {escape(room)} has a capacity of {cap} places[/]")
    return 0


def _cmd_free_slots(args: argparse.Namespace, slots: SlotSet) -> int:
    """
    Print the free intervals of one room for each weekday.
    """
    room = args.room.strip().upper()
    if not any(r.upper() == room for r in slots.rooms()):
        console.print(f"[red]Room {escape(room)} not found or no course in it.[/]")
        return 0

    console.print(f"Free intervals for room {escape(room)}:")
    for day, free in free_intervals(slots, room).items():
        if not free:
            console.print(f"[red]{day.value}: no free interval[/]")
        else:
            console.print(f"[green]{day.value}: {', '.join(format_interval(i) for i in free)}[/]")
    return 0


def _cmd_available_rooms(args: argparse.Namespace, slots: SlotSet) -> int:
    day = _parse_day(args.day)
    window = parse_window(args.window)

    rooms = available_rooms(slots, day, format_minutes(window.start), format_minutes(window.end))
    label = "every day" if day is None else day.value
    if not rooms:
        console.print(f"[red]No free room on {label} {format_interval(window)}.[/]")
        return 0

    console.print(f"Free rooms on {label} {format_interval(window)}:")
    console.print(f"[green]{', '.join(rooms)}[/]")
    return 0


def _cmd_conflicts(args: argparse.Namespace, slots: SlotSet) -> int:
    """
    Print all double bookings (optionally only on --day and/or running at --time).
    """
    day = _parse_day(args.day) if args.day else None
    if args.time:
        confs = conflicts_at(slots, args.time, day)
    elif day is not None:
        confs = find_conflicts(slots.filter(lambda s: s.day is day))
    else:
        confs = find_conflicts(slots)

    if not confs:
        console.print("No conflicts found.")
        return 0

    confs_sorted = sorted(confs, key=lambda pair: pair[0].sort_key())
    console.print(f"Conflicts found: {len(confs_sorted)}")
    for a, b in confs_sorted:
        console.print(f"- {escape(_slot_label(a))}  <->  {escape(_slot_label(b))}")
    return 0


def _cmd_room_usage(args: argparse.Namespace, slots: SlotSet) -> int:
    usage = room_usage(slots)
    if not usage:
        console.print("[red]No slots found.[/]")
        return 0

    table = Table(title="Room occupancy", box=box.SIMPLE)
    table.add_column("Room")
    table.add_column("Occupied", justify="right")
    for room, rate in usage.items():
        table.add_row(room, f"{rate:.2f}%")
    console.print(table)

    average = sum(usage.values()) / len(usage)
    console.print(f"Average occupancy rate: {average:.2f}%")
    return 0


def _cmd_rank_rooms(args: argparse.Namespace, slots: SlotSet) -> int:
    ranking = rank_rooms_by_capacity(slots)
    if not ranking:
        console.print("[red]No slots found.[/]")
        return 0

    table = Table(title="Rooms by capacity", box=box.SIMPLE)
    table.add_column("Places", justify="right")
    table.add_column("Count", justify="right")
    table.add_column("Rooms")
    for cap, rooms in ranking:
        table.add_row(str(cap), str(len(rooms)), ", ".join(rooms))
    console.print(table)
    return 0


def _cmd_export(args: argparse.Namespace, slots: SlotSet) -> int:
    """
    Export slots into an iCalendar (.ics) file.
    """
    start = _parse_date(args.start)
    end = _parse_date(args.end)

    n = export_slots_to_ics(
        slots,
        args.out,
        period_start=start,
        period_end=end,
        courses=args.course,
        uid_domain=args.uid_domain,
    )
    if n == 0:
        console.print("No event in the requested period.")
    else:
        console.print(f"Exported {n} events to: {escape(str(args.out))}")
    return 0


COMMANDS = {
    "search-rooms": _cmd_search_rooms,
    "room-capacity": _cmd_room_capacity,
    "free-slots": _cmd_free_slots,
    "available-rooms": _cmd_available_rooms,
    "conflicts": _cmd_conflicts,
    "room-usage": _cmd_room_usage,
    "rank-rooms": _cmd_rank_rooms,
    "export": _cmd_export,
}


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="cruschedule", description="Room occupancy tool for CRU timetables")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show parser diagnostics")
    sub = parser.add_subparsers(dest="command", required=True)

    def add(name: str, help_text: str) -> argparse.ArgumentParser:
        return sub.add_parser(name, help=help_text)

    def files(p: argparse.ArgumentParser) -> None:
        p.add_argument("files", type=Path, nargs="+", help="CRU file(s)")

    p = add("search-rooms", "Rooms used by a course")
    p.add_argument("course", type=str, help="Course code (e.g. ME01)")
    files(p)

    p = add("room-capacity", "Capacity of a room")
    p.add_argument("room", type=str, help="Room code (e.g. S101)")
    files(p)

    p = add("free-slots", "Free intervals of a room for each weekday")
    p.add_argument("room", type=str, help="Room code (e.g. S101)")
    files(p)

    p = add("available-rooms", "Rooms free for a day and time window")
    p.add_argument("day", type=str, help="Day code (L, MA, ME, J, V) or 'all'")
    p.add_argument("window", type=str, help="Time window HH:MM-HH:MM")
    files(p)

    p = add("conflicts", "Double bookings of the same room")
    files(p)
    p.add_argument("--time", type=str, default=None, help="Only conflicts running at HH:MM")
    p.add_argument("--day", type=str, default=None, help="Only conflicts on this day code (L, MA, ME, J, V)")

    p = add("room-usage", "Occupancy rate of each room")
    files(p)

    p = add("rank-rooms", "Rooms grouped by capacity")
    files(p)

    p = add("export", "Export slots to .ics")
    files(p)
    p.add_argument("--start", required=True, help="First day of the period (YYYY-MM-DD)")
    p.add_argument("--end", required=True, help="Last day of the period (YYYY-MM-DD)")
    p.add_argument("--course", action="append", default=None, help="Course code to keep (repeatable)")
    p.add_argument("--uid-domain", default=config.DEFAULT_UID_DOMAIN, help="Domain used in event UIDs")
    p.add_argument("-o", "--out", type=Path, default=Path(config.DEFAULT_ICS_PATH), help="Output file path")

    return parser


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    handler = COMMANDS.get(args.command)
    if handler is None:
        raise SystemExit(2)

    try:
        slots = _load_slots(args.files)
        code = handler(args, slots)
    except (OSError, UnicodeDecodeError) as exc:
        console.print(f"[red]Error reading file: {escape(str(exc))}[/]")
        code = 1
    except CruError as exc:
        console.print(f"[red]{escape(str(exc))}[/]")
        code = 1

    raise SystemExit(code)
