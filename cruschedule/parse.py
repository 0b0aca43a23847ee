"""
Parsing (CRU text -> SlotSet).

- Reads the raw text of one CRU export (already loaded by the caller)
- Tracks the active course from '+CODE' header lines
- Turns EACH valid slot line into exactly ONE Slot
- Records what happened to every line as a Diagnostic

Important rules:
- 'Page ...' footer lines are always skipped
- A header without any digit ('+UVUV') is a template: its slot lines are dropped
- An invalid slot line is skipped, it never aborts the whole file
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple, Optional

from cruschedule.exceptions import InvalidSlotError, SlotLineError
from cruschedule.model import Day, LessonType, Slot
from cruschedule.slotset import SlotSet

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Grammar
# ---------------------------------------------------------------------------

# 1,D1,P=24,H=ME 16:00-18:00,F1,S=S104//
SLOT_LINE_RE = re.compile(
    r"^(?P<group>\d+)\s*,"
    r"\s*(?P<type>[A-Za-z]+\d+)\s*,"
    r"\s*P=\s*(?P<capacity>\d{1,3})\s*,"
    r"\s*H=\s*(?P<day>L|MA|ME|J|V)\s+(?P<start>\d{1,2}:\d{2})-(?P<end>\d{1,2}:\d{2})\s*,"
    r"\s*(?P<subgroup>[A-Za-z]\d)\s*,"
    r"\s*S=\s*(?P<room>[A-Za-z0-9]{4})\s*//\s*$"
)

LOOKS_LIKE_SLOT_RE = re.compile(r"^\d+\s*,")

FOOTER_PREFIX = "Page "
HEADER_PREFIX = "+"


class LineKind(Enum):
    FOOTER = "footer"
    COURSE_HEADER = "course_header"
    TEMPLATE_HEADER = "template_header"
    BOILERPLATE = "boilerplate"
    SLOT = "slot"
    INVALID_SLOT_LINE = "invalid_slot_line"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class Diagnostic:
    """
    What the parser did with one (non-empty) input line.
    """

    line_no: int
    kind: LineKind
    line: str
    message: str = ""


@dataclass(frozen=True)
class ParserState:
    active_course: Optional[str] = None


class Step(NamedTuple):
    """
    Outcome of one line: the next state, what happened and the slot produced (if any).
    """

    state: ParserState
    diagnostic: Diagnostic
    slot: Optional[Slot] = None


@dataclass
class ParseResult:
    slots: SlotSet
    diagnostics: tuple[Diagnostic, ...] = field(default_factory=tuple)

    def of_kind(self, kind: LineKind) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.kind is kind]

    @property
    def invalid_lines(self) -> list[Diagnostic]:
        return self.of_kind(LineKind.INVALID_SLOT_LINE)


# ---------------------------------------------------------------------------
# Slot line parsing (CORE LOGIC)
# ---------------------------------------------------------------------------


def parse_slot_line(line: str, course_code: str) -> Slot:
    """
    Parses exactly one slot line into exactly one Slot.
    Raises SlotLineError if the line does not match the grammar.
    """
    raw = line.strip()
    m = SLOT_LINE_RE.match(raw)
    if not m:
        raise SlotLineError(raw)

    try:
        return Slot(
            course_code=course_code,
            lesson_type=LessonType.from_raw(m.group("type")),
            capacity=int(m.group("capacity")),
            day=Day.from_code(m.group("day")),
            start_time=m.group("start"),
            end_time=m.group("end"),
            room=m.group("room"),
            subgroup=m.group("subgroup"),
            group_index=int(m.group("group")),
        )
    except InvalidSlotError as exc:
        raise SlotLineError(raw, reason=str(exc)) from exc


def looks_like_slot_line(line: str) -> bool:
    return LOOKS_LIKE_SLOT_RE.match(line) is not None


# ---------------------------------------------------------------------------
# Line classification (one fold step)
# ---------------------------------------------------------------------------


def step(state: ParserState, line_no: int, line: str) -> Step:
    """
    Pure transition: old state + one stripped, non-empty line -> new state.
    """

    def diag(kind: LineKind, message: str = "") -> Diagnostic:
        return Diagnostic(line_no=line_no, kind=kind, line=line, message=message)

    if line.startswith(FOOTER_PREFIX):
        return Step(state, diag(LineKind.FOOTER))

    if line.startswith(HEADER_PREFIX):
        candidate = line[len(HEADER_PREFIX):].strip()
        # Template headers like "+UVUV" contain no digit at all
        if not any(ch.isdigit() for ch in candidate):
            return Step(ParserState(None), diag(LineKind.TEMPLATE_HEADER, f"ignoring template course {candidate!r}"))
        return Step(ParserState(candidate), diag(LineKind.COURSE_HEADER, candidate))

    is_slot = looks_like_slot_line(line)

    if state.active_course is None and not is_slot:
        return Step(state, diag(LineKind.BOILERPLATE))

    if state.active_course is not None and is_slot:
        try:
            slot = parse_slot_line(line, state.active_course)
        except SlotLineError as exc:
            return Step(state, diag(LineKind.INVALID_SLOT_LINE, exc.reason))
        return Step(state, diag(LineKind.SLOT, state.active_course), slot)

    return Step(state, diag(LineKind.SKIPPED))


def _log(diag: Diagnostic) -> None:
    if diag.kind is LineKind.INVALID_SLOT_LINE:
        logger.warning("line %d: skipping invalid slot line %r (%s)", diag.line_no, diag.line, diag.message)
    else:
        logger.debug("line %d: %s %r", diag.line_no, diag.kind.value, diag.line)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_cru(text: str) -> ParseResult:
    """
    Parses the raw contents of a CRU file.

    Returns the slots in file order (duplicates removed) together with
    one Diagnostic per non-empty line.
    """
    state = ParserState()
    slots = SlotSet.empty()
    diagnostics: list[Diagnostic] = []

    for line_no, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line:
            continue
        state, diag, slot = step(state, line_no, line)
        _log(diag)
        diagnostics.append(diag)
        if slot is not None:
            slots.add(slot)

    result = ParseResult(slots=slots, diagnostics=tuple(diagnostics))
    logger.debug(
        "parsed %d slots (%d invalid lines)", len(result.slots), len(result.invalid_lines)
    )
    return result


class CruParser:
    """
    Convenience wrapper returning only the SlotSet.

    The diagnostics of the last call stay available in `last_diagnostics`.
    """

    def __init__(self) -> None:
        self.last_diagnostics: tuple[Diagnostic, ...] = ()

    def parse(self, text: str) -> SlotSet:
        result = parse_cru(text)
        self.last_diagnostics = result.diagnostics
        return result.slots
