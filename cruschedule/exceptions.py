"""
Exception hierarchy shared by the parser, the queries and the exporter.
"""


class CruError(Exception):
    """Base class for all cruschedule errors."""


class InvalidSlotError(CruError, ValueError):
    """Raised when a Slot is built from inconsistent field values."""


class SlotLineError(InvalidSlotError):
    """Raised when a line looks like a slot line but does not match the grammar."""

    def __init__(self, line: str, reason: str = "does not match slot grammar") -> None:
        super().__init__(f"Invalid slot line ({reason}): {line!r}")
        self.line = line
        self.reason = reason


class InvalidQueryError(CruError, ValueError):
    """Raised for malformed query input (bad time window, end before start, ...)."""
