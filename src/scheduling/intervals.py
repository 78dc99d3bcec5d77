"""Interval arithmetic on minutes-since-midnight.

Pure functions, no I/O. Times of day are parsed once at the boundary
(`to_minutes`) and compared as integers everywhere else, so no string or
timezone comparison ever reaches the overlap logic.

All intervals are half-open: ``[start, end)``. Back-to-back appointments
(10:00–11:00 and 11:00–12:00) therefore do not overlap. An end time of
00:00 is midnight at the end of the day (minute 1440).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import time

_TIME_RE = re.compile(r"^\s*(\d{1,2}):([0-5]\d)(?::([0-5]\d))?\s*$")

MINUTES_PER_DAY = 24 * 60


def to_minutes(value: str | time) -> int:
    """Convert ``"HH:MM"``, ``"HH:MM:SS"`` or a ``time`` to minutes since midnight.

    Seconds are dropped. Raises ValueError on malformed input.
    """
    if isinstance(value, time):
        return value.hour * 60 + value.minute

    match = _TIME_RE.match(value)
    if match is None:
        msg = f"Invalid time of day: {value!r} (expected HH:MM)"
        raise ValueError(msg)

    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23:
        msg = f"Invalid time of day: {value!r} (hour out of range)"
        raise ValueError(msg)
    return hours * 60 + minutes


def to_end_minutes(value: str | time) -> int:
    """Like `to_minutes`, but an end of 00:00 means the following midnight."""
    minutes = to_minutes(value)
    return MINUTES_PER_DAY if minutes == 0 else minutes


def format_minutes(minutes: int) -> str:
    """Format minutes since midnight as ``"HH:MM"``."""
    hours, mins = divmod(minutes, 60)
    return f"{hours:02d}:{mins:02d}"


@dataclass(frozen=True)
class Interval:
    """Half-open span of minutes ``[start, end)`` within one day."""

    start: int
    end: int

    @classmethod
    def from_times(cls, start: str | time, end: str | time) -> Interval:
        return cls(to_minutes(start), to_end_minutes(end))

    @classmethod
    def from_duration(cls, start: str | time | int, duration_minutes: int) -> Interval:
        begin = start if isinstance(start, int) else to_minutes(start)
        return cls(begin, begin + duration_minutes)

    @property
    def duration(self) -> int:
        return self.end - self.start


def overlaps(a: Interval, b: Interval) -> bool:
    """True when the two half-open intervals share at least one minute."""
    return a.start < b.end and b.start < a.end


def within_window(point: int, window_start: int, window_end: int) -> bool:
    """True when ``point`` lies in ``[window_start, window_end)``."""
    return window_start <= point < window_end
