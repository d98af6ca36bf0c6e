"""Event filters: keep events on selected weekdays inside a time-of-day window.

Both predicates look at the event's start in its own UTC offset, i.e. the
local time the calendar reported.
"""

from datetime import time
from typing import Iterable

from report.google_client import CalendarEvent


def matches_weekday(event: CalendarEvent, weekdays: Iterable[int]) -> bool:
    """True if the event starts on one of ``weekdays`` (Monday=0)."""
    return event.start.weekday() in set(weekdays)


def matches_time_window(event: CalendarEvent, start: time, end: time) -> bool:
    """True if the event's start time is in ``[start, end)``."""
    return start <= event.start.time() < end


def filter_events(
    events: list[CalendarEvent],
    weekdays: Iterable[int],
    start: time,
    end: time,
) -> list[CalendarEvent]:
    days = set(weekdays)
    return [
        event
        for event in events
        if matches_weekday(event, days) and matches_time_window(event, start, end)
    ]
