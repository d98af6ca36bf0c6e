"""Time-usage summary: total minutes per event title, rendered for the console."""

import unicodedata
from dataclasses import dataclass, field
from datetime import timedelta

from report.google_client import CalendarEvent

SEPARATOR = "-" * 22
RULE = "=" * 22


@dataclass
class Summary:
    """Durations keyed by event title, plus the grand total."""

    by_label: dict[str, timedelta] = field(default_factory=dict)
    total: timedelta = field(default_factory=timedelta)

    def ranked(self) -> list[tuple[str, timedelta]]:
        """Labels ordered by descending duration, ties broken by label."""
        return sorted(self.by_label.items(), key=lambda item: (-item[1], item[0]))


def summarize(events: list[CalendarEvent]) -> Summary:
    summary = Summary()
    for event in events:
        duration = event.duration
        summary.total += duration
        summary.by_label[event.summary] = summary.by_label.get(event.summary, timedelta()) + duration
    return summary


def display_width(text: str) -> int:
    """Console columns ``text`` occupies; wide (CJK) characters count as two."""
    return sum(2 if unicodedata.east_asian_width(c) in ("W", "F") else 1 for c in text)


def _minutes(duration: timedelta) -> int:
    return int(duration.total_seconds() // 60)


def format_summary(summary: Summary) -> str:
    """Render the summary as aligned lines, e.g. ``Standup   :  90 min``."""
    ranked = summary.ranked()
    width = max((display_width(label) for label, _ in ranked), default=0)

    lines = [SEPARATOR]
    for label, duration in ranked:
        padding = " " * (width - display_width(label))
        lines.append(f"{label}{padding}: {_minutes(duration):>3} min")
    lines.append(RULE)
    lines.append(f"Total: {_minutes(summary.total):>3} min")
    return "\n".join(lines)
