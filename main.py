"""Calendar Time Report - Entry Point.

Obtains a Google Calendar access token (cached, refreshed, or via the
interactive authorization flow), fetches events in the configured range,
keeps those on the selected weekdays and inside the time-of-day window,
and prints minutes spent per event title.

Usage:
    python main.py
    python main.py --start 2025-02-17 --end 2025-02-23
    python main.py --calendar team@group.calendar.google.com
"""

import argparse
import logging
import sys

from googleapiclient.errors import HttpError

from auth.errors import AuthorizationError, ConfigurationError
from auth.manager import TokenManager
from config.settings import load_settings
from report.filters import filter_events
from report.google_client import fetch_events, parse_events, to_rfc3339
from report.summary import format_summary, summarize

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("main")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Summarize time spent per calendar event title.")
    parser.add_argument("--start", help="Range start (YYYY-MM-DD or RFC 3339). Overrides REPORT_START.")
    parser.add_argument("--end", help="Range end (YYYY-MM-DD or RFC 3339). Overrides REPORT_END.")
    parser.add_argument("--calendar", dest="calendar_id", help="Calendar ID. Overrides CALENDAR_ID.")
    return parser.parse_args(argv)


def run(argv: list[str] | None = None) -> int:
    """Run the report and return the process exit code."""
    args = parse_args(argv)

    try:
        settings = load_settings()
    except ConfigurationError as e:
        print(f"ERROR: {e}")
        return 1

    if args.start:
        settings.report_start = args.start
    if args.end:
        settings.report_end = args.end
    if args.calendar_id:
        settings.calendar_id = args.calendar_id

    print(settings.describe())
    print()

    manager = TokenManager(settings.token_manager_config())
    try:
        token = manager.get_access_token()
    except (ConfigurationError, AuthorizationError) as e:
        print(f"ERROR: {e}")
        return 1

    time_min = to_rfc3339(settings.report_start, settings.user_timezone)
    time_max = to_rfc3339(settings.report_end, settings.user_timezone, end=True)

    try:
        raw_events = fetch_events(token, settings.calendar_id, time_min, time_max)
    except HttpError as e:
        logger.error("Calendar API request failed: %s", e)
        print(f"ERROR: Could not fetch events from '{settings.calendar_id}': {e}")
        return 1

    events = filter_events(
        parse_events(raw_events),
        settings.weekdays,
        settings.start_time,
        settings.end_time,
    )
    logger.info("%d of %d events matched the filters", len(events), len(raw_events))

    print()
    print(format_summary(summarize(events)))
    return 0


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
