"""Google Calendar API wrapper.

Handles API client initialization from a bearer token, event fetching,
and conversion of raw events into CalendarEvent values. The token itself
comes from auth.manager; this module never touches the token cache.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any
from zoneinfo import ZoneInfo

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from auth.models import AccessTokenView

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalendarEvent:
    """A timed event with offset-aware start and end."""

    summary: str
    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


def to_rfc3339(value: str, timezone: str, end: bool = False) -> str:
    """Normalize a range bound to RFC 3339.

    A bare YYYY-MM-DD date becomes local midnight in ``timezone``. For the
    end bound the following midnight is used so the date is inclusive.
    Anything else is passed through unchanged.

    Args:
        value: RFC 3339 instant or YYYY-MM-DD date.
        timezone: IANA timezone string.
        end: True when ``value`` is the end of the range.

    Returns:
        RFC 3339 string accepted by the Calendar API.
    """
    try:
        day = datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return value

    if end:
        day += timedelta(days=1)
    return day.replace(tzinfo=ZoneInfo(timezone)).isoformat()


def fetch_events(
    token: AccessTokenView,
    calendar_id: str,
    time_min: str,
    time_max: str,
) -> list[dict[str, Any]]:
    """Fetch events from a Google Calendar for a time range.

    Follows ``nextPageToken`` until every page has been read.

    Args:
        token: Access token from the TokenManager.
        calendar_id: Calendar ID (e.g. "primary").
        time_min: RFC 3339 lower bound.
        time_max: RFC 3339 upper bound.

    Returns:
        List of raw event dicts from the Google Calendar API.

    Raises:
        googleapiclient.errors.HttpError: If the API rejects the request.
    """
    creds = Credentials(token=token.access_token)
    service = build("calendar", "v3", credentials=creds, cache_discovery=False)

    logger.info("Fetching events from calendar '%s' (%s to %s)", calendar_id, time_min, time_max)

    events: list[dict[str, Any]] = []
    page_token = None
    while True:
        events_result = (
            service.events()
            .list(
                calendarId=calendar_id,
                timeMin=time_min,
                timeMax=time_max,
                singleEvents=True,
                orderBy="startTime",
                pageToken=page_token,
            )
            .execute()
        )
        events.extend(events_result.get("items", []))
        page_token = events_result.get("nextPageToken")
        if not page_token:
            break

    logger.info("Retrieved %d events from calendar '%s'", len(events), calendar_id)
    return events


def parse_event(raw_event: dict[str, Any]) -> CalendarEvent | None:
    """Parse a raw Google Calendar event into a CalendarEvent.

    Returns None for events this report can't time: all-day events
    (which use "date" instead of "dateTime") and events with no title.
    """
    summary = raw_event.get("summary")
    start_str = raw_event.get("start", {}).get("dateTime")
    end_str = raw_event.get("end", {}).get("dateTime")
    if not summary or not start_str or not end_str:
        return None

    # Parse ISO datetime (e.g. "2025-02-17T09:00:00-08:00")
    try:
        start = datetime.fromisoformat(start_str.replace("Z", "+00:00"))
        end = datetime.fromisoformat(end_str.replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Skipping event %r with unparseable times", summary)
        return None

    return CalendarEvent(summary=summary, start=start, end=end)


def parse_events(raw_events: list[dict[str, Any]]) -> list[CalendarEvent]:
    events = []
    for raw in raw_events:
        event = parse_event(raw)
        if event is not None:
            events.append(event)
    return events
