"""Tests for the report side - event parsing, retrieval, filters and summary."""

from datetime import datetime, time, timedelta, timezone
from unittest.mock import MagicMock, patch

from auth.models import AccessTokenView
from report.filters import filter_events, matches_time_window, matches_weekday
from report.google_client import CalendarEvent, fetch_events, parse_event, parse_events, to_rfc3339
from report.summary import display_width, format_summary, summarize

PST = timezone(timedelta(hours=-8))


def _event(summary: str, start: str, end: str) -> CalendarEvent:
    return CalendarEvent(summary, datetime.fromisoformat(start), datetime.fromisoformat(end))


# ---------------------------------------------------------------------------
# google_client.py - parse_event tests
# ---------------------------------------------------------------------------


class TestParseEvent:
    def test_timed_event(self) -> None:
        raw = {
            "summary": "Team Standup",
            "start": {"dateTime": "2025-02-17T09:00:00-08:00"},
            "end": {"dateTime": "2025-02-17T09:30:00-08:00"},
        }
        event = parse_event(raw)
        assert event.summary == "Team Standup"
        assert event.start == datetime(2025, 2, 17, 9, 0, tzinfo=PST)
        assert event.duration == timedelta(minutes=30)

    def test_utc_z_suffix(self) -> None:
        raw = {
            "summary": "Sync",
            "start": {"dateTime": "2025-02-17T09:00:00Z"},
            "end": {"dateTime": "2025-02-17T10:00:00Z"},
        }
        assert parse_event(raw).start.tzinfo is not None

    def test_all_day_event_dropped(self) -> None:
        raw = {
            "summary": "Holiday",
            "start": {"date": "2025-02-17"},
            "end": {"date": "2025-02-18"},
        }
        assert parse_event(raw) is None

    def test_no_title_dropped(self) -> None:
        raw = {
            "start": {"dateTime": "2025-02-17T10:00:00-08:00"},
            "end": {"dateTime": "2025-02-17T10:30:00-08:00"},
        }
        assert parse_event(raw) is None

    def test_parse_events_keeps_only_timed(self) -> None:
        raws = [
            {"summary": "A", "start": {"dateTime": "2025-02-17T10:00:00-08:00"},
             "end": {"dateTime": "2025-02-17T11:00:00-08:00"}},
            {"summary": "B", "start": {"date": "2025-02-17"}, "end": {"date": "2025-02-18"}},
        ]
        assert [e.summary for e in parse_events(raws)] == ["A"]


class TestToRfc3339:
    def test_start_date_is_local_midnight(self) -> None:
        assert to_rfc3339("2025-02-17", "Asia/Tokyo") == "2025-02-17T00:00:00+09:00"

    def test_end_date_is_inclusive(self) -> None:
        assert to_rfc3339("2025-02-23", "UTC", end=True) == "2025-02-24T00:00:00+00:00"

    def test_instant_passes_through(self) -> None:
        assert to_rfc3339("2025-02-17T09:00:00-08:00", "UTC") == "2025-02-17T09:00:00-08:00"


class TestFetchEvents:
    @patch("report.google_client.build")
    def test_uses_bearer_token_and_follows_pages(self, mock_build) -> None:
        service = MagicMock()
        service.events.return_value.list.return_value.execute.side_effect = [
            {"items": [{"summary": "A"}], "nextPageToken": "p2"},
            {"items": [{"summary": "B"}]},
        ]
        mock_build.return_value = service
        token = AccessTokenView("ya29.access", "Bearer", 3599)

        events = fetch_events(token, "primary", "2025-02-17T00:00:00Z", "2025-02-24T00:00:00Z")

        assert [e["summary"] for e in events] == ["A", "B"]
        creds = mock_build.call_args.kwargs["credentials"]
        assert creds.token == "ya29.access"
        calls = service.events.return_value.list.call_args_list
        assert calls[0].kwargs["calendarId"] == "primary"
        assert calls[0].kwargs["singleEvents"] is True
        assert calls[0].kwargs["pageToken"] is None
        assert calls[1].kwargs["pageToken"] == "p2"


# ---------------------------------------------------------------------------
# filters.py
# ---------------------------------------------------------------------------


class TestFilters:
    def test_weekday(self) -> None:
        monday = _event("A", "2025-02-17T09:00:00-08:00", "2025-02-17T10:00:00-08:00")
        saturday = _event("B", "2025-02-22T09:00:00-08:00", "2025-02-22T10:00:00-08:00")
        assert matches_weekday(monday, [0, 1, 2, 3, 4]) is True
        assert matches_weekday(saturday, [0, 1, 2, 3, 4]) is False

    def test_weekday_uses_event_local_date(self) -> None:
        # Monday 23:30 in PST is already Tuesday in UTC
        late = _event("Late", "2025-02-17T23:30:00-08:00", "2025-02-18T00:30:00-08:00")
        assert matches_weekday(late, [0]) is True

    def test_time_window_start_inclusive_end_exclusive(self) -> None:
        at_start = _event("A", "2025-02-17T09:00:00-08:00", "2025-02-17T10:00:00-08:00")
        at_end = _event("B", "2025-02-17T18:00:00-08:00", "2025-02-17T19:00:00-08:00")
        assert matches_time_window(at_start, time(9, 0), time(18, 0)) is True
        assert matches_time_window(at_end, time(9, 0), time(18, 0)) is False

    def test_filter_events_applies_both(self) -> None:
        events = [
            _event("keep", "2025-02-17T10:00:00-08:00", "2025-02-17T11:00:00-08:00"),
            _event("too early", "2025-02-17T07:00:00-08:00", "2025-02-17T08:00:00-08:00"),
            _event("weekend", "2025-02-22T10:00:00-08:00", "2025-02-22T11:00:00-08:00"),
        ]
        kept = filter_events(events, [0, 1, 2, 3, 4], time(9, 0), time(18, 0))
        assert [e.summary for e in kept] == ["keep"]


# ---------------------------------------------------------------------------
# summary.py
# ---------------------------------------------------------------------------


class TestSummary:
    def test_sums_by_label(self) -> None:
        events = [
            _event("Standup", "2025-02-17T09:00:00-08:00", "2025-02-17T09:15:00-08:00"),
            _event("Focus", "2025-02-17T10:00:00-08:00", "2025-02-17T12:00:00-08:00"),
            _event("Standup", "2025-02-18T09:00:00-08:00", "2025-02-18T09:15:00-08:00"),
        ]
        summary = summarize(events)
        assert summary.by_label == {"Standup": timedelta(minutes=30), "Focus": timedelta(hours=2)}
        assert summary.total == timedelta(minutes=150)

    def test_ranked_by_duration_then_label(self) -> None:
        events = [
            _event("b", "2025-02-17T09:00:00-08:00", "2025-02-17T09:30:00-08:00"),
            _event("a", "2025-02-17T10:00:00-08:00", "2025-02-17T10:30:00-08:00"),
            _event("c", "2025-02-17T11:00:00-08:00", "2025-02-17T13:00:00-08:00"),
        ]
        assert [label for label, _ in summarize(events).ranked()] == ["c", "a", "b"]

    def test_format(self) -> None:
        events = [
            _event("Standup", "2025-02-17T09:00:00-08:00", "2025-02-17T09:15:00-08:00"),
            _event("Focus", "2025-02-17T10:00:00-08:00", "2025-02-17T12:00:00-08:00"),
        ]
        lines = format_summary(summarize(events)).splitlines()
        assert lines[0].startswith("---")
        assert lines[1] == "Focus  : 120 min"
        assert lines[2] == "Standup:  15 min"
        assert lines[3].startswith("===")
        assert lines[4] == "Total: 135 min"

    def test_wide_characters_align(self) -> None:
        events = [
            _event("会議", "2025-02-17T09:00:00+09:00", "2025-02-17T10:00:00+09:00"),
            _event("Lunch", "2025-02-17T12:00:00+09:00", "2025-02-17T12:30:00+09:00"),
        ]
        lines = format_summary(summarize(events)).splitlines()
        assert display_width(lines[1].split(":")[0]) == display_width(lines[2].split(":")[0])

    def test_empty(self) -> None:
        lines = format_summary(summarize([])).splitlines()
        assert lines[-1] == "Total:   0 min"
