"""Unit tests for the calendar endpoint."""

from datetime import UTC, datetime
from unittest.mock import Mock

import pytest

from dashboard_api.calendar_events import (
    extract_calendar_id,
    get_ics_url,
    handle_calendar,
    normalize_events,
    parse_api_events,
    parse_ics_events,
)
from dashboard_api.config import CalendarConfig
from dashboard_api.responses import Request, UpstreamError

# Monday 6 October 2025, 12:00 UTC
NOW = datetime(2025, 10, 6, 12, 0, tzinfo=UTC).timestamp()

ICS_DOCUMENT = b"""BEGIN:VCALENDAR\r
VERSION:2.0\r
PRODID:-//Test//Dashboard//EN\r
BEGIN:VEVENT\r
UID:later@example.com\r
DTSTART:20251009T150000Z\r
DTEND:20251009T160000Z\r
SUMMARY:Tannlege\r
END:VEVENT\r
BEGIN:VEVENT\r
UID:soon@example.com\r
DTSTART:20251006T130000Z\r
DTEND:20251006T140000Z\r
SUMMARY:Standup\r
DESCRIPTION:Daglig m\xc3\xb8te\r
URL:https://meet.example.com/standup\r
END:VEVENT\r
BEGIN:VEVENT\r
UID:allday@example.com\r
DTSTART;VALUE=DATE:20251008\r
DTEND;VALUE=DATE:20251009\r
SUMMARY:Fridag\r
END:VEVENT\r
BEGIN:VEVENT\r
UID:past@example.com\r
DTSTART:20251001T090000Z\r
DTEND:20251001T100000Z\r
SUMMARY:Forbi\r
END:VEVENT\r
BEGIN:VEVENT\r
UID:far@example.com\r
DTSTART:20251020T090000Z\r
DTEND:20251020T100000Z\r
SUMMARY:Langt fram\r
END:VEVENT\r
END:VCALENDAR\r
"""


def get(query=None):
    return Request(method="GET", path="/api/calendar", query=query or {})


class TestCalendarLinksUnit:
    def test_bare_id(self):
        assert extract_calendar_id("someone@gmail.com") == "someone@gmail.com"
        assert (
            get_ics_url("someone@gmail.com")
            == "https://calendar.google.com/calendar/ical/someone%40gmail.com/public/basic.ics"
        )

    def test_embed_link(self):
        link = "https://calendar.google.com/calendar/embed?src=team%40group.calendar.google.com&ctz=Europe%2FOslo"

        assert extract_calendar_id(link) == "team@group.calendar.google.com"
        assert get_ics_url(link) == (
            "https://calendar.google.com/calendar/ical/"
            "team%40group.calendar.google.com/public/basic.ics"
        )

    def test_direct_ics_link_is_kept(self):
        link = "https://example.com/calendars/family.ics?token=1"

        assert get_ics_url(link) == link

    def test_api_url(self):
        url = "https://www.googleapis.com/calendar/v3/calendars/abc%40group.calendar.google.com/events"

        assert extract_calendar_id(url) == "abc@group.calendar.google.com"

    def test_empty_input(self):
        assert extract_calendar_id("  ") == ""
        assert get_ics_url("") == ""
        assert get_ics_url("primary") == ""


class TestCalendarParsingUnit:
    def test_parse_ics_events(self):
        events = {event.id: event for event in parse_ics_events(ICS_DOCUMENT)}

        assert set(events) == {
            "later@example.com",
            "soon@example.com",
            "allday@example.com",
            "past@example.com",
            "far@example.com",
        }
        standup = events["soon@example.com"]
        assert standup.summary == "Standup"
        assert standup.description == "Daglig møte"
        assert standup.html_link == "https://meet.example.com/standup"
        assert standup.start == datetime(2025, 10, 6, 13, 0, tzinfo=UTC)
        assert events["allday@example.com"].start == datetime(2025, 10, 8, tzinfo=UTC)

    def test_invalid_ics_raises_value_error(self):
        with pytest.raises(ValueError):
            parse_ics_events(b"this is not a calendar")

    def test_parse_api_events(self):
        payload = {
            "items": [
                {
                    "id": "evt1",
                    "summary": "Planlegging",
                    "start": {"dateTime": "2025-10-07T09:00:00+02:00"},
                    "end": {"dateTime": "2025-10-07T10:00:00+02:00"},
                    "htmlLink": "https://calendar.google.com/event?eid=evt1",
                },
                {"id": "evt2", "start": {"date": "2025-10-08"}, "end": {"date": "2025-10-09"}},
                {"id": "broken", "start": {}},
            ]
        }

        events = parse_api_events(payload)

        assert [event.id for event in events] == ["evt1", "evt2"]
        assert events[0].start == datetime(2025, 10, 7, 7, 0, tzinfo=UTC)
        assert events[1].summary == "No title"

    def test_normalize_sorts_and_caps(self):
        events = parse_ics_events(ICS_DOCUMENT)

        body = normalize_events(events, limit=2)

        assert [event["id"] for event in body] == ["past@example.com", "soon@example.com"]
        assert body[1]["start"] == {"dateTime": "2025-10-06T13:00:00.000Z"}
        assert body[1]["end"] == {"dateTime": "2025-10-06T14:00:00.000Z"}


class TestHandleCalendarUnit:
    def test_ics_events_inside_the_next_seven_days(self):
        client = Mock()
        client.get_bytes.return_value = ICS_DOCUMENT

        response = handle_calendar(
            get({"calendarLink": "someone@gmail.com"}), client, CalendarConfig(), clock=lambda: NOW
        )

        assert response.status_code == 200
        assert response.body["source"] == "ics"
        assert [event["id"] for event in response.body["events"]] == [
            "soon@example.com",
            "allday@example.com",
            "later@example.com",
        ]
        assert response.body["count"] == 3
        assert response.headers["Cache-Control"] == "public, max-age=900"

    def test_default_calendar_from_config(self):
        client = Mock()
        client.get_bytes.return_value = ICS_DOCUMENT

        handle_calendar(
            get(), client, CalendarConfig(default_calendar="someone@gmail.com"), clock=lambda: NOW
        )

        assert "someone%40gmail.com" in client.get_bytes.call_args[0][1]

    def test_not_configured(self):
        client = Mock()

        response = handle_calendar(get(), client, CalendarConfig(), clock=lambda: NOW)

        assert response.status_code == 200
        assert response.body["error"] == "Calendar not configured"
        assert response.body["events"] == []
        client.get_bytes.assert_not_called()
        client.get_json.assert_not_called()

    def test_api_key_path(self):
        client = Mock()
        client.get_json.return_value = {
            "items": [
                {
                    "id": "evt1",
                    "summary": "Møte",
                    "start": {"dateTime": "2025-10-07T09:00:00Z"},
                    "end": {"dateTime": "2025-10-07T10:00:00Z"},
                }
            ]
        }

        response = handle_calendar(
            get(), client, CalendarConfig(api_key="key-123"), clock=lambda: NOW
        )

        assert response.body["source"] == "google-api"
        assert response.body["events"][0]["summary"] == "Møte"
        args, kwargs = client.get_json.call_args
        assert args[1] == "https://www.googleapis.com/calendar/v3/calendars/primary/events"
        assert kwargs["params"]["key"] == "key-123"
        assert kwargs["params"]["timeMin"] == "2025-10-06T12:00:00Z"
        assert kwargs["params"]["timeMax"] == "2025-10-13T12:00:00Z"
        assert kwargs["params"]["singleEvents"] == "true"

    @pytest.mark.parametrize(
        "payload",
        [
            ["unexpected"],
            {"items": "unexpected"},
            {"items": ["not an event"]},
            {"items": [{"id": "evt1", "start": "2025-10-07"}]},
        ],
    )
    def test_unexpected_api_payload_is_200_with_error(self, payload):
        client = Mock()
        client.get_json.return_value = payload

        response = handle_calendar(get(), client, CalendarConfig(api_key="k"), clock=lambda: NOW)

        assert response.status_code == 200
        assert response.body["error"] == "Failed to fetch calendar events"
        assert response.body["events"] == []
        assert response.body["message"].startswith("Unexpected calendar event")

    def test_upstream_failure_is_200_with_error(self):
        client = Mock()
        client.get_bytes.side_effect = UpstreamError(
            "calendar-ics", "calendar-ics API responded with status: 404", status_code=404
        )

        response = handle_calendar(
            get({"calendarLink": "someone@gmail.com"}), client, CalendarConfig(), clock=lambda: NOW
        )

        assert response.status_code == 200
        assert response.body == {
            "error": "Failed to fetch calendar events",
            "message": "calendar-ics API responded with status: 404",
            "events": [],
        }
