"""Upcoming calendar events from a public ICS feed or the Google Calendar API.

The endpoint always answers 200 so the widget can render a "not configured"
or error state inside the card instead of failing.
"""

import re
import time
from datetime import UTC, date, datetime, timedelta
from urllib.parse import parse_qs, quote, unquote, urlparse

from dateutil import parser as date_parser
from icalendar import Calendar

from .config import CalendarConfig
from .logging_config import create_request_logger
from .models import CalendarEvent
from .responses import Request, Response, UpstreamError, json_response
from .upstream import UpstreamClient

GOOGLE_ICS_URL = "https://calendar.google.com/calendar/ical/{calendar_id}/public/basic.ics"
GOOGLE_EVENTS_URL = "https://www.googleapis.com/calendar/v3/calendars/{calendar_id}/events"
CACHE_CONTROL = "public, max-age=900"

_ICS_URL_RE = re.compile(r"^https?://.*\.ics(\?.*)?$", re.IGNORECASE)
_CALENDARS_PATH_RE = re.compile(r"/calendars/([^/]+)/")


def _src_param(value: str) -> str:
    try:
        parsed = urlparse(value)
    except ValueError:
        return ""
    if not parsed.scheme or not parsed.netloc:
        return ""
    return parse_qs(parsed.query).get("src", [""])[0]


def extract_calendar_id(value: str) -> str:
    """Best-effort calendar id from a bare id, an embed URL or an API URL."""
    value = (value or "").strip()
    if not value:
        return ""
    if "@" in value and not value.startswith("http"):
        return value

    src = _src_param(value)
    if src:
        return src

    match = _CALENDARS_PATH_RE.search(urlparse(value).path)
    if match:
        return unquote(match.group(1))
    return value


def get_ics_url(value: str) -> str:
    """Public ICS URL for a calendar link or id, or "" when none can be derived."""
    value = (value or "").strip()
    if not value:
        return ""
    if _ICS_URL_RE.match(value):
        return value

    src = _src_param(value)
    if src:
        return GOOGLE_ICS_URL.format(calendar_id=quote(src, safe=""))
    if "@" in value:
        return GOOGLE_ICS_URL.format(calendar_id=quote(value, safe=""))
    return ""


def _to_datetime(value) -> datetime | None:
    """Coerce ICS/API start and end values to aware datetimes (UTC when floating)."""
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = date_parser.isoparse(value)
        except ValueError:
            return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)
    return None


def parse_ics_events(content: bytes) -> list[CalendarEvent]:
    """Parse VEVENTs from an ICS document, skipping events without a start."""
    calendar = Calendar.from_ical(content)
    events = []
    for index, component in enumerate(calendar.walk("VEVENT")):
        dtstart = component.get("DTSTART")
        start = _to_datetime(dtstart.dt if dtstart is not None else None)
        if start is None:
            continue
        dtend = component.get("DTEND")
        end = _to_datetime(dtend.dt if dtend is not None else None) or start
        summary = str(component.get("SUMMARY", "")) or "No title"
        events.append(
            CalendarEvent(
                id=str(component.get("UID", "")) or f"{summary}-{index}",
                summary=summary,
                description=str(component.get("DESCRIPTION", "")),
                start=start,
                end=end,
                html_link=str(component.get("URL", "")),
            )
        )
    return events


def parse_api_events(payload: dict) -> list[CalendarEvent]:
    """Translate a Calendar v3 events response into CalendarEvents.

    Raises:
        ValueError: If the payload or one of its items is not an object
    """
    if not isinstance(payload, dict):
        raise ValueError("Unexpected calendar events payload")
    items = payload.get("items") or []
    if not isinstance(items, list):
        raise ValueError("Unexpected calendar events payload")

    events = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValueError(f"Unexpected calendar event at index {index}")
        start_field = item.get("start") or {}
        end_field = item.get("end") or {}
        if not isinstance(start_field, dict) or not isinstance(end_field, dict):
            raise ValueError(f"Unexpected calendar event at index {index}")
        start = _to_datetime(start_field.get("dateTime") or start_field.get("date"))
        if start is None:
            continue
        end = _to_datetime(end_field.get("dateTime") or end_field.get("date")) or start
        summary = item.get("summary") or "No title"
        events.append(
            CalendarEvent(
                id=item.get("id") or f"{summary}-{index}",
                summary=summary,
                description=item.get("description") or "",
                start=start,
                end=end,
                html_link=item.get("htmlLink") or "",
            )
        )
    return events


def within_window(events: list[CalendarEvent], now: datetime, horizon: datetime) -> list[CalendarEvent]:
    return [event for event in events if now <= event.start <= horizon]


def normalize_events(events: list[CalendarEvent], limit: int = 20) -> list[dict]:
    """Sort by start time ascending, cap at ``limit`` and serialize."""
    ordered = sorted(events, key=lambda event: event.start)
    return [event.to_dict() for event in ordered[:limit]]


def handle_calendar(
    request: Request,
    client: UpstreamClient,
    config: CalendarConfig,
    clock=time.time,
) -> Response:
    logger = create_request_logger("calendar", request.request_id)
    raw_input = request.param("calendarLink") or config.default_calendar.strip()
    now = datetime.fromtimestamp(clock(), UTC)
    horizon = now + timedelta(days=config.horizon_days)

    try:
        ics_url = get_ics_url(raw_input)
        if ics_url:
            content = client.get_bytes("calendar-ics", ics_url)
            events = within_window(parse_ics_events(content), now, horizon)
            body = normalize_events(events, config.max_events)
            logger.info("Calendar served from ICS", event_count=len(body))
            return json_response(
                {"source": "ics", "events": body, "count": len(body)},
                cache_control=CACHE_CONTROL,
            )

        if not config.api_key:
            return json_response(
                {
                    "error": "Calendar not configured",
                    "message": "Provide a public calendar link/ID in Settings "
                    "or set GOOGLE_CALENDAR_API_KEY",
                    "events": [],
                }
            )

        calendar_id = extract_calendar_id(raw_input) or "primary"
        payload = client.get_json(
            "calendar-api",
            GOOGLE_EVENTS_URL.format(calendar_id=quote(calendar_id, safe="")),
            params={
                "key": config.api_key,
                "timeMin": now.isoformat().replace("+00:00", "Z"),
                "timeMax": horizon.isoformat().replace("+00:00", "Z"),
                "singleEvents": "true",
                "orderBy": "startTime",
                "maxResults": str(config.max_events),
            },
        )
        body = normalize_events(parse_api_events(payload), config.max_events)
        logger.info("Calendar served from Google API", event_count=len(body))
        return json_response(
            {"source": "google-api", "events": body, "count": len(body)},
            cache_control=CACHE_CONTROL,
        )
    except (UpstreamError, ValueError) as e:
        logger.error(f"Calendar fetch failed: {e}", error=str(e))
        return json_response(
            {"error": "Failed to fetch calendar events", "message": str(e), "events": []}
        )
