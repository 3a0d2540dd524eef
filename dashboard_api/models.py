"""Data models for the dashboard API."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


def _iso(value: datetime) -> str:
    """Render an aware datetime as an ISO-8601 UTC string with a Z suffix."""
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class FeedItem:
    """Represents a single entry from the news RSS feed."""

    guid: str
    title: str
    link: str
    published: datetime
    description: str = ""
    categories: list[str] = field(default_factory=list)
    feed_url: str = ""


@dataclass
class Summary:
    """A feed item paired with its generated summary text."""

    guid: str
    title: str
    link: str
    published: datetime
    description: str
    summary: str

    @classmethod
    def from_item(cls, item: FeedItem, summary: str) -> "Summary":
        return cls(
            guid=item.guid,
            title=item.title,
            link=item.link,
            published=item.published,
            description=item.description,
            summary=summary,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize in the shape the news widget reads."""
        return {
            "guid": self.guid,
            "title": self.title,
            "link": self.link,
            "pubDate": _iso(self.published),
            "description": self.description or None,
            "summary": self.summary,
        }


@dataclass(frozen=True)
class CommandEntry:
    """One row of the static command-of-the-day list."""

    command: str
    description: str
    example: str | None = None

    def to_dict(self) -> dict[str, str]:
        data = {"command": self.command, "description": self.description}
        if self.example:
            data["example"] = self.example
        return data


@dataclass
class CalendarEvent:
    """A calendar event normalized from either ICS or the Calendar API."""

    id: str
    summary: str
    start: datetime
    end: datetime
    description: str = ""
    html_link: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "summary": self.summary,
            "description": self.description,
            "start": {"dateTime": _iso(self.start)},
            "end": {"dateTime": _iso(self.end)},
            "htmlLink": self.html_link,
        }
