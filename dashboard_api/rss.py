"""RSS feed processing for the news summary endpoint."""

from datetime import UTC, datetime
from urllib.parse import urlparse

import feedparser
import requests
from bs4 import BeautifulSoup
from dateutil import parser as date_parser

from .logging_config import create_request_logger
from .models import FeedItem
from .upstream import USER_AGENT


class FeedError(Exception):
    """The feed could not be downloaded or parsed."""


class FeedProcessor:
    """Downloads one RSS feed and normalizes its entries."""

    def __init__(self, timeout: int = 30, request_id: str | None = None):
        """Initialize FeedProcessor with configuration.

        Args:
            timeout: HTTP request timeout in seconds
            request_id: Request ID for logging context
        """
        self.timeout = timeout
        self.logger = create_request_logger("feed_processor", request_id)
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT})

    def parse_feed(self, feed_url: str) -> list[FeedItem]:
        """Download and parse a feed.

        Args:
            feed_url: URL of the RSS/Atom feed

        Returns:
            FeedItem objects in feed order

        Raises:
            ValueError: If feed URL is not HTTPS
            FeedError: If the download fails or the document is not a feed
        """
        parsed_url = urlparse(feed_url)
        if parsed_url.scheme != "https":
            error_msg = f"Feed URL must use HTTPS protocol: {feed_url}"
            self.logger.error(error_msg, feed_url=feed_url, scheme=parsed_url.scheme)
            raise ValueError(error_msg)

        try:
            response = self.session.get(feed_url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            self.logger.error(
                f"Failed to download feed {feed_url}: {e}", feed_url=feed_url, error=str(e)
            )
            raise FeedError(f"Failed to download feed: {e}") from e

        feed = feedparser.parse(response.content)

        if feed.bozo and not feed.entries:
            reason = getattr(feed, "bozo_exception", "unknown error")
            self.logger.error(
                f"Feed could not be parsed: {reason}", feed_url=feed_url, bozo_exception=str(reason)
            )
            raise FeedError(f"Feed could not be parsed: {reason}")

        if feed.bozo:
            self.logger.warning(
                f"Feed parsing warning for {feed_url}: {feed.get('bozo_exception')}",
                feed_url=feed_url,
            )

        items = []
        for entry in feed.entries:
            try:
                items.append(self.normalize_item(entry, feed_url))
            except ValueError as e:
                self.logger.warning(
                    f"Skipping feed entry: {e}", feed_url=feed_url, error=str(e)
                )

        self.logger.info(
            "Parsed feed",
            feed_url=feed_url,
            items_count=len(items),
            total_entries=len(feed.entries),
        )
        return items

    def normalize_item(self, raw_item, feed_url: str) -> FeedItem:
        """Normalize a raw feedparser entry into a FeedItem.

        Raises:
            ValueError: If the entry has neither a guid nor a link
        """
        title = (getattr(raw_item, "title", None) or "").strip()
        link = (getattr(raw_item, "link", None) or "").strip()

        # feedparser exposes <guid> as ``id``
        guid = getattr(raw_item, "id", None) or getattr(raw_item, "guid", None) or link
        if not guid:
            raise ValueError(f"Entry without guid or link: {title!r}")

        published = self._parse_published(getattr(raw_item, "published", None))

        description = ""
        if getattr(raw_item, "summary", None):
            description = raw_item.summary
        elif getattr(raw_item, "description", None):
            description = raw_item.description

        categories = []
        for tag in getattr(raw_item, "tags", None) or []:
            term = tag.get("term") if isinstance(tag, dict) else getattr(tag, "term", None)
            if term:
                categories.append(term.strip())

        return FeedItem(
            guid=str(guid),
            title=title,
            link=link,
            published=published,
            description=self.clean_html_content(description),
            categories=categories,
            feed_url=feed_url,
        )

    def _parse_published(self, published_str: str | None) -> datetime:
        if not published_str:
            return datetime.now(UTC)
        try:
            published = date_parser.parse(published_str)
        except (ValueError, TypeError, OverflowError):
            return datetime.now(UTC)
        if published.tzinfo is None:
            published = published.replace(tzinfo=UTC)
        return published

    def clean_html_content(self, content: str | None) -> str:
        """Remove HTML tags from content and normalize whitespace."""
        if not content:
            return ""

        if "<" in content or ">" in content:
            soup = BeautifulSoup(content, "html.parser")
            for script in soup(["script", "style"]):
                script.decompose()
            content = soup.get_text(separator=" ")

        return " ".join(content.split())


def filter_by_categories(items: list[FeedItem], allowed: list[str]) -> list[FeedItem]:
    """Keep items with at least one category in ``allowed``, compared case-insensitively."""
    allowed_lower = {category.lower() for category in allowed}
    return [
        item
        for item in items
        if any(category.lower() in allowed_lower for category in item.categories)
    ]
