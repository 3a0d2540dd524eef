"""News summary cache: RSS feed, category filter, per-guid summaries."""

import time
from datetime import UTC, datetime
from typing import Any

from .cache import CacheStore, Clock
from .config import NewsConfig
from .logging_config import create_request_logger
from .models import FeedItem, Summary
from .responses import Response, json_response
from .rss import FeedError, FeedProcessor, filter_by_categories
from .summarize import PLACEHOLDER_SUMMARY, Summarizer, SummarizerNotConfigured

BATCH_KEY = "news:batch"
ITEM_KEY_PREFIX = "news:item:"
CACHE_CONTROL = "s-maxage=300, stale-while-revalidate=600"


class NewsSummaryService:
    """Serves the latest categorized headlines with short generated summaries.

    The ordered batch returned to clients is cached for ``ttl_seconds``.
    Summaries are cached per guid for as long as the store keeps them and are
    never overwritten, so only articles that are new to the feed window cost
    an LLM call.
    """

    def __init__(
        self,
        config: NewsConfig,
        store: CacheStore,
        feed_processor: FeedProcessor,
        summarizer: Summarizer,
        clock: Clock = time.time,
    ):
        self.config = config
        self.store = store
        self.feed_processor = feed_processor
        self.summarizer = summarizer
        self.clock = clock
        self.last_run: dict[str, Any] = {}

    def get_summaries(self, request_id: str | None = None) -> Response:
        logger = create_request_logger("news", request_id)
        now = self.clock()
        cached = self.store.get(BATCH_KEY)

        if not self.summarizer.is_configured:
            logger.warning("Summarizer not configured, serving cached data only")
            self.last_run = {"cache_hit": cached is not None}
            if cached is not None:
                return self._respond(
                    {"source": "cache", "cached": True, "summaries": cached.value["summaries"]}
                )
            return self._respond(
                {"source": "none", "summaries": [], "message": "News summaries not configured"}
            )

        if cached is not None and cached.age(now) < self.config.ttl_seconds:
            logger.info("Serving news summaries from cache", age_seconds=int(cached.age(now)))
            self.last_run = {"cache_hit": True}
            return self._respond({"source": "cache", "summaries": cached.value["summaries"]})

        try:
            items = self.feed_processor.parse_feed(self.config.feed_url)
        except (FeedError, ValueError) as e:
            logger.error(f"News feed failed: {e}", feed_url=self.config.feed_url, error=str(e))
            self.last_run = {"cache_hit": False, "errors": 1}
            return json_response(
                {"error": "Failed to summarize news feed", "message": str(e)}, status_code=500
            )

        selected = filter_by_categories(items, self.config.categories)[: self.config.max_items]
        known, new = self._partition(selected)
        logger.info(
            "Selected news items",
            items_found=len(items),
            items_selected=len(selected),
            items_cached=len(known),
            items_new=len(new),
        )

        try:
            texts = self.summarizer.summarize_many(new)
        except SummarizerNotConfigured as e:
            # Provider went away between the check above and the call
            logger.warning(f"Summarizer unavailable: {e}")
            texts = [None] * len(new)

        summarized = 0
        for item, text in zip(new, texts):
            if text is None:
                known[item.guid] = Summary.from_item(item, PLACEHOLDER_SUMMARY).to_dict()
                continue
            summary = Summary.from_item(item, text).to_dict()
            self.store.put(ITEM_KEY_PREFIX + item.guid, summary, stored_at=now)
            known[item.guid] = summary
            summarized += 1

        ordered = [known[item.guid] for item in selected]
        updated = datetime.fromtimestamp(now, UTC).isoformat()
        self.store.put(BATCH_KEY, {"summaries": ordered, "updated": updated}, stored_at=now)

        self.last_run = {
            "cache_hit": False,
            "items_found": len(items),
            "items_summarized": summarized,
            "items_failed": len(new) - summarized,
        }
        logger.log_metrics(self.last_run)
        return self._respond({"source": "fresh", "updated": updated, "summaries": ordered})

    def _partition(self, items: list[FeedItem]) -> tuple[dict[str, dict], list[FeedItem]]:
        """Split items into already-summarized (by guid) and new ones."""
        known: dict[str, dict] = {}
        new: list[FeedItem] = []
        new_guids: set[str] = set()
        for item in items:
            if item.guid in known or item.guid in new_guids:
                continue
            record = self.store.get(ITEM_KEY_PREFIX + item.guid)
            if record is not None:
                known[item.guid] = record.value
            else:
                new.append(item)
                new_guids.add(item.guid)
        return known, new

    @staticmethod
    def _respond(body: dict[str, Any]) -> Response:
        return json_response(body, cache_control=CACHE_CONTROL)
