"""Property-based tests for the news summary service."""

from datetime import UTC, datetime
from unittest.mock import Mock

from hypothesis import given, settings
from hypothesis import strategies as st

from dashboard_api.cache import MemoryStore
from dashboard_api.config import DEFAULT_NEWS_CATEGORIES, NewsConfig
from dashboard_api.models import FeedItem
from dashboard_api.news import NewsSummaryService

CATEGORY_POOL = DEFAULT_NEWS_CATEGORIES + ["Sport", "Underholdning", "Rampelys"]


class FakeClock:
    def __init__(self):
        self.now = 1_760_000_000.0

    def __call__(self):
        return self.now


feed_items = st.lists(
    st.tuples(
        st.integers(min_value=0, max_value=30),
        st.lists(st.sampled_from(CATEGORY_POOL), max_size=3),
    ),
    max_size=25,
).map(
    lambda rows: [
        FeedItem(
            guid=f"guid-{guid}",
            title=f"Sak {guid}",
            link=f"https://www.vg.no/nyheter/i/{guid}",
            published=datetime(2025, 10, 6, tzinfo=UTC),
            categories=categories,
        )
        for guid, categories in rows
    ]
)


def build_service(items):
    feed_processor = Mock()
    feed_processor.parse_feed.return_value = items
    summarizer = Mock()
    summarizer.is_configured = True
    summarizer.summarize_many.side_effect = lambda batch: [f"S {i.guid}" for i in batch]
    clock = FakeClock()
    service = NewsSummaryService(NewsConfig(), MemoryStore(), feed_processor, summarizer, clock=clock)
    return service, feed_processor, summarizer, clock


def expected_guids(items):
    allowed = {c.lower() for c in DEFAULT_NEWS_CATEGORIES}
    matching = [i for i in items if any(c.lower() in allowed for c in i.categories)]
    return [i.guid for i in matching[:5]]


class TestNewsSummaryProperties:
    """Property-based tests for NewsSummaryService."""

    @given(feed_items)
    @settings(max_examples=50)
    def test_batch_is_first_five_matching_in_feed_order(self, items):
        service, _, _, _ = build_service(items)

        response = service.get_summaries()

        assert [s["guid"] for s in response.body["summaries"]] == expected_guids(items)

    @given(feed_items, feed_items)
    @settings(max_examples=50)
    def test_each_guid_is_summarized_at_most_once(self, first_feed, second_feed):
        service, feed_processor, summarizer, clock = build_service(first_feed)

        service.get_summaries()
        feed_processor.parse_feed.return_value = second_feed
        clock.now += service.config.ttl_seconds
        service.get_summaries()

        summarized = [
            item.guid for call in summarizer.summarize_many.call_args_list for item in call[0][0]
        ]
        assert len(summarized) == len(set(summarized))

    @given(feed_items, st.integers(min_value=0, max_value=30 * 60 - 1))
    @settings(max_examples=50)
    def test_repeat_inside_ttl_returns_identical_summaries(self, items, elapsed):
        service, feed_processor, _, clock = build_service(items)

        first = service.get_summaries()
        clock.now += elapsed
        second = service.get_summaries()

        assert second.body["summaries"] == first.body["summaries"]
        assert feed_processor.parse_feed.call_count == 1
