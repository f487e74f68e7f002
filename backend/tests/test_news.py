"""Tests for the news-feed adapter."""

from datetime import datetime, timezone

import pytest

from conftest import FIXED_NOW, FakeTransport
from market_intel.services.errors import ErrorKind, FetchTimeout, MalformedPayload
from market_intel.services.records import NewsArticle
from market_intel.services.retry import HttpResponse
from market_intel.services.sources import NewsSource
from market_intel.services.sources.news import dedupe_by_title, parse_feed, parse_published

KEYWORDS = ("construction", "lumber", "housing")
BLOCKED = ("wsj", "bloomberg")


def rss(*items) -> HttpResponse:
    """Build an RSS body from (title, link, pub_date, source) tuples."""
    parts = []
    for title, link, pub_date, source in items:
        fields = f"<title>{title}</title><link>{link}</link>"
        if pub_date:
            fields += f"<pubDate>{pub_date}</pubDate>"
        if source:
            fields += f"<source>{source}</source>"
        parts.append(f"<item>{fields}</item>")
    body = f'<?xml version="1.0"?><rss version="2.0"><channel>{"".join(parts)}</channel></rss>'
    return HttpResponse(status=200, body=body)


def make_source(make_executor, no_sleep, fixed_now, transport, **kwargs):
    options = dict(
        tickers=("HD", "LOW"),
        blocked_sources=BLOCKED,
        keywords=KEYWORDS,
        max_articles=25,
        ticker_article_limit=5,
    )
    options.update(kwargs)
    return NewsSource(make_executor(transport), sleep=no_sleep, now=fixed_now, **options)


class TestParsing:

    def test_items_without_title_or_link_are_skipped(self):
        items = parse_feed(rss(
            ("Lumber prices ease", "https://news.test/1", "", ""),
            ("", "https://news.test/2", "", ""),
        ).body)
        assert len(items) == 1
        assert items[0].source == "Yahoo Finance"

    def test_invalid_xml(self):
        with pytest.raises(MalformedPayload):
            parse_feed("<rss><channel><item>")

    def test_publish_date(self):
        parsed = parse_published("Mon, 02 Jun 2025 10:00:00 +0000", FIXED_NOW)
        assert parsed == datetime(2025, 6, 2, 10, 0, tzinfo=timezone.utc)

    def test_unparseable_date_defaults_to_fetch_time(self):
        assert parse_published("yesterday-ish", FIXED_NOW) == FIXED_NOW
        assert parse_published("", FIXED_NOW) == FIXED_NOW

    def test_dedupe_is_case_sensitive_and_keeps_first(self):
        a = NewsArticle("Same", "https://a.test", "A", FIXED_NOW)
        b = NewsArticle("Same", "https://b.test", "B", FIXED_NOW)
        c = NewsArticle("same", "https://c.test", "C", FIXED_NOW)
        assert dedupe_by_title([a, b, c]) == [a, c]


class TestNewsSource:

    @pytest.mark.asyncio
    async def test_duplicate_titles_across_feeds_merge(self, make_executor, no_sleep, fixed_now):
        transport = FakeTransport({
            "s=HD": rss(("Housing starts climb", "https://news.test/hd", "Mon, 02 Jun 2025 09:00:00 +0000", "Reuters")),
            "s=LOW": rss(("Housing starts climb", "https://news.test/low", "Mon, 02 Jun 2025 08:00:00 +0000", "AP")),
        })
        source = make_source(make_executor, no_sleep, fixed_now, transport)

        result = await source.fetch_all()

        assert len(result.records) == 1
        assert result.records[0].title == "Housing starts climb"

    @pytest.mark.asyncio
    async def test_sorted_newest_first_and_truncated(self, make_executor, no_sleep, fixed_now):
        transport = FakeTransport({
            "s=HD": rss(
                ("Old", "https://news.test/1", "Sun, 01 Jun 2025 09:00:00 +0000", ""),
                ("Newest", "https://news.test/2", "Mon, 02 Jun 2025 12:00:00 +0000", ""),
            ),
            "s=LOW": rss(("Middle", "https://news.test/3", "Mon, 02 Jun 2025 06:00:00 +0000", "")),
        })
        source = make_source(make_executor, no_sleep, fixed_now, transport, max_articles=2)

        result = await source.fetch_all()

        assert [a.title for a in result.records] == ["Newest", "Middle"]

    @pytest.mark.asyncio
    async def test_blocked_sources_are_dropped(self, make_executor, no_sleep, fixed_now):
        transport = FakeTransport({
            "s=HD": rss(
                ("Paywalled", "https://www.wsj.com/articles/x", "", "Dow Jones"),
                ("Also paywalled", "https://news.test/b", "", "Bloomberg"),
                ("Free", "https://news.test/free", "", "Reuters"),
            ),
            "s=LOW": rss(),
        })
        source = make_source(make_executor, no_sleep, fixed_now, transport)

        result = await source.fetch_all()

        assert [a.title for a in result.records] == ["Free"]

    @pytest.mark.asyncio
    async def test_one_feed_timing_out_keeps_the_other(self, make_executor, no_sleep, fixed_now):
        """A feed exhausting every route does not drop the other feed's items."""
        transport = FakeTransport({
            "s=HD": FetchTimeout("too slow"),
            "s=LOW": rss(
                ("B story", "https://news.test/b", "Mon, 02 Jun 2025 08:00:00 +0000", ""),
                ("A story", "https://news.test/a", "Mon, 02 Jun 2025 09:00:00 +0000", ""),
                ("A story", "https://news.test/a2", "Mon, 02 Jun 2025 07:00:00 +0000", ""),
            ),
        })
        source = make_source(make_executor, no_sleep, fixed_now, transport)

        result = await source.fetch_all()

        assert [a.title for a in result.records] == ["A story", "B story"]
        assert result.records[0].url == "https://news.test/a"
        assert len(result.errors) == 1
        assert result.errors[0].kind == ErrorKind.ROUTE_EXHAUSTED
        assert "s=HD" in result.errors[0].resource

    @pytest.mark.asyncio
    async def test_topic_feeds_are_keyword_filtered(self, make_executor, no_sleep, fixed_now):
        transport = FakeTransport({
            "topics.test": rss(
                ("Lumber futures rally", "https://news.test/l", "", ""),
                ("Celebrity gossip", "https://news.test/g", "", ""),
            ),
            "s=HD": rss(("Quarterly dividend declared", "https://news.test/d", "", "")),
        })
        source = make_source(
            make_executor, no_sleep, fixed_now, transport,
            tickers=("HD",), topic_feeds=("https://topics.test/rss",),
        )

        result = await source.fetch_all()

        assert sorted(a.title for a in result.records) == ["Lumber futures rally", "Quarterly dividend declared"]

    @pytest.mark.asyncio
    async def test_malformed_feed_is_recorded(self, make_executor, no_sleep, fixed_now):
        transport = FakeTransport({
            "s=HD": HttpResponse(status=200, body="<html>oops"),
            "s=LOW": rss(("Housing", "https://news.test/h", "", "")),
        })
        source = make_source(make_executor, no_sleep, fixed_now, transport)

        result = await source.fetch_all()

        assert len(result.records) == 1
        assert result.errors[0].kind == ErrorKind.MALFORMED_PAYLOAD

    @pytest.mark.asyncio
    async def test_ticker_news_is_filtered_and_limited(self, make_executor, no_sleep, fixed_now):
        items = [(f"Construction update {i}", f"https://news.test/{i}", "", "") for i in range(8)]
        items.append(("Unrelated earnings chatter", "https://news.test/x", "", ""))
        transport = FakeTransport({"s=VMC": rss(*items)})
        source = make_source(make_executor, no_sleep, fixed_now, transport)

        articles = await source.fetch_ticker_news("VMC")

        assert len(articles) == 5
        assert all("Construction" in a.title for a in articles)

    @pytest.mark.asyncio
    async def test_ticker_news_failure_is_empty(self, make_executor, no_sleep, fixed_now):
        source = make_source(make_executor, no_sleep, fixed_now, FakeTransport())
        assert await source.fetch_ticker_news("VMC") == []
