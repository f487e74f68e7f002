"""News-feed adapter.

Fetches RSS feeds concurrently, drops subscription-only publishers,
deduplicates by exact title across feeds, and keeps the newest articles.
"""

import asyncio
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import List, Optional, Sequence, Tuple
from urllib.parse import quote

from ..errors import DataAcquisitionError, MalformedPayload
from ..records import NewsArticle
from ..retry import RetryExecutor, Sleep
from .base import BaseDataSource, Clock, DatasetKey, SourceError, SourceResult

logger = logging.getLogger(__name__)

TICKER_FEED_URL = "https://finance.yahoo.com/rss/headline?s={ticker}"
DEFAULT_SOURCE = "Yahoo Finance"


@dataclass(frozen=True)
class FeedSpec:
    """One RSS feed; ``topic`` feeds are keyword-filtered, ticker feeds are not."""
    url: str
    topic: bool = False

    @classmethod
    def for_ticker(cls, ticker: str) -> "FeedSpec":
        return cls(url=TICKER_FEED_URL.format(ticker=quote(ticker, safe="")))


@dataclass(frozen=True)
class FeedItem:
    title: str
    link: str
    pub_date: str
    source: str


def parse_feed(xml_text: str) -> List[FeedItem]:
    """Parse RSS ``<item>`` elements; items without a title or link are skipped.

    Raises:
        MalformedPayload: if the body is not well-formed XML.
    """
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise MalformedPayload(f"Feed is not valid XML: {e}") from e

    items: List[FeedItem] = []
    for item in root.iter("item"):
        title = (item.findtext("title") or "").strip()
        link = (item.findtext("link") or "").strip()
        if not title or not link:
            continue
        items.append(FeedItem(
            title=title,
            link=link,
            pub_date=(item.findtext("pubDate") or "").strip(),
            source=(item.findtext("source") or "").strip() or DEFAULT_SOURCE,
        ))
    return items


def parse_published(value: str, default: datetime) -> datetime:
    """RFC 822 date to an aware datetime; unparseable or empty yields ``default``."""
    if not value:
        return default
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return default
    if parsed is None:
        return default
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_blocked(source: str, url: str, blocked_sources: Sequence[str]) -> bool:
    lower_source = source.lower()
    lower_url = url.lower()
    return any(b in lower_source or b in lower_url for b in blocked_sources)


def matches_keywords(title: str, keywords: Sequence[str]) -> bool:
    lower_title = title.lower()
    return any(keyword in lower_title for keyword in keywords)


def dedupe_by_title(articles: Sequence[NewsArticle]) -> List[NewsArticle]:
    """Keep the first article seen for each exact (case-sensitive) title."""
    seen = set()
    unique: List[NewsArticle] = []
    for article in articles:
        if article.title in seen:
            continue
        seen.add(article.title)
        unique.append(article)
    return unique


class NewsSource(BaseDataSource):
    """Aggregate headlines from ticker feeds and optional topic feeds."""

    dataset = DatasetKey.NEWS

    def __init__(
        self,
        executor: RetryExecutor,
        tickers: Sequence[str] = (),
        topic_feeds: Sequence[str] = (),
        blocked_sources: Sequence[str] = (),
        keywords: Sequence[str] = (),
        max_articles: int = 25,
        ticker_article_limit: int = 5,
        sleep: Optional[Sleep] = None,
        now: Optional[Clock] = None,
    ):
        super().__init__(executor, sleep=sleep, now=now)
        self.feeds: Tuple[FeedSpec, ...] = tuple(
            [FeedSpec.for_ticker(t) for t in tickers] + [FeedSpec(url=u, topic=True) for u in topic_feeds]
        )
        self.blocked_sources = tuple(b.lower() for b in blocked_sources)
        self.keywords = tuple(k.lower() for k in keywords)
        self.max_articles = max_articles
        self.ticker_article_limit = ticker_article_limit

    async def fetch_all(self) -> SourceResult:
        results = await asyncio.gather(*(self._fetch_feed(feed) for feed in self.feeds))

        collected: List[NewsArticle] = []
        errors: List[SourceError] = []
        for articles, error in results:
            collected.extend(articles)
            if error is not None:
                errors.append(error)

        unique = dedupe_by_title(collected)
        unique.sort(key=lambda a: a.published_at, reverse=True)
        articles = tuple(unique[:self.max_articles])
        logger.info(f"Collected {len(articles)} news articles from {len(self.feeds)} feed(s)")
        return SourceResult(dataset=self.dataset, records=articles, errors=tuple(errors))

    async def fetch_ticker_news(self, ticker: str) -> List[NewsArticle]:
        """Keyword-matching, non-blocked headlines for one ticker.

        Returns an empty list if the feed cannot be fetched.
        """
        feed = FeedSpec.for_ticker(ticker)
        articles, _ = await self._fetch_feed(feed)
        matching = [a for a in articles if matches_keywords(a.title, self.keywords)]
        return dedupe_by_title(matching)[:self.ticker_article_limit]

    def fallback_records(self) -> Tuple[NewsArticle, ...]:
        return ()

    async def _fetch_feed(self, feed: FeedSpec) -> Tuple[List[NewsArticle], Optional[SourceError]]:
        try:
            items = parse_feed(await self.executor.fetch_text(feed.url))
        except DataAcquisitionError as e:
            logger.error(f"Error fetching news feed {feed.url}: {e}")
            return [], SourceError(resource=feed.url, kind=e.kind, message=str(e))

        fetched_at = self._now()
        articles: List[NewsArticle] = []
        for item in items:
            if is_blocked(item.source, item.link, self.blocked_sources):
                continue
            if feed.topic and not matches_keywords(item.title, self.keywords):
                continue
            articles.append(NewsArticle(
                title=item.title,
                url=item.link,
                source=item.source,
                published_at=parse_published(item.pub_date, fetched_at),
            ))
        return articles, None
