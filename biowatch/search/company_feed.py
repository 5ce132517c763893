"""
Company watch-target fetcher: newsroom feed → discovered feed → Google News.

A target's seed URL may be an RSS/Atom feed, an HTML newsroom page that
advertises its feed via <link rel="alternate">, or a plain homepage. When
no feed can be found the domain is searched through Google News RSS with
the window expressed as an upstream date operator.
"""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import AsyncIterator, List, Optional
from urllib.parse import quote_plus, urljoin

import feedparser
import httpx
from bs4 import BeautifulSoup

from biowatch.config import get_settings
from biowatch.schemas import PlannedQuery, QueryKind, RawRecord, TimeWindow

from .base import BaseFetcher

logger = logging.getLogger(__name__)

GOOGLE_NEWS_RSS = "https://news.google.com/rss/search"

_FEED_TYPES = ("application/rss+xml", "application/atom+xml", "application/rdf+xml", "application/feed+json")


def google_news_query(domain: str, window: TimeWindow) -> str:
    """`site:` query with the narrowest date operator Google News supports."""
    if window.preset is not None:
        return f"site:{domain} when:{window.lookback_days}d"
    # before: is exclusive, so push it one day past the window end
    after = window.start.strftime("%Y-%m-%d")
    before = (window.end + timedelta(days=1)).strftime("%Y-%m-%d")
    return f"site:{domain} after:{after} before:{before}"


def discover_feed_links(html_text: str, page_url: str) -> List[str]:
    """Feed URLs advertised by an HTML page, absolute, in document order."""
    soup = BeautifulSoup(html_text, "html.parser")
    links = []
    for tag in soup.find_all("link", attrs={"rel": "alternate"}):
        kind = (tag.get("type") or "").lower()
        href = tag.get("href")
        if href and kind in _FEED_TYPES:
            absolute = urljoin(page_url, href)
            if absolute not in links:
                links.append(absolute)
    return links


class CompanyFeedFetcher(BaseFetcher):
    """Reads a company target's own feed, falling back to Google News RSS."""

    name = "company_feed"
    kinds = frozenset({QueryKind.COMPANY})

    def __init__(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        google_news_fallback: Optional[bool] = None,
        max_results: Optional[int] = None,
    ):
        s = get_settings()
        self._transport = transport
        self._enabled = s.company_feeds_enabled and not s.mock_mode
        self._google_news = s.google_news_fallback if google_news_fallback is None else google_news_fallback
        self._locale = s.google_news_locale
        self._max_results = max_results or s.max_results_per_query
        self._headers = {"User-Agent": s.user_agent}
        self._timeout = s.fetch_timeout

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def fetch(self, query: PlannedQuery, window: TimeWindow) -> AsyncIterator[RawRecord]:
        async with httpx.AsyncClient(
            timeout=self._timeout,
            transport=self._transport,
            headers=self._headers,
            follow_redirects=True,
        ) as client:
            entries = []
            if query.seed_url:
                entries = await self._from_seed(client, query.seed_url)

            if entries:
                for entry in entries[: self._max_results]:
                    yield self._to_record(entry, query, time_filtered=False)
                return

            if not (self._google_news and query.domain):
                logger.debug(f"No feed for {query.seed_url} and Google News fallback unavailable")
                return

            q = google_news_query(query.domain, window)
            url = f"{GOOGLE_NEWS_RSS}?q={quote_plus(q)}&{self._locale}"
            response = await client.get(url)
            response.raise_for_status()
            feed = feedparser.parse(response.text)
            logger.info(f"Google News returned {len(feed.entries)} entries for '{q}'")
            for entry in feed.entries[: self._max_results]:
                yield self._to_record(entry, query, time_filtered=True, via="google_news")

    async def _from_seed(self, client: httpx.AsyncClient, seed_url: str) -> list:
        """Entries of the seed feed, or of the first feed an HTML seed advertises."""
        try:
            response = await client.get(seed_url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Seed URL {seed_url} unreachable: {e}")
            return []

        feed = feedparser.parse(response.text)
        if feed.version and feed.entries:
            logger.info(f"Seed {seed_url} is a feed ({len(feed.entries)} entries)")
            return list(feed.entries)

        for feed_url in discover_feed_links(response.text, str(response.url)):
            try:
                linked = await client.get(feed_url)
                linked.raise_for_status()
            except httpx.HTTPError as e:
                logger.debug(f"Advertised feed {feed_url} failed: {e}")
                continue
            feed = feedparser.parse(linked.text)
            if feed.entries:
                logger.info(f"Discovered feed {feed_url} ({len(feed.entries)} entries)")
                return list(feed.entries)
        return []

    def _to_record(self, entry, query: PlannedQuery, time_filtered: bool, via: str = "feed") -> RawRecord:
        source = entry.get("source") or {}
        source_name = source.get("title", "") if via == "google_news" else query.text
        return RawRecord(
            title=entry.get("title", ""),
            url=entry.get("link", ""),
            published_at=(
                entry.get("published_parsed")
                or entry.get("updated_parsed")
                or entry.get("published")
                or entry.get("updated")
            ),
            source_name=source_name,
            summary=entry.get("summary", "") or entry.get("description", ""),
            fetcher=self.name,
            time_filtered=time_filtered,
            metadata={"via": via, "seed_url": query.seed_url},
        )
