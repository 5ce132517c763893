"""
General web news search - SearXNG → DuckDuckGo fallback chain.

Serves literal keyword queries, AI-expanded phrases and company queries
(scoped with a `site:` operator). Engines only understand coarse time
ranges (day/week/month), so the normalizer re-applies the exact window.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator

from biowatch.config import get_settings
from biowatch.schemas import PlannedQuery, QueryKind, RawRecord, TimeWindow

from .base import BaseFetcher
from .searxng_search import SearXNGSearch

logger = logging.getLogger(__name__)

# DuckDuckGo news only knows d/w/m; anything longer is unfiltered
_DDG_TIMELIMIT = {"day": "d", "week": "w", "month": "m"}


def scoped_query_text(query: PlannedQuery) -> str:
    """Query text as sent to a web engine: company queries are site-scoped."""
    if query.kind == QueryKind.COMPANY and query.domain:
        return f'"{query.text}" site:{query.domain}' if query.text else f"site:{query.domain}"
    return query.text


class WebSearchFetcher(BaseFetcher):
    """
    Priority chain (configured via .env):
    1. SearXNG     - self-hosted, news category, no rate limits
    2. DuckDuckGo  - free, fragile (blocks after bursts), last resort

    Usage:
        fetcher = WebSearchFetcher()
        async for record in fetcher.fetch(query, window):
            ...
    """

    name = "web"
    kinds = frozenset({QueryKind.KEYWORD, QueryKind.EXPANDED, QueryKind.COMPANY})

    def __init__(
        self,
        searxng: SearXNGSearch | None = None,
        searxng_enabled: bool | None = None,
        use_ddg: bool | None = None,
        max_results: int | None = None,
    ):
        s = get_settings()
        self._searxng_enabled = s.searxng_enabled if searxng_enabled is None else searxng_enabled
        self._searxng = searxng or SearXNGSearch(s.searxng_url)
        self._use_ddg = s.use_ddg if use_ddg is None else use_ddg
        self._max_results = max_results or s.max_results_per_query
        self._mock_mode = s.mock_mode

    @property
    def enabled(self) -> bool:
        return not self._mock_mode and (self._searxng_enabled or self._use_ddg)

    async def fetch(self, query: PlannedQuery, window: TimeWindow) -> AsyncIterator[RawRecord]:
        text = scoped_query_text(query)
        time_range = window.upstream_range

        # 1. SearXNG (self-hosted, no rate limits)
        if self._searxng_enabled and await self._searxng.is_available():
            data = await self._searxng.news_search(text, max_results=self._max_results, time_range=time_range)
            results = data.get("results", [])
            if results:
                logger.info(f"SearXNG returned {len(results)} results for '{text[:40]}'")
                for r in results:
                    yield RawRecord(
                        title=r.get("title", ""),
                        url=r.get("url", ""),
                        published_at=r.get("published_date"),
                        source_name="",
                        summary=r.get("content", ""),
                        fetcher=self.name,
                        metadata={"engine": r.get("engine", "searxng"), "query": text},
                    )
                return

        # 2. DuckDuckGo (last resort - fragile, no auth needed)
        if self._use_ddg:
            rows = await asyncio.to_thread(self._ddg_news, text, _DDG_TIMELIMIT.get(time_range))
            logger.info(f"DDG returned {len(rows)} results for '{text[:40]}'")
            for r in rows:
                yield RawRecord(
                    title=r.get("title", ""),
                    url=r.get("url", ""),
                    published_at=r.get("date"),
                    source_name=r.get("source", ""),
                    summary=r.get("body", ""),
                    fetcher=self.name,
                    metadata={"engine": "ddg", "query": text},
                )

    def _ddg_news(self, text: str, timelimit: str | None) -> list[dict[str, Any]]:
        from duckduckgo_search import DDGS

        with DDGS() as ddgs:
            return list(ddgs.news(text, timelimit=timelimit, max_results=self._max_results) or [])
