"""
AI search fetcher - Tavily news search for keyword and expanded queries.
"""
from __future__ import annotations

import logging
from typing import AsyncIterator, Optional

from biowatch.config import get_settings
from biowatch.schemas import PlannedQuery, QueryKind, RawRecord, TimeWindow
from biowatch.tools.tavily_tool import TavilyTool

from .base import BaseFetcher

logger = logging.getLogger(__name__)


class AISearchFetcher(BaseFetcher):
    """Tavily `topic="news"` search. Yields nothing when Tavily is off."""

    name = "ai_search"
    kinds = frozenset({QueryKind.KEYWORD, QueryKind.EXPANDED})

    def __init__(self, tavily: Optional[TavilyTool] = None, max_results: Optional[int] = None):
        self.tavily = tavily or TavilyTool()
        self._max_results = max_results or get_settings().max_results_per_query

    @property
    def enabled(self) -> bool:
        return self.tavily.available

    async def fetch(self, query: PlannedQuery, window: TimeWindow) -> AsyncIterator[RawRecord]:
        if not self.tavily.available:
            logger.debug(f"Tavily unavailable, skipping '{query.text[:40]}'")
            return

        data = await self.tavily.news_search(
            query.text,
            time_range=window.upstream_range,
            max_results=self._max_results,
        )
        if data.get("error"):
            logger.warning(f"Tavily search failed for '{query.text[:40]}': {data['error']}")

        for r in data.get("results", []):
            yield RawRecord(
                title=r.get("title", ""),
                url=r.get("url", ""),
                published_at=r.get("published_date"),
                summary=r.get("content", ""),
                body_text=r.get("raw_content") or "",
                fetcher=self.name,
                metadata={"score": r.get("score"), "query": query.text},
            )
