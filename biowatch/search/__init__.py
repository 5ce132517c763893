# Search module - source fetchers and the concurrent runner
from typing import List, Optional

from biowatch.config import Settings, get_settings

from .base import BaseFetcher
from .searxng_search import SearXNGSearch
from .web_search import WebSearchFetcher
from .company_feed import CompanyFeedFetcher
from .ai_search import AISearchFetcher
from .runner import FetchOutcome, FetchRunner


def build_default_fetchers(settings: Optional[Settings] = None) -> List[BaseFetcher]:
    """One adapter per source class, in a fixed order."""
    settings = settings or get_settings()
    return [
        WebSearchFetcher(
            searxng=SearXNGSearch(settings.searxng_url),
            searxng_enabled=settings.searxng_enabled,
            use_ddg=settings.use_ddg,
            max_results=settings.max_results_per_query,
        ),
        CompanyFeedFetcher(
            google_news_fallback=settings.google_news_fallback,
            max_results=settings.max_results_per_query,
        ),
        AISearchFetcher(max_results=settings.max_results_per_query),
    ]


__all__ = [
    "BaseFetcher",
    "SearXNGSearch",
    "WebSearchFetcher",
    "CompanyFeedFetcher",
    "AISearchFetcher",
    "FetchOutcome",
    "FetchRunner",
    "build_default_fetchers",
]
