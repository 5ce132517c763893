"""
Shared fixtures for the biowatch test modules.

Every test runs against a clean, offline configuration: no LLM provider,
no Tavily, no SearXNG, no DuckDuckGo. Fetchers are replaced by FakeFetcher
instances that replay canned RawRecords.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from biowatch.config import get_settings
from biowatch.schemas import RawRecord
from biowatch.search.base import BaseFetcher

NOW = datetime(2025, 10, 15, 12, 0, tzinfo=timezone.utc)

_OFFLINE_ENV = {
    "OPENAI_API_KEY": "",
    "OPENROUTER_API_KEY": "",
    "USE_OLLAMA": "false",
    "TAVILY_ENABLED": "false",
    "TAVILY_API_KEYS": "",
    "SEARXNG_ENABLED": "false",
    "USE_DDG": "false",
    "MOCK_MODE": "false",
    "AI_EXPANSION_ENABLED": "true",
    "DEDUP_FOLD_TITLES": "true",
    "SEARCH_DEADLINE_SECONDS": "55",
    "FETCH_TIMEOUT": "15",
    "FETCH_CONCURRENCY": "6",
}


@pytest.fixture(autouse=True)
def offline_settings(monkeypatch):
    for key, value in _OFFLINE_ENV.items():
        monkeypatch.setenv(key, value)
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


class FakeFetcher(BaseFetcher):
    """Replays records produced by `handler(query, window)`; may sleep or raise."""

    def __init__(self, name, kinds, handler, delay=0.0):
        self.name = name
        self.kinds = frozenset(kinds)
        self.handler = handler
        self.delay = delay
        self.calls = []

    async def fetch(self, query, window):
        self.calls.append(query)
        delay = self.delay(query) if callable(self.delay) else self.delay
        if delay:
            await asyncio.sleep(delay)
        for record in self.handler(query, window):
            yield record


class FakeExpander:
    """Stands in for KeywordExpander: phrases per keyword, or raise/hang."""

    def __init__(self, phrases=None, error=None, delay=0.0, max_phrases=3):
        self.phrases = phrases or {}
        self.error = error
        self.delay = delay
        self.max_phrases = max_phrases
        self.available = True
        self.calls = []

    async def expand(self, keyword):
        self.calls.append(keyword)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.phrases.get(keyword, []))


def make_record(title, url, days_ago=2.0, fetcher="fake", **kwargs):
    published = kwargs.pop("published_at", NOW - timedelta(days=days_ago))
    kwargs.setdefault("fetched_at", NOW)
    return RawRecord(title=title, url=url, published_at=published, fetcher=fetcher, **kwargs)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def fake_fetcher():
    return FakeFetcher


@pytest.fixture
def fake_expander():
    return FakeExpander


@pytest.fixture
def record():
    return make_record
