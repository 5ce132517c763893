"""
Fetcher capability shared by every source adapter.

A fetcher turns one PlannedQuery into a lazy, single-pass stream of
RawRecords. It never needs to catch its own network errors: the
FetchRunner isolates each (fetcher, query) pair, applies the timeout and
logs failures.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import AsyncIterator, FrozenSet

from biowatch.schemas import PlannedQuery, QueryKind, RawRecord, TimeWindow

logger = logging.getLogger(__name__)


class BaseFetcher(ABC):
    """
    One adapter per source class.

    EXTENSIBILITY: To add a new source:
    1. Subclass BaseFetcher, set `name` and the `kinds` of query it serves
    2. Implement `fetch` as an async generator yielding RawRecord
    3. Add it to build_default_fetchers() in biowatch.search
    """

    name: str = "base"
    kinds: FrozenSet[QueryKind] = frozenset()

    @property
    def enabled(self) -> bool:
        return True

    def accepts(self, query: PlannedQuery) -> bool:
        return self.enabled and query.kind in self.kinds

    @abstractmethod
    def fetch(self, query: PlannedQuery, window: TimeWindow) -> AsyncIterator[RawRecord]:
        """Yield raw records for `query`. Implementations are async generators."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r} enabled={self.enabled}>"
