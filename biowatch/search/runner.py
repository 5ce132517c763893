"""
Concurrent fan-out of (fetcher, query) pairs.

Every pair where the fetcher accepts the query kind becomes one task. Tasks
share a semaphore (bounded parallelism), each is wrapped in its own hard
timeout, and the whole set is joined against an overall budget. A pair that
fails, times out or is still running when the budget expires contributes no
records; the rest of the run is unaffected.
"""
from __future__ import annotations

import asyncio
import logging
import time
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from biowatch.config import get_settings
from biowatch.schemas import PlannedQuery, RawRecord, TimeWindow

from .base import BaseFetcher

logger = logging.getLogger(__name__)


@dataclass
class FetchOutcome:
    """Result of one (fetcher, query) pair."""
    fetcher: str
    query: PlannedQuery
    records: List[RawRecord] = field(default_factory=list)
    error: Optional[str] = None
    timed_out: bool = False
    cancelled: bool = False
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None and not self.timed_out and not self.cancelled


class FetchRunner:
    """Runs fetchers concurrently with a semaphore, per-fetch timeout and deadline."""

    def __init__(
        self,
        fetchers: Sequence[BaseFetcher],
        concurrency: Optional[int] = None,
        fetch_timeout: Optional[float] = None,
    ):
        s = get_settings()
        self.fetchers = list(fetchers)
        self.concurrency = max(1, concurrency or s.fetch_concurrency)
        self.fetch_timeout = fetch_timeout or s.fetch_timeout

    def pairs(self, queries: Sequence[PlannedQuery]) -> List[tuple]:
        """(fetcher, query) pairs in query order, then fetcher order."""
        return [(f, q) for q in queries for f in self.fetchers if f.accepts(q)]

    async def run(
        self,
        queries: Sequence[PlannedQuery],
        window: TimeWindow,
        budget: Optional[float] = None,
    ) -> List[FetchOutcome]:
        """Fetch everything; return outcomes in pair order.

        Args:
            queries: Planned queries
            window: Resolved time window passed to every fetcher
            budget: Seconds left before the overall deadline (None = wait for all)
        """
        pairs = self.pairs(queries)
        if not pairs:
            logger.info("No fetcher accepts any planned query; nothing to fetch")
            return []

        semaphore = asyncio.Semaphore(self.concurrency)
        tasks = [
            asyncio.create_task(self._run_pair(fetcher, query, window, semaphore))
            for fetcher, query in pairs
        ]

        if budget is not None and budget <= 0:
            done, pending = set(), set(tasks)
        else:
            done, pending = await asyncio.wait(tasks, timeout=budget)

        if pending:
            logger.warning(
                f"[DEADLINE] {len(pending)}/{len(tasks)} fetches still running, cancelling"
            )
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        outcomes = []
        for task, (fetcher, query) in zip(tasks, pairs):
            if task in done and not task.cancelled():
                outcomes.append(task.result())
            else:
                outcomes.append(FetchOutcome(fetcher=fetcher.name, query=query, cancelled=True))

        ok = sum(1 for o in outcomes if o.ok)
        total = sum(len(o.records) for o in outcomes)
        logger.info(f"[FETCH] {ok}/{len(outcomes)} fetches succeeded, {total} raw records")
        return outcomes

    async def _run_pair(
        self,
        fetcher: BaseFetcher,
        query: PlannedQuery,
        window: TimeWindow,
        semaphore: asyncio.Semaphore,
    ) -> FetchOutcome:
        outcome = FetchOutcome(fetcher=fetcher.name, query=query)
        async with semaphore:
            started = time.monotonic()
            records: List[RawRecord] = []
            try:
                await asyncio.wait_for(self._drain(fetcher, query, window, records), timeout=self.fetch_timeout)
                outcome.records = records
            except asyncio.TimeoutError:
                outcome.timed_out = True
                logger.warning(
                    f"[TIMEOUT] {fetcher.name} '{query.text[:40]}': no result in {self.fetch_timeout:.0f}s, skipping"
                )
            except Exception as e:
                outcome.error = f"{type(e).__name__}: {e}"
                logger.warning(f"{fetcher.name} failed for '{query.text[:40]}': {outcome.error}")
            outcome.elapsed = time.monotonic() - started
        return outcome

    @staticmethod
    async def _drain(fetcher: BaseFetcher, query: PlannedQuery, window: TimeWindow, records: List[RawRecord]):
        async with aclosing(fetcher.fetch(query, window)) as stream:
            async for record in stream:
                records.append(record)
