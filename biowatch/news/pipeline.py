"""
News pipeline - one monitoring cycle.

    SearchRequest
      → QueryPlanner     (literal + AI-expanded + company queries, capped)
      → FetchRunner      (parallel fetchers, per-fetch timeout, overall deadline)
      → Normalizer       (one schema, exact time window, provenance)
      → NewsDeduplicator (URL / title-day merges, provenance union)
      → NewsScorer       (authenticity + market impact, 0–100)
      → aggregate        (publishedAt desc, impact desc, id asc; cap)

Each call is stateless. Source and expansion failures degrade the result,
never the call; only bad input (ValidationFailure) and genuine faults
reach the caller.
"""

import logging
import time
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from ..config import Settings, get_settings
from ..exceptions import ValidationFailure
from ..schemas import ConsolidatedNewsItem, SearchRequest, ensure_utc
from ..search import BaseFetcher, FetchRunner, build_default_fetchers
from ..tools.keyword_expander import KeywordExpander
from .aggregator import aggregate
from .dedup import NewsDeduplicator
from .normalizer import Normalizer
from .planner import QueryPlanner
from .scorer import NewsScorer, scores_summary

logger = logging.getLogger(__name__)


class NewsPipeline:
    """
    Wires the stages together.

    Usage:
        pipeline = NewsPipeline()
        items = await pipeline.gather_news(request)
    """

    def __init__(
        self,
        fetchers: Optional[Sequence[BaseFetcher]] = None,
        expander: Optional[KeywordExpander] = None,
        settings: Optional[Settings] = None,
        deadline_seconds: Optional[float] = None,
    ):
        self.settings = settings or get_settings()
        self.fetchers = list(fetchers) if fetchers is not None else build_default_fetchers(self.settings)
        if expander is None and self.settings.ai_expansion_enabled and not self.settings.mock_mode:
            expander = KeywordExpander()
        self.planner = QueryPlanner(expander=expander, settings=self.settings)
        self.runner = FetchRunner(
            self.fetchers,
            concurrency=self.settings.fetch_concurrency,
            fetch_timeout=self.settings.fetch_timeout,
        )
        self.deadline_seconds = (
            deadline_seconds if deadline_seconds is not None else self.settings.search_deadline_seconds
        )

    async def gather_news(
        self,
        request: SearchRequest,
        now: Optional[datetime] = None,
    ) -> List[ConsolidatedNewsItem]:
        """
        Run one monitoring cycle.

        Args:
            request: Validated search request
            now: Reference instant for preset windows (default: current UTC time)

        Raises:
            ValidationFailure: nothing usable to search for, or an invalid window
        """
        started = time.monotonic()
        now = ensure_utc(now) if now is not None else datetime.now(timezone.utc)

        rows = request.usable_keywords()
        targets = request.usable_targets()
        if not rows and not targets:
            raise ValidationFailure("At least one keyword or company target (with a URL) is required.")

        window = request.time_range.resolve(now)
        if window.start > window.end:
            raise ValidationFailure("Time range start must not be after its end.")

        max_items = request.max_items if request.max_items is not None else self.settings.default_max_items
        logger.info(
            f"[RUN] {len(rows)} keyword rows, {len(targets)} company targets, "
            f"window {window.start:%Y-%m-%d %H:%M} → {window.end:%Y-%m-%d %H:%M} UTC, maxItems={max_items}"
        )
        if max_items <= 0:
            logger.info("[RUN] maxItems <= 0, returning no results")
            return []

        queries = await self.planner.plan(rows, targets, max_items)

        budget = self.deadline_seconds - (time.monotonic() - started)
        outcomes = await self.runner.run(queries, window, budget=budget)

        candidates = Normalizer(
            rows, targets, window, summary_max_chars=self.settings.summary_max_chars
        ).normalize_all(outcomes)
        merged = NewsDeduplicator(fold_titles=self.settings.dedup_fold_titles).deduplicate(candidates)

        scorer = NewsScorer(watched_domains=sorted({t.domain for t in targets if t.domain}))
        items = aggregate(scorer.score_all(merged), max_items)

        elapsed = time.monotonic() - started
        summary = scores_summary(items)
        logger.info(
            f"[RUN] {len(items)} items returned ({len(merged)} unique, {len(candidates)} candidates) "
            f"in {elapsed:.1f}s" + (f"; {summary}" if summary else "")
        )
        return items
