"""
Dashboard view filtering - a pure function over a finished result set.

The dashboard narrows the returned items client-side by keyword, company,
free text, minimum scores and recency; nothing here re-runs the pipeline.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Sequence

from ..schemas import ConsolidatedNewsItem, KeywordRow, ensure_utc

ALL = "all"

FILTER_WINDOW_HOURS = {
    "24h": 24,
    "3d": 72,
    "7d": 168,
}


@dataclass(frozen=True)
class FilterConfig:
    keyword: str = ALL
    company: str = ALL
    search_term: str = ""
    min_authentic: int = 0
    min_impact: int = 0
    time_window: str = ALL

    def __post_init__(self):
        if self.time_window != ALL and self.time_window not in FILTER_WINDOW_HOURS:
            raise ValueError(f"unknown time window {self.time_window!r}")


def apply_filters(
    results: Sequence[ConsolidatedNewsItem],
    config: Optional[FilterConfig] = None,
    now: Optional[datetime] = None,
) -> List[ConsolidatedNewsItem]:
    """Items satisfying every active filter, in their original order."""
    config = config or FilterConfig()
    now = ensure_utc(now) if now is not None else datetime.now(timezone.utc)
    term = config.search_term.strip().casefold()
    cutoff = None
    if config.time_window != ALL:
        cutoff = now - timedelta(hours=FILTER_WINDOW_HOURS[config.time_window])

    kept = []
    for item in results:
        if config.keyword != ALL and config.keyword not in item.keyword_matches:
            continue
        if config.company != ALL and config.company not in item.company_matches:
            continue
        if term and term not in f"{item.title} {item.summary} {item.source}".casefold():
            continue
        if item.authentic_score < config.min_authentic or item.market_impact_score < config.min_impact:
            continue
        if cutoff is not None and ensure_utc(item.published_at) < cutoff:
            continue
        kept.append(item)
    return kept


def _first_seen(values: Iterable[str]) -> List[str]:
    seen = set()
    ordered = []
    for v in values:
        if v and v not in seen:
            seen.add(v)
            ordered.append(v)
    return ordered


def keyword_options(rows: Sequence[KeywordRow]) -> List[str]:
    """Distinct keyword texts for the keyword dropdown."""
    return _first_seen(row.keyword for row in rows)


def company_options(results: Sequence[ConsolidatedNewsItem]) -> List[str]:
    """Distinct company labels appearing in the results."""
    return _first_seen(name for item in results for name in item.company_matches)
