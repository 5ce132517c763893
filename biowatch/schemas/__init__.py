"""
Schemas package - all data models for the Biosimilar News Monitor.

Models are organized by domain in submodules:
  - base.py: Common enums and the resolved TimeWindow
  - news.py: request models, internal pipeline records, ConsolidatedNewsItem
"""

# base.py - enums and value objects
from biowatch.schemas.base import QueryKind, SourceTier, TimePreset, TimeWindow, ensure_utc

# news.py - request, record and result models
from biowatch.schemas.news import (
    KeywordRow, CompanyTarget, TimeRange, SearchRequest,
    PlannedQuery, RawRecord, NewsCandidate, ConsolidatedNewsItem,
)

__all__ = [
    # base
    "QueryKind", "SourceTier", "TimePreset", "TimeWindow", "ensure_utc",
    # news
    "KeywordRow", "CompanyTarget", "TimeRange", "SearchRequest",
    "PlannedQuery", "RawRecord", "NewsCandidate", "ConsolidatedNewsItem",
]
