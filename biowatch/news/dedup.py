"""
Two-stage deduplication for normalized news candidates.

DEDUP PIPELINE (2 stages):
  1. KEY MERGE:   Same canonical URL (or, for URL-less records, same title
                  signature on the same UTC day) = same story
  2. TITLE FOLD:  Different URLs, same title signature, same UTC day
                  (syndicated copies, wire stories republished by trade press)

Candidates are sorted by their provenance order key before merging, so
the result never depends on the order fetches happened to complete in.
Running the deduplicator on its own output changes nothing.
"""

import logging
from collections import OrderedDict
from dataclasses import replace
from typing import Callable, List, Optional, Sequence

from ..config import get_settings
from ..schemas import NewsCandidate
from .normalizer import title_signature

logger = logging.getLogger(__name__)


def merge_key(candidate: NewsCandidate) -> str:
    if candidate.canonical_url:
        return f"url:{candidate.canonical_url}"
    return f"title:{title_signature(candidate.title)}|{candidate.published_at.date().isoformat()}"


def fold_key(candidate: NewsCandidate) -> Optional[str]:
    signature = title_signature(candidate.title)
    if not signature:
        return None
    return f"{signature}|{candidate.published_at.date().isoformat()}"


class NewsDeduplicator:
    """
    Merges near-duplicate candidates, unioning their provenance.

    Merge rules (first = earliest in provenance order):
    - title / url / source / id:  from the first candidate
    - keyword & company matches:  union
    - summary:                    longest non-empty variant
    - sop / business category:    first non-null in keyword-row order
    - publishedAt:                earliest date that was not inferred
    """

    def __init__(self, fold_titles: Optional[bool] = None):
        self.fold_titles = get_settings().dedup_fold_titles if fold_titles is None else fold_titles

    def deduplicate(self, candidates: Sequence[NewsCandidate]) -> List[NewsCandidate]:
        if not candidates:
            return []

        initial_count = len(candidates)
        ordered = sorted(candidates, key=lambda c: c.order)

        # Stage 1: canonical URL / title-day key
        items = self._merge_by(ordered, merge_key)
        stage1_count = len(items)

        # Stage 2: same headline, same day, different URLs
        if self.fold_titles:
            items = self._merge_by(items, fold_key)

        removed = initial_count - len(items)
        if removed:
            logger.info(
                f"[DEDUP] {initial_count} → {len(items)} "
                f"(url/key merges: {initial_count - stage1_count}, title folds: {stage1_count - len(items)})"
            )
        return items

    def _merge_by(self, candidates: List[NewsCandidate], key_fn: Callable) -> List[NewsCandidate]:
        groups: "OrderedDict[str, List[NewsCandidate]]" = OrderedDict()
        for i, c in enumerate(candidates):
            key = key_fn(c)
            # Unkeyed items keep their own slot
            groups.setdefault(key if key is not None else f"__unkeyed_{i}", []).append(c)
        return [self._merge(group) for group in groups.values()]

    @staticmethod
    def _merge(group: List[NewsCandidate]) -> NewsCandidate:
        first = group[0]

        dated = [c.published_at for c in group if not c.date_inferred]
        if dated:
            published, inferred = min(dated), False
        else:
            published, inferred = min(c.published_at for c in group), True

        summary = first.summary
        for c in group[1:]:
            if len(c.summary) > len(summary):
                summary = c.summary

        category_rows = sorted({row for c in group for row in c.category_rows}, key=lambda r: r[0])
        sop = next((s for _, s, _ in category_rows if s), None)
        business = next((b for _, _, b in category_rows if b), None)
        if not category_rows:
            sop = next((c.sop_category for c in group if c.sop_category), None)
            business = next((c.business_category for c in group if c.business_category), None)

        return replace(
            first,
            published_at=published,
            date_inferred=inferred,
            summary=summary,
            order=min(c.order for c in group),
            keyword_matches=set().union(*(c.keyword_matches for c in group)),
            company_matches=set().union(*(c.company_matches for c in group)),
            sop_category=sop,
            business_category=business,
            category_rows=category_rows,
            business_categories=set().union(*(c.business_categories for c in group)),
            company_domains=set().union(*(c.company_domains for c in group)),
            query_kinds=set().union(*(c.query_kinds for c in group)),
        )
