"""
Query planning: keyword taxonomy + watch targets → concrete source queries.

Each keyword row yields its literal keyword plus (when AI expansion is
available) a few related phrases; each company target yields one query
scoped to its domain. Identical queries from several rows merge into one
whose provenance is the union, and the plan is capped in proportion to the
requested result count.
"""

import asyncio
import logging
import math
import re
from itertools import zip_longest
from typing import Dict, List, Optional, Sequence, Tuple

from ..config import Settings, get_settings
from ..schemas import CompanyTarget, KeywordRow, PlannedQuery, QueryKind
from ..tools.keyword_expander import KeywordExpander

logger = logging.getLogger(__name__)

_WS_RE = re.compile(r"\s+")
_QUOTES = "\"'`“”‘’"
_MIN_PHRASE_CHARS = 3
_MAX_PHRASE_CHARS = 80


def clean_phrases(keyword: str, phrases: Sequence[str], limit: int) -> List[str]:
    """Trim, de-duplicate (case-insensitive), drop the literal keyword, bound length."""
    seen = {keyword.casefold()}
    cleaned = []
    for phrase in phrases or []:
        if not isinstance(phrase, str):
            continue
        text = _WS_RE.sub(" ", phrase.strip().strip(_QUOTES).strip(" -•*.,;:")).strip()
        if not (_MIN_PHRASE_CHARS <= len(text) <= _MAX_PHRASE_CHARS):
            continue
        key = text.casefold()
        if key in seen:
            continue
        seen.add(key)
        cleaned.append(text)
        if len(cleaned) >= limit:
            break
    return cleaned


class QueryPlanner:
    """Builds the bounded query plan for one monitoring cycle."""

    def __init__(self, expander: Optional[KeywordExpander] = None, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.expander = expander

    def query_cap(self, max_items: int) -> int:
        s = self.settings
        wanted = math.ceil(max_items * s.planner_queries_per_item)
        return min(s.planner_max_queries, max(s.planner_min_queries, wanted))

    async def plan(
        self,
        rows: Sequence[KeywordRow],
        targets: Sequence[CompanyTarget],
        max_items: int,
    ) -> List[PlannedQuery]:
        """
        Args:
            rows: Usable keyword rows; indices are provenance back-references
            targets: Usable company targets; indices likewise
            max_items: Requested result cap (drives the query cap)
        """
        expansions = await self._expand_all(rows)

        # key → [text, kind, row indices, target indices, domain, seed_url, rank]
        merged: Dict[Tuple, list] = {}

        def add(text, kind, row=None, target=None, domain=None, seed_url=None, rank=0):
            key = (text.casefold(), kind, domain)
            entry = merged.get(key)
            if entry is None:
                entry = merged[key] = [text, kind, set(), set(), domain, seed_url, rank]
            if row is not None:
                entry[2].add(row)
            if target is not None:
                entry[3].add(target)
            entry[6] = min(entry[6], rank)

        for i, row in enumerate(rows):
            add(row.keyword, QueryKind.KEYWORD, row=i)
            for rank, phrase in enumerate(expansions.get(row.keyword.casefold(), []), start=1):
                add(phrase, QueryKind.EXPANDED, row=i, rank=rank)

        for j, target in enumerate(targets):
            add(target.display_label, QueryKind.COMPANY, target=j, domain=target.domain, seed_url=target.url)

        queries = [
            PlannedQuery(
                text=text,
                kind=kind,
                keyword_rows=tuple(sorted(row_ids)),
                company_targets=tuple(sorted(target_ids)),
                domain=domain,
                seed_url=seed_url,
                rank=rank,
            )
            for text, kind, row_ids, target_ids, domain, seed_url, rank in merged.values()
        ]
        return self._apply_cap(queries, max_items)

    def _apply_cap(self, queries: List[PlannedQuery], max_items: int) -> List[PlannedQuery]:
        # Literal keyword and company queries alternate, so a long keyword
        # list cannot push every watch target past the cap
        literal = sorted((q for q in queries if q.kind == QueryKind.KEYWORD), key=lambda q: q.order_key)
        company = sorted((q for q in queries if q.kind == QueryKind.COMPANY), key=lambda q: q.order_key)
        primary = [q for pair in zip_longest(literal, company) for q in pair if q is not None]
        # Round-robin: every keyword's 1st phrase, then every keyword's 2nd phrase...
        expanded = sorted(
            (q for q in queries if q.kind == QueryKind.EXPANDED),
            key=lambda q: (q.rank, q.order_key),
        )
        ordered = primary + expanded
        cap = self.query_cap(max_items)
        if len(ordered) > cap:
            logger.info(
                f"[PLAN] Query cap {cap} reached: dropping {len(ordered) - cap} of {len(ordered)} queries"
            )
            ordered = ordered[:cap]

        counts = {kind: sum(1 for q in ordered if q.kind == kind) for kind in QueryKind}
        logger.info(
            f"[PLAN] {len(ordered)} queries "
            f"(keyword={counts[QueryKind.KEYWORD]}, expanded={counts[QueryKind.EXPANDED]}, "
            f"company={counts[QueryKind.COMPANY]})"
        )
        return ordered

    async def _expand_all(self, rows: Sequence[KeywordRow]) -> Dict[str, List[str]]:
        """Expand each distinct keyword concurrently; failures mean literal-only."""
        if not rows or self.expander is None or not self.expander.available:
            return {}

        keywords: Dict[str, str] = {}
        for row in rows:
            keywords.setdefault(row.keyword.casefold(), row.keyword)

        results = await asyncio.gather(*(self._expand_one(kw) for kw in keywords.values()))
        return dict(zip(keywords.keys(), results))

    async def _expand_one(self, keyword: str) -> List[str]:
        try:
            phrases = await asyncio.wait_for(
                self.expander.expand(keyword),
                timeout=self.settings.expansion_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"[EXPAND] '{keyword}' timed out, using literal keyword only")
            return []
        except Exception as e:
            logger.warning(f"[EXPAND] '{keyword}' failed ({type(e).__name__}: {e}), using literal keyword only")
            return []

        cleaned = clean_phrases(keyword, phrases, self.expander.max_phrases)
        if not cleaned:
            logger.info(f"[EXPAND] '{keyword}' produced no usable phrases")
        return cleaned
