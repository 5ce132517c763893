"""
Heuristic authenticity and market-impact scoring.

Both scores are integers in [0, 100] built from a neutral base of 50 plus
bounded adjustments. Pure and deterministic: the same candidate always
gets the same scores, and a scoring fault falls back to neutral instead of
failing the run.

AUTHENTICITY - can the dashboard trust this item?
  source tier (regulator > company's own site > trade press > unknown > spam)
  + real publish date (inferred dates lose points) + HTTPS
  + specific summary (figures, named entities) − clickbait wording

MARKET IMPACT - would a biosimilar strategist care?
  watched-company mentions (diminishing) + materiality terms (title hits
  count double) × business-category weight + breadth of keyword matches
"""

import logging
import re
from typing import Iterable, List, Optional, Sequence, Tuple

from ..config import BUSINESS_CATEGORY_WEIGHTS, CLICKBAIT_PATTERNS, MATERIALITY_TERMS
from ..schemas import ConsolidatedNewsItem, NewsCandidate, SourceTier
from ..tools.domain_utils import classify_source, extract_clean_domain

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 50

TIER_ADJUSTMENT = {
    SourceTier.REGULATORY: 35,
    SourceTier.COMPANY: 25,
    SourceTier.TRUSTED: 18,
    SourceTier.UNKNOWN: 0,
    SourceTier.LOW: -25,
}

_CLICKBAIT_RES = [re.compile(p, re.IGNORECASE) for p in CLICKBAIT_PATTERNS]
_TERM_RES = [(re.compile(rf"\b{re.escape(term)}", re.IGNORECASE), weight) for term, weight in MATERIALITY_TERMS.items()]
_FIGURE_RE = re.compile(r"\d")
_ENTITY_RE = re.compile(r"\b[A-Z][a-zA-Z]+(?:\s+[A-Z][a-zA-Z]+)+\b")


def clamp_score(value: float) -> int:
    return int(max(0, min(100, round(value))))


def category_weight(categories: Iterable[str]) -> float:
    """Strongest configured weight among the categories (substring match); 1.0 if none match."""
    weights = []
    for category in categories:
        lowered = (category or "").lower()
        weights.extend(w for name, w in BUSINESS_CATEGORY_WEIGHTS.items() if name in lowered)
    return max(weights) if weights else 1.0


def materiality_points(title: str, summary: str) -> float:
    points = 0.0
    for pattern, weight in _TERM_RES:
        if pattern.search(title or ""):
            points += 2 * weight
        elif pattern.search(summary or ""):
            points += weight
    return points


class NewsScorer:
    """Scores deduplicated candidates and emits ConsolidatedNewsItems."""

    def __init__(self, watched_domains: Sequence[str] = ()):
        self.watched_domains = [d for d in watched_domains if d]

    def authentic_score(self, c: NewsCandidate) -> int:
        score = float(NEUTRAL_SCORE)

        host = extract_clean_domain(c.url) if c.url else None
        tier = classify_source(host, list(self.watched_domains) + sorted(c.company_domains))
        score += TIER_ADJUSTMENT[tier]

        score += -8 if c.date_inferred else 5

        if c.url.startswith("https://"):
            score += 3

        summary = c.summary or ""
        if not summary:
            score -= 5
        elif len(summary) >= 200:
            score += 5
        elif len(summary) >= 80:
            score += 2
        if _FIGURE_RE.search(summary):
            score += 3
        if _ENTITY_RE.search(summary):
            score += 2

        text = f"{c.title} {summary}"
        hits = sum(1 for p in _CLICKBAIT_RES if p.search(text))
        score -= min(25, 10 * hits)

        return clamp_score(score)

    def market_impact_score(self, c: NewsCandidate) -> int:
        score = float(NEUTRAL_SCORE)

        n_companies = len(c.company_matches)
        score += 20 * (1 - 0.5 ** n_companies) if n_companies else -5

        points = materiality_points(c.title, c.summary)
        if points:
            weight = category_weight(c.business_categories or ([c.business_category] if c.business_category else []))
            score += min(30.0, points) * weight
        else:
            score -= 10

        score += min(12, 4 * max(0, len(c.keyword_matches) - 1))

        return clamp_score(score)

    def score(self, c: NewsCandidate) -> Tuple[int, int]:
        """(authenticScore, marketImpactScore); neutral on any scoring fault."""
        try:
            return self.authentic_score(c), self.market_impact_score(c)
        except Exception as e:
            logger.warning(f"Scoring failed for {c.id} ({type(e).__name__}: {e}), using neutral scores")
            return NEUTRAL_SCORE, NEUTRAL_SCORE

    def score_all(self, candidates: Sequence[NewsCandidate]) -> List[ConsolidatedNewsItem]:
        items = []
        for c in candidates:
            authentic, impact = self.score(c)
            items.append(ConsolidatedNewsItem(
                id=c.id,
                title=c.title,
                source=c.source,
                url=c.url,
                published_at=c.published_at,
                summary=c.summary,
                authentic_score=authentic,
                market_impact_score=impact,
                keyword_matches=c.keyword_matches,
                company_matches=c.company_matches,
                sop_category=c.sop_category,
                business_category=c.business_category,
            ))
        return items


def scores_summary(items: Sequence[ConsolidatedNewsItem]) -> Optional[str]:
    """Compact "authentic avg / impact avg" string for the run log."""
    if not items:
        return None
    a = sum(i.authentic_score for i in items) / len(items)
    m = sum(i.market_impact_score for i in items) / len(items)
    return f"authentic avg {a:.0f}, impact avg {m:.0f}"
