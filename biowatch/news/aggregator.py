"""Final ordering and truncation of scored items. No I/O."""

from typing import List, Sequence

from ..schemas import ConsolidatedNewsItem


def sort_key(item: ConsolidatedNewsItem):
    # Newest first, then most market-moving, then id for a total order
    return (-item.published_at.timestamp(), -item.market_impact_score, item.id)


def aggregate(items: Sequence[ConsolidatedNewsItem], max_items: int) -> List[ConsolidatedNewsItem]:
    """Sort by publishedAt desc, marketImpactScore desc, id asc; keep the first `max_items`."""
    limit = max(0, max_items or 0)
    return sorted(items, key=sort_key)[:limit]
