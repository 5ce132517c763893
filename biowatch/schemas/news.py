"""
News request, record and result data models.

These models represent the raw material and the product of one monitoring
cycle: the caller's keyword taxonomy and watch targets, the per-source raw
records, and the consolidated items returned to the dashboard.

Hierarchy: SearchRequest → PlannedQuery → RawRecord → NewsCandidate → ConsolidatedNewsItem

Wire format is camelCase (aliases); both camelCase and snake_case are
accepted on input.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .base import QueryKind, TimePreset, TimeWindow, ensure_utc

logger = logging.getLogger(__name__)

_ALIAS_SPLIT_RE = re.compile(r"[,;]+")


def _blank_to_none(v: Any) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ══════════════════════════════════════════════════════════════════════════════
# REQUEST MODELS
# ══════════════════════════════════════════════════════════════════════════════

class KeywordRow(_WireModel):
    """One row of the SOP keyword taxonomy. Identity = keyword text."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    keyword: str
    sop_category: Optional[str] = None
    business_category: Optional[str] = None
    companies: Tuple[str, ...] = ()

    @field_validator("keyword", mode="before")
    @classmethod
    def strip_keyword(cls, v):
        return "" if v is None else str(v).strip()

    @field_validator("sop_category", "business_category", mode="before")
    @classmethod
    def blank_category_is_null(cls, v):
        return _blank_to_none(v)

    @field_validator("companies", mode="before")
    @classmethod
    def coerce_companies(cls, v):
        """Accept a list or the dashboard's "Amgen, Sandoz; Celltrion" string."""
        if v is None:
            return ()
        if isinstance(v, str):
            v = _ALIAS_SPLIT_RE.split(v)
        seen = set()
        aliases = []
        for item in v:
            if item is None:
                continue
            alias = str(item).strip()
            if alias and alias.lower() not in seen:
                seen.add(alias.lower())
                aliases.append(alias)
        return tuple(aliases)

    @property
    def is_usable(self) -> bool:
        return bool(self.keyword)


class CompanyTarget(_WireModel):
    """A company watch target seeded by a URL (site, newsroom or IR feed)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = ""
    label: str = ""
    url: str = ""

    @model_validator(mode="before")
    @classmethod
    def default_id(cls, data):
        # Identity must be stable within a run; fall back to the seed URL
        if isinstance(data, dict) and not str(data.get("id") or "").strip():
            data = {**data, "id": data.get("url") or ""}
        return data

    @field_validator("id", "label", "url", mode="before")
    @classmethod
    def strip_text(cls, v):
        return "" if v is None else str(v).strip()

    @property
    def is_usable(self) -> bool:
        return bool(self.url)

    @property
    def domain(self) -> Optional[str]:
        from biowatch.tools.domain_utils import extract_clean_domain
        return extract_clean_domain(self.url)

    @property
    def display_label(self) -> str:
        return self.label or self.domain or self.url


class TimeRange(_WireModel):
    """Either a named preset or an explicit {from, to} pair."""
    preset: Optional[TimePreset] = None
    from_: Optional[datetime] = Field(default=None, alias="from")
    to: Optional[datetime] = None

    @field_validator("from_", "to", mode="after")
    @classmethod
    def as_utc(cls, v):
        return ensure_utc(v) if v is not None else None

    @model_validator(mode="after")
    def check_bounds(self):
        if self.preset is not None:
            return self
        if self.from_ is None or self.to is None:
            raise ValueError("custom time range needs both 'from' and 'to' (or a preset)")
        if self.from_ > self.to:
            raise ValueError(
                f"time range is inverted: from={self.from_.isoformat()} is after to={self.to.isoformat()}"
            )
        return self

    def resolve(self, now: datetime) -> TimeWindow:
        """Turn the range into concrete bounds relative to `now`."""
        from biowatch.config import PRESET_HOURS

        now = ensure_utc(now)
        if self.preset is not None:
            start = now - timedelta(hours=PRESET_HOURS[self.preset.value])
            return TimeWindow(start=start, end=now, preset=self.preset, reference=now)
        return TimeWindow(start=self.from_, end=self.to, reference=now)


class SearchRequest(_WireModel):
    """Body of POST /api/search."""
    keywords: List[KeywordRow] = Field(default_factory=list)
    company_targets: List[CompanyTarget] = Field(default_factory=list)
    time_range: TimeRange = Field(default_factory=lambda: TimeRange(preset=TimePreset.LAST_7D))
    max_items: Optional[int] = Field(default=None, validate_default=True)

    @field_validator("keywords", "company_targets", mode="before")
    @classmethod
    def none_is_empty(cls, v):
        return [] if v is None else v

    @field_validator("max_items", mode="after")
    @classmethod
    def default_max_items(cls, v):
        # Absent or zero means "use the default cap"; negatives pass through (→ no results)
        if not v:
            from biowatch.config import get_settings
            return get_settings().default_max_items
        return v

    def usable_keywords(self) -> List[KeywordRow]:
        return [row for row in self.keywords if row.is_usable]

    def usable_targets(self) -> List[CompanyTarget]:
        return [target for target in self.company_targets if target.is_usable]


# ══════════════════════════════════════════════════════════════════════════════
# INTERNAL PIPELINE RECORDS
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PlannedQuery:
    """A concrete source query plus the rows/targets it was planned from."""
    text: str
    kind: QueryKind
    keyword_rows: Tuple[int, ...] = ()
    company_targets: Tuple[int, ...] = ()
    domain: Optional[str] = None
    seed_url: Optional[str] = None
    # 0 for literal/company queries, 1..N for the N-th expansion phrase
    rank: int = 0

    @property
    def order_key(self) -> Tuple:
        """Provenance order: supplied row order first, then target order."""
        first_row = min(self.keyword_rows) if self.keyword_rows else 1 << 30
        first_target = min(self.company_targets) if self.company_targets else 1 << 30
        kind_order = {QueryKind.KEYWORD: 0, QueryKind.COMPANY: 1, QueryKind.EXPANDED: 2}[self.kind]
        return (first_row, first_target, kind_order, self.rank, self.text)


@dataclass
class RawRecord:
    """One upstream result, before normalization. Fields are best-effort."""
    title: str = ""
    url: str = ""
    published_at: Any = None
    source_name: str = ""
    summary: str = ""
    body_text: str = ""
    fetcher: str = ""
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    # True when the upstream already restricted results to the requested window
    time_filtered: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class NewsCandidate:
    """A normalized record carrying provenance, ready for dedup."""
    id: str
    title: str
    source: str
    url: str
    canonical_url: str
    published_at: datetime
    summary: str
    fetcher: str
    order: Tuple
    date_inferred: bool = False
    keyword_matches: Set[str] = field(default_factory=set)
    company_matches: Set[str] = field(default_factory=set)
    sop_category: Optional[str] = None
    business_category: Optional[str] = None
    # (row index, sop, business) for every originating keyword row, in row order
    category_rows: List[Tuple[int, Optional[str], Optional[str]]] = field(default_factory=list)
    business_categories: Set[str] = field(default_factory=set)
    company_domains: Set[str] = field(default_factory=set)
    query_kinds: Set[QueryKind] = field(default_factory=set)


# ══════════════════════════════════════════════════════════════════════════════
# OUTPUT MODEL
# ══════════════════════════════════════════════════════════════════════════════

class ConsolidatedNewsItem(_WireModel):
    """One deduplicated, scored news record returned to the dashboard."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    title: str
    source: str
    url: str
    published_at: datetime
    summary: str = ""
    authentic_score: int = Field(ge=0, le=100, default=50)
    market_impact_score: int = Field(ge=0, le=100, default=50)
    keyword_matches: List[str] = Field(default_factory=list)
    company_matches: List[str] = Field(default_factory=list)
    sop_category: Optional[str] = None
    business_category: Optional[str] = None

    @field_validator("keyword_matches", "company_matches", mode="before")
    @classmethod
    def sorted_unique(cls, v):
        if v is None:
            return []
        return sorted({str(x) for x in v if x})

    @field_serializer("published_at")
    def iso_instant(self, v: datetime) -> str:
        return ensure_utc(v).strftime("%Y-%m-%dT%H:%M:%SZ")
