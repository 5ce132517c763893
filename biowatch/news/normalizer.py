"""
Normalization: heterogeneous RawRecords → NewsCandidates.

Every fetcher returns best-effort fields (HTML in titles, epoch or
RFC-2822 dates, missing sources). This stage cleans them into one shape,
applies the exact time window, and attaches keyword/company provenance.
Malformed records are dropped with a debug log; per-run drop counts are
logged at INFO.
"""

import html
import logging
import re
import time
from collections import Counter
from datetime import date, datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence
from urllib.parse import unquote, urlparse

from ..config import get_settings
from ..schemas import (
    CompanyTarget,
    KeywordRow,
    NewsCandidate,
    PlannedQuery,
    RawRecord,
    TimeWindow,
    ensure_utc,
)
from ..tools.domain_utils import extract_clean_domain
from ..tools.url_utils import canonicalize_url, stable_id

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")
_PUNCT_RE = re.compile(r"[^\w\s]", re.UNICODE)
_SUFFIX_RE = re.compile(r"^(?P<head>.+?)\s+[-–—|]\s+(?P<tail>[^-–—|]+)$")
_RELATIVE_RE = re.compile(r"^(\d+)\s+(second|minute|hour|day|week)s?\s+ago$", re.IGNORECASE)

# Epoch values above this are milliseconds (year 5138 in seconds)
_EPOCH_MS_THRESHOLD = 1e11

_DATE_FORMATS = [
    "%Y-%m-%dT%H:%M:%S.%fZ",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%m/%d/%Y",
    "%a, %d %b %Y %H:%M:%S GMT",
]


# ── Text helpers ──────────────────────────────────────────────────────────────

def clean_text(text: Any) -> str:
    """Unescape HTML entities, strip tags, collapse whitespace."""
    if not text:
        return ""
    text = html.unescape(str(text))
    text = _TAG_RE.sub(" ", text)
    # Entities can be double-encoded in feeds (&amp;amp;)
    text = html.unescape(text)
    return _WS_RE.sub(" ", text).strip()


def title_signature(title: str) -> str:
    """Case-folded, punctuation-free, whitespace-collapsed title."""
    text = _PUNCT_RE.sub(" ", (title or "").casefold())
    return _WS_RE.sub(" ", text).strip()


def strip_publisher_suffix(title: str, source: str) -> str:
    """"Headline - Reuters" → "Headline" when the suffix is the source name."""
    if not title or not source:
        return title
    m = _SUFFIX_RE.match(title)
    if m and title_signature(m.group("tail")) == title_signature(source):
        return m.group("head").strip()
    return title


def truncate_words(text: str, limit: int) -> str:
    """Cut to at most `limit` chars on a word boundary, with an ellipsis."""
    if limit <= 0 or len(text) <= limit:
        return text
    cut = text[: limit - 1]
    if " " in cut:
        cut = cut.rsplit(" ", 1)[0]
    return cut.rstrip(" ,;:.-") + "…"


def title_from_url(url: str) -> str:
    """Last meaningful path segment: /news/amgen-wins-approval.html → "amgen wins approval"."""
    try:
        path = urlparse(url).path
    except ValueError:
        return ""
    segments = [s for s in path.split("/") if s]
    if not segments:
        return ""
    slug = unquote(segments[-1])
    slug = re.sub(r"\.(s?html?|php|aspx?)$", "", slug, flags=re.IGNORECASE)
    return _WS_RE.sub(" ", re.sub(r"[-_+]+", " ", slug)).strip()


# ── Date parsing ──────────────────────────────────────────────────────────────

def parse_published(value: Any, reference: Optional[datetime] = None) -> Optional[datetime]:
    """
    Best-effort publish date → aware UTC datetime, or None.

    Accepts datetime/date, epoch seconds or milliseconds, time.struct_time
    (feedparser's *_parsed fields), ISO-8601, RFC-2822 and a few common
    formats. "3 hours ago" is resolved against `reference`.
    """
    if value is None or value == "":
        return None
    try:
        if isinstance(value, datetime):
            return ensure_utc(value)
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return _from_epoch(float(value))
        if isinstance(value, (time.struct_time, tuple)):
            return datetime(*tuple(value)[:6], tzinfo=timezone.utc)
        if isinstance(value, str):
            return _parse_date_string(value.strip(), reference)
    except (ValueError, TypeError, OverflowError, OSError) as e:
        logger.debug(f"Unparseable date {value!r}: {e}")
    return None


def _from_epoch(seconds: float) -> Optional[datetime]:
    if seconds <= 0:
        return None
    if seconds > _EPOCH_MS_THRESHOLD:
        seconds /= 1000.0
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def _parse_date_string(text: str, reference: Optional[datetime]) -> Optional[datetime]:
    if not text:
        return None
    if re.fullmatch(r"\d+(\.\d+)?", text):
        return _from_epoch(float(text))

    m = _RELATIVE_RE.match(text)
    if m:
        if reference is None:
            return None
        amount, unit = int(m.group(1)), m.group(2).lower()
        return ensure_utc(reference) - timedelta(**{f"{unit}s": amount})

    try:
        return ensure_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        pass

    try:
        return ensure_utc(parsedate_to_datetime(text))
    except (TypeError, ValueError, IndexError, AttributeError):
        pass

    for fmt in _DATE_FORMATS:
        try:
            return ensure_utc(datetime.strptime(text, fmt))
        except ValueError:
            continue
    return None


# ── Mention matching ──────────────────────────────────────────────────────────

def _mention_pattern(name: str) -> re.Pattern:
    return re.compile(rf"(?<!\w){re.escape(name)}(?!\w)", re.IGNORECASE)


class Normalizer:
    """
    Maps raw records to NewsCandidates for one run.

    Usage:
        normalizer = Normalizer(rows, targets, window)
        candidates = normalizer.normalize_all(outcomes)
    """

    def __init__(
        self,
        rows: Sequence[KeywordRow],
        targets: Sequence[CompanyTarget],
        window: TimeWindow,
        summary_max_chars: Optional[int] = None,
    ):
        self.rows = list(rows)
        self.targets = list(targets)
        self.window = window
        self.summary_max_chars = summary_max_chars or get_settings().summary_max_chars
        self.drops: Counter = Counter()

        # casefold → display spelling; target labels win over row aliases
        vocabulary: Dict[str, str] = {}
        for target in self.targets:
            if target.label:
                vocabulary.setdefault(target.label.casefold(), target.label)
        for row in self.rows:
            for alias in row.companies:
                vocabulary.setdefault(alias.casefold(), alias)
        self._mentions = [(name, _mention_pattern(name)) for name in vocabulary.values()]

    def normalize_all(self, outcomes: Iterable) -> List[NewsCandidate]:
        """Normalize every record of every FetchOutcome, in outcome order."""
        candidates = []
        seen = 0
        for outcome in outcomes:
            for record in outcome.records:
                seen += 1
                candidate = self.normalize(record, outcome.query)
                if candidate is not None:
                    candidates.append(candidate)
        if self.drops:
            detail = ", ".join(f"{k}={v}" for k, v in sorted(self.drops.items()))
            logger.info(f"[NORMALIZE] {len(candidates)}/{seen} records kept (dropped: {detail})")
        else:
            logger.info(f"[NORMALIZE] {len(candidates)}/{seen} records kept")
        return candidates

    def normalize(self, record: RawRecord, query: PlannedQuery) -> Optional[NewsCandidate]:
        """One record → candidate, or None if it cannot be used."""
        url = (record.url or "").strip()
        canonical = canonicalize_url(url)
        if not canonical:
            url = ""

        source = clean_text(record.source_name) or extract_clean_domain(url) or record.fetcher or "unknown"

        title = strip_publisher_suffix(clean_text(record.title), source)
        if not title and url:
            # /?p=123 and bare homepages have no slug; the host still names the item
            title = title_from_url(url) or extract_clean_domain(url) or canonical
        if not title:
            return self._drop("no_title", record)

        published = parse_published(record.published_at, reference=record.fetched_at)
        date_inferred = False
        if published is None:
            if not record.time_filtered:
                return self._drop("undated", record)
            published = self.window.clamp(record.fetched_at)
            date_inferred = True
        elif not self.window.contains(published):
            return self._drop("out_of_window", record)

        summary = truncate_words(
            clean_text(record.summary) or clean_text(record.body_text),
            self.summary_max_chars,
        )

        if canonical:
            item_id = stable_id(canonical)
        else:
            item_id = stable_id(f"{title_signature(title)}|{source}|{published.date().isoformat()}")

        rows = [(i, self.rows[i]) for i in query.keyword_rows if 0 <= i < len(self.rows)]
        targets = [self.targets[j] for j in query.company_targets if 0 <= j < len(self.targets)]

        company_matches = {t.display_label for t in targets}
        company_matches.update(self._mentioned_companies(f"{title} {summary}"))

        sops = {row.sop_category for _, row in rows}
        businesses = {row.business_category for _, row in rows}

        return NewsCandidate(
            id=item_id,
            title=title,
            source=source,
            url=url,
            canonical_url=canonical,
            published_at=published,
            summary=summary,
            fetcher=record.fetcher,
            order=query.order_key + (record.fetcher, canonical, title),
            date_inferred=date_inferred,
            keyword_matches={row.keyword for _, row in rows},
            company_matches=company_matches,
            # Only when every originating row agrees; otherwise resolved at merge time
            sop_category=next(iter(sops)) if len(sops) == 1 else None,
            business_category=next(iter(businesses)) if len(businesses) == 1 else None,
            category_rows=[(i, row.sop_category, row.business_category) for i, row in rows],
            business_categories={b for b in businesses if b},
            company_domains={t.domain for t in targets if t.domain},
            query_kinds={query.kind},
        )

    def _mentioned_companies(self, text: str) -> List[str]:
        return [name for name, pattern in self._mentions if pattern.search(text)]

    def _drop(self, reason: str, record: RawRecord) -> None:
        self.drops[reason] += 1
        logger.debug(f"Dropped record ({reason}) from {record.fetcher}: {(record.title or record.url)[:60]!r}")
        return None
