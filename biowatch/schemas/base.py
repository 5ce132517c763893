"""
Common enums and value objects used across the entire application.

These are foundational types that don't belong to any specific pipeline
stage: time presets, query kinds, source credibility tiers and the
resolved time window every stage filters against.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


# ══════════════════════════════════════════════════════════════════════════════
# ENUMS - Classification Types
# ══════════════════════════════════════════════════════════════════════════════

class TimePreset(str, Enum):
    """Named look-back windows offered by the dashboard."""
    LAST_24H = "24h"
    LAST_3D = "3d"
    LAST_7D = "7d"
    LAST_30D = "30d"


class QueryKind(str, Enum):
    """Where a planned query came from."""
    KEYWORD = "keyword"      # literal keyword row text
    EXPANDED = "expanded"    # AI-suggested related phrase
    COMPANY = "company"      # company watch target, scoped to its domain


class SourceTier(str, Enum):
    """Credibility tiers used by the authenticity score."""
    REGULATORY = "regulatory"    # FDA, EMA, SEC filings...
    COMPANY = "company"          # the watched company's own site / IR feed
    TRUSTED = "trusted"          # established trade press and wires
    UNKNOWN = "unknown"
    LOW = "low"                  # content farms, coupon sites


# ══════════════════════════════════════════════════════════════════════════════
# VALUE OBJECTS
# ══════════════════════════════════════════════════════════════════════════════

def ensure_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC; aware ones are converted."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class TimeWindow:
    """Concrete [start, end] interval resolved once per pipeline run."""
    start: datetime
    end: datetime
    preset: Optional[TimePreset] = None
    # The "now" the window was resolved against; upstream filters are relative to it
    reference: Optional[datetime] = None

    def contains(self, moment: datetime) -> bool:
        moment = ensure_utc(moment)
        return self.start <= moment <= self.end

    def clamp(self, moment: datetime) -> datetime:
        moment = ensure_utc(moment)
        return min(max(moment, self.start), self.end)

    @property
    def lookback_days(self) -> int:
        """Days between the window start and the resolution instant (at least 1)."""
        anchor = self.reference or self.end
        seconds = max((anchor - self.start).total_seconds(), 0)
        return max(1, int(-(-seconds // 86400)))

    @property
    def upstream_range(self) -> str:
        """Coarsest engine time_range that still reaches back to the window start."""
        from biowatch.config import UPSTREAM_TIME_RANGE

        if self.preset is not None:
            return UPSTREAM_TIME_RANGE[self.preset.value]
        days = self.lookback_days
        if days <= 1:
            return "day"
        if days <= 7:
            return "week"
        if days <= 31:
            return "month"
        return "year"
