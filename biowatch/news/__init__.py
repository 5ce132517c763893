# News module - planning, normalization, dedup, scoring and the pipeline
from .planner import QueryPlanner, clean_phrases
from .normalizer import Normalizer, parse_published, title_signature
from .dedup import NewsDeduplicator
from .scorer import NewsScorer
from .aggregator import aggregate
from .filters import FilterConfig, apply_filters, company_options, keyword_options
from .pipeline import NewsPipeline

__all__ = [
    "QueryPlanner",
    "clean_phrases",
    "Normalizer",
    "parse_published",
    "title_signature",
    "NewsDeduplicator",
    "NewsScorer",
    "aggregate",
    "FilterConfig",
    "apply_filters",
    "company_options",
    "keyword_options",
    "NewsPipeline",
]
