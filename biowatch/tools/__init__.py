# Tools module
from .llm_service import LLMService
from .keyword_expander import KeywordExpander, KeywordExpansion
from .tavily_tool import TavilyTool
from .domain_utils import (
    extract_clean_domain,
    registered_domain,
    domain_in,
    classify_source,
)
from .url_utils import canonicalize_url, stable_id

__all__ = [
    # LLM & Search
    "LLMService",
    "KeywordExpander",
    "KeywordExpansion",
    "TavilyTool",
    # Domain / URL utils
    "extract_clean_domain",
    "registered_domain",
    "domain_in",
    "classify_source",
    "canonicalize_url",
    "stable_id",
]
