"""
Configuration management for the Biosimilar News Monitor.
Settings come from environment variables (or .env); domain vocabularies
used by the normalizer and scorer live here as module constants.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── Endpoint budget ──
    # The dashboard route is allowed 60s; keep a margin for dedup/scoring.
    search_deadline_seconds: float = Field(default=55.0, alias="SEARCH_DEADLINE_SECONDS")
    default_max_items: int = Field(default=100, alias="DEFAULT_MAX_ITEMS")

    # ── Fan-out ──
    fetch_timeout: float = Field(default=15.0, alias="FETCH_TIMEOUT")
    fetch_concurrency: int = Field(default=6, alias="FETCH_CONCURRENCY")
    max_results_per_query: int = Field(default=10, alias="MAX_RESULTS_PER_QUERY")
    user_agent: str = Field(
        default="Mozilla/5.0 (compatible; biowatch/1.0; +https://example.org/biowatch)",
        alias="HTTP_USER_AGENT",
    )

    # ── Query planner ──
    # Total queries = clamp(ceil(max_items * per_item), min, max)
    planner_min_queries: int = Field(default=8, alias="PLANNER_MIN_QUERIES")
    planner_max_queries: int = Field(default=60, alias="PLANNER_MAX_QUERIES")
    planner_queries_per_item: float = Field(default=0.5, alias="PLANNER_QUERIES_PER_ITEM")

    # ── AI keyword expansion ──
    ai_expansion_enabled: bool = Field(default=True, alias="AI_EXPANSION_ENABLED")
    expansion_max_phrases: int = Field(default=3, alias="EXPANSION_MAX_PHRASES")
    expansion_timeout: float = Field(default=12.0, alias="EXPANSION_TIMEOUT")

    # LLM providers (first configured one wins: OpenAI → OpenRouter → Ollama)
    openai_api_key: str = Field(default="", alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4.1-mini", alias="OPENAI_MODEL")
    openrouter_api_key: str = Field(default="", alias="OPENROUTER_API_KEY")
    openrouter_model: str = Field(default="google/gemini-2.0-flash-001", alias="OPENROUTER_MODEL")
    use_ollama: bool = Field(default=False, alias="USE_OLLAMA")
    ollama_model: str = Field(default="llama3.2:3b", alias="OLLAMA_MODEL")
    ollama_base_url: str = Field(default="http://localhost:11434", alias="OLLAMA_BASE_URL")

    # ── Search sources ──
    searxng_enabled: bool = Field(default=False, alias="SEARXNG_ENABLED")
    searxng_url: str = Field(default="http://localhost:8888", alias="SEARXNG_URL")
    use_ddg: bool = Field(default=True, alias="USE_DDG")
    tavily_enabled: bool = Field(default=False, alias="TAVILY_ENABLED")
    # Comma-separated for key rotation
    tavily_api_keys: str = Field(default="", alias="TAVILY_API_KEYS")
    company_feeds_enabled: bool = Field(default=True, alias="COMPANY_FEEDS_ENABLED")
    google_news_fallback: bool = Field(default=True, alias="GOOGLE_NEWS_FALLBACK")
    google_news_locale: str = Field(default="hl=en-US&gl=US&ceid=US:en", alias="GOOGLE_NEWS_LOCALE")

    # ── Normalizer / dedup ──
    summary_max_chars: int = Field(default=600, alias="SUMMARY_MAX_CHARS")
    dedup_fold_titles: bool = Field(default=True, alias="DEDUP_FOLD_TITLES")

    mock_mode: bool = Field(default=False, alias="MOCK_MODE")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def tavily_keys(self) -> list:
        return [k.strip() for k in self.tavily_api_keys.split(",") if k.strip()]

    def get_llm_config(self) -> dict:
        """Get LLM configuration based on settings.

        Priority: OpenAI → OpenRouter → Ollama. Empty dict = no provider.
        """
        if self.openai_api_key:
            return {
                "provider": "openai",
                "api_key": self.openai_api_key,
                "model": self.openai_model,
            }
        elif self.openrouter_api_key:
            return {
                "provider": "openrouter",
                "api_key": self.openrouter_api_key,
                "model": self.openrouter_model,
                "base_url": "https://openrouter.ai/api/v1",
            }
        elif self.use_ollama:
            return {
                "provider": "ollama",
                "model": self.ollama_model,
                "base_url": f"{self.ollama_base_url}/v1",
            }
        return {}


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# ══════════════════════════════════════════════════════════════════════════════
# TIME WINDOWS
# ══════════════════════════════════════════════════════════════════════════════

PRESET_HOURS = {
    "24h": 24,
    "3d": 72,
    "7d": 168,
    "30d": 720,
}

# Coarse upstream time filters (search engines only know day/week/month/year)
UPSTREAM_TIME_RANGE = {
    "24h": "day",
    "3d": "week",
    "7d": "week",
    "30d": "month",
}


# ══════════════════════════════════════════════════════════════════════════════
# SOURCE CREDIBILITY
# ══════════════════════════════════════════════════════════════════════════════

# Regulators and registries: primary sources for approvals and filings
REGULATORY_DOMAINS = {
    "fda.gov", "ema.europa.eu", "europa.eu", "who.int", "nih.gov",
    "clinicaltrials.gov", "sec.gov", "gov.uk", "pmda.go.jp",
    "cdsco.gov.in", "canada.ca", "tga.gov.au", "swissmedic.ch",
    "hhs.gov", "cms.gov", "uspto.gov", "epo.org",
}

# Established pharma trade press and wire services
TRUSTED_NEWS_DOMAINS = {
    "reuters.com", "bloomberg.com", "ft.com", "wsj.com", "apnews.com",
    "fiercepharma.com", "fiercebiotech.com", "biopharmadive.com",
    "statnews.com", "endpts.com", "centerforbiosimilars.com",
    "gabionline.net", "biospace.com", "pharmaceutical-technology.com",
    "pharmatimes.com", "in-pharmatechnologist.com", "pharmaphorum.com",
    "evaluate.com", "raps.org", "businesswire.com", "prnewswire.com",
    "globenewswire.com", "nature.com", "thelancet.com", "nejm.org",
}

# Patterns that signal content farms, coupon sites and aggregators
LOW_TRUST_PATTERNS = (
    "coupon", "deals", "discount", "affiliate", "casino", "blogspot",
    "wordpress.com", "medium.com", "substack.com", "pinterest",
)

# Query parameters stripped before URLs are compared
TRACKING_QUERY_PARAMS = {
    "utm_source", "utm_medium", "utm_campaign", "utm_term", "utm_content",
    "utm_id", "utm_name", "gclid", "fbclid", "mc_cid", "mc_eid",
    "ref", "ref_src", "ref_url", "cmpid", "ocid", "oc",
}


# ══════════════════════════════════════════════════════════════════════════════
# MARKET IMPACT VOCABULARY
# ══════════════════════════════════════════════════════════════════════════════

# Multiplier applied to the materiality component per keyword-row business category.
# Matching is case-insensitive on substrings; unknown categories are neutral (1.0).
BUSINESS_CATEGORY_WEIGHTS = {
    "regulatory": 1.3,
    "approval": 1.3,
    "litigation": 1.25,
    "legal": 1.2,
    "ip": 1.2,
    "patent": 1.2,
    "m&a": 1.25,
    "deal": 1.15,
    "commercial": 1.15,
    "launch": 1.2,
    "market access": 1.1,
    "pricing": 1.1,
    "clinical": 1.05,
    "manufacturing": 1.0,
    "pipeline": 1.0,
    "general": 0.9,
    "other": 0.9,
}

# Term → weight. Title hits count double.
MATERIALITY_TERMS = {
    "approval": 10, "approved": 10, "approves": 10,
    "interchangeab": 10,
    "launch": 8, "launches": 8,
    "biologics license": 8, "bla": 6, "marketing authorisation": 8,
    "marketing authorization": 8, "chmp": 7, "positive opinion": 7,
    "patent": 7, "litigation": 7, "lawsuit": 7, "settlement": 7, "injunction": 7,
    "acquisition": 8, "acquire": 7, "merger": 8, "partnership": 5,
    "licensing": 5, "collaboration": 4, "agreement": 3,
    "earnings": 6, "revenue": 5, "sales": 3, "guidance": 5, "quarter": 3,
    "recall": 8, "warning letter": 8, "complete response letter": 9,
    "phase 3": 6, "phase iii": 6, "pivotal": 5,
    "tender": 4, "reimbursement": 4, "formulary": 5, "pricing": 4,
    "market share": 4, "uptake": 3,
}

# Clickbait / listicle markers that lower authenticity
CLICKBAIT_PATTERNS = [
    r"\byou won'?t believe\b",
    r"\bshocking\b",
    r"\btop\s+\d+\b",
    r"\bbest\s+\d+\b",
    r"\bmust[- ]see\b",
    r"\bpromo\s*code\b",
    r"\bsponsored\b",
]
