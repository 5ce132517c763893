"""
Tavily Search Tool - pure Tavily API wrapper, no fallback logic.

The AI search fetcher decides what to do when results are empty or an
error is returned. Key rotation: set TAVILY_API_KEYS (comma-separated).
"""

import logging
import threading
from typing import Any, Dict, Optional

from ..config import get_settings

logger = logging.getLogger(__name__)

# Low-signal domains always excluded
_NOISE_DOMAINS = [
    "reddit.com", "quora.com", "wikipedia.org",
    "youtube.com", "facebook.com", "twitter.com", "x.com", "pinterest.com",
]


class TavilyTool:
    """
    Pure Tavily API wrapper.

    Returns raw Tavily results - or {"error": "...", "results": []} on failure.

    Two search modes:
      search()       - general web
      news_search()  - topic="news", publish dates included in results
    """

    _key_index = 0
    _lock = threading.Lock()

    def __init__(self, mock_mode: bool = False):
        self.settings = get_settings()
        self.mock_mode = mock_mode or self.settings.mock_mode
        self._keys = self.settings.tavily_keys
        if self._keys:
            logger.info(f"Tavily: {len(self._keys)} key(s) loaded for rotation")

    # ── Key management ────────────────────────────────────────────────────────

    def _next_key(self) -> str:
        """Round-robin key selection - thread-safe."""
        with self._lock:
            key = self._keys[TavilyTool._key_index % len(self._keys)]
            TavilyTool._key_index += 1
            return key

    @property
    def available(self) -> bool:
        return not self.mock_mode and self.settings.tavily_enabled and bool(self._keys)

    # ── Core search ───────────────────────────────────────────────────────────

    async def search(
        self,
        query: str,
        max_results: int = 5,
        topic: str = "general",
        time_range: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Call Tavily and return the raw result dict.

        On quota exhaustion or API error, returns {"error": "...", "results": []}.

        topic:        "general" | "news" | "finance"
        time_range:   "day" | "week" | "month" | "year"
        """
        if not self.available:
            return {"error": "Tavily disabled or no keys configured", "results": []}

        from tavily import AsyncTavilyClient
        from tavily.errors import UsageLimitExceededError, InvalidAPIKeyError

        for _ in range(len(self._keys)):
            key = self._next_key()
            hint = f"...{key[-4:]}"
            try:
                client = AsyncTavilyClient(api_key=key)
                kwargs: Dict[str, Any] = dict(
                    query=query,
                    search_depth="basic",
                    max_results=max_results,
                    include_answer=False,
                    topic=topic,
                    exclude_domains=_NOISE_DOMAINS,
                )
                if time_range:
                    kwargs["time_range"] = time_range

                result = await client.search(**kwargs)
                n = len(result.get("results", []))
                logger.info(f"Tavily [{hint}] '{query[:50]}' → {n} results")
                return result

            except (UsageLimitExceededError, InvalidAPIKeyError) as e:
                logger.warning(f"Tavily key {hint} quota/invalid: {e} - rotating")
                continue
            except Exception as e:
                logger.error(f"Tavily [{hint}] error: {e}")
                return {"error": str(e), "results": []}

        logger.warning("All Tavily keys exhausted")
        return {"error": "all_keys_exhausted", "results": []}

    async def news_search(self, query: str, time_range: str = "week", max_results: int = 8) -> Dict[str, Any]:
        """Fresh news - topic=news so results carry published_date."""
        return await self.search(
            query=query,
            topic="news",
            time_range=time_range,
            max_results=max_results,
        )
