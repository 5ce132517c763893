"""
AI keyword expansion - related search phrases for one taxonomy keyword.

The planner treats this as an unreliable collaborator: any exception or
timeout here means "search the literal keyword only".
"""

import logging
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ..config import get_settings
from .llm_service import LLMService

logger = logging.getLogger(__name__)


class KeywordExpansion(BaseModel):
    """Structured output of the expansion agent."""
    phrases: List[str] = Field(default_factory=list)

    @field_validator("phrases", mode="before")
    @classmethod
    def coerce_phrases(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [p for p in (s.strip() for s in v.split("\n")) if p]
        return [str(p).strip() for p in v if p is not None and str(p).strip()]


EXPANSION_PROMPT = """\
You help a biosimilar-industry intelligence team search the news.

Given one monitoring keyword, propose short web-search phrases that find
news stories about the same topic written with different wording: molecule
and brand names, regulator names (FDA, EMA, CHMP), event types (approval,
launch, interchangeability, patent settlement, tender) and common synonyms.

Rules:
- 2 to 6 words per phrase, no quotes, no boolean operators.
- Do not repeat the keyword itself.
- Prefer phrases a journalist would actually write in a headline.
"""


class KeywordExpander:
    """Asks the LLM for up to `max_phrases` related search phrases."""

    def __init__(self, llm: Optional[LLMService] = None, max_phrases: Optional[int] = None):
        self.settings = get_settings()
        self.llm = llm or LLMService()
        self.max_phrases = max_phrases or self.settings.expansion_max_phrases

    @property
    def available(self) -> bool:
        return self.settings.ai_expansion_enabled and self.llm.available

    async def expand(self, keyword: str) -> List[str]:
        result = await self.llm.run_structured(
            prompt=f"Keyword: {keyword}\nReturn at most {self.max_phrases} phrases.",
            system_prompt=EXPANSION_PROMPT,
            output_type=KeywordExpansion,
            retries=1,
        )
        logger.debug(f"Expansion '{keyword}' → {result.phrases}")
        return result.phrases[: self.max_phrases]
