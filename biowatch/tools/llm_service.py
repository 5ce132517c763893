"""
LLM Service - pydantic-ai backed structured output.

Builds one OpenAI-compatible model from settings (OpenAI, OpenRouter or a
local Ollama endpoint) and runs typed agents against it. Agents are cached
per (output type, system prompt, retries).
"""

import logging
from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic_ai import Agent
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider
from pydantic_ai.settings import ModelSettings

from ..config import get_settings

logger = logging.getLogger(__name__)

T = TypeVar('T', bound=BaseModel)


class LLMService:
    """High-level LLM service backed by pydantic-ai."""

    # Cache agents by (output_type, system_prompt_hash, retries) across all instances
    _agent_cache: Dict[tuple, Agent] = {}

    def __init__(self, mock_mode: bool = False):
        self.settings = get_settings()
        self.mock_mode = mock_mode or self.settings.mock_mode
        self._llm_config = {} if self.mock_mode else self.settings.get_llm_config()
        if self._llm_config:
            logger.info(f"LLM: {self._llm_config['provider']}/{self._llm_config['model']}")
        else:
            logger.info("LLM: no provider configured (AI features disabled)")

    @property
    def available(self) -> bool:
        return bool(self._llm_config)

    def _build_model(self) -> OpenAIChatModel:
        """Every supported provider speaks the OpenAI chat protocol."""
        cfg = self._llm_config
        provider_kwargs: Dict[str, Any] = {}
        if cfg.get("base_url"):
            provider_kwargs["base_url"] = cfg["base_url"]
        if cfg.get("api_key"):
            provider_kwargs["api_key"] = cfg["api_key"]
        return OpenAIChatModel(
            model_name=cfg["model"],
            provider=OpenAIProvider(**provider_kwargs),
        )

    def _get_or_create_agent(self, output_type: type, system_prompt: str, retries: int = 2) -> Agent:
        key = (output_type, hash(system_prompt), retries, self._llm_config.get("provider"), self._llm_config.get("model"))
        if key not in self._agent_cache:
            self._agent_cache[key] = Agent(
                self._build_model(),
                output_type=output_type,
                system_prompt=system_prompt,
                retries=retries,
            )
        return self._agent_cache[key]

    async def run_structured(
        self,
        prompt: str,
        system_prompt: str = "",
        output_type: Type[T] = str,  # type: ignore[assignment]
        retries: int = 2,
        temperature: float = 0.3,
    ) -> T:
        """Generate structured output validated by pydantic-ai.

        Raises RuntimeError when no provider is configured; provider errors
        propagate to the caller, which owns the fallback.
        """
        if not self.available:
            raise RuntimeError("No LLM provider configured")
        agent = self._get_or_create_agent(output_type, system_prompt, retries)
        result = await agent.run(
            prompt,
            model_settings=ModelSettings(temperature=temperature),
        )
        return result.output
