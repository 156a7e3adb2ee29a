"""OpenAI-based LLM provider."""

from __future__ import annotations

import logging
import os

import openai
from openai import OpenAI

from campaign_studio.config import GeneratorConfig
from campaign_studio.errors import ErrorKind, GenerationError
from campaign_studio.llm.base import LLMProvider

logger = logging.getLogger(__name__)


class OpenAIProvider(LLMProvider):
    """LLM provider backed by the OpenAI chat completions API."""

    def __init__(self, config: GeneratorConfig | None = None, api_key: str | None = None) -> None:
        api_key = api_key or os.environ.get("OPENAI_API_KEY")
        if not api_key:
            raise EnvironmentError(
                "OPENAI_API_KEY environment variable is not set. "
                "Export it before running generation commands:\n"
                "  export OPENAI_API_KEY='sk-...'"
            )
        self.config = config or GeneratorConfig()
        self.schema_retries = self.config.schema_retries
        self._client = OpenAI(
            api_key=api_key,
            timeout=self.config.timeout_seconds,
            max_retries=self.config.max_retries,
        )
        self.model = self.config.model

    def generate_text(self, system: str, user: str) -> str:
        return self._complete(system, user, self.config.temperature)

    def generate_json_text(self, system: str, user: str) -> str:
        return self._complete(system, user, self.config.structured_temperature)

    def _complete(self, system: str, user: str, temperature: float) -> str:
        try:
            response = self._client.chat.completions.create(
                model=self.model,
                temperature=temperature,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
            )
        except openai.APITimeoutError as exc:
            logger.warning("OpenAI request timed out after %.0fs", self.config.timeout_seconds)
            raise GenerationError(ErrorKind.UPSTREAM_UNAVAILABLE, f"timeout: {exc}") from exc
        except openai.APIError as exc:
            logger.warning("OpenAI request failed: %s", exc)
            raise GenerationError(ErrorKind.UPSTREAM_UNAVAILABLE, str(exc)) from exc
        choice = response.choices[0]
        return choice.message.content or ""
