"""Claude API integration: the text-generation capability and JSON extraction."""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any

import anthropic

from nftpersona.core.config import anthropic_api_key
from nftpersona.core.exceptions import ConfigError, GenerationError, ResponseParseError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"

# Greedy: first "{" through last "}"
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class TextGenerator(ABC):
    """Given a prompt, return generated text."""

    @property
    def configured(self) -> bool:
        return True

    @abstractmethod
    async def generate(self, prompt: str, max_tokens: int | None = None) -> str:
        ...


class ClaudeGenerator(TextGenerator):
    def __init__(self, config: dict, api_key: str | None = None) -> None:
        self.config = config
        self.model = config.get("model", DEFAULT_MODEL)
        self.max_tokens = config.get("max_tokens", 4096)
        self.timeout = float(config.get("timeout", 60.0))
        self.max_retries = int(config.get("max_retries", 2))
        self.api_key = api_key if api_key is not None else anthropic_api_key()
        self._client: anthropic.AsyncAnthropic | None = None

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            if not self.api_key:
                raise ConfigError("ANTHROPIC_API_KEY not set")
            self._client = anthropic.AsyncAnthropic(
                api_key=self.api_key, timeout=self.timeout, max_retries=self.max_retries,
            )
        return self._client

    async def generate(self, prompt: str, max_tokens: int | None = None) -> str:
        client = self.client()
        try:
            response = await client.messages.create(
                model=self.model,
                max_tokens=max_tokens or self.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as e:
            raise GenerationError(f"Claude request failed: {e}", {"model": self.model}) from e

        logger.info(
            "[llm] model=%s input_tokens=%d output_tokens=%d",
            self.model, response.usage.input_tokens, response.usage.output_tokens,
        )
        return "".join(block.text for block in response.content if block.type == "text")


def extract_json(text: str) -> Any:
    """Decode the first-brace-to-last-brace span of ``text``.

    Raises ResponseParseError when there is no such span and lets
    ``json.JSONDecodeError`` through when the span is not valid JSON.
    """
    match = _JSON_OBJECT.search(text)
    if not match:
        raise ResponseParseError("No JSON found in Claude response", {"response": text[:500]})
    return json.loads(match.group(0))
