from __future__ import annotations

import logging
from typing import Protocol

from groq import Groq

from .config import DEFAULT_LLM_CONFIG, LLMConfig

logger = logging.getLogger(__name__)


class CompletionClient(Protocol):
    """Anything that turns a system prompt and a user message into text."""

    model: str

    def complete(self, system: str, message: str, temperature: float = 0.1) -> str: ...


class LLMUnavailableError(RuntimeError):
    """Raised when completions are requested but the LLM is disabled or unconfigured."""


class GroqCompletionClient:
    """
    Completion capability backed by the Groq chat API.

    The underlying SDK client is created on first use and reused for every
    later call; it holds no per-request state.
    """

    def __init__(self, config: LLMConfig = DEFAULT_LLM_CONFIG) -> None:
        self.config = config
        self.model = config.model
        self._client: Groq | None = None

    @property
    def available(self) -> bool:
        return self.config.enabled and bool(self.config.api_key)

    def _get_client(self) -> Groq:
        if self._client is None:
            self._client = Groq(api_key=self.config.api_key, timeout=self.config.timeout)
        return self._client

    def complete(self, system: str, message: str, temperature: float = 0.1) -> str:
        if not self.available:
            raise LLMUnavailableError("Groq completions are disabled or GROQ_API_KEY is not set")

        response = self._get_client().chat.completions.create(
            model=self.config.model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": message},
            ],
            max_tokens=self.config.max_tokens,
            temperature=temperature,
        )
        content = response.choices[0].message.content or ""
        logger.debug("Groq completion (%s chars) from %s", len(content), self.config.model)
        return content
