from __future__ import annotations

import os
from typing import Dict, List, Optional

import httpx
import logging
import openai
from openai import AsyncOpenAI

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-3.5-turbo"


class CompletionError(Exception):
    """Raised when the completion service cannot produce a reply."""


class ServiceUnavailable(CompletionError):
    pass


class EmptyResponse(CompletionError):
    pass


class CompletionClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 150,
        timeout: float = 20.0,
        max_retries: int = 2,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self.model = model or os.getenv("OPENAI_MODEL") or DEFAULT_MODEL
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._client: Optional[AsyncOpenAI] = None
        if self.api_key:
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=base_url or os.getenv("OPENAI_BASE_URL") or None,
                timeout=timeout,
                max_retries=max_retries,
                http_client=http_client,
            )

    @property
    def configured(self) -> bool:
        return self._client is not None

    async def complete(self, messages: List[Dict[str, str]]) -> str:
        """Send an already bounded chat history (system message first) and return the reply text."""
        if self._client is None:
            raise ServiceUnavailable("OPENAI_API_KEY not configured")

        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except openai.OpenAIError as exc:
            logger.warning("llm.request_error model=%s err=%s", self.model, exc)
            raise ServiceUnavailable(str(exc)) from exc

        choices = getattr(response, "choices", None) or []
        if not choices:
            logger.info("llm.no_choices model=%s", self.model)
            raise EmptyResponse("completion returned no choices")
        content = getattr(choices[0].message, "content", None)
        if not isinstance(content, str) or not content.strip():
            logger.info("llm.empty_content model=%s", self.model)
            raise EmptyResponse("completion returned no content")
        return content.strip()
