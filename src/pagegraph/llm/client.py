"""Retrying async chat client with JSON-mode helpers."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Sequence

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from .cost import CostTracker
from .providers import LangChainChatProvider, ProviderError, extract_token_usage

__all__ = ["ChatCompletion", "ChatClientError", "ChatClient", "JSON_SYSTEM_PROMPT"]

logger = logging.getLogger(__name__)

JSON_SYSTEM_PROMPT = "You are a helpful assistant. Always respond with valid JSON only, no other text."


@dataclass(frozen=True, slots=True)
class ChatCompletion:
    content: str
    tokens_used: int
    model: str


class ChatClientError(ProviderError):
    """Raised when a completion cannot be obtained or understood."""


class ChatClient:
    """Async facade over one or more :class:`LangChainChatProvider` instances.

    Provider failures are retried with a linear backoff; a response that is
    empty or not valid JSON (in JSON mode) fails immediately.
    """

    def __init__(
        self,
        provider: LangChainChatProvider,
        *,
        cost_tracker: CostTracker | None = None,
        max_attempts: int = 3,
        retry_delay: float = 1.0,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._default = provider
        self._providers: Dict[str, LangChainChatProvider] = {provider.model: provider}
        self.cost_tracker = cost_tracker or CostTracker()
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay

    @property
    def model(self) -> str:
        return self._default.model

    def _provider_for(self, model: str | None) -> LangChainChatProvider:
        if not model or model == self._default.model:
            return self._default
        provider = self._providers.get(model)
        if provider is None:
            provider = self._default.with_model(model)
            self._providers[model] = provider
        return provider

    async def complete(
        self,
        messages: Sequence[BaseMessage],
        *,
        model: str | None = None,
        json_mode: bool = False,
    ) -> ChatCompletion:
        provider = self._provider_for(model)
        kwargs: dict[str, Any] = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        last_error: Exception | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                response = await provider.ainvoke(list(messages), **kwargs)
            except ProviderError as exc:
                last_error = exc
                if attempt == self.max_attempts:
                    break
                logger.warning(
                    "Attempt %s/%s for model '%s' failed, retrying: %s",
                    attempt,
                    self.max_attempts,
                    provider.model,
                    exc,
                )
                await asyncio.sleep(self.retry_delay * attempt)
                continue

            content = _message_text(response).strip()
            if not content:
                raise ChatClientError(f"Missing content in response from model '{provider.model}'")
            usage = extract_token_usage(response)
            self.cost_tracker.record(provider.model, usage["prompt_tokens"], usage["completion_tokens"])
            return ChatCompletion(content=content, tokens_used=usage["total_tokens"], model=provider.model)

        raise ChatClientError(
            f"Model '{provider.model}' failed after {self.max_attempts} attempts: {last_error}"
        ) from last_error

    async def complete_json(
        self,
        prompt: str,
        *,
        model: str | None = None,
        system_prompt: str = JSON_SYSTEM_PROMPT,
    ) -> tuple[dict[str, Any], int]:
        """Send ``prompt`` in JSON mode and return the decoded object and tokens used."""

        completion = await self.complete(
            [SystemMessage(content=system_prompt), HumanMessage(content=prompt)],
            model=model,
            json_mode=True,
        )
        try:
            data = json.loads(_strip_fences(completion.content))
        except json.JSONDecodeError as exc:
            raise ChatClientError(
                f"Failed to parse LLM response as JSON. Content: {completion.content[:200]}"
            ) from exc
        if not isinstance(data, dict):
            raise ChatClientError(f"Expected a JSON object, got {type(data).__name__}")
        return data, completion.tokens_used


def _message_text(response: Any) -> str:
    content = getattr(response, "content", response)
    if isinstance(content, list):
        return "".join(
            segment.get("text", "") if isinstance(segment, dict) else str(segment) for segment in content
        )
    return str(content or "")


def _strip_fences(text: str) -> str:
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = stripped.split("\n", 1)[1] if "\n" in stripped else ""
        if stripped.rstrip().endswith("```"):
            stripped = stripped.rstrip()[:-3]
    return stripped.strip()
