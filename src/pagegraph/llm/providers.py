"""LangChain chat provider used by the content pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Sequence, Tuple

from langchain_core.messages import BaseMessage

try:  # pragma: no cover - import guard for optional dependency
    from langchain_openai import ChatOpenAI
except ImportError:  # pragma: no cover - gracefully degrade when dependency missing
    ChatOpenAI = None  # type: ignore[assignment]

__all__ = [
    "DEFAULT_MODEL",
    "DEFAULT_FAST_MODEL",
    "DEFAULT_BASE_URL",
    "ProviderError",
    "ProviderDependencyError",
    "ProviderSettings",
    "LangChainChatProvider",
    "build_provider",
    "extract_token_usage",
]

MessagesLike = Sequence[BaseMessage] | Sequence[Mapping[str, Any]]

DEFAULT_MODEL = "llama-3.3-70b-versatile"
DEFAULT_FAST_MODEL = "llama-3.1-8b-instant"
DEFAULT_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_MODEL_ENVS: Tuple[str, ...] = ("PAGEGRAPH_MODEL",)
DEFAULT_API_KEY_ENVS: Tuple[str, ...] = ("PAGEGRAPH_API_KEY", "GROQ_API_KEY")
DEFAULT_BASE_URL_ENVS: Tuple[str, ...] = ("PAGEGRAPH_BASE_URL",)
DEFAULT_TEMPERATURE_ENV = "PAGEGRAPH_TEMPERATURE"
DEFAULT_MAX_TOKEN_ENV = "PAGEGRAPH_MAX_TOKENS"


class ProviderError(RuntimeError):
    """Base error raised when interacting with a chat provider."""


class ProviderDependencyError(ProviderError):
    """Raised when required dependencies are unavailable."""


@dataclass(slots=True)
class ProviderSettings:
    """Settings bundle for one chat model client."""

    model: str = DEFAULT_MODEL
    base_url: str | None = DEFAULT_BASE_URL
    api_key: str | None = None
    temperature: float = 0.7
    max_tokens: int | None = None
    timeout: float | None = None

    def as_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "temperature": self.temperature,
        }
        if self.base_url:
            kwargs["base_url"] = self.base_url
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.max_tokens is not None:
            kwargs["max_tokens"] = self.max_tokens
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout
        return kwargs


class LangChainChatProvider:
    """Thin async-capable wrapper around ``langchain_openai.ChatOpenAI``."""

    def __init__(self, settings: ProviderSettings):
        if ChatOpenAI is None:
            raise ProviderDependencyError(
                "langchain-openai is required to instantiate LangChainChatProvider"
            )
        self.settings = settings
        self._client = self._build_client(settings)

    def _build_client(self, settings: ProviderSettings):
        try:
            return ChatOpenAI(**settings.as_kwargs())  # type: ignore[arg-type]
        except Exception as exc:  # pragma: no cover - passthrough
            raise ProviderError(f"Failed to initialise chat model '{settings.model}': {exc}") from exc

    @property
    def model(self) -> str:
        return self.settings.model

    def invoke(self, messages: MessagesLike, **kwargs: Any) -> Any:
        try:
            return self._client.invoke(messages, **kwargs)
        except Exception as exc:
            raise ProviderError(f"Invocation failed for model '{self.settings.model}': {exc}") from exc

    async def ainvoke(self, messages: MessagesLike, **kwargs: Any) -> Any:
        try:
            return await self._client.ainvoke(messages, **kwargs)
        except Exception as exc:
            raise ProviderError(f"Invocation failed for model '{self.settings.model}': {exc}") from exc

    def with_model(self, model: str, **overrides: Any) -> "LangChainChatProvider":
        new_settings = replace(self.settings, model=model)
        for key, value in overrides.items():
            if hasattr(new_settings, key):
                setattr(new_settings, key, value)
        return self.__class__(new_settings)


def build_provider(
    *,
    model: str | None = None,
    base_url: str | None = None,
    api_key: str | None = None,
    temperature: float | None = None,
    max_tokens: int | None = None,
    timeout: float | None = None,
    api_key_envs: Sequence[str] | None = None,
) -> LangChainChatProvider:
    """Factory that mirrors CLI/env resolution for provider credentials."""

    settings = ProviderSettings(
        model=model or _resolve_from_env(DEFAULT_MODEL_ENVS) or DEFAULT_MODEL,
        base_url=base_url or _resolve_from_env(DEFAULT_BASE_URL_ENVS) or DEFAULT_BASE_URL,
        api_key=api_key or _resolve_from_env(api_key_envs or DEFAULT_API_KEY_ENVS),
        temperature=_coerce_float(temperature, os.getenv(DEFAULT_TEMPERATURE_ENV), default=0.7),
        max_tokens=_coerce_int(max_tokens, os.getenv(DEFAULT_MAX_TOKEN_ENV)),
        timeout=timeout,
    )
    return LangChainChatProvider(settings)


def extract_token_usage(message: Any) -> Dict[str, int]:
    """Normalise usage metadata reported by different LangChain backends."""

    usage: Dict[str, Any] = {}
    if getattr(message, "usage_metadata", None):
        usage.update(message.usage_metadata)

    response_meta = getattr(message, "response_metadata", None) or {}
    if isinstance(response_meta, dict) and not usage:
        for key in ("token_usage", "usage"):
            maybe_usage = response_meta.get(key)
            if isinstance(maybe_usage, dict):
                usage.update(maybe_usage)
                break

    prompt_tokens = int(usage.get("input_tokens") or usage.get("prompt_tokens") or 0)
    completion_tokens = int(usage.get("output_tokens") or usage.get("completion_tokens") or 0)
    total_tokens = int(usage.get("total_tokens") or prompt_tokens + completion_tokens)
    return {
        "prompt_tokens": prompt_tokens,
        "completion_tokens": completion_tokens,
        "total_tokens": total_tokens,
    }


def _resolve_from_env(envs: Sequence[str]) -> str | None:
    for env_name in envs:
        value = os.getenv(env_name)
        if value:
            return value
    return None


def _coerce_float(explicit: float | None, env_value: str | None, *, default: float) -> float:
    if explicit is not None:
        return explicit
    if env_value is None:
        return default
    try:
        return float(env_value)
    except ValueError:  # pragma: no cover
        return default


def _coerce_int(explicit: int | None, env_value: str | None) -> int | None:
    if explicit is not None:
        return explicit
    if env_value is None:
        return None
    try:
        return int(env_value)
    except ValueError:  # pragma: no cover
        return None
