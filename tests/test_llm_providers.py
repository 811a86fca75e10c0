from __future__ import annotations

import asyncio

import pytest
from langchain_core.messages import AIMessage, HumanMessage

from pagegraph.llm.providers import (
    LangChainChatProvider,
    ProviderDependencyError,
    ProviderError,
    ProviderSettings,
    build_provider,
    extract_token_usage,
)


def test_build_provider_prefers_explicit_over_env(monkeypatch: pytest.MonkeyPatch, dummy_chat_model) -> None:
    monkeypatch.setenv("PAGEGRAPH_MODEL", "env-model")
    monkeypatch.setenv("PAGEGRAPH_BASE_URL", "https://env.example")
    monkeypatch.setenv("PAGEGRAPH_API_KEY", "env-key")
    monkeypatch.setenv("PAGEGRAPH_TEMPERATURE", "0.25")
    monkeypatch.setenv("PAGEGRAPH_MAX_TOKENS", "512")

    provider = build_provider(
        model="cli-model",
        temperature=0.9,
        max_tokens=2048,
        timeout=30.0,
    )

    assert isinstance(provider, LangChainChatProvider)
    assert provider.model == "cli-model"
    settings = provider.settings
    assert settings.base_url == "https://env.example"
    assert settings.api_key == "env-key"
    assert settings.temperature == 0.9
    assert settings.max_tokens == 2048
    assert settings.timeout == 30.0

    dummy_instance = provider._client  # type: ignore[attr-defined]
    assert dummy_instance.kwargs["model"] == "cli-model"
    assert dummy_instance.kwargs["temperature"] == 0.9


def test_build_provider_uses_env_fallbacks_when_not_overridden(monkeypatch: pytest.MonkeyPatch, dummy_chat_model) -> None:
    monkeypatch.setenv("GROQ_API_KEY", "groq-key")
    monkeypatch.setenv("PAGEGRAPH_TEMPERATURE", "0.1")

    provider = build_provider()

    assert provider.model == "llama-3.3-70b-versatile"
    settings = provider.settings
    assert settings.base_url == "https://api.groq.com/openai/v1"
    assert settings.api_key == "groq-key"
    assert settings.temperature == 0.1
    assert settings.max_tokens is None


def test_build_provider_raises_dependency_error(monkeypatch: pytest.MonkeyPatch) -> None:
    from pagegraph import llm

    monkeypatch.setattr(llm.providers, "ChatOpenAI", None)
    with pytest.raises(ProviderDependencyError):
        build_provider()


def test_provider_settings_as_kwargs_filters_none() -> None:
    settings = ProviderSettings(model="demo", base_url=None, temperature=0.5, max_tokens=None, timeout=None)
    kwargs = settings.as_kwargs()
    assert kwargs == {"model": "demo", "temperature": 0.5}


def test_langchain_chat_provider_propagates_invocation(dummy_chat_model) -> None:
    provider = build_provider(model="demo-model")

    response = provider.invoke([HumanMessage(content="hi")], test=True)
    assert response.content == "sync reply"

    async_response = asyncio.run(provider.ainvoke([HumanMessage(content="hi")]))
    assert async_response.content == "async reply"

    dummy_instance = provider._client  # type: ignore[attr-defined]
    assert [kind for kind, _ in dummy_instance.invocations] == ["invoke", "ainvoke"]
    assert dummy_instance.invocations[0][1][1] == {"test": True}


def test_provider_wraps_backend_errors(dummy_chat_model) -> None:
    provider = build_provider(model="demo-model")

    async def explode(messages, **kwargs):
        raise ConnectionError("reset by peer")

    provider._client.ainvoke = explode  # type: ignore[attr-defined]

    with pytest.raises(ProviderError, match="reset by peer"):
        asyncio.run(provider.ainvoke([HumanMessage(content="hi")]))


def test_with_model_builds_sibling_provider(dummy_chat_model) -> None:
    provider = build_provider(model="big", api_key="key")

    sibling = provider.with_model("small", temperature=0.0)

    assert sibling.model == "small"
    assert sibling.settings.api_key == "key"
    assert sibling.settings.temperature == 0.0
    assert provider.model == "big"


def test_extract_token_usage_prefers_usage_metadata() -> None:
    message = AIMessage(
        content="x",
        usage_metadata={"input_tokens": 3, "output_tokens": 4, "total_tokens": 7},
        response_metadata={"token_usage": {"prompt_tokens": 100, "completion_tokens": 100}},
    )

    assert extract_token_usage(message) == {"prompt_tokens": 3, "completion_tokens": 4, "total_tokens": 7}


def test_extract_token_usage_falls_back_to_response_metadata() -> None:
    message = AIMessage(content="x", response_metadata={"token_usage": {"prompt_tokens": 5, "completion_tokens": 6}})

    assert extract_token_usage(message) == {"prompt_tokens": 5, "completion_tokens": 6, "total_tokens": 11}
    assert extract_token_usage("plain text") == {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}
