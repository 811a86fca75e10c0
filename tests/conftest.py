"""Shared fixtures for the test suite."""
from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping

import pytest

from pagegraph.content.schema import ProductRecord
from pagegraph.llm.client import ChatClientError, ChatCompletion
from pagegraph.llm.cost import CostTracker, ModelPricing

ENV_VARS = {
    "PAGEGRAPH_MODEL",
    "PAGEGRAPH_FAST_MODEL",
    "PAGEGRAPH_API_KEY",
    "GROQ_API_KEY",
    "PAGEGRAPH_BASE_URL",
    "PAGEGRAPH_TEMPERATURE",
    "PAGEGRAPH_MAX_TOKENS",
    "PAGEGRAPH_BUDGET_USD",
    "PAGEGRAPH_BUDGET_HARD",
    "PAGEGRAPH_MAX_ITERATIONS",
    "PAGEGRAPH_TIMEOUT_SECONDS",
}

# prompt fragments identifying each JSON request
PARSE = "data validation agent"
QUESTIONS = "question generation specialist"
FAQ = "content formatting specialist"
PRODUCT = "product marketing specialist"
COMPETITOR = "FICTIONAL competitor"
COMPARISON = "product comparison specialist"


@pytest.fixture(autouse=True)
def _clear_llm_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure LLM-related environment variables do not leak between tests."""

    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def dummy_chat_model(monkeypatch: pytest.MonkeyPatch):
    """Patch the LangChain chat client used by the provider abstraction."""

    from langchain_core.messages import AIMessage

    from pagegraph.llm import providers

    class DummyChatModel:
        def __init__(self, **kwargs: Any) -> None:
            self.kwargs = kwargs
            self.invocations: list[tuple[str, tuple[Iterable[Any], dict[str, Any]]]] = []

        def invoke(self, messages: Iterable[Any], **kwargs: Any) -> AIMessage:
            self.invocations.append(("invoke", (tuple(messages), dict(kwargs))))
            return AIMessage(content="sync reply")

        async def ainvoke(self, messages: Iterable[Any], **kwargs: Any) -> AIMessage:
            self.invocations.append(("ainvoke", (tuple(messages), dict(kwargs))))
            return AIMessage(
                content="async reply",
                usage_metadata={"input_tokens": 12, "output_tokens": 8, "total_tokens": 20},
            )

    monkeypatch.setattr(providers, "ChatOpenAI", DummyChatModel)
    return DummyChatModel


@pytest.fixture
def dummy_cost_tracker() -> CostTracker:
    """Provide a cost tracker with deterministic pricing for tests."""

    pricing = {
        "stub-model": ModelPricing(input_per_million=1.0, output_per_million=2.0),
        "alt-model": ModelPricing(input_per_million=10.0, output_per_million=20.0),
    }
    return CostTracker(pricing=pricing, budget_limit=5.0, warn_ratio=0.5)


class FakeChatClient:
    """Stands in for ``ChatClient``; JSON replies are picked by prompt fragment."""

    def __init__(
        self,
        responses: Mapping[str, Any] | None = None,
        answer: str | Exception | Callable[[str], str] = "A helpful answer.",
    ) -> None:
        self.responses = dict(responses or {})
        self.answer = answer
        self.json_calls: list[tuple[str, str | None]] = []
        self.calls: list[tuple[str, str | None]] = []

    async def complete_json(self, prompt: str, *, model: str | None = None, **_: Any) -> tuple[dict, int]:
        self.json_calls.append((prompt, model))
        for marker, response in self.responses.items():
            if marker in prompt:
                if isinstance(response, Exception):
                    raise response
                return copy.deepcopy(response), 10
        raise ChatClientError("No scripted response for prompt")

    async def complete(self, messages: Any, *, model: str | None = None, json_mode: bool = False) -> ChatCompletion:
        prompt = messages[-1].content
        self.calls.append((prompt, model))
        answer = self.answer
        if isinstance(answer, Exception):
            raise answer
        text = answer(prompt) if callable(answer) else answer
        return ChatCompletion(content=text, tokens_used=5, model=model or "fake-model")

    def prompts_for(self, marker: str) -> list[str]:
        return [prompt for prompt, _ in self.json_calls if marker in prompt]


@pytest.fixture
def product() -> ProductRecord:
    return ProductRecord(
        id="prod-1",
        name="GlowBoost Vitamin C Serum",
        concentration="10% Vitamin C",
        skin_type=["Oily", "Combination"],
        key_ingredients=["Vitamin C", "Hyaluronic Acid"],
        benefits=["Brightening: evens out skin tone", "Fades dark spots"],
        how_to_use="Apply 2-3 drops in the morning before sunscreen",
        side_effects="Mild tingling for sensitive skin",
        price="₹699",
    )


@pytest.fixture
def scripted_responses() -> dict[str, Any]:
    return {
        PARSE: {
            "id": "llm-invented-id",
            "name": "GlowBoost Vitamin C Serum",
            "concentration": "10% Vitamin C",
            "skin_type": ["Oily", "Combination"],
            "key_ingredients": ["Vitamin C", "Hyaluronic Acid"],
            "benefits": ["Brightening: evens out skin tone", "Fades dark spots"],
            "how_to_use": "Apply 2-3 drops in the morning before sunscreen",
            "side_effects": None,
            "price": "₹699",
        },
        QUESTIONS: {
            "questions": [
                {"id": "q1", "category": "Informational", "question": "What does the serum do?"},
                {"category": "Safety", "question": "Is it safe for sensitive skin?"},
                {"id": "q3", "category": "Informational", "question": "How long does a bottle last?"},
            ]
        },
        FAQ: {
            "title": "Frequently Asked Questions - GlowBoost Vitamin C Serum",
            "description": "Everything about GlowBoost.",
            "faqs": [
                {"category": "Informational", "question": "What does the serum do?", "answer": "It brightens."}
            ],
        },
        PRODUCT: {
            "title": "GlowBoost Vitamin C Serum",
            "tagline": "Brighter skin every morning",
            "description": "A lightweight vitamin C serum.",
            "key_features": [{"title": "Brightening", "description": "Evens out skin tone"}],
            "ingredients": [{"name": "Vitamin C", "benefit": "Antioxidant"}],
            "usage": {"title": "How to Use", "steps": ["Apply 2-3 drops"], "tips": ["Follow with SPF"]},
            "safety": {"warnings": ["Patch test"], "side_effects": ["Mild tingling"]},
            "pricing": {"price": "₹699", "value_proposition": "Great value"},
        },
        COMPETITOR: {
            "id": "competitor-1",
            "name": "RadiantC Daily Serum",
            "concentration": "12% Vitamin C",
            "skin_type": "Normal, Dry",
            "key_ingredients": ["Vitamin C", "Ferulic Acid"],
            "benefits": ["Brightening"],
            "how_to_use": "Apply at night",
            "side_effects": "",
            "price": 799,
        },
        COMPARISON: {
            "title": "GlowBoost vs RadiantC",
            "product_a": {"name": "GlowBoost Vitamin C Serum", "price": "₹699"},
            "product_b": {"name": "RadiantC Daily Serum", "price": "₹799"},
            "comparison": [
                {"aspect": "Price", "product_a": "₹699", "product_b": "₹799", "winner": "A"},
                {"aspect": "Concentration", "product_a": "10%", "product_b": "12%", "winner": "B"},
            ],
            "recommendation": {"best_for": {"budget": "A", "potency": "B"}, "summary": "Both work."},
        },
    }


@pytest.fixture
def fake_client(scripted_responses: dict[str, Any]) -> FakeChatClient:
    return FakeChatClient(scripted_responses)


@pytest.fixture
def make_client() -> type[FakeChatClient]:
    return FakeChatClient


@pytest.fixture
def catalog_path(tmp_path: Path, product: ProductRecord) -> Path:
    path = tmp_path / "products.json"
    path.write_text(json.dumps({"products": [product.model_dump()]}), encoding="utf-8")
    return path


@pytest.fixture
def markers() -> dict[str, str]:
    return {
        "parse": PARSE,
        "questions": QUESTIONS,
        "faq": FAQ,
        "product": PRODUCT,
        "competitor": COMPETITOR,
        "comparison": COMPARISON,
    }
