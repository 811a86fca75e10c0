"""LLM tooling for the content pipeline."""

from .client import JSON_SYSTEM_PROMPT, ChatClient, ChatClientError, ChatCompletion
from .cost import (
    MODEL_PRICING,
    BudgetExceededError,
    CostTracker,
    ModelPricing,
    TokenUsage,
    UsageSnapshot,
    register_model_pricing,
)
from .providers import (
    DEFAULT_FAST_MODEL,
    DEFAULT_MODEL,
    LangChainChatProvider,
    ProviderDependencyError,
    ProviderError,
    ProviderSettings,
    build_provider,
    extract_token_usage,
)

__all__ = [
    "MODEL_PRICING",
    "ModelPricing",
    "TokenUsage",
    "UsageSnapshot",
    "BudgetExceededError",
    "CostTracker",
    "register_model_pricing",
    "DEFAULT_MODEL",
    "DEFAULT_FAST_MODEL",
    "LangChainChatProvider",
    "ProviderError",
    "ProviderDependencyError",
    "ProviderSettings",
    "build_provider",
    "extract_token_usage",
    "ChatClient",
    "ChatClientError",
    "ChatCompletion",
    "JSON_SYSTEM_PROMPT",
]
