"""Token accounting and spend guardrails for chat model calls."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Mapping

__all__ = [
    "MODEL_PRICING",
    "ModelPricing",
    "TokenUsage",
    "UsageSnapshot",
    "BudgetExceededError",
    "CostTracker",
    "register_model_pricing",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ModelPricing:
    """USD price per one million input and output tokens."""

    input_per_million: float
    output_per_million: float

    def estimate_cost(self, prompt_tokens: int, completion_tokens: int) -> float:
        return (
            prompt_tokens * self.input_per_million + completion_tokens * self.output_per_million
        ) / 1_000_000


MODEL_PRICING: Dict[str, ModelPricing] = {
    "llama-3.3-70b-versatile": ModelPricing(input_per_million=0.59, output_per_million=0.79),
    "llama-3.1-8b-instant": ModelPricing(input_per_million=0.05, output_per_million=0.08),
    "gpt-4o-mini": ModelPricing(input_per_million=0.15, output_per_million=0.60),
}


@dataclass(slots=True)
class TokenUsage:
    """Running per-model tally."""

    calls: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    cost_usd: float = 0.0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    def to_dict(self) -> dict[str, float | int]:
        return {
            "calls": self.calls,
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
            "cost_usd": round(self.cost_usd, 6),
        }


@dataclass(frozen=True, slots=True)
class UsageSnapshot:
    """What a single call consumed."""

    model: str
    prompt_tokens: int
    completion_tokens: int
    cost_usd: float

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class BudgetExceededError(RuntimeError):
    """Raised when recorded spend breaches a hard budget."""


@dataclass(slots=True)
class CostTracker:
    """Accumulates usage across a run; optionally enforces a hard USD limit."""

    pricing: Mapping[str, ModelPricing] = field(default_factory=lambda: MODEL_PRICING)
    budget_limit: float | None = None
    warn_ratio: float = 0.9
    _usage: Dict[str, TokenUsage] = field(default_factory=dict, init=False, repr=False)
    _warned: bool = field(default=False, init=False, repr=False)

    @property
    def total_cost(self) -> float:
        return sum(usage.cost_usd for usage in self._usage.values())

    @property
    def total_tokens(self) -> int:
        return sum(usage.total_tokens for usage in self._usage.values())

    def record(self, model: str, prompt_tokens: int, completion_tokens: int) -> UsageSnapshot:
        pricing = self.pricing.get(model)
        cost = pricing.estimate_cost(prompt_tokens, completion_tokens) if pricing else 0.0
        usage = self._usage.setdefault(model, TokenUsage())
        usage.calls += 1
        usage.prompt_tokens += prompt_tokens
        usage.completion_tokens += completion_tokens
        usage.cost_usd += cost

        if self.budget_limit is not None:
            spent = self.total_cost
            if spent > self.budget_limit:
                raise BudgetExceededError(
                    f"Budget limit {self.budget_limit:.4f} USD exceeded: {spent:.4f} USD"
                )
            if not self._warned and spent >= self.budget_limit * self.warn_ratio:
                self._warned = True
                logger.warning(
                    "Spend %.4f USD reached %.0f%% of the %.4f USD budget",
                    spent,
                    self.warn_ratio * 100,
                    self.budget_limit,
                )

        return UsageSnapshot(
            model=model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            cost_usd=cost,
        )

    def usage_for(self, model: str) -> TokenUsage | None:
        return self._usage.get(model)

    def remaining_budget(self) -> float | None:
        if self.budget_limit is None:
            return None
        return max(self.budget_limit - self.total_cost, 0.0)

    def reset(self) -> None:
        self._usage.clear()
        self._warned = False

    def summary(self) -> dict[str, object]:
        return {
            "total_tokens": self.total_tokens,
            "total_cost_usd": round(self.total_cost, 6),
            "budget_limit": self.budget_limit,
            "by_model": {model: usage.to_dict() for model, usage in sorted(self._usage.items())},
        }


def register_model_pricing(model: str, *, input_per_million: float, output_per_million: float) -> None:
    """Register or override pricing for ``model`` in ``MODEL_PRICING``."""

    MODEL_PRICING[model] = ModelPricing(
        input_per_million=input_per_million,
        output_per_million=output_per_million,
    )
