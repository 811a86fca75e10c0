"""Dataclass-driven configuration for the pagegraph package."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Iterable

from .paths import PagePathConfig, resolve_catalog_path, resolve_output_path
from .llm.providers import DEFAULT_BASE_URL, DEFAULT_FAST_MODEL, DEFAULT_MODEL

__all__ = [
    "LLMConfig",
    "BudgetConfig",
    "GraphConfig",
    "PageGraphConfig",
]


def _env_float(name: str, default: float | None = None) -> float | None:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:  # pragma: no cover
        return default


def _env_int(name: str, default: int | None = None) -> int | None:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:  # pragma: no cover
        return default


@dataclass(slots=True)
class LLMConfig:
    """Chat model settings shared by every pipeline step."""

    model: str = field(default_factory=lambda: os.getenv("PAGEGRAPH_MODEL", DEFAULT_MODEL))
    fast_model: str = field(default_factory=lambda: os.getenv("PAGEGRAPH_FAST_MODEL", DEFAULT_FAST_MODEL))
    base_url: str | None = field(default_factory=lambda: os.getenv("PAGEGRAPH_BASE_URL") or DEFAULT_BASE_URL)
    temperature: float = field(default_factory=lambda: _env_float("PAGEGRAPH_TEMPERATURE", 0.7) or 0.0)
    max_tokens: int | None = field(default_factory=lambda: _env_int("PAGEGRAPH_MAX_TOKENS"))
    api_key_env: str = "PAGEGRAPH_API_KEY"
    fallback_api_key_envs: tuple[str, ...] = ("GROQ_API_KEY",)
    max_attempts: int = 3
    retry_delay: float = 1.0

    def resolve_api_key(self, override: str | None = None) -> str | None:
        if override:
            return override
        env_candidates: Iterable[str | None] = (self.api_key_env, *self.fallback_api_key_envs)
        for name in env_candidates:
            if not name:
                continue
            value = os.getenv(name)
            if value:
                return value
        return None

    def provider_kwargs(self, **overrides: object) -> dict[str, object | None]:
        kwargs: dict[str, object | None] = {
            "model": self.model,
            "base_url": self.base_url,
            "api_key": self.resolve_api_key(),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        kwargs.update({key: value for key, value in overrides.items() if value is not None})
        return kwargs


@dataclass(slots=True)
class BudgetConfig:
    """Spend guardrails applied to the chat client."""

    limit_usd: float | None = field(default_factory=lambda: _env_float("PAGEGRAPH_BUDGET_USD"))
    warn_ratio: float = field(default_factory=lambda: _env_float("PAGEGRAPH_BUDGET_WARN_RATIO", 0.9) or 0.9)
    hard_limit: bool = field(
        default_factory=lambda: os.getenv("PAGEGRAPH_BUDGET_HARD", "false").lower() == "true"
    )

    def enforced_limit(self) -> float | None:
        """Limit handed to the cost tracker; ``None`` unless the limit is hard."""

        return self.limit_usd if self.hard_limit else None


@dataclass(slots=True)
class GraphConfig:
    """Execution limits for the content graph."""

    max_iterations: int = field(default_factory=lambda: _env_int("PAGEGRAPH_MAX_ITERATIONS", 20) or 20)
    timeout_seconds: float = field(
        default_factory=lambda: _env_float("PAGEGRAPH_TIMEOUT_SECONDS", 300.0) or 300.0
    )
    retry_threshold: int = 3
    fetch_attempts: int = 3
    fetch_retry_delay: float = 1.0
    validate: bool = False


@dataclass(slots=True)
class PageGraphConfig:
    """Primary configuration entry point."""

    paths: PagePathConfig = field(default_factory=PagePathConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    budget: BudgetConfig = field(default_factory=BudgetConfig)
    graph: GraphConfig = field(default_factory=GraphConfig)

    def with_paths(
        self,
        *,
        catalog_path: Path | str | None = None,
        output_path: Path | str | None = None,
    ) -> "PageGraphConfig":
        new_paths = replace(
            self.paths,
            catalog_path=resolve_catalog_path(catalog_path or self.paths.catalog_path),
            output_path=resolve_output_path(output_path or self.paths.output_path, create=False),
        )
        return replace(self, paths=new_paths)

    @property
    def catalog_path(self) -> Path:
        return resolve_catalog_path(self.paths.catalog_path)

    @property
    def output_path(self) -> Path:
        return resolve_output_path(self.paths.output_path, create=self.paths.create_output)

    def ensure_directories(self) -> "PageGraphConfig":
        self.paths = self.paths.ensure()
        return self
