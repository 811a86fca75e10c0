"""Common plumbing for content pipeline steps.

Every step is fault-tolerant by convention: :meth:`PipelineStep.__call__`
times the work, turns a caught failure into data (an ``errors`` entry plus an
``error`` agent log) and only lets the graph driver see exceptions that escape
that conversion.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional

from ..llm.client import ChatClient
from .schema import AgentLogEntry, ProductRecord, StepStatus
from .state import ContentState

__all__ = ["StepResult", "PipelineStep", "LLMPipelineStep", "describe_error", "format_product", "product_name"]

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class StepResult:
    update: dict[str, Any] = field(default_factory=dict)
    tokens_used: int = 0
    status: StepStatus = "success"


class PipelineStep:
    """Base class for the steps of the content graph."""

    agent_name: ClassVar[str] = "PipelineStep"
    role: ClassVar[str] = ""
    counts_retry: ClassVar[bool] = True

    async def __call__(self, state: ContentState) -> dict[str, Any]:
        started = time.perf_counter()
        logger.info("%s starting (execution %s)", self.agent_name, state.execution_id)
        try:
            result = await self.run(state)
        except Exception as exc:  # reported through the update, see module docstring
            elapsed_ms = _elapsed_ms(started)
            logger.warning("%s failed after %s ms: %s", self.agent_name, elapsed_ms, exc)
            return self.recover(state, exc, elapsed_ms)

        elapsed_ms = _elapsed_ms(started)
        update = dict(result.update)
        update["agent_logs"] = [self.log_entry(result.tokens_used, elapsed_ms, result.status)]
        logger.info(
            "%s %s (tokens=%s, %s ms)",
            self.agent_name,
            "skipped" if result.status == "skipped" else "complete",
            result.tokens_used,
            elapsed_ms,
        )
        return update

    async def run(self, state: ContentState) -> StepResult:
        raise NotImplementedError

    def recover(self, state: ContentState, error: Exception, elapsed_ms: int) -> dict[str, Any]:
        message = describe_error(error)
        update: dict[str, Any] = {
            "errors": [f"{self.agent_name}: {message}"],
            "agent_logs": [self.log_entry(0, elapsed_ms, "error", message)],
        }
        if self.counts_retry:
            update["retry_count"] = state.retry_count + 1
        return update

    def log_entry(
        self,
        tokens_used: int,
        elapsed_ms: int,
        status: StepStatus,
        error_message: Optional[str] = None,
    ) -> AgentLogEntry:
        return AgentLogEntry(
            agent_name=self.agent_name,
            role=self.role,
            tokens_used=tokens_used,
            execution_time_ms=elapsed_ms,
            status=status,
            error_message=error_message,
        )


class LLMPipelineStep(PipelineStep):
    """A step that talks to the chat model."""

    def __init__(self, client: ChatClient, *, model: Optional[str] = None) -> None:
        self.client = client
        self.model = model


def describe_error(error: BaseException) -> str:
    return str(error) or type(error).__name__


def product_name(state: ContentState, default: str = "Product") -> str:
    product = state.parsed_product or state.raw_product
    return product.name if product is not None else default


def format_product(product: Optional[ProductRecord], *, include_usage: bool = True) -> str:
    if product is None:
        return "(no product data)"
    lines = [
        f"Product: {product.name}",
        f"Concentration: {product.concentration}",
        f"Skin Types: {', '.join(product.skin_type)}",
        f"Ingredients: {', '.join(product.key_ingredients)}",
        f"Benefits: {', '.join(product.benefits)}",
    ]
    if include_usage:
        lines.extend(
            [
                f"How to Use: {product.how_to_use}",
                f"Side Effects: {product.side_effects}",
                f"Price: {product.price}",
            ]
        )
    return "\n".join(lines)


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
