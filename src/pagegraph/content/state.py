"""State threaded through the content generation graph."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Optional

from ..graph.state import accumulating, merged
from .schema import AgentLogEntry, AnswerItem, ProductRecord, QuestionItem

__all__ = ["ContentState", "create_initial_state"]


@dataclass(frozen=True, slots=True)
class ContentState:
    """Shared state for one generation run.

    ``questions``, ``answers``, ``agent_logs`` and ``errors`` only ever grow;
    ``memory`` is merged key by key. Everything else is replaced by the step
    that writes it.
    """

    # execution metadata
    execution_id: str
    generation_id: str
    product_id: str
    start_time: float

    # product data
    raw_product: Optional[ProductRecord] = None
    parsed_product: Optional[ProductRecord] = None

    # generated content
    questions: tuple[QuestionItem, ...] = accumulating()
    answers: tuple[AnswerItem, ...] = accumulating()

    # template outputs
    faq_page: Optional[dict[str, Any]] = None
    product_page: Optional[dict[str, Any]] = None
    comparison_page: Optional[dict[str, Any]] = None
    competitor_product: Optional[ProductRecord] = None

    agent_logs: tuple[AgentLogEntry, ...] = accumulating()
    errors: tuple[str, ...] = accumulating()
    retry_count: int = 0

    should_generate_faq: bool = True
    should_generate_product: bool = True
    should_generate_comparison: bool = True

    memory: dict[str, Any] = merged()


def create_initial_state(
    execution_id: str,
    product_id: str,
    raw_product: ProductRecord,
    *,
    generation_id: str | None = None,
    should_generate_faq: bool = True,
    should_generate_product: bool = True,
    should_generate_comparison: bool = True,
) -> ContentState:
    return ContentState(
        execution_id=execution_id,
        generation_id=generation_id or execution_id,
        product_id=product_id,
        start_time=time.time(),
        raw_product=raw_product,
        should_generate_faq=should_generate_faq,
        should_generate_product=should_generate_product,
        should_generate_comparison=should_generate_comparison,
    )
