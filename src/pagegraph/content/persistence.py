"""Final step: write everything the run produced to the page store."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..io import PageStore, StorageError
from .base import PipelineStep, StepResult
from .state import ContentState

__all__ = ["PersistenceStep"]

logger = logging.getLogger(__name__)


class PersistenceStep(PipelineStep):
    """Saves questions, pages, the competitor and the agent logs."""

    agent_name = "PersistenceAgent"
    role = "Database Storage & Finalization"
    counts_retry = False

    def __init__(self, store: PageStore) -> None:
        super().__init__()
        self.store = store

    async def run(self, state: ContentState) -> StepResult:
        product_id, generation_id = state.product_id, state.generation_id
        written: list[str] = []

        if state.questions:
            answers = {item.question: item.answer for item in state.answers}
            rows = [
                {
                    "category": question.category,
                    "question": question.question,
                    "answer": answers.get(question.question),
                }
                for question in state.questions
            ]
            await asyncio.to_thread(self.store.save_questions, product_id, generation_id, rows)
            logger.info("Saved %s questions", len(rows))
            written.append("questions")

        metadata: dict[str, Any] = {
            "execution_id": state.execution_id,
            "agent_logs": [entry.model_dump() for entry in state.agent_logs],
        }
        for page_type, content in (("faq", state.faq_page), ("product", state.product_page)):
            if content:
                await asyncio.to_thread(
                    self.store.save_page, product_id, generation_id, page_type, content, metadata
                )
                logger.info("Saved %s page", page_type)
                written.append(page_type)

        if state.comparison_page and state.competitor_product is not None:
            await asyncio.to_thread(self.store.upsert_competitor, state.competitor_product)
            await asyncio.to_thread(
                self.store.save_page,
                product_id,
                generation_id,
                "comparison",
                state.comparison_page,
                {**metadata, "competitor_product_id": state.competitor_product.id},
            )
            logger.info("Saved competitor %s and comparison page", state.competitor_product.id)
            written.append("comparison")

        for entry in state.agent_logs:
            try:
                await asyncio.to_thread(
                    self.store.append_agent_log, state.execution_id, generation_id, product_id, entry
                )
            except StorageError as exc:
                logger.warning("Failed to save agent log for %s: %s", entry.agent_name, exc)

        return StepResult(update={"memory": {"persisted": written}})
