"""Steps that validate the product and derive questions and answers from it."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Optional, Sequence

from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import ValidationError

from ..llm.client import ChatClient
from ..llm.providers import ProviderError
from .base import LLMPipelineStep, StepResult, format_product
from .schema import QUESTION_CATEGORIES, AnswerItem, ProductRecord, QuestionItem
from .state import ContentState

__all__ = ["DataParserStep", "QuestionGeneratorStep", "AnswerGeneratorStep"]

logger = logging.getLogger(__name__)

ANSWER_SYSTEM_PROMPT = "You are an expert product consultant providing detailed, accurate answers."


class DataParserStep(LLMPipelineStep):
    """Normalises the raw catalog record into ``parsed_product``."""

    agent_name = "DataParserAgent"
    role = "Data Validation & Normalization"

    async def run(self, state: ContentState) -> StepResult:
        raw = state.raw_product
        if raw is None:
            raise ValueError("No raw product supplied")

        prompt = "\n".join(
            [
                "You are a data validation agent. Parse and normalize this product data into structured JSON.",
                "",
                format_product(raw),
                "",
                "Return a clean JSON object with: name, concentration, skin_type (array), "
                "key_ingredients (array), benefits (array), how_to_use, side_effects, price.",
            ]
        )
        data, tokens = await self.client.complete_json(prompt, model=self.model)

        cleaned = {key: value for key, value in data.items() if value is not None}
        # the catalog id is authoritative
        parsed = ProductRecord.model_validate({**raw.model_dump(), **cleaned, "id": raw.id})
        return StepResult(
            update={
                "parsed_product": parsed,
                "memory": {"last_parse_timestamp": time.time(), "product_validated": True},
            },
            tokens_used=tokens,
        )


class QuestionGeneratorStep(LLMPipelineStep):
    """Asks the model for categorised customer questions."""

    agent_name = "QuestionGeneratorAgent"
    role = "Question Generation & Categorization"

    def __init__(
        self,
        client: ChatClient,
        *,
        model: Optional[str] = None,
        question_count: int = 15,
        categories: Sequence[str] = QUESTION_CATEGORIES,
    ) -> None:
        super().__init__(client, model=model)
        self.question_count = question_count
        self.categories = tuple(categories)

    async def run(self, state: ContentState) -> StepResult:
        prompt = "\n".join(
            [
                "You are a question generation specialist. Generate EXACTLY "
                f"{self.question_count} diverse, categorized questions about this product.",
                "",
                format_product(state.parsed_product, include_usage=False),
                "",
                f"Categories: {', '.join(self.categories)}",
                "",
                'Return JSON: {"questions": [{"id": "q1", "category": "Informational", "question": "..."}]}',
            ]
        )
        data, tokens = await self.client.complete_json(prompt, model=self.model)

        raw_questions = data.get("questions")
        if not isinstance(raw_questions, list):
            raise ValueError("Response did not contain a 'questions' array")

        questions = _parse_questions(raw_questions)
        if not questions:
            raise ValueError("Model returned no usable questions")

        categories = list(dict.fromkeys(question.category for question in questions))
        return StepResult(
            update={
                "questions": questions,
                "memory": {"questions_generated": len(questions), "question_categories": categories},
            },
            tokens_used=tokens,
        )


class AnswerGeneratorStep(LLMPipelineStep):
    """Answers every question; individual failures are skipped."""

    agent_name = "AnswerGeneratorAgent"
    role = "Answer Generation & Content Creation"

    def __init__(
        self,
        client: ChatClient,
        *,
        model: Optional[str] = None,
        max_concurrency: int = 1,
    ) -> None:
        super().__init__(client, model=model)
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.max_concurrency = max_concurrency

    async def run(self, state: ContentState) -> StepResult:
        if not state.questions:
            raise ValueError("No questions available to generate answers")

        semaphore = asyncio.Semaphore(self.max_concurrency)
        product = state.parsed_product

        async def answer(question: QuestionItem) -> tuple[Optional[AnswerItem], int]:
            if not question.question.strip() or not question.category.strip():
                logger.warning("Skipping invalid question: %r", question)
                return None, 0
            async with semaphore:
                try:
                    completion = await self.client.complete(
                        [
                            SystemMessage(content=ANSWER_SYSTEM_PROMPT),
                            HumanMessage(content=_answer_prompt(product, question)),
                        ],
                        model=self.model,
                    )
                except ProviderError as exc:
                    logger.warning("Failed to generate answer for %r: %s", question.question, exc)
                    return None, 0
            item = AnswerItem(question=question.question, answer=completion.content, category=question.category)
            return item, completion.tokens_used

        results = await asyncio.gather(*(answer(question) for question in state.questions))
        answers = [item for item, _ in results if item is not None]
        total_tokens = sum(tokens for _, tokens in results)

        if not answers:
            raise RuntimeError("Failed to generate any answers - all API calls failed")

        avg_length = round(sum(len(item.answer) for item in answers) / len(answers))
        return StepResult(
            update={
                "answers": answers,
                "memory": {"answers_generated": len(answers), "avg_answer_length": avg_length},
            },
            tokens_used=total_tokens,
        )


def _parse_questions(raw_questions: list[Any]) -> list[QuestionItem]:
    questions: list[QuestionItem] = []
    for index, raw in enumerate(raw_questions, start=1):
        if not isinstance(raw, dict):
            logger.warning("Ignoring malformed question entry: %r", raw)
            continue
        try:
            questions.append(QuestionItem.model_validate({"id": f"q{index}", **raw}))
        except ValidationError as exc:
            logger.warning("Ignoring invalid question entry %r: %s", raw, exc)
    return questions


def _answer_prompt(product: Optional[ProductRecord], question: QuestionItem) -> str:
    name = product.name if product is not None else "this product"
    return "\n".join(
        [
            f"You are an expert product consultant. Answer this question about {name} "
            "comprehensively and accurately.",
            "",
            "Product Details:",
            format_product(product),
            "",
            f"Question: {question.question}",
            f"Category: {question.category}",
            "",
            "Provide a detailed, helpful answer (2-4 sentences). Be informative and accurate.",
        ]
    )
