"""Template steps that assemble FAQ, product and comparison pages."""

from __future__ import annotations

import json
import re
import uuid
from typing import Any, Iterable

from .base import LLMPipelineStep, StepResult, describe_error, format_product, product_name
from .schema import (
    AnswerItem,
    ComparisonPage,
    FAQPage,
    IngredientNote,
    KeyFeature,
    PricingSection,
    ProductPage,
    ProductRecord,
    SafetySection,
    UsageSection,
)
from .state import ContentState

__all__ = [
    "FAQTemplateStep",
    "ProductTemplateStep",
    "ComparisonTemplateStep",
    "select_faq_answers",
    "fallback_product_page",
]

FAQ_LIMIT = 10
PENDING_ANSWER = "Answer pending. Please check back later or contact customer support for details."

_UUID_PATTERN = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)


def select_faq_answers(answers: Iterable[AnswerItem], limit: int = FAQ_LIMIT) -> list[AnswerItem]:
    """Group answers by category (first-seen order) and keep the first ``limit``."""

    grouped: dict[str, list[AnswerItem]] = {}
    for item in answers:
        grouped.setdefault(item.category, []).append(item)
    return [item for items in grouped.values() for item in items][:limit]


class _FallbackTemplateStep(LLMPipelineStep):
    """Template steps never leave their page empty: failures produce a fallback page."""

    counts_retry = False
    page_field = ""

    def fallback_page(self, state: ContentState) -> dict[str, Any]:
        raise NotImplementedError

    def recover(self, state: ContentState, error: Exception, elapsed_ms: int) -> dict[str, Any]:
        return {
            self.page_field: self.fallback_page(state),
            "errors": [f"{self.agent_name} used fallback: {describe_error(error)}"],
            "agent_logs": [self.log_entry(0, elapsed_ms, "success")],
        }


class FAQTemplateStep(_FallbackTemplateStep):
    agent_name = "FAQTemplateAgent"
    role = "FAQ Page Assembly & Formatting"
    page_field = "faq_page"

    async def run(self, state: ContentState) -> StepResult:
        if not state.should_generate_faq:
            return StepResult(status="skipped")

        selected = select_faq_answers(state.answers)
        if not selected:
            return StepResult(update={"faq_page": self._placeholder_page(state)})

        qa_lines = "\n\n".join(
            f"{index}. [{item.category}] Q: {item.question}\n   A: {item.answer}"
            for index, item in enumerate(selected, start=1)
        )
        prompt = "\n".join(
            [
                "You are a content formatting specialist. Create a structured FAQ page from these Q&As.",
                "",
                f"Product: {product_name(state)}",
                "",
                "Q&As:",
                qa_lines,
                "",
                "Return JSON with this structure:",
                '{"title": "Frequently Asked Questions - [Product Name]", "description": "one sentence", '
                '"faqs": [{"category": "...", "question": "...", "answer": "..."}]}',
            ]
        )
        data, tokens = await self.client.complete_json(prompt, model=self.model)
        page = FAQPage.model_validate(data)
        return StepResult(update={"faq_page": page.model_dump()}, tokens_used=tokens)

    def _placeholder_page(self, state: ContentState) -> dict[str, Any]:
        page = FAQPage(
            title=f"Frequently Asked Questions - {product_name(state)}",
            description="Common questions about this product. Answers are being generated.",
            faqs=[
                {"category": question.category, "question": question.question, "answer": PENDING_ANSWER}
                for question in state.questions[:FAQ_LIMIT]
            ],
        )
        return page.model_dump()

    def fallback_page(self, state: ContentState) -> dict[str, Any]:
        name = product_name(state, default="this product")
        page = FAQPage(
            title=f"Frequently Asked Questions - {product_name(state)}",
            description=f"Common questions about {name}.",
            faqs=[item.model_dump() for item in state.answers[:FAQ_LIMIT]],
        )
        return page.model_dump()


class ProductTemplateStep(_FallbackTemplateStep):
    agent_name = "ProductTemplateAgent"
    role = "Product Page Creation & Content Assembly"
    page_field = "product_page"

    async def run(self, state: ContentState) -> StepResult:
        if not state.should_generate_product:
            return StepResult(status="skipped")

        product = state.parsed_product
        prompt = "\n".join(
            [
                "You are a product marketing specialist. Create a compelling product landing page.",
                "",
                format_product(product),
                "",
                "Return JSON with keys: title, tagline, description, "
                "key_features [{title, description}], ingredients [{name, benefit}], "
                "usage {title, steps, tips}, safety {warnings, side_effects}, "
                "pricing {price, value_proposition}.",
            ]
        )
        data, tokens = await self.client.complete_json(prompt, model=self.model)
        page = ProductPage.model_validate(data)
        return StepResult(update={"product_page": page.model_dump()}, tokens_used=tokens)

    def fallback_page(self, state: ContentState) -> dict[str, Any]:
        return fallback_product_page(state.parsed_product).model_dump()


def fallback_product_page(product: ProductRecord | None) -> ProductPage:
    """Deterministic landing page assembled from catalog fields alone."""

    if product is None:
        return ProductPage(title="Product")

    first_benefit = product.benefits[0] if product.benefits else "Experience the benefits of advanced skincare."
    features = []
    for benefit in product.benefits[:4]:
        title, _, description = benefit.partition(":")
        features.append(KeyFeature(title=title.strip() or benefit, description=description.strip() or benefit))

    return ProductPage(
        title=product.name,
        tagline=f"Premium {product.category or 'skincare'} solution",
        description=(
            f"{product.name} is a {product.concentration} formula designed for "
            f"{', '.join(product.skin_type)} skin types. {first_benefit}"
        ),
        key_features=features,
        ingredients=[
            IngredientNote(name=name, benefit="Key active ingredient for optimal results")
            for name in product.key_ingredients
        ],
        usage=UsageSection(
            steps=[product.how_to_use]
            if product.how_to_use
            else ["Apply to clean skin", "Use as directed", "For best results, use daily"],
            tips=["Perform a patch test before first use", "Store in a cool, dry place"],
        ),
        safety=SafetySection(
            warnings=["For external use only", "Avoid contact with eyes"],
            side_effects=[product.side_effects]
            if product.side_effects
            else ["Discontinue use if irritation occurs"],
        ),
        pricing=PricingSection(
            price=product.price or "$0.00",
            value_proposition="Quality skincare at an accessible price",
        ),
    )


class ComparisonTemplateStep(LLMPipelineStep):
    """Invents a fictional competitor, then compares it with the product."""

    agent_name = "ComparisonTemplateAgent"
    role = "Competitor Generation & Comparison Analysis"
    counts_retry = False

    async def run(self, state: ContentState) -> StepResult:
        if not state.should_generate_comparison:
            return StepResult(status="skipped")

        product = state.parsed_product
        competitor_prompt = "\n".join(
            [
                f"You are a product analyst. Create a FICTIONAL competitor product to {product_name(state)}.",
                "",
                "Original Product:",
                format_product(product),
                "",
                "Use a different brand, overlapping ingredients and a price 10-20% different. Return JSON "
                "with: id (a UUID), name, concentration, skin_type, key_ingredients, benefits, how_to_use, "
                "side_effects, price.",
            ]
        )
        competitor_data, competitor_tokens = await self.client.complete_json(competitor_prompt, model=self.model)
        competitor_id = str(competitor_data.get("id") or "")
        if not _UUID_PATTERN.match(competitor_id):
            competitor_id = str(uuid.uuid4())
        competitor = ProductRecord.model_validate({**competitor_data, "id": competitor_id})

        comparison_prompt = "\n".join(
            [
                "You are a product comparison specialist. Compare these two products.",
                "",
                "Product A:",
                format_product(product, include_usage=False),
                "",
                "Product B:",
                format_product(competitor, include_usage=False),
                "",
                "Return JSON with keys: title, product_a and product_b "
                "{name, concentration, price, ingredients, benefits, strengths}, "
                "comparison [{aspect, product_a, product_b, winner: A|B|Tie}] covering Price, "
                "Concentration, Ingredients and Effectiveness, and recommendation "
                "{best_for: {audience: A|B}, summary}.",
                "",
                f"Reference data: {json.dumps(competitor.model_dump(), ensure_ascii=False)}",
            ]
        )
        comparison_data, comparison_tokens = await self.client.complete_json(comparison_prompt, model=self.model)
        page = ComparisonPage.model_validate(comparison_data)

        return StepResult(
            update={"competitor_product": competitor, "comparison_page": page.model_dump()},
            tokens_used=competitor_tokens + comparison_tokens,
        )
