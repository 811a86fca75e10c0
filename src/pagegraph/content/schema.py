"""Pydantic models for product records, pipeline items and generated pages."""

from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = [
    "FrozenModel",
    "ProductRecord",
    "QuestionItem",
    "AnswerItem",
    "AgentLogEntry",
    "FAQEntry",
    "FAQPage",
    "KeyFeature",
    "IngredientNote",
    "UsageSection",
    "SafetySection",
    "PricingSection",
    "ProductPage",
    "ComparedProduct",
    "ComparisonRow",
    "Recommendation",
    "ComparisonPage",
    "QUESTION_CATEGORIES",
    "StepStatus",
]

QUESTION_CATEGORIES = (
    "Informational",
    "Safety",
    "Usage",
    "Purchase",
    "Comparison",
    "Ingredients",
    "Benefits",
    "Side Effects",
    "Results",
)

StepStatus = Literal["success", "error", "skipped"]


class FrozenModel(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class ProductRecord(FrozenModel):
    """A catalog product as stored upstream."""

    id: str
    name: str
    concentration: str = ""
    skin_type: List[str] = Field(default_factory=list)
    key_ingredients: List[str] = Field(default_factory=list)
    benefits: List[str] = Field(default_factory=list)
    how_to_use: str = ""
    side_effects: str = ""
    price: str = ""
    category: Optional[str] = None

    @field_validator("skin_type", "key_ingredients", "benefits", mode="before")
    @classmethod
    def _split_strings(cls, value: object) -> object:
        # models and spreadsheets both like comma-separated strings
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("concentration", "how_to_use", "side_effects", "price", mode="before")
    @classmethod
    def _coerce_text(cls, value: object) -> object:
        if value is None:
            return ""
        if isinstance(value, (int, float)):
            return str(value)
        return value


class QuestionItem(FrozenModel):
    id: str
    category: str
    question: str
    answer: Optional[str] = None


class AnswerItem(FrozenModel):
    question: str
    answer: str
    category: str


class AgentLogEntry(FrozenModel):
    """Per-step execution record appended to ``ContentState.agent_logs``."""

    agent_name: str
    role: str
    tokens_used: int = 0
    execution_time_ms: int = 0
    status: StepStatus = "success"
    error_message: Optional[str] = None


class FAQEntry(FrozenModel):
    category: str
    question: str
    answer: str


class FAQPage(FrozenModel):
    title: str
    description: str = ""
    faqs: List[FAQEntry] = Field(default_factory=list)


class KeyFeature(FrozenModel):
    title: str
    description: str = ""


class IngredientNote(FrozenModel):
    name: str
    benefit: str = ""


class UsageSection(FrozenModel):
    title: str = "How to Use"
    steps: List[str] = Field(default_factory=list)
    tips: List[str] = Field(default_factory=list)


class SafetySection(FrozenModel):
    warnings: List[str] = Field(default_factory=list)
    side_effects: List[str] = Field(default_factory=list)


class PricingSection(FrozenModel):
    price: str = ""
    value_proposition: str = ""


class ProductPage(FrozenModel):
    title: str
    tagline: str = ""
    description: str = ""
    key_features: List[KeyFeature] = Field(default_factory=list)
    ingredients: List[IngredientNote] = Field(default_factory=list)
    usage: UsageSection = Field(default_factory=UsageSection)
    safety: SafetySection = Field(default_factory=SafetySection)
    pricing: PricingSection = Field(default_factory=PricingSection)


class ComparedProduct(FrozenModel):
    name: str
    concentration: str = ""
    price: str = ""
    ingredients: List[str] = Field(default_factory=list)
    benefits: List[str] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)


class ComparisonRow(FrozenModel):
    aspect: str
    product_a: str = ""
    product_b: str = ""
    winner: Literal["A", "B", "Tie"] = "Tie"


class Recommendation(FrozenModel):
    best_for: Dict[str, Literal["A", "B"]] = Field(default_factory=dict)
    summary: str = ""


class ComparisonPage(FrozenModel):
    title: str
    product_a: ComparedProduct
    product_b: ComparedProduct
    comparison: List[ComparisonRow] = Field(default_factory=list)
    recommendation: Recommendation = Field(default_factory=Recommendation)
