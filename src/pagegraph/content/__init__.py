"""Product content pipeline built on :mod:`pagegraph.graph`.

Graph assembly and orchestration live in :mod:`pagegraph.content.workflow` and
:mod:`pagegraph.content.orchestrator`.
"""

from .routing import RETRY_THRESHOLD, ContentRoute, route_after_answers, route_after_data_parser
from .schema import (
    QUESTION_CATEGORIES,
    AgentLogEntry,
    AnswerItem,
    ComparisonPage,
    FAQPage,
    ProductPage,
    ProductRecord,
    QuestionItem,
)
from .state import ContentState, create_initial_state

__all__ = [
    "ContentState",
    "create_initial_state",
    "ContentRoute",
    "RETRY_THRESHOLD",
    "route_after_data_parser",
    "route_after_answers",
    "ProductRecord",
    "QuestionItem",
    "AnswerItem",
    "AgentLogEntry",
    "FAQPage",
    "ProductPage",
    "ComparisonPage",
    "QUESTION_CATEGORIES",
]
