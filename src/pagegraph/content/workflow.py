"""Assembly of the content generation graph."""

from __future__ import annotations

from functools import partial
from typing import Sequence

from ..config import GraphConfig, LLMConfig
from ..graph import END, CompiledGraph, GraphObserver, StateGraph
from ..io import PageStore
from ..llm.client import ChatClient
from .analysis import AnswerGeneratorStep, DataParserStep, QuestionGeneratorStep
from .persistence import PersistenceStep
from .routing import ContentRoute, route_after_answers, route_after_data_parser
from .state import ContentState
from .templates import ComparisonTemplateStep, FAQTemplateStep, ProductTemplateStep

__all__ = [
    "DATA_PARSER",
    "QUESTION_GENERATOR",
    "ANSWER_GENERATOR",
    "FAQ_TEMPLATE",
    "PRODUCT_TEMPLATE",
    "COMPARISON_TEMPLATE",
    "PERSISTENCE",
    "STEP_ORDER",
    "create_content_graph",
    "build_content_graph",
]

DATA_PARSER = "data_parser"
QUESTION_GENERATOR = "question_generator"
ANSWER_GENERATOR = "answer_generator"
FAQ_TEMPLATE = "faq_template"
PRODUCT_TEMPLATE = "product_template"
COMPARISON_TEMPLATE = "comparison_template"
PERSISTENCE = "persistence"

STEP_ORDER = (
    DATA_PARSER,
    QUESTION_GENERATOR,
    ANSWER_GENERATOR,
    FAQ_TEMPLATE,
    PRODUCT_TEMPLATE,
    COMPARISON_TEMPLATE,
    PERSISTENCE,
)


def create_content_graph(
    client: ChatClient,
    store: PageStore,
    *,
    config: GraphConfig | None = None,
    llm: LLMConfig | None = None,
) -> StateGraph[ContentState]:
    """Register the seven pipeline steps and their routing on a fresh builder."""

    config = config or GraphConfig()
    llm = llm or LLMConfig()

    graph = StateGraph(ContentState, max_iterations=config.max_iterations)
    graph.add_step(DATA_PARSER, DataParserStep(client, model=llm.model))
    graph.add_step(QUESTION_GENERATOR, QuestionGeneratorStep(client, model=llm.model))
    graph.add_step(ANSWER_GENERATOR, AnswerGeneratorStep(client, model=llm.fast_model))
    graph.add_step(FAQ_TEMPLATE, FAQTemplateStep(client, model=llm.model))
    graph.add_step(PRODUCT_TEMPLATE, ProductTemplateStep(client, model=llm.model))
    graph.add_step(COMPARISON_TEMPLATE, ComparisonTemplateStep(client, model=llm.model))
    graph.add_step(PERSISTENCE, PersistenceStep(store))

    graph.set_entry_point(DATA_PARSER)
    graph.add_conditional_edges(
        DATA_PARSER,
        partial(route_after_data_parser, retry_threshold=config.retry_threshold),
        {ContentRoute.CONTINUE: QUESTION_GENERATOR, ContentRoute.STOP: END},
    )
    graph.add_edge(QUESTION_GENERATOR, ANSWER_GENERATOR)
    graph.add_conditional_edges(
        ANSWER_GENERATOR,
        partial(route_after_answers, retry_threshold=config.retry_threshold),
        {ContentRoute.CONTINUE: FAQ_TEMPLATE, ContentRoute.STOP: END},
    )
    graph.add_edge(FAQ_TEMPLATE, PRODUCT_TEMPLATE)
    graph.add_edge(PRODUCT_TEMPLATE, COMPARISON_TEMPLATE)
    graph.add_edge(COMPARISON_TEMPLATE, PERSISTENCE)
    graph.add_edge(PERSISTENCE, END)
    return graph


def build_content_graph(
    client: ChatClient,
    store: PageStore,
    *,
    config: GraphConfig | None = None,
    llm: LLMConfig | None = None,
    observers: Sequence[GraphObserver] = (),
) -> CompiledGraph[ContentState]:
    config = config or GraphConfig()
    graph = create_content_graph(client, store, config=config, llm=llm)
    return graph.compile(validate=config.validate, observers=observers)
