"""Stateful workflow graph engine and the product content pipeline it drives."""

from .config import BudgetConfig, GraphConfig, LLMConfig, PageGraphConfig
from .graph import END, CompiledGraph, GraphRunResult, StateGraph, merge_state
from .paths import PagePathConfig, resolve_catalog_path, resolve_output_path

__all__ = [
    "BudgetConfig",
    "GraphConfig",
    "LLMConfig",
    "PageGraphConfig",
    "PagePathConfig",
    "resolve_catalog_path",
    "resolve_output_path",
    "StateGraph",
    "CompiledGraph",
    "GraphRunResult",
    "END",
    "merge_state",
]
