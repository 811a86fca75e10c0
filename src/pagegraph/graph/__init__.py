"""Stateful workflow graph engine used by the content pipeline."""

from .builder import StateGraph
from .errors import (
    GraphConfigurationError,
    GraphError,
    GraphTimeoutError,
    RoutingError,
    StateUpdateError,
    UnknownStepError,
)
from .observers import GraphObserver, LoggingObserver, RunEvent, RunRecorder
from .runner import (
    DEFAULT_MAX_ITERATIONS,
    END,
    TRUNCATION_MESSAGE,
    CompiledGraph,
    ConditionalEdge,
    GraphRunResult,
    literal_destination,
)
from .state import Reducer, StateUpdate, accumulating, field_reducers, merge_state, merged

__all__ = [
    "StateGraph",
    "CompiledGraph",
    "ConditionalEdge",
    "GraphRunResult",
    "END",
    "DEFAULT_MAX_ITERATIONS",
    "TRUNCATION_MESSAGE",
    "literal_destination",
    "GraphObserver",
    "LoggingObserver",
    "RunEvent",
    "RunRecorder",
    "Reducer",
    "StateUpdate",
    "accumulating",
    "merged",
    "field_reducers",
    "merge_state",
    "GraphError",
    "GraphConfigurationError",
    "UnknownStepError",
    "RoutingError",
    "StateUpdateError",
    "GraphTimeoutError",
]
