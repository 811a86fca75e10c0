"""Fault taxonomy for the workflow graph engine."""

from __future__ import annotations

__all__ = [
    "GraphError",
    "GraphConfigurationError",
    "UnknownStepError",
    "RoutingError",
    "StateUpdateError",
    "GraphTimeoutError",
]


class GraphError(RuntimeError):
    """Base error raised by the graph engine."""


class GraphConfigurationError(GraphError):
    """Raised when a graph is built or invoked with an invalid structure."""


class UnknownStepError(GraphConfigurationError):
    """Raised when the driver reaches a step name that was never registered."""

    def __init__(self, step: str) -> None:
        super().__init__(f'Step "{step}" not found')
        self.step = step


class RoutingError(GraphError):
    """Raised when a decision key cannot be resolved to a destination."""


class StateUpdateError(GraphError):
    """Raised when a partial update names a field the state does not declare."""


class GraphTimeoutError(GraphError):
    """Raised by callers that race a run against a wall-clock deadline."""
