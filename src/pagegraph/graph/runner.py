"""Execution driver for compiled workflow graphs."""

from __future__ import annotations

import inspect
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Hashable, Mapping, Sequence, TypeVar, Union

from .errors import GraphConfigurationError, RoutingError, UnknownStepError
from .observers import GraphObserver
from .state import StateUpdate, merge_state

__all__ = [
    "END",
    "DEFAULT_MAX_ITERATIONS",
    "TRUNCATION_MESSAGE",
    "Step",
    "DecisionFunction",
    "ConditionalEdge",
    "GraphRunResult",
    "CompiledGraph",
    "literal_destination",
]

logger = logging.getLogger(__name__)

END = "END"
DEFAULT_MAX_ITERATIONS = 20
TRUNCATION_MESSAGE = "Graph execution exceeded maximum iterations"

S = TypeVar("S")

Step = Callable[[Any], Union[Awaitable[StateUpdate], StateUpdate, None]]
DecisionFunction = Callable[[Any], Hashable]


def literal_destination(key: Hashable) -> str:
    """Interpret a decision key with no lookup-table entry as a step name."""

    if isinstance(key, Enum):
        key = key.value
    if isinstance(key, str):
        return key
    raise RoutingError(f"Decision key {key!r} is not in the lookup table and is not a step name")


@dataclass(frozen=True, slots=True)
class ConditionalEdge:
    """Decision function plus its lookup table from decision key to step name."""

    condition: DecisionFunction
    path_map: Mapping[Hashable, str] = field(default_factory=dict)

    def resolve(self, key: Hashable) -> str:
        destination = self.path_map.get(key)
        if destination is not None:
            return destination
        return literal_destination(key)


@dataclass(slots=True)
class GraphRunResult(Generic[S]):
    """Outcome of one :meth:`CompiledGraph.execute` call."""

    state: S
    trace: list[str]
    iterations: int
    truncated: bool = False
    failed_step: str | None = None

    @property
    def last_step(self) -> str | None:
        return self.trace[-1] if self.trace else None


class CompiledGraph(Generic[S]):
    """Immutable, runnable snapshot of a :class:`~pagegraph.graph.builder.StateGraph`."""

    def __init__(
        self,
        *,
        steps: Mapping[str, Step],
        edges: Mapping[str, str],
        conditional_edges: Mapping[str, ConditionalEdge],
        entry_point: str | None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        error_field: str = "errors",
        observers: Sequence[GraphObserver] = (),
    ) -> None:
        if max_iterations < 1:
            raise GraphConfigurationError("max_iterations must be at least 1")
        self._steps = dict(steps)
        self._edges = dict(edges)
        self._conditional_edges = dict(conditional_edges)
        self.entry_point = entry_point
        self.max_iterations = max_iterations
        self.error_field = error_field
        self._observers = tuple(observers)

    @property
    def step_names(self) -> tuple[str, ...]:
        return tuple(self._steps)

    async def invoke(self, initial_state: S) -> S:
        """Run the graph and return only the final state."""

        result = await self.execute(initial_state)
        return result.state

    async def execute(self, initial_state: S) -> GraphRunResult[S]:
        """Run the graph and return the final state together with its trace."""

        node = self.entry_point
        if not node:
            raise GraphConfigurationError("No entry point set")

        state = initial_state
        trace: list[str] = []
        iterations = 0
        failed_step: str | None = None

        while node and node != END and iterations < self.max_iterations:
            iterations += 1
            trace.append(node)

            step = self._steps.get(node)
            if step is None:
                raise UnknownStepError(node)

            self._notify("on_step_start", node, iterations, state)
            started = time.perf_counter()
            try:
                update = await _call_step(step, state)
                state = merge_state(state, update)
                self._notify(
                    "on_step_end", node, iterations, state, (time.perf_counter() - started) * 1000
                )
                node = self._next_step(node, state)
            except Exception as exc:  # steps are expected to report their own faults
                failed_step = node
                self._notify("on_step_error", node, exc)
                state = merge_state(
                    state, {self.error_field: [f'Step "{node}" failed: {str(exc) or type(exc).__name__}']}
                )
                node = END

        truncated = bool(node) and node != END
        if truncated:
            state = merge_state(state, {self.error_field: [TRUNCATION_MESSAGE]})

        result = GraphRunResult(
            state=state,
            trace=trace,
            iterations=iterations,
            truncated=truncated,
            failed_step=failed_step,
        )
        self._notify("on_run_end", result)
        return result

    def _next_step(self, node: str, state: S) -> str:
        conditional = self._conditional_edges.get(node)
        if conditional is not None:
            decision = conditional.condition(state)
            destination = conditional.resolve(decision)
            self._notify("on_route", node, decision, destination)
            return destination

        destination = self._edges.get(node, END)
        self._notify("on_route", node, None, destination)
        return destination

    def _notify(self, hook: str, *args: Any) -> None:
        # observer failures never change how a run routes or ends
        for observer in self._observers:
            try:
                getattr(observer, hook)(*args)
            except Exception as exc:
                logger.warning("Observer %r failed in %s: %s", observer, hook, exc, exc_info=exc)


async def _call_step(step: Step, state: Any) -> StateUpdate | None:
    result = step(state)
    if inspect.isawaitable(result):
        result = await result
    return result
