"""Builder for workflow graphs: step registry, edges and an entry point."""

from __future__ import annotations

import logging
from typing import Any, Generic, Hashable, Mapping, Sequence, TypeVar

from .errors import GraphConfigurationError
from .observers import GraphObserver
from .runner import (
    DEFAULT_MAX_ITERATIONS,
    END,
    CompiledGraph,
    ConditionalEdge,
    DecisionFunction,
    Step,
)
from .state import Reducer, field_reducers

__all__ = ["StateGraph"]

logger = logging.getLogger(__name__)

S = TypeVar("S")


class StateGraph(Generic[S]):
    """Collects steps and routing, then compiles them into a :class:`CompiledGraph`.

    Each builder owns its registries; nothing is shared between instances.
    Registering a step or an edge twice for the same name replaces the earlier
    binding.
    """

    def __init__(
        self,
        state_type: type[S] | None = None,
        *,
        error_field: str = "errors",
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
    ) -> None:
        self.state_type = state_type
        self.error_field = error_field
        self.max_iterations = max_iterations
        self._steps: dict[str, Step] = {}
        self._edges: dict[str, str] = {}
        self._conditional_edges: dict[str, ConditionalEdge] = {}
        self._entry_point: str | None = None

    @property
    def entry_point(self) -> str | None:
        return self._entry_point

    @property
    def steps(self) -> Mapping[str, Step]:
        return dict(self._steps)

    def add_step(self, name: str, step: Step) -> "StateGraph[S]":
        _check_name(name, "step")
        if not callable(step):
            raise GraphConfigurationError(f'Step "{name}" is not callable')
        if name in self._steps:
            logger.debug('Replacing existing binding for step "%s"', name)
        self._steps[name] = step
        return self

    def set_entry_point(self, name: str) -> "StateGraph[S]":
        _check_name(name, "entry point")
        self._entry_point = name
        return self

    def add_edge(self, source: str, destination: str) -> "StateGraph[S]":
        _check_name(source, "edge source")
        if not destination:
            raise GraphConfigurationError(f'Edge from "{source}" has no destination')
        self._edges[source] = destination
        return self

    def add_conditional_edges(
        self,
        source: str,
        condition: DecisionFunction,
        path_map: Mapping[Hashable, str] | None = None,
    ) -> "StateGraph[S]":
        """Route out of ``source`` using ``condition``.

        ``condition`` receives the merged state and returns a decision key. The
        key is looked up in ``path_map``; a key with no entry is used as the
        destination step name itself. Conditional edges take precedence over a
        plain edge registered for the same source.
        """

        _check_name(source, "conditional edge source")
        if not callable(condition):
            raise GraphConfigurationError(f'Condition for "{source}" is not callable')
        self._conditional_edges[source] = ConditionalEdge(condition, dict(path_map or {}))
        return self

    def compile(
        self,
        *,
        validate: bool = False,
        observers: Sequence[GraphObserver] = (),
        max_iterations: int | None = None,
    ) -> CompiledGraph[S]:
        """Freeze the current registrations into a runnable graph.

        With ``validate`` left off the structure is accepted as-is and problems
        such as an unknown destination only surface when a run reaches them.
        """

        if validate:
            self.validate()
        return CompiledGraph(
            steps=self._steps,
            edges=self._edges,
            conditional_edges=self._conditional_edges,
            entry_point=self._entry_point,
            max_iterations=self.max_iterations if max_iterations is None else max_iterations,
            error_field=self.error_field,
            observers=observers,
        )

    def validate(self) -> None:
        problems: list[str] = []
        known = set(self._steps) | {END}

        if self._entry_point is None:
            problems.append("no entry point set")
        elif self._entry_point not in self._steps:
            problems.append(f'entry point "{self._entry_point}" is not a registered step')

        for source, destination in self._edges.items():
            if source not in self._steps:
                problems.append(f'edge source "{source}" is not a registered step')
            if destination not in known:
                problems.append(f'edge "{source}" -> "{destination}" targets an unknown step')

        for source, conditional in self._conditional_edges.items():
            if source not in self._steps:
                problems.append(f'conditional edge source "{source}" is not a registered step')
            for key, destination in conditional.path_map.items():
                if destination not in known:
                    problems.append(
                        f'conditional edge "{source}" [{key!r}] targets unknown step "{destination}"'
                    )

        if self.state_type is not None:
            reducers = field_reducers(self.state_type)
            if reducers.get(self.error_field) is not Reducer.APPEND:
                problems.append(
                    f'error field "{self.error_field}" must be an accumulating field of '
                    f"{self.state_type.__name__}"
                )

        if problems:
            raise GraphConfigurationError("Invalid graph: " + "; ".join(problems))

    def describe(self) -> dict[str, Any]:
        """Return a JSON-friendly summary of the registered structure."""

        return {
            "entry_point": self._entry_point,
            "steps": list(self._steps),
            "edges": dict(self._edges),
            "conditional_edges": {
                source: {str(getattr(key, "value", key)): dest for key, dest in edge.path_map.items()}
                for source, edge in self._conditional_edges.items()
            },
            "max_iterations": self.max_iterations,
        }


def _check_name(name: str, what: str) -> None:
    if not name:
        raise GraphConfigurationError(f"{what} name must be a non-empty string")
    if name == END:
        raise GraphConfigurationError(f'"{END}" is reserved and cannot be used as a {what}')
