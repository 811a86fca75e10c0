"""Observability hooks invoked by the graph driver."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Hashable

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from .runner import GraphRunResult

__all__ = ["GraphObserver", "LoggingObserver", "RunEvent", "RunRecorder"]

logger = logging.getLogger(__name__)


class GraphObserver:
    """No-op base class; override the hooks you care about."""

    def on_step_start(self, step: str, iteration: int, state: Any) -> None:
        pass

    def on_step_end(self, step: str, iteration: int, state: Any, elapsed_ms: float) -> None:
        pass

    def on_route(self, source: str, decision: Hashable | None, destination: str) -> None:
        pass

    def on_step_error(self, step: str, error: BaseException) -> None:
        pass

    def on_run_end(self, result: "GraphRunResult[Any]") -> None:
        pass


class LoggingObserver(GraphObserver):
    """Writes every transition to a standard-library logger."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def on_step_start(self, step: str, iteration: int, state: Any) -> None:
        self._log.info('Executing step "%s" (iteration %s)', step, iteration)

    def on_step_end(self, step: str, iteration: int, state: Any, elapsed_ms: float) -> None:
        self._log.info('Step "%s" completed in %.1f ms', step, elapsed_ms)

    def on_route(self, source: str, decision: Hashable | None, destination: str) -> None:
        if decision is None:
            self._log.info('Direct edge from "%s" to "%s"', source, destination)
        else:
            self._log.info(
                'Conditional routing from "%s" to "%s" (decision=%r)', source, destination, decision
            )

    def on_step_error(self, step: str, error: BaseException) -> None:
        self._log.error('Step "%s" failed: %s', step, error, exc_info=error)

    def on_run_end(self, result: "GraphRunResult[Any]") -> None:
        if result.truncated:
            self._log.warning("Max iterations reached, run truncated after %s steps", result.iterations)
        self._log.info(
            "Graph execution complete: visited=%s iterations=%s",
            result.trace,
            result.iterations,
        )


@dataclass(slots=True)
class RunEvent:
    kind: str
    step: str
    detail: Any = None


@dataclass(slots=True)
class RunRecorder(GraphObserver):
    """Keeps an in-memory list of hook invocations, mostly for diagnostics."""

    events: list[RunEvent] = field(default_factory=list)

    def on_step_start(self, step: str, iteration: int, state: Any) -> None:
        self.events.append(RunEvent("start", step, iteration))

    def on_step_end(self, step: str, iteration: int, state: Any, elapsed_ms: float) -> None:
        self.events.append(RunEvent("end", step, iteration))

    def on_route(self, source: str, decision: Hashable | None, destination: str) -> None:
        self.events.append(RunEvent("route", source, destination))

    def on_step_error(self, step: str, error: BaseException) -> None:
        self.events.append(RunEvent("error", step, str(error)))

    def kinds(self) -> list[str]:
        return [event.kind for event in self.events]
