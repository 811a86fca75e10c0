"""Runs the content graph for one product under a caller-side deadline."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, Sequence

from ..config import PageGraphConfig
from ..graph import CompiledGraph, GraphError, GraphObserver, GraphRunResult, GraphTimeoutError, LoggingObserver
from ..io import CatalogError, JsonProductRepository, PageStore, ProductNotFoundError
from ..llm.client import ChatClient
from ..llm.cost import CostTracker
from ..llm.providers import ProviderError, build_provider
from .schema import ProductRecord
from .state import ContentState, create_initial_state
from .workflow import build_content_graph

__all__ = [
    "GenerationOutcome",
    "ProductRepository",
    "ContentOrchestrator",
    "build_orchestrator",
    "orchestrate",
]

logger = logging.getLogger(__name__)

# runs abandoned by a timeout keep going; hold a reference until they finish
_ABANDONED: set[asyncio.Task[Any]] = set()


class ProductRepository(Protocol):
    async def get(self, product_id: str) -> ProductRecord | None: ...


@dataclass(slots=True)
class GenerationOutcome:
    """Well-formed result of one generation, successful or not."""

    success: bool
    execution_id: str
    total_execution_time_ms: int
    results: dict[str, bool] = field(default_factory=lambda: {"faq": False, "product": False, "comparison": False})
    agent_logs: list[dict[str, Any]] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    memory: dict[str, Any] = field(default_factory=dict)
    questions: int = 0
    answers: int = 0
    trace: list[str] = field(default_factory=list)
    timed_out: bool = False
    error: Optional[str] = None
    state: Optional[ContentState] = None

    @classmethod
    def from_run(cls, execution_id: str, elapsed_ms: int, run: GraphRunResult[ContentState]) -> "GenerationOutcome":
        state = run.state
        results = {
            "faq": state.faq_page is not None,
            "product": state.product_page is not None,
            "comparison": state.comparison_page is not None,
        }
        return cls(
            success=not state.errors or results["faq"] or results["product"],
            execution_id=execution_id,
            total_execution_time_ms=elapsed_ms,
            results=results,
            agent_logs=[entry.model_dump() for entry in state.agent_logs],
            errors=list(state.errors),
            memory=dict(state.memory),
            questions=len(state.questions),
            answers=len(state.answers),
            trace=list(run.trace),
            state=state,
        )

    @classmethod
    def failure(
        cls, execution_id: str, elapsed_ms: int, message: str, *, timed_out: bool = False
    ) -> "GenerationOutcome":
        return cls(
            success=False,
            execution_id=execution_id,
            total_execution_time_ms=elapsed_ms,
            errors=[message],
            timed_out=timed_out,
            error=message,
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "success": self.success,
            "execution_id": self.execution_id,
            "total_execution_time_ms": self.total_execution_time_ms,
            "results": dict(self.results),
            "agent_logs": list(self.agent_logs),
            "errors": list(self.errors),
            "memory": dict(self.memory),
            "generated": {
                "questions": self.questions,
                "answers": self.answers,
                "pages": dict(self.results),
            },
            "trace": list(self.trace),
            "timed_out": self.timed_out,
        }
        if self.error is not None:
            payload["error"] = self.error
        return payload


class ContentOrchestrator:
    """Fetches a product, runs the compiled graph and summarises the final state."""

    def __init__(
        self,
        graph: CompiledGraph[ContentState],
        repository: ProductRepository,
        *,
        timeout_seconds: float = 300.0,
        fetch_attempts: int = 3,
        fetch_retry_delay: float = 1.0,
    ) -> None:
        if fetch_attempts < 1:
            raise ValueError("fetch_attempts must be at least 1")
        self.graph = graph
        self.repository = repository
        self.timeout_seconds = timeout_seconds
        self.fetch_attempts = fetch_attempts
        self.fetch_retry_delay = fetch_retry_delay

    async def generate(
        self,
        product_id: str,
        *,
        should_generate_faq: bool = True,
        should_generate_product: bool = True,
        should_generate_comparison: bool = True,
    ) -> GenerationOutcome:
        execution_id = str(uuid.uuid4())
        started = time.perf_counter()
        logger.info("Starting content generation %s for product %s", execution_id, product_id)

        try:
            product = await self.fetch_product(product_id)
            initial = create_initial_state(
                execution_id,
                product_id,
                product,
                should_generate_faq=should_generate_faq,
                should_generate_product=should_generate_product,
                should_generate_comparison=should_generate_comparison,
            )
            run = await self._run_with_deadline(initial)
        except GraphTimeoutError as exc:
            logger.error("Generation %s timed out: %s", execution_id, exc)
            return GenerationOutcome.failure(execution_id, _elapsed_ms(started), str(exc), timed_out=True)
        except (GraphError, CatalogError, ProviderError) as exc:
            logger.error("Generation %s failed: %s", execution_id, exc)
            return GenerationOutcome.failure(execution_id, _elapsed_ms(started), str(exc) or type(exc).__name__)

        outcome = GenerationOutcome.from_run(execution_id, _elapsed_ms(started), run)
        logger.info(
            "Content generation %s complete (errors=%s, questions=%s, answers=%s, %s ms)",
            execution_id,
            len(outcome.errors),
            outcome.questions,
            outcome.answers,
            outcome.total_execution_time_ms,
        )
        return outcome

    async def fetch_product(self, product_id: str) -> ProductRecord:
        for attempt in range(1, self.fetch_attempts + 1):
            product = await self.repository.get(product_id)
            if product is not None:
                return product
            if attempt < self.fetch_attempts:
                logger.info("Product fetch attempt %s failed, retrying", attempt)
                await asyncio.sleep(self.fetch_retry_delay)
        raise ProductNotFoundError(
            f"Product not found: {product_id}. Please select a product from the list and try again."
        )

    async def _run_with_deadline(self, initial: ContentState) -> GraphRunResult[ContentState]:
        task = asyncio.ensure_future(self.graph.execute(initial))
        done, _ = await asyncio.wait({task}, timeout=self.timeout_seconds)
        if task in done:
            return task.result()

        # the run is not cancelled; its result is simply no longer awaited
        _ABANDONED.add(task)
        task.add_done_callback(_discard_abandoned)
        raise GraphTimeoutError(f"Graph execution timeout after {self.timeout_seconds:g} seconds")


def _discard_abandoned(task: asyncio.Task[Any]) -> None:
    _ABANDONED.discard(task)
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.warning("Abandoned graph run finished with an error: %s", error)


def build_orchestrator(
    config: PageGraphConfig | None = None,
    *,
    observers: Sequence[GraphObserver] | None = None,
    client: ChatClient | None = None,
) -> ContentOrchestrator:
    """Wire the default collaborators described by ``config``."""

    config = config or PageGraphConfig()
    if client is None:
        provider = build_provider(**config.llm.provider_kwargs())
        tracker = CostTracker(
            budget_limit=config.budget.enforced_limit(),
            warn_ratio=config.budget.warn_ratio,
        )
        client = ChatClient(
            provider,
            cost_tracker=tracker,
            max_attempts=config.llm.max_attempts,
            retry_delay=config.llm.retry_delay,
        )
    store = PageStore(config.output_path)
    graph = build_content_graph(
        client,
        store,
        config=config.graph,
        llm=config.llm,
        observers=(LoggingObserver(),) if observers is None else observers,
    )
    return ContentOrchestrator(
        graph,
        JsonProductRepository(config.catalog_path),
        timeout_seconds=config.graph.timeout_seconds,
        fetch_attempts=config.graph.fetch_attempts,
        fetch_retry_delay=config.graph.fetch_retry_delay,
    )


async def orchestrate(
    product_id: str,
    config: PageGraphConfig | None = None,
    **flags: bool,
) -> GenerationOutcome:
    return await build_orchestrator(config).generate(product_id, **flags)


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
