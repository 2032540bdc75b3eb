"""Inbound engine API: start, cancel and subscribe to runs"""

import asyncio
import logging
from collections import OrderedDict
from typing import AsyncIterator, Optional, Set, Union

from .errors import RunNotFound
from .layer import LayerProcessor
from .models import RunConfiguration, RunError, RunErrorKind, RunResult, RunStatus, TensionParameters
from .progress import ProgressReporter, StreamItem
from .registry import ArchetypeRegistry
from .scheduler import CircuitScheduler
from .validation import RunOptions, validate_run
from ..agent.base import BasePerspectiveProvider
from ..agent.factory import ProviderFactory
from ..agent.invoker import PerspectiveInvoker
from ..config import Config, get_config
from ..learning.domain import detect_domain
from ..learning.store import LearningStore, create_store
from ..quality.feedback import LearningFeedback
from ..quality.scorer import QualityScorer

logger = logging.getLogger(__name__)

Outcome = Union[RunResult, RunError]

MAX_RETAINED_RUNS = 256


class RunHandle:
    """Caller's reference to one run"""

    def __init__(self, configuration: RunConfiguration, reporter: ProgressReporter):
        self.configuration = configuration
        self.reporter = reporter
        self.cancel_event = asyncio.Event()
        self.task: Optional[asyncio.Task] = None

    @property
    def run_id(self) -> str:
        return self.configuration.run_id

    @property
    def last_event(self):
        return self.reporter.last_event

    @property
    def done(self) -> bool:
        return self.reporter.outcome is not None

    @property
    def outcome(self) -> Optional[Outcome]:
        return self.reporter.outcome

    async def wait(self) -> Outcome:
        """Wait for the terminal outcome"""
        return await self.task


class InsightEngine:
    """
    Entry point for running insight generation.

    Owns the shared, stateless collaborators (provider, invoker, layer
    processor, scorer) and the learning store; each run gets its own
    scheduler, reporter and cancel event.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        provider: Optional[BasePerspectiveProvider] = None,
        registry: Optional[ArchetypeRegistry] = None,
        store: Optional[LearningStore] = None,
    ):
        if config is None:
            config = get_config()

        self.config = config
        self.registry = registry or ArchetypeRegistry(config)
        self.provider = provider or ProviderFactory.create_primary(config)
        self.invoker = PerspectiveInvoker(self.provider, config.engine)
        self.processor = LayerProcessor(
            self.invoker, config.engine, config.tension.contradiction_floor
        )
        self.scorer = QualityScorer()
        self.store = store or create_store(
            config.learning.store_path, config.learning.max_records, config.learning.min_samples
        )
        self.feedback = LearningFeedback(self.store)

        self._runs: "OrderedDict[str, RunHandle]" = OrderedDict()
        self._background: Set[asyncio.Task] = set()

        logger.info(f"InsightEngine ready with provider: {self.provider.name}")

    @property
    def tension_defaults(self) -> TensionParameters:
        t = self.config.tension
        return TensionParameters(
            contradiction_threshold=t.contradiction_threshold,
            recursion_depth=t.recursion_depth,
            archetype_overlap=t.archetype_overlap,
        )

    def start_run(self, question: str, options: Optional[RunOptions] = None) -> RunHandle:
        """
        Validate and start a run on the running event loop.

        Args:
            question: Question text
            options: Run options; defaults when omitted

        Returns:
            RunHandle

        Raises:
            ValidationError: Synchronously, before any invocation
        """
        configuration = validate_run(
            question, options or RunOptions(), self.registry, self.tension_defaults
        )
        reporter = ProgressReporter(
            configuration.run_id,
            configuration.processing_depth,
            len(configuration.archetypes),
            self.config.engine.chunk_size,
        )
        handle = RunHandle(configuration, reporter)
        handle.task = asyncio.create_task(self._execute(handle), name=f"run-{configuration.run_id}")

        self._runs[configuration.run_id] = handle
        self._prune()
        logger.info(
            f"Started run {configuration.run_id}: depth {configuration.processing_depth}, "
            f"{configuration.circuit_type.value}, archetypes {configuration.archetype_ids}"
        )
        return handle

    def _prune(self):
        while len(self._runs) > MAX_RETAINED_RUNS:
            oldest_id = next((rid for rid, h in self._runs.items() if h.done), None)
            if oldest_id is None:
                break
            del self._runs[oldest_id]

    async def _execute(self, handle: RunHandle) -> Outcome:
        scheduler = CircuitScheduler(self.processor, self.config.engine, self.scorer)
        try:
            outcome = await scheduler.run(handle.configuration, handle.reporter, handle.cancel_event)
        except asyncio.CancelledError:
            handle.reporter.finish(RunError(
                run_id=handle.run_id, kind=RunErrorKind.CANCELLED, reason="Run task was cancelled"
            ))
            raise
        except Exception as e:
            logger.exception(f"Run {handle.run_id} failed unexpectedly")
            outcome = RunError(
                run_id=handle.run_id,
                kind=RunErrorKind.INTERNAL,
                reason=f"Internal error: {e}",
                layers_processed=0,
            )

        handle.reporter.finish(outcome)
        if isinstance(outcome, RunResult):
            logger.info(
                f"Run {handle.run_id} {outcome.status.value}: "
                f"{outcome.layers_processed}/{handle.configuration.processing_depth} layers "
                f"in {outcome.elapsed_seconds:.2f}s"
            )
            if outcome.status != RunStatus.CANCELLED and outcome.quality is not None:
                self._record(outcome, handle.configuration)
        else:
            logger.warning(f"Run {handle.run_id} ended with {outcome.kind.value}: {outcome.reason}")
        return outcome

    def _record(self, result: RunResult, configuration: RunConfiguration):
        domain = detect_domain(configuration.question)
        task = asyncio.create_task(
            self.feedback.record(result.quality, configuration, domain, result.layers_processed)
        )
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def get(self, run_id: str) -> RunHandle:
        if run_id not in self._runs:
            raise RunNotFound(f"Run '{run_id}' not found")
        return self._runs[run_id]

    def cancel(self, handle: Union[RunHandle, str]):
        """Request cancellation; the run finalizes with a cancelled outcome"""
        if isinstance(handle, str):
            handle = self.get(handle)
        if not handle.done:
            logger.info(f"Cancelling run {handle.run_id}")
            handle.cancel_event.set()

    def subscribe(self, handle: Union[RunHandle, str]) -> AsyncIterator[StreamItem]:
        """Stream progress events, ending with the terminal outcome"""
        if isinstance(handle, str):
            handle = self.get(handle)
        return handle.reporter.subscribe()

    async def aclose(self):
        """Cancel active runs and wait for pending learning writes"""
        active = [h for h in self._runs.values() if not h.done]
        for handle in active:
            handle.cancel_event.set()
        if active:
            await asyncio.gather(*(h.task for h in active), return_exceptions=True)
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        await self.provider.aclose()
