"""Circuit scheduler: the per-run state machine"""

import asyncio
import logging
import time
from typing import List, Optional, Union

from .circuits import create_circuit
from .errors import AllArchetypesFailed, CancellationRequested, RunTimeout
from .layer import LayerProcessor
from .models import (
    LayerResult,
    RunConfiguration,
    RunError,
    RunErrorKind,
    RunPhase,
    RunResult,
    RunState,
    RunStatus,
    TensionSnapshot,
)
from .output import render_final_synthesis
from .progress import ProgressReporter
from .tension import TensionDetector
from ..config import EngineConfig
from ..quality.scorer import QualityScorer, breakthrough_potential, compute_run_metrics

logger = logging.getLogger(__name__)

STOP_BREAKTHROUGH = "breakthrough"
STOP_TIMEOUT = "timeout"
STOP_CANCELLED = "cancelled"
STOP_LAYER_FAILED = "layer_failed"


class CircuitScheduler:
    """
    Drives one run through Idle, Initializing, LayerLoop and Finalizing.

    A scheduler instance serves a single run; the layer processor and
    invoker behind it are shared and stateless.
    """

    def __init__(
        self,
        processor: LayerProcessor,
        settings: Optional[EngineConfig] = None,
        scorer: Optional[QualityScorer] = None,
    ):
        self.processor = processor
        self.settings = settings or EngineConfig()
        self.scorer = scorer or QualityScorer()
        self.state = RunState.IDLE

    def _transition(self, state: RunState, run_id: str):
        logger.info(f"Run {run_id}: {self.state.value} -> {state.value}")
        self.state = state

    async def _advance(self, circuit, layer_index, history, configuration, reporter, cancel_event, timeout):
        """
        Run one layer, racing it against cancellation and the run deadline.

        Returns:
            LayerResult

        Raises:
            CancellationRequested: The cancel event was set first
            RunTimeout: The run deadline passed first
            AllArchetypesFailed: Propagated from the layer processor
        """
        layer_task = asyncio.ensure_future(
            circuit.advance_layer(layer_index, tuple(history), configuration, reporter)
        )
        cancel_task = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {layer_task, cancel_task}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            # asyncio.wait leaves its tasks running when the waiter itself is cancelled
            layer_task.cancel()
            await asyncio.gather(layer_task, return_exceptions=True)
            raise
        finally:
            cancel_task.cancel()

        if layer_task not in done:
            layer_task.cancel()
            await asyncio.gather(layer_task, return_exceptions=True)
            if cancel_event.is_set():
                raise CancellationRequested(f"Cancelled during layer {layer_index}")
            raise RunTimeout(f"Run time cap reached during layer {layer_index}")

        return layer_task.result()

    async def run(
        self,
        configuration: RunConfiguration,
        reporter: ProgressReporter,
        cancel_event: asyncio.Event,
    ) -> Union[RunResult, RunError]:
        """
        Execute a validated run.

        Args:
            configuration: Frozen run configuration
            reporter: Progress channel for this run
            cancel_event: Set by the caller to cancel

        Returns:
            RunResult (completed, partial or cancelled) or RunError
        """
        run_id = configuration.run_id
        depth = configuration.processing_depth
        start = time.monotonic()
        deadline = start + self.settings.run_timeout_seconds

        self._transition(RunState.INITIALIZING, run_id)
        reporter.emit(RunPhase.INITIALIZING, 0)
        circuit = create_circuit(configuration.circuit_type, self.processor, self.settings)
        detector = TensionDetector(configuration.tension)

        history: List[LayerResult] = []
        snapshot = TensionSnapshot()
        stop_reason: Optional[str] = None
        failure: Optional[AllArchetypesFailed] = None

        self._transition(RunState.LAYER_LOOP, run_id)
        for layer_index in range(1, depth + 1):
            if cancel_event.is_set():
                stop_reason = STOP_CANCELLED
                break
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                stop_reason = STOP_TIMEOUT
                break

            logger.info(f"Run {run_id}: layer {layer_index}/{depth} ({configuration.circuit_type.value})")
            try:
                layer = await self._advance(
                    circuit, layer_index, history, configuration, reporter, cancel_event, remaining
                )
            except CancellationRequested as e:
                logger.info(f"Run {run_id}: {e}")
                stop_reason = STOP_CANCELLED
                break
            except RunTimeout as e:
                logger.warning(f"Run {run_id}: {e}")
                stop_reason = STOP_TIMEOUT
                break
            except AllArchetypesFailed as e:
                logger.error(f"Run {run_id}: {e}")
                failure = e
                stop_reason = STOP_LAYER_FAILED
                break

            history.append(layer)
            snapshot = detector.evaluate(history)
            reporter.tension_level = layer.tension.max_intensity
            reporter.breakthrough_potential = breakthrough_potential(history, depth, snapshot.breakthrough)

            if (
                layer_index < depth
                and snapshot.breakthrough
                and snapshot.confidence >= self.settings.early_termination_confidence
            ):
                stop_reason = STOP_BREAKTHROUGH
                break

        self._transition(RunState.FINALIZING, run_id)
        reporter.emit(RunPhase.FINALIZING)
        elapsed = round(time.monotonic() - start, 3)

        if not history:
            return self._fail(run_id, stop_reason, failure, reporter)

        return self._finalize(configuration, history, snapshot, stop_reason, failure, elapsed, reporter)

    def _fail(self, run_id, stop_reason, failure, reporter) -> RunError:
        if stop_reason == STOP_CANCELLED:
            error = RunError(
                run_id=run_id, kind=RunErrorKind.CANCELLED,
                reason="Run cancelled before any layer completed",
            )
            self._transition(RunState.CANCELLED, run_id)
            reporter.emit(RunPhase.CANCELLED)
            return error

        if stop_reason == STOP_TIMEOUT:
            error = RunError(
                run_id=run_id, kind=RunErrorKind.TIMEOUT, retryable=True,
                reason=f"Run exceeded {self.settings.run_timeout_seconds:.0f}s before any layer completed",
            )
        else:
            error = RunError(
                run_id=run_id, kind=RunErrorKind.ALL_ARCHETYPES_FAILED, retryable=True,
                reason=str(failure) if failure else "No layer completed",
            )
        self._transition(RunState.FAILED, run_id)
        reporter.emit(RunPhase.FAILED)
        return error

    def _finalize(self, configuration, history, snapshot, stop_reason, failure, elapsed, reporter) -> RunResult:
        depth = configuration.processing_depth
        processed = len(history)
        note = None
        status = RunStatus.COMPLETED

        if stop_reason == STOP_BREAKTHROUGH:
            note = (
                f"Breakthrough confirmed at {snapshot.confidence:.0f}% confidence; "
                f"processed {processed} of {depth} requested layers"
            )
        elif stop_reason == STOP_TIMEOUT:
            status = RunStatus.PARTIAL
            note = f"Run time cap reached; processed {processed} of {depth} requested layers"
        elif stop_reason == STOP_LAYER_FAILED:
            status = RunStatus.PARTIAL
            note = (
                f"All archetypes failed in layer {failure.layer_index}; "
                f"using layer {processed} of {depth} requested layers"
            )
        elif stop_reason == STOP_CANCELLED:
            status = RunStatus.CANCELLED
            note = f"Cancelled after {processed} of {depth} requested layers"

        result = RunResult(
            run_id=configuration.run_id,
            status=status,
            question=configuration.question,
            final_synthesis=render_final_synthesis(history, configuration.output_style, note),
            metrics=compute_run_metrics(history, snapshot, depth),
            layers=tuple(history),
            tension=snapshot,
            elapsed_seconds=elapsed,
            terminated_early=processed < depth,
            termination_note=note,
        )
        result = result.model_copy(update={"quality": self.scorer.score(result, configuration)})

        if status == RunStatus.CANCELLED:
            self._transition(RunState.CANCELLED, configuration.run_id)
            reporter.emit(RunPhase.CANCELLED)
        else:
            self._transition(RunState.COMPLETED, configuration.run_id)
            reporter.emit(RunPhase.COMPLETED)
        return result
