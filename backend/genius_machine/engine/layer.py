"""Layer processor: one round of perspectives plus a synthesis"""

import asyncio
import logging
import time
from typing import List, Optional, Sequence

from .context import InvocationContext, with_peers
from .errors import AllArchetypesFailed, InvocationFailure
from .models import Archetype, CircuitType, LayerResult, Perspective, RunPhase
from .progress import ProgressReporter
from .synthesis import LayerSynthesizer
from .tension import measure_layer
from ..config import EngineConfig

logger = logging.getLogger(__name__)


def is_concurrent_layer(circuit_type: CircuitType, layer_index: int) -> bool:
    """Whether archetypes in this layer are invoked concurrently"""
    if circuit_type == CircuitType.PARALLEL:
        return True
    if circuit_type == CircuitType.HYBRID:
        return layer_index % 2 == 1
    return False


class LayerProcessor:
    """Fans out one layer's invocations and combines the survivors"""

    def __init__(
        self,
        invoker,
        settings: Optional[EngineConfig] = None,
        contradiction_floor: float = 5.0,
        synthesizer: Optional[LayerSynthesizer] = None,
    ):
        self.invoker = invoker
        self.settings = settings or EngineConfig()
        self.contradiction_floor = contradiction_floor
        self.synthesizer = synthesizer or LayerSynthesizer(invoker)

    async def _invoke_one(
        self,
        archetype: Archetype,
        question: str,
        context: InvocationContext,
        reporter: Optional[ProgressReporter],
    ) -> Perspective:
        start = time.monotonic()
        try:
            text = await self.invoker.invoke(archetype, question, context)
        except InvocationFailure as e:
            elapsed = time.monotonic() - start
            logger.warning(f"Layer {context.layer_index}: {archetype.name} degraded: {e}")
            return Perspective(
                archetype_id=archetype.id,
                archetype_name=archetype.name,
                latency_seconds=round(elapsed, 3),
                failed=True,
                failure_reason=str(e) or e.__class__.__name__,
            )

        elapsed = time.monotonic() - start
        if reporter is not None:
            reporter.record_duration(elapsed)
        return Perspective(
            archetype_id=archetype.id,
            archetype_name=archetype.name,
            text=text,
            latency_seconds=round(elapsed, 3),
        )

    async def _run_sequential(self, archetypes, question, context, reporter) -> List[Perspective]:
        results: List[Perspective] = []
        for archetype in archetypes:
            if reporter is not None:
                reporter.emit(
                    RunPhase.PROCESSING, context.layer_index, archetype.name,
                    completed_in_layer=len(results),
                )
            peer_context = with_peers(context, results, self.settings.context_excerpt_chars)
            results.append(await self._invoke_one(archetype, question, peer_context, reporter))
        return results

    async def _run_parallel(self, archetypes, question, context, reporter) -> List[Perspective]:
        if reporter is not None:
            for archetype in archetypes:
                reporter.emit(RunPhase.PROCESSING, context.layer_index, archetype.name)
        # gather keeps argument order, so results stay in registry order
        return list(await asyncio.gather(
            *(self._invoke_one(a, question, context, reporter) for a in archetypes)
        ))

    async def process(
        self,
        layer_index: int,
        archetypes: Sequence[Archetype],
        context: InvocationContext,
        circuit_type: CircuitType,
        question: str,
        history: Sequence[LayerResult] = (),
        reporter: Optional[ProgressReporter] = None,
    ) -> LayerResult:
        """
        Execute one layer.

        Args:
            layer_index: 1-based layer index
            archetypes: Run snapshot, in registry order
            context: Context built by the circuit for this layer
            circuit_type: Circuit type of the run
            question: Run question
            history: Completed layers before this one
            reporter: Optional progress channel

        Returns:
            LayerResult with degraded perspectives included

        Raises:
            AllArchetypesFailed: If no archetype produced a perspective
        """
        if is_concurrent_layer(circuit_type, layer_index):
            perspectives = await self._run_parallel(archetypes, question, context, reporter)
        else:
            perspectives = await self._run_sequential(archetypes, question, context, reporter)

        survivors = [p for p in perspectives if not p.failed]
        if not survivors:
            raise AllArchetypesFailed(
                layer_index, {p.archetype_id: p.failure_reason or "failed" for p in perspectives}
            )

        if reporter is not None:
            reporter.emit(RunPhase.SYNTHESIZING, layer_index, completed_in_layer=len(perspectives))

        tension = measure_layer(perspectives, history, self.contradiction_floor)
        synthesis, low_diversity = await self.synthesizer.synthesize(
            question, layer_index, survivors, tension.convergent_themes, context.enhanced
        )
        if low_diversity:
            logger.warning(f"Layer {layer_index}: only {survivors[0].archetype_name} survived")

        logger.info(
            f"Layer {layer_index}: {len(survivors)}/{len(perspectives)} perspectives, "
            f"{tension.contradiction_count} contradictions"
        )
        return LayerResult(
            layer_index=layer_index,
            circuit_type=circuit_type,
            perspectives=tuple(perspectives),
            synthesis=synthesis,
            low_diversity=low_diversity,
            tension=tension,
        )
