"""Progress reporting for a single run"""

import asyncio
import logging
import math
from statistics import mean
from typing import AsyncIterator, List, Optional, Tuple, Union

from .models import (
    TERMINAL_PHASES,
    ChunkProgress,
    ProgressEvent,
    RunError,
    RunPhase,
    RunResult,
)

logger = logging.getLogger(__name__)

PHASE_RANK = {
    RunPhase.INITIALIZING: 0,
    RunPhase.PROCESSING: 1,
    RunPhase.SYNTHESIZING: 2,
    RunPhase.FINALIZING: 3,
    RunPhase.COMPLETED: 4,
    RunPhase.FAILED: 4,
    RunPhase.CANCELLED: 4,
}

PHASE_DESCRIPTIONS = {
    RunPhase.INITIALIZING: "Preparing archetypes and run state",
    RunPhase.PROCESSING: "Archetypes are generating perspectives",
    RunPhase.SYNTHESIZING: "Combining perspectives and measuring tension",
    RunPhase.FINALIZING: "Building the final synthesis",
    RunPhase.COMPLETED: "Run complete",
    RunPhase.FAILED: "Run failed",
    RunPhase.CANCELLED: "Run cancelled",
}

DEFAULT_INVOCATION_SECONDS = 5.0

Outcome = Union[RunResult, RunError]
StreamItem = Union[ProgressEvent, RunResult, RunError]


class ProgressReporter:
    """
    Typed event channel for one run.

    Events are ordered by (layer, phase rank); anything that would move
    backwards is dropped. Each subscriber gets its own queue, starts at
    the last known event, and ends with exactly one terminal outcome.
    """

    def __init__(self, run_id: str, total_layers: int, archetype_count: int, chunk_size: int = 2):
        self.run_id = run_id
        self.total_layers = total_layers
        self.archetype_count = archetype_count
        self.chunk_size = chunk_size

        self.breakthrough_potential = 0.0
        self.tension_level = 0.0

        self._position: Tuple[int, int] = (-1, -1)
        self._last: Optional[ProgressEvent] = None
        self._outcome: Optional[Outcome] = None
        self._subscribers: List[asyncio.Queue] = []
        self._durations: List[float] = []

    @property
    def last_event(self) -> Optional[ProgressEvent]:
        return self._last

    @property
    def outcome(self) -> Optional[Outcome]:
        return self._outcome

    def chunk_for(self, layer: int) -> ChunkProgress:
        total = math.ceil(self.total_layers / self.chunk_size)
        current = math.ceil(layer / self.chunk_size) if layer > 0 else 0
        return ChunkProgress(current=min(current, total), total=total)

    def record_duration(self, seconds: float):
        self._durations.append(seconds)

    def eta(self, layer: int, completed_in_layer: int) -> float:
        """Seconds left, from the average observed invocation time"""
        per_call = mean(self._durations) if self._durations else DEFAULT_INVOCATION_SECONDS
        remaining_layers = max(0, self.total_layers - max(layer, 1))
        remaining = remaining_layers * self.archetype_count + max(
            0, self.archetype_count - completed_in_layer
        )
        return round(per_call * remaining, 1)

    def emit(
        self,
        phase: RunPhase,
        layer: int = 0,
        archetype: Optional[str] = None,
        message: Optional[str] = None,
        completed_in_layer: int = 0,
    ) -> Optional[ProgressEvent]:
        """
        Publish an event unless it would regress.

        Returns:
            The published event, or None when dropped
        """
        if self._outcome is not None:
            logger.warning(f"Run {self.run_id}: progress after terminal outcome dropped ({phase.value})")
            return None

        rank = PHASE_RANK[phase]
        if rank >= PHASE_RANK[RunPhase.FINALIZING]:
            layer = max(layer, self._position[0])

        position = (layer, rank)
        if position < self._position:
            logger.warning(
                f"Run {self.run_id}: dropped regressing progress {phase.value}@{layer} "
                f"(last {self._position})"
            )
            return None
        self._position = position

        event = ProgressEvent(
            run_id=self.run_id,
            phase=phase,
            current_layer=layer,
            total_layers=self.total_layers,
            current_archetype=archetype,
            chunk=self.chunk_for(layer),
            message=message or PHASE_DESCRIPTIONS[phase],
            eta_seconds=0.0 if phase in TERMINAL_PHASES else self.eta(layer, completed_in_layer),
            breakthrough_potential=self.breakthrough_potential,
            tension_level=self.tension_level,
        )
        self._last = event
        for queue in self._subscribers:
            queue.put_nowait(event)
        return event

    def finish(self, outcome: Outcome):
        """Deliver the terminal outcome once and close every subscription"""
        if self._outcome is not None:
            return
        self._outcome = outcome
        for queue in self._subscribers:
            queue.put_nowait(outcome)
        self._subscribers.clear()

    async def subscribe(self) -> AsyncIterator[StreamItem]:
        """Yield events from the last known one onward, then the outcome"""
        queue: asyncio.Queue = asyncio.Queue()
        if self._last is not None:
            queue.put_nowait(self._last)
        if self._outcome is not None:
            queue.put_nowait(self._outcome)
        else:
            self._subscribers.append(queue)

        try:
            while True:
                item = await queue.get()
                yield item
                if not isinstance(item, ProgressEvent):
                    break
        finally:
            if queue in self._subscribers:
                self._subscribers.remove(queue)
