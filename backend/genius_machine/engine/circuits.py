"""
Circuit strategies.

Each circuit type is one implementation of advance_layer. They share
the layer processor and differ only in intra-layer ordering (decided by
the processor from the circuit type) and in how a layer's context is
built from the layers before it.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional, Sequence, Type

from .context import InvocationContext, build_carried_context, build_recursive_context
from .layer import LayerProcessor
from .models import CircuitType, LayerResult, RunConfiguration
from .progress import ProgressReporter
from ..config import EngineConfig


class CircuitStrategy(ABC):
    """Cross-layer control flow for one circuit type"""

    circuit_type: CircuitType

    def __init__(self, processor: LayerProcessor, settings: Optional[EngineConfig] = None):
        self.processor = processor
        self.settings = settings or EngineConfig()

    @abstractmethod
    def build_context(
        self, layer_index: int, history: Sequence[LayerResult], configuration: RunConfiguration
    ) -> InvocationContext:
        """
        Build the input context for a layer.

        Args:
            layer_index: 1-based index of the layer about to run
            history: Completed layers, oldest first
            configuration: Frozen run configuration

        Returns:
            InvocationContext shared by the layer's archetypes
        """
        pass

    async def advance_layer(
        self,
        layer_index: int,
        history: Sequence[LayerResult],
        configuration: RunConfiguration,
        reporter: Optional[ProgressReporter] = None,
    ) -> LayerResult:
        context = self.build_context(layer_index, history, configuration)
        return await self.processor.process(
            layer_index,
            configuration.archetypes,
            context,
            self.circuit_type,
            configuration.question,
            history,
            reporter,
        )

    def _carried(self, layer_index, history, configuration) -> InvocationContext:
        return build_carried_context(
            layer_index,
            configuration.processing_depth,
            history,
            self.settings.context_excerpt_chars,
            configuration.output_type,
            configuration.enhanced_mode,
        )

    def _recursive(self, layer_index, history, configuration) -> InvocationContext:
        return build_recursive_context(
            layer_index,
            configuration.processing_depth,
            history,
            self.settings.context_excerpt_chars,
            configuration.output_type,
            configuration.enhanced_mode,
        )


class SequentialCircuit(CircuitStrategy):
    """One archetype at a time, each seeing the ones before it"""

    circuit_type = CircuitType.SEQUENTIAL

    def build_context(self, layer_index, history, configuration):
        return self._carried(layer_index, history, configuration)


class ParallelCircuit(CircuitStrategy):
    """All archetypes at once with identical context, joined before synthesis"""

    circuit_type = CircuitType.PARALLEL

    def build_context(self, layer_index, history, configuration):
        return self._carried(layer_index, history, configuration)


class RecursiveCircuit(CircuitStrategy):
    """Each layer refines or rebuts the full output of the previous one"""

    circuit_type = CircuitType.RECURSIVE

    def build_context(self, layer_index, history, configuration):
        return self._recursive(layer_index, history, configuration)


class HybridCircuit(CircuitStrategy):
    """Odd layers parallel, even layers recursive"""

    circuit_type = CircuitType.HYBRID

    def build_context(self, layer_index, history, configuration):
        if layer_index % 2 == 1:
            return self._carried(layer_index, history, configuration)
        return self._recursive(layer_index, history, configuration)


CIRCUITS: Dict[CircuitType, Type[CircuitStrategy]] = {
    CircuitType.SEQUENTIAL: SequentialCircuit,
    CircuitType.PARALLEL: ParallelCircuit,
    CircuitType.RECURSIVE: RecursiveCircuit,
    CircuitType.HYBRID: HybridCircuit,
}


def create_circuit(
    circuit_type: CircuitType, processor: LayerProcessor, settings: Optional[EngineConfig] = None
) -> CircuitStrategy:
    return CIRCUITS[CircuitType(circuit_type)](processor, settings)
