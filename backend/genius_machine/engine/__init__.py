"""Insight Engine

Runs a question through several archetypes across one or more layers.

Per run:
1. Validation: options are checked and frozen into a RunConfiguration
2. Scheduler: drives layers 1..depth through the selected circuit
3. Layer processor: invokes archetypes (sequentially or concurrently)
   and synthesizes the survivors
4. Tension detector: counts contradictions and decides on breakthrough
5. Finalizing: renders the final synthesis and scores quality

The engine entry point is InsightEngine in engine.runner.
"""

from .errors import (
    AllArchetypesFailed,
    CancellationRequested,
    GeniusMachineError,
    InvocationFailure,
    InvocationTimeout,
    PersonaValidationError,
    RunTimeout,
    TransientUpstreamError,
    UpstreamError,
    ValidationError,
)
from .models import (
    Archetype,
    CircuitType,
    LayerResult,
    OutputStyle,
    ProgressEvent,
    RunConfiguration,
    RunError,
    RunResult,
    TensionSnapshot,
)
from .registry import ArchetypeRegistry
from .validation import RunOptions, validate_run

__all__ = [
    "AllArchetypesFailed",
    "CancellationRequested",
    "GeniusMachineError",
    "InvocationFailure",
    "InvocationTimeout",
    "PersonaValidationError",
    "RunTimeout",
    "TransientUpstreamError",
    "UpstreamError",
    "ValidationError",
    "Archetype",
    "CircuitType",
    "LayerResult",
    "OutputStyle",
    "ProgressEvent",
    "RunConfiguration",
    "RunError",
    "RunResult",
    "TensionSnapshot",
    "ArchetypeRegistry",
    "RunOptions",
    "validate_run",
]
