"""Error taxonomy for the insight engine"""

from typing import Dict, List, Optional


class GeniusMachineError(Exception):
    """Base class for all engine errors"""


class ValidationError(GeniusMachineError):
    """Bad run configuration, rejected before any invocation"""

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems) or "Invalid run configuration")


class InvocationFailure(GeniusMachineError):
    """A single archetype invocation failed"""

    retryable = False

    def __init__(self, message: str, archetype_id: Optional[str] = None):
        self.archetype_id = archetype_id
        super().__init__(message)


class InvocationTimeout(InvocationFailure):
    """Invocation exceeded its time budget"""


class UpstreamError(InvocationFailure):
    """Model provider returned a non-transient error"""


class TransientUpstreamError(UpstreamError):
    """Rate limiting, dropped connections and server-side hiccups"""

    retryable = True


class PersonaValidationError(InvocationFailure):
    """Persona is malformed and must not be retried"""


class AllArchetypesFailed(GeniusMachineError):
    """Every archetype in a layer failed"""

    def __init__(self, layer_index: int, reasons: Dict[str, str]):
        self.layer_index = layer_index
        self.reasons = dict(reasons)
        detail = ", ".join(f"{k}: {v}" for k, v in self.reasons.items())
        super().__init__(f"All archetypes failed in layer {layer_index} ({detail})")


class RunTimeout(GeniusMachineError):
    """Run exceeded its wall-clock cap"""


class CancellationRequested(GeniusMachineError):
    """Caller cancelled the run"""


class RunNotFound(GeniusMachineError):
    """No run registered under the given id"""
