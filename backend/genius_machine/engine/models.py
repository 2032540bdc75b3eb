"""
Data model for the insight engine.

Every model here is frozen: a run works on snapshots, and results are
created once and handed to the caller.
"""

from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

SCALAR_MIN = 0.0
SCALAR_MAX = 10.0
DEFAULT_SCALAR = 5.0


class CircuitType(str, Enum):
    """Execution topology"""
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"
    RECURSIVE = "recursive"
    HYBRID = "hybrid"


class LanguageStyle(str, Enum):
    """Archetype language styles"""
    POETIC = "poetic"
    LOGICAL = "logical"
    NARRATIVE = "narrative"
    DISRUPTIVE = "disruptive"
    BLUNT = "blunt"
    TECHNICAL = "technical"


class OutputStyle(str, Enum):
    """How the final synthesis is rendered"""
    ULTRA_CONCISE = "ultra_concise"
    INSIGHT_SUMMARY = "insight_summary"
    COMPREHENSIVE = "comprehensive"


class OutputType(str, Enum):
    """Orientation hint passed to every archetype"""
    PRACTICAL = "practical"
    THEORETICAL = "theoretical"
    PHILOSOPHICAL = "philosophical"
    ABSTRACT = "abstract"


class RunState(str, Enum):
    """Scheduler state machine"""
    IDLE = "idle"
    INITIALIZING = "initializing"
    LAYER_LOOP = "layer_loop"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class RunPhase(str, Enum):
    """Phases reported to subscribers"""
    INITIALIZING = "initializing"
    PROCESSING = "processing"
    SYNTHESIZING = "synthesizing"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_PHASES = (RunPhase.COMPLETED, RunPhase.FAILED, RunPhase.CANCELLED)


class RunStatus(str, Enum):
    """Status of a run that produced at least one layer"""
    COMPLETED = "completed"
    PARTIAL = "partial"
    CANCELLED = "cancelled"


class RunErrorKind(str, Enum):
    """Kinds of terminal run errors"""
    VALIDATION = "validation"
    ALL_ARCHETYPES_FAILED = "all_archetypes_failed"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    INTERNAL = "internal"


class Archetype(BaseModel):
    """Simulated reasoning persona"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str = ""
    language_style: LanguageStyle = LanguageStyle.LOGICAL
    imagination: float = DEFAULT_SCALAR
    skepticism: float = DEFAULT_SCALAR
    aggression: float = DEFAULT_SCALAR
    emotionality: float = DEFAULT_SCALAR
    constraint: Optional[str] = None

    @field_validator("imagination", "skepticism", "aggression", "emotionality", mode="before")
    @classmethod
    def clamp_scalar(cls, value):
        if value is None:
            return DEFAULT_SCALAR
        return min(SCALAR_MAX, max(SCALAR_MIN, float(value)))

    @field_validator("language_style", mode="before")
    @classmethod
    def default_style(cls, value):
        return value or LanguageStyle.LOGICAL


class TensionParameters(BaseModel):
    """Breakthrough detection thresholds"""
    model_config = ConfigDict(frozen=True)

    contradiction_threshold: int = Field(default=5, ge=1, le=10)
    recursion_depth: int = Field(default=2, ge=1, le=10)
    archetype_overlap: int = Field(default=3, ge=1, le=5)


class RunConfiguration(BaseModel):
    """Validated, frozen configuration for one run"""
    model_config = ConfigDict(frozen=True)

    run_id: str
    question: str
    processing_depth: int = Field(..., ge=1, le=10)
    circuit_type: CircuitType
    enhanced_mode: bool = True
    archetypes: Tuple[Archetype, ...]
    tension: TensionParameters = Field(default_factory=TensionParameters)
    output_style: OutputStyle = OutputStyle.COMPREHENSIVE
    output_type: Optional[OutputType] = None

    @property
    def archetype_ids(self) -> List[str]:
        return [a.id for a in self.archetypes]


class Perspective(BaseModel):
    """One archetype's output for one layer"""
    model_config = ConfigDict(frozen=True)

    archetype_id: str
    archetype_name: str
    text: str = ""
    latency_seconds: float = 0.0
    failed: bool = False
    failure_reason: Optional[str] = None


class TensionPair(BaseModel):
    """A contradiction between two perspectives of the same layer"""
    model_config = ConfigDict(frozen=True)

    first_id: str
    second_id: str
    intensity: float


class LayerTension(BaseModel):
    """Tension metrics for a single layer"""
    model_config = ConfigDict(frozen=True)

    contradiction_pairs: Tuple[TensionPair, ...] = ()
    max_intensity: float = 0.0
    mean_intensity: float = 0.0
    implicated_archetypes: Tuple[str, ...] = ()
    convergent_themes: Tuple[str, ...] = ()
    tension_scores: Dict[str, float] = Field(default_factory=dict)
    novelty_scores: Dict[str, float] = Field(default_factory=dict)

    @property
    def contradiction_count(self) -> int:
        return len(self.contradiction_pairs)


class LayerResult(BaseModel):
    """Output of one processing layer"""
    model_config = ConfigDict(frozen=True)

    layer_index: int
    circuit_type: CircuitType
    perspectives: Tuple[Perspective, ...]
    synthesis: str
    low_diversity: bool = False
    tension: LayerTension = Field(default_factory=LayerTension)

    @property
    def survivors(self) -> List[Perspective]:
        return [p for p in self.perspectives if not p.failed]

    @property
    def survivor_ids(self) -> List[str]:
        return [p.archetype_id for p in self.survivors]

    @property
    def degraded_count(self) -> int:
        return sum(1 for p in self.perspectives if p.failed)


class TensionSnapshot(BaseModel):
    """Tension state across the layer history"""
    model_config = ConfigDict(frozen=True)

    contradiction_count: int = 0
    convergence_score: float = 0.0
    breakthrough: bool = False
    confidence: float = 0.0
    implicated_archetypes: Tuple[str, ...] = ()
    layers_considered: int = 0
    cumulative_tension: float = 0.0


class RunMetrics(BaseModel):
    """Per-run metrics reported with the result"""
    model_config = ConfigDict(frozen=True)

    confidence: float = Field(..., ge=0, le=100)
    tension_points: int = Field(..., ge=0)
    breakthrough_potential: float = Field(..., ge=0, le=100)
    layers_processed: int = Field(..., ge=0)
    layers_requested: int = Field(..., ge=1)
    degraded_perspectives: int = 0


class QualityVector(BaseModel):
    """Post-run quality assessment, every metric in [0, 10]"""
    model_config = ConfigDict(frozen=True)

    overall: float = Field(..., ge=0, le=10)
    confidence: float = Field(..., ge=0, le=10)
    novelty: float = Field(..., ge=0, le=10)
    breakthrough_potential: float = Field(..., ge=0, le=10)
    reliability: float = Field(..., ge=0, le=10)
    insight_depth: float = Field(..., ge=0, le=10)
    practical_value: float = Field(..., ge=0, le=10)
    coherence: float = Field(..., ge=0, le=10)
    completeness: float = Field(..., ge=0, le=10)
    confidence_level: str = "Medium"
    strengths: Tuple[str, ...] = ()
    improvements: Tuple[str, ...] = ()


class RunResult(BaseModel):
    """Final result of a completed, partial or cancelled run"""
    model_config = ConfigDict(frozen=True)

    run_id: str
    status: RunStatus
    question: str
    final_synthesis: str
    metrics: RunMetrics
    layers: Tuple[LayerResult, ...]
    tension: TensionSnapshot = Field(default_factory=TensionSnapshot)
    elapsed_seconds: float
    terminated_early: bool = False
    termination_note: Optional[str] = None
    quality: Optional[QualityVector] = None

    @property
    def layers_processed(self) -> int:
        return len(self.layers)


class RunError(BaseModel):
    """Typed terminal error"""
    model_config = ConfigDict(frozen=True)

    run_id: str
    kind: RunErrorKind
    reason: str
    retryable: bool = False
    layers_processed: int = 0


class ChunkProgress(BaseModel):
    """Chunk counter for long runs"""
    model_config = ConfigDict(frozen=True)

    current: int = 0
    total: int = 1


class ProgressEvent(BaseModel):
    """One step of run progress"""
    model_config = ConfigDict(frozen=True)

    run_id: str
    phase: RunPhase
    current_layer: int = 0
    total_layers: int
    current_archetype: Optional[str] = None
    chunk: ChunkProgress = Field(default_factory=ChunkProgress)
    message: str = ""
    eta_seconds: Optional[float] = None
    breakthrough_potential: float = 0.0
    tension_level: float = 0.0
