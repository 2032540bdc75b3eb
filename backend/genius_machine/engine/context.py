"""Builds the input context each archetype receives"""

from typing import Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict

from .models import LayerResult, OutputType, Perspective
from .text import truncate

LAYER_MISSIONS = (
    "Establish foundational understanding",
    "Identify patterns and connections",
    "Explore tensions and contradictions",
    "Integrate perspectives systematically",
    "Challenge assumptions radically",
    "Detect emergence and breakthroughs",
    "Achieve meta-level transcendence",
    "Synthesize ultimate insights",
    "Reach transcendent understanding",
    "Unify all perspectives",
)

LAYER_FOCUSES = (
    "foundational examination",
    "pattern recognition",
    "tension identification",
    "systemic integration",
    "assumption challenging",
    "emergence detection",
    "meta-transcendence",
    "breakthrough synthesis",
    "ultimate perspective",
    "transcendent unity",
)

# Cumulative layer tension above which later layers are asked to resolve rather than deepen
RESOLVE_TENSION_POINTS = 15.0
CARRIED_LAYERS = 3


def layer_mission(layer_index: int) -> str:
    return LAYER_MISSIONS[min(layer_index, len(LAYER_MISSIONS)) - 1]


def layer_focus(layer_index: int) -> str:
    return LAYER_FOCUSES[min(layer_index, len(LAYER_FOCUSES)) - 1]


class InvocationContext(BaseModel):
    """Everything an archetype is told besides the question"""
    model_config = ConfigDict(frozen=True)

    layer_index: int
    total_layers: int
    mission: str
    focus: str
    directive: str = ""
    prior_layers: Tuple[str, ...] = ()
    prior_perspectives: Tuple[str, ...] = ()
    prior_tensions: Tuple[str, ...] = ()
    peer_perspectives: Tuple[str, ...] = ()
    output_type: Optional[OutputType] = None
    enhanced: bool = True


def _cumulative_tension(history: Sequence[LayerResult]) -> float:
    return sum(layer.tension.max_intensity for layer in history)


def _directive(history: Sequence[LayerResult]) -> str:
    if not history:
        return "Lay out your position clearly."
    if _cumulative_tension(history) > RESOLVE_TENSION_POINTS:
        return "Tension has built up across layers: resolve the strongest remaining contradiction."
    return "Deepen the inquiry: challenge what the earlier layers took for granted."


def build_carried_context(
    layer_index: int,
    total_layers: int,
    history: Sequence[LayerResult],
    excerpt_chars: int,
    output_type: Optional[OutputType] = None,
    enhanced: bool = True,
) -> InvocationContext:
    """Context for sequential and parallel layers: recent syntheses only"""
    recent = history[-CARRIED_LAYERS:]
    return InvocationContext(
        layer_index=layer_index,
        total_layers=total_layers,
        mission=layer_mission(layer_index),
        focus=layer_focus(layer_index),
        directive=_directive(history),
        prior_layers=tuple(
            f"Layer {layer.layer_index}: {truncate(layer.synthesis, excerpt_chars * 2)}" for layer in recent
        ),
        output_type=output_type,
        enhanced=enhanced,
    )


def build_recursive_context(
    layer_index: int,
    total_layers: int,
    history: Sequence[LayerResult],
    excerpt_chars: int,
    output_type: Optional[OutputType] = None,
    enhanced: bool = True,
) -> InvocationContext:
    """
    Context for recursive layers.

    Carries the full synthesis of the previous layer, its raw surviving
    perspectives and its contradiction pairs, and asks each archetype
    to refine or rebut them.
    """
    if not history:
        return build_carried_context(
            layer_index, total_layers, history, excerpt_chars, output_type, enhanced
        )

    previous = history[-1]
    names = {p.archetype_id: p.archetype_name for p in previous.perspectives}
    tensions = tuple(
        f"{names.get(pair.first_id, pair.first_id)} vs {names.get(pair.second_id, pair.second_id)} "
        f"(intensity {pair.intensity:.1f})"
        for pair in previous.tension.contradiction_pairs
    )
    directive = "Refine or rebut the previous layer. " + _directive(history)
    if tensions:
        directive += " Address the tensions listed."

    return InvocationContext(
        layer_index=layer_index,
        total_layers=total_layers,
        mission=layer_mission(layer_index),
        focus=layer_focus(layer_index),
        directive=directive,
        prior_layers=(f"Layer {previous.layer_index}: {previous.synthesis}",),
        prior_perspectives=tuple(
            f"{p.archetype_name}: {truncate(p.text, excerpt_chars)}" for p in previous.survivors
        ),
        prior_tensions=tensions,
        output_type=output_type,
        enhanced=enhanced,
    )


def with_peers(
    context: InvocationContext, peers: Sequence[Perspective], excerpt_chars: int
) -> InvocationContext:
    """Add earlier same-layer perspectives (sequential intra-layer order)"""
    excerpts = tuple(
        f"{p.archetype_name}: {truncate(p.text, excerpt_chars)}" for p in peers if not p.failed
    )
    if not excerpts:
        return context
    return context.model_copy(update={"peer_perspectives": excerpts})
