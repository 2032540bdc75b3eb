"""Run metrics and post-run quality scoring"""

import logging
from statistics import mean
from typing import Dict, List, Sequence

from ..engine.models import (
    LayerResult,
    QualityVector,
    RunConfiguration,
    RunMetrics,
    RunResult,
    TensionSnapshot,
)
from ..engine.text import ACTION_WORDS, count_markers, words

logger = logging.getLogger(__name__)

QUALITY_WEIGHTS: Dict[str, float] = {
    "confidence": 0.25,
    "novelty": 0.20,
    "breakthrough_potential": 0.20,
    "reliability": 0.15,
    "insight_depth": 0.10,
    "practical_value": 0.05,
    "coherence": 0.05,
}

STRENGTH_MESSAGES = {
    "confidence": "High confidence in the final synthesis",
    "novelty": "Perspectives kept introducing new ideas",
    "breakthrough_potential": "Strong breakthrough potential",
    "reliability": "Every archetype contributed without failures",
    "insight_depth": "Deep, multi-layer reasoning",
    "practical_value": "Actionable recommendations",
    "coherence": "Layers converged on a coherent view",
}

IMPROVEMENT_MESSAGES = {
    "confidence": "Increase depth or archetype diversity to raise confidence",
    "novelty": "Add more divergent archetypes to surface new ideas",
    "breakthrough_potential": "Lower the contradiction threshold or add layers",
    "reliability": "Some archetypes failed; check provider health",
    "insight_depth": "Use more processing layers",
    "practical_value": "Choose the practical output type for actionable advice",
    "coherence": "Try the recursive circuit so layers build on each other",
}


def _clamp(value: float, low: float = 0.0, high: float = 10.0) -> float:
    return round(max(low, min(high, value)), 2)


def breakthrough_potential(layers: Sequence[LayerResult], requested: int, breakthrough: bool) -> float:
    """Breakthrough potential in percent"""
    if not layers:
        return 0.0
    completion = len(layers) / requested
    avg_tension = mean(layer.tension.max_intensity for layer in layers)
    value = (
        completion * 40
        + min(len(layers) * 3, 30)
        + min(avg_tension * 2, 20)
        + (15 if breakthrough else 0)
    )
    return round(min(100.0, value), 1)


def compute_run_metrics(
    layers: Sequence[LayerResult], snapshot: TensionSnapshot, requested: int
) -> RunMetrics:
    """
    Metrics reported with every RunResult.

    Args:
        layers: Completed layers
        snapshot: Latest tension snapshot
        requested: Requested processing depth

    Returns:
        RunMetrics with layers_processed equal to len(layers)
    """
    total = sum(len(layer.perspectives) for layer in layers)
    degraded = sum(layer.degraded_count for layer in layers)
    survival = 1.0 - degraded / total if total else 0.0
    completion = len(layers) / requested

    confidence = 100.0 * (
        0.45 * survival
        + 0.25 * completion
        + 0.20 * snapshot.convergence_score
        + 0.10 * snapshot.confidence / 100.0
    )

    return RunMetrics(
        confidence=round(max(0.0, min(100.0, confidence)), 1),
        tension_points=snapshot.contradiction_count,
        breakthrough_potential=breakthrough_potential(layers, requested, snapshot.breakthrough),
        layers_processed=len(layers),
        layers_requested=requested,
        degraded_perspectives=degraded,
    )


class QualityScorer:
    """Scores a finished run on a 0-10 scale per metric"""

    def score(self, result: RunResult, configuration: RunConfiguration) -> QualityVector:
        """
        Score a run.

        Args:
            result: Completed, partial or cancelled result
            configuration: Configuration the run used

        Returns:
            QualityVector
        """
        layers = result.layers
        metrics = result.metrics
        total = sum(len(layer.perspectives) for layer in layers)
        convergence = result.tension.convergence_score

        novelty_values: List[float] = [
            value for layer in layers for value in layer.tension.novelty_scores.values()
        ]
        survivor_words = [len(words(p.text)) for layer in layers for p in layer.survivors]
        final_tokens = words(result.final_synthesis)
        action_hits = sum(final_tokens.count(w) for w in ACTION_WORDS)

        sub: Dict[str, float] = {
            "confidence": _clamp(metrics.confidence / 10.0),
            "novelty": _clamp(mean(novelty_values) if novelty_values else 0.0),
            "breakthrough_potential": _clamp(metrics.breakthrough_potential / 10.0),
            "reliability": _clamp(10.0 * (1.0 - metrics.degraded_perspectives / total) if total else 0.0),
            "insight_depth": _clamp(
                3.0 + 0.7 * len(layers) + min(2.0, (mean(survivor_words) if survivor_words else 0) / 25.0)
            ),
            "practical_value": _clamp(3.0 + 1.5 * action_hits),
            "coherence": _clamp(
                5.0 + 5.0 * convergence - 0.5 * count_markers(result.final_synthesis) / max(1, len(layers))
            ),
        }
        completeness = _clamp(10.0 * len(layers) / configuration.processing_depth)
        overall = _clamp(sum(sub[k] * w for k, w in QUALITY_WEIGHTS.items()))

        strengths = tuple(STRENGTH_MESSAGES[k] for k, v in sub.items() if v >= 7.5)
        improvements = tuple(IMPROVEMENT_MESSAGES[k] for k, v in sub.items() if v < 5.0)
        if completeness < 10.0:
            improvements += (f"Only {len(layers)} of {configuration.processing_depth} layers completed",)

        if overall >= 7.5:
            level = "High"
        elif overall >= 5.0:
            level = "Medium"
        else:
            level = "Low"

        logger.info(f"Run {result.run_id} quality: overall {overall:.2f} ({level})")
        return QualityVector(
            overall=overall,
            completeness=completeness,
            confidence_level=level,
            strengths=strengths,
            improvements=improvements,
            **sub,
        )
