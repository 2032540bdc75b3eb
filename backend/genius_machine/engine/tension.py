"""
Tension detection.

Pairwise contradiction intensity is measured from word-set distance
plus disagreement markers. A breakthrough requires all three of:
enough contradictions, enough implicated archetypes, enough layers.
"""

import logging
from collections import Counter
from itertools import combinations
from statistics import mean
from typing import Dict, List, Sequence

from .models import LayerResult, LayerTension, Perspective, TensionPair, TensionParameters, TensionSnapshot
from .text import count_markers, jaccard, similarity, word_set

logger = logging.getLogger(__name__)

MAX_MARKER_WEIGHT = 5
CONVERGENT_THEME_LIMIT = 5


def pair_intensity(first: str, second: str) -> float:
    """Contradiction intensity between two texts, in [0, 10]"""
    distance = 1.0 - jaccard(word_set(first), word_set(second))
    markers = min(MAX_MARKER_WEIGHT, count_markers(first) + count_markers(second))
    return round(min(10.0, distance * (5.0 + markers)), 2)


def perspective_tension(text: str) -> float:
    """Tension carried by one perspective on its own"""
    return float(min(10, count_markers(text) * 2 + 3))


def measure_layer(
    perspectives: Sequence[Perspective],
    history: Sequence[LayerResult],
    contradiction_floor: float,
) -> LayerTension:
    """
    Compute tension metrics for one layer.

    Args:
        perspectives: Layer perspectives in registry order (degraded ones are ignored)
        history: Earlier layers, used for novelty
        contradiction_floor: Pair intensity a contradiction must exceed

    Returns:
        LayerTension for the layer
    """
    survivors = [p for p in perspectives if not p.failed]

    pairs: List[TensionPair] = []
    intensities: List[float] = []
    for first, second in combinations(survivors, 2):
        intensity = pair_intensity(first.text, second.text)
        intensities.append(intensity)
        if intensity > contradiction_floor:
            pairs.append(TensionPair(
                first_id=first.archetype_id, second_id=second.archetype_id, intensity=intensity
            ))

    implicated: List[str] = []
    for pair in pairs:
        for aid in (pair.first_id, pair.second_id):
            if aid not in implicated:
                implicated.append(aid)

    seen = set()
    for layer in history:
        for p in layer.survivors:
            seen |= word_set(p.text)

    novelty: Dict[str, float] = {}
    for p in survivors:
        vocab = word_set(p.text)
        novelty[p.archetype_id] = round(10.0 * len(vocab - seen) / len(vocab), 2) if vocab else 0.0

    theme_counts = Counter()
    for p in survivors:
        theme_counts.update(word_set(p.text))
    themes = sorted(
        (w for w, c in theme_counts.items() if c >= 2),
        key=lambda w: (-theme_counts[w], w),
    )[:CONVERGENT_THEME_LIMIT]

    return LayerTension(
        contradiction_pairs=tuple(pairs),
        max_intensity=max(intensities, default=0.0),
        mean_intensity=round(mean(intensities), 2) if intensities else 0.0,
        implicated_archetypes=tuple(implicated),
        convergent_themes=tuple(themes),
        tension_scores={p.archetype_id: perspective_tension(p.text) for p in survivors},
        novelty_scores=novelty,
    )


class TensionDetector:
    """Evaluates the layer history of a run"""

    def __init__(self, parameters: TensionParameters):
        self.parameters = parameters

    def convergence(self, history: Sequence[LayerResult]) -> float:
        """
        Convergence score in [0, 1].

        Mean similarity of successive syntheses, shifted up when the
        latest step is closer than the first one.
        """
        if len(history) < 2:
            return 0.0
        steps = [similarity(prev.synthesis, curr.synthesis) for prev, curr in zip(history, history[1:])]
        trend = (steps[-1] - steps[0]) / 2.0
        return round(max(0.0, min(1.0, mean(steps) + trend)), 3)

    def evaluate(self, history: Sequence[LayerResult]) -> TensionSnapshot:
        """
        Recompute the tension snapshot from every completed layer.

        Args:
            history: Completed layers, oldest first

        Returns:
            TensionSnapshot; never modifies the layers it reads
        """
        params = self.parameters
        count = sum(layer.tension.contradiction_count for layer in history)

        implicated: List[str] = []
        for layer in history:
            for aid in layer.tension.implicated_archetypes:
                if aid not in implicated:
                    implicated.append(aid)

        depth = len(history)
        conditions = (
            count >= params.contradiction_threshold,
            len(implicated) >= params.archetype_overlap,
            depth >= params.recursion_depth,
        )
        breakthrough = all(conditions)

        confidence = 0.0
        if breakthrough:
            excess = mean([
                count / params.contradiction_threshold - 1.0,
                len(implicated) / params.archetype_overlap - 1.0,
                depth / params.recursion_depth - 1.0,
            ])
            confidence = round(min(100.0, 50.0 * (1.0 + excess)), 1)
            logger.info(
                f"Breakthrough at layer {depth}: {count} contradictions, "
                f"{len(implicated)} archetypes, confidence {confidence:.1f}%"
            )

        return TensionSnapshot(
            contradiction_count=count,
            convergence_score=self.convergence(history),
            breakthrough=breakthrough,
            confidence=confidence,
            implicated_archetypes=tuple(implicated),
            layers_considered=depth,
            cumulative_tension=round(sum(layer.tension.max_intensity for layer in history), 2),
        )
