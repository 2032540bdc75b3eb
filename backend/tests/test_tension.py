"""
Tests for tension measurement and breakthrough detection
"""
import pytest

from conftest import CRITICAL_TEXT, HOPEFUL_TEXT, PRACTICAL_TEXT
from genius_machine.engine.models import (
    CircuitType,
    LayerResult,
    LayerTension,
    Perspective,
    TensionPair,
    TensionParameters,
)
from genius_machine.engine.tension import (
    TensionDetector,
    measure_layer,
    pair_intensity,
    perspective_tension,
)


def perspective(aid: str, text: str, failed: bool = False) -> Perspective:
    return Perspective(
        archetype_id=aid,
        archetype_name=aid.title(),
        text="" if failed else text,
        failed=failed,
        failure_reason="timed out" if failed else None,
    )


def layer(index: int, pairs=(), synthesis: str = "shared view", max_intensity: float = 6.0) -> LayerResult:
    implicated = []
    for pair in pairs:
        for aid in (pair.first_id, pair.second_id):
            if aid not in implicated:
                implicated.append(aid)
    return LayerResult(
        layer_index=index,
        circuit_type=CircuitType.SEQUENTIAL,
        perspectives=(perspective("a", "alpha"), perspective("b", "beta")),
        synthesis=synthesis,
        tension=LayerTension(
            contradiction_pairs=tuple(pairs),
            max_intensity=max_intensity,
            implicated_archetypes=tuple(implicated),
        ),
    )


def pair(first: str, second: str) -> TensionPair:
    return TensionPair(first_id=first, second_id=second, intensity=7.0)


@pytest.mark.unit
class TestPairIntensity:
    """Pairwise contradiction intensity"""

    def test_identical_texts_have_no_tension(self):
        assert pair_intensity(PRACTICAL_TEXT, PRACTICAL_TEXT) == 0.0

    def test_opposed_texts_exceed_default_floor(self):
        assert pair_intensity(HOPEFUL_TEXT, CRITICAL_TEXT) > 5.0

    def test_agreeing_critics_stay_below_floor(self):
        assert pair_intensity(CRITICAL_TEXT, "Skeptic: " + CRITICAL_TEXT) < 5.0

    def test_intensity_is_bounded(self):
        angry = "wrong wrong wrong however reject flawed oppose disagree contrary"
        assert pair_intensity(angry, HOPEFUL_TEXT) <= 10.0

    def test_single_perspective_tension(self):
        assert perspective_tension(PRACTICAL_TEXT) == 3.0
        assert perspective_tension(CRITICAL_TEXT) == 10.0


@pytest.mark.unit
class TestMeasureLayer:
    """Layer-level metrics"""

    def test_contradiction_pairs_and_implicated(self):
        tension = measure_layer(
            [perspective("visionary", HOPEFUL_TEXT), perspective("skeptic", CRITICAL_TEXT)], (), 5.0
        )
        assert tension.contradiction_count == 1
        assert tension.implicated_archetypes == ("visionary", "skeptic")
        assert tension.max_intensity > 5.0

    def test_degraded_perspectives_are_ignored(self):
        tension = measure_layer(
            [
                perspective("visionary", HOPEFUL_TEXT),
                perspective("skeptic", CRITICAL_TEXT, failed=True),
                perspective("pragmatist", PRACTICAL_TEXT),
            ],
            (),
            5.0,
        )
        assert set(tension.tension_scores) == {"visionary", "pragmatist"}
        assert all(p.first_id != "skeptic" and p.second_id != "skeptic" for p in tension.contradiction_pairs)

    def test_novelty_drops_for_repeated_words(self):
        first = measure_layer([perspective("a", PRACTICAL_TEXT), perspective("b", HOPEFUL_TEXT)], (), 5.0)
        history = (LayerResult(
            layer_index=1,
            circuit_type=CircuitType.SEQUENTIAL,
            perspectives=(perspective("a", PRACTICAL_TEXT), perspective("b", HOPEFUL_TEXT)),
            synthesis="x",
            tension=first,
        ),)
        second = measure_layer([perspective("a", PRACTICAL_TEXT), perspective("b", HOPEFUL_TEXT)], history, 5.0)

        assert first.novelty_scores["a"] == 10.0
        assert second.novelty_scores["a"] == 0.0

    def test_convergent_themes_need_two_survivors(self):
        tension = measure_layer(
            [
                perspective("a", "Retention matters most for growth."),
                perspective("b", "Growth follows retention, not hype."),
            ],
            (),
            5.0,
        )
        assert set(tension.convergent_themes) == {"growth", "retention"}


@pytest.mark.unit
class TestTensionDetector:
    """Breakthrough rule over the layer history"""

    def test_all_three_conditions_are_required(self):
        params = TensionParameters(contradiction_threshold=2, archetype_overlap=2, recursion_depth=2)
        detector = TensionDetector(params)

        one_layer = [layer(1, [pair("a", "b"), pair("a", "c")])]
        assert detector.evaluate(one_layer).breakthrough is False

        two_layers = one_layer + [layer(2)]
        snapshot = detector.evaluate(two_layers)
        assert snapshot.breakthrough is True
        assert snapshot.contradiction_count == 2
        assert snapshot.implicated_archetypes == ("a", "b", "c")
        assert snapshot.layers_considered == 2

    def test_overlap_not_met(self):
        params = TensionParameters(contradiction_threshold=1, archetype_overlap=3, recursion_depth=1)
        snapshot = TensionDetector(params).evaluate([layer(1, [pair("a", "b")])])
        assert snapshot.breakthrough is False
        assert snapshot.confidence == 0.0

    @pytest.mark.parametrize("unmet", [
        {"contradiction_threshold": 3},
        {"archetype_overlap": 4},
        {"recursion_depth": 3},
    ])
    def test_any_single_unmet_condition_blocks_breakthrough(self, unmet):
        # 2 contradictions, 3 implicated archetypes, 2 layers
        history = [layer(1, [pair("a", "b"), pair("a", "c")]), layer(2)]
        met = {"contradiction_threshold": 2, "archetype_overlap": 3, "recursion_depth": 2}
        assert TensionDetector(TensionParameters(**met)).evaluate(history).breakthrough is True

        snapshot = TensionDetector(TensionParameters(**{**met, **unmet})).evaluate(history)
        assert snapshot.breakthrough is False
        assert snapshot.confidence == 0.0

    def test_confidence_grows_with_margin(self):
        params = TensionParameters(contradiction_threshold=1, archetype_overlap=2, recursion_depth=1)
        detector = TensionDetector(params)

        exact = detector.evaluate([layer(1, [pair("a", "b")])])
        ahead = detector.evaluate([layer(1, [pair("a", "b"), pair("b", "c")]), layer(2, [pair("a", "c")])])

        assert exact.confidence == 50.0
        assert ahead.confidence > exact.confidence
        assert ahead.confidence <= 100.0

    def test_evaluate_does_not_modify_history(self):
        history = [layer(1, [pair("a", "b")]), layer(2, [pair("a", "b")])]
        before = [h.model_dump() for h in history]
        TensionDetector(TensionParameters()).evaluate(history)
        assert [h.model_dump() for h in history] == before

    def test_convergence_needs_two_layers(self):
        detector = TensionDetector(TensionParameters())
        assert detector.convergence([layer(1)]) == 0.0
        assert detector.convergence([layer(1), layer(2)]) == 1.0

    def test_convergence_is_bounded(self):
        detector = TensionDetector(TensionParameters())
        history = [
            layer(1, synthesis="retention growth pricing"),
            layer(2, synthesis="retention growth hiring"),
            layer(3, synthesis="completely unrelated vocabulary"),
        ]
        assert 0.0 <= detector.convergence(history) <= 1.0

    def test_cumulative_tension(self):
        snapshot = TensionDetector(TensionParameters()).evaluate(
            [layer(1, max_intensity=6.0), layer(2, max_intensity=7.5)]
        )
        assert snapshot.cumulative_tension == 13.5
