"""Initial configuration recommendations from the learning history"""

import logging
from typing import List, Optional

from pydantic import BaseModel, Field

from .domain import assess_complexity, detect_domain
from .store import LearningStore, RankedConfiguration
from ..engine.models import CircuitType
from ..engine.validation import RunOptions

logger = logging.getLogger(__name__)


class Recommendation(BaseModel):
    """Suggested options for a question"""
    domain: str
    complexity: int
    options: RunOptions
    rationale: str
    alternatives: List[RankedConfiguration] = Field(default_factory=list)


class ConfigurationRecommender:
    """Suggests run options for a question, learning from recorded runs"""

    def __init__(self, store: LearningStore):
        self.store = store

    @staticmethod
    def baseline(complexity: int) -> RunOptions:
        if complexity >= 8:
            return RunOptions(processing_depth=5, circuit_type=CircuitType.RECURSIVE)
        return RunOptions(processing_depth=3, circuit_type=CircuitType.SEQUENTIAL)

    def recommend(self, question: str, domain: Optional[str] = None) -> Recommendation:
        """
        Recommend options for a question.

        Args:
            question: Question text
            domain: Domain override; detected from the question when omitted

        Returns:
            Recommendation with rationale
        """
        domain = domain or detect_domain(question)
        complexity = assess_complexity(question)
        options = self.baseline(complexity)

        ranked = self.store.query_best_configurations(domain)
        if not ranked:
            return Recommendation(
                domain=domain,
                complexity=complexity,
                options=options,
                rationale=f"No learned history for {domain} yet; using complexity {complexity} defaults",
            )

        best = ranked[0]
        options = options.model_copy(update={
            "circuit_type": best.circuit_type,
            "processing_depth": best.processing_depth,
            "enhanced_mode": best.enhanced_mode,
        })
        logger.info(f"Recommending {best.signature} for {domain} (avg {best.average_score:.2f})")
        return Recommendation(
            domain=domain,
            complexity=complexity,
            options=options,
            rationale=(
                f"{best.signature} averaged {best.average_score:.2f} over "
                f"{best.sample_size} {domain} runs"
            ),
            alternatives=ranked[1:],
        )
