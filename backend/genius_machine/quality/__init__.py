"""Post-run quality scoring and learning feedback"""

from .feedback import LearningFeedback
from .scorer import QualityScorer, compute_run_metrics

__all__ = ["LearningFeedback", "QualityScorer", "compute_run_metrics"]
