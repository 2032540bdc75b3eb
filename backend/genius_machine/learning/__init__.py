"""Learning store, domain detection and configuration recommendations"""

from .domain import assess_complexity, detect_domain
from .recommender import ConfigurationRecommender, Recommendation
from .store import (
    InMemoryLearningStore,
    JsonlLearningStore,
    LearningRecord,
    LearningStore,
    RankedConfiguration,
    create_store,
)

__all__ = [
    "assess_complexity",
    "detect_domain",
    "ConfigurationRecommender",
    "Recommendation",
    "InMemoryLearningStore",
    "JsonlLearningStore",
    "LearningRecord",
    "LearningStore",
    "RankedConfiguration",
    "create_store",
]
