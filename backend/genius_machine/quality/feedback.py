"""Learning feedback: records run quality without ever failing the run"""

import asyncio
import logging
from typing import Optional

from ..engine.models import QualityVector, RunConfiguration
from ..learning.store import LearningRecord, LearningStore

logger = logging.getLogger(__name__)


class LearningFeedback:
    """Fire-and-forget writer in front of a learning store"""

    def __init__(self, store: LearningStore):
        self.store = store

    async def record(
        self,
        vector: QualityVector,
        configuration: RunConfiguration,
        domain: str,
        layers_processed: Optional[int] = None,
    ) -> Optional[LearningRecord]:
        """
        Append to the store off the event loop.

        Returns:
            The stored record, or None when the write failed
        """
        try:
            return await asyncio.to_thread(
                self.store.append, vector, configuration, domain, layers_processed
            )
        except Exception as e:
            logger.error(f"Failed to record learning data for run {configuration.run_id}: {e}")
            return None
