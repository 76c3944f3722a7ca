"""
Global Aggregation Service: sampled, best-effort update of trending topics.
"""

import random
from concurrent.futures import Executor, ThreadPoolExecutor
from datetime import datetime
from typing import Callable, List, Optional

from ..utils.config import MemoryConfig, config
from ..utils.document_store import GLOBAL_COLLECTION, GLOBAL_DOCUMENT_ID, DocumentStore
from ..utils.logging_config import get_logger
from ..utils.timestamp_utils import to_iso, utc_now
from .signal_extraction import extract_topics

logger = get_logger(__name__)

TOPICS_FIELD = 'recentGlobalTopics'


def merge_topics(*topic_lists: List[str]) -> List[str]:
    """Union topic lists, keeping first-seen order."""
    merged = []
    for topics in topic_lists:
        for topic in topics:
            if topic not in merged:
                merged.append(topic)
    return merged


class GlobalAggregationService:
    """Maintain the deployment-wide sliding window of recent topics."""

    def __init__(self,
                 store: DocumentStore,
                 memory_config: Optional[MemoryConfig] = None,
                 rng: Optional[random.Random] = None,
                 executor: Optional[Executor] = None,
                 clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.config = memory_config or config.memory
        self.rng = rng or random.Random()
        self.executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix='global-topics')
        self.clock = clock

        logger.info('Initialized GlobalAggregationService')

    def should_sample(self) -> bool:
        return self.rng.random() < self.config.global_sample_rate

    def maybe_record_global_topics(self, message: str, response: str) -> bool:
        """Schedule a topic update for a sampled subset of turns.

        Fire-and-forget: the update is submitted to the executor and not awaited.

        Returns:
            True if an update was scheduled
        """
        try:
            if not self.should_sample():
                return False
            self.executor.submit(self.record_global_topics, message, response)
            return True
        except Exception as e:
            logger.error(f'Error scheduling global topic update: {e}')
            return False

    def record_global_topics(self, message: str, response: str) -> Optional[List[str]]:
        """Push the topics of one exchange into the global window.

        Failures are logged and swallowed.

        Args:
            message: User message
            response: Bot response

        Returns:
            The topics pushed, or None if the update failed
        """
        try:
            topics = merge_topics(extract_topics(message), extract_topics(response))
            self.store.upsert(GLOBAL_COLLECTION,
                              GLOBAL_DOCUMENT_ID,
                              set_fields={'lastUpdate': to_iso(self.clock())},
                              push={TOPICS_FIELD: topics},
                              push_slice={TOPICS_FIELD: self.config.global_topic_window})
            logger.debug(f'Pushed global topics: {topics}')
            return topics
        except Exception as e:
            logger.error(f'Error updating global topics: {e}')
            return None
