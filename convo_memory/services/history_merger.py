"""
Merge recent and relevant turns into one bounded, chronological working set.
"""

from datetime import datetime
from typing import Callable, List, Optional, Sequence

from ..models.core import ConversationTurn
from ..utils.logging_config import get_logger
from ..utils.timestamp_utils import utc_now
from .relevance_scoring import RelevanceScorer

logger = get_logger(__name__)


class HistoryMerger:
    """Combine the recency set with the top scored turns.

    The most recent ``recent_n`` turns are always part of the output. Relevance
    candidates fill the remaining room up to ``max_total`` in score order, skipping
    any turn whose (message, timestamp) identity is already included.
    """

    def __init__(self,
                 recent_n: int,
                 relevant_k: int,
                 max_total: int,
                 scorer: Optional[RelevanceScorer] = None,
                 clock: Callable[[], datetime] = utc_now):
        self.recent_n = recent_n
        self.relevant_k = relevant_k
        self.max_total = max_total
        self.scorer = scorer or RelevanceScorer()
        self.clock = clock

    def recent(self, history: Sequence[ConversationTurn]) -> List[ConversationTurn]:
        if self.recent_n <= 0:
            return []
        return list(history[-self.recent_n:])

    def merge(self, history: Sequence[ConversationTurn], query: str) -> List[ConversationTurn]:
        """Build the working set for a query.

        Args:
            history: Full chronological history
            query: Current user message

        Returns:
            Deduplicated turns sorted by timestamp, at most max_total long
        """
        if not history or self.max_total <= 0:
            return []

        seen = set()
        merged = []
        for turn in self.recent(history)[-self.max_total:]:
            if turn.identity not in seen:
                seen.add(turn.identity)
                merged.append(turn)
        recent_count = len(merged)

        ranked = self.scorer.rank(query, history)[:self.relevant_k]
        for turn, _ in ranked:
            if len(merged) >= self.max_total:
                break
            if turn.identity in seen:
                continue
            seen.add(turn.identity)
            merged.append(turn)

        now = self.clock()
        merged.sort(key=lambda turn: turn.timestamp or now)
        logger.debug(f'Merged {recent_count} recent and {len(merged) - recent_count} relevant turns')
        return merged
