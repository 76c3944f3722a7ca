"""
Profile Management Service: read and write paths of a user's conversational memory.
"""

import re
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from ..models.core import (ConversationTurn, GlobalProfile, RetrievalResult, UserInfo, UserProfile)
from ..utils.config import MemoryConfig, config
from ..utils.document_store import (GLOBAL_COLLECTION, GLOBAL_DOCUMENT_ID, USER_COLLECTION, DocumentStore)
from ..utils.logging_config import get_logger
from ..utils.timestamp_utils import to_iso, utc_now
from .history_merger import HistoryMerger
from .signal_extraction import detect_mood, extract_entities, extract_preferences

logger = get_logger(__name__)

MENTION_PATTERN = re.compile(r'@(\w+)')


class ProfileManagementError(Exception):
    """Custom exception for profile write failures."""
    pass


def trim_history(history: Sequence[ConversationTurn], max_history: int, keep_first: int,
                 keep_last: int) -> List[ConversationTurn]:
    """Apply the retention policy to a history.

    Histories longer than max_history keep their first keep_first turns (founding
    context) and their last keep_last turns; everything in between is dropped.

    Args:
        history: Chronological history
        max_history: Length above which trimming applies
        keep_first: Number of oldest turns to keep
        keep_last: Number of most recent turns to keep

    Returns:
        The history unchanged when within bounds, otherwise the trimmed copy
    """
    if len(history) <= max_history:
        return list(history)
    head = list(history[:keep_first])
    tail = list(history[-keep_last:]) if keep_last > 0 else []
    return head + tail


def mention_username(text: Optional[str]) -> Optional[str]:
    """First @mention in a message, if any."""
    if not text or '@' not in text:
        return None
    match = MENTION_PATTERN.search(text)
    return match.group(1) if match else None


class ProfileManagementService:
    """Retrieve context for a message and record completed turns for a user."""

    def __init__(self,
                 store: DocumentStore,
                 memory_config: Optional[MemoryConfig] = None,
                 merger: Optional[HistoryMerger] = None,
                 clock: Callable[[], datetime] = utc_now):
        """Initialize the profile management service.

        Args:
            store: Document store holding user profiles and the global profile
            memory_config: Retrieval and retention settings, defaults to app config
            merger: History merger, built from memory_config when omitted
            clock: Source of the current time
        """
        self.store = store
        self.config = memory_config or config.memory
        self.clock = clock
        self.merger = merger or HistoryMerger(recent_n=self.config.recent_history_size,
                                              relevant_k=self.config.relevant_history_size,
                                              max_total=self.config.max_context_turns,
                                              clock=clock)

        logger.info('Initialized ProfileManagementService')

    def load_profile(self, user_id: str) -> UserProfile:
        """Load a user profile, synthesizing a default one for a new identity."""
        doc = self.store.find_one(USER_COLLECTION, user_id)
        if not doc:
            logger.info(f'No existing profile for user {user_id}, using a new profile')
            return UserProfile.default(user_id)
        return UserProfile.from_document(user_id, doc)

    def load_global_profile(self) -> GlobalProfile:
        doc = self.store.find_one(GLOBAL_COLLECTION, GLOBAL_DOCUMENT_ID)
        return GlobalProfile.from_document(doc) if doc else GlobalProfile()

    def retrieve_context(self, user_id: str, query: str) -> RetrievalResult:
        """Assemble the per-request context for a message.

        Never raises: store or scoring failures are logged and a minimal default
        result is returned.

        Args:
            user_id: External user identity
            query: The incoming message

        Returns:
            RetrievalResult with recent and merged relevant history
        """
        try:
            profile = self.load_profile(user_id)
            global_profile = self.load_global_profile()

            history = profile.conversation_history
            recent_history = self.merger.recent(history)
            relevant_history = self.merger.merge(history, query)
            previous_bot_message = history[-1].response if history else None

            topics_limit = self.config.global_topics_in_context
            global_topics = global_profile.recent_global_topics[-topics_limit:] if topics_limit > 0 else []

            user_info = UserInfo(user_id=user_id,
                                 username=profile.username or mention_username(query),
                                 mood=profile.mood,
                                 preferences=profile.preferences,
                                 last_active=profile.last_active,
                                 context_tokens=profile.context_tokens)

            logger.debug(f'Retrieved {len(relevant_history)} context turns for user {user_id}')
            return RetrievalResult(user_info=user_info,
                                   bot_personality=global_profile.bot_personality or self.config.default_personality,
                                   recent_history=recent_history,
                                   relevant_history=relevant_history,
                                   previous_bot_message=previous_bot_message,
                                   global_topics=global_topics)

        except Exception as e:
            logger.error(f'Error retrieving context for user {user_id}: {e}')
            return RetrievalResult.default(user_id, self.config.default_personality)

    def record_turn(self, user_id: str, username: Optional[str], message: str, response: str) -> UserProfile:
        """Persist a completed exchange and the signals extracted from it.

        The stored preferences are replaced wholesale whenever this turn yields any
        preferences; categories not re-extracted are dropped. Entities are unioned
        into the context tokens. Retention runs as a follow-up write.

        Args:
            user_id: External user identity
            username: Display name, left unchanged in the store when empty
            message: User message
            response: Bot response

        Returns:
            The updated profile

        Raises:
            ProfileManagementError: If the store write fails
        """
        now = self.clock()
        entities = extract_entities(message)
        preferences = extract_preferences(message, response)
        turn = ConversationTurn(message=message or '', response=response or '', timestamp=now, entities=frozenset(entities))

        set_fields = {
            'userId': user_id,
            'lastActive': to_iso(now),
            'mood': detect_mood(message),
            'lastBotResponse': response
        }
        if username:
            set_fields['username'] = username
        if preferences:
            set_fields['preferences'] = preferences
        add_to_set = {'contextTokens': sorted(entities)} if entities else None

        try:
            doc = self.store.upsert(USER_COLLECTION,
                                    user_id,
                                    set_fields=set_fields,
                                    push={'conversationHistory': [turn.to_document()]},
                                    add_to_set=add_to_set)
            profile = UserProfile.from_document(user_id, doc)

            history = profile.conversation_history
            if len(history) > self.config.max_history:
                profile.conversation_history = self.apply_retention(user_id, history)

            logger.debug(f'Recorded turn for user {user_id} (history: {len(profile.conversation_history)})')
            return profile

        except ProfileManagementError:
            raise
        except Exception as e:
            logger.error(f'Error recording turn for user {user_id}: {e}')
            raise ProfileManagementError(f'Profile update failed: {e}')

    def apply_retention(self, user_id: str, history: Sequence[ConversationTurn]) -> List[ConversationTurn]:
        """Trim an over-long history and persist the result.

        The trimmed snapshot overwrites the stored history in a second write, so a
        turn appended by a concurrent request between the two writes is lost.

        Raises:
            ProfileManagementError: If the trimmed history cannot be written
        """
        trimmed = trim_history(history, self.config.max_history, self.config.keep_first_turns,
                               self.config.keep_last_turns)
        try:
            self.store.upsert(USER_COLLECTION,
                              user_id,
                              set_fields={'conversationHistory': [turn.to_document() for turn in trimmed]})
        except Exception as e:
            logger.error(f'Error trimming history for user {user_id}: {e}')
            raise ProfileManagementError(f'History retention failed: {e}')

        logger.info(f'Trimmed history for user {user_id} from {len(history)} to {len(trimmed)} turns')
        return trimmed
