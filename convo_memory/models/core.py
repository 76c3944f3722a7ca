"""
Core data models for the conversational memory engine.

Profiles are persisted as camelCase documents; the models here convert to and from
that shape and tolerate missing or malformed fields in stored history.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from ..utils.timestamp_utils import parse_timestamp, to_iso

NEUTRAL_MOOD = 'neutral'
PREFERENCE_CATEGORIES = ('likes', 'dislikes', 'favorites')


@dataclass(frozen=True)
class ConversationTurn:
    """One message/response exchange. Immutable once created."""
    message: str = ''
    response: str = ''
    timestamp: Optional[datetime] = None
    entities: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def identity(self) -> Tuple[str, Optional[datetime]]:
        """Key used to deduplicate turns across the recency and relevance sets."""
        return self.message, self.timestamp

    @property
    def text(self) -> str:
        return f'{self.message} {self.response}'

    def to_document(self) -> Dict[str, Any]:
        return {
            'message': self.message,
            'response': self.response,
            'timestamp': to_iso(self.timestamp),
            'entities': sorted(self.entities),
        }

    @classmethod
    def from_document(cls, doc: Optional[Dict[str, Any]]) -> 'ConversationTurn':
        doc = doc or {}
        return cls(message=doc.get('message') or '',
                   response=doc.get('response') or '',
                   timestamp=parse_timestamp(doc.get('timestamp')),
                   entities=frozenset(doc.get('entities') or ()))


@dataclass
class UserProfile:
    """Persisted memory of a single user identity.

    ``context_tokens`` only grows by set union. Retention trims the history but not
    the tokens, so a token can outlive the turns it was extracted from.
    """
    user_id: str
    username: Optional[str] = None
    mood: str = NEUTRAL_MOOD
    preferences: Dict[str, List[str]] = field(default_factory=dict)
    context_tokens: List[str] = field(default_factory=list)
    last_bot_response: Optional[str] = None
    last_active: Optional[datetime] = None
    conversation_history: List[ConversationTurn] = field(default_factory=list)

    @classmethod
    def default(cls, user_id: str) -> 'UserProfile':
        return cls(user_id=user_id)

    @classmethod
    def from_document(cls, user_id: str, doc: Dict[str, Any]) -> 'UserProfile':
        preferences = doc.get('preferences') or {}
        return cls(user_id=doc.get('userId') or user_id,
                   username=doc.get('username'),
                   mood=doc.get('mood') or NEUTRAL_MOOD,
                   preferences={k: list(v or []) for k, v in preferences.items()},
                   context_tokens=list(doc.get('contextTokens') or []),
                   last_bot_response=doc.get('lastBotResponse'),
                   last_active=parse_timestamp(doc.get('lastActive')),
                   conversation_history=[ConversationTurn.from_document(d) for d in doc.get('conversationHistory') or []])

    def to_document(self) -> Dict[str, Any]:
        return {
            'userId': self.user_id,
            'username': self.username,
            'mood': self.mood,
            'preferences': self.preferences,
            'contextTokens': self.context_tokens,
            'lastBotResponse': self.last_bot_response,
            'lastActive': to_iso(self.last_active),
            'conversationHistory': [turn.to_document() for turn in self.conversation_history],
        }


@dataclass
class GlobalProfile:
    """Deployment-wide singleton shared by all users."""
    bot_personality: Optional[str] = None
    recent_global_topics: List[str] = field(default_factory=list)
    last_update: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> 'GlobalProfile':
        return cls(bot_personality=doc.get('botPersonality'),
                   recent_global_topics=list(doc.get('recentGlobalTopics') or []),
                   last_update=parse_timestamp(doc.get('lastUpdate')))


@dataclass
class UserInfo:
    """User facing slice of a profile handed to the prompt builder."""
    user_id: str
    username: Optional[str] = None
    mood: str = NEUTRAL_MOOD
    preferences: Dict[str, List[str]] = field(default_factory=dict)
    last_active: Optional[datetime] = None
    context_tokens: List[str] = field(default_factory=list)


@dataclass
class RetrievalResult:
    """Transient per-request view of a user's memory. Never persisted."""
    user_info: UserInfo
    bot_personality: str
    recent_history: List[ConversationTurn] = field(default_factory=list)
    relevant_history: List[ConversationTurn] = field(default_factory=list)
    previous_bot_message: Optional[str] = None
    global_topics: List[str] = field(default_factory=list)

    @classmethod
    def default(cls, user_id: str, bot_personality: str) -> 'RetrievalResult':
        """Minimal context returned when retrieval fails."""
        return cls(user_info=UserInfo(user_id=user_id), bot_personality=bot_personality)
