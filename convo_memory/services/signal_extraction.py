"""
Heuristic signal extraction: mood, preferences, candidate entities and topics.

Everything here is pattern matching over raw text. None of it is a classifier, and
entity extraction in particular produces a nontrivial share of false positives
(sentence-initial words, shouted words).
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Pattern, Sequence, Set, Tuple

from ..models.core import NEUTRAL_MOOD
from .text_normalizer import tokenize

KEYWORD_WEIGHT = 0.2
EMOJI_WEIGHT = 0.3
NEUTRAL_BASELINE = 0.2

SHORT_TEXT_LENGTH = 100
MIN_ENTITY_LENGTH = 4
MIN_PREFERENCE_LENGTH = 3


@dataclass(frozen=True)
class MoodCategory:
    name: str
    keywords: Tuple[str, ...]
    emojis: Tuple[str, ...]
    baseline: float = 0.0


# Declaration order is the tie-break order
MOOD_CATEGORIES: Tuple[MoodCategory, ...] = (
    MoodCategory('affectionate',
                 ('love', 'miss', 'adore', 'care', 'xoxo', 'heart', 'darling', 'babe', 'honey'),
                 ('😍', '😘', '❤️', '💕', '💖', '💓', '💗', '💞', '💘')),
    MoodCategory('happy',
                 ('happy', 'glad', 'excited', 'yay', 'woohoo', 'joy', 'delighted', 'wonderful', 'amazing'),
                 ('😊', '😃', '😄', '😁', '🙂', '😀', '😸', '😺', '🥳')),
    MoodCategory('sad',
                 ('sad', 'upset', 'tired', 'exhausted', 'depressed', 'unhappy', 'miss', 'lonely', 'down'),
                 ('😔', '😢', '😭', '😥', '😿', '😓', '🥺', '😞', '😟')),
    MoodCategory('upset',
                 ('angry', 'annoyed', 'frustrated', 'mad', 'furious', 'irritated', 'hate', 'rage', 'fed up'),
                 ('😠', '😡', '🤬', '😤', '😒', '😑', '😾', '💢', '👿')),
    MoodCategory('bored',
                 ('bored', 'whatever', 'meh', 'dull', 'uninterested', 'tedious', 'mundane', 'bland'),
                 ('😒', '🙄', '😐', '😑', '😴', '💤', '🥱', '😪')),
    MoodCategory('flirty',
                 ('flirt', 'sexy', 'hot', 'cute', 'beautiful', 'handsome', 'attractive', 'kiss', 'hug'),
                 ('😏', '😉', '🔥', '💋', '😈', '👀', '🤤', '💦', '👅')),
    MoodCategory(NEUTRAL_MOOD, (), (), baseline=NEUTRAL_BASELINE),
)

PREFERENCE_PATTERNS: Tuple[Tuple[Pattern, str], ...] = (
    (re.compile(r"\b(?:i|me|my|we) (?:like|love|enjoy|prefer) (.{3,30}?)(?:[.!,\s]|$)"), 'likes'),
    (re.compile(r"\b(?:i|me|my|we) (?:hate|dislike|don't like|do not like) (.{3,30}?)(?:[.!,\s]|$)"), 'dislikes'),
    (re.compile(r"\b(?:my|our) favorite (.{3,30}? (?:is|are) .{3,30}?)(?:[.!,\s]|$)"), 'favorites'),
)

ENTITY_STOP_WORDS = frozenset([
    'I', 'A', 'The', 'An', 'And', 'But', 'Or', 'For', 'Nor', 'As', 'At', 'By', 'From', 'In', 'Into', 'Near', 'Of', 'On',
    'To', 'With'
])

TOPIC_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    'relationships': ('love', 'boyfriend', 'girlfriend', 'dating', 'relationship', 'crush', 'married', 'wedding'),
    'work': ('job', 'work', 'boss', 'office', 'career', 'promotion', 'meeting', 'salary', 'interview'),
    'school': ('school', 'class', 'homework', 'study', 'exam', 'teacher', 'professor', 'assignment', 'college'),
    'entertainment': ('movie', 'game', 'music', 'show', 'book', 'concert', 'series', 'tv', 'anime', 'stream'),
    'feelings': ('feel', 'happy', 'sad', 'angry', 'excited', 'anxious', 'nervous', 'proud', 'joy', 'afraid'),
    'health': ('sick', 'health', 'doctor', 'exercise', 'gym', 'workout', 'diet', 'pain', 'sleep', 'tired'),
    'technology': ('phone', 'computer', 'laptop', 'app', 'software', 'tech', 'device', 'internet', 'wifi', 'online'),
    'food': ('food', 'eat', 'restaurant', 'meal', 'cook', 'dinner', 'lunch', 'breakfast', 'recipe', 'snack'),
    'travel': ('travel', 'trip', 'vacation', 'flight', 'hotel', 'journey', 'visit', 'abroad', 'country', 'city'),
}

_TOPIC_PATTERNS: Dict[str, Tuple[Pattern, ...]] = {
    topic: tuple(re.compile(rf'\b{re.escape(keyword)}\b') for keyword in keywords)
    for topic, keywords in TOPIC_KEYWORDS.items()
}


def score_moods(text: Optional[str], categories: Sequence[MoodCategory] = MOOD_CATEGORIES) -> List[Tuple[str, float]]:
    """Score every mood category for a text.

    Each keyword found as a case-insensitive substring adds KEYWORD_WEIGHT once and
    each emoji found adds EMOJI_WEIGHT once.

    Args:
        text: Raw message text
        categories: Ordered mood categories

    Returns:
        (mood, score) pairs in declaration order
    """
    text = text or ''
    lowered = text.lower()
    scores = []
    for category in categories:
        keyword_hits = sum(1 for keyword in category.keywords if keyword in lowered)
        emoji_hits = sum(1 for emoji in category.emojis if emoji in text)
        score = category.baseline + keyword_hits * KEYWORD_WEIGHT + emoji_hits * EMOJI_WEIGHT
        scores.append((category.name, round(score, 6)))
    return scores


def detect_mood(text: Optional[str]) -> str:
    """Return the mood with the highest score; the earlier-declared mood wins ties."""
    best_mood, best_score = NEUTRAL_MOOD, 0.0
    for mood, score in score_moods(text):
        if score > best_score:
            best_mood, best_score = mood, score
    return best_mood


def extract_preferences(message: Optional[str], response: Optional[str] = None) -> Dict[str, List[str]]:
    """Capture liked, disliked and favorite phrases verbatim from an exchange.

    Args:
        message: User message
        response: Bot response

    Returns:
        Mapping of category to phrases in first-seen order. Categories without
        captures are omitted, so an exchange with no preferences returns {}.
    """
    combined = f"{message or ''} {response or ''}".lower()
    preferences: Dict[str, List[str]] = {}
    for pattern, category in PREFERENCE_PATTERNS:
        for match in pattern.finditer(combined):
            phrase = match.group(1).strip()
            if len(phrase) < MIN_PREFERENCE_LENGTH:
                continue
            phrases = preferences.setdefault(category, [])
            if phrase not in phrases:
                phrases.append(phrase)
    return preferences


def _is_entity_candidate(token: str) -> bool:
    first = token[0]
    return (len(token) >= MIN_ENTITY_LENGTH and first == first.upper() and first != first.lower()
            and token not in ENTITY_STOP_WORDS)


def extract_entities(text: Optional[str]) -> Set[str]:
    """Capitalized word tokens that look like named entities."""
    return {token for token in tokenize(text) if _is_entity_candidate(token)}


def extract_topics(text: Optional[str]) -> List[str]:
    """Return topics evidenced in the text.

    A topic needs two distinct whole-word keyword matches, or one match when the
    text is shorter than SHORT_TEXT_LENGTH characters.
    """
    if not text:
        return []
    lowered = text.lower()
    topics = []
    for topic, patterns in _TOPIC_PATTERNS.items():
        matches = sum(1 for pattern in patterns if pattern.search(lowered))
        if matches >= 2 or (matches == 1 and len(text) < SHORT_TEXT_LENGTH):
            topics.append(topic)
    return topics
