"""
Text normalization shared by relevance scoring and signal extraction.
"""

from typing import List, Optional

from nltk.stem import PorterStemmer
from nltk.tokenize import RegexpTokenizer

STOP_WORDS = frozenset([
    'a', 'an', 'the', 'and', 'or', 'but', 'is', 'are', 'was', 'were', 'be', 'been', 'being', 'in', 'on', 'at', 'to',
    'for', 'with', 'by', 'about', 'like', 'through', 'over', 'before', 'after', 'between', 'under', 'above', 'of',
    'during', 'i', 'you', 'he', 'she', 'it', 'we', 'they', 'me', 'him', 'her', 'us', 'them', 'my', 'your', 'his', 'its',
    'our', 'their'
])

MIN_TOKEN_LENGTH = 3

word_tokenizer = RegexpTokenizer(r'\w+')
_stemmer = PorterStemmer(mode=PorterStemmer.ORIGINAL_ALGORITHM)


def tokenize(text: Optional[str]) -> List[str]:
    """Split raw text into word tokens without changing case."""
    if not text:
        return []
    return word_tokenizer.tokenize(text)


def normalize(text: Optional[str]) -> List[str]:
    """Lowercase, tokenize, drop stop words and short tokens, then stem.

    Args:
        text: Raw text, may be empty or None

    Returns:
        Normalized token sequence (empty for empty input)
    """
    tokens = tokenize(text.lower() if text else text)
    return [_stemmer.stem(token) for token in tokens if token not in STOP_WORDS and len(token) >= MIN_TOKEN_LENGTH]


def normalize_to_text(text: Optional[str]) -> str:
    """Joined form of normalize(), used as a corpus document."""
    return ' '.join(normalize(text))
